"""
dailyquiz/orm/app_settings.py
Single-row table holding the current competition epoch (reset id)
"""
from sqlalchemy import Column, Integer, DateTime

from dailyquiz.orm.base import Base

SETTINGS_ROW_ID = 1


class AppSettings(Base):
    """
    Global mutable competition state.

    Exactly one row (id = 1) exists. Questions and submissions copy
    current_epoch when they are created; a reset only bumps this counter.
    """
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, default=SETTINGS_ROW_ID)

    current_epoch = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Epoch new questions and submissions are tagged with"
    )

    last_reset_at = Column(
        DateTime,
        nullable=True,
        comment="When the epoch was last advanced"
    )

    def __repr__(self):
        return f"<AppSettings(current_epoch={self.current_epoch})>"
