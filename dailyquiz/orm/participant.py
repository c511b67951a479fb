"""
dailyquiz/orm/participant.py
Quiz participant, permanently bound to one device
"""
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime

from dailyquiz.orm.base import BaseModel


class Participant(BaseModel):
    """
    A human identified by a unique name bound one-to-one to a device id.

    Neither side of the binding is ever rebound. Participants are never
    deleted; only last_active_at and is_banned change after creation.
    """

    __tablename__ = "participants"

    name = Column(String(100), nullable=False, unique=True, index=True)

    device_id = Column(String(255), nullable=False, unique=True, index=True)

    is_banned = Column(Boolean, nullable=False, default=False)

    last_active_at = Column(DateTime, nullable=True, default=datetime.now)

    def __repr__(self):
        return f"<Participant(id={self.id}, name={self.name!r}, banned={self.is_banned})>"
