"""
dailyquiz/orm/admin.py
Operator account
"""
from sqlalchemy import Column, String

from dailyquiz.orm.base import BaseModel


class Admin(BaseModel):
    """Operator allowed to manage the catalog, reset and export."""

    __tablename__ = "admins"

    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<Admin(id={self.id}, username={self.username!r})>"
