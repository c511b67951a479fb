"""
dailyquiz/orm/base.py
Declarative base shared by all ORM models
"""
from datetime import datetime

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with common fields.
    All ORM models except the settings singleton inherit from this.
    """
    __abstract__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        index=True
    )

    created_at = Column(
        DateTime,
        default=datetime.now,
        nullable=False,
        comment="Server-local timestamp when record was created"
    )
