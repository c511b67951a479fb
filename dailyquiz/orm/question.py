"""
dailyquiz/orm/question.py
Daily multiple-choice question model
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, Index

from dailyquiz.core.db_types import OptionList
from dailyquiz.orm.base import BaseModel


class Question(BaseModel):
    """
    One MCQ available on a calendar date.

    quiz_date is an opaque YYYY-MM-DD string and scheduled_time an optional
    zero-padded HH:MM wall-clock string; neither is ever timezone converted.
    A question without a scheduled time is visible as soon as it is active.
    """

    __tablename__ = "questions"

    content = Column(Text, nullable=False)

    options = Column(
        OptionList,
        nullable=False,
        comment="Exactly four answer options, in display order"
    )

    correct_answer_index = Column(
        Integer,
        nullable=False,
        comment="0-3, never exposed to participants"
    )

    quiz_date = Column(String(10), nullable=False, index=True)

    order = Column(
        Integer,
        nullable=False,
        default=1,
        comment="Disambiguates multiple questions on one date"
    )

    scheduled_time = Column(
        String(5),
        nullable=True,
        comment="HH:MM after which the question opens; NULL = immediate"
    )

    is_active = Column(Boolean, nullable=False, default=False)

    epoch = Column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="Epoch current when the question was created"
    )

    __table_args__ = (
        Index("ix_question_epoch_date_active", "epoch", "quiz_date", "is_active"),
    )

    def __repr__(self):
        return f"<Question(id={self.id}, date={self.quiz_date}, order={self.order}, epoch={self.epoch})>"
