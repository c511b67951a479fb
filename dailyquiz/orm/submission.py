"""
dailyquiz/orm/submission.py
Immutable scored answer of one participant to one question
"""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Numeric,
    Enum as SQLEnum, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from dailyquiz.orm.base import BaseModel


class SubmissionStatus(str, PyEnum):
    """Outcome of a submission"""
    CORRECT = "CORRECT"
    WRONG = "WRONG"
    UNATTEMPTED = "UNATTEMPTED"   # forced / empty submission


class Submission(BaseModel):
    """
    One participant's single scored answer to one question.

    Every scoring component is stored so a score can be reconstructed
    without recomputation. Rows are never updated; they only disappear when
    an operator explicitly clears a question's submissions.
    """

    __tablename__ = "submissions"

    participant_id = Column(
        Integer,
        ForeignKey("participants.id"),
        nullable=False,
        index=True
    )

    # No ON DELETE CASCADE: a question with submissions cannot be deleted
    question_id = Column(
        Integer,
        ForeignKey("questions.id"),
        nullable=False,
        index=True
    )

    answer_index = Column(Integer, nullable=True, comment="NULL for forced submissions")

    status = Column(SQLEnum(SubmissionStatus), nullable=False)

    answer_order = Column(
        Integer,
        nullable=False,
        comment="1-based global position among submissions for the question"
    )

    wrong_attempt_order = Column(
        Integer,
        nullable=False,
        default=1,
        comment="Always 1 under the single-attempt model"
    )

    submitted_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

    # Scoring components
    base_marks = Column(Numeric(12, 2), nullable=False)
    deduction_marks = Column(Numeric(12, 2), nullable=False)
    bonus_percentage = Column(Numeric(5, 2), nullable=False)
    extra_applied = Column(Boolean, nullable=False, default=False)
    final_score = Column(Numeric(12, 2), nullable=False)

    device_id = Column(String(255), nullable=False)

    # Anti-cheat signal, stored verbatim
    is_auto_submitted = Column(Boolean, nullable=False, default=False)
    auto_submit_reason = Column(Text, nullable=True)

    epoch = Column(Integer, nullable=False, default=0, index=True)

    participant = relationship("Participant", lazy="joined")
    question = relationship("Question", lazy="joined")

    __table_args__ = (
        UniqueConstraint("participant_id", "question_id", name="uq_submission_participant_question"),
        UniqueConstraint("question_id", "answer_order", name="uq_submission_question_order"),
        Index("ix_submission_epoch_participant", "epoch", "participant_id"),
    )

    def __repr__(self):
        return (
            f"<Submission(participant={self.participant_id}, question={self.question_id}, "
            f"order={self.answer_order}, status={self.status}, score={self.final_score})>"
        )
