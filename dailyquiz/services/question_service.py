"""
Question Service

Catalog CRUD for daily questions. New questions are stamped with the
current epoch; updates never rewrite that stamp. Deleting a question that
still has submissions is refused: the operator must clear them explicitly
first (see submission_service.delete_submissions_for_question).
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.errors import DeleteBlockedError, QuestionNotFoundError
from dailyquiz.orm.question import Question
from dailyquiz.orm.submission import Submission
from dailyquiz.services import epoch_service

logger = logging.getLogger(__name__)

# Columns an operator may change
UPDATABLE_FIELDS = {
    "content",
    "options",
    "correct_answer_index",
    "quiz_date",
    "order",
    "scheduled_time",
    "is_active",
}


async def create_question(db: AsyncSession, data: Dict[str, Any]) -> Question:
    """Create a question tagged with the current epoch."""
    epoch = await epoch_service.get_current_epoch(db)
    fields = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}

    question = Question(**fields, epoch=epoch)
    db.add(question)
    await db.commit()
    await db.refresh(question)

    logger.info(
        f"Question {question.id} created for {question.quiz_date} "
        f"(order={question.order}, time={question.scheduled_time or 'immediate'}, epoch={epoch})"
    )
    return question


async def get_question(db: AsyncSession, question_id: int) -> Optional[Question]:
    result = await db.execute(select(Question).where(Question.id == question_id))
    return result.scalar_one_or_none()


async def get_question_or_404(db: AsyncSession, question_id: int) -> Question:
    question = await get_question(db, question_id)
    if question is None:
        raise QuestionNotFoundError(question_id)
    return question


async def list_questions(db: AsyncSession, epoch: Optional[int] = None) -> List[Question]:
    """All questions, newest date first; restricted to one epoch when given."""
    stmt = select(Question).order_by(
        Question.quiz_date.desc(), Question.order.desc(), Question.id.desc()
    )
    if epoch is not None:
        stmt = stmt.where(Question.epoch == epoch)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_question(db: AsyncSession, question_id: int, updates: Dict[str, Any]) -> Question:
    """Apply a partial update. Unknown keys and the epoch are ignored."""
    question = await get_question_or_404(db, question_id)

    for key, value in updates.items():
        if key in UPDATABLE_FIELDS:
            setattr(question, key, value)

    await db.commit()
    await db.refresh(question)
    logger.info(f"Question {question_id} updated: {sorted(k for k in updates if k in UPDATABLE_FIELDS)}")
    return question


async def count_submissions(db: AsyncSession, question_id: int) -> int:
    result = await db.execute(
        select(func.count(Submission.id)).where(Submission.question_id == question_id)
    )
    return result.scalar_one()


async def delete_question(db: AsyncSession, question_id: int) -> None:
    """
    Delete a question with no dependent submissions.

    Raises:
        QuestionNotFoundError: unknown id
        DeleteBlockedError: submissions still reference the question
    """
    question = await get_question_or_404(db, question_id)

    dependents = await count_submissions(db, question_id)
    if dependents:
        logger.warning(f"Refusing to delete question {question_id}: {dependents} submission(s) reference it")
        raise DeleteBlockedError(question_id, dependents)

    await db.delete(question)
    await db.commit()
    logger.info(f"Question {question_id} deleted")


async def count_active_questions(db: AsyncSession, epoch: int) -> int:
    result = await db.execute(
        select(func.count(Question.id)).where(
            Question.epoch == epoch,
            Question.is_active.is_(True),
        )
    )
    return result.scalar_one()


async def seed_sample_question(db: AsyncSession, now: Optional[datetime] = None) -> Optional[Question]:
    """Create an always-open demo question for today unless one already exists."""
    now = now or datetime.now()
    today = now.strftime("%Y-%m-%d")
    epoch = await epoch_service.get_current_epoch(db)

    result = await db.execute(
        select(func.count(Question.id)).where(
            Question.quiz_date == today,
            Question.epoch == epoch,
        )
    )
    if result.scalar_one():
        return None

    question = await create_question(db, {
        "content": "What is the capital of France?",
        "options": ["London", "Berlin", "Paris", "Madrid"],
        "correct_answer_index": 2,
        "quiz_date": today,
        "order": 1,
        "is_active": True,
    })
    logger.info(f"✓ Seeded sample question {question.id} for {today}")
    return question
