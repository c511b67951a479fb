"""
Visibility Service

Decides which question, if any, a participant may answer right now.

Only active questions of the current epoch dated today (server-local
calendar date) are candidates. A question opens once its scheduled HH:MM is
<= the current wall-clock HH:MM; zero-padded 24-hour strings sort
chronologically, so plain string comparison is used. A question without a
scheduled time is open immediately.

Among open questions the most recently opened slot wins: latest scheduled
time, then highest day order. A missing time sorts as "00:00", so an
immediate question loses to any timed question that has opened.

If the participant has already answered the winning question nothing is
returned; earlier slots are not offered as a fallback.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.orm.question import Question
from dailyquiz.orm.submission import Submission
from dailyquiz.schemas.quiz import PublicQuestion
from dailyquiz.services import epoch_service

logger = logging.getLogger(__name__)

IMMEDIATE_SORT_KEY = "00:00"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def is_open(question: Question, now_time: str) -> bool:
    return not question.scheduled_time or question.scheduled_time <= now_time


def has_opened(question: Question, now: datetime) -> bool:
    """
    Whether the question's slot has opened by `now`: any earlier quiz date,
    or today once its scheduled time has passed.
    """
    today = now.strftime(DATE_FORMAT)
    if question.quiz_date != today:
        return question.quiz_date < today
    return is_open(question, now.strftime(TIME_FORMAT))


def _precedence(question: Question):
    return (question.scheduled_time or IMMEDIATE_SORT_KEY, question.order, question.id or 0)


def select_visible(questions: Iterable[Question], now_time: str) -> Optional[Question]:
    """
    Pick the question whose slot opened most recently.

    Args:
        questions: Today's active candidates
        now_time: Current wall-clock time as zero-padded HH:MM

    Returns:
        The winning question, or None when no slot has opened yet
    """
    eligible = [q for q in questions if is_open(q, now_time)]
    if not eligible:
        return None
    return max(eligible, key=_precedence)


async def get_todays_candidates(db: AsyncSession, quiz_date: str, epoch: int):
    result = await db.execute(
        select(Question).where(
            Question.quiz_date == quiz_date,
            Question.is_active.is_(True),
            Question.epoch == epoch,
        )
    )
    return list(result.scalars().all())


async def has_submitted(db: AsyncSession, participant_id: int, question_id: int) -> bool:
    result = await db.execute(
        select(Submission.id).where(
            Submission.participant_id == participant_id,
            Submission.question_id == question_id,
        )
    )
    return result.first() is not None


async def resolve_visible_question(
    db: AsyncSession,
    participant_id: int,
    now: Optional[datetime] = None,
) -> Optional[Question]:
    """
    The question the participant may answer now, or None.

    None covers three cases: nothing scheduled today, no slot open yet, or
    the newest open question already answered.
    """
    now = now or datetime.now()
    epoch = await epoch_service.get_current_epoch(db)
    today = now.strftime(DATE_FORMAT)
    now_time = now.strftime(TIME_FORMAT)

    candidates = await get_todays_candidates(db, today, epoch)
    if not candidates:
        return None

    question = select_visible(candidates, now_time)
    if question is None:
        logger.debug(f"{len(candidates)} question(s) today, none open at {now_time}")
        return None

    if await has_submitted(db, participant_id, question.id):
        return None

    return question


async def resolve_public_question(
    db: AsyncSession,
    participant_id: int,
    now: Optional[datetime] = None,
) -> Optional[PublicQuestion]:
    """resolve_visible_question projected to the participant-safe fields."""
    question = await resolve_visible_question(db, participant_id, now)
    if question is None:
        return None
    return PublicQuestion.model_validate(question)
