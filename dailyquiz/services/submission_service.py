"""
Submission Service (Ledger)

Owns the invariant "at most one submission per (participant, question)"
and the global answer order of each question.

Concurrency model:
- The question row is locked FOR UPDATE (PostgreSQL/MySQL) before the
  submissions for it are counted, so writers for the same question queue
  up and each sees the rows committed before it. On SQLite every
  transaction starts with BEGIN IMMEDIATE (see database.py), which gives the
  same ordering for the whole database.
- Unique constraints on (participant_id, question_id) and
  (question_id, answer_order) are the last line of defence. A violation is
  rolled back and either reported as AlreadySubmittedError or, for an order
  collision, retried with a fresh count.

Scoring and insert share one transaction: a submission is persisted with
all of its components or not at all.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.config.settings import settings
from dailyquiz.errors import (
    AlreadySubmittedError,
    QuestionNotFoundError,
    QuestionNotOpenError,
    SubmissionConflictError,
)
from dailyquiz.orm.participant import Participant
from dailyquiz.orm.question import Question
from dailyquiz.orm.submission import Submission
from dailyquiz.services import epoch_service, scoring_service, visibility_service

logger = logging.getLogger(__name__)


async def get_submission(db: AsyncSession, participant_id: int, question_id: int) -> Optional[Submission]:
    result = await db.execute(
        select(Submission).where(
            Submission.participant_id == participant_id,
            Submission.question_id == question_id,
        )
    )
    return result.unique().scalar_one_or_none()


async def get_next_answer_order(db: AsyncSession, question_id: int) -> int:
    """Existing submissions for the question + 1."""
    result = await db.execute(
        select(func.count(Submission.id)).where(Submission.question_id == question_id)
    )
    return result.scalar_one() + 1


async def get_previous_score(db: AsyncSession, participant_id: int) -> Optional[Decimal]:
    """
    Final score of the participant's most recent submission, across all
    questions and epochs. None when the participant has never submitted.
    """
    result = await db.execute(
        select(Submission.final_score)
        .where(Submission.participant_id == participant_id)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _lock_question(db: AsyncSession, question_id: int) -> Question:
    result = await db.execute(
        select(Question).where(Question.id == question_id).with_for_update()
    )
    question = result.scalar_one_or_none()
    if question is None:
        raise QuestionNotFoundError(question_id)
    return question


async def _insert_scored_submission(
    db: AsyncSession,
    participant_id: int,
    question_id: int,
    answer_index: Optional[int],
    device_id: str,
    reason: Optional[str],
    now: datetime,
) -> Submission:
    question = await _lock_question(db, question_id)
    epoch = await epoch_service.get_current_epoch(db)

    # Only questions a participant could have been shown are answerable
    if question.epoch != epoch or not question.is_active:
        raise QuestionNotFoundError(question_id)
    if not visibility_service.has_opened(question, now):
        raise QuestionNotOpenError(question_id)

    if await get_submission(db, participant_id, question_id) is not None:
        raise AlreadySubmittedError(participant_id, question_id)

    answer_order = await get_next_answer_order(db, question_id)
    previous_score = await get_previous_score(db, participant_id)

    breakdown = scoring_service.score(
        question,
        answer_index,
        participant_id,
        answer_order,
        previous_score,
    )

    submission = Submission(
        participant_id=participant_id,
        question_id=question_id,
        answer_index=answer_index,
        status=breakdown.status,
        answer_order=breakdown.answer_order,
        wrong_attempt_order=breakdown.wrong_attempt_order,
        submitted_at=now,
        base_marks=breakdown.base_marks,
        deduction_marks=breakdown.deduction_marks,
        bonus_percentage=breakdown.bonus_percentage,
        extra_applied=breakdown.extra_applied,
        final_score=breakdown.final_score,
        device_id=device_id,
        is_auto_submitted=reason is not None,
        auto_submit_reason=reason,
        epoch=epoch,
    )
    db.add(submission)
    await db.flush()
    return submission


async def submit_answer(
    db: AsyncSession,
    participant_id: int,
    question_id: int,
    answer_index: Optional[int],
    device_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
) -> Submission:
    """
    Score and record a participant's answer.

    A non-empty reason marks a forced submission: it is stored verbatim,
    and the answer is discarded so the submission scores as UNATTEMPTED.

    Raises:
        QuestionNotFoundError: unknown, inactive or previous-epoch question
        QuestionNotOpenError: the question's slot has not opened yet
        AlreadySubmittedError: the pair already has a submission
        SubmissionConflictError: answer order still colliding after retries
    """
    if not reason:
        reason = None
    if reason is not None:
        answer_index = None

    attempts = max_attempts or settings.SUBMIT_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            submission = await _insert_scored_submission(
                db,
                participant_id,
                question_id,
                answer_index,
                device_id,
                reason,
                now or datetime.now(),
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if await get_submission(db, participant_id, question_id) is not None:
                await db.rollback()
                logger.warning(f"Duplicate submission rejected: participant={participant_id} question={question_id}")
                raise AlreadySubmittedError(participant_id, question_id)
            await db.rollback()
            logger.warning(
                f"Answer order collision on question {question_id} "
                f"(attempt {attempt}/{attempts}), retrying"
            )
            continue
        except AlreadySubmittedError:
            await db.rollback()
            logger.warning(f"Duplicate submission rejected: participant={participant_id} question={question_id}")
            raise
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Submission recorded: participant={participant_id} question={question_id} "
            f"order={submission.answer_order} status={submission.status.value} "
            f"score={submission.final_score}"
            + (f" forced={reason!r}" if reason is not None else "")
        )
        return submission

    raise SubmissionConflictError(question_id, attempts)


async def list_submissions(
    db: AsyncSession,
    epoch: Optional[int] = None,
    quiz_date: Optional[str] = None,
) -> List[Submission]:
    """Submissions of one epoch (default current), optionally for one quiz date."""
    if epoch is None:
        epoch = await epoch_service.get_current_epoch(db)

    stmt = (
        select(Submission)
        .join(Question, Submission.question_id == Question.id)
        .join(Participant, Submission.participant_id == Participant.id)
        .where(Submission.epoch == epoch, Question.epoch == epoch)
        .order_by(Submission.question_id, Submission.answer_order)
    )
    if quiz_date:
        stmt = stmt.where(Question.quiz_date == quiz_date)

    result = await db.execute(stmt)
    return list(result.unique().scalars().all())


async def count_submissions_for_date(db: AsyncSession, epoch: int, quiz_date: str) -> int:
    result = await db.execute(
        select(func.count(Submission.id))
        .join(Question, Submission.question_id == Question.id)
        .where(Submission.epoch == epoch, Question.quiz_date == quiz_date)
    )
    return result.scalar_one()


async def delete_submissions_for_question(db: AsyncSession, question_id: int) -> int:
    """
    Explicitly remove every submission of a question so it can be deleted.
    Returns the number of rows removed.
    """
    result = await db.execute(select(Question.id).where(Question.id == question_id))
    if result.scalar_one_or_none() is None:
        raise QuestionNotFoundError(question_id)

    result = await db.execute(
        delete(Submission)
        .where(Submission.question_id == question_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    removed = result.rowcount or 0
    logger.warning(f"Deleted {removed} submission(s) of question {question_id}")
    return removed
