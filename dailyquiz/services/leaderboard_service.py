"""
Leaderboard Service

Standings are derived on demand from the submission ledger; nothing is
stored. Scope is one epoch (default: current) and optionally one quiz date.

RANKING ALGORITHM:
1. total_score DESC
2. correct_count DESC
3. avg_answer_order ASC (fastest on average)
4. participant_id ASC (deterministic order for exact ties)
Ranks are positional 1..N; exact ties still get distinct consecutive ranks.
"""
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, case, cast, Float
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.orm.participant import Participant
from dailyquiz.orm.question import Question
from dailyquiz.orm.submission import Submission, SubmissionStatus
from dailyquiz.services import epoch_service

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass
class LeaderboardEntry:
    rank: int
    participant_id: int
    participant_name: str
    total_score: Decimal
    correct_count: int
    avg_answer_order: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_score"] = float(self.total_score)
        return data


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES)


def rank_rows(rows: List[Dict[str, Any]]) -> List[LeaderboardEntry]:
    """Sort aggregated rows and assign positional ranks."""
    ordered = sorted(
        rows,
        key=lambda r: (
            -r["total_score"],
            -r["correct_count"],
            r["avg_answer_order"],
            r["participant_id"],
        ),
    )
    return [
        LeaderboardEntry(
            rank=position,
            participant_id=row["participant_id"],
            participant_name=row["participant_name"],
            total_score=row["total_score"],
            correct_count=row["correct_count"],
            avg_answer_order=row["avg_answer_order"],
        )
        for position, row in enumerate(ordered, start=1)
    ]


async def get_leaderboard(
    db: AsyncSession,
    quiz_date: Optional[str] = None,
    epoch: Optional[int] = None,
) -> List[LeaderboardEntry]:
    """
    Ranked standings.

    Args:
        db: Database session
        quiz_date: Restrict to questions of this YYYY-MM-DD date
        epoch: Epoch to rank; the current one when omitted
    """
    if epoch is None:
        epoch = await epoch_service.get_current_epoch(db)

    correct = case((Submission.status == SubmissionStatus.CORRECT, 1), else_=0)
    stmt = (
        select(
            Submission.participant_id,
            Participant.name,
            func.sum(Submission.final_score),
            func.sum(correct),
            func.avg(cast(Submission.answer_order, Float)),
        )
        .select_from(Submission)
        .join(Participant, Submission.participant_id == Participant.id)
        .join(Question, Submission.question_id == Question.id)
        .where(Submission.epoch == epoch, Question.epoch == epoch)
        .group_by(Submission.participant_id, Participant.name)
    )
    if quiz_date:
        stmt = stmt.where(Question.quiz_date == quiz_date)

    result = await db.execute(stmt)
    rows = [
        {
            "participant_id": participant_id,
            "participant_name": name,
            "total_score": _to_decimal(total),
            "correct_count": int(correct_count or 0),
            "avg_answer_order": float(avg_order or 0),
        }
        for participant_id, name, total, correct_count, avg_order in result.all()
    ]

    entries = rank_rows(rows)
    logger.debug(f"Leaderboard epoch={epoch} date={quiz_date or 'all'}: {len(entries)} entries")
    return entries
