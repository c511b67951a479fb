"""
Export Service

Flat tabular projection of raw submissions for offline reporting, plus an
XLSX rendering of it.
"""
import logging
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.orm.participant import Participant
from dailyquiz.orm.question import Question
from dailyquiz.orm.submission import Submission
from dailyquiz.services import epoch_service

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Question ID",
    "Question",
    "Quiz Date",
    "Participant",
    "Status",
    "Answer Order",
    "Wrong Attempt Order",
    "Base Marks",
    "Deduction Marks",
    "Bonus %",
    "Extra Applied",
    "Final Score",
    "Auto Submitted",
    "Auto Submit Reason",
    "Timestamp",
]

SHEET_NAME = "Submissions"


async def export_rows(
    db: AsyncSession,
    quiz_date: Optional[str] = None,
    epoch: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """One row per submission of the epoch (default current), optionally one date."""
    if epoch is None:
        epoch = await epoch_service.get_current_epoch(db)

    stmt = (
        select(
            Submission.question_id,
            Question.content,
            Question.quiz_date,
            Participant.name,
            Submission.status,
            Submission.answer_order,
            Submission.wrong_attempt_order,
            Submission.base_marks,
            Submission.deduction_marks,
            Submission.bonus_percentage,
            Submission.extra_applied,
            Submission.final_score,
            Submission.is_auto_submitted,
            Submission.auto_submit_reason,
            Submission.submitted_at,
        )
        .select_from(Submission)
        .join(Participant, Submission.participant_id == Participant.id)
        .join(Question, Submission.question_id == Question.id)
        .where(Submission.epoch == epoch, Question.epoch == epoch)
        .order_by(Question.quiz_date, Submission.question_id, Submission.answer_order)
    )
    if quiz_date:
        stmt = stmt.where(Question.quiz_date == quiz_date)

    result = await db.execute(stmt)
    rows = []
    for r in result.all():
        rows.append({
            "Question ID": r.question_id,
            "Question": r.content,
            "Quiz Date": r.quiz_date,
            "Participant": r.name,
            "Status": r.status.value,
            "Answer Order": r.answer_order,
            "Wrong Attempt Order": r.wrong_attempt_order,
            "Base Marks": r.base_marks,
            "Deduction Marks": r.deduction_marks,
            "Bonus %": r.bonus_percentage,
            "Extra Applied": "Yes" if r.extra_applied else "No",
            "Final Score": r.final_score,
            "Auto Submitted": "Yes" if r.is_auto_submitted else "No",
            "Auto Submit Reason": r.auto_submit_reason or "",
            "Timestamp": r.submitted_at.strftime("%Y-%m-%d %H:%M:%S") if r.submitted_at else "",
        })

    logger.info(f"Export epoch={epoch} date={quiz_date or 'all'}: {len(rows)} rows")
    return rows


def build_xlsx(rows: List[Dict[str, Any]]) -> bytes:
    """Render export rows as an XLSX workbook with one sheet."""
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    # Decimals are written as numbers, not text
    for column in ("Base Marks", "Deduction Marks", "Bonus %", "Final Score"):
        df[column] = df[column].astype(float)

    output = BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)

        # Auto-adjust column widths
        worksheet = writer.sheets[SHEET_NAME]
        for i, col in enumerate(df.columns):
            longest = df[col].astype(str).map(len).max() if len(df) else 0
            worksheet.set_column(i, i, max(longest, len(col)) + 2)

    return output.getvalue()


async def export_workbook(
    db: AsyncSession,
    quiz_date: Optional[str] = None,
    epoch: Optional[int] = None,
) -> Tuple[bytes, str]:
    """(xlsx bytes, download filename)"""
    rows = await export_rows(db, quiz_date=quiz_date, epoch=epoch)
    suffix = f"_{quiz_date}" if quiz_date else ""
    return build_xlsx(rows), f"export{suffix}.xlsx"
