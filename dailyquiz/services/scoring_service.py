"""
Scoring Service

Pure scoring function for a single submission. Given the question, the
chosen option, the global answer order and the participant's previous
score it returns every scoring component; nothing here touches the
database, so identical inputs always produce identical breakdowns.

Formulas (answer_order is 1-based):
- base_marks        = max(0, 510 - answer_order * 10)
- deduction_marks   = -5 * (wrong_attempt_order - 1)   (0 while single-attempt)
- bonus_percentage  = max(0, 0.7 - answer_order * 0.1)
- CORRECT           = base_marks * (1 + bonus) if previous_score <= 0 else base_marks
- WRONG             = deduction_marks
- UNATTEMPTED       = 0
- final score floored at -50

All arithmetic uses Decimal and results are quantized to two places so the
stored components round-trip exactly.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from dailyquiz.orm.submission import SubmissionStatus

BASE_MARKS_CEILING = Decimal("510")
BASE_MARKS_STEP = Decimal("10")
BONUS_CEILING = Decimal("0.7")
BONUS_STEP = Decimal("0.1")
WRONG_ATTEMPT_PENALTY = Decimal("-5")
SCORE_FLOOR = Decimal("-50")

# Treated as the previous score when the participant has never submitted,
# so a first answer is never recovery-eligible.
NO_PREVIOUS_SCORE = Decimal("100")

# Single-attempt model: every submission is the first (and only) attempt.
# The field and deduction formula are kept for a multi-attempt mode that
# does not exist; do not read them as support for retries.
SINGLE_ATTEMPT_ORDER = 1

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class ScoreBreakdown:
    status: SubmissionStatus
    answer_order: int
    wrong_attempt_order: int
    base_marks: Decimal
    deduction_marks: Decimal
    bonus_percentage: Decimal
    extra_applied: bool
    final_score: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "answer_order": self.answer_order,
            "wrong_attempt_order": self.wrong_attempt_order,
            "base_marks": str(self.base_marks),
            "deduction_marks": str(self.deduction_marks),
            "bonus_percentage": str(self.bonus_percentage),
            "extra_applied": self.extra_applied,
            "final_score": str(self.final_score),
        }


def _q(value: Decimal) -> Decimal:
    # Adding zero turns -0 (from 0 * -5) into 0
    return (value + ZERO).quantize(TWO_PLACES)


def compute_base_marks(answer_order: int) -> Decimal:
    return max(ZERO, BASE_MARKS_CEILING - answer_order * BASE_MARKS_STEP)


def compute_bonus_percentage(answer_order: int) -> Decimal:
    return max(ZERO, BONUS_CEILING - answer_order * BONUS_STEP)


def compute_deduction_marks(wrong_attempt_order: int) -> Decimal:
    return WRONG_ATTEMPT_PENALTY * (wrong_attempt_order - 1)


def is_recovery_eligible(previous_score: Optional[Decimal]) -> bool:
    """Recovery bonus applies when the previous submission scored <= 0."""
    if previous_score is None:
        previous_score = NO_PREVIOUS_SCORE
    return Decimal(str(previous_score)) <= ZERO


def determine_status(submitted_index: Optional[int], correct_index: int) -> SubmissionStatus:
    if submitted_index is None:
        return SubmissionStatus.UNATTEMPTED
    if submitted_index == correct_index:
        return SubmissionStatus.CORRECT
    return SubmissionStatus.WRONG


def score(
    question,
    submitted_index: Optional[int],
    participant_id: int,
    answer_order: int,
    previous_score: Optional[Decimal],
) -> ScoreBreakdown:
    """
    Score one submission.

    Args:
        question: Anything with a correct_answer_index attribute
        submitted_index: Chosen option, None for a forced/empty submission
        participant_id: Submitting participant (carried for the caller's audit trail)
        answer_order: 1-based global order of this answer for the question
        previous_score: Final score of the participant's latest prior submission,
            None when there is none

    Returns:
        ScoreBreakdown with every component quantized to two places
    """
    if answer_order < 1:
        raise ValueError(f"answer_order must be >= 1, got {answer_order}")

    base_marks = compute_base_marks(answer_order)
    bonus_percentage = compute_bonus_percentage(answer_order)
    wrong_attempt_order = SINGLE_ATTEMPT_ORDER
    deduction_marks = ZERO
    extra_applied = False

    status = determine_status(submitted_index, question.correct_answer_index)

    if status == SubmissionStatus.CORRECT:
        if is_recovery_eligible(previous_score):
            final_score = base_marks * (1 + bonus_percentage)
            extra_applied = True
        else:
            final_score = base_marks
    elif status == SubmissionStatus.WRONG:
        deduction_marks = compute_deduction_marks(wrong_attempt_order)
        final_score = deduction_marks
    else:
        final_score = ZERO

    final_score = max(SCORE_FLOOR, final_score)

    return ScoreBreakdown(
        status=status,
        answer_order=answer_order,
        wrong_attempt_order=wrong_attempt_order,
        base_marks=_q(base_marks),
        deduction_marks=_q(deduction_marks),
        bonus_percentage=_q(bonus_percentage),
        extra_applied=extra_applied,
        final_score=_q(final_score),
    )
