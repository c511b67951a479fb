"""
Tests for the submission ledger

Covers at-most-one-submission, answer order assignment (including under
concurrent submitters), forced submissions and the recovery bonus.
"""
import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from dailyquiz.errors import AlreadySubmittedError, QuestionNotFoundError, QuestionNotOpenError
from dailyquiz.orm.submission import Submission, SubmissionStatus
from dailyquiz.services import submission_service


@pytest.mark.asyncio
async def test_first_submission_gets_order_one(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question()

    submission = await submission_service.submit_answer(db, participant.id, question.id, 1, "device-alice")

    assert submission.answer_order == 1
    assert submission.status == SubmissionStatus.CORRECT
    assert submission.final_score == Decimal("500.00")
    assert submission.device_id == "device-alice"
    assert submission.is_auto_submitted is False


@pytest.mark.asyncio
async def test_duplicate_submission_rejected(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question()
    # The failed submit rolls back, expiring both objects
    participant_id, question_id = participant.id, question.id

    await submission_service.submit_answer(db, participant_id, question_id, 1, "device-alice")

    with pytest.raises(AlreadySubmittedError):
        await submission_service.submit_answer(db, participant_id, question_id, 0, "device-alice")

    result = await db.execute(select(Submission).where(Submission.question_id == question_id))
    assert len(result.unique().scalars().all()) == 1


@pytest.mark.asyncio
async def test_unknown_question_rejected(db, make_participant):
    participant = await make_participant("Alice")

    with pytest.raises(QuestionNotFoundError):
        await submission_service.submit_answer(db, participant.id, 9999, 1, "device-alice")


@pytest.mark.asyncio
async def test_inactive_question_rejected(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question(is_active=False)

    with pytest.raises(QuestionNotFoundError):
        await submission_service.submit_answer(db, participant.id, question.id, 1, participant.device_id)


@pytest.mark.asyncio
async def test_question_before_its_slot_rejected(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question(scheduled_time="23:59")
    participant_id, question_id = participant.id, question.id

    with pytest.raises(QuestionNotOpenError):
        await submission_service.submit_answer(
            db, participant_id, question_id, 1, "device-alice-0000", now=datetime(2024, 5, 1, 12, 0)
        )

    submission = await submission_service.submit_answer(
        db, participant_id, question_id, 1, "device-alice-0000", now=datetime(2024, 5, 1, 23, 59)
    )
    assert submission.answer_order == 1


@pytest.mark.asyncio
async def test_question_for_a_later_day_rejected(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question(quiz_date="2024-05-02")
    question_id = question.id

    with pytest.raises(QuestionNotOpenError) as exc_info:
        await submission_service.submit_answer(
            db, participant.id, question_id, 1, participant.device_id, now=datetime(2024, 5, 1, 23, 0)
        )
    assert exc_info.value.details == {"question_id": question_id}


@pytest.mark.asyncio
async def test_forced_submission_discards_answer(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question()

    submission = await submission_service.submit_answer(
        db, participant.id, question.id, 1, "device-alice", reason="Tab switched"
    )

    assert submission.answer_index is None
    assert submission.status == SubmissionStatus.UNATTEMPTED
    assert submission.final_score == Decimal("0.00")
    assert submission.is_auto_submitted is True
    assert submission.auto_submit_reason == "Tab switched"


@pytest.mark.asyncio
async def test_empty_reason_is_a_normal_submission(db, make_question, make_participant):
    participant = await make_participant("Alice")
    question = await make_question()

    submission = await submission_service.submit_answer(
        db, participant.id, question.id, 1, "device-alice", reason=""
    )

    assert submission.is_auto_submitted is False
    assert submission.auto_submit_reason is None
    assert submission.status == SubmissionStatus.CORRECT


@pytest.mark.asyncio
async def test_orders_follow_arrival(db, make_question, make_participant):
    question = await make_question()
    names = ["Alice", "Bob", "Carol"]
    participants = [await make_participant(name) for name in names]

    orders = []
    for participant in participants:
        submission = await submission_service.submit_answer(db, participant.id, question.id, 1, participant.device_id)
        orders.append(submission.answer_order)

    assert orders == [1, 2, 3]


@pytest.mark.asyncio
async def test_recovery_bonus_after_zero_score(db, make_question, make_participant):
    participant = await make_participant("Alice")
    first = await make_question(scheduled_time="09:00", order=1)
    second = await make_question(scheduled_time="10:00", order=2)

    wrong = await submission_service.submit_answer(db, participant.id, first.id, 0, participant.device_id)
    assert wrong.final_score == Decimal("0.00")

    recovered = await submission_service.submit_answer(db, participant.id, second.id, 1, participant.device_id)
    assert recovered.extra_applied is True
    assert recovered.final_score == Decimal("800.00")


@pytest.mark.asyncio
async def test_concurrent_submitters_get_distinct_orders(db, session_factory, make_question, make_participant):
    question = await make_question()
    participants = [await make_participant(f"Player {i}") for i in range(8)]
    await db.commit()

    async def submit(participant):
        async with session_factory() as session:
            submission = await submission_service.submit_answer(
                session, participant.id, question.id, 1, participant.device_id
            )
            return submission.answer_order

    orders = await asyncio.gather(*(submit(p) for p in participants))

    assert sorted(orders) == list(range(1, len(participants) + 1))


@pytest.mark.asyncio
async def test_concurrent_duplicates_accept_exactly_one(db, session_factory, make_question, make_participant):
    question = await make_question()
    participant = await make_participant("Alice")
    await db.commit()

    async def submit():
        async with session_factory() as session:
            try:
                await submission_service.submit_answer(session, participant.id, question.id, 1, participant.device_id)
                return "ok"
            except AlreadySubmittedError:
                return "duplicate"

    outcomes = await asyncio.gather(*(submit() for _ in range(5)))

    assert outcomes.count("ok") == 1
    assert outcomes.count("duplicate") == 4


@pytest.mark.asyncio
async def test_delete_submissions_for_question(db, make_question, make_participant):
    question = await make_question()
    for name in ("Alice", "Bob"):
        participant = await make_participant(name)
        await submission_service.submit_answer(db, participant.id, question.id, 1, participant.device_id)

    removed = await submission_service.delete_submissions_for_question(db, question.id)

    assert removed == 2
    assert await submission_service.get_next_answer_order(db, question.id) == 1


@pytest.mark.asyncio
async def test_delete_submissions_for_unknown_question(db):
    with pytest.raises(QuestionNotFoundError):
        await submission_service.delete_submissions_for_question(db, 404)


@pytest.mark.asyncio
async def test_list_submissions_by_epoch_and_date(db, make_question, make_participant):
    today = await make_question()
    yesterday = await make_question(quiz_date="2024-04-30")
    alice = await make_participant("Alice")
    await submission_service.submit_answer(db, alice.id, today.id, 1, alice.device_id)
    await submission_service.submit_answer(db, alice.id, yesterday.id, 1, alice.device_id)

    assert len(await submission_service.list_submissions(db)) == 2
    only_yesterday = await submission_service.list_submissions(db, quiz_date="2024-04-30")
    assert [s.question_id for s in only_yesterday] == [yesterday.id]
    assert await submission_service.list_submissions(db, epoch=1) == []
