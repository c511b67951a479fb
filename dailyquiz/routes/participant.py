"""
dailyquiz/routes/participant.py
Participant-facing endpoints: identify, daily question, submit, heartbeat
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.database import get_db
from dailyquiz.orm.participant import Participant
from dailyquiz.rate_limit import limiter, IDENTIFY_LIMIT, SUBMIT_LIMIT
from dailyquiz.schemas.quiz import (
    HeartbeatRequest,
    IdentifyRequest,
    IdentifyResponse,
    ParticipantSummary,
    PublicQuestion,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from dailyquiz.security.tokens import create_participant_token, get_current_participant
from dailyquiz.services import participant_service, submission_service, visibility_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Participant"])


@router.post("/identify", response_model=IdentifyResponse)
@limiter.limit(IDENTIFY_LIMIT)
async def identify(
    request: Request,
    payload: IdentifyRequest,
    db: AsyncSession = Depends(get_db),
):
    """Bind a name to a device (first call) or log the pair back in."""
    participant = await participant_service.identify(db, payload.name, payload.device_id)
    return IdentifyResponse(
        token=create_participant_token(participant),
        participant=ParticipantSummary(id=participant.id, name=participant.name),
    )


@router.get("/question/daily", response_model=Optional[PublicQuestion])
async def get_daily_question(
    participant: Participant = Depends(get_current_participant),
    db: AsyncSession = Depends(get_db),
):
    # null when nothing is open or the newest open question is answered
    return await visibility_service.resolve_public_question(db, participant.id)


@router.post("/submit", response_model=SubmitAnswerResponse)
@limiter.limit(SUBMIT_LIMIT)
async def submit(
    request: Request,
    payload: SubmitAnswerRequest,
    participant: Participant = Depends(get_current_participant),
    db: AsyncSession = Depends(get_db),
):
    participant_id = participant.id
    participant_service.check_device(participant, payload.device_id)
    await submission_service.submit_answer(
        db,
        participant_id=participant_id,
        question_id=payload.question_id,
        answer_index=payload.answer_index,
        device_id=payload.device_id,
        reason=payload.reason,
    )
    return SubmitAnswerResponse()


@router.post("/heartbeat")
async def heartbeat(
    payload: Optional[HeartbeatRequest] = None,
    participant: Participant = Depends(get_current_participant),
    db: AsyncSession = Depends(get_db),
):
    participant_id = participant.id
    if payload is not None:
        participant_service.check_device(participant, payload.device_id)
    await participant_service.record_heartbeat(db, participant_id)
    return {"status": "ok"}
