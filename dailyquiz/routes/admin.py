"""
dailyquiz/routes/admin.py
Operator endpoints: login, dashboard, question catalog, results, reset,
export and participant moderation

Everything except login requires an admin token.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.database import get_db
from dailyquiz.orm.admin import Admin
from dailyquiz.rate_limit import limiter, ADMIN_LOGIN_LIMIT
from dailyquiz.schemas.quiz import (
    DATE_PATTERN,
    AdminLoginRequest,
    BanRequest,
    LeaderboardEntryResponse,
    ParticipantResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionUpdate,
    ResetResponse,
    StatsResponse,
    Token,
)
from dailyquiz.security.tokens import create_admin_token, require_admin
from dailyquiz.services import (
    admin_service,
    epoch_service,
    export_service,
    leaderboard_service,
    participant_service,
    question_service,
    submission_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Columns that may be cleared explicitly in a partial update
NULLABLE_UPDATE_FIELDS = {"scheduled_time"}


# ================= AUTH =================

@router.post("/login", response_model=Token)
@limiter.limit(ADMIN_LOGIN_LIMIT)
async def login(
    request: Request,
    payload: AdminLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    admin = await admin_service.authenticate_admin(db, payload.username, payload.password)
    logger.info(f"Operator {admin.username!r} logged in")
    return Token(access_token=create_admin_token(admin))


@router.get("/stats", response_model=StatsResponse)
async def stats(
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.get_stats(db)


# ================= QUESTIONS =================

@router.get("/questions", response_model=List[QuestionResponse])
async def list_questions(
    epoch: Optional[int] = Query(None, ge=0),
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.list_questions(db, epoch=epoch)


@router.post("/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def create_question(
    payload: QuestionCreate,
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.create_question(db, payload.model_dump())


@router.put("/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: int,
    payload: QuestionUpdate,
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    updates = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_UPDATE_FIELDS
    }
    return await question_service.update_question(db, question_id, updates)


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: int,
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await question_service.delete_question(db, question_id)
    return {"success": True, "message": f"Question {question_id} deleted"}


@router.delete("/questions/{question_id}/submissions")
async def delete_question_submissions(
    question_id: int,
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    removed = await submission_service.delete_submissions_for_question(db, question_id)
    return {"success": True, "deleted": removed}


# ================= RESULTS =================

@router.get("/results", response_model=List[LeaderboardEntryResponse])
async def results(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    epoch: Optional[int] = Query(None, ge=0),
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    entries = await leaderboard_service.get_leaderboard(db, quiz_date=date, epoch=epoch)
    return [entry.to_dict() for entry in entries]


@router.post("/reset", response_model=ResetResponse)
async def reset(
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    new_epoch = await epoch_service.perform_reset(db)
    logger.warning(f"Operator {admin.username!r} reset the competition to epoch {new_epoch}")
    return ResetResponse(message="Competition reset", new_epoch=new_epoch)


@router.get("/export")
async def export(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    epoch: Optional[int] = Query(None, ge=0),
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    content, filename = await export_service.export_workbook(db, quiz_date=date, epoch=epoch)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ================= PARTICIPANTS =================

@router.get("/participants", response_model=List[ParticipantResponse])
async def list_participants(
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await participant_service.list_participants(db)


@router.post("/participants/{participant_id}/ban", response_model=ParticipantResponse)
async def ban_participant(
    participant_id: int,
    payload: Optional[BanRequest] = None,
    admin: Admin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    banned = payload.banned if payload is not None else True
    return await participant_service.set_banned(db, participant_id, banned)
