"""
Admin Service

Operator accounts and the dashboard counters.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.errors import UnauthorizedError, ErrorCode
from dailyquiz.orm.admin import Admin
from dailyquiz.services import epoch_service, participant_service, question_service, submission_service

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


async def get_admin(db: AsyncSession, username: str) -> Optional[Admin]:
    result = await db.execute(select(Admin).where(Admin.username == username))
    return result.scalar_one_or_none()


async def ensure_default_admin(db: AsyncSession, username: str, password: str) -> Admin:
    """Create the operator account on first start; an existing one is left alone."""
    admin = await get_admin(db, username)
    if admin is not None:
        return admin

    admin = Admin(username=username, password_hash=hash_password(password))
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return await get_admin(db, username)

    logger.info(f"✓ Default admin account {username!r} created")
    return admin


async def authenticate_admin(db: AsyncSession, username: str, password: str) -> Admin:
    admin = await get_admin(db, username)
    if admin is None or not verify_password(password, admin.password_hash):
        logger.warning(f"Failed admin login for {username!r}")
        raise UnauthorizedError("Invalid credentials", ErrorCode.AUTH_INVALID)
    return admin


async def get_stats(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Dashboard counters for the current epoch."""
    now = now or datetime.now()
    today = now.strftime("%Y-%m-%d")
    epoch, last_reset_at = await epoch_service.get_epoch_state(db)

    return {
        "current_epoch": epoch,
        "last_reset_at": last_reset_at,
        "total_participants": await participant_service.count_participants(db),
        "total_submissions_today": await submission_service.count_submissions_for_date(db, epoch, today),
        "active_questions": await question_service.count_active_questions(db, epoch),
    }
