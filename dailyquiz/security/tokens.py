"""
dailyquiz/security/tokens.py
Bearer tokens for participants and operators

Two roles exist: "participant" (token also carries the bound device id)
and "admin". Tokens only identify the caller; ban checks happen per request
against the database.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, ExpiredSignatureError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.config.settings import settings
from dailyquiz.database import get_db
from dailyquiz.errors import ErrorCode, UnauthorizedError, ForbiddenError
from dailyquiz.orm.admin import Admin
from dailyquiz.orm.participant import Participant
from dailyquiz.services import admin_service, participant_service

logger = logging.getLogger(__name__)

ROLE_PARTICIPANT = "participant"
ROLE_ADMIN = "admin"
VALID_ROLES = {ROLE_PARTICIPANT, ROLE_ADMIN}

bearer_scheme = HTTPBearer(auto_error=False)


# ================= TOKEN UTILS =================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed token; data must carry sub and role."""
    if data.get("role") not in VALID_ROLES:
        raise ValueError(f"Invalid role: {data.get('role')}")

    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_participant_token(participant: Participant) -> str:
    return create_access_token({
        "sub": str(participant.id),
        "role": ROLE_PARTICIPANT,
        "device_id": participant.device_id,
    })


def create_admin_token(admin: Admin) -> str:
    return create_access_token({"sub": admin.username, "role": ROLE_ADMIN})


def decode_token(token: str) -> dict:
    """Decode and validate a token, raising UnauthorizedError on any problem."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedError("Token has expired", ErrorCode.AUTH_EXPIRED)
    except JWTError:
        raise UnauthorizedError("Invalid token", ErrorCode.AUTH_INVALID)

    if payload.get("role") not in VALID_ROLES or not payload.get("sub"):
        raise UnauthorizedError("Invalid token payload", ErrorCode.AUTH_INVALID)
    return payload


def _require_payload(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    return decode_token(credentials.credentials)


# ================= AUTH DEPENDENCIES =================

def get_participant_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    """Participant id from the token, without touching the database."""
    payload = _require_payload(credentials)
    if payload["role"] != ROLE_PARTICIPANT:
        raise ForbiddenError("Participant token required")
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload", ErrorCode.AUTH_INVALID)


async def get_current_participant(
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
) -> Participant:
    """Participant behind the token; banned participants are rejected."""
    return await participant_service.require_active_participant(db, participant_id)


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Admin:
    payload = _require_payload(credentials)
    if payload["role"] != ROLE_ADMIN:
        logger.warning(f"Access denied: role {payload['role']} on admin endpoint")
        raise ForbiddenError("Only operators can perform this action")

    admin = await admin_service.get_admin(db, payload["sub"])
    if admin is None:
        raise UnauthorizedError("Operator account not found", ErrorCode.AUTH_INVALID)
    return admin
