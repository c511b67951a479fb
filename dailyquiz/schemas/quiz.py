"""
Quiz API Schemas (Pydantic)
"""
import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
NAME_PATTERN = r"^[a-zA-Z0-9 ]+$"


def _blank_time_to_none(value: Optional[str]) -> Optional[str]:
    """An empty scheduled time means "immediate"."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not re.match(TIME_PATTERN, value):
        raise ValueError("scheduled_time must be HH:MM (24-hour, zero-padded)")
    return value


def _validate_options(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return None
    if len(value) != 4:
        raise ValueError("Exactly four options are required")
    if any(not option.strip() for option in value):
        raise ValueError("Options cannot be empty")
    return value


# ================= QUESTIONS =================

class QuestionCreate(BaseModel):
    """Request schema for creating a question."""
    content: str = Field(..., min_length=1)
    options: List[str]
    correct_answer_index: int = Field(..., ge=0, le=3)
    quiz_date: str = Field(..., pattern=DATE_PATTERN)
    order: int = Field(default=1, ge=1)
    scheduled_time: Optional[str] = None
    is_active: bool = False

    @field_validator("options")
    @classmethod
    def check_options(cls, v):
        return _validate_options(v)

    @field_validator("scheduled_time")
    @classmethod
    def normalize_scheduled_time(cls, v):
        return _blank_time_to_none(v)


class QuestionUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""
    content: Optional[str] = Field(default=None, min_length=1)
    options: Optional[List[str]] = None
    correct_answer_index: Optional[int] = Field(default=None, ge=0, le=3)
    quiz_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    order: Optional[int] = Field(default=None, ge=1)
    scheduled_time: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("options")
    @classmethod
    def check_options(cls, v):
        return _validate_options(v)

    @field_validator("scheduled_time")
    @classmethod
    def normalize_scheduled_time(cls, v):
        return _blank_time_to_none(v)


class QuestionResponse(BaseModel):
    """Operator view of a question, correct answer included."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    options: List[str]
    correct_answer_index: int
    quiz_date: str
    order: int
    scheduled_time: Optional[str] = None
    is_active: bool
    epoch: int


class PublicQuestion(BaseModel):
    """Participant view of a question. Never carries the correct answer."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    options: List[str]
    quiz_date: str
    order: int


# ================= PARTICIPANTS =================

class IdentifyRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100, pattern=NAME_PATTERN)
    device_id: str = Field(..., min_length=10, max_length=255)


class ParticipantSummary(BaseModel):
    id: int
    name: str


class IdentifyResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    participant: ParticipantSummary


class HeartbeatRequest(BaseModel):
    device_id: Optional[str] = None


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_banned: bool
    created_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None


class BanRequest(BaseModel):
    banned: bool = True


# ================= SUBMISSIONS =================

class SubmitAnswerRequest(BaseModel):
    """
    answer_index None together with a reason is a forced submission coming
    from the client-side lockdown monitor.
    """
    question_id: int
    answer_index: Optional[int] = Field(default=None, ge=0, le=3)
    device_id: str = Field(..., min_length=1)
    reason: Optional[str] = Field(default=None, max_length=500)


class SubmitAnswerResponse(BaseModel):
    message: str = "Submitted"
    status: str = "Your answer has been recorded successfully."


# ================= ADMIN =================

class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LeaderboardEntryResponse(BaseModel):
    rank: int
    participant_name: str
    total_score: float
    correct_count: int
    avg_answer_order: float


class StatsResponse(BaseModel):
    current_epoch: int
    last_reset_at: Optional[datetime] = None
    total_participants: int
    total_submissions_today: int
    active_questions: int


class ResetResponse(BaseModel):
    message: str
    new_epoch: int
