from .base import Base

from .app_settings import AppSettings
from .participant import Participant
from .question import Question
from .submission import Submission, SubmissionStatus
from .admin import Admin

__all__ = [
    "Base",
    "AppSettings",
    "Participant",
    "Question",
    "Submission",
    "SubmissionStatus",
    "Admin",
]
