"""
Shared fixtures: one SQLite file database per test.

A file (not :memory:) is used so that several sessions can run against the
same database concurrently, each with its own connection.
"""
import os

# Must be set before dailyquiz.config.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMITS_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from dailyquiz.database import build_engine, build_session_factory, create_schema
from dailyquiz.orm.participant import Participant
from dailyquiz.services import question_service

TODAY = "2024-05-01"


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'quiz.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_question(db: AsyncSession):
    """Factory creating an active question for TODAY in the current epoch."""

    async def _make(**overrides):
        data = {
            "content": "Which planet is known as the red planet?",
            "options": ["Venus", "Mars", "Jupiter", "Saturn"],
            "correct_answer_index": 1,
            "quiz_date": TODAY,
            "order": 1,
            "scheduled_time": None,
            "is_active": True,
        }
        data.update(overrides)
        question = await question_service.create_question(db, data)
        # create_question refreshes after commit; end that read transaction
        await db.commit()
        return question

    return _make


@pytest.fixture
def make_participant(db: AsyncSession):
    async def _make(name: str, device_id: str = None, banned: bool = False) -> Participant:
        participant = Participant(
            name=name,
            device_id=device_id or f"device-{name.lower().replace(' ', '-')}-0000",
            is_banned=banned,
        )
        db.add(participant)
        await db.commit()
        return participant

    return _make
