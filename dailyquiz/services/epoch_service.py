"""
Epoch Service

Holds the competition epoch (reset id). Every question and submission is
tagged with the epoch current at its creation; reads that mean "current"
take the epoch explicitly from get_current_epoch().

A reset only advances the counter. It never deletes or re-tags rows, so
earlier epochs remain queryable by passing their number explicitly.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.orm.app_settings import AppSettings, SETTINGS_ROW_ID

logger = logging.getLogger(__name__)


async def _get_or_create_settings(db: AsyncSession) -> AppSettings:
    # populate_existing: the counter is bumped with a bulk UPDATE
    result = await db.execute(
        select(AppSettings)
        .where(AppSettings.id == SETTINGS_ROW_ID)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is not None:
        return row

    row = AppSettings(id=SETTINGS_ROW_ID, current_epoch=0)
    try:
        async with db.begin_nested():
            db.add(row)
    except IntegrityError:
        # Created concurrently by another request
        result = await db.execute(
            select(AppSettings)
            .where(AppSettings.id == SETTINGS_ROW_ID)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one()
    return row


async def get_current_epoch(db: AsyncSession) -> int:
    """Current epoch, creating the settings row (epoch 0) on first use."""
    row = await _get_or_create_settings(db)
    return row.current_epoch


async def get_epoch_state(db: AsyncSession) -> Tuple[int, Optional[datetime]]:
    """(current_epoch, last_reset_at)"""
    row = await _get_or_create_settings(db)
    return row.current_epoch, row.last_reset_at


async def perform_reset(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Advance the epoch by one and return the new value.

    The increment is a single UPDATE ... SET current_epoch = current_epoch + 1
    so concurrent resets can never lose an update.
    """
    now = now or datetime.now()
    await _get_or_create_settings(db)

    await db.execute(
        update(AppSettings)
        .where(AppSettings.id == SETTINGS_ROW_ID)
        .values(
            current_epoch=AppSettings.current_epoch + 1,
            last_reset_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        select(AppSettings.current_epoch).where(AppSettings.id == SETTINGS_ROW_ID)
    )
    new_epoch = result.scalar_one()
    await db.commit()

    logger.info(f"Competition reset: epoch advanced to {new_epoch}")
    return new_epoch


advance_epoch = perform_reset
