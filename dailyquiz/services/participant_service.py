"""
Participant Service

Identification binds a name to a device exactly once:
- known name  -> the device must be the one it was registered with
- new name    -> the device must not already carry another name
Any mismatch is rejected without changing state. Banned participants are
refused on every access.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dailyquiz.errors import BannedError, DeviceMismatchError, NameDeviceConflictError, ParticipantNotFoundError
from dailyquiz.orm.participant import Participant

logger = logging.getLogger(__name__)


async def get_participant(db: AsyncSession, participant_id: int) -> Optional[Participant]:
    result = await db.execute(select(Participant).where(Participant.id == participant_id))
    return result.scalar_one_or_none()


async def get_participant_by_name(db: AsyncSession, name: str) -> Optional[Participant]:
    result = await db.execute(select(Participant).where(Participant.name == name))
    return result.scalar_one_or_none()


async def get_participant_by_device(db: AsyncSession, device_id: str) -> Optional[Participant]:
    result = await db.execute(select(Participant).where(Participant.device_id == device_id))
    return result.scalar_one_or_none()


async def _resolve_binding(db: AsyncSession, name: str, device_id: str) -> Optional[Participant]:
    """Existing participant for (name, device), None if both are unbound."""
    participant = await get_participant_by_name(db, name)
    if participant is not None:
        if participant.device_id != device_id:
            raise NameDeviceConflictError("This name is already registered to another device.")
        return participant

    existing_device = await get_participant_by_device(db, device_id)
    if existing_device is not None:
        raise NameDeviceConflictError(
            f"This device is already registered as {existing_device.name}."
        )
    return None


async def identify(db: AsyncSession, name: str, device_id: str) -> Participant:
    """
    Return the participant bound to (name, device_id), creating it on first use.

    Raises:
        NameDeviceConflictError: name or device already bound elsewhere
        BannedError: participant is banned
    """
    name = name.strip()

    try:
        try:
            participant = await _resolve_binding(db, name, device_id)
            if participant is None:
                participant = Participant(name=name, device_id=device_id)
                db.add(participant)
                await db.commit()
                await db.refresh(participant)
                logger.info(f"Participant {participant.id} registered as {name!r}")
        except IntegrityError:
            # Same name or device registered concurrently; re-check the binding
            await db.rollback()
            participant = await _resolve_binding(db, name, device_id)
            if participant is None:
                raise NameDeviceConflictError("This name or device was just registered by someone else.")
        await db.commit()
    except NameDeviceConflictError:
        await db.rollback()
        logger.warning(f"Identification rejected for name={name!r}: binding conflict")
        raise

    if participant.is_banned:
        logger.warning(f"Banned participant {participant.id} attempted to identify")
        raise BannedError(participant.id)

    return participant


async def require_active_participant(db: AsyncSession, participant_id: int) -> Participant:
    """Participant that may still see questions and submit."""
    participant = await get_participant(db, participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)
    if participant.is_banned:
        raise BannedError(participant_id)
    return participant


def check_device(participant: Participant, device_id: Optional[str]) -> None:
    """Refuse a request sent from a device other than the bound one."""
    if device_id is not None and device_id != participant.device_id:
        logger.warning(f"Participant {participant.id} used unregistered device {device_id!r}")
        raise DeviceMismatchError()


async def record_heartbeat(db: AsyncSession, participant_id: int, now: Optional[datetime] = None) -> None:
    """Best-effort last-active update. Last write wins."""
    await db.execute(
        update(Participant)
        .where(Participant.id == participant_id)
        .values(last_active_at=now or datetime.now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def set_banned(db: AsyncSession, participant_id: int, banned: bool) -> Participant:
    participant = await get_participant(db, participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)

    participant.is_banned = banned
    await db.commit()
    await db.refresh(participant)
    logger.info(f"Participant {participant_id} {'banned' if banned else 'unbanned'}")
    return participant


async def list_participants(db: AsyncSession) -> List[Participant]:
    result = await db.execute(select(Participant).order_by(Participant.name))
    return list(result.scalars().all())


async def count_participants(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Participant.id)))
    return result.scalar_one()
