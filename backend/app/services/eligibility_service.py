import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import as_utc, utcnow
from backend.app.models.draw_settings import DrawSettings
from backend.app.models.eligibility_window import EligibilityWindow
from backend.app.models.enums import DrawType

ONE_DAY = timedelta(days=1)


def cooldown() -> timedelta:
    return timedelta(days=settings.draw_cooldown_days)


@dataclass(frozen=True, slots=True)
class EligibilityStatus:
    eligible: bool
    enabled: bool
    days_remaining: int
    last_drawn_at: datetime | None


async def get_draw_settings(session: AsyncSession, draw_type: DrawType) -> DrawSettings:
    row = await session.get(DrawSettings, draw_type)
    if row:
        return row
    row = DrawSettings(draw_type=draw_type, is_enabled=True, updated_at=utcnow())
    session.add(row)
    await session.flush()
    return row


async def get_feature_toggle(session: AsyncSession, draw_type: DrawType) -> bool:
    row = await session.get(DrawSettings, draw_type)
    # a draw type nobody has configured yet is on
    return True if row is None else row.is_enabled


async def set_feature_toggle(
    session: AsyncSession, draw_type: DrawType, *, is_enabled: bool
) -> DrawSettings:
    row = await get_draw_settings(session, draw_type)
    row.is_enabled = is_enabled
    row.updated_at = utcnow()
    return row


async def get_window(
    session: AsyncSession, participant_id: str, draw_type: DrawType
) -> EligibilityWindow | None:
    result = await session.execute(
        select(EligibilityWindow).where(
            EligibilityWindow.participant_id == participant_id,
            EligibilityWindow.draw_type == draw_type,
        )
    )
    return result.scalar_one_or_none()


def days_remaining(last_drawn_at: datetime, now: datetime, period: timedelta | None = None) -> int:
    period = period or cooldown()
    left = as_utc(last_drawn_at) + period - as_utc(now)
    return max(math.ceil(left / ONE_DAY), 0)


def window_is_open(last_drawn_at: datetime | None, now: datetime) -> bool:
    if last_drawn_at is None:
        return True
    return as_utc(last_drawn_at) + cooldown() <= as_utc(now)


async def eligibility_status(
    session: AsyncSession,
    participant_id: str,
    draw_type: DrawType,
    now: datetime | None = None,
) -> EligibilityStatus:
    now = now or utcnow()
    enabled = await get_feature_toggle(session, draw_type)
    window = await get_window(session, participant_id, draw_type)
    last = window.last_drawn_at if window else None
    open_ = window_is_open(last, now)
    return EligibilityStatus(
        eligible=enabled and open_,
        enabled=enabled,
        days_remaining=0 if open_ else days_remaining(last, now),
        last_drawn_at=as_utc(last) if last else None,
    )


async def can_draw(
    session: AsyncSession,
    participant_id: str,
    draw_type: DrawType,
    now: datetime | None = None,
) -> bool:
    status = await eligibility_status(session, participant_id, draw_type, now)
    return status.eligible
