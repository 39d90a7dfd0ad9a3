"""Server-authoritative draw.

Claiming the participant's eligibility window, choosing the prize, reserving
one unit of its inventory and writing the spin record happen in a single
transaction. Every contended write is a conditional UPDATE checked through
its row count, so concurrent draws can never push ``reserved_quantity`` past
``quantity`` nor give one participant two draws in a window.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from random import Random

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import as_utc, utcnow
from backend.app.db.tx import transactional
from backend.app.models.eligibility_window import EligibilityWindow
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.models.prize import Prize
from backend.app.models.prize_inventory import PrizeInventory
from backend.app.models.spin_record import SpinRecord
from backend.app.services.eligibility_service import (
    cooldown,
    days_remaining,
    get_feature_toggle,
    get_window,
)
from backend.app.services.errors import (
    DrawError,
    DrawTransactionError,
    IneligibleError,
)
from backend.app.services.prize_service import (
    effective_weight,
    is_inventory_exempt,
    is_selectable,
)
from backend.app.services.selector import pick_weighted

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DrawOutcome:
    spin_id: int
    draw_type: DrawType
    prize_id: str
    prize_name: str
    prize_description: str | None
    prize_category: PrizeCategory
    prize_glyph: str | None
    drawn_at: datetime

    @classmethod
    def from_record(cls, record: SpinRecord) -> "DrawOutcome":
        return cls(
            spin_id=record.id,
            draw_type=record.draw_type,
            prize_id=record.prize_id,
            prize_name=record.prize_name,
            prize_description=record.prize_description,
            prize_category=record.prize_category,
            prize_glyph=record.prize_glyph,
            drawn_at=as_utc(record.drawn_at),
        )

    def as_dict(self) -> dict:
        return {
            "spin_id": self.spin_id,
            "draw_type": self.draw_type.value,
            "prize_id": self.prize_id,
            "prize_name": self.prize_name,
            "prize_description": self.prize_description,
            "prize_category": self.prize_category.value,
            "prize_glyph": self.prize_glyph,
            "drawn_at": self.drawn_at.isoformat(),
        }


def _cooldown_error(last_drawn_at: datetime | None, now: datetime) -> IneligibleError:
    remaining = (
        days_remaining(last_drawn_at, now) if last_drawn_at else settings.draw_cooldown_days
    )
    return IneligibleError(
        "You have already drawn this period",
        reason="cooldown",
        days_remaining=remaining,
    )


async def _claim_window(
    session: AsyncSession, participant_id: str, draw_type: DrawType, now: datetime
) -> None:
    window = await get_window(session, participant_id, draw_type)
    if window is None:
        session.add(
            EligibilityWindow(
                participant_id=participant_id,
                draw_type=draw_type,
                last_drawn_at=now,
                draw_count=1,
            )
        )
        try:
            await session.flush()
        except IntegrityError as exc:
            # another session opened the window first
            raise _cooldown_error(None, now) from exc
        return

    result = await session.execute(
        update(EligibilityWindow)
        .where(
            EligibilityWindow.id == window.id,
            EligibilityWindow.last_drawn_at <= now - cooldown(),
        )
        .values(last_drawn_at=now, draw_count=EligibilityWindow.draw_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise _cooldown_error(window.last_drawn_at, now)


async def _load_candidates(session: AsyncSession, draw_type: DrawType) -> list[Prize]:
    result = await session.execute(
        select(Prize)
        .where(Prize.draw_type == draw_type, Prize.is_active.is_(True))
        .order_by(Prize.created_at.asc(), Prize.id.asc())
        .execution_options(populate_existing=True)
    )
    return [prize for prize in result.scalars().all() if is_selectable(prize)]


async def _reserve_unit(session: AsyncSession, prize: Prize) -> bool:
    if is_inventory_exempt(prize):
        return True
    result = await session.execute(
        update(PrizeInventory)
        .where(
            PrizeInventory.prize_id == prize.id,
            PrizeInventory.reserved_quantity < PrizeInventory.quantity,
        )
        .values(reserved_quantity=PrizeInventory.reserved_quantity + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _draw(
    session: AsyncSession,
    participant_id: str,
    draw_type: DrawType,
    now: datetime,
    rng: Random | None,
) -> DrawOutcome:
    if not await get_feature_toggle(session, draw_type):
        raise IneligibleError("This draw is currently disabled", reason="disabled")

    await _claim_window(session, participant_id, draw_type, now)

    candidates = await _load_candidates(session, draw_type)
    while True:
        prize = pick_weighted(candidates, effective_weight, rng)
        if await _reserve_unit(session, prize):
            break
        # exhausted by a concurrent winner since it was loaded
        candidates = [p for p in candidates if p.id != prize.id]

    record = SpinRecord(
        participant_id=participant_id,
        draw_type=draw_type,
        prize_id=prize.id,
        prize_name=prize.name,
        prize_description=prize.description,
        prize_category=prize.category,
        prize_glyph=prize.glyph,
        period_key=as_utc(now).date().isoformat(),
        drawn_at=now,
    )
    session.add(record)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise _cooldown_error(None, now) from exc
    return DrawOutcome.from_record(record)


async def execute_draw(
    session: AsyncSession,
    *,
    participant_id: str,
    draw_type: DrawType,
    now: datetime | None = None,
    rng: Random | None = None,
) -> DrawOutcome:
    now = as_utc(now) if now else utcnow()
    try:
        async with transactional(session):
            outcome = await _draw(session, participant_id, draw_type, now, rng)
    except DrawError as exc:
        log.info("Draw refused for %s/%s: %s", participant_id, draw_type.value, exc.code)
        raise
    except SQLAlchemyError as exc:
        log.exception("Draw transaction failed for %s/%s", participant_id, draw_type.value)
        raise DrawTransactionError("The draw could not be completed, please try again") from exc

    log.info(
        "Draw %s for %s/%s won prize %s",
        outcome.spin_id,
        participant_id,
        draw_type.value,
        outcome.prize_id,
    )
    return outcome


async def get_last_spin(
    session: AsyncSession, participant_id: str, draw_type: DrawType
) -> SpinRecord | None:
    result = await session.execute(
        select(SpinRecord)
        .where(SpinRecord.participant_id == participant_id, SpinRecord.draw_type == draw_type)
        .order_by(SpinRecord.drawn_at.desc(), SpinRecord.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_recent_spins(
    session: AsyncSession, draw_type: DrawType, *, limit: int = 50
) -> list[SpinRecord]:
    result = await session.execute(
        select(SpinRecord)
        .where(SpinRecord.draw_type == draw_type)
        .order_by(SpinRecord.drawn_at.desc(), SpinRecord.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
