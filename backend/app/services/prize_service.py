from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.models.prize import Prize
from backend.app.models.prize_inventory import PrizeInventory
from backend.app.services.errors import InventoryError, PrizeNotFound


def effective_weight(prize: Prize) -> int:
    # The wheel is an equal-opportunity set: stored weights only drive the jackpot.
    if prize.draw_type == DrawType.wheel:
        return 1
    return prize.weight or 0


def is_inventory_exempt(prize: Prize) -> bool:
    return prize.category == PrizeCategory.no_win or prize.inventory is None


def is_available(prize: Prize) -> bool:
    if is_inventory_exempt(prize):
        return True
    return prize.inventory.available > 0


def is_selectable(prize: Prize) -> bool:
    return prize.is_active and effective_weight(prize) > 0 and is_available(prize)


async def list_prizes(
    session: AsyncSession, draw_type: DrawType, *, active_only: bool = False
) -> list[Prize]:
    query = (
        select(Prize)
        .where(Prize.draw_type == draw_type)
        .order_by(Prize.created_at.asc(), Prize.id.asc())
    )
    if active_only:
        query = query.where(Prize.is_active.is_(True))
    result = await session.execute(query)
    return list(result.scalars().all())


async def list_active_prizes(session: AsyncSession, draw_type: DrawType) -> list[Prize]:
    return await list_prizes(session, draw_type, active_only=True)


async def get_prize(session: AsyncSession, prize_id: str) -> Prize:
    prize = await session.get(Prize, prize_id)
    if not prize:
        raise PrizeNotFound("Prize not found")
    return prize


def _clean_weight(weight: int) -> int:
    return max(1, int(weight))


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Prize name is required")
    return cleaned


async def create_prize(
    session: AsyncSession,
    *,
    draw_type: DrawType,
    name: str,
    category: PrizeCategory,
    description: str | None = None,
    color: str | None = None,
    icon: str | None = None,
    emoji: str | None = None,
    weight: int = 1,
    quantity: int | None = None,
) -> Prize:
    prize = Prize(
        draw_type=draw_type,
        name=_clean_name(name),
        description=(description or "").strip() or None,
        category=category,
        color=color or None,
        icon=icon or None,
        emoji=emoji or None,
        weight=_clean_weight(weight),
        is_active=True,
        created_at=utcnow(),
    )
    if quantity is not None and category != PrizeCategory.no_win:
        prize.inventory = PrizeInventory(quantity=max(quantity, 0), reserved_quantity=0)
    else:
        prize.inventory = None
    session.add(prize)
    await session.flush()
    return prize


async def update_prize(
    session: AsyncSession,
    *,
    prize_id: str,
    name: str,
    category: PrizeCategory,
    description: str | None = None,
    color: str | None = None,
    icon: str | None = None,
    emoji: str | None = None,
    weight: int = 1,
) -> Prize:
    prize = await get_prize(session, prize_id)
    prize.name = _clean_name(name)
    prize.description = (description or "").strip() or None
    prize.category = category
    prize.color = color or None
    prize.icon = icon or None
    prize.emoji = emoji or None
    prize.weight = _clean_weight(weight)
    prize.updated_at = utcnow()
    return prize


async def set_prize_active(session: AsyncSession, *, prize_id: str, is_active: bool) -> Prize:
    prize = await get_prize(session, prize_id)
    prize.is_active = is_active
    prize.updated_at = utcnow()
    return prize


async def delete_prize(session: AsyncSession, *, prize_id: str) -> Prize:
    prize = await get_prize(session, prize_id)
    await session.delete(prize)
    return prize


async def set_inventory_quantity(
    session: AsyncSession, *, prize_id: str, quantity: int
) -> PrizeInventory:
    prize = await get_prize(session, prize_id)
    if prize.category == PrizeCategory.no_win:
        raise InventoryError("No-win prizes do not carry inventory")
    if quantity < 0:
        raise InventoryError("Quantity cannot be negative")

    inventory = prize.inventory
    if inventory is None:
        inventory = PrizeInventory(quantity=quantity, reserved_quantity=0)
        prize.inventory = inventory
    else:
        if quantity < inventory.reserved_quantity:
            raise InventoryError(
                f"Quantity cannot drop below the {inventory.reserved_quantity} already reserved"
            )
        inventory.quantity = quantity
    prize.updated_at = utcnow()
    await session.flush()
    return inventory


@dataclass(frozen=True, slots=True)
class PrizeStats:
    active: int
    real_prizes: int
    no_win_prizes: int
    total_weight: int
    total_quantity: int
    total_reserved: int
    probabilities: dict[str, float] = field(default_factory=dict)


def prize_stats(prizes: list[Prize]) -> PrizeStats:
    active = [p for p in prizes if p.is_active]
    selectable = [p for p in prizes if is_selectable(p)]
    selectable_weight = sum(effective_weight(p) for p in selectable)
    probabilities = {
        p.id: (effective_weight(p) / selectable_weight if selectable_weight else 0.0)
        for p in selectable
    }
    return PrizeStats(
        active=len(active),
        real_prizes=len([p for p in active if p.category != PrizeCategory.no_win]),
        no_win_prizes=len([p for p in active if p.category == PrizeCategory.no_win]),
        total_weight=sum(effective_weight(p) for p in active),
        total_quantity=sum(p.inventory.quantity for p in prizes if p.inventory),
        total_reserved=sum(p.inventory.reserved_quantity for p in prizes if p.inventory),
        probabilities=probabilities,
    )
