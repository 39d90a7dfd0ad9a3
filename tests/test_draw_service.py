import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from backend.app.models.eligibility_window import EligibilityWindow
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.models.prize_inventory import PrizeInventory
from backend.app.models.spin_record import SpinRecord
from backend.app.services.draw_service import execute_draw, get_last_spin, list_recent_spins
from backend.app.services.eligibility_service import can_draw, set_feature_toggle
from backend.app.services.errors import (
    DrawTransactionError,
    IneligibleError,
    NoPrizeAvailableError,
)
from backend.app.services.prize_service import delete_prize, update_prize

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


async def count_spins(session, prize_id=None):
    query = select(func.count(SpinRecord.id))
    if prize_id:
        query = query.where(SpinRecord.prize_id == prize_id)
    return (await session.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_exhausted_prizes_are_never_drawn(session_factory, add_prize, stub_rng):
    nothing = await add_prize(DrawType.wheel, PrizeCategory.no_win, name="Nothing")
    hour = await add_prize(DrawType.wheel, PrizeCategory.physical, name="Court hour", quantity=1)
    await add_prize(DrawType.wheel, PrizeCategory.digital, name="Voucher", quantity=0)

    async with session_factory() as session:
        # candidates are [Nothing, Court hour]; roll 1 lands on the hour
        first = await execute_draw(
            session, participant_id="p1", draw_type=DrawType.wheel, now=NOW, rng=stub_rng(1)
        )
    assert first.prize_id == hour.id
    assert first.prize_category == PrizeCategory.physical

    async with session_factory() as session:
        rng = stub_rng(1)
        second = await execute_draw(
            session, participant_id="p2", draw_type=DrawType.wheel, now=NOW, rng=rng
        )
        assert second.prize_id == nothing.id
        # only the no-win prize is left in the pool
        assert rng.totals == [1]

        inventory = await session.scalar(
            select(PrizeInventory).where(PrizeInventory.prize_id == hour.id)
        )
        assert (inventory.quantity, inventory.reserved_quantity) == (1, 1)


@pytest.mark.asyncio
async def test_second_draw_in_window_is_rejected(session_factory, add_prize):
    await add_prize(DrawType.wheel, PrizeCategory.no_win, name="Nothing")

    async with session_factory() as session:
        await execute_draw(session, participant_id="p1", draw_type=DrawType.wheel, now=NOW)

    async with session_factory() as session:
        with pytest.raises(IneligibleError) as exc_info:
            await execute_draw(
                session, participant_id="p1", draw_type=DrawType.wheel, now=NOW + timedelta(days=3)
            )
        assert exc_info.value.reason == "cooldown"
        assert exc_info.value.days_remaining == 4
        assert await count_spins(session) == 1

    async with session_factory() as session:
        outcome = await execute_draw(
            session, participant_id="p1", draw_type=DrawType.wheel, now=NOW + timedelta(days=7)
        )
        assert outcome.drawn_at == NOW + timedelta(days=7)

    async with session_factory() as session:
        window = await session.scalar(select(EligibilityWindow))
        assert window.draw_count == 2
        assert await count_spins(session) == 2


@pytest.mark.asyncio
async def test_disabled_draw_is_refused_without_claiming(session, add_prize):
    await add_prize(DrawType.jackpot, PrizeCategory.no_win, name="Nothing")
    await set_feature_toggle(session, DrawType.jackpot, is_enabled=False)
    await session.commit()

    with pytest.raises(IneligibleError) as exc_info:
        await execute_draw(session, participant_id="p1", draw_type=DrawType.jackpot, now=NOW)
    assert exc_info.value.reason == "disabled"
    assert await session.scalar(select(func.count(EligibilityWindow.id))) == 0


@pytest.mark.asyncio
async def test_empty_pool_rolls_back_the_claim(session, add_prize):
    await add_prize(DrawType.wheel, PrizeCategory.physical, name="Gone", quantity=0)

    with pytest.raises(NoPrizeAvailableError):
        await execute_draw(session, participant_id="p1", draw_type=DrawType.wheel, now=NOW)
    assert await can_draw(session, "p1", DrawType.wheel, NOW)
    assert await count_spins(session) == 0


@pytest.mark.asyncio
async def test_spin_record_keeps_prize_snapshot(session_factory, add_prize):
    prize = await add_prize(
        DrawType.jackpot, PrizeCategory.digital, name="Free month", description="30 days", emoji="💎"
    )
    async with session_factory() as session:
        outcome = await execute_draw(session, participant_id="p1", draw_type=DrawType.jackpot, now=NOW)
    assert outcome.prize_glyph == "💎"

    async with session_factory() as session:
        await update_prize(
            session, prize_id=prize.id, name="Renamed", category=PrizeCategory.physical
        )
        await session.commit()
        await delete_prize(session, prize_id=prize.id)
        await session.commit()

    async with session_factory() as session:
        record = await get_last_spin(session, "p1", DrawType.jackpot)
    assert record.id == outcome.spin_id
    assert record.prize_id is None
    assert record.prize_name == "Free month"
    assert record.prize_description == "30 days"
    assert record.prize_category == PrizeCategory.digital
    assert record.period_key == "2026-03-10"


@pytest.mark.asyncio
async def test_weights_reach_the_selector(session_factory, add_prize, stub_rng):
    await add_prize(DrawType.jackpot, PrizeCategory.no_win, name="Lemon", weight=3)
    await add_prize(DrawType.jackpot, PrizeCategory.physical, name="Racket", weight=1)
    await add_prize(DrawType.wheel, PrizeCategory.no_win, name="Nothing", weight=5)
    await add_prize(DrawType.wheel, PrizeCategory.physical, name="Balls", weight=9)

    jackpot_rng = stub_rng(0)
    wheel_rng = stub_rng(0)
    async with session_factory() as session:
        await execute_draw(
            session, participant_id="p1", draw_type=DrawType.jackpot, now=NOW, rng=jackpot_rng
        )
        await execute_draw(
            session, participant_id="p1", draw_type=DrawType.wheel, now=NOW, rng=wheel_rng
        )
    assert jackpot_rng.totals == [4]
    assert wheel_rng.totals == [2]


@pytest.mark.asyncio
async def test_concurrent_draws_never_oversell(session_factory, add_prize):
    prize = await add_prize(DrawType.wheel, PrizeCategory.physical, name="Racket", quantity=3)

    async def draw(participant_id):
        async with session_factory() as session:
            return await execute_draw(
                session, participant_id=participant_id, draw_type=DrawType.wheel, now=NOW
            )

    results = await asyncio.gather(
        *(draw(f"player-{n}") for n in range(8)), return_exceptions=True
    )
    wins = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, BaseException)]
    assert all(isinstance(f, (NoPrizeAvailableError, DrawTransactionError)) for f in failures)
    assert len(wins) <= 3

    async with session_factory() as session:
        inventory = await session.scalar(
            select(PrizeInventory).where(PrizeInventory.prize_id == prize.id)
        )
        assert inventory.reserved_quantity <= inventory.quantity
        assert inventory.reserved_quantity == len(wins)
        assert await count_spins(session, prize.id) == len(wins)


@pytest.mark.asyncio
async def test_concurrent_draws_by_one_participant_win_once(session_factory, add_prize):
    await add_prize(DrawType.jackpot, PrizeCategory.no_win, name="Lemon")

    async def draw():
        async with session_factory() as session:
            return await execute_draw(
                session, participant_id="same", draw_type=DrawType.jackpot, now=NOW
            )

    results = await asyncio.gather(*(draw() for _ in range(4)), return_exceptions=True)
    wins = [r for r in results if not isinstance(r, BaseException)]
    assert len(wins) == 1
    assert all(
        isinstance(r, (IneligibleError, DrawTransactionError))
        for r in results
        if isinstance(r, BaseException)
    )
    async with session_factory() as session:
        assert await count_spins(session) == 1


@pytest.mark.asyncio
async def test_recent_spins_newest_first(session_factory, add_prize):
    await add_prize(DrawType.wheel, PrizeCategory.no_win, name="Nothing")
    for n in range(3):
        async with session_factory() as session:
            await execute_draw(
                session,
                participant_id=f"p{n}",
                draw_type=DrawType.wheel,
                now=NOW + timedelta(minutes=n),
            )
    async with session_factory() as session:
        spins = await list_recent_spins(session, DrawType.wheel, limit=2)
    assert [s.participant_id for s in spins] == ["p2", "p1"]
