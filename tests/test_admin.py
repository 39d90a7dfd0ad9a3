import re

import pytest
from sqlalchemy import select, update

from backend.app.models.admin_audit_log import AdminAuditLog
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.models.prize_inventory import PrizeInventory
from backend.app.services.eligibility_service import get_feature_toggle
from backend.app.services.prize_service import get_prize, list_prizes, set_inventory_quantity
from backend.app.web import routes

CSRF_RE = re.compile(r'name="csrf_token" value="([^"]+)"')


async def login(http):
    response = await http.post("/admin/login", data={"username": "admin", "password": "secret"})
    assert response.status_code == 302
    page = await http.get("/admin/prizes/wheel")
    assert page.status_code == 200
    return CSRF_RE.search(page.text).group(1)


@pytest.mark.asyncio
async def test_console_requires_login(http):
    response = await http.get("/admin/prizes/wheel")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_bad_credentials(http, admin_user, session):
    response = await http.post("/admin/login", data={"username": "admin", "password": "nope"})
    assert response.status_code == 200
    assert "Invalid credentials" in response.text

    entries = (await session.execute(select(AdminAuditLog))).scalars().all()
    assert [e.action for e in entries] == ["login_failed_web"]


@pytest.mark.asyncio
async def test_create_and_manage_prizes(http, admin_user, session):
    csrf = await login(http)

    response = await http.post(
        "/admin/prizes/jackpot/create",
        data={
            "name": "Racket",
            "category": "physical",
            "emoji": "🏆",
            "weight": "2",
            "quantity": "4",
            "csrf_token": csrf,
        },
    )
    assert response.status_code == 302
    assert response.headers["location"] == "/admin/prizes/jackpot"

    prizes = await list_prizes(session, DrawType.jackpot)
    assert len(prizes) == 1
    prize = prizes[0]
    assert (prize.name, prize.category, prize.weight) == ("Racket", PrizeCategory.physical, 2)
    assert prize.inventory.quantity == 4

    page = await http.get("/admin/prizes/jackpot")
    assert "Racket" in page.text

    response = await http.post(
        f"/admin/prizes/jackpot/{prize.id}/inventory",
        data={"quantity": "7", "csrf_token": csrf},
    )
    assert response.status_code == 302

    response = await http.post(
        f"/admin/prizes/jackpot/{prize.id}/toggle", data={"csrf_token": csrf}
    )
    assert response.status_code == 302

    session.expire_all()
    prizes = await list_prizes(session, DrawType.jackpot)
    assert prizes[0].is_active is False
    assert prizes[0].inventory.quantity == 7

    response = await http.post(
        f"/admin/prizes/jackpot/{prize.id}/delete", data={"csrf_token": csrf}
    )
    assert response.status_code == 302
    session.expire_all()
    assert await list_prizes(session, DrawType.jackpot) == []

    actions = (await session.execute(select(AdminAuditLog.action))).scalars().all()
    assert set(actions) >= {
        "login_success_web",
        "prize_create_web",
        "inventory_update_web",
        "prize_toggle_web",
        "prize_delete_web",
    }


@pytest.mark.asyncio
async def test_invalid_input_redirects_with_error(http, admin_user):
    csrf = await login(http)
    response = await http.post(
        "/admin/prizes/wheel/create",
        data={"name": "   ", "category": "digital", "csrf_token": csrf},
    )
    assert response.status_code == 302
    assert "error=" in response.headers["location"]


@pytest.mark.asyncio
async def test_feature_toggle_flips(http, admin_user, session):
    csrf = await login(http)
    response = await http.post("/admin/prizes/wheel/feature", data={"csrf_token": csrf})
    assert response.status_code == 302
    assert await get_feature_toggle(session, DrawType.wheel) is False


@pytest.mark.asyncio
async def test_csrf_mismatch_is_forbidden(http, admin_user):
    await login(http)
    response = await http.post("/admin/prizes/wheel/feature", data={"csrf_token": "forged"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_logout_clears_session(http, admin_user):
    csrf = await login(http)
    response = await http.post("/admin/logout", data={"csrf_token": csrf})
    assert response.status_code == 302
    response = await http.get("/admin/prizes/wheel")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inventory_cut_racing_a_reservation_redirects_with_error(
    http, admin_user, add_prize, session_factory, monkeypatch
):
    csrf = await login(http)
    prize = await add_prize(DrawType.jackpot, PrizeCategory.physical, name="Racket", quantity=3)

    async def reserve_meanwhile(session, *, prize_id, quantity):
        await get_prize(session, prize_id)
        async with session_factory() as other:
            await other.execute(
                update(PrizeInventory)
                .where(PrizeInventory.prize_id == prize_id)
                .values(reserved_quantity=3)
            )
            await other.commit()
        return await set_inventory_quantity(session, prize_id=prize_id, quantity=quantity)

    monkeypatch.setattr(routes, "set_inventory_quantity", reserve_meanwhile)
    response = await http.post(
        f"/admin/prizes/jackpot/{prize.id}/inventory",
        data={"quantity": "1", "csrf_token": csrf},
    )
    assert response.status_code == 302
    assert "error=" in response.headers["location"]

    async with session_factory() as fresh:
        inventory = (await get_prize(fresh, prize.id)).inventory
    assert (inventory.quantity, inventory.reserved_quantity) == (3, 3)
