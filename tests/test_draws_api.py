import pytest

from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.services.eligibility_service import set_feature_toggle

PLAYER = {"X-Participant-Id": "player-1"}


@pytest.mark.asyncio
async def test_participant_header_is_required(http):
    response = await http.get("/api/draws/wheel/eligibility")
    assert response.status_code == 401

    response = await http.get("/api/draws/wheel/eligibility", headers={"X-Participant-Id": "x" * 65})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_draw_type_is_rejected(http):
    response = await http.get("/api/draws/roulette/toggle")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_prize_list_marks_unavailable_prizes(http, add_prize):
    hour = await add_prize(DrawType.wheel, PrizeCategory.physical, name="Court hour", icon="🎾", quantity=0)
    nothing = await add_prize(DrawType.wheel, PrizeCategory.no_win, name="Nothing", color="#000000")
    await add_prize(DrawType.jackpot, PrizeCategory.digital, name="Voucher")

    response = await http.get("/api/draws/wheel/prizes")
    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["id"] for item in items] == [hour.id, nothing.id]
    assert items[0]["available"] is False
    assert items[0]["icon"] == "🎾"
    assert items[1]["available"] is True
    assert items[1]["category"] == "no_win"
    assert items[1]["glyph"] == "🎲"


@pytest.mark.asyncio
async def test_draw_then_cooldown(http, add_prize):
    prize = await add_prize(DrawType.jackpot, PrizeCategory.digital, name="Free month", emoji="💎", quantity=2)

    response = await http.get("/api/draws/jackpot/eligibility", headers=PLAYER)
    assert response.json()["eligible"] is True

    response = await http.post("/api/draws/jackpot", headers=PLAYER)
    assert response.status_code == 201
    body = response.json()
    assert body["prize_id"] == prize.id
    assert body["prize_name"] == "Free month"
    assert body["prize_glyph"] == "💎"
    assert body["draw_type"] == "jackpot"

    response = await http.post("/api/draws/jackpot", headers=PLAYER)
    assert response.status_code == 409
    assert response.json() == {
        "error": "ineligible",
        "message": "You have already drawn this period",
        "reason": "cooldown",
        "days_remaining": 7,
    }

    response = await http.get("/api/draws/jackpot/eligibility", headers=PLAYER)
    data = response.json()
    assert data["eligible"] is False
    assert data["enabled"] is True
    assert data["days_remaining"] == 7
    assert data["last_drawn_at"] is not None

    response = await http.get("/api/draws/jackpot/last", headers=PLAYER)
    assert response.status_code == 200
    assert response.json()["spin_id"] == body["spin_id"]


@pytest.mark.asyncio
async def test_last_spin_missing(http):
    response = await http.get("/api/draws/wheel/last", headers=PLAYER)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_disabled_draw(http, session, add_prize):
    await add_prize(DrawType.wheel, PrizeCategory.no_win, name="Nothing")
    await set_feature_toggle(session, DrawType.wheel, is_enabled=False)
    await session.commit()

    response = await http.get("/api/draws/wheel/toggle")
    assert response.json() == {"draw_type": "wheel", "enabled": False}

    response = await http.post("/api/draws/wheel", headers=PLAYER)
    assert response.status_code == 409
    assert response.json()["reason"] == "disabled"


@pytest.mark.asyncio
async def test_no_prize_available(http, add_prize):
    await add_prize(DrawType.wheel, PrizeCategory.physical, name="Gone", quantity=0)

    response = await http.post("/api/draws/wheel", headers=PLAYER)
    assert response.status_code == 409
    assert response.json()["error"] == "no_prize_available"

    response = await http.get("/api/draws/wheel/eligibility", headers=PLAYER)
    assert response.json()["eligible"] is True
