from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.db.session import get_session
from backend.app.models.enums import DrawType
from backend.app.models.prize import Prize
from backend.app.services.draw_service import DrawOutcome, execute_draw, get_last_spin
from backend.app.services.eligibility_service import eligibility_status, get_feature_toggle
from backend.app.services.errors import DrawError
from backend.app.services.prize_service import effective_weight, is_available, list_active_prizes
from backend.app.web.routes import limiter

router = APIRouter(prefix="/api/draws", tags=["draws"])


def get_participant_id(x_participant_id: str | None = Header(None)) -> str:
    participant_id = (x_participant_id or "").strip()
    if not participant_id:
        raise HTTPException(status_code=401, detail="Missing participant")
    if len(participant_id) > 64:
        raise HTTPException(status_code=400, detail="Invalid participant")
    return participant_id


def participant_key(request: Request) -> str:
    return request.headers.get("x-participant-id") or get_remote_address(request)


def prize_payload(prize: Prize) -> dict:
    return {
        "id": prize.id,
        "draw_type": prize.draw_type.value,
        "name": prize.name,
        "description": prize.description,
        "category": prize.category.value,
        "color": prize.color,
        "icon": prize.icon,
        "emoji": prize.emoji,
        "weight": effective_weight(prize),
        "glyph": prize.glyph,
        "available": is_available(prize),
    }


async def draw_error_handler(request: Request, exc: DrawError) -> JSONResponse:
    return JSONResponse(exc.payload(), status_code=exc.http_status)


@router.get("/{draw_type}/toggle")
async def draw_toggle(draw_type: DrawType, session: AsyncSession = Depends(get_session)):
    enabled = await get_feature_toggle(session, draw_type)
    return JSONResponse({"draw_type": draw_type.value, "enabled": enabled})


@router.get("/{draw_type}/eligibility")
async def draw_eligibility(
    draw_type: DrawType,
    participant_id: str = Depends(get_participant_id),
    session: AsyncSession = Depends(get_session),
):
    status = await eligibility_status(session, participant_id, draw_type)
    return JSONResponse(
        {
            "draw_type": draw_type.value,
            "eligible": status.eligible,
            "enabled": status.enabled,
            "days_remaining": status.days_remaining,
            "last_drawn_at": status.last_drawn_at.isoformat() if status.last_drawn_at else None,
        }
    )


@router.get("/{draw_type}/prizes")
async def draw_prizes(draw_type: DrawType, session: AsyncSession = Depends(get_session)):
    prizes = await list_active_prizes(session, draw_type)
    return JSONResponse({"items": [prize_payload(p) for p in prizes]})


@router.post("/{draw_type}")
@limiter.limit(settings.draw_rate_limit, key_func=participant_key)
async def draw_execute(
    request: Request,
    draw_type: DrawType,
    participant_id: str = Depends(get_participant_id),
    session: AsyncSession = Depends(get_session),
):
    outcome = await execute_draw(session, participant_id=participant_id, draw_type=draw_type)
    return JSONResponse(outcome.as_dict(), status_code=201)


@router.get("/{draw_type}/last")
async def draw_last(
    draw_type: DrawType,
    participant_id: str = Depends(get_participant_id),
    session: AsyncSession = Depends(get_session),
):
    record = await get_last_spin(session, participant_id, draw_type)
    if record is None:
        raise HTTPException(status_code=404, detail="No draw recorded")
    return JSONResponse(DrawOutcome.from_record(record).as_dict())
