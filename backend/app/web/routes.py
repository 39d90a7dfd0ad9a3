from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.db.session import get_session
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.services.audit_service import log_action, recent_actions
from backend.app.services.draw_service import list_recent_spins
from backend.app.services.eligibility_service import get_feature_toggle, set_feature_toggle
from backend.app.services.errors import InventoryError, PrizeNotFound
from backend.app.services.prize_service import (
    create_prize,
    delete_prize,
    effective_weight,
    get_prize,
    is_available,
    list_prizes,
    prize_stats,
    set_inventory_quantity,
    set_prize_active,
    update_prize,
)
from backend.app.web.auth import (
    authenticate_admin,
    clear_session,
    create_session_cookie,
    get_csrf_token,
    login_required,
    set_session_cookie,
    verify_csrf,
)

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/admin", tags=["admin"])

env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html"]),
)

CATEGORY_LABELS = {
    PrizeCategory.physical: "Physical",
    PrizeCategory.digital: "Digital / discount",
    PrizeCategory.no_win: "No win",
}


def render(template_name: str, **context) -> HTMLResponse:
    template = env.get_template(template_name)
    return HTMLResponse(template.render(**context))


def parse_draw_type(value: str) -> DrawType:
    try:
        return DrawType(value)
    except ValueError as exc:
        raise HTTPException(status_code=404) from exc


def parse_category(value: str) -> PrizeCategory:
    try:
        return PrizeCategory(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Unknown prize category") from exc


def parse_optional_int(value: str) -> int | None:
    value = value.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Expected a whole number") from exc


def prizes_url(draw_type: DrawType, error: str | None = None) -> str:
    url = f"/admin/prizes/{draw_type.value}"
    if error:
        url += f"?error={quote(error)}"
    return url


@router.get("/login")
async def login_page(request: Request):
    return render("login.html", request=request)


@router.post("/login")
@limiter.limit(settings.login_rate_limit)
async def login_action(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    session: AsyncSession = Depends(get_session),
):
    username_clean = username.strip()
    ip = get_remote_address(request)
    admin = await authenticate_admin(session, username=username_clean, password=password)
    if not admin:
        await log_action(
            session,
            actor=username_clean or "anonymous",
            action="login_failed_web",
            payload={"ip": ip},
        )
        await session.commit()
        return render("login.html", request=request, error="Invalid credentials")

    await log_action(
        session,
        actor=admin.username,
        action="login_success_web",
        payload={"ip": ip, "admin_id": admin.id},
    )
    await session.commit()

    redirect = RedirectResponse(url="/admin/", status_code=302)
    set_session_cookie(redirect, create_session_cookie(admin.username))
    return redirect


@router.post("/logout")
async def logout_action(
    request: Request,
    csrf_token: str = Form(""),
    user: str = Depends(login_required),
):
    if csrf_token:
        verify_csrf(request, csrf_token)
    redirect = RedirectResponse(url="/admin/login", status_code=302)
    clear_session(redirect)
    return redirect


@router.get("/")
async def dashboard(user: str = Depends(login_required)):
    return RedirectResponse(url=prizes_url(DrawType.wheel), status_code=302)


@router.get("/prizes/{draw_type}")
async def prizes_view(
    request: Request,
    draw_type: str,
    error: str | None = None,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    kind = parse_draw_type(draw_type)
    prizes = await list_prizes(session, kind)
    spins = await list_recent_spins(session, kind, limit=25)
    return render(
        "prizes.html",
        request=request,
        user=user,
        draw_type=kind,
        draw_types=list(DrawType),
        prizes=prizes,
        stats=prize_stats(prizes),
        enabled=await get_feature_toggle(session, kind),
        spins=spins,
        actions=await recent_actions(session, limit=10),
        categories=CATEGORY_LABELS,
        effective_weight=effective_weight,
        is_available=is_available,
        error=error,
        csrf=get_csrf_token(request),
    )


@router.post("/prizes/{draw_type}/feature")
async def feature_toggle(
    request: Request,
    draw_type: str,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    kind = parse_draw_type(draw_type)
    enabled = await get_feature_toggle(session, kind)
    row = await set_feature_toggle(session, kind, is_enabled=not enabled)
    await log_action(
        session,
        actor=user,
        action="draw_toggle_web",
        payload={"draw_type": kind.value, "is_enabled": row.is_enabled},
    )
    await session.commit()
    return RedirectResponse(url=prizes_url(kind), status_code=302)


@router.post("/prizes/{draw_type}/create")
async def prize_create(
    request: Request,
    draw_type: str,
    name: str = Form(...),
    category: str = Form(...),
    description: str = Form(""),
    color: str = Form(""),
    icon: str = Form(""),
    emoji: str = Form(""),
    weight: int = Form(1),
    quantity: str = Form(""),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    kind = parse_draw_type(draw_type)
    try:
        prize = await create_prize(
            session,
            draw_type=kind,
            name=name,
            category=parse_category(category),
            description=description,
            color=color,
            icon=icon,
            emoji=emoji,
            weight=weight,
            quantity=parse_optional_int(quantity),
        )
    except ValueError as exc:
        await session.rollback()
        return RedirectResponse(url=prizes_url(kind, str(exc)), status_code=302)
    await log_action(
        session,
        actor=user,
        action="prize_create_web",
        payload={"prize_id": prize.id, "draw_type": kind.value, "name": prize.name},
    )
    await session.commit()
    return RedirectResponse(url=prizes_url(kind), status_code=302)


@router.post("/prizes/{draw_type}/{prize_id}/update")
async def prize_update(
    request: Request,
    draw_type: str,
    prize_id: str,
    name: str = Form(...),
    category: str = Form(...),
    description: str = Form(""),
    color: str = Form(""),
    icon: str = Form(""),
    emoji: str = Form(""),
    weight: int = Form(1),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    kind = parse_draw_type(draw_type)
    try:
        prize = await update_prize(
            session,
            prize_id=prize_id,
            name=name,
            category=parse_category(category),
            description=description,
            color=color,
            icon=icon,
            emoji=emoji,
            weight=weight,
        )
    except (ValueError, PrizeNotFound) as exc:
        await session.rollback()
        return RedirectResponse(url=prizes_url(kind, str(exc)), status_code=302)
    await log_action(
        session,
        actor=user,
        action="prize_update_web",
        payload={"prize_id": prize.id, "name": prize.name, "weight": prize.weight},
    )
    await session.commit()
    return RedirectResponse(url=prizes_url(kind), status_code=302)


@router.post("/prizes/{draw_type}/{prize_id}/toggle")
async def prize_toggle(
    request: Request,
    draw_type: str,
    prize_id: str,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    kind = parse_draw_type(draw_type)
    try:
        prize = await get_prize(session, prize_id)
        await set_prize_active(session, prize_id=prize_id, is_active=not prize.is_active)
    except PrizeNotFound as exc:
        return RedirectResponse(url=prizes_url(kind, str(exc)), status_code=302)
    await log_action(
        session,
        actor=user,
        action="prize_toggle_web",
        payload={"prize_id": prize_id, "is_active": prize.is_active},
    )
    await session.commit()
    return RedirectResponse(url=prizes_url(kind), status_code=302)


@router.post("/prizes/{draw_type}/{prize_id}/delete")
async def prize_delete(
    request: Request,
    draw_type: str,
    prize_id: str,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    kind = parse_draw_type(draw_type)
    try:
        prize = await delete_prize(session, prize_id=prize_id)
    except PrizeNotFound as exc:
        return RedirectResponse(url=prizes_url(kind, str(exc)), status_code=302)
    await log_action(
        session,
        actor=user,
        action="prize_delete_web",
        payload={"prize_id": prize_id, "name": prize.name},
    )
    await session.commit()
    return RedirectResponse(url=prizes_url(kind), status_code=302)


@router.post("/prizes/{draw_type}/{prize_id}/inventory")
async def prize_inventory(
    request: Request,
    draw_type: str,
    prize_id: str,
    quantity: int = Form(...),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    kind = parse_draw_type(draw_type)
    try:
        inventory = await set_inventory_quantity(session, prize_id=prize_id, quantity=quantity)
    except (InventoryError, PrizeNotFound) as exc:
        await session.rollback()
        return RedirectResponse(url=prizes_url(kind, str(exc)), status_code=302)
    except IntegrityError:
        # a draw reserved a unit between the check and the write
        await session.rollback()
        return RedirectResponse(
            url=prizes_url(kind, "Quantity cannot drop below the units already reserved"),
            status_code=302,
        )
    await log_action(
        session,
        actor=user,
        action="inventory_update_web",
        payload={
            "prize_id": prize_id,
            "quantity": inventory.quantity,
            "reserved_quantity": inventory.reserved_quantity,
        },
    )
    await session.commit()
    return RedirectResponse(url=prizes_url(kind), status_code=302)
