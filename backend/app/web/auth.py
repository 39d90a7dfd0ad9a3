import secrets

from fastapi import Depends, HTTPException, Request, Response, status
from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import utcnow
from backend.app.models.admin_user import AdminUser

COOKIE_NAME = "arena_admin"
SESSION_MAX_AGE = 60 * 60 * 12

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret, salt="admin-session")


def verify_password(plain: str, password_hash: str) -> bool:
    return pwd_context.verify(plain, password_hash)


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def create_session_cookie(username: str) -> str:
    return get_serializer().dumps({"u": username, "csrf": secrets.token_urlsafe(16)})


def set_session_cookie(response: Response, value: str) -> None:
    response.set_cookie(
        COOKIE_NAME,
        value,
        httponly=True,
        secure=not settings.is_dev,
        samesite="lax",
        max_age=SESSION_MAX_AGE,
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME)


def get_session_data(request: Request) -> dict:
    cookie = request.cookies.get(COOKIE_NAME)
    if not cookie:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        return get_serializer().loads(cookie, max_age=SESSION_MAX_AGE)
    except BadSignature as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc


def get_current_admin(request: Request) -> str:
    username = get_session_data(request).get("u")
    if not username:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return username


def get_csrf_token(request: Request) -> str:
    token = get_session_data(request).get("csrf")
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return token


def verify_csrf(request: Request, token: str) -> None:
    if not secrets.compare_digest(token, get_csrf_token(request)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)


def login_required(admin: str = Depends(get_current_admin)) -> str:
    return admin


async def authenticate_admin(
    session: AsyncSession, *, username: str, password: str
) -> AdminUser | None:
    result = await session.execute(
        select(AdminUser).where(AdminUser.username == username, AdminUser.is_active.is_(True))
    )
    admin = result.scalar_one_or_none()
    if not admin or not verify_password(password, admin.password_hash):
        return None
    admin.last_login_at = utcnow()
    return admin
