from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.admin_audit_log import AdminAuditLog


async def log_action(session: AsyncSession, *, actor: str, action: str, payload: dict) -> None:
    entry = AdminAuditLog(
        actor=actor,
        action=action,
        payload=payload,
        created_at=utcnow(),
    )
    session.add(entry)


async def recent_actions(session: AsyncSession, *, limit: int = 20) -> list[AdminAuditLog]:
    result = await session.execute(
        select(AdminAuditLog).order_by(AdminAuditLog.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())
