#!/usr/bin/env python
import argparse
import asyncio

from sqlalchemy import select

from backend.app.core.logging import setup_logging
from backend.app.core.time import utcnow
from backend.app.db.session import SessionLocal
from backend.app.models.admin_user import AdminUser
from backend.app.web.auth import hash_password


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or reset an admin console user")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument(
        "--reset",
        action="store_true",
        help="overwrite the password of an existing admin",
    )
    return parser.parse_args()


async def main() -> None:
    setup_logging()
    args = parse_args()
    username = args.username.strip()
    async with SessionLocal() as session:
        existing = await session.execute(select(AdminUser).where(AdminUser.username == username))
        admin = existing.scalar_one_or_none()
        if admin and not args.reset:
            raise SystemExit("Admin already exists (use --reset to change the password)")
        if admin:
            admin.password_hash = hash_password(args.password)
            admin.is_active = True
        else:
            session.add(
                AdminUser(
                    username=username,
                    password_hash=hash_password(args.password),
                    is_active=True,
                    created_at=utcnow(),
                )
            )
        await session.commit()
    print("Admin updated" if admin else "Admin created")


if __name__ == "__main__":
    asyncio.run(main())
