import heapq
import itertools

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app import models  # noqa: F401
from backend.app.core.time import utcnow
from backend.app.db.base import Base
from backend.app.db.session import get_session
from backend.app.main import create_app
from backend.app.models.admin_user import AdminUser
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.services.prize_service import create_prize
from backend.app.web.auth import hash_password
from backend.app.web.routes import limiter


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'rewards.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def apply_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory):
    app = create_app()

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    limiter.reset()
    return app


@pytest_asyncio.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def admin_user(session_factory):
    async with session_factory() as session:
        admin = AdminUser(
            username="admin",
            password_hash=hash_password("secret"),
            is_active=True,
            created_at=utcnow(),
        )
        session.add(admin)
        await session.commit()
    return admin


@pytest.fixture
def add_prize(session_factory):
    async def add(draw_type=DrawType.wheel, category=PrizeCategory.physical, **kwargs):
        kwargs.setdefault("name", f"{category.value} prize")
        async with session_factory() as session:
            prize = await create_prize(session, draw_type=draw_type, category=category, **kwargs)
            await session.commit()
        return prize

    return add


class StubRng:
    """Returns fixed rolls in order; keeps the last one once exhausted."""

    def __init__(self, *rolls):
        self.rolls = list(rolls)
        self.totals = []

    def randrange(self, total):
        self.totals.append(total)
        roll = self.rolls.pop(0) if len(self.rolls) > 1 else self.rolls[0]
        return min(roll, total - 1)


@pytest.fixture
def stub_rng():
    return StubRng


class ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Deterministic stand-in for the event loop clock."""

    def __init__(self):
        self.time = 0.0
        self._queue = []
        self._seq = itertools.count()

    def now(self):
        return self.time

    def call_later(self, delay, callback):
        handle = ManualHandle(self.time + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    @property
    def pending(self):
        return [h for _, _, h in self._queue if not h.cancelled]

    def advance(self, seconds):
        target = self.time + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.time = when
            handle.callback()
        self.time = target


@pytest.fixture
def clock():
    return ManualClock()
