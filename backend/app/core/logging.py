import logging

from backend.app.core.config import settings

NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "asyncpg",
    "aiosqlite",
    "httpx",
)


def setup_logging() -> None:
    level = logging.DEBUG if settings.is_dev else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
