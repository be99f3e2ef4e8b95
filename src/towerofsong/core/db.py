from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from loguru import logger
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from towerofsong.core.exceptions import StoreInitError

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Sets WAL mode and busy timeout on every new SQLite connection.

    WAL (Write-Ahead Logging) lets API readers proceed while the sync pass
    is writing; the busy timeout makes a contended write wait instead of
    failing immediately with "database is locked".
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=30000")  # 30 seconds
    cursor.close()


def create_engine(url: str, echo: bool = False, **kwargs: Any) -> AsyncEngine:
    """Create the async engine shared by the API handlers and the sync pass."""
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
    engine = create_async_engine(
        url, echo=echo, connect_args=connect_args, **kwargs
    )
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


def alembic_config() -> Config:
    """Alembic config pointing at the packaged migration scripts."""
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def _upgrade(connection: Any, revision: str) -> None:
    config = alembic_config()
    config.attributes["connection"] = connection
    command.upgrade(config, revision)


async def init_db(engine: AsyncEngine, revision: str = "head") -> None:
    """Bring the catalog schema up to date.

    Migrations are versioned and idempotent, so this is safe on every start.

    Raises:
        StoreInitError: If the database cannot be opened or migrated.
    """
    db_path = engine.url.database
    try:
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        async with engine.begin() as conn:
            await conn.run_sync(_upgrade, revision)
    except (SQLAlchemyError, CommandError, OSError) as e:
        raise StoreInitError(f"Failed to initialise catalog database: {e}") from e
    logger.info("Database tables ready.")
