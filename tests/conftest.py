from pathlib import Path
from typing import Dict

import pytest
from httpx import ASGITransport, AsyncClient

from helpers import TEST_PASSWORD, TEST_USERNAME
from towerofsong.api.main import create_app
from towerofsong.core.catalog import CatalogStore
from towerofsong.core.config import LibraryConfig, Settings
from towerofsong.core.db import create_engine, create_session_factory, init_db
from towerofsong.worker.scanner import SyncEngine
from towerofsong.worker.scheduler import ScanScheduler

# ============================================================================
# TEST DATABASE CONFIGURATION
# ============================================================================
# Every test gets its own SQLite file under tmp_path, migrated through the
# same Alembic revisions as production, with WAL mode enabled.
# ============================================================================

@pytest.fixture
async def db_engine(tmp_path):
    """Migrated database engine, disposed after the test."""
    db_file = tmp_path / "data" / "catalog.db"
    engine = create_engine(f"sqlite+aiosqlite:///{db_file.as_posix()}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def catalog(db_engine):
    return CatalogStore(create_session_factory(db_engine))


@pytest.fixture
def music_dir(tmp_path) -> Path:
    d = tmp_path / "music"
    d.mkdir()
    return d


@pytest.fixture
def sync_engine(catalog, music_dir):
    engine = SyncEngine(catalog, music_folders=[str(music_dir)])
    yield engine
    engine.shutdown()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        DATA_DIR=tmp_path / "data",
        CONFIG_FILE=tmp_path / "config.json",
        SCAN_ON_STARTUP=False,
    )


@pytest.fixture
async def app(catalog, sync_engine, music_dir, test_settings):
    """App with services wired directly (the lifespan is not run)."""
    application = create_app(test_settings)
    application.state.library_config = LibraryConfig(
        music_folders=(str(music_dir),),
        username=TEST_USERNAME,
        password=TEST_PASSWORD,
    )
    application.state.catalog = catalog
    application.state.scheduler = ScanScheduler(sync_engine, run_on_start=False)
    yield application
    await application.state.scheduler.stop()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def auth_headers(app) -> Dict[str, str]:
    token = app.state.token_store.issue()
    return {"Authorization": f"Bearer {token}"}
