"""Tests for the catalog Alembic revisions."""

import pytest
from alembic import command
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

from towerofsong.core.db import alembic_config


@pytest.fixture
def temp_db_path(tmp_path):
    return tmp_path / "catalog.db"


@pytest.fixture
def config(temp_db_path):
    cfg = alembic_config()
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{temp_db_path.as_posix()}")
    return cfg


@pytest.fixture
def engine(temp_db_path) -> Engine:
    eng = create_engine(f"sqlite:///{temp_db_path.as_posix()}")
    yield eng
    eng.dispose()


def _columns(engine):
    return {col["name"] for col in inspect(engine).get_columns("tracks")}


def test_upgrade_downgrade_cycle(config, engine):
    command.upgrade(config, "head")
    assert "favourited" in _columns(engine)

    command.downgrade(config, "create_tracks_table")
    assert "favourited" not in _columns(engine)

    command.downgrade(config, "base")
    assert "tracks" not in inspect(engine).get_table_names()

    command.upgrade(config, "head")
    assert "favourited" in _columns(engine)


LEGACY_SCHEMA = (
    "CREATE TABLE music ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "path TEXT UNIQUE, title TEXT, artist TEXT, album TEXT, "
    "favourited INTEGER DEFAULT 0)"
)


def test_legacy_music_table_is_imported(config, engine):
    """Rows from the earlier server's music table move to tracks with their ids."""
    with engine.begin() as conn:
        conn.execute(text(LEGACY_SCHEMA))
        conn.execute(
            text(
                "INSERT INTO music (id, path, title, artist, album, favourited) VALUES "
                "(3, '/music/a.mp3', 'Song A', 'X', 'First', 1), "
                "(7, '/music/sub/b.flac', NULL, '  ', NULL, 0)"
            )
        )

    command.upgrade(config, "head")

    assert "music" not in inspect(engine).get_table_names()
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT id, path, title, artist, album, favourited FROM tracks ORDER BY id")
        ).all()
    assert rows == [
        (3, "/music/a.mp3", "Song A", "X", "First", 1),
        (7, "/music/sub/b.flac", "b.flac", "Unknown", "Unknown", 0),
    ]


def test_legacy_table_without_favourited_column(config, engine):
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE music (id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "path TEXT UNIQUE, title TEXT, artist TEXT, album TEXT)"
            )
        )
        conn.execute(
            text("INSERT INTO music (path, title, artist, album) VALUES ('/m/x.wav', 'T', 'A', 'B')")
        )

    command.upgrade(config, "head")

    with engine.connect() as conn:
        rows = conn.execute(text("SELECT path, favourited FROM tracks")).all()
    assert rows == [("/m/x.wav", 0)]


def test_imported_ids_are_not_reused(config, engine):
    with engine.begin() as conn:
        conn.execute(text(LEGACY_SCHEMA))
        conn.execute(
            text("INSERT INTO music (id, path, title, artist, album) VALUES (9, '/m/a.mp3', 'A', 'X', 'Y')")
        )

    command.upgrade(config, "head")

    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO tracks (path, title, artist, album) VALUES ('/m/b.mp3', 'B', 'X', 'Y')")
        )
        new_id = conn.execute(text("SELECT id FROM tracks WHERE path = '/m/b.mp3'")).scalar()
    assert new_id == 10


def test_upgrade_twice_is_harmless(config, engine):
    command.upgrade(config, "head")
    command.upgrade(config, "head")

    with engine.connect() as conn:
        version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
    assert version == "import_legacy_music_table"
