"""Command-line worker: one-off database setup and sync passes.

Run from the project root:
    python -m towerofsong.worker.main init-db
    python -m towerofsong.worker.main sync [--config config.json]

The sync command does not take the API server's scan lock, which lives in
that process's memory, so it may overlap a pass the server is running.
Overlap only costs duplicate work: inserts are keyed on the unique path and
skip existing rows, and the prune re-checks each file before deleting it.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from towerofsong.core.catalog import CatalogStore
from towerofsong.core.config import load_library_config, settings
from towerofsong.core.db import create_engine, create_session_factory, init_db
from towerofsong.core.exceptions import ConfigLoadError, StoreInitError
from towerofsong.core.logger import setup_logging
from towerofsong.core.stats import ScanStats
from towerofsong.worker.scanner import SyncEngine


async def run_init_db() -> None:
    engine = create_engine(settings.DB_URL, echo=settings.DB_ECHO)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


async def run_sync(config_file: Optional[Path] = None) -> ScanStats:
    """Run a single sync pass over the configured music folders."""
    library_config = load_library_config(config_file or settings.CONFIG_FILE)
    engine = create_engine(settings.DB_URL, echo=settings.DB_ECHO)
    try:
        await init_db(engine)
        catalog = CatalogStore(create_session_factory(engine))
        sync_engine = SyncEngine(
            catalog,
            music_folders=library_config.music_folders,
            extensions=settings.AUDIO_EXTENSIONS,
        )
        try:
            with logger.contextualize(pass_id="cli"):
                return await sync_engine.run_pass()
        finally:
            sync_engine.shutdown()
    finally:
        await engine.dispose()


def main():
    setup_logging()
    parser = argparse.ArgumentParser(description="Tower of Song Worker")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create or migrate the catalog database")

    sync_parser = subparsers.add_parser(
        "sync", help="Run one library sync pass and exit"
    )
    sync_parser.add_argument(
        "--config", type=Path, default=None, help="Path to config.json"
    )

    args = parser.parse_args()

    try:
        if args.command == "init-db":
            asyncio.run(run_init_db())
            logger.info("Database initialized.")

        elif args.command == "sync":
            stats = asyncio.run(run_sync(args.config))
            print(stats.to_dict())

        else:
            parser.print_help()
    except (ConfigLoadError, StoreInitError) as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nSync interrupted.")
        sys.exit(130)


if __name__ == "__main__":
    main()
