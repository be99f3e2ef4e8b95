"""Library synchronization engine.

One pass walks every configured music folder, extracts metadata for audio
files the catalog does not know yet, inserts them, and then prunes catalog
records whose file is gone from disk.

Per-file problems never abort a pass: unreadable tags degrade to defaults,
an unlistable directory skips only its own subtree, and a failed catalog
write is logged and counted before moving on to the next file.

Typical usage example:
    engine = SyncEngine(catalog, music_folders=["/music"])
    stats = await engine.run_pass()
    print(f"Created: {stats.created}, Pruned: {stats.pruned}")
"""

import asyncio
import concurrent.futures
import contextvars
import os
from typing import Iterable, List, Optional, Sequence, Set

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from towerofsong.core.catalog import CatalogStore
from towerofsong.core.stats import ScanStats
from towerofsong.worker.metadata import MetadataExtractor

DEFAULT_EXTENSIONS = (".mp3", ".flac", ".wav")


class SyncEngine:
    """Reconciles the catalog with the audio files under the music folders.

    Attributes:
        catalog: Store receiving inserts and deletes.
        music_folders: Root directories walked in order.
        extensions: Lower-cased audio suffixes; matching ignores case.
        extractor: Tag reader used for newly discovered files.
        executor: Thread pool for blocking filesystem and tag I/O.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        music_folders: Sequence[str],
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        extractor: Optional[MetadataExtractor] = None,
        executor: Optional[concurrent.futures.Executor] = None,
    ):
        self.catalog = catalog
        self.music_folders = [os.path.abspath(f) for f in music_folders]
        self.extensions = {e.lower() for e in extensions}
        self.extractor = extractor or MetadataExtractor()
        self.executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="sync"
        )

    def is_audio_file(self, name: str) -> bool:
        return os.path.splitext(name)[1].lower() in self.extensions

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        # Carry the log context (pass id) into the worker thread.
        ctx = contextvars.copy_context()
        return await loop.run_in_executor(self.executor, ctx.run, func, *args)

    async def run_pass(self) -> ScanStats:
        """Run one full walk/extract/insert/prune pass.

        Returns:
            ScanStats for logging and status reporting.
        """
        stats = ScanStats()
        logger.info(f"Scanning music folders: {self.music_folders}")

        known_paths: Set[str] = {path for _, path in await self.catalog.list_paths()}
        logger.info(f"Loaded path index: {len(known_paths)} files")

        for root in self.music_folders:
            if not os.path.isdir(root):
                logger.error(f"Music folder not found: {root}")
                stats.walk_errors += 1
                continue
            await self._process_recursive(root, known_paths, stats)

        logger.info("Checking for missing files in catalog...")
        await self.prune(stats)

        logger.success(f"Sync pass complete: {stats}")
        return stats

    async def _process_recursive(
        self, current_path: str, known_paths: Set[str], stats: ScanStats
    ) -> None:
        """Process one directory, then recurse into its subdirectories.

        A listing failure skips this directory and everything below it.
        """
        try:
            entries = await self._run_blocking(_list_dir, current_path)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {current_path}: {e}")
            stats.walk_errors += 1
            return

        files: List[str] = []
        dirs: List[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    dirs.append(entry.path)
                elif entry.is_file() and self.is_audio_file(entry.name):
                    if not _storable(entry.path):
                        logger.warning(
                            f"Skipping file with undecodable name: {entry.path!r}"
                        )
                        stats.walk_errors += 1
                        continue
                    files.append(os.path.abspath(entry.path))
            except OSError as e:
                logger.warning(f"Could not stat {entry.path}: {e}")
                stats.walk_errors += 1

        for file_path in sorted(files):
            await self.process_file(file_path, known_paths, stats)

        for dir_path in sorted(dirs):
            await self._process_recursive(dir_path, known_paths, stats)

    async def process_file(
        self, file_path: str, known_paths: Set[str], stats: ScanStats
    ) -> None:
        """Catalog a single audio file if its path is new."""
        stats.processed += 1
        if file_path in known_paths:
            stats.skipped += 1
            return

        meta = await self._run_blocking(self.extractor.extract, file_path)
        try:
            inserted = await self.catalog.upsert_if_absent(
                file_path, meta.title, meta.artist, meta.album
            )
        except (SQLAlchemyError, ValueError) as e:
            # sqlite3 raises a bare UnicodeEncodeError for unencodable text.
            logger.error(f"DB insert error for {file_path!r}: {e}")
            stats.errors += 1
            return

        known_paths.add(file_path)
        if inserted:
            stats.created += 1
        else:
            stats.skipped += 1

    async def prune(self, stats: ScanStats) -> None:
        """Delete records whose file no longer exists.

        Existence is checked with a fresh stat at prune time rather than
        against the walk results, so a file that reappeared after the walk
        is kept.
        """
        try:
            rows = await self.catalog.list_paths()
        except SQLAlchemyError as e:
            logger.error(f"Error querying catalog for cleanup: {e}")
            stats.prune_errors += 1
            return

        for track_id, path in rows:
            try:
                exists = await self._run_blocking(_file_exists, path)
            except OSError as e:
                # Not a definite "missing": keep the record.
                logger.warning(f"Could not stat {path} during cleanup: {e}")
                stats.prune_errors += 1
                continue
            if exists:
                continue

            logger.info(f"File missing on disk, removing from catalog: {path} (id={track_id})")
            try:
                if await self.catalog.delete_by_id(track_id):
                    stats.pruned += 1
            except SQLAlchemyError as e:
                logger.error(f"Error deleting {path} (id={track_id}) from catalog: {e}")
                stats.prune_errors += 1

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)


def _list_dir(path: str) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return list(it)


def _file_exists(path: str) -> bool:
    """True if ``path`` exists; OSErrors other than not-found propagate."""
    try:
        os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    return True


def _storable(path: str) -> bool:
    """False for names the OS handed back with surrogate escapes.

    Such paths cannot be bound as UTF-8 text, so they can never be catalogued.
    """
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
