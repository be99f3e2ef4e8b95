"""Periodic runner for library sync passes.

At most one pass runs at any instant. A trigger that arrives while a pass is
in flight is dropped, not queued: the lock is only ever try-acquired.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from towerofsong.core.stats import ScanStats
from towerofsong.worker.scanner import SyncEngine


class ScanScheduler:
    """Runs ``SyncEngine`` passes on startup and then on a fixed period.

    Attributes:
        engine: The sync engine executing each pass.
        interval: Seconds between the end of one periodic pass and the next.
        run_on_start: Run a pass immediately when started.
        last_stats: Stats of the most recent completed pass.
    """

    def __init__(
        self,
        engine: SyncEngine,
        interval: float = 24 * 60 * 60,
        run_on_start: bool = True,
    ):
        self.engine = engine
        self.interval = interval
        self.run_on_start = run_on_start
        self.last_stats: Optional[ScanStats] = None
        self.last_started_at: Optional[datetime] = None
        self.last_finished_at: Optional[datetime] = None
        self.last_pass_id: Optional[str] = None
        self._pass_seq = 0
        self._lock = asyncio.Lock()
        self._loop_task: Optional[asyncio.Task] = None
        self._background: set = set()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run_once(self) -> Optional[ScanStats]:
        """Run a pass now unless one is already running.

        Returns:
            The pass stats, or None if the trigger was dropped.
        """
        # No await between the check and the acquire, so this cannot race
        # with another trigger on the same event loop.
        if self._lock.locked():
            logger.info("Sync pass already running; trigger dropped")
            return None

        async with self._lock:
            self._pass_seq += 1
            self.last_pass_id = f"{self._pass_seq:04d}"
            self.last_started_at = datetime.now(timezone.utc)
            # Every line logged by the pass, including from worker threads,
            # carries the pass id and is mirrored to the sync log.
            with logger.contextualize(pass_id=self.last_pass_id):
                try:
                    stats = await self.engine.run_pass()
                except asyncio.CancelledError:
                    logger.warning("Sync pass cancelled")
                    raise
                except Exception:
                    logger.exception("Sync pass failed")
                    return None
                finally:
                    self.last_finished_at = datetime.now(timezone.utc)
            self.last_stats = stats
            return stats

    def trigger(self) -> bool:
        """Start a pass in the background unless one is already running.

        Returns:
            True if a pass was started, False if the trigger was dropped.
        """
        if self._lock.locked() or self._background:
            logger.info("Sync pass already running; trigger dropped")
            return False
        task = asyncio.create_task(self.run_once(), name="sync-pass")
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    async def _run_forever(self) -> None:
        if not self.run_on_start:
            await asyncio.sleep(self.interval)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start the repeating task. Idempotent."""
        if self._loop_task is not None and not self._loop_task.done():
            return
        logger.info(f"Starting scan scheduler (interval={self.interval}s)")
        self._loop_task = asyncio.create_task(self._run_forever(), name="scan-scheduler")

    async def stop(self) -> None:
        """Cancel the repeating task and any in-flight pass, then wait for them."""
        tasks = list(self._background)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        logger.info("Scan scheduler stopped")

    def status(self) -> dict:
        return {
            "running": self.is_running,
            "last_pass_id": self.last_pass_id,
            "interval_seconds": self.interval,
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_finished_at": self.last_finished_at.isoformat() if self.last_finished_at else None,
            "last_stats": self.last_stats.to_dict() if self.last_stats else None,
        }
