'''
Background task that applies the clock-driven policies: expiring overdue
booking requests and timing out payments that were never settled.
'''
import asyncio
from typing import Optional

from ..common.config import settings
from ..common.logger import log
from .scheduling_engine import SchedulingEngine


class ExpirySweeper:
    """
    Runs SchedulingEngine.run_sweep every `interval_seconds` until stopped.
    """
    def __init__(self, engine: SchedulingEngine, interval_seconds: Optional[float] = None):
        self.engine = engine
        self.interval_seconds = interval_seconds if interval_seconds is not None else settings.EXPIRY_SWEEP_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self):
        try:
            result = await self.engine.run_sweep()
        except Exception as e:
            log.error(f"Expiry sweep failed: {e}", exc_info=True)
            return None
        if result.expired_requests or result.expired_payments:
            log.info(f"Sweep expired {len(result.expired_requests)} requests and {len(result.expired_payments)} payments.")
        return result

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.sweep_once()

    def start(self) -> None:
        if self.interval_seconds <= 0:
            log.info("Expiry sweeper disabled (interval <= 0).")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        log.info(f"Expiry sweeper started, every {self.interval_seconds}s.")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("Expiry sweeper stopped.")
