"""Base class for fixed-interval background loops.

A worker runs ``run_cycle()`` every ``interval`` seconds until ``stop()`` is
called. The stop signal is only observed between cycles: a cycle that is
already running (e.g. an in-flight upstream request) finishes first.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from midwatch.logging import get_logger

logger = get_logger(__name__)


class PeriodicWorker(ABC):
    """Runs ``run_cycle`` on a fixed period with a cooperative stop signal."""

    name: str = "worker"

    def __init__(self, interval: float, run_on_start: bool = False) -> None:
        if interval <= 0:
            raise ValueError(f"{self.name} interval must be positive, got {interval}")
        self._interval = interval
        self._run_on_start = run_on_start
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def interval(self) -> float:
        return self._interval

    @abstractmethod
    async def run_cycle(self) -> Any:
        """Execute one cycle of work."""
        ...

    async def start(self) -> None:
        """Run the loop until ``stop()`` is called.

        Cycle errors are logged and never end the loop.
        """
        if self._running:
            logger.warning("worker_already_running", worker=self.name)
            return
        self._running = True
        logger.info("worker_started", worker=self.name, interval=self._interval)

        try:
            if self._run_on_start and not self._stop_event.is_set():
                await self._run_cycle_safely()
            while not self._stop_event.is_set():
                if await self._wait_for_stop(self._interval):
                    break
                await self._run_cycle_safely()
        finally:
            self._running = False
            logger.info("worker_stopped", worker=self.name)

    async def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""
        logger.info("worker_stopping", worker=self.name)
        self._stop_event.set()

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True if stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_cycle_safely(self) -> None:
        try:
            await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error("worker_cycle_error", worker=self.name, exc_info=True)
