"""Retention loop -- soft-deletes observations older than the retention window."""

from collections.abc import Callable
from datetime import datetime, timedelta

from midwatch.data.store import ObservationStore
from midwatch.exceptions import StoreError
from midwatch.logging import get_logger
from midwatch.models import utc_now
from midwatch.workers.periodic import PeriodicWorker

logger = get_logger(__name__)

DEFAULT_RETENTION = timedelta(days=2)


class RetentionWorker(PeriodicWorker):
    """Periodically marks stale observations as deleted."""

    name = "retention_worker"

    def __init__(
        self,
        store: ObservationStore,
        retention: timedelta = DEFAULT_RETENTION,
        interval: float = 3600.0,
        run_on_start: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(interval=interval, run_on_start=run_on_start)
        self._store = store
        self._retention = retention
        self._clock = clock

    async def run_cycle(self) -> int | None:
        return await self.cleanup()

    async def cleanup(self) -> int | None:
        """Soft-delete rows with created_at before now - retention.

        Returns the number of rows affected, or None if the store failed.
        """
        cutoff = self._clock() - self._retention
        logger.info("retention_started", cutoff=cutoff.isoformat())

        try:
            deleted = await self._store.soft_delete_before(cutoff)
        except StoreError as exc:
            logger.error("retention_failed", error=str(exc), cutoff=cutoff.isoformat())
            return None

        logger.info("retention_completed", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted
