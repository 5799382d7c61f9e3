"""Background loops -- periodic price fetching and retention."""

from midwatch.workers.periodic import PeriodicWorker
from midwatch.workers.price_fetcher import PriceFetcher
from midwatch.workers.retention import RetentionWorker

__all__ = ["PeriodicWorker", "PriceFetcher", "RetentionWorker"]
