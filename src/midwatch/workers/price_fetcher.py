"""Price fetch loop -- polls the price source for every tracked symbol.

Symbols are processed sequentially. A failure for one symbol (upstream,
parse or store error) is logged and skipped; the rest of the cycle carries
on and the next tick is the only retry.
"""

from midwatch.data.store import ObservationStore
from midwatch.exceptions import PriceSourceError, StoreError
from midwatch.exchange.client import PriceSource
from midwatch.logging import get_logger
from midwatch.models import FetchReport
from midwatch.workers.periodic import PeriodicWorker

logger = get_logger(__name__)


class PriceFetcher(PeriodicWorker):
    """Fetches and stores one observation per tracked symbol each cycle.

    The supervisor awaits ``fetch_prices()`` once at startup so the API has
    data before serving; ``start()`` then only runs on the timer.
    """

    name = "price_fetcher"

    def __init__(
        self,
        source: PriceSource,
        store: ObservationStore,
        symbols: list[str],
        interval: float = 3600.0,
    ) -> None:
        super().__init__(interval=interval, run_on_start=False)
        self._source = source
        self._store = store
        self._symbols = list(symbols)

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    async def run_cycle(self) -> FetchReport:
        return await self.fetch_prices()

    async def fetch_prices(self) -> FetchReport:
        """Fetch and save prices for all tracked symbols."""
        logger.info("price_fetch_started", symbols=self._symbols)
        report = FetchReport()

        for symbol in self._symbols:
            try:
                price = await self._source.get_price(symbol)
            except PriceSourceError as exc:
                logger.warning("price_fetch_failed", symbol=symbol, error=str(exc))
                report.failed[symbol] = str(exc)
                continue
            except Exception as exc:
                logger.error("price_fetch_unexpected_error", symbol=symbol, exc_info=True)
                report.failed[symbol] = repr(exc)
                continue

            try:
                await self._store.insert_observation(symbol, price)
            except StoreError as exc:
                logger.error("price_save_failed", symbol=symbol, error=str(exc))
                report.failed[symbol] = str(exc)
                continue
            except Exception as exc:
                logger.error("price_save_unexpected_error", symbol=symbol, exc_info=True)
                report.failed[symbol] = repr(exc)
                continue

            report.saved[symbol] = price
            logger.info("price_saved", symbol=symbol, price=f"{price:.8f}")

        log = logger.info if report.ok else logger.warning
        log(
            "price_fetch_completed",
            saved=len(report.saved),
            failed=sorted(report.failed),
        )
        return report
