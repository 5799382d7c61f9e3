"""Windowed read service over stored observations."""

from collections.abc import Callable
from datetime import datetime, timedelta

from midwatch.data.store import ObservationStore
from midwatch.exceptions import InvalidQueryError
from midwatch.models import PriceWindow, utc_now

DEFAULT_WINDOW = timedelta(hours=24)


class PriceQueryService:
    """Answers "this symbol's observations in the last N hours".

    Symbols match exactly (no case folding). An unknown symbol or an empty
    window is a valid result with count 0.
    """

    def __init__(
        self,
        store: ObservationStore,
        window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._window = window
        self._clock = clock

    @property
    def window(self) -> timedelta:
        return self._window

    async def query(self, symbol: str | None, window: timedelta | None = None) -> PriceWindow:
        """Return observations within the window, newest first, plus their count.

        Raises:
            InvalidQueryError: If ``symbol`` is missing or blank. Raised before
                the store is touched.
            StoreError: If the count or fetch fails (``stage`` says which).
        """
        if symbol is None or not symbol.strip():
            raise InvalidQueryError("coin symbol is required")
        symbol = symbol.strip()

        since = self._clock() - (window if window is not None else self._window)
        count = await self._store.count_since(symbol, since)
        observations = await self._store.get_since(symbol, since)
        return PriceWindow(symbol=symbol, observations=observations, count=count)
