"""Typed SQLite read/write abstraction for price observations.

Provides ObservationStore with typed methods for appending observations,
windowed reads and soft-deletion. All SQL is isolated behind this interface.

CRITICAL: Prices are stored as TEXT in SQLite and restored as Decimal on read.
Timestamps are stored as integer epoch milliseconds (UTC).
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

import aiosqlite

from midwatch.data.database import PriceDatabase
from midwatch.exceptions import StoreError
from midwatch.logging import get_logger
from midwatch.models import Observation, from_epoch_ms, to_epoch_ms, utc_now

logger = get_logger(__name__)

# Default scope: soft-deleted rows are invisible to every normal read.
_LIVE = "deleted_at IS NULL"

_COLUMNS = "id, symbol, price, created_at, updated_at, deleted_at"


def _row_to_observation(row: tuple) -> Observation:
    return Observation(
        id=row[0],
        symbol=row[1],
        price=Decimal(row[2]),
        created_at=from_epoch_ms(row[3]),
        updated_at=from_epoch_ms(row[4]),
        deleted_at=from_epoch_ms(row[5]) if row[5] is not None else None,
    )


class ObservationStore:
    """Async SQLite store for mid-price observations.

    Wraps PriceDatabase with typed read/write methods. Observations are
    append-only: there is no update path, only insert and soft-delete.
    aiosqlite errors are re-raised as StoreError tagged with the stage.

    Usage:
        async with PriceDatabase("data/prices.db") as database:
            store = ObservationStore(database)
            await store.insert_observation("BTC", Decimal("65000.1"))
    """

    def __init__(
        self,
        database: PriceDatabase,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._database = database
        self._clock = clock

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def insert_observation(
        self,
        symbol: str,
        price: Decimal,
        created_at: datetime | None = None,
    ) -> Observation:
        """Append one observation stamped with the current time.

        ``created_at`` may be supplied explicitly (backfills, tests).
        """
        created = created_at or self._clock()
        created_ms = to_epoch_ms(created)
        try:
            cursor = await self._database.db.execute(
                "INSERT INTO coin_prices (symbol, price, created_at, updated_at) "
                "VALUES (?, ?, ?, ?)",
                (symbol, str(price), created_ms, created_ms),
            )
            await self._database.db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(f"failed to save price for {symbol}: {exc}", stage="insert") from exc

        observation = Observation(
            id=cursor.lastrowid,
            symbol=symbol,
            price=price,
            created_at=from_epoch_ms(created_ms),
            updated_at=from_epoch_ms(created_ms),
        )
        logger.debug("inserted_observation", symbol=symbol, id=observation.id)
        return observation

    async def soft_delete_before(self, cutoff: datetime) -> int:
        """Mark every live observation created before ``cutoff`` as deleted.

        Rows already soft-deleted are left untouched, so repeated calls with
        no newly eligible rows return 0.
        """
        now_ms = to_epoch_ms(self._clock())
        try:
            cursor = await self._database.db.execute(
                f"UPDATE coin_prices SET deleted_at = ?, updated_at = ? "
                f"WHERE created_at < ? AND {_LIVE}",
                (now_ms, now_ms, to_epoch_ms(cutoff)),
            )
            await self._database.db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(f"failed to delete old prices: {exc}", stage="delete") from exc
        return cursor.rowcount

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def count_since(self, symbol: str, since: datetime) -> int:
        """Count live observations for ``symbol`` with created_at >= since."""
        try:
            cursor = await self._database.db.execute(
                f"SELECT COUNT(*) FROM coin_prices "
                f"WHERE symbol = ? AND created_at >= ? AND {_LIVE}",
                (symbol, to_epoch_ms(since)),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(f"failed to count prices: {exc}", stage="count") from exc
        return row[0] if row else 0

    async def get_since(self, symbol: str, since: datetime) -> list[Observation]:
        """Return live observations for ``symbol`` since ``since``, newest first."""
        try:
            cursor = await self._database.db.execute(
                f"SELECT {_COLUMNS} FROM coin_prices "
                f"WHERE symbol = ? AND created_at >= ? AND {_LIVE} "
                f"ORDER BY created_at DESC, id DESC",
                (symbol, to_epoch_ms(since)),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(f"failed to fetch prices: {exc}", stage="fetch") from exc
        return [_row_to_observation(row) for row in rows]
