"""SQLite connection owner for the ``coin_prices`` table.

A single aiosqlite connection is opened at startup and shared by the fetch
loop, the retention loop and every request handler; aiosqlite serializes
statements on its worker thread. File databases run in WAL mode so reads
from the API do not block the writer.
"""

import os
from typing import Self

import aiosqlite

from midwatch.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1
MEMORY_PATH = ":memory:"

# Idempotent: safe to run on every startup.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS coin_prices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL,
    price TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    deleted_at INTEGER
);

CREATE INDEX IF NOT EXISTS idx_coin_prices_symbol ON coin_prices(symbol);
CREATE INDEX IF NOT EXISTS idx_coin_prices_created_at ON coin_prices(created_at);
CREATE INDEX IF NOT EXISTS idx_coin_prices_deleted_at ON coin_prices(deleted_at);
CREATE INDEX IF NOT EXISTS idx_coin_prices_symbol_created ON coin_prices(symbol, created_at);
"""

_FILE_PRAGMAS = ("PRAGMA journal_mode=WAL", "PRAGMA synchronous=NORMAL")


class PriceDatabase:
    """Opens, migrates and closes the observation database.

    Usage:
        async with PriceDatabase("data/prices.db") as database:
            store = ObservationStore(database)
    """

    def __init__(self, db_path: str = "data/prices.db") -> None:
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection; RuntimeError before connect() or after close()."""
        if self._conn is None:
            raise RuntimeError(f"PriceDatabase({self._db_path!r}) is not connected")
        return self._conn

    async def connect(self) -> None:
        """Open the file (creating its directory), set pragmas, apply the schema.

        Errors propagate unchanged; a database that cannot be opened or
        migrated is fatal at startup.
        """
        if self.connected:
            return

        in_memory = self._db_path == MEMORY_PATH
        if not in_memory and os.path.dirname(self._db_path):
            os.makedirs(os.path.dirname(self._db_path), exist_ok=True)

        conn = await aiosqlite.connect(self._db_path)
        try:
            if not in_memory:
                for pragma in _FILE_PRAGMAS:
                    await conn.execute(pragma)
            await conn.executescript(_SCHEMA)
            await self._record_schema_version(conn)
        except BaseException:
            await conn.close()
            raise

        self._conn = conn
        logger.info("price_db_connected", db_path=self._db_path, schema_version=SCHEMA_VERSION)

    async def close(self) -> None:
        """Close the connection; a no-op when already closed."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()
        logger.info("price_db_closed", db_path=self._db_path)

    @staticmethod
    async def _record_schema_version(conn: aiosqlite.Connection) -> None:
        await conn.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        await conn.commit()

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
