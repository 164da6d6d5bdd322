"""Connection manager for the local fundamentals store (aiosqlite).

The store holds the forward-filled SimFin net income table that the
analysis reads per ticker. Rows are returned as ``aiosqlite.Row`` so
queries address columns by name.
"""

import os
from typing import Self

import aiosqlite

from tradr.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

NET_INCOME_TABLE = "simfin_forward_filled_data"

_SCHEMA_STATEMENTS: tuple[str, ...] = (
    "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)",
    f"""
    CREATE TABLE IF NOT EXISTS {NET_INCOME_TABLE} (
        ticker TEXT NOT NULL,
        date TEXT NOT NULL,
        latest_net_income_common TEXT,
        PRIMARY KEY (ticker, date)
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_net_income_ticker_date ON {NET_INCOME_TABLE}(ticker, date DESC)",
)


class FundamentalsDatabase:
    """Owns the SQLite connection for the fundamentals store.

    Creates the schema on first connect and refuses to open a file written
    by a newer schema version.

    Usage:
        async with FundamentalsDatabase("data/simfin.db") as database:
            store = NetIncomeStore(database)
    """

    def __init__(self, db_path: str = "data/simfin.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection. Raises RuntimeError before connect()."""
        if self._connection is None:
            raise RuntimeError("Fundamentals database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the file (creating its directory), then ensure schema and version.

        Raises:
            RuntimeError: The file was written by a newer schema version.
        """
        parent = os.path.dirname(self._db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        connection = await aiosqlite.connect(self._db_path)
        connection.row_factory = aiosqlite.Row
        try:
            await connection.execute("PRAGMA journal_mode=WAL")
            await connection.execute("PRAGMA synchronous=NORMAL")
            for statement in _SCHEMA_STATEMENTS:
                await connection.execute(statement)
            version = await self._stored_version(connection)
            if version is None:
                await connection.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
                logger.info("schema_version_set", version=SCHEMA_VERSION)
            elif version > SCHEMA_VERSION:
                raise RuntimeError(
                    f"{self._db_path} has schema version {version}; "
                    f"this build supports up to {SCHEMA_VERSION}"
                )
            await connection.commit()
        except BaseException:
            await connection.close()
            raise

        self._connection = connection
        logger.info("fundamentals_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("fundamentals_db_closed", db_path=self._db_path)

    @staticmethod
    async def _stored_version(connection: aiosqlite.Connection) -> int | None:
        cursor = await connection.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        return None if row is None or row[0] is None else int(row[0])

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
