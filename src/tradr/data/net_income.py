"""Latest common net income per ticker from the forward-filled SimFin table.

Values are stored as TEXT in SQLite and restored as Decimal on read. A
ticker with no row is an error, never an implicit zero.
"""

from decimal import Decimal, InvalidOperation

from tradr.data.database import NET_INCOME_TABLE, FundamentalsDatabase
from tradr.exceptions import ParseError, UpstreamDataError
from tradr.logging import get_logger

logger = get_logger(__name__)


class NetIncomeStore:
    """Typed read/write access to ``simfin_forward_filled_data``.

    Usage:
        async with FundamentalsDatabase("data/simfin.db") as database:
            store = NetIncomeStore(database)
            income = await store.latest_net_income("AAPL")
    """

    def __init__(self, database: FundamentalsDatabase) -> None:
        self._database = database

    async def latest_net_income(self, ticker: str) -> Decimal:
        """Net income common of the most recent row for ``ticker``.

        Raises:
            UpstreamDataError: No row, or the newest row has a NULL value.
            ParseError: The stored value is not numeric.
        """
        source = f"simfin:net_income:{ticker}"
        cursor = await self._database.db.execute(
            f"SELECT latest_net_income_common, date FROM {NET_INCOME_TABLE} "
            "WHERE ticker = ? ORDER BY date DESC LIMIT 1",
            (ticker.upper(),),
        )
        row = await cursor.fetchone()
        if row is None or row["latest_net_income_common"] is None:
            raise UpstreamDataError(f"No net income on record for {ticker}", source=source)
        try:
            value = Decimal(str(row["latest_net_income_common"]))
        except InvalidOperation as e:
            raise ParseError(f"Stored net income for {ticker} is not numeric", source=source) from e

        logger.debug("net_income_loaded", ticker=ticker, as_of=row["date"])
        return value

    async def upsert_net_income(self, ticker: str, as_of: str, value: Decimal) -> None:
        """Insert or replace one forward-filled row (used by data loads and tests)."""
        await self._database.db.execute(
            f"INSERT OR REPLACE INTO {NET_INCOME_TABLE} "
            "(ticker, date, latest_net_income_common) VALUES (?, ?, ?)",
            (ticker.upper(), as_of, str(value)),
        )
        await self._database.db.commit()
