"""Local fundamentals persistence layer (SQLite via aiosqlite)."""

from tradr.data.database import FundamentalsDatabase
from tradr.data.net_income import NetIncomeStore

__all__ = ["FundamentalsDatabase", "NetIncomeStore"]
