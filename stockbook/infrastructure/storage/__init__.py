"""Storage infrastructure implementations."""

from stockbook.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLitePurchaseStore,
    SQLiteStockHistoryStore,
    SQLiteUnitOfWork,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteCatalogStore",
    "SQLitePurchaseStore",
    "SQLiteStockHistoryStore",
    "SQLiteUnitOfWork",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
