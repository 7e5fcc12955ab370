"""SQLite storage implementations."""

from stockbook.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from stockbook.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from stockbook.infrastructure.storage.sqlite.purchase_store import SQLitePurchaseStore
from stockbook.infrastructure.storage.sqlite.stock_history_store import (
    SQLiteStockHistoryStore,
)
from stockbook.infrastructure.storage.sqlite.unit_of_work import (
    SQLitePurchaseTransaction,
    SQLiteUnitOfWork,
)

# Singleton instances
_purchase_store: SQLitePurchaseStore | None = None
_catalog_store: SQLiteCatalogStore | None = None
_stock_history_store: SQLiteStockHistoryStore | None = None
_unit_of_work: SQLiteUnitOfWork | None = None


async def get_purchase_store() -> SQLitePurchaseStore:
    """Get singleton purchase store instance."""
    global _purchase_store
    if _purchase_store is None:
        _purchase_store = SQLitePurchaseStore()
    return _purchase_store


async def get_catalog_store() -> SQLiteCatalogStore:
    """Get singleton catalog store instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SQLiteCatalogStore()
    return _catalog_store


async def get_stock_history_store() -> SQLiteStockHistoryStore:
    """Get singleton stock history store instance."""
    global _stock_history_store
    if _stock_history_store is None:
        _stock_history_store = SQLiteStockHistoryStore()
    return _stock_history_store


async def get_unit_of_work() -> SQLiteUnitOfWork:
    """Get singleton unit of work instance."""
    global _unit_of_work
    if _unit_of_work is None:
        _unit_of_work = SQLiteUnitOfWork()
    return _unit_of_work


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Store classes
    "SQLiteCatalogStore",
    "SQLitePurchaseStore",
    "SQLiteStockHistoryStore",
    "SQLitePurchaseTransaction",
    "SQLiteUnitOfWork",
    # Factory functions
    "get_catalog_store",
    "get_purchase_store",
    "get_stock_history_store",
    "get_unit_of_work",
]
