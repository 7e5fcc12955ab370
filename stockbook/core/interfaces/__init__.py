"""Core interfaces (ports) for dependency injection."""

from stockbook.core.interfaces.catalog_store import ICatalogStore
from stockbook.core.interfaces.purchase_store import IPurchaseStore
from stockbook.core.interfaces.stock_history_store import IStockHistoryStore
from stockbook.core.interfaces.unit_of_work import IPurchaseTransaction, IUnitOfWork

__all__ = [
    "ICatalogStore",
    "IPurchaseStore",
    "IStockHistoryStore",
    "IPurchaseTransaction",
    "IUnitOfWork",
]
