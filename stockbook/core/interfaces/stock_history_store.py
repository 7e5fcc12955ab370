"""Abstract interface for stock history reads."""

from abc import ABC, abstractmethod

from stockbook.core.entities.stock_history import StockHistory, StockHistoryFilter


class IStockHistoryStore(ABC):
    """Interface for querying the stock ledger."""

    @abstractmethod
    async def list_history(self, query: StockHistoryFilter) -> list[StockHistory]:
        """List ledger rows matching the filter, newest first."""
        pass

    @abstractmethod
    async def count_history(self, query: StockHistoryFilter) -> int:
        """Count ledger rows matching the filter (ignores limit/offset)."""
        pass
