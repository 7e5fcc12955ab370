"""Abstract interface for transactional purchase and stock writes."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from stockbook.core.entities.catalog import ItemType, StockLevel
from stockbook.core.entities.purchase import Purchase, PurchaseStatus
from stockbook.core.entities.stock_history import StockHistory


class IPurchaseTransaction(ABC):
    """
    Storage operations bound to one open transaction.

    Everything done through a handle commits or rolls back together.
    """

    @abstractmethod
    async def load_purchase(self, purchase_id: str) -> Purchase | None:
        """Load a purchase with items (and their stock levels) and additional costs."""
        pass

    @abstractmethod
    async def insert_purchase(self, purchase: Purchase) -> Purchase:
        """Insert a purchase together with its items and additional costs."""
        pass

    @abstractmethod
    async def get_target(
        self, item_type: ItemType, target_id: str
    ) -> StockLevel | None:
        """Read current stock and price of a material or product."""
        pass

    @abstractmethod
    async def increment_stock(
        self, item_type: ItemType, target_id: str, delta: float
    ) -> bool:
        """Add delta (may be negative) to stock. Returns False if the target is missing."""
        pass

    @abstractmethod
    async def set_stock(self, item_type: ItemType, target_id: str, stock: float) -> bool:
        """Overwrite stock. Returns False if the target is missing."""
        pass

    @abstractmethod
    async def set_price(self, item_type: ItemType, target_id: str, price: float) -> bool:
        """Overwrite unit price. Returns False if the target is missing."""
        pass

    @abstractmethod
    async def insert_stock_history(self, row: StockHistory) -> StockHistory:
        """Append a ledger row."""
        pass

    @abstractmethod
    async def update_purchase_status(
        self,
        purchase_id: str,
        status: PurchaseStatus,
        expected_version: int,
    ) -> bool:
        """
        Write a new status if the stored version still equals expected_version.

        Increments the version. Returns False on a version mismatch.
        """
        pass

    @abstractmethod
    async def delete_purchase(self, purchase_id: str) -> bool:
        """Delete a purchase; items and additional costs cascade."""
        pass

    @abstractmethod
    async def invoice_number_exists(self, user_id: str, invoice_number: str) -> bool:
        """Check whether the user already has a purchase with this invoice number."""
        pass

    @abstractmethod
    async def count_purchases_between(
        self, user_id: str, start: datetime, end: datetime
    ) -> int:
        """Count a user's purchases created in [start, end)."""
        pass


class IUnitOfWork(ABC):
    """Factory for transactional handles."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[IPurchaseTransaction]:
        """
        Open a transaction.

        Commits when the block exits normally, rolls back on exception.
        """
        pass
