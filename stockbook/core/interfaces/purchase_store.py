"""Abstract interface for purchase reads."""

from abc import ABC, abstractmethod

from stockbook.core.entities.purchase import Purchase


class IPurchaseStore(ABC):
    """Interface for purchase queries outside a transaction."""

    @abstractmethod
    async def get_purchase(self, purchase_id: str) -> Purchase | None:
        """Get purchase by ID with items and additional costs."""
        pass

    @abstractmethod
    async def list_purchases(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> list[Purchase]:
        """List a user's purchases, newest first."""
        pass

    @abstractmethod
    async def count_purchases(self, user_id: str) -> int:
        """Count every purchase the user owns."""
        pass

    @abstractmethod
    async def list_suppliers(self, user_id: str) -> list[str]:
        """Distinct supplier names across the user's purchases, sorted."""
        pass
