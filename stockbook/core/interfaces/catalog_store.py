"""Abstract interface for material and product storage."""

from abc import ABC, abstractmethod

from stockbook.core.entities.catalog import Material, Product


class ICatalogStore(ABC):
    """Interface for material and product persistence."""

    @abstractmethod
    async def create_material(self, material: Material) -> Material:
        """Create a new material."""
        pass

    @abstractmethod
    async def get_material(self, material_id: str) -> Material | None:
        """Get material by ID."""
        pass

    @abstractmethod
    async def get_material_by_code(self, user_id: str, code: str) -> Material | None:
        """Get a user's material by code."""
        pass

    @abstractmethod
    async def list_materials(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> list[Material]:
        """List a user's materials."""
        pass

    @abstractmethod
    async def create_product(self, product: Product) -> Product:
        """Create a new product."""
        pass

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None:
        """Get product by ID."""
        pass

    @abstractmethod
    async def get_product_by_sku(self, user_id: str, sku: str) -> Product | None:
        """Get a user's product by SKU."""
        pass

    @abstractmethod
    async def list_products(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> list[Product]:
        """List a user's products."""
        pass
