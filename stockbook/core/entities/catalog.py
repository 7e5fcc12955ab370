"""
Catalog domain entities.

Materials and products are the stock-carrying targets replenished by purchases.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ItemType(str, Enum):
    """Kind of stock target a purchase line refers to."""

    MATERIAL = "material"
    PRODUCT = "product"


# (kind, id) pair identifying one stock target
TargetKey = tuple[ItemType, str]


class Material(BaseModel):
    """A raw material tracked in stock."""

    id: str | None = None
    user_id: str
    code: str
    name: str
    unit: str = "pcs"
    stock: float = 0.0
    price: float = 0.0
    min_stock: float = 0.0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def stock_value(self) -> float:
        """Stock valuation at the current unit price."""
        return self.stock * self.price


class Product(BaseModel):
    """A finished product tracked in stock."""

    id: str | None = None
    user_id: str
    sku: str
    name: str
    unit: str = "pcs"
    stock: float = 0.0
    price: float = 0.0
    min_stock: float = 0.0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def stock_value(self) -> float:
        """Stock valuation at the current unit price."""
        return self.stock * self.price


class StockLevel(BaseModel):
    """Point-in-time stock and price of one material or product."""

    item_type: ItemType
    target_id: str
    user_id: str | None = None
    code: str | None = None  # material code or product sku
    name: str | None = None
    stock: float = 0.0
    price: float = 0.0

    @property
    def key(self) -> TargetKey:
        return (self.item_type, self.target_id)
