"""Core domain entities."""

from stockbook.core.entities.catalog import (
    ItemType,
    Material,
    Product,
    StockLevel,
    TargetKey,
)
from stockbook.core.entities.purchase import (
    AdditionalCost,
    DiscountType,
    OrderType,
    PriceUpdateMode,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
    apply_discount,
)
from stockbook.core.entities.stock_history import (
    MovementType,
    StockHistory,
    StockHistoryFilter,
)

__all__ = [
    # Catalog
    "ItemType",
    "Material",
    "Product",
    "StockLevel",
    "TargetKey",
    # Purchase
    "AdditionalCost",
    "DiscountType",
    "OrderType",
    "PriceUpdateMode",
    "Purchase",
    "PurchaseItem",
    "PurchaseStatus",
    "apply_discount",
    # Stock history
    "MovementType",
    "StockHistory",
    "StockHistoryFilter",
]
