"""Purchase domain entities."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from stockbook.core.entities.catalog import ItemType, StockLevel, TargetKey


class PurchaseStatus(str, Enum):
    """Lifecycle status of a purchase."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    """Channel the purchase was ordered through."""

    ONLINE = "online"
    OFFLINE = "offline"


class DiscountType(str, Enum):
    """How a discount value is interpreted."""

    NOMINAL = "nominal"
    PERCENTAGE = "percentage"


class PriceUpdateMode(str, Enum):
    """Strategy for rewriting target prices when a purchase completes."""

    WEIGHTED_AVERAGE = "weighted_average"
    DIRECT_OVERWRITE = "direct_overwrite"
    NONE = "none"


def apply_discount(amount: float, discount: float, discount_type: DiscountType) -> float:
    """Return amount less a nominal or percentage discount."""
    if not discount:
        return amount
    if discount_type == DiscountType.PERCENTAGE:
        return amount - amount * discount / 100
    return amount - discount


class PurchaseItem(BaseModel):
    """A single line on a purchase, referencing one material or product."""

    id: int | None = None
    purchase_id: str | None = None
    type: ItemType
    material_id: str | None = None
    product_id: str | None = None
    quantity: float
    unit: str = "pcs"
    price: float
    item_discount: float = 0.0
    item_discount_type: DiscountType = DiscountType.PERCENTAGE
    total_price: float | None = None

    # Stock/price of the referenced target as read by the loader
    target: StockLevel | None = None

    @model_validator(mode="after")
    def compute_total_price(self) -> "PurchaseItem":
        """Compute total_price from quantity, price and item discount if not set."""
        if self.total_price is None:
            self.total_price = apply_discount(
                self.quantity * self.price,
                self.item_discount,
                self.item_discount_type,
            )
        return self

    @property
    def target_id(self) -> str | None:
        if self.type == ItemType.MATERIAL:
            return self.material_id
        return self.product_id

    @property
    def target_key(self) -> TargetKey:
        return (self.type, self.target_id or "")


class AdditionalCost(BaseModel):
    """Landed cost (shipping, handling) attached to a purchase."""

    id: int | None = None
    purchase_id: str | None = None
    description: str = ""
    amount: float = 0.0


class Purchase(BaseModel):
    """
    A purchase from a supplier.

    Totals are derived from items, discount and additional costs unless
    supplied explicitly.
    """

    id: str | None = None
    user_id: str
    invoice_number: str | None = None
    supplier: str
    reference: str = ""
    notes: str = ""
    order_type: OrderType = OrderType.OFFLINE
    status: PurchaseStatus = PurchaseStatus.PENDING
    discount: float = 0.0
    discount_type: DiscountType = DiscountType.NOMINAL
    subtotal: float | None = None
    total: float | None = None
    auto_update_price: bool = False
    version: int = 1
    items: list[PurchaseItem] = Field(default_factory=list)
    additional_costs: list[AdditionalCost] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def compute_totals(self) -> "Purchase":
        """Fill subtotal and total when they were not supplied."""
        if self.subtotal is None:
            self.subtotal = sum(item.total_price or 0.0 for item in self.items)
        if self.total is None:
            self.total = (
                apply_discount(self.subtotal, self.discount, self.discount_type)
                + self.additional_costs_total
            )
        return self

    @property
    def additional_costs_total(self) -> float:
        return sum(cost.amount for cost in self.additional_costs)

    @property
    def total_quantity(self) -> float:
        return sum(item.quantity for item in self.items)

    @property
    def ledger_reference(self) -> str:
        """Reference string written to stock history rows."""
        return self.invoice_number or self.id or ""

    @property
    def display_reference(self) -> str:
        """Human-facing label used in stock history descriptions."""
        return self.reference or self.invoice_number or self.id or ""
