"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from pydantic import BaseModel, ConfigDict, Field

from stockbook.core.entities import (
    DiscountType,
    ItemType,
    MovementType,
    OrderType,
)

# --- Purchases ---


class PurchaseItemRequest(BaseModel):
    """A single purchase line referencing one material or product."""

    type: ItemType = Field(..., description="Target kind: material or product")
    material_id: str | None = Field(default=None, description="Material ID (type=material)")
    product_id: str | None = Field(default=None, description="Product ID (type=product)")
    quantity: float = Field(..., description="Purchased quantity (> 0)")
    unit: str = Field(default="pcs", description="Unit of measure")
    price: float = Field(..., description="Unit price (>= 0)")
    item_discount: float = Field(default=0.0, ge=0, description="Line discount value")
    item_discount_type: DiscountType = Field(
        default=DiscountType.PERCENTAGE,
        description="How item_discount is applied",
    )
    total_price: float | None = Field(
        default=None,
        description="Line total (computed when omitted)",
    )


class AdditionalCostRequest(BaseModel):
    """Landed cost attached to a purchase."""

    description: str = Field(default="", description="What the cost is for")
    amount: float = Field(..., ge=0, description="Cost amount")


class CreatePurchaseRequest(BaseModel):
    """Request to create a purchase, optionally already completed."""

    invoice_number: str | None = Field(
        default=None,
        description="Invoice number (generated as INV/PO/YYMMDD/NNN when omitted)",
    )
    supplier: str = Field(..., description="Supplier name")
    reference: str = Field(default="", description="Supplier reference")
    notes: str = Field(default="", description="Free-form notes")
    order_type: OrderType = Field(default=OrderType.OFFLINE)
    status: str = Field(default="pending", description="pending, completed or cancelled")
    discount: float = Field(default=0.0, ge=0)
    discount_type: DiscountType = Field(default=DiscountType.NOMINAL)
    subtotal: float | None = Field(default=None, description="Computed when omitted")
    total: float | None = Field(default=None, description="Computed when omitted")
    auto_update_price: bool = Field(
        default=False,
        description="Recompute weighted-average prices on completion",
    )
    date: str | None = Field(
        default=None,
        description="Backdated purchase date (YYYY-MM-DD)",
        examples=["2024-01-15"],
    )
    time: str | None = Field(
        default=None,
        description="Backdated purchase time (HH:MM), used with date",
        examples=["09:30"],
    )
    items: list[PurchaseItemRequest] = Field(default_factory=list)
    additional_costs: list[AdditionalCostRequest] = Field(default_factory=list)


class UpdatePurchaseStatusRequest(BaseModel):
    """Request to change a purchase status."""

    status: str = Field(
        ...,
        description="Target status",
        examples=["completed", "cancelled"],
    )


class BulkDeletePurchasesRequest(BaseModel):
    """Request to delete several purchases at once."""

    ids: list[str] = Field(..., description="Purchase IDs to delete")


class ImportPurchaseRow(BaseModel):
    """One already-parsed spreadsheet row of the purchase import sheet."""

    model_config = ConfigDict(populate_by_name=True)

    invoice_number: str | None = Field(default=None, alias="Invoice Number")
    date: str | None = Field(default=None, alias="Date")
    supplier: str | None = Field(default=None, alias="Supplier")
    reference: str | None = Field(default=None, alias="Reference")
    order_type: str | None = Field(default=None, alias="Order Type")
    status: str | None = Field(default=None, alias="Status")
    items: str | None = Field(
        default=None,
        alias="Items",
        description="'; '-separated entries: Name (CODE) - <qty> <unit> @ <price>",
    )
    subtotal: float | None = Field(default=None, alias="Subtotal")
    discount: float | None = Field(default=None, alias="Discount")
    discount_type: str | None = Field(default=None, alias="Discount Type")
    additional_costs: float | None = Field(default=None, alias="Additional Costs")
    total: float | None = Field(default=None, alias="Total")
    notes: str | None = Field(default=None, alias="Notes")


class ImportPurchasesRequest(BaseModel):
    """Request to import purchases from parsed spreadsheet rows."""

    rows: list[ImportPurchaseRow] = Field(..., description="Parsed sheet rows")


# --- Stock history ---


class AdjustStockRequest(BaseModel):
    """Manual stock movement for one material or product."""

    material_id: str | None = Field(default=None)
    product_id: str | None = Field(default=None)
    type: MovementType = Field(..., description="in, out or adjustment")
    quantity: float = Field(
        ...,
        ge=0,
        description="Moved quantity, or the absolute level for an adjustment",
    )
    description: str = Field(default="")
    reference: str = Field(default="")


# --- Catalog ---


class CreateMaterialRequest(BaseModel):
    """Request to create a material."""

    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit: str = Field(default="pcs")
    stock: float = Field(default=0.0)
    price: float = Field(default=0.0, ge=0)
    min_stock: float = Field(default=0.0, ge=0)


class CreateProductRequest(BaseModel):
    """Request to create a product."""

    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit: str = Field(default="pcs")
    stock: float = Field(default=0.0)
    price: float = Field(default=0.0, ge=0)
    min_stock: float = Field(default=0.0, ge=0)
