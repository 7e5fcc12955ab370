"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import datetime

from pydantic import BaseModel, Field

# --- Common ---


class DatabaseHealthResponse(BaseModel):
    """SQLite health status."""

    available: bool
    latency_ms: float | None = None
    schema_version: str | None = None
    pending_migrations: list[str] = Field(default_factory=list)
    pool_size: int | None = None
    idle_connections: int | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: DatabaseHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. PURCHASE_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)


class PaginationMeta(BaseModel):
    """Page-based pagination metadata."""

    total: int
    page: int
    limit: int
    total_pages: int


# --- Purchases ---


class PurchaseItemResponse(BaseModel):
    """Purchase line response DTO."""

    id: int | None = None
    type: str
    material_id: str | None = None
    product_id: str | None = None
    target_code: str | None = None
    target_name: str | None = None
    quantity: float
    unit: str
    price: float
    item_discount: float
    item_discount_type: str
    total_price: float


class AdditionalCostResponse(BaseModel):
    """Additional cost response DTO."""

    id: int | None = None
    description: str
    amount: float


class PurchaseResponse(BaseModel):
    """Purchase response DTO."""

    id: str
    invoice_number: str | None = None
    supplier: str
    reference: str
    notes: str
    order_type: str
    status: str
    discount: float
    discount_type: str
    subtotal: float
    total: float
    auto_update_price: bool
    version: int
    items: list[PurchaseItemResponse] = Field(default_factory=list)
    additional_costs: list[AdditionalCostResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PurchaseListResponse(BaseModel):
    """List of purchases."""

    purchases: list[PurchaseResponse]
    total: int


class DeletePurchaseResponse(BaseModel):
    """Response for a single purchase deletion."""

    success: bool = True
    message: str


class BulkDeletePurchasesResponse(BaseModel):
    """Response for a bulk purchase deletion."""

    deleted_count: int
    deleted_ids: list[str]
    reversed_ids: list[str]
    skipped_ids: list[str]


class ImportRowErrorResponse(BaseModel):
    """Failure of one import row."""

    row: int = Field(..., description="1-based row number")
    invoice_number: str | None = None
    error: str


class ImportPurchasesResponse(BaseModel):
    """Summary of a purchase import."""

    total_rows: int
    imported: int
    failed: int
    purchase_ids: list[str]
    errors: list[ImportRowErrorResponse]


# --- Stock history ---


class StockHistoryResponse(BaseModel):
    """Stock ledger row response DTO."""

    id: int
    material_id: str | None = None
    product_id: str | None = None
    type: str
    quantity: float
    description: str
    reference: str
    created_at: datetime


class StockHistoryListResponse(BaseModel):
    """Paginated stock ledger."""

    data: list[StockHistoryResponse]
    meta: PaginationMeta


class AdjustStockResponse(BaseModel):
    """Response for a manual stock movement."""

    history: StockHistoryResponse
    previous_stock: float
    new_stock: float


# --- Catalog ---


class MaterialResponse(BaseModel):
    """Material response DTO."""

    id: str
    code: str
    name: str
    unit: str
    stock: float
    price: float
    min_stock: float
    stock_value: float
    created_at: datetime
    updated_at: datetime


class MaterialListResponse(BaseModel):
    """List of materials."""

    materials: list[MaterialResponse]
    total: int


class ProductResponse(BaseModel):
    """Product response DTO."""

    id: str
    sku: str
    name: str
    unit: str
    stock: float
    price: float
    min_stock: float
    stock_value: float
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """List of products."""

    products: list[ProductResponse]
    total: int
