"""Stock history (ledger) domain entities."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class MovementType(str, Enum):
    """Types of stock movements."""

    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class StockHistory(BaseModel):
    """One append-only ledger row recording a stock change."""

    id: int | None = None
    user_id: str
    material_id: str | None = None
    product_id: str | None = None
    type: MovementType
    quantity: float  # positive for in/out, absolute level for adjustment
    description: str = ""
    reference: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_single_target(self) -> "StockHistory":
        """Exactly one of material_id / product_id must be set."""
        if bool(self.material_id) == bool(self.product_id):
            raise ValueError("stock history must reference exactly one of material_id or product_id")
        return self


class StockHistoryFilter(BaseModel):
    """Query filter for listing stock history."""

    user_id: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    item_type: str | None = None  # "material" | "product"
    type: MovementType | None = None
    material_id: str | None = None
    product_id: str | None = None
    limit: int = 10
    offset: int = 0
