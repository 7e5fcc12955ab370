"""
Import Purchases Use Case.

Turns already-parsed spreadsheet rows into purchases. Each row is created in
its own transaction with direct price overwrite; a failing row is reported
and the remaining rows still import.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from stockbook.application.dto.requests import ImportPurchaseRow, ImportPurchasesRequest
from stockbook.application.dto.responses import (
    ImportPurchasesResponse,
    ImportRowErrorResponse,
)
from stockbook.application.use_cases.create_purchase import (
    parse_purchase_datetime,
    parse_purchase_status,
)
from stockbook.config import get_logger
from stockbook.core.entities import (
    AdditionalCost,
    DiscountType,
    ItemType,
    OrderType,
    PriceUpdateMode,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
)
from stockbook.core.exceptions import StockbookError, ValidationError
from stockbook.core.interfaces import ICatalogStore
from stockbook.core.services import PurchaseReconciler

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)

# Name (CODE) - <qty> <unit> @ <price>
ITEM_PATTERN = re.compile(
    r"^(.+?)\s*\(([^)]+)\)\s*-\s*(\d+(?:\.\d+)?)\s+(\w+)\s*@\s*(\d+(?:\.\d+)?)$"
)

IMPORT_LEDGER_LABEL = "Purchase import"


@dataclass
class ItemEntry:
    """One parsed entry of the Items cell."""

    name: str
    code: str
    quantity: float
    unit: str
    price: float


def parse_items_cell(cell: str | None) -> list[ItemEntry]:
    """Split and parse the ';'-separated Items cell."""
    entries = [part.strip() for part in (cell or "").split(";") if part.strip()]
    if not entries:
        raise ValidationError("Items", "No items found", cell)

    parsed = []
    for entry in entries:
        match = ITEM_PATTERN.match(entry)
        if match is None:
            raise ValidationError("Items", f"Invalid item format: {entry}", entry)
        name, code, quantity, unit, price = match.groups()
        parsed.append(
            ItemEntry(
                name=name.strip(),
                code=code.strip(),
                quantity=float(quantity),
                unit=unit,
                price=float(price),
            )
        )
    return parsed


@dataclass
class ImportRowError:
    """Failure of one row."""

    row: int
    invoice_number: str | None
    error: str


@dataclass
class ImportPurchasesResult:
    """Outcome of an import run."""

    total_rows: int
    purchase_ids: list[str] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)


class ImportPurchasesUseCase:
    """Import purchases from parsed sheet rows."""

    def __init__(
        self,
        reconciler: PurchaseReconciler | None = None,
        catalog_store: ICatalogStore | None = None,
    ):
        self._reconciler = reconciler
        self._catalog_store = catalog_store

    async def _get_reconciler(self) -> PurchaseReconciler:
        if self._reconciler is None:
            from stockbook.application.services import get_purchase_reconciler

            self._reconciler = await get_purchase_reconciler()
        return self._reconciler

    async def _get_catalog_store(self) -> ICatalogStore:
        if self._catalog_store is None:
            from stockbook.infrastructure.storage.sqlite import get_catalog_store

            self._catalog_store = await get_catalog_store()
        return self._catalog_store

    async def execute(
        self, request: ImportPurchasesRequest, user_id: str
    ) -> ImportPurchasesResult:
        """Execute import use case."""
        logger.info("import_purchases_started", rows=len(request.rows))

        reconciler = await self._get_reconciler()
        result = ImportPurchasesResult(total_rows=len(request.rows))

        for index, row in enumerate(request.rows, start=1):
            try:
                draft = await self._build_draft(row, user_id)
                purchase = await reconciler.complete_purchase_creation(
                    draft,
                    user_id,
                    PriceUpdateMode.DIRECT_OVERWRITE,
                    ledger_label=IMPORT_LEDGER_LABEL,
                )
                result.purchase_ids.append(purchase.id or "")
            except StockbookError as e:
                logger.warning(
                    "import_row_failed",
                    row=index,
                    invoice_number=row.invoice_number,
                    error=e.message,
                )
                result.errors.append(
                    ImportRowError(row=index, invoice_number=row.invoice_number, error=e.message)
                )

        logger.info(
            "import_purchases_complete",
            imported=len(result.purchase_ids),
            failed=len(result.errors),
        )
        return result

    async def _build_draft(self, row: ImportPurchaseRow, user_id: str) -> Purchase:
        if not row.supplier or not row.supplier.strip():
            raise ValidationError("Supplier", "Supplier is required", row.supplier)

        status = self._parse_status(row.status)
        order_type = self._parse_choice(row.order_type, OrderType, OrderType.OFFLINE, "Order Type")
        discount_type = self._parse_choice(
            row.discount_type, DiscountType, DiscountType.NOMINAL, "Discount Type"
        )

        items = [await self._resolve_item(entry, user_id) for entry in parse_items_cell(row.items)]

        costs = []
        if row.additional_costs:
            costs.append(AdditionalCost(description="Additional costs", amount=row.additional_costs))

        draft = Purchase(
            user_id=user_id,
            invoice_number=(row.invoice_number or "").strip() or None,
            supplier=row.supplier.strip(),
            reference=row.reference or "",
            notes=row.notes or "",
            order_type=order_type,
            status=status,
            discount=row.discount or 0.0,
            discount_type=discount_type,
            subtotal=row.subtotal,
            total=row.total,
            items=items,
            additional_costs=costs,
        )
        created_at = parse_purchase_datetime(row.date)
        if created_at is not None:
            draft.created_at = created_at
        return draft

    async def _resolve_item(self, entry: ItemEntry, user_id: str) -> PurchaseItem:
        """Resolve CODE against material codes first, then product SKUs."""
        store = await self._get_catalog_store()

        material = await store.get_material_by_code(user_id, entry.code)
        if material is not None:
            return PurchaseItem(
                type=ItemType.MATERIAL,
                material_id=material.id,
                quantity=entry.quantity,
                unit=entry.unit,
                price=entry.price,
            )

        product = await store.get_product_by_sku(user_id, entry.code)
        if product is not None:
            return PurchaseItem(
                type=ItemType.PRODUCT,
                product_id=product.id,
                quantity=entry.quantity,
                unit=entry.unit,
                price=entry.price,
            )

        raise ValidationError("Items", f"Material or product not found: {entry.code}", entry.code)

    @staticmethod
    def _parse_status(value: str | None) -> PurchaseStatus:
        if not value or value.strip().lower() == "processing":
            return PurchaseStatus.PENDING
        return parse_purchase_status(value)

    @staticmethod
    def _parse_choice(
        value: str | None, enum_type: type[E], default: E, field_name: str
    ) -> E:
        if not value or not value.strip():
            return default
        try:
            return enum_type(value.strip().lower())
        except ValueError:
            raise ValidationError(field_name, f"Invalid value: {value}", value) from None

    def to_response(self, result: ImportPurchasesResult) -> ImportPurchasesResponse:
        """Convert result to API response."""
        return ImportPurchasesResponse(
            total_rows=result.total_rows,
            imported=len(result.purchase_ids),
            failed=len(result.errors),
            purchase_ids=result.purchase_ids,
            errors=[
                ImportRowErrorResponse(
                    row=error.row,
                    invoice_number=error.invoice_number,
                    error=error.error,
                )
                for error in result.errors
            ],
        )
