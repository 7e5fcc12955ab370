"""
Create Purchase Use Case.

Inserts a purchase, completing it immediately when asked.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from stockbook.application.dto.mappers import purchase_to_response
from stockbook.application.dto.requests import CreatePurchaseRequest
from stockbook.application.dto.responses import PurchaseResponse
from stockbook.config import get_logger
from stockbook.core.entities import (
    AdditionalCost,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
)
from stockbook.core.exceptions import InvalidStatusError, ValidationError
from stockbook.core.services import PurchaseReconciler

logger = get_logger(__name__)


def parse_purchase_status(value: str) -> PurchaseStatus:
    """Parse a status string, raising InvalidStatusError for unknown values."""
    try:
        return PurchaseStatus(value.strip().lower())
    except (ValueError, AttributeError):
        raise InvalidStatusError(value, [s.value for s in PurchaseStatus]) from None


def parse_purchase_datetime(date_str: str | None, time_str: str | None = None) -> datetime | None:
    """
    Combine a backdated date and optional HH:MM time into a UTC datetime.

    Returns None when no date is given.
    """
    if not date_str:
        return None
    try:
        parsed = datetime.fromisoformat(date_str.strip())
        if time_str:
            hours, minutes = (int(part) for part in time_str.strip().split(":")[:2])
            parsed = parsed.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    except ValueError:
        raise ValidationError("date", "Invalid date or time", f"{date_str} {time_str or ''}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class CreatePurchaseResult:
    """Result of creating a purchase."""

    purchase: Purchase


class CreatePurchaseUseCase:
    """Create a purchase; completed purchases credit stock in the same transaction."""

    def __init__(self, reconciler: PurchaseReconciler | None = None):
        self._reconciler = reconciler

    async def _get_reconciler(self) -> PurchaseReconciler:
        if self._reconciler is None:
            from stockbook.application.services import get_purchase_reconciler

            self._reconciler = await get_purchase_reconciler()
        return self._reconciler

    async def execute(
        self, request: CreatePurchaseRequest, user_id: str
    ) -> CreatePurchaseResult:
        """Execute create purchase use case."""
        logger.info(
            "create_purchase_started",
            supplier=request.supplier,
            status=request.status,
            items=len(request.items),
        )

        status = parse_purchase_status(request.status)
        created_at = parse_purchase_datetime(request.date, request.time)

        draft = Purchase(
            user_id=user_id,
            invoice_number=request.invoice_number or None,
            supplier=request.supplier,
            reference=request.reference,
            notes=request.notes,
            order_type=request.order_type,
            status=status,
            discount=request.discount,
            discount_type=request.discount_type,
            subtotal=request.subtotal,
            total=request.total,
            auto_update_price=request.auto_update_price,
            items=[PurchaseItem(**item.model_dump()) for item in request.items],
            additional_costs=[
                AdditionalCost(**cost.model_dump()) for cost in request.additional_costs
            ],
        )
        if created_at is not None:
            draft.created_at = created_at

        reconciler = await self._get_reconciler()
        purchase = await reconciler.complete_purchase_creation(draft, user_id)

        logger.info(
            "create_purchase_complete",
            purchase_id=purchase.id,
            invoice_number=purchase.invoice_number,
        )
        return CreatePurchaseResult(purchase=purchase)

    def to_response(self, result: CreatePurchaseResult) -> PurchaseResponse:
        """Convert result to API response."""
        return purchase_to_response(result.purchase)
