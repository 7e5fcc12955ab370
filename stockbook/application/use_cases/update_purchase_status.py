"""Update Purchase Status Use Case."""

from dataclasses import dataclass

from stockbook.application.dto.mappers import purchase_to_response
from stockbook.application.dto.requests import UpdatePurchaseStatusRequest
from stockbook.application.dto.responses import PurchaseResponse
from stockbook.config import get_logger
from stockbook.core.entities import Purchase
from stockbook.core.services import PurchaseReconciler

logger = get_logger(__name__)


@dataclass
class UpdatePurchaseStatusResult:
    """Result of a status change."""

    purchase: Purchase


class UpdatePurchaseStatusUseCase:
    """Change a purchase status; stock and price effects run in the reconciler."""

    def __init__(self, reconciler: PurchaseReconciler | None = None):
        self._reconciler = reconciler

    async def _get_reconciler(self) -> PurchaseReconciler:
        if self._reconciler is None:
            from stockbook.application.services import get_purchase_reconciler

            self._reconciler = await get_purchase_reconciler()
        return self._reconciler

    async def execute(
        self,
        purchase_id: str,
        request: UpdatePurchaseStatusRequest,
        user_id: str,
    ) -> UpdatePurchaseStatusResult:
        """Execute update purchase status use case."""
        logger.info(
            "update_purchase_status_started",
            purchase_id=purchase_id,
            status=request.status,
        )

        reconciler = await self._get_reconciler()
        purchase = await reconciler.set_purchase_status(
            purchase_id, request.status.strip().lower(), user_id
        )
        return UpdatePurchaseStatusResult(purchase=purchase)

    def to_response(self, result: UpdatePurchaseStatusResult) -> PurchaseResponse:
        """Convert result to API response."""
        return purchase_to_response(result.purchase)
