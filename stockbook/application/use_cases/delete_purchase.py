"""Delete Purchase Use Cases: single and bulk."""

from dataclasses import dataclass

from stockbook.application.dto.requests import BulkDeletePurchasesRequest
from stockbook.application.dto.responses import (
    BulkDeletePurchasesResponse,
    DeletePurchaseResponse,
)
from stockbook.config import get_logger
from stockbook.core.services import BulkDeleteResult, PurchaseReconciler

logger = get_logger(__name__)


@dataclass
class DeletePurchaseResult:
    """Result of deleting one purchase."""

    purchase_id: str


class DeletePurchaseUseCase:
    """Delete a purchase, reversing stock when it was completed."""

    def __init__(self, reconciler: PurchaseReconciler | None = None):
        self._reconciler = reconciler

    async def _get_reconciler(self) -> PurchaseReconciler:
        if self._reconciler is None:
            from stockbook.application.services import get_purchase_reconciler

            self._reconciler = await get_purchase_reconciler()
        return self._reconciler

    async def execute(self, purchase_id: str, user_id: str) -> DeletePurchaseResult:
        """Execute delete purchase use case."""
        reconciler = await self._get_reconciler()
        await reconciler.delete_purchase(purchase_id, user_id)
        return DeletePurchaseResult(purchase_id=purchase_id)

    def to_response(self, result: DeletePurchaseResult) -> DeletePurchaseResponse:
        """Convert result to API response."""
        return DeletePurchaseResponse(
            success=True,
            message=f"Purchase {result.purchase_id} deleted successfully",
        )


class BulkDeletePurchasesUseCase:
    """Delete several purchases in one transaction."""

    def __init__(self, reconciler: PurchaseReconciler | None = None):
        self._reconciler = reconciler

    async def _get_reconciler(self) -> PurchaseReconciler:
        if self._reconciler is None:
            from stockbook.application.services import get_purchase_reconciler

            self._reconciler = await get_purchase_reconciler()
        return self._reconciler

    async def execute(
        self, request: BulkDeletePurchasesRequest, user_id: str
    ) -> BulkDeleteResult:
        """Execute bulk delete use case."""
        logger.info("bulk_delete_purchases_started", count=len(request.ids))
        reconciler = await self._get_reconciler()
        return await reconciler.bulk_delete_purchases(request.ids, user_id)

    def to_response(self, result: BulkDeleteResult) -> BulkDeletePurchasesResponse:
        """Convert result to API response."""
        return BulkDeletePurchasesResponse(
            deleted_count=result.deleted_count,
            deleted_ids=result.deleted_ids,
            reversed_ids=result.reversed_ids,
            skipped_ids=result.skipped_ids,
        )
