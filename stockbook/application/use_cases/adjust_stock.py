"""Adjust Stock Use Case.

Manual in/out/adjustment with a ledger row.
"""

from dataclasses import dataclass

from stockbook.application.dto.mappers import stock_history_to_response
from stockbook.application.dto.requests import AdjustStockRequest
from stockbook.application.dto.responses import AdjustStockResponse
from stockbook.config import get_logger
from stockbook.core.entities import ItemType, MovementType, StockHistory
from stockbook.core.exceptions import (
    InsufficientStockError,
    MaterialNotFoundError,
    ProductNotFoundError,
    StockbookError,
    TransactionFailedError,
    ValidationError,
)
from stockbook.core.interfaces import IUnitOfWork

logger = get_logger(__name__)


@dataclass
class AdjustStockResult:
    """Result of a manual stock movement."""

    history: StockHistory
    previous_stock: float
    new_stock: float


class AdjustStockUseCase:
    """
    Move stock by hand.

    in: stock + q, out: stock - q, adjustment: q (absolute level).
    """

    def __init__(self, unit_of_work: IUnitOfWork | None = None):
        self._unit_of_work = unit_of_work

    async def _get_unit_of_work(self) -> IUnitOfWork:
        if self._unit_of_work is None:
            from stockbook.infrastructure.storage.sqlite import get_unit_of_work

            self._unit_of_work = await get_unit_of_work()
        return self._unit_of_work

    async def execute(self, request: AdjustStockRequest, user_id: str) -> AdjustStockResult:
        """Execute adjust stock use case."""
        if bool(request.material_id) == bool(request.product_id):
            raise ValidationError(
                "material_id", "Exactly one of material_id or product_id is required"
            )
        if request.type != MovementType.ADJUSTMENT and request.quantity <= 0:
            raise ValidationError("quantity", "Quantity must be greater than 0", request.quantity)

        if request.material_id:
            item_type, target_id = ItemType.MATERIAL, request.material_id
        else:
            item_type, target_id = ItemType.PRODUCT, request.product_id or ""

        logger.info(
            "adjust_stock_started",
            item_type=item_type.value,
            target_id=target_id,
            type=request.type.value,
            quantity=request.quantity,
        )

        uow = await self._get_unit_of_work()
        try:
            async with uow.transaction() as tx:
                level = await tx.get_target(item_type, target_id)
                if level is None or level.user_id != user_id:
                    if item_type == ItemType.MATERIAL:
                        raise MaterialNotFoundError(target_id)
                    raise ProductNotFoundError(target_id)

                if request.type == MovementType.IN:
                    new_stock = level.stock + request.quantity
                elif request.type == MovementType.OUT:
                    new_stock = level.stock - request.quantity
                else:
                    new_stock = request.quantity

                if new_stock < 0:
                    raise InsufficientStockError(target_id, request.quantity, level.stock)

                await tx.set_stock(item_type, target_id, new_stock)
                history = await tx.insert_stock_history(
                    StockHistory(
                        user_id=user_id,
                        material_id=request.material_id or None,
                        product_id=request.product_id or None,
                        type=request.type,
                        quantity=request.quantity,
                        description=request.description or f"Manual stock {request.type.value}",
                        reference=request.reference,
                    )
                )
        except StockbookError:
            raise
        except Exception as e:
            logger.error("adjust_stock_failed", target_id=target_id, error=str(e))
            raise TransactionFailedError("adjust_stock", str(e)) from e

        logger.info(
            "adjust_stock_complete",
            target_id=target_id,
            previous_stock=level.stock,
            new_stock=new_stock,
        )
        return AdjustStockResult(
            history=history,
            previous_stock=level.stock,
            new_stock=new_stock,
        )

    def to_response(self, result: AdjustStockResult) -> AdjustStockResponse:
        """Convert result to API response."""
        return AdjustStockResponse(
            history=stock_history_to_response(result.history),
            previous_stock=result.previous_stock,
            new_stock=result.new_stock,
        )
