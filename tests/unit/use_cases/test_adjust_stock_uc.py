"""Tests for AdjustStockUseCase."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from stockbook.application.dto.requests import AdjustStockRequest
from stockbook.application.use_cases.adjust_stock import AdjustStockUseCase
from stockbook.core.entities import ItemType, MovementType, StockLevel
from stockbook.core.exceptions import (
    InsufficientStockError,
    MaterialNotFoundError,
    ProductNotFoundError,
    TransactionFailedError,
    ValidationError,
)
from stockbook.core.interfaces import IUnitOfWork


class _FakeUnitOfWork(IUnitOfWork):
    def __init__(self, tx):
        self.tx = tx

    @asynccontextmanager
    async def transaction(self):
        yield self.tx


@pytest.fixture
def mock_tx():
    tx = AsyncMock()
    tx.get_target.return_value = StockLevel(
        item_type=ItemType.MATERIAL, target_id="m1", user_id="user-1", stock=10, price=5
    )
    tx.insert_stock_history.side_effect = lambda row: row.model_copy(update={"id": 1})
    return tx


@pytest.fixture
def use_case(mock_tx):
    return AdjustStockUseCase(unit_of_work=_FakeUnitOfWork(mock_tx))


class TestAdjustStockUseCase:
    @pytest.mark.parametrize(
        ("movement", "quantity", "expected"),
        [
            (MovementType.IN, 4, 14),
            (MovementType.OUT, 4, 6),
            (MovementType.ADJUSTMENT, 3, 3),
            (MovementType.ADJUSTMENT, 0, 0),
        ],
    )
    async def test_new_stock(self, use_case, mock_tx, movement, quantity, expected):
        request = AdjustStockRequest(material_id="m1", type=movement, quantity=quantity)

        result = await use_case.execute(request, "user-1")

        assert result.previous_stock == 10
        assert result.new_stock == expected
        mock_tx.set_stock.assert_awaited_once_with(ItemType.MATERIAL, "m1", expected)
        history = mock_tx.insert_stock_history.call_args[0][0]
        assert history.type == movement
        assert history.quantity == quantity
        assert history.material_id == "m1"

    async def test_out_below_zero_rejected(self, use_case, mock_tx):
        request = AdjustStockRequest(material_id="m1", type=MovementType.OUT, quantity=11)

        with pytest.raises(InsufficientStockError):
            await use_case.execute(request, "user-1")
        mock_tx.set_stock.assert_not_called()

    async def test_requires_exactly_one_target(self, use_case):
        with pytest.raises(ValidationError):
            await use_case.execute(
                AdjustStockRequest(type=MovementType.IN, quantity=1), "user-1"
            )
        with pytest.raises(ValidationError):
            await use_case.execute(
                AdjustStockRequest(
                    material_id="m1", product_id="p1", type=MovementType.IN, quantity=1
                ),
                "user-1",
            )

    async def test_zero_quantity_in_rejected(self, use_case):
        with pytest.raises(ValidationError):
            await use_case.execute(
                AdjustStockRequest(material_id="m1", type=MovementType.IN, quantity=0), "user-1"
            )

    async def test_other_users_target_not_found(self, use_case, mock_tx):
        mock_tx.get_target.return_value = StockLevel(
            item_type=ItemType.PRODUCT, target_id="p1", user_id="user-2", stock=1
        )
        with pytest.raises(ProductNotFoundError):
            await use_case.execute(
                AdjustStockRequest(product_id="p1", type=MovementType.IN, quantity=1), "user-1"
            )

    async def test_missing_material(self, use_case, mock_tx):
        mock_tx.get_target.return_value = None
        with pytest.raises(MaterialNotFoundError):
            await use_case.execute(
                AdjustStockRequest(material_id="m9", type=MovementType.IN, quantity=1), "user-1"
            )

    async def test_storage_failure_wrapped(self, use_case, mock_tx):
        mock_tx.set_stock.side_effect = RuntimeError("disk full")
        with pytest.raises(TransactionFailedError):
            await use_case.execute(
                AdjustStockRequest(material_id="m1", type=MovementType.IN, quantity=1), "user-1"
            )

    def test_to_response(self, mock_tx):
        from stockbook.application.use_cases.adjust_stock import AdjustStockResult
        from stockbook.core.entities import StockHistory

        result = AdjustStockResult(
            history=StockHistory(
                id=3, user_id="user-1", material_id="m1", type=MovementType.IN, quantity=2
            ),
            previous_stock=1,
            new_stock=3,
        )
        response = AdjustStockUseCase().to_response(result)
        assert response.history.id == 3
        assert response.new_stock == 3
