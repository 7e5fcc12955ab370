"""Tests for PurchaseReconciler against a real migrated SQLite database."""

import asyncio
import re
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from stockbook.core.entities import (
    AdditionalCost,
    ItemType,
    Material,
    MovementType,
    PriceUpdateMode,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
)
from stockbook.core.exceptions import (
    InsufficientStockError,
    InvalidStatusError,
    InvalidTransitionError,
    MaterialNotFoundError,
    ProductNotFoundError,
    PurchaseAccessDeniedError,
    PurchaseNotFoundError,
    TransactionFailedError,
    ValidationError,
)
from stockbook.core.interfaces import IUnitOfWork
from stockbook.core.services import PurchaseReconciler
from stockbook.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLitePurchaseStore,
    SQLiteUnitOfWork,
)
from stockbook.infrastructure.storage.sqlite.unit_of_work import SQLitePurchaseTransaction


def _item(material_id: str, quantity: float, price: float) -> PurchaseItem:
    return PurchaseItem(
        type=ItemType.MATERIAL, material_id=material_id, quantity=quantity, price=price
    )


def _draft(user_id: str, *items: PurchaseItem, **kwargs) -> Purchase:
    return Purchase(user_id=user_id, supplier="Acme Supplies", items=list(items), **kwargs)


@pytest.fixture
def reconciler(db_pool) -> PurchaseReconciler:
    return PurchaseReconciler(SQLiteUnitOfWork(), SQLitePurchaseStore())


@pytest.fixture
def strict_reconciler(db_pool) -> PurchaseReconciler:
    return PurchaseReconciler(SQLiteUnitOfWork(), SQLitePurchaseStore(), strict_stock=True)


async def _set_stock(db_path, material_id: str, stock: float) -> None:
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("UPDATE materials SET stock = ? WHERE id = ?", (stock, material_id))
        await conn.commit()


class TestCreation:
    async def test_pending_creation_has_no_effects(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)

        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 200)), user_id
        )

        assert purchase.status == PurchaseStatus.PENDING
        assert purchase.version == 1
        assert re.fullmatch(r"INV/PO/\d{6}/001", purchase.invoice_number or "")
        assert await read_target("material", "m1") == (10.0, 100.0)
        assert await ledger_rows() == []

    async def test_completed_creation_applies_effects(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)

        purchase = await reconciler.complete_purchase_creation(
            _draft(
                user_id,
                _item("m1", 5, 200),
                status=PurchaseStatus.COMPLETED,
                auto_update_price=True,
                additional_costs=[AdditionalCost(description="Freight", amount=50)],
            ),
            user_id,
        )

        stock, price = await read_target("material", "m1")
        assert stock == 15.0
        assert round(price, 2) == 136.67

        rows = await ledger_rows()
        assert len(rows) == 1
        assert rows[0]["type"] == "in"
        assert rows[0]["quantity"] == 5.0
        assert rows[0]["reference"] == purchase.invoice_number
        assert rows[0]["description"] == f"Purchase completed: {purchase.invoice_number}"

    async def test_forced_direct_overwrite(
        self, reconciler, seed_target, read_target, user_id
    ):
        await seed_target("product", "p1", stock=2, price=40)
        item = PurchaseItem(type=ItemType.PRODUCT, product_id="p1", quantity=3, price=55)

        await reconciler.complete_purchase_creation(
            _draft(user_id, item, status=PurchaseStatus.COMPLETED, auto_update_price=True),
            user_id,
            PriceUpdateMode.DIRECT_OVERWRITE,
            ledger_label="Purchase import",
        )

        assert await read_target("product", "p1") == (5.0, 55.0)

    async def test_custom_ledger_label_and_reference(
        self, reconciler, seed_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1")

        await reconciler.complete_purchase_creation(
            _draft(
                user_id,
                _item("m1", 1, 1),
                status=PurchaseStatus.COMPLETED,
                invoice_number="INV-77",
                reference="PO-5",
            ),
            user_id,
            ledger_label="Purchase import",
        )

        rows = await ledger_rows()
        assert rows[0]["description"] == "Purchase import: PO-5"
        assert rows[0]["reference"] == "INV-77"

    async def test_invoice_numbers_increment_per_day(self, reconciler, seed_target, user_id):
        await seed_target("material", "m1")
        day = datetime(2024, 1, 15, 9, 30, tzinfo=UTC)

        first = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1), created_at=day), user_id
        )
        second = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1), created_at=day), user_id
        )

        assert first.invoice_number == "INV/PO/240115/001"
        assert second.invoice_number == "INV/PO/240115/002"

    async def test_invoice_number_skips_taken_numbers(self, reconciler, seed_target, user_id):
        await seed_target("material", "m1")
        day = datetime(2024, 3, 1, tzinfo=UTC)
        await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1), invoice_number="INV/PO/240301/002",
                   created_at=datetime(2024, 2, 1, tzinfo=UTC)),
            user_id,
        )

        first = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1), created_at=day), user_id
        )
        second = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1), created_at=day), user_id
        )

        assert first.invoice_number == "INV/PO/240301/001"
        assert second.invoice_number == "INV/PO/240301/003"

    async def test_duplicate_invoice_number_rejected(self, reconciler, seed_target, user_id):
        await seed_target("material", "m1")
        await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1), invoice_number="INV-1"), user_id
        )

        with pytest.raises(ValidationError):
            await reconciler.complete_purchase_creation(
                _draft(user_id, _item("m1", 1, 1), invoice_number="INV-1"), user_id
            )

    @pytest.mark.parametrize(
        "draft_kwargs",
        [
            {"supplier": "  "},
            {"items": []},
            {"items": [_item("m1", 0, 10)]},
            {"items": [_item("m1", 1, -1)]},
            {"items": [PurchaseItem(type=ItemType.MATERIAL, product_id="p1", quantity=1, price=1)]},
            {"additional_costs": [AdditionalCost(amount=-5)]},
        ],
    )
    async def test_invalid_drafts_rejected(
        self, reconciler, seed_target, ledger_rows, user_id, draft_kwargs
    ):
        await seed_target("material", "m1")
        fields = {"user_id": user_id, "supplier": "Acme", "items": [_item("m1", 1, 1)]}
        fields.update(draft_kwargs)

        with pytest.raises(ValidationError):
            await reconciler.complete_purchase_creation(Purchase(**fields), user_id)
        assert await ledger_rows() == []

    async def test_missing_target_rejected(self, reconciler, user_id):
        with pytest.raises(MaterialNotFoundError):
            await reconciler.complete_purchase_creation(
                _draft(user_id, _item("missing", 1, 1)), user_id
            )

    async def test_target_owned_by_other_user_rejected(
        self, reconciler, seed_target, user_id, other_user_id
    ):
        await seed_target("product", "p9", user_id=other_user_id)
        item = PurchaseItem(type=ItemType.PRODUCT, product_id="p9", quantity=1, price=1)

        with pytest.raises(ProductNotFoundError):
            await reconciler.complete_purchase_creation(_draft(user_id, item), user_id)


class TestStatusTransitions:
    async def _pending(self, reconciler, user_id, **kwargs) -> Purchase:
        return await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 200), **kwargs), user_id
        )

    async def test_completion_credits_stock(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id)

        updated = await reconciler.set_purchase_status(purchase.id, "completed", user_id)

        assert updated.status == PurchaseStatus.COMPLETED
        assert updated.version == 2
        assert await read_target("material", "m1") == (15.0, 100.0)
        rows = await ledger_rows()
        assert [(r["type"], r["quantity"]) for r in rows] == [("in", 5.0)]

    async def test_completion_is_idempotent(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id, auto_update_price=True)

        await reconciler.set_purchase_status(purchase.id, PurchaseStatus.COMPLETED, user_id)
        first = await read_target("material", "m1")
        again = await reconciler.set_purchase_status(purchase.id, "completed", user_id)

        assert await read_target("material", "m1") == first
        assert len(await ledger_rows()) == 1
        assert again.version == 2

    async def test_weighted_average_on_completion(
        self, reconciler, seed_target, read_target, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(
            reconciler,
            user_id,
            auto_update_price=True,
            additional_costs=[AdditionalCost(description="Freight", amount=50)],
        )

        await reconciler.set_purchase_status(purchase.id, "completed", user_id)

        stock, price = await read_target("material", "m1")
        assert stock == 15.0
        assert round(price, 2) == 136.67

    async def test_cancel_reverses_stock_but_not_price(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(
            reconciler,
            user_id,
            auto_update_price=True,
            additional_costs=[AdditionalCost(amount=50)],
        )

        await reconciler.set_purchase_status(purchase.id, "completed", user_id)
        cancelled = await reconciler.set_purchase_status(purchase.id, "cancelled", user_id)

        stock, price = await read_target("material", "m1")
        assert stock == 10.0
        assert round(price, 2) == 136.67
        assert cancelled.status == PurchaseStatus.CANCELLED

        rows = await ledger_rows()
        assert [(r["type"], r["quantity"]) for r in rows] == [("in", 5.0), ("out", 5.0)]
        assert rows[1]["description"] == f"Purchase cancelled: {purchase.invoice_number}"

    async def test_recompletion_after_cancel_credits_again(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id)

        await reconciler.set_purchase_status(purchase.id, "completed", user_id)
        await reconciler.set_purchase_status(purchase.id, "cancelled", user_id)
        again = await reconciler.set_purchase_status(purchase.id, "completed", user_id)

        assert again.status == PurchaseStatus.COMPLETED
        assert again.version == 4
        assert await read_target("material", "m1") == (15.0, 100.0)
        rows = await ledger_rows()
        assert [r["type"] for r in rows] == ["in", "out", "in"]
        assert rows[2]["description"] == f"Purchase completed: {purchase.invoice_number}"

    async def test_completed_to_pending_rejected(
        self, reconciler, seed_target, read_target, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id)
        await reconciler.set_purchase_status(purchase.id, "completed", user_id)

        with pytest.raises(InvalidTransitionError):
            await reconciler.set_purchase_status(purchase.id, "pending", user_id)

        stored = await SQLitePurchaseStore().get_purchase(purchase.id)
        assert stored.status == PurchaseStatus.COMPLETED
        assert await read_target("material", "m1") == (15.0, 100.0)

    async def test_pending_to_cancelled_is_status_only(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id)

        cancelled = await reconciler.set_purchase_status(purchase.id, "cancelled", user_id)
        reopened = await reconciler.set_purchase_status(purchase.id, "pending", user_id)

        assert cancelled.status == PurchaseStatus.CANCELLED
        assert reopened.status == PurchaseStatus.PENDING
        assert reopened.version == 3
        assert await read_target("material", "m1") == (10.0, 100.0)
        assert await ledger_rows() == []

    async def test_invalid_status_rejected(self, reconciler, seed_target, user_id):
        await seed_target("material", "m1")
        purchase = await self._pending(reconciler, user_id)

        with pytest.raises(InvalidStatusError):
            await reconciler.set_purchase_status(purchase.id, "shipped", user_id)

    async def test_unknown_purchase(self, reconciler, user_id):
        with pytest.raises(PurchaseNotFoundError):
            await reconciler.set_purchase_status("missing", "completed", user_id)

    async def test_other_user_forbidden_without_effects(
        self, reconciler, seed_target, read_target, ledger_rows, user_id, other_user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id)

        with pytest.raises(PurchaseAccessDeniedError):
            await reconciler.set_purchase_status(purchase.id, "completed", other_user_id)

        assert await read_target("material", "m1") == (10.0, 100.0)
        assert await ledger_rows() == []

    async def test_failure_on_second_item_rolls_back_everything(
        self, reconciler, seed_target, read_target, ledger_rows, migrated_db, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        await seed_target("material", "m2", stock=3, price=30)
        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 200), _item("m2", 2, 40), auto_update_price=True),
            user_id,
        )
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute(
                """
                CREATE TRIGGER fail_m2_stock BEFORE UPDATE OF stock ON materials
                WHEN NEW.id = 'm2'
                BEGIN
                    SELECT RAISE(ABORT, 'simulated failure');
                END
                """
            )
            await conn.commit()

        with pytest.raises(TransactionFailedError) as exc_info:
            await reconciler.set_purchase_status(purchase.id, "completed", user_id)

        assert "simulated failure" in exc_info.value.details["cause"]
        assert await read_target("material", "m1") == (10.0, 100.0)
        assert await read_target("material", "m2") == (3.0, 30.0)
        assert await ledger_rows() == []
        stored = await SQLitePurchaseStore().get_purchase(purchase.id)
        assert stored.status == PurchaseStatus.PENDING
        assert stored.version == 1

    async def test_cancelled_completion_leaves_no_partial_effects(
        self, reconciler, seed_target, read_target, ledger_rows, monkeypatch, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        await seed_target("material", "m2", stock=3, price=30)
        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 200), _item("m2", 2, 40)), user_id
        )

        credited = asyncio.Event()
        increment = SQLitePurchaseTransaction.increment_stock

        async def increment_then_hang(self, item_type, target_id, delta):
            result = await increment(self, item_type, target_id, delta)
            credited.set()
            await asyncio.sleep(30)
            return result

        monkeypatch.setattr(SQLitePurchaseTransaction, "increment_stock", increment_then_hang)
        task = asyncio.create_task(
            reconciler.set_purchase_status(purchase.id, "completed", user_id)
        )
        await credited.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # Unrelated writes reuse the pooled connections afterwards
        catalog = SQLiteCatalogStore()
        for code in ("M-3", "M-4"):
            await catalog.create_material(Material(user_id=user_id, code=code, name=code))

        assert await read_target("material", "m1") == (10.0, 100.0)
        assert await read_target("material", "m2") == (3.0, 30.0)
        assert await ledger_rows() == []
        stored = await SQLitePurchaseStore().get_purchase(purchase.id)
        assert stored.status == PurchaseStatus.PENDING
        assert stored.version == 1

    async def test_concurrent_completions_apply_once(
        self, reconciler, seed_target, read_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await self._pending(reconciler, user_id)

        results = await asyncio.gather(
            reconciler.set_purchase_status(purchase.id, "completed", user_id),
            reconciler.set_purchase_status(purchase.id, "completed", user_id),
        )

        assert all(r.status == PurchaseStatus.COMPLETED for r in results)
        assert await read_target("material", "m1") == (15.0, 100.0)
        assert len(await ledger_rows()) == 1


class TestStrictStock:
    async def test_permissive_reversal_goes_negative(
        self, reconciler, seed_target, read_target, migrated_db, user_id
    ):
        await seed_target("material", "m1")
        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 10), status=PurchaseStatus.COMPLETED), user_id
        )
        await _set_stock(migrated_db, "m1", 2)

        await reconciler.set_purchase_status(purchase.id, "cancelled", user_id)

        assert (await read_target("material", "m1"))[0] == -3.0

    async def test_strict_reversal_rejected(
        self, strict_reconciler, seed_target, read_target, ledger_rows, migrated_db, user_id
    ):
        await seed_target("material", "m1")
        purchase = await strict_reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 10), status=PurchaseStatus.COMPLETED), user_id
        )
        await _set_stock(migrated_db, "m1", 2)

        with pytest.raises(InsufficientStockError):
            await strict_reconciler.set_purchase_status(purchase.id, "cancelled", user_id)

        assert (await read_target("material", "m1"))[0] == 2.0
        assert [r["type"] for r in await ledger_rows()] == ["in"]
        stored = await SQLitePurchaseStore().get_purchase(purchase.id)
        assert stored.status == PurchaseStatus.COMPLETED


class TestDeletion:
    async def test_delete_completed_reverses_stock(
        self, reconciler, seed_target, read_target, ledger_rows, migrated_db, user_id
    ):
        await seed_target("material", "m1", stock=10, price=100)
        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 5, 200), status=PurchaseStatus.COMPLETED,
                   reference="PO-1"),
            user_id,
        )

        await reconciler.delete_purchase(purchase.id, user_id)

        assert await SQLitePurchaseStore().get_purchase(purchase.id) is None
        assert (await read_target("material", "m1"))[0] == 10.0
        rows = await ledger_rows()
        assert rows[-1]["type"] == "out"
        assert rows[-1]["description"] == "Purchase deleted: PO-1"

        async with aiosqlite.connect(migrated_db) as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM purchase_items")
            assert (await cursor.fetchone())[0] == 0

    async def test_delete_pending_has_no_ledger(
        self, reconciler, seed_target, ledger_rows, user_id
    ):
        await seed_target("material", "m1")
        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1)), user_id
        )

        await reconciler.delete_purchase(purchase.id, user_id)

        assert await ledger_rows() == []

    async def test_delete_other_users_purchase_forbidden(
        self, reconciler, seed_target, user_id, other_user_id
    ):
        await seed_target("material", "m1")
        purchase = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1)), user_id
        )

        with pytest.raises(PurchaseAccessDeniedError):
            await reconciler.delete_purchase(purchase.id, other_user_id)
        assert await SQLitePurchaseStore().get_purchase(purchase.id) is not None

    async def test_bulk_delete(
        self, reconciler, seed_target, read_target, user_id, other_user_id
    ):
        await seed_target("material", "m1", stock=10)
        await seed_target("material", "x1", user_id=other_user_id)
        completed = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 4, 1), status=PurchaseStatus.COMPLETED), user_id
        )
        pending = await reconciler.complete_purchase_creation(
            _draft(user_id, _item("m1", 1, 1)), user_id
        )
        foreign = await reconciler.complete_purchase_creation(
            _draft(other_user_id, _item("x1", 1, 1)), other_user_id
        )

        result = await reconciler.bulk_delete_purchases(
            [completed.id, pending.id, completed.id, foreign.id, "missing"], user_id
        )

        assert result.deleted_ids == [completed.id, pending.id]
        assert result.reversed_ids == [completed.id]
        assert result.skipped_ids == [foreign.id, "missing"]
        assert result.deleted_count == 2
        assert (await read_target("material", "m1"))[0] == 10.0
        assert await SQLitePurchaseStore().get_purchase(foreign.id) is not None

    async def test_bulk_delete_requires_ids(self, reconciler, user_id):
        with pytest.raises(ValidationError):
            await reconciler.bulk_delete_purchases([], user_id)


class TestVersionGuard:
    async def test_stale_version_fails_transaction(self):
        purchase = Purchase(id="p1", user_id="user-1", supplier="Acme")
        tx = AsyncMock()
        tx.load_purchase.return_value = purchase
        tx.update_purchase_status.return_value = False

        class _UnitOfWork(IUnitOfWork):
            @asynccontextmanager
            async def transaction(self):
                yield tx

        store = AsyncMock()
        store.get_purchase.return_value = purchase
        reconciler = PurchaseReconciler(_UnitOfWork(), store)

        with pytest.raises(TransactionFailedError) as exc_info:
            await reconciler.set_purchase_status("p1", "cancelled", "user-1")

        assert "modified concurrently" in exc_info.value.message
        tx.update_purchase_status.assert_awaited_once_with("p1", PurchaseStatus.CANCELLED, 1)
