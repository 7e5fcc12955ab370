"""SQLite unit of work: one BEGIN IMMEDIATE transaction per purchase operation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite

from stockbook.config import get_logger
from stockbook.core.entities.catalog import ItemType, StockLevel
from stockbook.core.entities.purchase import Purchase, PurchaseStatus
from stockbook.core.entities.stock_history import StockHistory
from stockbook.core.interfaces.unit_of_work import IPurchaseTransaction, IUnitOfWork
from stockbook.infrastructure.storage.sqlite.connection import get_transaction
from stockbook.infrastructure.storage.sqlite.purchase_store import (
    fetch_purchase,
    to_timestamp,
)

logger = get_logger(__name__)

# item type -> (table, code column)
_TARGET_TABLES: dict[ItemType, tuple[str, str]] = {
    ItemType.MATERIAL: ("materials", "code"),
    ItemType.PRODUCT: ("products", "sku"),
}


class SQLitePurchaseTransaction(IPurchaseTransaction):
    """Transaction handle bound to a single pooled connection."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def load_purchase(self, purchase_id: str) -> Purchase | None:
        return await fetch_purchase(self._conn, purchase_id)

    async def insert_purchase(self, purchase: Purchase) -> Purchase:
        await self._conn.execute(
            """
            INSERT INTO purchases (
                id, user_id, invoice_number, supplier, reference, notes,
                order_type, status, discount, discount_type, subtotal, total,
                auto_update_price, version, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                purchase.id,
                purchase.user_id,
                purchase.invoice_number,
                purchase.supplier,
                purchase.reference,
                purchase.notes,
                purchase.order_type.value,
                purchase.status.value,
                purchase.discount,
                purchase.discount_type.value,
                purchase.subtotal,
                purchase.total,
                int(purchase.auto_update_price),
                purchase.version,
                to_timestamp(purchase.created_at),
                to_timestamp(purchase.updated_at),
            ),
        )

        for position, item in enumerate(purchase.items):
            cursor = await self._conn.execute(
                """
                INSERT INTO purchase_items (
                    purchase_id, position, type, material_id, product_id,
                    quantity, unit, price, item_discount, item_discount_type,
                    total_price
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    purchase.id,
                    position,
                    item.type.value,
                    item.material_id,
                    item.product_id,
                    item.quantity,
                    item.unit,
                    item.price,
                    item.item_discount,
                    item.item_discount_type.value,
                    item.total_price,
                ),
            )
            item.id = cursor.lastrowid
            item.purchase_id = purchase.id

        for cost in purchase.additional_costs:
            cursor = await self._conn.execute(
                """
                INSERT INTO additional_costs (purchase_id, description, amount)
                VALUES (?, ?, ?)
                """,
                (purchase.id, cost.description, cost.amount),
            )
            cost.id = cursor.lastrowid
            cost.purchase_id = purchase.id

        logger.debug(
            "purchase_inserted",
            purchase_id=purchase.id,
            items=len(purchase.items),
            additional_costs=len(purchase.additional_costs),
        )
        return purchase

    async def get_target(self, item_type: ItemType, target_id: str) -> StockLevel | None:
        table, code_column = _TARGET_TABLES[item_type]
        cursor = await self._conn.execute(
            f"SELECT id, user_id, {code_column} AS code, name, stock, price "
            f"FROM {table} WHERE id = ?",
            (target_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return StockLevel(
            item_type=item_type,
            target_id=row["id"],
            user_id=row["user_id"],
            code=row["code"],
            name=row["name"],
            stock=float(row["stock"]),
            price=float(row["price"]),
        )

    async def increment_stock(
        self, item_type: ItemType, target_id: str, delta: float
    ) -> bool:
        table, _ = _TARGET_TABLES[item_type]
        cursor = await self._conn.execute(
            f"UPDATE {table} SET stock = stock + ?, updated_at = ? WHERE id = ?",
            (delta, _now(), target_id),
        )
        return cursor.rowcount > 0

    async def set_stock(self, item_type: ItemType, target_id: str, stock: float) -> bool:
        table, _ = _TARGET_TABLES[item_type]
        cursor = await self._conn.execute(
            f"UPDATE {table} SET stock = ?, updated_at = ? WHERE id = ?",
            (stock, _now(), target_id),
        )
        return cursor.rowcount > 0

    async def set_price(self, item_type: ItemType, target_id: str, price: float) -> bool:
        table, _ = _TARGET_TABLES[item_type]
        cursor = await self._conn.execute(
            f"UPDATE {table} SET price = ?, updated_at = ? WHERE id = ?",
            (price, _now(), target_id),
        )
        return cursor.rowcount > 0

    async def insert_stock_history(self, row: StockHistory) -> StockHistory:
        cursor = await self._conn.execute(
            """
            INSERT INTO stock_history (
                user_id, material_id, product_id, type, quantity,
                description, reference, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                row.user_id,
                row.material_id,
                row.product_id,
                row.type.value,
                row.quantity,
                row.description,
                row.reference,
                to_timestamp(row.created_at),
            ),
        )
        row.id = cursor.lastrowid
        return row

    async def update_purchase_status(
        self,
        purchase_id: str,
        status: PurchaseStatus,
        expected_version: int,
    ) -> bool:
        cursor = await self._conn.execute(
            """
            UPDATE purchases
            SET status = ?, version = version + 1, updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (status.value, _now(), purchase_id, expected_version),
        )
        return cursor.rowcount == 1

    async def delete_purchase(self, purchase_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM purchases WHERE id = ?", (purchase_id,)
        )
        return cursor.rowcount > 0

    async def invoice_number_exists(self, user_id: str, invoice_number: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM purchases WHERE user_id = ? AND invoice_number = ?",
            (user_id, invoice_number),
        )
        return await cursor.fetchone() is not None

    async def count_purchases_between(
        self, user_id: str, start: datetime, end: datetime
    ) -> int:
        cursor = await self._conn.execute(
            """
            SELECT COUNT(*) FROM purchases
            WHERE user_id = ? AND created_at >= ? AND created_at < ?
            """,
            (user_id, to_timestamp(start), to_timestamp(end)),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0


class SQLiteUnitOfWork(IUnitOfWork):
    """Opens write transactions on the global connection pool."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLitePurchaseTransaction]:
        async with get_transaction(immediate=True) as conn:
            yield SQLitePurchaseTransaction(conn)


def _now() -> str:
    return datetime.now(UTC).isoformat()
