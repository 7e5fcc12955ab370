"""SQLite implementation of purchase reads, plus row helpers shared with the unit of work."""

from datetime import UTC, datetime

import aiosqlite

from stockbook.config import get_logger
from stockbook.core.entities.catalog import ItemType, StockLevel
from stockbook.core.entities.purchase import (
    AdditionalCost,
    DiscountType,
    OrderType,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
)
from stockbook.core.interfaces.purchase_store import IPurchaseStore
from stockbook.infrastructure.storage.sqlite.connection import get_connection

logger = get_logger(__name__)

_ITEMS_QUERY = """
    SELECT
        pi.*,
        m.user_id AS material_user_id, m.code AS material_code, m.name AS material_name,
        m.stock AS material_stock, m.price AS material_price,
        p.user_id AS product_user_id, p.sku AS product_sku, p.name AS product_name,
        p.stock AS product_stock, p.price AS product_price
    FROM purchase_items pi
    LEFT JOIN materials m ON m.id = pi.material_id
    LEFT JOIN products p ON p.id = pi.product_id
    WHERE pi.purchase_id = ?
    ORDER BY pi.position, pi.id
"""


def to_timestamp(value: datetime) -> str:
    """Serialize a datetime as a UTC ISO string (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str | None) -> datetime:
    """Parse a stored timestamp, falling back to now on malformed data."""
    if value:
        try:
            parsed = datetime.fromisoformat(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed
        except (ValueError, TypeError):
            pass
    return datetime.now(UTC)


async def fetch_purchase(conn: aiosqlite.Connection, purchase_id: str) -> Purchase | None:
    """Load one purchase with items, target stock levels and additional costs."""
    cursor = await conn.execute("SELECT * FROM purchases WHERE id = ?", (purchase_id,))
    row = await cursor.fetchone()
    if row is None:
        return None
    return await _hydrate_purchase(conn, row)


async def _hydrate_purchase(conn: aiosqlite.Connection, row: aiosqlite.Row) -> Purchase:
    cursor = await conn.execute(_ITEMS_QUERY, (row["id"],))
    items = [_row_to_item(r) for r in await cursor.fetchall()]

    cursor = await conn.execute(
        "SELECT * FROM additional_costs WHERE purchase_id = ? ORDER BY id",
        (row["id"],),
    )
    costs = [
        AdditionalCost(
            id=r["id"],
            purchase_id=r["purchase_id"],
            description=r["description"] or "",
            amount=float(r["amount"]),
        )
        for r in await cursor.fetchall()
    ]

    return Purchase(
        id=row["id"],
        user_id=row["user_id"],
        invoice_number=row["invoice_number"],
        supplier=row["supplier"],
        reference=row["reference"] or "",
        notes=row["notes"] or "",
        order_type=OrderType(row["order_type"]),
        status=PurchaseStatus(row["status"]),
        discount=float(row["discount"]),
        discount_type=DiscountType(row["discount_type"]),
        subtotal=float(row["subtotal"]),
        total=float(row["total"]),
        auto_update_price=bool(row["auto_update_price"]),
        version=int(row["version"]),
        items=items,
        additional_costs=costs,
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


def _row_to_item(row: aiosqlite.Row) -> PurchaseItem:
    """Convert a joined purchase_items row to a PurchaseItem with its target snapshot."""
    item_type = ItemType(row["type"])
    target = None
    if item_type == ItemType.MATERIAL and row["material_code"] is not None:
        target = StockLevel(
            item_type=item_type,
            target_id=row["material_id"],
            user_id=row["material_user_id"],
            code=row["material_code"],
            name=row["material_name"],
            stock=float(row["material_stock"]),
            price=float(row["material_price"]),
        )
    elif item_type == ItemType.PRODUCT and row["product_sku"] is not None:
        target = StockLevel(
            item_type=item_type,
            target_id=row["product_id"],
            user_id=row["product_user_id"],
            code=row["product_sku"],
            name=row["product_name"],
            stock=float(row["product_stock"]),
            price=float(row["product_price"]),
        )

    return PurchaseItem(
        id=row["id"],
        purchase_id=row["purchase_id"],
        type=item_type,
        material_id=row["material_id"],
        product_id=row["product_id"],
        quantity=float(row["quantity"]),
        unit=row["unit"],
        price=float(row["price"]),
        item_discount=float(row["item_discount"]),
        item_discount_type=DiscountType(row["item_discount_type"]),
        total_price=float(row["total_price"]),
        target=target,
    )


class SQLitePurchaseStore(IPurchaseStore):
    """SQLite implementation of purchase queries."""

    async def get_purchase(self, purchase_id: str) -> Purchase | None:
        """Get purchase by ID with items and additional costs."""
        async with get_connection() as conn:
            return await fetch_purchase(conn, purchase_id)

    async def list_purchases(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> list[Purchase]:
        """List a user's purchases, newest first."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM purchases
                WHERE user_id = ?
                ORDER BY created_at DESC, id
                LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            )
            rows = await cursor.fetchall()
            return [await _hydrate_purchase(conn, row) for row in rows]

    async def count_purchases(self, user_id: str) -> int:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM purchases WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return row[0]

    async def list_suppliers(self, user_id: str) -> list[str]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT DISTINCT supplier FROM purchases
                WHERE user_id = ?
                ORDER BY supplier COLLATE NOCASE, supplier
                """,
                (user_id,),
            )
            return [row["supplier"] for row in await cursor.fetchall()]
