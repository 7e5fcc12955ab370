"""SQLite implementation of stock history queries."""

from typing import Any

import aiosqlite

from stockbook.core.entities.stock_history import (
    MovementType,
    StockHistory,
    StockHistoryFilter,
)
from stockbook.core.interfaces.stock_history_store import IStockHistoryStore
from stockbook.infrastructure.storage.sqlite.connection import get_connection
from stockbook.infrastructure.storage.sqlite.purchase_store import (
    parse_timestamp,
    to_timestamp,
)


class SQLiteStockHistoryStore(IStockHistoryStore):
    """Read side of the stock ledger. Rows are written by the unit of work only."""

    async def list_history(self, query: StockHistoryFilter) -> list[StockHistory]:
        """List ledger rows matching the filter, newest first."""
        where, params = self._build_where(query)
        async with get_connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM stock_history
                WHERE {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, query.limit, query.offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_history(row) for row in rows]

    async def count_history(self, query: StockHistoryFilter) -> int:
        """Count ledger rows matching the filter."""
        where, params = self._build_where(query)
        async with get_connection() as conn:
            cursor = await conn.execute(
                f"SELECT COUNT(*) FROM stock_history WHERE {where}", params
            )
            row = await cursor.fetchone()
            return int(row[0]) if row else 0

    @staticmethod
    def _build_where(query: StockHistoryFilter) -> tuple[str, list[Any]]:
        clauses = ["user_id = ?"]
        params: list[Any] = [query.user_id]

        if query.start_date:
            clauses.append("created_at >= ?")
            params.append(to_timestamp(query.start_date))
        if query.end_date:
            clauses.append("created_at <= ?")
            params.append(to_timestamp(query.end_date))
        if query.item_type == "material":
            clauses.append("material_id IS NOT NULL")
        elif query.item_type == "product":
            clauses.append("product_id IS NOT NULL")
        if query.type:
            clauses.append("type = ?")
            params.append(query.type.value)
        if query.material_id:
            clauses.append("material_id = ?")
            params.append(query.material_id)
        if query.product_id:
            clauses.append("product_id = ?")
            params.append(query.product_id)

        return " AND ".join(clauses), params

    @staticmethod
    def _row_to_history(row: aiosqlite.Row) -> StockHistory:
        """Convert a database row to a StockHistory entity."""
        return StockHistory(
            id=row["id"],
            user_id=row["user_id"],
            material_id=row["material_id"],
            product_id=row["product_id"],
            type=MovementType(row["type"]),
            quantity=float(row["quantity"]),
            description=row["description"] or "",
            reference=row["reference"] or "",
            created_at=parse_timestamp(row["created_at"]),
        )
