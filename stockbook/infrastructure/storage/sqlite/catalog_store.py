"""SQLite implementation of material and product storage."""

import uuid
from datetime import UTC, datetime

import aiosqlite

from stockbook.config import get_logger
from stockbook.core.entities.catalog import Material, Product
from stockbook.core.interfaces.catalog_store import ICatalogStore
from stockbook.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from stockbook.infrastructure.storage.sqlite.purchase_store import (
    parse_timestamp,
    to_timestamp,
)

logger = get_logger(__name__)


class SQLiteCatalogStore(ICatalogStore):
    """SQLite implementation of catalog (materials and products) storage."""

    # Materials

    async def create_material(self, material: Material) -> Material:
        """Create a new material."""
        now = datetime.now(UTC)
        material.id = material.id or uuid.uuid4().hex
        material.created_at = now
        material.updated_at = now
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO materials (
                    id, user_id, code, name, unit, stock, price, min_stock,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    material.id,
                    material.user_id,
                    material.code,
                    material.name,
                    material.unit,
                    material.stock,
                    material.price,
                    material.min_stock,
                    to_timestamp(material.created_at),
                    to_timestamp(material.updated_at),
                ),
            )
        logger.info("material_created", material_id=material.id, code=material.code)
        return material

    async def get_material(self, material_id: str) -> Material | None:
        """Get material by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materials WHERE id = ?", (material_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_material(row) if row else None

    async def get_material_by_code(self, user_id: str, code: str) -> Material | None:
        """Get a user's material by code."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materials WHERE user_id = ? AND code = ?",
                (user_id, code),
            )
            row = await cursor.fetchone()
            return self._row_to_material(row) if row else None

    async def list_materials(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> list[Material]:
        """List a user's materials ordered by code."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM materials
                WHERE user_id = ?
                ORDER BY code
                LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_material(row) for row in rows]

    # Products

    async def create_product(self, product: Product) -> Product:
        """Create a new product."""
        now = datetime.now(UTC)
        product.id = product.id or uuid.uuid4().hex
        product.created_at = now
        product.updated_at = now
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO products (
                    id, user_id, sku, name, unit, stock, price, min_stock,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    product.id,
                    product.user_id,
                    product.sku,
                    product.name,
                    product.unit,
                    product.stock,
                    product.price,
                    product.min_stock,
                    to_timestamp(product.created_at),
                    to_timestamp(product.updated_at),
                ),
            )
        logger.info("product_created", product_id=product.id, sku=product.sku)
        return product

    async def get_product(self, product_id: str) -> Product | None:
        """Get product by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM products WHERE id = ?", (product_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_product(row) if row else None

    async def get_product_by_sku(self, user_id: str, sku: str) -> Product | None:
        """Get a user's product by SKU."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM products WHERE user_id = ? AND sku = ?",
                (user_id, sku),
            )
            row = await cursor.fetchone()
            return self._row_to_product(row) if row else None

    async def list_products(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> list[Product]:
        """List a user's products ordered by SKU."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM products
                WHERE user_id = ?
                ORDER BY sku
                LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_product(row) for row in rows]

    @staticmethod
    def _row_to_material(row: aiosqlite.Row) -> Material:
        """Convert a database row to a Material entity."""
        return Material(
            id=row["id"],
            user_id=row["user_id"],
            code=row["code"],
            name=row["name"],
            unit=row["unit"],
            stock=float(row["stock"]),
            price=float(row["price"]),
            min_stock=float(row["min_stock"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    @staticmethod
    def _row_to_product(row: aiosqlite.Row) -> Product:
        """Convert a database row to a Product entity."""
        return Product(
            id=row["id"],
            user_id=row["user_id"],
            sku=row["sku"],
            name=row["name"],
            unit=row["unit"],
            stock=float(row["stock"]),
            price=float(row["price"]),
            min_stock=float(row["min_stock"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
