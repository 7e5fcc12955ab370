"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import aiosqlite
import pytest

import stockbook.infrastructure.storage.sqlite.connection as conn_module
from stockbook.application.services import reset_services
from stockbook.infrastructure.storage.sqlite.migrations import migrator

USER_ID = "user-1"
OTHER_USER_ID = "user-2"

SeedTarget = Callable[..., Awaitable[None]]


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def other_user_id() -> str:
    return OTHER_USER_ID


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 2
    mock.storage.busy_timeout = 5000
    mock.reconciler.strict_stock = False
    mock.reconciler.invoice_prefix = "INV/PO"
    return mock


@pytest.fixture
async def migrated_db(temp_db_path: Path, mock_settings) -> Path:
    """Temporary database with every migration applied."""
    with patch.object(migrator, "get_settings", return_value=mock_settings):
        results = await migrator.initialize_database(
            temp_db_path, create_backup_before=False
        )
    assert results and all(r.success for r in results)
    return temp_db_path


@pytest.fixture
async def db_pool(migrated_db: Path, mock_settings) -> AsyncGenerator[Path, None]:
    """Point the global connection pool at the migrated temp database."""
    conn_module._pool = None
    reset_services()
    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        try:
            yield migrated_db
        finally:
            await conn_module.close_pool()
            reset_services()


@pytest.fixture
def seed_target(migrated_db: Path) -> SeedTarget:
    """Insert a material or product row directly."""

    async def _seed(
        item_type: str,
        target_id: str,
        *,
        stock: float = 0.0,
        price: float = 0.0,
        user_id: str = USER_ID,
        code: str | None = None,
    ) -> None:
        table, column = (
            ("materials", "code") if item_type == "material" else ("products", "sku")
        )
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute(
                f"INSERT INTO {table} (id, user_id, {column}, name, stock, price) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (target_id, user_id, code or target_id, f"{target_id} name", stock, price),
            )
            await conn.commit()

    return _seed


@pytest.fixture
def read_target(migrated_db: Path) -> Callable[[str, str], Awaitable[tuple[float, float]]]:
    """Read (stock, price) of a material or product."""

    async def _read(item_type: str, target_id: str) -> tuple[float, float]:
        table = "materials" if item_type == "material" else "products"
        async with aiosqlite.connect(migrated_db) as conn:
            cursor = await conn.execute(
                f"SELECT stock, price FROM {table} WHERE id = ?", (target_id,)
            )
            row = await cursor.fetchone()
        assert row is not None
        return float(row[0]), float(row[1])

    return _read


@pytest.fixture
def ledger_rows(migrated_db: Path) -> Callable[[], Awaitable[list[dict]]]:
    """Read every stock_history row in insertion order."""

    async def _rows() -> list[dict]:
        async with aiosqlite.connect(migrated_db) as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute("SELECT * FROM stock_history ORDER BY id")
            return [dict(row) for row in await cursor.fetchall()]

    return _rows
