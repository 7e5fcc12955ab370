"""Unit tests for database migrator."""

from pathlib import Path
from unittest.mock import patch

import aiosqlite
import pytest

from stockbook.infrastructure.storage.sqlite.migrations import migrator
from stockbook.infrastructure.storage.sqlite.migrations.migrator import (
    REQUIRED_TABLES,
    MigrationInfo,
    create_backup,
    discover_migrations,
    get_applied_migrations,
    get_current_version,
    get_migration_status,
    initialize_database,
    restore_backup,
    verify_schema_integrity,
)


class TestMigrationInfo:
    """Tests for MigrationInfo dataclass."""

    def test_from_file_parses_filename(self, tmp_path: Path):
        migration_file = tmp_path / "v001_initial_schema.sql"
        migration_file.write_text("-- Test migration\nSELECT 1;")

        info = MigrationInfo.from_file(migration_file)

        assert info.version == "001"
        assert info.name == "initial_schema"
        assert len(info.checksum) == 16

    def test_from_file_invalid_filename_raises(self, tmp_path: Path):
        invalid_file = tmp_path / "invalid_migration.sql"
        invalid_file.write_text("SELECT 1;")

        with pytest.raises(ValueError, match="Invalid migration filename"):
            MigrationInfo.from_file(invalid_file)


class TestDiscoverMigrations:
    def test_bundled_migrations_are_ordered(self):
        migrations = discover_migrations()
        assert migrations
        assert migrations[0].version == "001"
        versions = [m.version for m in migrations]
        assert versions == sorted(versions)


class TestInitializeDatabase:
    """Tests for initialize_database()."""

    async def test_creates_required_tables(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            tables = {row[0] for row in await cursor.fetchall()}
        assert set(REQUIRED_TABLES) <= tables

    async def test_records_applied_versions(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            applied = await get_applied_migrations(conn)
            current = await get_current_version(conn)
        assert "001" in applied
        assert current == max(applied)

    async def test_second_run_is_noop(self, migrated_db: Path, mock_settings):
        with patch.object(migrator, "get_settings", return_value=mock_settings):
            results = await initialize_database(migrated_db, create_backup_before=False)
        assert results == []

    async def test_returns_empty_without_table(self, temp_db_path: Path):
        async with aiosqlite.connect(temp_db_path) as conn:
            assert await get_applied_migrations(conn) == {}
            assert await get_current_version(conn) is None


class TestSchemaConstraints:
    """The schema itself guards purchase and ledger invariants."""

    async def test_stock_history_requires_exactly_one_target(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            with pytest.raises(aiosqlite.IntegrityError):
                await conn.execute(
                    "INSERT INTO stock_history (user_id, type, quantity) VALUES ('u', 'in', 1)"
                )

    async def test_invoice_number_unique_per_user(self, migrated_db: Path):
        insert = (
            "INSERT INTO purchases (id, user_id, invoice_number, supplier) "
            "VALUES (?, ?, 'INV-1', 'Acme')"
        )
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute(insert, ("p1", "u1"))
            await conn.execute(insert, ("p2", "u2"))
            with pytest.raises(aiosqlite.IntegrityError):
                await conn.execute(insert, ("p3", "u1"))

    async def test_purchase_status_checked(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            with pytest.raises(aiosqlite.IntegrityError):
                await conn.execute(
                    "INSERT INTO purchases (id, user_id, invoice_number, supplier, status) "
                    "VALUES ('p1', 'u', 'INV-1', 'Acme', 'shipped')"
                )


class TestStatusAndVerify:
    async def test_status_for_missing_database(self, tmp_path: Path, mock_settings):
        with patch.object(migrator, "get_settings", return_value=mock_settings):
            status = await get_migration_status(tmp_path / "nope.db")
        assert status["exists"] is False

    async def test_status_after_migration(self, migrated_db: Path, mock_settings):
        with patch.object(migrator, "get_settings", return_value=mock_settings):
            status = await get_migration_status(migrated_db)
        assert status["exists"] is True
        assert status["pending_migrations"] == []

    async def test_verify_schema_integrity_passes(self, migrated_db: Path, mock_settings):
        with patch.object(migrator, "get_settings", return_value=mock_settings):
            checks = await verify_schema_integrity(migrated_db)
        assert all(check["status"] == "PASS" for check in checks)


class TestBackup:
    def test_backup_and_restore(self, tmp_path: Path):
        db_path = tmp_path / "data.db"
        db_path.write_bytes(b"original")

        backup_path = create_backup(db_path)
        db_path.write_bytes(b"changed")
        restore_backup(db_path, backup_path)

        assert backup_path.exists()
        assert db_path.read_bytes() == b"original"
