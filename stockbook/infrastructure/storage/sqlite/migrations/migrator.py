"""
Versioned schema migrations for the stockbook database.

Migration files live next to this module and are named ``vNNN_<name>.sql``.
Each applied version is recorded in ``schema_migrations`` together with a
checksum of the file, so an applied migration that was edited afterwards is
detected instead of silently skipped.

Usage:
    stockbook-migrate             # apply pending migrations
    stockbook-migrate --status    # show applied / pending versions
    stockbook-migrate --verify    # integrity, foreign key and table checks
"""

import argparse
import asyncio
import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from stockbook.config import get_logger, get_settings
from stockbook.core.exceptions import StorageError

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

FILENAME_PATTERN = re.compile(r"^v(\d+)_(\w+)\.sql$")

REQUIRED_TABLES = [
    "materials",
    "products",
    "purchases",
    "purchase_items",
    "additional_costs",
    "stock_history",
    "schema_migrations",
]


@dataclass(frozen=True)
class MigrationInfo:
    """One migration file."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = FILENAME_PATTERN.match(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(
            version=match.group(1),
            name=match.group(2),
            path=path,
            checksum=digest[:16],
        )

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationResult:
    """Outcome of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Return the migration files in version order, skipping misnamed files."""
    found = []
    for path in directory.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return sorted(found, key=lambda m: int(m.version))


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Map applied version -> checksum; empty before the first migration."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    except aiosqlite.OperationalError:
        return {}
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await get_applied_migrations(conn)
    return max(applied, key=int) if applied else None


async def _table_names(conn: aiosqlite.Connection) -> set[str]:
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in await cursor.fetchall()}


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one migration script and record it. Never raises."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    started = time.perf_counter()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        await conn.executescript(migration.read_sql())
        await conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, execution_time_ms) "
            "VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, elapsed_ms()),
        )
        await conn.commit()
    except Exception as e:
        await conn.rollback()
        logger.error(
            "migration_failed",
            version=migration.version,
            name=migration.name,
            error=str(e),
        )
        return MigrationResult(
            migration.version, migration.name, False, elapsed_ms(), error=str(e)
        )

    result = MigrationResult(migration.version, migration.name, True, elapsed_ms())
    logger.info(
        "migration_applied",
        version=migration.version,
        name=migration.name,
        execution_time_ms=result.execution_time_ms,
    )
    return result


def create_backup(db_path: Path, backup_dir: Path | None = None) -> Path:
    """Copy the database file aside and return the copy's path."""
    target_dir = backup_dir or db_path.parent
    target_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = target_dir / f"{db_path.stem}.backup_{stamp}{db_path.suffix}"
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.info("database_restored_from_backup", backup_path=str(backup_path))


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Apply every pending migration in order.

    Stops at the first failing migration. When a backup was taken and an
    unexpected error escapes, the backup is restored before re-raising.

    Returns:
        Results for the migrations attempted in this run (empty when the
        schema was already current).

    Raises:
        StorageError: an applied migration file was modified.
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    backup_path = create_backup(db_path) if create_backup_before and db_path.exists() else None
    results: list[MigrationResult] = []

    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")

            applied = await get_applied_migrations(conn)
            for migration in discover_migrations():
                recorded = applied.get(migration.version)
                if recorded is not None:
                    if recorded != migration.checksum:
                        raise StorageError(
                            f"Migration v{migration.version} changed after it was applied",
                            details={"version": migration.version, "name": migration.name},
                        )
                    continue

                result = await apply_migration(conn, migration)
                results.append(result)
                if not result.success:
                    break

                cursor = await conn.execute("PRAGMA foreign_key_check")
                if await cursor.fetchall():
                    logger.error("foreign_key_violations_after_migration", version=migration.version)
                    break

            logger.info(
                "database_initialized",
                db_path=str(db_path),
                applied=len([r for r in results if r.success]),
                tables=len(await _table_names(conn)),
            )
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path is not None and backup_path.exists():
            restore_backup(db_path, backup_path)
        raise

    if backup_path is not None and all(r.success for r in results):
        backup_path.unlink()

    return results


async def run_migrations() -> list[MigrationResult]:
    """Migrate the configured database, failing if any migration fails."""
    storage = get_settings().storage
    results = await initialize_database(
        storage.db_path,
        create_backup_before=storage.backup_before_migrate,
    )
    failed = [r for r in results if not r.success]
    if failed:
        raise StorageError(
            f"Migration v{failed[0].version} failed: {failed[0].error}",
            details={"version": failed[0].version},
        )
    return results


async def get_migration_status(db_path: Path | None = None) -> dict[str, Any]:
    """Describe applied and pending versions of a database file."""
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations()

    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
            "total_migrations": len(discovered),
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await get_applied_migrations(conn)
        current = await get_current_version(conn)

    return {
        "exists": True,
        "current_version": current,
        "applied_migrations": sorted(applied, key=int),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict[str, Any]]:
    """Run foreign key, integrity and required-table checks."""
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA foreign_key_check")
        fk_violations = len(await cursor.fetchall())

        cursor = await conn.execute("PRAGMA integrity_check")
        integrity = (await cursor.fetchone())[0]

        missing = [t for t in REQUIRED_TABLES if t not in await _table_names(conn)]

    return [
        {
            "check": "foreign_keys",
            "status": "PASS" if fk_violations == 0 else "FAIL",
            "violations": fk_violations,
        },
        {
            "check": "integrity",
            "status": "PASS" if integrity == "ok" else "FAIL",
            "result": integrity,
        },
        {
            "check": "required_tables",
            "status": "PASS" if not missing else "FAIL",
            "missing": missing,
        },
    ]


def _print_status(status: dict[str, Any]) -> None:
    print(f"Database exists:    {status['exists']}")
    print(f"Current version:    {status['current_version'] or 'N/A'}")
    print(f"Applied migrations: {', '.join(status['applied_migrations']) or '-'}")
    print(f"Pending migrations: {', '.join(status['pending_migrations']) or '-'}")


def _print_checks(checks: list[dict[str, Any]]) -> None:
    for check in checks:
        print(f"[{check['status']}] {check['check']}")
        if check["status"] != "PASS":
            for key, value in check.items():
                if key not in ("check", "status"):
                    print(f"       {key}: {value}")


def _print_results(results: list[MigrationResult]) -> None:
    if not results:
        print("Schema is up to date.")
    for result in results:
        label = "SUCCESS" if result.success else "FAILED"
        print(f"[{label}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
        if result.error:
            print(f"         Error: {result.error}")


def main() -> None:
    """CLI entry point (``stockbook-migrate``)."""
    parser = argparse.ArgumentParser(description="Stockbook database migrator")
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--status", action="store_true", help="Show migration status")
    mode.add_argument("--verify", action="store_true", help="Verify schema integrity")
    parser.add_argument("--no-backup", action="store_true", help="Skip backup before migrating")
    args = parser.parse_args()

    if args.status:
        _print_status(asyncio.run(get_migration_status(args.db_path)))
    elif args.verify:
        _print_checks(asyncio.run(verify_schema_integrity(args.db_path)))
    else:
        _print_results(
            asyncio.run(
                initialize_database(args.db_path, create_backup_before=not args.no_backup)
            )
        )


if __name__ == "__main__":
    main()
