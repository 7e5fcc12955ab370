"""Health check endpoints."""

import time

from fastapi import APIRouter

from stockbook import __version__
from stockbook.application.dto.responses import DatabaseHealthResponse, HealthResponse
from stockbook.infrastructure.storage.sqlite import get_pool
from stockbook.infrastructure.storage.sqlite.migrations.migrator import (
    discover_migrations,
    get_applied_migrations,
)

router = APIRouter(prefix="/api/health", tags=["health"])

_start_time = time.monotonic()


def _uptime() -> float:
    return round(time.monotonic() - _start_time, 3)


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Service liveness and uptime."""
    return HealthResponse(status="healthy", version=__version__, uptime_seconds=_uptime())


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Database readiness.

    Runs a trivial query through the pool and reports latency, the applied
    schema version and any migrations not yet applied. A reachable database
    with pending migrations is reported as degraded.
    """
    try:
        pool = await get_pool()
        started = time.perf_counter()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
            latency_ms = (time.perf_counter() - started) * 1000
            applied = await get_applied_migrations(conn)
    except Exception as e:
        return HealthResponse(
            status="unhealthy",
            version=__version__,
            uptime_seconds=_uptime(),
            database=DatabaseHealthResponse(available=False, error=str(e)),
        )

    pending = [m.version for m in discover_migrations() if m.version not in applied]
    database = DatabaseHealthResponse(
        available=True,
        latency_ms=round(latency_ms, 2),
        schema_version=max(applied, key=int) if applied else None,
        pending_migrations=pending,
        pool_size=pool.pool_size,
        idle_connections=pool.available,
    )
    return HealthResponse(
        status="degraded" if pending else "healthy",
        version=__version__,
        uptime_seconds=_uptime(),
        database=database,
    )
