"""
Pooled aiosqlite connections.

Every connection runs in WAL mode with foreign keys enforced, so readers are
not blocked while a purchase transition holds the write lock. Transitions use
``transaction(immediate=True)``: the write lock is taken at BEGIN and
competing writers wait up to ``busy_timeout`` instead of failing mid-way.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from stockbook.config import get_logger, get_settings

logger = get_logger(__name__)

# Applied to each new connection, in order
CONNECTION_PRAGMAS: tuple[str, ...] = (
    "journal_mode=WAL",
    "synchronous=NORMAL",
    "foreign_keys=ON",
)


async def open_connection(db_path: Path, busy_timeout: int) -> aiosqlite.Connection:
    """Open one configured connection returning rows as aiosqlite.Row."""
    conn = await aiosqlite.connect(db_path)
    for pragma in CONNECTION_PRAGMAS:
        await conn.execute(f"PRAGMA {pragma}")
    await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout)}")
    conn.row_factory = aiosqlite.Row
    return conn


class ConnectionPool:
    """Fixed-size pool of SQLite connections handed out through a queue."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def available(self) -> int:
        """Connections currently idle in the pool."""
        return self._pool.qsize()

    async def initialize(self) -> None:
        """Open pool_size connections; safe to call more than once."""
        async with self._lock:
            if self._initialized:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await open_connection(self.db_path, self.busy_timeout)
                self._connections.append(conn)
                self._pool.put_nowait(conn)

            self._initialized = True
            logger.info(
                "connection_pool_initialized",
                db_path=str(self.db_path),
                pool_size=self.pool_size,
            )

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection, waiting while all are in use.

        A connection handed back with a transaction still open is rolled
        back before it returns to the queue.

        Usage:
            async with pool.acquire() as conn:
                await conn.execute(...)
        """
        if not self._initialized:
            await self.initialize()

        conn = await self._pool.get()
        try:
            yield conn
        finally:
            try:
                if conn.in_transaction:
                    logger.warning("connection_returned_in_transaction")
                    await conn.rollback()
            finally:
                self._pool.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection inside a transaction.

        Commits when the block exits normally. Rolls back when it raises,
        is cancelled, or the commit itself fails.
        immediate=True issues BEGIN IMMEDIATE before yielding.
        """
        async with self.acquire() as conn:
            if immediate:
                await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                await conn.commit()
            except BaseException as e:
                await conn.rollback()
                logger.debug("transaction_rolled_back", error_type=type(e).__name__)
                raise

    async def close(self) -> None:
        """Close every connection and mark the pool uninitialized."""
        async with self._lock:
            while self._connections:
                await self._connections.pop().close()
            while not self._pool.empty():
                self._pool.get_nowait()
            self._initialized = False
            logger.info("connection_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Return the process-wide pool, creating it from storage settings."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    """Close and forget the process-wide pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    """Borrow a connection from the process-wide pool."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction(immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block in a transaction on the process-wide pool."""
    pool = await get_pool()
    async with pool.transaction(immediate=immediate) as conn:
        yield conn
