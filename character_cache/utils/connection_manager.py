"""
Shared connections for the character store and the upstream client.

- ``PostgreSQLPoolManager``: one lazily opened asyncpg pool per store,
  with the usage counters the store reports through ``/health``.
- ``HTTPSessionManager``: one lazily created ``httpx.AsyncClient`` for the
  upstream API, reused across refresh runs.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

import asyncpg
import httpx
import structlog

logger = structlog.get_logger(__name__)

# Errors that mean the database is unreachable or rejected the command
POOL_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@dataclass
class PoolUsage:
    """Connection usage counters for one pool."""

    acquisitions: int = 0
    in_use: int = 0
    failures: int = 0
    total_wait_ms: float = 0.0
    last_error: Optional[str] = None

    def acquired(self, wait_ms: float) -> None:
        self.acquisitions += 1
        self.in_use += 1
        self.total_wait_ms += wait_ms

    def released(self) -> None:
        self.in_use -= 1

    def failed(self, error: BaseException) -> None:
        self.failures += 1
        self.last_error = str(error)

    @property
    def avg_wait_ms(self) -> float:
        if not self.acquisitions:
            return 0.0
        return self.total_wait_ms / self.acquisitions

    def snapshot(self) -> Dict[str, Any]:
        """Counters as reported in the store health details."""
        return {
            "acquisitions": self.acquisitions,
            "in_use": self.in_use,
            "failures": self.failures,
            "avg_wait_ms": round(self.avg_wait_ms, 3),
            "last_error": self.last_error,
        }


class PostgreSQLPoolManager:
    """Owns the asyncpg pool behind ``PostgresCharacterStore``."""

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: dsn, min_size, max_size, timeout, command_timeout
        """
        self.dsn = config["dsn"]
        self.min_size = config.get("min_size", 1)
        self.max_size = config.get("max_size", 10)
        self.timeout = config.get("timeout", 30)
        self.command_timeout = config.get("command_timeout", 10)

        self.usage = PoolUsage()
        self._pool: Optional[asyncpg.Pool] = None
        self._opening = asyncio.Lock()

    async def initialize(self) -> asyncpg.Pool:
        """Open the pool on first use and return it."""
        if self._pool is not None:
            return self._pool

        async with self._opening:
            if self._pool is None:
                try:
                    self._pool = await asyncpg.create_pool(
                        self.dsn,
                        min_size=self.min_size,
                        max_size=self.max_size,
                        timeout=self.timeout,
                        command_timeout=self.command_timeout,
                    )
                except POOL_ERRORS as e:
                    self.usage.failed(e)
                    logger.error("Could not open PostgreSQL pool", error=str(e))
                    raise

                logger.info(
                    "PostgreSQL pool opened",
                    min_size=self.min_size,
                    max_size=self.max_size,
                )
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection; failures inside the block are counted."""
        pool = await self.initialize()
        requested = time.perf_counter()

        try:
            async with pool.acquire() as connection:
                self.usage.acquired((time.perf_counter() - requested) * 1000)
                try:
                    yield connection
                finally:
                    self.usage.released()
        except POOL_ERRORS as e:
            self.usage.failed(e)
            raise

    async def health_check(self) -> Dict[str, Any]:
        """Round-trip ``SELECT 1`` and report pool size plus usage."""
        if self._pool is None:
            return {"status": "closed", **self.usage.snapshot()}

        try:
            async with self.acquire() as connection:
                await connection.fetchval("SELECT 1")
        except POOL_ERRORS as e:
            return {"status": "unhealthy", "error": str(e), **self.usage.snapshot()}

        return {
            "status": "healthy",
            "size": self._pool.get_size(),
            "idle": self._pool.get_idle_size(),
            **self.usage.snapshot(),
        }

    async def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            logger.info("PostgreSQL pool closed", acquisitions=self.usage.acquisitions)


class HTTPSessionManager:
    """Owns the shared ``httpx.AsyncClient`` for the upstream API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Prefix for every relative request path
            timeout: Per-request timeout in seconds
            transport: Transport override (``httpx.MockTransport`` in tests)
        """
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def client(self) -> httpx.AsyncClient:
        """Return the shared client, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
            logger.info("HTTP client created", base_url=self.base_url)
        return self._client

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
            logger.info("HTTP client closed")
