"""Async MySQL-protocol database adapter for TiDB.

Provides ``AsyncMySQLDatabase``, an implementation of the
``DatabaseHandle`` protocol using SQLAlchemy's async engine with the
``aiomysql`` driver, opened from a normalized descriptor.

The descriptor's ``tls`` parameter selects the driver's SSL context:

- registered profile name -> that profile's verifying context
- ``true`` -> system default verifying context
- ``skip-verify`` / ``preferred`` -> encrypted, unverified context
- ``false`` or absent -> plain connection

Usage:
    from tidb_connect.adapters.mysql import AsyncMySQLDatabase

    db = AsyncMySQLDatabase(normalized, registry)
    await db.test_connection()
    await db.close()
"""

import re
import ssl
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tidb_connect.dsn.models import DSNConfig, NormalizedDescriptor
from tidb_connect.errors import TLSBootstrapError
from tidb_connect.tls.registry import TrustProfileRegistry

DRIVER_NAME = "mysql+aiomysql"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def duration_seconds(value: str) -> float:
    """Convert a duration such as ``"1m30s"`` to seconds."""
    return sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART.findall(value)
    )


def build_engine_url(cfg: DSNConfig) -> URL:
    """Translate parsed descriptor fields into a SQLAlchemy URL.

    Only the first of a comma-separated ``charset`` list is used.
    """
    query: dict[str, str] = {}
    charset = cfg.params.get("charset")
    if charset:
        query["charset"] = charset.split(",")[0]

    host: str | None = None
    port: int | None = None
    if cfg.net == "unix":
        query["unix_socket"] = cfg.addr
    else:
        host, port = cfg.host, cfg.port

    return URL.create(
        DRIVER_NAME,
        username=cfg.user or None,
        password=cfg.password or None,
        host=host,
        port=port,
        database=cfg.db_name or None,
        query=query,
    )


def build_ssl_context(tls: str | None, registry: TrustProfileRegistry) -> ssl.SSLContext | None:
    """Resolve the descriptor's ``tls`` parameter to an SSL context.

    Raises:
        TLSBootstrapError: The parameter names a profile missing from
            ``registry``, or the profile's CA bundle fails to load.
    """
    if tls is None or tls == "false":
        return None

    if tls == "true":
        return ssl.create_default_context()

    if tls in ("skip-verify", "preferred"):
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        return ctx

    profile = registry.get(tls)
    if profile is None:
        raise TLSBootstrapError(f"TLS profile '{tls}' is not registered")
    try:
        return profile.ssl_context()
    except ssl.SSLError as e:
        raise TLSBootstrapError(f"Failed to build SSL context for profile '{tls}': {e}") from e


def build_connect_args(cfg: DSNConfig, registry: TrustProfileRegistry) -> dict[str, Any]:
    """Driver keyword arguments derived from descriptor parameters."""
    connect_args: dict[str, Any] = {}

    ctx = build_ssl_context(cfg.tls, registry)
    if ctx is not None:
        connect_args["ssl"] = ctx

    timeout = cfg.params.get("timeout")
    if timeout:
        connect_args["connect_timeout"] = duration_seconds(timeout)

    return connect_args


class AsyncMySQLDatabase:
    """Async TiDB implementation of the ``DatabaseHandle`` protocol.

    Creating the instance does not dial the database; SQLAlchemy connects
    lazily. Call ``test_connection()`` to verify reachability.

    Args:
        descriptor: Normalized descriptor.
        registry: Registry holding any TLS profile the descriptor references.
        **engine_kwargs: Forwarded to ``create_async_engine`` (override the
            defaults below).
    """

    def __init__(
        self,
        descriptor: NormalizedDescriptor,
        registry: TrustProfileRegistry,
        **engine_kwargs: Any,
    ) -> None:
        self._descriptor = descriptor

        defaults: dict[str, Any] = {
            "pool_pre_ping": True,
            "echo": False,
        }
        merged = {**defaults, **engine_kwargs}

        self._engine: AsyncEngine = create_async_engine(
            build_engine_url(descriptor.config),
            connect_args=build_connect_args(descriptor.config, registry),
            **merged,
        )
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)

    @property
    def descriptor(self) -> NormalizedDescriptor:
        return self._descriptor

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def session(self) -> AsyncSession:
        return self._sessionmaker()

    async def test_connection(self) -> bool:
        """Test database connection health.

        Returns:
            ``True`` if ``SELECT 1`` succeeds.

        Raises:
            Exception: If the database connection fails.
        """
        async with self._engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def close(self) -> None:
        """Close the async engine and dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()
