"""Database startup factory.

Runs the startup pipeline in its required order:

1. Resolve raw configuration from the environment.
2. Assemble the first-pass descriptor.
3. Build and register the TLS trust profile, when TLS is required.
4. Normalize the descriptor (registration must already have happened).
5. Open the engine, check connectivity, reconcile the schema.

``resolve_descriptor()`` and ``open_database()`` raise the typed errors
from ``tidb_connect.errors``. ``start_database()`` runs the whole pipeline
and reports failure through ``StartupResult`` instead of raising, so the
entry point decides how to exit.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import MetaData
from sqlalchemy.exc import SQLAlchemyError

from tidb_connect.adapters.mysql import AsyncMySQLDatabase
from tidb_connect.config.loader import load_raw_config
from tidb_connect.config.models import RawConfig
from tidb_connect.dsn.builder import assemble_descriptor, normalize_descriptor
from tidb_connect.dsn.models import NormalizedDescriptor
from tidb_connect.errors import DatabaseConnectionError, MigrationError, StartupError
from tidb_connect.schema.entities import Base
from tidb_connect.schema.models import ReconcileResult
from tidb_connect.schema.reconcile import reconcile_schema
from tidb_connect.tls.builder import TrustBuilder, tls_required
from tidb_connect.tls.registry import TrustProfileRegistry

logger = logging.getLogger(__name__)


# ============================================================================
# Startup Result
# ============================================================================


class StartupResult(BaseModel):
    """Result of ``start_database()``.

    ``database`` is set only on success; the caller owns it for the rest of
    the process lifetime.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    descriptor: str | None = None  # Password masked
    tls_profile: str | None = None
    schema_report: ReconcileResult | None = None
    database: AsyncMySQLDatabase | None = Field(default=None, exclude=True)
    error: str | None = None
    error_type: str | None = None


# ============================================================================
# Pipeline Steps
# ============================================================================


def resolve_descriptor(raw: RawConfig, registry: TrustProfileRegistry) -> NormalizedDescriptor:
    """Assemble, bootstrap TLS if needed, and normalize.

    Args:
        raw: Resolved configuration.
        registry: Registry the TLS profile is registered in.

    Returns:
        Normalized descriptor.

    Raises:
        TLSBootstrapError: CA material unusable or registration rejected.
        ConfigParseError: The assembled descriptor is malformed.

    Example:
        >>> registry = TrustProfileRegistry()
        >>> resolve_descriptor(RawConfig(), registry).text
        'root:@tcp(127.0.0.1:4000)/test?charset=utf8mb4&loc=Local&parseTime=true'
    """
    assembled = assemble_descriptor(raw)

    trust = None
    if tls_required(raw, assembled):
        trust = TrustBuilder(raw).build(assembled, registry)

    return normalize_descriptor(assembled, registry, trust=trust)


async def open_database(
    descriptor: NormalizedDescriptor,
    registry: TrustProfileRegistry,
    metadata: MetaData | None = None,
    **engine_kwargs: Any,
) -> tuple[AsyncMySQLDatabase, ReconcileResult]:
    """Open the engine, verify connectivity, and reconcile the schema.

    The engine is disposed of before any error propagates.

    Args:
        descriptor: Normalized descriptor.
        registry: Registry holding the referenced TLS profile, if any.
        metadata: Entity shapes to reconcile (default: ``Base.metadata``).
        **engine_kwargs: Forwarded to ``AsyncMySQLDatabase``.

    Returns:
        Tuple of (database, reconciliation result).

    Raises:
        DatabaseConnectionError: Dial or authentication failed.
        MigrationError: Schema reconciliation failed.
    """
    if metadata is None:
        metadata = Base.metadata

    database = AsyncMySQLDatabase(descriptor, registry, **engine_kwargs)

    try:
        await database.test_connection()
    except (SQLAlchemyError, OSError) as e:
        await database.close()
        raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

    try:
        report = await reconcile_schema(database.engine, metadata)
    except MigrationError:
        await database.close()
        raise

    logger.info("Database connected: %s", descriptor.masked())
    return database, report


async def start_database(
    env_prefix: str = "",
    environ: Mapping[str, str] | None = None,
    registry: TrustProfileRegistry | None = None,
    metadata: MetaData | None = None,
    **engine_kwargs: Any,
) -> StartupResult:
    """Run the full startup pipeline.

    This is the primary startup API. Errors from the startup taxonomy are
    returned, not raised; there is no partial startup.

    Args:
        env_prefix: Prefix for environment variable lookup.
        environ: Environment mapping (default: ``os.environ``).
        registry: TLS profile registry (default: a fresh one).
        metadata: Entity shapes to reconcile (default: ``Base.metadata``).
        **engine_kwargs: Forwarded to ``AsyncMySQLDatabase``.

    Returns:
        StartupResult; ``database`` is set on success.

    Example:
        >>> result = await start_database()
        >>> if not result.success:
        ...     sys.exit(f"{result.error_type}: {result.error}")
    """
    if registry is None:
        registry = TrustProfileRegistry()

    raw = load_raw_config(env_prefix=env_prefix, environ=environ)

    descriptor: NormalizedDescriptor | None = None
    try:
        descriptor = resolve_descriptor(raw, registry)
        database, report = await open_database(descriptor, registry, metadata, **engine_kwargs)
    except StartupError as e:
        logger.error("Startup failed (%s): %s", type(e).__name__, e)
        return StartupResult(
            success=False,
            descriptor=descriptor.masked() if descriptor else None,
            tls_profile=descriptor.tls_profile if descriptor else None,
            schema_report=e.report if isinstance(e, MigrationError) else None,
            error=str(e),
            error_type=type(e).__name__,
        )

    return StartupResult(
        success=True,
        descriptor=descriptor.masked(),
        tls_profile=descriptor.tls_profile,
        schema_report=report,
        database=database,
    )
