"""tidb-connect: connection descriptor resolution and TLS bootstrap for TiDB.

Turns environment configuration into one canonical MySQL-protocol
descriptor, registers the ``tidb`` TLS trust profile before that descriptor
is parsed, and opens an async SQLAlchemy engine with the known entity
tables reconciled.

Usage:
    from tidb_connect import start_database

    result = await start_database()
    if not result.success:
        raise SystemExit(result.error)
    db = result.database
"""

__version__ = "0.1.0"

# Config
from tidb_connect.config.loader import load_raw_config
from tidb_connect.config.models import RawConfig

# Descriptors
from tidb_connect.dsn.builder import assemble_descriptor, normalize_descriptor
from tidb_connect.dsn.models import AssembledDescriptor, DSNConfig, NormalizedDescriptor
from tidb_connect.dsn.parser import format_dsn, parse_dsn

# TLS
from tidb_connect.tls.builder import TrustBuilder, tls_required
from tidb_connect.tls.models import TLS_PROFILE_NAME, TrustProfile
from tidb_connect.tls.registry import TrustHandle, TrustProfileRegistry

# Errors
from tidb_connect.errors import (
    ConfigParseError,
    DatabaseConnectionError,
    MigrationError,
    StartupError,
    TLSBootstrapError,
)

# Adapters
from tidb_connect.adapters.base import DatabaseHandle
from tidb_connect.adapters.mysql import AsyncMySQLDatabase

# Factory
from tidb_connect.factory import (
    StartupResult,
    open_database,
    resolve_descriptor,
    start_database,
)

__all__ = [
    # Config
    "load_raw_config",
    "RawConfig",
    # Descriptors
    "assemble_descriptor",
    "normalize_descriptor",
    "parse_dsn",
    "format_dsn",
    "AssembledDescriptor",
    "DSNConfig",
    "NormalizedDescriptor",
    # TLS
    "TLS_PROFILE_NAME",
    "TrustProfile",
    "TrustHandle",
    "TrustProfileRegistry",
    "TrustBuilder",
    "tls_required",
    # Errors
    "StartupError",
    "ConfigParseError",
    "TLSBootstrapError",
    "DatabaseConnectionError",
    "MigrationError",
    # Adapters
    "DatabaseHandle",
    "AsyncMySQLDatabase",
    # Factory
    "StartupResult",
    "resolve_descriptor",
    "open_database",
    "start_database",
]
