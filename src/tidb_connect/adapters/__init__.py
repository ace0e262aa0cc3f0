"""Database adapters package.

Provides the ``DatabaseHandle`` Protocol and the async TiDB adapter built
on SQLAlchemy + ``aiomysql``.

Usage:
    from tidb_connect.adapters import DatabaseHandle, AsyncMySQLDatabase
"""

from tidb_connect.adapters.base import DatabaseHandle
from tidb_connect.adapters.mysql import (
    AsyncMySQLDatabase,
    build_connect_args,
    build_engine_url,
    build_ssl_context,
)

__all__ = [
    "DatabaseHandle",
    "AsyncMySQLDatabase",
    "build_engine_url",
    "build_connect_args",
    "build_ssl_context",
]
