"""Startup error taxonomy.

Every error here is fatal at startup: library functions raise them,
``start_database()`` turns them into a failed ``StartupResult`` and the CLI
exits non-zero. Nothing in the package retries or degrades.

Usage:
    from tidb_connect.errors import ConfigParseError, StartupError

    try:
        cfg = parse_dsn(text, registry)
    except ConfigParseError as e:
        print(f"bad descriptor: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tidb_connect.schema.models import ReconcileResult


class StartupError(Exception):
    """Base class for all fatal startup errors."""


class ConfigParseError(StartupError):
    """Raised when a connection descriptor is syntactically invalid."""


class TLSBootstrapError(StartupError):
    """Raised when the TLS trust profile cannot be built or registered.

    Covers unreadable CA files, unparseable certificate bundles, rejected
    registrations, and descriptors that reference a profile that was never
    registered.
    """


class DatabaseConnectionError(StartupError):
    """Raised when the database cannot be dialed or authenticated against."""


class MigrationError(StartupError):
    """Raised when schema reconciliation fails.

    ``report`` is set when the failure is drift detected after
    ``create_all`` rather than an exception from the database.
    """

    def __init__(self, message: str, report: ReconcileResult | None = None) -> None:
        super().__init__(message)
        self.report = report
