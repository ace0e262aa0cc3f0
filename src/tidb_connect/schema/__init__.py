"""Entity models and startup schema reconciliation.

Usage:
    from tidb_connect.schema import Base, User, reconcile_schema
"""

from tidb_connect.schema.entities import Base, User
from tidb_connect.schema.models import ColumnDiff, ReconcileResult
from tidb_connect.schema.reconcile import (
    ColumnAddition,
    compare_columns,
    expected_columns,
    reconcile_schema,
)

__all__ = [
    "Base",
    "User",
    "ColumnDiff",
    "ReconcileResult",
    "ColumnAddition",
    "compare_columns",
    "expected_columns",
    "reconcile_schema",
]
