"""Schema reconciliation for the known entity models.

Creates missing tables, adds missing columns to existing tables, then
re-introspects the live schema and compares it against the entity
metadata. Any drift left over, or any database error on the way, is a
``MigrationError``.

Usage:
    from tidb_connect.schema.entities import Base
    from tidb_connect.schema.reconcile import reconcile_schema

    result = await reconcile_schema(engine, Base.metadata)
    print(result.format_report())
"""

import logging
from dataclasses import dataclass

from sqlalchemy import Connection, MetaData, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.schema import CreateColumn

from tidb_connect.errors import MigrationError
from tidb_connect.schema.models import ColumnDiff, ReconcileResult

logger = logging.getLogger(__name__)


@dataclass
class ColumnAddition:
    """A column to be added via ALTER TABLE.

    Example:
        add = ColumnAddition(table="users", column="age", definition="age INTEGER NOT NULL")
        add.to_sql()
        # 'ALTER TABLE users ADD COLUMN age INTEGER'
    """

    table: str
    column: str
    definition: str  # Full column DDL, name included
    unique_index: str | None = None  # Index name when the column is unique

    def to_sql(self) -> str:
        """Generate the ALTER TABLE statement.

        NOT NULL and PRIMARY KEY are stripped: neither can be added to a
        populated table with a plain ADD COLUMN.
        """
        definition = self.definition.replace(" NOT NULL", "").replace(" PRIMARY KEY", "")
        return f"ALTER TABLE {self.table} ADD COLUMN {definition}"

    def index_sql(self) -> str | None:
        """Generate the CREATE UNIQUE INDEX statement, if one is needed.

        Example:
            add = ColumnAddition("users", "email", "email VARCHAR(255)", unique_index="uq_users_email")
            add.index_sql()
            # 'CREATE UNIQUE INDEX uq_users_email ON users (email)'
        """
        if self.unique_index is None:
            return None
        return f"CREATE UNIQUE INDEX {self.unique_index} ON {self.table} ({self.column})"


def expected_columns(metadata: MetaData) -> dict[str, set[str]]:
    """Map each table in ``metadata`` to its column names."""
    return {
        table.name: {column.name for column in table.columns}
        for table in metadata.sorted_tables
    }


def compare_columns(
    actual_columns: dict[str, set[str]],
    expected: dict[str, set[str]],
) -> ReconcileResult:
    """Compare live columns against expected columns.

    Pure set logic. Tables present only in the database are ignored; the
    database may hold tables that are not modelled here.

    Examples:
        >>> compare_columns({"users": {"id", "name"}}, {"users": {"id", "name"}}).valid
        True
        >>> result = compare_columns({"users": {"id"}}, {"users": {"id", "name"}})
        >>> result.missing_columns[0].column
        'name'
    """
    missing_tables = sorted(set(expected) - set(actual_columns))

    missing_columns: list[ColumnDiff] = []
    for table_name in sorted(set(expected) & set(actual_columns)):
        for col_name in sorted(expected[table_name] - actual_columns[table_name]):
            missing_columns.append(
                ColumnDiff(
                    table=table_name,
                    column=col_name,
                    message=f"Column '{col_name}' missing from table '{table_name}'",
                )
            )

    return ReconcileResult(
        valid=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
    )


def _live_columns(conn: Connection, table_names: list[str]) -> dict[str, set[str]]:
    inspector = inspect(conn)
    existing = set(inspector.get_table_names())
    return {
        name: {column["name"] for column in inspector.get_columns(name)}
        for name in table_names
        if name in existing
    }


def _reconcile(conn: Connection, metadata: MetaData) -> ReconcileResult:
    """Synchronous body of ``reconcile_schema()``, run via ``run_sync``."""
    expected = expected_columns(metadata)
    table_names = list(expected)

    before = _live_columns(conn, table_names)
    created = [name for name in table_names if name not in before]
    metadata.create_all(conn, checkfirst=True)

    preparer = conn.dialect.identifier_preparer
    additions: list[ColumnAddition] = []
    added: list[ColumnDiff] = []
    for table in metadata.sorted_tables:
        live = before.get(table.name)
        if live is None:
            continue
        for column in table.columns:
            if column.name in live:
                continue
            if column.primary_key:
                # A key column cannot be added in place; left as drift
                logger.warning(
                    "Primary key column %s.%s is missing; not adding it", table.name, column.name
                )
                continue
            definition = str(CreateColumn(column).compile(dialect=conn.dialect))
            unique_index = None
            if column.unique:
                unique_index = preparer.quote(f"uq_{table.name}_{column.name}")
            additions.append(
                ColumnAddition(
                    table=preparer.quote(table.name),
                    column=preparer.quote(column.name),
                    definition=definition,
                    unique_index=unique_index,
                )
            )
            added.append(ColumnDiff(table=table.name, column=column.name))

    for addition in additions:
        logger.info("Adding column %s.%s", addition.table, addition.column)
        conn.execute(text(addition.to_sql()))
        index_sql = addition.index_sql()
        if index_sql is not None:
            conn.execute(text(index_sql))

    result = compare_columns(_live_columns(conn, table_names), expected)
    result.created_tables = created
    result.added_columns = added
    return result


async def reconcile_schema(engine: AsyncEngine, metadata: MetaData) -> ReconcileResult:
    """Ensure every table and column in ``metadata`` exists in the database.

    Runs in a single transaction (``engine.begin()``).

    Args:
        engine: Open async engine.
        metadata: Entity shapes to reconcile (e.g. ``Base.metadata``).

    Returns:
        ReconcileResult with ``valid=True`` and the changes made.

    Raises:
        MigrationError: On any database error, or when drift remains after
            reconciliation (``report`` carries the details).
    """
    try:
        async with engine.begin() as conn:
            result = await conn.run_sync(_reconcile, metadata)
    except SQLAlchemyError as e:
        raise MigrationError(f"Failed to migrate database: {e}") from e

    if not result.valid:
        raise MigrationError(
            f"Schema reconciliation failed: {result.error_count} errors",
            report=result,
        )

    logger.info(result.format_report())
    return result
