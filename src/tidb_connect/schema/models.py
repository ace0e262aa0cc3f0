"""Pydantic models for schema reconciliation results."""

from pydantic import BaseModel, Field


class ColumnDiff(BaseModel):
    """A column missing from a live table."""

    table: str
    column: str
    message: str = ""


class ReconcileResult(BaseModel):
    """Outcome of reconciling entity metadata against the live database.

    Example:
        >>> result = ReconcileResult(valid=True, created_tables=["users"])
        >>> result.format_report()
        'Schema reconciled (created tables: users)'
    """

    valid: bool
    created_tables: list[str] = Field(default_factory=list)
    added_columns: list[ColumnDiff] = Field(default_factory=list)
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        """Count of drift left after reconciliation."""
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Format the result as a human-readable report."""
        if self.valid:
            changes: list[str] = []
            if self.created_tables:
                changes.append(f"created tables: {', '.join(self.created_tables)}")
            if self.added_columns:
                added = ", ".join(f"{d.table}.{d.column}" for d in self.added_columns)
                changes.append(f"added columns: {added}")
            if not changes:
                return "Schema up to date"
            return f"Schema reconciled ({'; '.join(changes)})"

        lines = ["Schema reconciliation failed:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(f"\n  Missing columns ({len(self.missing_columns)}):")
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        return "\n".join(lines)
