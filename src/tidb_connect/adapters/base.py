"""Database handle protocol definition.

Defines the ``DatabaseHandle`` Protocol: the long-lived, read-only
dependency that request handlers receive once startup has finished. All
I/O methods are ``async def``.

Usage:
    from tidb_connect.adapters.base import DatabaseHandle

    async def list_users(db: DatabaseHandle) -> list[User]:
        async with db.session() as session:
            return list(await session.scalars(select(User)))
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from tidb_connect.dsn.models import NormalizedDescriptor


class DatabaseHandle(Protocol):
    """Opened database connection shared by request handlers."""

    @property
    def descriptor(self) -> NormalizedDescriptor:
        """Normalized descriptor the engine was opened from."""
        ...

    @property
    def engine(self) -> AsyncEngine:
        """Underlying SQLAlchemy async engine."""
        ...

    def session(self) -> AsyncSession:
        """Create a new ``AsyncSession`` bound to the engine.

        Use as an async context manager:

            async with db.session() as session:
                session.add(User(name="Alice", email="alice@example.com"))
                await session.commit()
        """
        ...

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` and return True when the database answers."""
        ...

    async def close(self) -> None:
        """Dispose of the engine and its connections."""
        ...
