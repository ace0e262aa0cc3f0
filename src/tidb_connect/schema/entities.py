"""
Entity Models (SQLAlchemy)
==========================

Declarative models whose tables are reconciled at startup. ``Base.metadata``
is the default set of entity shapes passed to ``reconcile_schema()``.

Key features
~~~~~~~~~~~~
- ``User``: the ``users`` table, auto-increment primary key, unique email,
  server-side created/updated timestamps
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Root class for entity models; owns the shared MetaData."""


class User(Base):
    """
    ORM model for the ``users`` table.

    Attributes
    ----------
    id : int
        Primary key.
    name : str
        Display name (max 100 chars).
    email : str
        Unique email address.
    age : int | None
        Optional age.
    created_at : datetime
        Set by the database on insert.
    updated_at : datetime
        Set by the database on insert and update.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"
