"""
Base Model Module
Declarative base and column mixins shared by the portal tables.

Table names come from the existing municipal schema (Spanish, partly
singular such as ``estado``), so every model sets ``__tablename__``.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, func, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all portal models."""

    def __repr__(self) -> str:
        # Primary key values only; rows may hold password hashes and tokens
        identity = inspect(self).identity
        key = ", ".join(str(v) for v in identity) if identity else "transient"
        return f"<{type(self).__name__}({key})>"


class IdMixin:
    """
    Serial integer primary key.

    User ids travel through headers and query strings as plain numbers.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """Row creation and last update instants, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
