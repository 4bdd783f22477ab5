"""
Audit Log Models
Append-only records of sensitive actions.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, IdMixin


class AuditLogFields:
    """
    Columns shared by the global and the per-user audit tables.

    Column sizes are the bounds ``portal.audit.trail`` truncates to.

    Attributes:
        usuario: Actor (email, DNI or ``desconocido``); soft reference by value
        accion: Action tag, e.g. ``login`` or ``busqueda_dni``
        modulo: Functional grouping, e.g. ``autenticacion``
        descripcion: Free text summary
        ip: Caller address (loopback normalised to 127.0.0.1)
        resultado: ``exitoso`` | ``fallido`` | ``advertencia``
        detalles: JSON payload serialised to text
        fecha: Assigned by the database at insert time
    """

    usuario: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    accion: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    modulo: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    descripcion: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    resultado: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    detalles: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fecha: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )


class AuditLog(Base, IdMixin, AuditLogFields):
    """
    Global audit trail.

    Immutable once written: the only write paths are insert and the
    administrative clear-all.
    """

    __tablename__ = "audit_logs"


class UserAuditLog(Base, IdMixin, AuditLogFields):
    """
    Per-user audit trail of lookup queries.

    A parallel log, not a view of ``audit_logs``; serves the
    "my recent queries" listing.
    """

    __tablename__ = "audit_logs_user"

    user_id: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_user_user_fecha", "user_id", "fecha"),
    )
