"""
Catalogue Models
Lookup tables referenced by user accounts: roles, areas, cargos and states.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.database.base import Base, IdMixin

# Account states (``estado.id_estado``)
ESTADO_ACTIVO = 1
ESTADO_SUSPENDIDO = 2

ADMIN_ROLE_NAME = "administrador"


class Role(Base, IdMixin):
    """Access role, e.g. ``administrador`` or ``trabajador``."""

    __tablename__ = "roles"

    nombre: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )


class Area(Base, IdMixin):
    """Municipal office a user belongs to."""

    __tablename__ = "areas"

    nombre: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )


class Cargo(Base, IdMixin):
    """Job position, optionally scoped to an area."""

    __tablename__ = "cargos"

    nombre: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    area_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("areas.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class Estado(Base):
    """
    Account state.

    Keeps the legacy ``estado(id_estado, nombre_estado)`` layout the
    rest of the municipal systems already query.
    """

    __tablename__ = "estado"

    id_estado: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
    )

    nombre_estado: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Estado(id_estado={self.id_estado}, nombre_estado={self.nombre_estado!r})>"
