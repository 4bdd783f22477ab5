"""
User Model
Represents municipal staff accounts.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.database.base import Base, IdMixin, TimestampMixin
from portal.models.catalog import ADMIN_ROLE_NAME, ESTADO_ACTIVO, ESTADO_SUSPENDIDO

if TYPE_CHECKING:
    from portal.models.catalog import Area, Cargo, Estado, Role


class User(Base, IdMixin, TimestampMixin):
    """
    User model for authentication and identity.

    Staff log in with either their email or their DNI, so both are unique.

    Attributes:
        id: Serial identifier
        nombres / apellidos: Given names and surnames
        dni: National identity number (login identifier)
        email: Email address (login identifier)
        telefono: Contact phone
        password: Bcrypt hashed password
        cargo_id / area_id / rol_id: Catalogue references
        estado_id: Account state (1 activo, 2 suspendido)
        ultimo_acceso: Last successful login
        session_token: Token of the single active session

    Relationships:
        - rol, cargo, area, estado (many-to-one, eagerly loaded)
    """

    __tablename__ = "users"

    nombres: Mapped[str] = mapped_column(String(100), nullable=False)
    apellidos: Mapped[str] = mapped_column(String(100), nullable=False)

    dni: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )

    telefono: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Catalogue references
    cargo_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("cargos.id", ondelete="SET NULL"), nullable=True
    )
    area_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("areas.id", ondelete="SET NULL"), nullable=True
    )
    rol_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True
    )
    estado_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("estado.id_estado"),
        nullable=False,
        default=ESTADO_ACTIVO,
    )

    # Session tracking
    ultimo_acceso: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    session_token: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )

    # Relationships
    rol: Mapped[Optional["Role"]] = relationship("Role", lazy="selectin")
    cargo: Mapped[Optional["Cargo"]] = relationship("Cargo", lazy="selectin")
    area: Mapped[Optional["Area"]] = relationship("Area", lazy="selectin")
    estado: Mapped[Optional["Estado"]] = relationship("Estado", lazy="selectin")

    __table_args__ = (
        Index("ix_users_estado", "estado_id"),
    )

    @property
    def rol_nombre(self) -> Optional[str]:
        """Lower-cased role name, as the frontend compares it."""
        return self.rol.nombre.lower() if self.rol else None

    @property
    def is_admin(self) -> bool:
        return self.rol_nombre == ADMIN_ROLE_NAME

    @property
    def is_suspended(self) -> bool:
        return self.estado_id == ESTADO_SUSPENDIDO

    @property
    def identifier(self) -> str:
        """Actor string recorded in the audit trail."""
        return self.email or self.dni

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, estado_id={self.estado_id})>"
