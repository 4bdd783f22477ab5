"""
Admin Schemas
Pydantic models for user administration and catalogue endpoints.

Request fields are optional so that missing values are reported with the
portal's own messages instead of schema errors.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from portal.models import User


class UserCreateRequest(BaseModel):
    """Request body for creating a user. Every field is required."""

    nombres: Optional[str] = None
    apellidos: Optional[str] = None
    email: Optional[str] = None
    telefono: Optional[str] = None
    dni: Optional[str] = None
    cargo_id: Optional[int] = None
    rol_id: Optional[int] = None
    area_id: Optional[int] = None
    password: Optional[str] = None


class UserUpdateRequest(BaseModel):
    """Request body for editing a user. Omitted fields keep their value."""

    nombres: Optional[str] = None
    apellidos: Optional[str] = None
    email: Optional[str] = None
    telefono: Optional[str] = None
    dni: Optional[str] = None
    cargo_id: Optional[int] = None
    rol_id: Optional[int] = None
    area_id: Optional[int] = None
    password: Optional[str] = Field(None, description="New password; ignored when equal to the current one")
    estado: Optional[str] = Field(None, description="State name: activo | suspendido")


class EstadoRequest(BaseModel):
    estado: Optional[str] = Field(None, description="activo | suspendido")


class UserSummary(BaseModel):
    """User as listed in the admin panel (never includes the password hash)."""

    id: int
    nombres: str
    apellidos: str
    email: str
    telefono: Optional[str] = None
    dni: str
    cargo_id: Optional[int] = None
    cargo: Optional[str] = None
    area_id: Optional[int] = None
    area: Optional[str] = None
    rol_id: Optional[int] = None
    rol: Optional[str] = None
    estado_id: int
    estado: Optional[str] = None
    ultimo_acceso: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            nombres=user.nombres,
            apellidos=user.apellidos,
            email=user.email,
            telefono=user.telefono,
            dni=user.dni,
            cargo_id=user.cargo_id,
            cargo=user.cargo.nombre if user.cargo else None,
            area_id=user.area_id,
            area=user.area.nombre if user.area else None,
            rol_id=user.rol_id,
            rol=user.rol_nombre,
            estado_id=user.estado_id,
            estado=user.estado.nombre_estado if user.estado else None,
            ultimo_acceso=user.ultimo_acceso,
        )


class UserMutationResponse(BaseModel):
    success: bool = True
    user: UserSummary


class CatalogItem(BaseModel):
    id: int
    nombre: str


class CargoItem(CatalogItem):
    area_id: Optional[int] = None


class AdminStats(BaseModel):
    """Account counters for the admin dashboard."""

    total: int = Field(..., description="All accounts")
    admins: int = Field(..., description="Accounts with the administrator role")
    areaHeads: int = Field(..., description="Accounts whose cargo is 'Jefe de Area'")
    trabajadores: int = Field(..., description="Accounts whose cargo is 'Trabajador'")
    suspendidos: int = Field(..., description="Suspended accounts")
