"""
Audit Schemas
Pydantic models for the audit log endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AuditLogEntry(BaseModel):
    """One row of the global audit trail."""

    id: int
    timestamp: datetime = Field(..., description="Server-assigned insert time")
    usuario: str
    accion: str
    modulo: str
    descripcion: str
    ip: Optional[str] = None
    resultado: str
    detalles: Optional[str] = Field(None, description="JSON text or free text")


class AuditLogFilters(BaseModel):
    """Distinct values available for filtering the audit trail."""

    modulos: list[str]
    resultados: list[str]


class ClearLogsResponse(BaseModel):
    success: bool = True
    deleted: int = Field(..., description="Number of rows removed")


class RecentLookup(BaseModel):
    """
    Entry of the caller's recent DNI/RUC lookups.

    DNI entries fill ``sexo`` and ``fecha_nacimiento``; RUC entries fill
    ``estado`` and ``condicion``.
    """

    id: int
    type: str
    query: str
    result: str
    sexo: Optional[str] = None
    fecha_nacimiento: Optional[str] = None
    estado: Optional[str] = None
    condicion: Optional[str] = None
    timestamp: datetime
