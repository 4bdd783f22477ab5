"""
Models Package
SQLAlchemy ORM models for the application.
"""

from portal.models.audit_log import AuditLog, UserAuditLog
from portal.models.catalog import (
    ADMIN_ROLE_NAME,
    ESTADO_ACTIVO,
    ESTADO_SUSPENDIDO,
    Area,
    Cargo,
    Estado,
    Role,
)
from portal.models.user import User

__all__ = [
    "User",
    "Role",
    "Area",
    "Cargo",
    "Estado",
    "AuditLog",
    "UserAuditLog",
    # Catalogue constants
    "ADMIN_ROLE_NAME",
    "ESTADO_ACTIVO",
    "ESTADO_SUSPENDIDO",
]
