"""
Security Audit Trail
Best-effort persistence of sensitive actions to the audit tables.

Every write runs on its own short-lived session, independent from the
request's session, and every failure is logged and discarded: recording
an action can never change how that action turns out.
"""

import json
import logging
from typing import Any, Callable, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import connection
from portal.models import AuditLog, UserAuditLog

logger = logging.getLogger("portal.audit")

# Outcomes
EXITOSO = "exitoso"
FALLIDO = "fallido"
ADVERTENCIA = "advertencia"

UNKNOWN_ACTOR = "desconocido"

# Column bounds
MAX_ACTOR = 100
MAX_TAG = 50
MAX_DESCRIPTION = 1000
MAX_IP = 45
MAX_RESULT = 50
MAX_DETAILS = 1000

_LOOPBACK_ALIASES = {"::1", "::ffff:127.0.0.1"}


def truncate(value: Optional[Any], limit: int) -> Optional[str]:
    """Coerce to str and cut to ``limit`` characters (None passes through)."""
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text[:limit]


def serialize_details(details: Optional[Any]) -> Optional[str]:
    """Serialise a details payload to bounded JSON text."""
    if details is None:
        return None
    if isinstance(details, str):
        text = details
    else:
        text = json.dumps(details, default=str, ensure_ascii=False)
    return text[:MAX_DETAILS]


def normalize_ip(ip: Optional[str]) -> str:
    """Collapse IPv6 loopback forms to the IPv4 literal."""
    if not ip:
        return ""
    ip = ip.strip()
    if ip in _LOOPBACK_ALIASES:
        return "127.0.0.1"
    return ip


def get_client_ip(request: Request) -> str:
    """Caller address: first X-Forwarded-For hop, else the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for", "")
    ip = forwarded_for.split(",")[0].strip() if forwarded_for else ""
    if not ip and request.client:
        ip = request.client.host
    return normalize_ip(ip)


class AuditTrail:
    """
    Fire-and-forget audit sink.

    ``record`` awaits a single insert and returns nothing; the caller
    moves on regardless of whether the row landed.
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        # Resolved late so the engine can be swapped after import
        return self._session_factory or connection.async_session_factory

    async def record(
        self,
        *,
        usuario: Optional[str],
        accion: str,
        modulo: str,
        descripcion: str,
        ip: Optional[str],
        resultado: str,
        detalles: Optional[Any] = None,
        user_id: Optional[Any] = None,
    ) -> None:
        """
        Persist one audit record.

        When ``user_id`` is given, the same record is also appended to the
        per-user log in the same transaction.

        Args:
            usuario: Actor (email, DNI); falls back to ``desconocido``
            accion: Action tag
            modulo: Functional grouping
            descripcion: Human readable summary
            ip: Caller address (normalised here as well)
            resultado: ``exitoso`` | ``fallido`` | ``advertencia``
            detalles: JSON-serialisable payload or preformatted text
            user_id: Owner for the per-user log
        """
        fields = {
            "usuario": truncate(usuario or UNKNOWN_ACTOR, MAX_ACTOR),
            "accion": truncate(accion, MAX_TAG),
            "modulo": truncate(modulo, MAX_TAG),
            "descripcion": truncate(descripcion or "", MAX_DESCRIPTION),
            "ip": truncate(normalize_ip(ip), MAX_IP),
            "resultado": truncate(resultado, MAX_RESULT),
            "detalles": serialize_details(detalles),
        }

        try:
            async with self.session_factory() as session:
                session.add(AuditLog(**fields))
                if user_id is not None and str(user_id).strip():
                    session.add(UserAuditLog(user_id=truncate(user_id, MAX_TAG), **fields))
                await session.commit()
        except Exception as e:
            logger.error(
                "Audit write failed (%s/%s for %s): %s",
                fields["accion"],
                fields["resultado"],
                fields["usuario"],
                e,
            )
            return

        log_data = {key: fields[key] for key in ("usuario", "accion", "modulo", "ip", "resultado")}
        if resultado == EXITOSO:
            logger.info(f"Audit event: {accion}", extra={"audit": log_data})
        else:
            logger.warning(f"Audit event {resultado}: {accion}", extra={"audit": log_data})


# Shared instance
audit_trail = AuditTrail()


def get_audit_trail() -> AuditTrail:
    """Dependency returning the process-wide audit sink."""
    return audit_trail
