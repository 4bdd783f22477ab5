"""
Audit Router
Browsing and maintenance of the audit trail.
"""

import json
import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.audit.schemas import AuditLogEntry, AuditLogFilters, ClearLogsResponse, RecentLookup
from portal.audit.trail import EXITOSO, AuditTrail, get_audit_trail, get_client_ip
from portal.auth.dependencies import AdminUser, OptionalCaller
from portal.database import get_async_session
from portal.models import AuditLog, UserAuditLog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit-logs", tags=["Audit"])
lookups_router = APIRouter(prefix="/api/audit-logs", tags=["Audit"])

LOOKUP_ACTIONS = ("busqueda_dni", "busqueda_ruc")
RECENT_LOOKUPS_LIMIT = 10


def _parse_details(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _recent_lookup(row: UserAuditLog) -> RecentLookup:
    details = _parse_details(row.detalles)

    if row.accion == "busqueda_dni":
        return RecentLookup(
            id=row.id,
            type="DNI",
            query=str(details.get("dni") or ""),
            result=str(details.get("nombreCompleto") or ""),
            sexo=str(details.get("sexo") or ""),
            fecha_nacimiento=str(details.get("fechaNacimiento") or ""),
            timestamp=row.fecha,
        )

    return RecentLookup(
        id=row.id,
        type="RUC",
        query=str(details.get("ruc") or ""),
        result=str(details.get("razonSocial") or ""),
        estado=str(details.get("estado") or ""),
        condicion=str(details.get("condicion") or ""),
        timestamp=row.fecha,
    )


@lookups_router.get(
    "/mis-consultas",
    response_model=list[RecentLookup],
    response_model_exclude_none=True,
    summary="My recent lookups",
    description="Last DNI/RUC lookups of the calling user.",
)
async def my_recent_lookups(
    caller: OptionalCaller,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> list[RecentLookup]:
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autenticado",
        )

    query = (
        select(UserAuditLog)
        .where(
            UserAuditLog.user_id == caller.user_id,
            UserAuditLog.accion.in_(LOOKUP_ACTIONS),
        )
        .order_by(UserAuditLog.fecha.desc(), UserAuditLog.id.desc())
        .limit(RECENT_LOOKUPS_LIMIT)
    )
    result = await session.execute(query)
    return [_recent_lookup(row) for row in result.scalars().all()]


@router.get(
    "",
    response_model=list[AuditLogEntry],
    summary="List audit logs",
    description="Newest first, optionally filtered. Administrators only.",
)
async def list_audit_logs(
    admin_user: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    modulo: Optional[str] = Query(None, description="Exact module"),
    resultado: Optional[str] = Query(None, description="Exact outcome"),
    search: Optional[str] = Query(None, description="Substring of actor, action or description"),
    limit: int = Query(500, ge=1, le=5000),
) -> list[AuditLogEntry]:
    query = select(AuditLog)

    if modulo:
        query = query.where(AuditLog.modulo == modulo)
    if resultado:
        query = query.where(AuditLog.resultado == resultado)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                AuditLog.usuario.ilike(pattern),
                AuditLog.accion.ilike(pattern),
                AuditLog.descripcion.ilike(pattern),
            )
        )

    query = query.order_by(AuditLog.fecha.desc(), AuditLog.id.desc()).limit(limit)
    result = await session.execute(query)

    return [
        AuditLogEntry(
            id=row.id,
            timestamp=row.fecha,
            usuario=row.usuario,
            accion=row.accion,
            modulo=row.modulo,
            descripcion=row.descripcion,
            ip=row.ip,
            resultado=row.resultado,
            detalles=row.detalles,
        )
        for row in result.scalars().all()
    ]


@router.get(
    "/filters",
    response_model=AuditLogFilters,
    summary="Audit log filter values",
)
async def audit_log_filters(
    admin_user: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> AuditLogFilters:
    modulos = await session.execute(select(AuditLog.modulo).distinct().order_by(AuditLog.modulo))
    resultados = await session.execute(select(AuditLog.resultado).distinct().order_by(AuditLog.resultado))
    return AuditLogFilters(
        modulos=list(modulos.scalars().all()),
        resultados=list(resultados.scalars().all()),
    )


@router.post(
    "/clear",
    response_model=ClearLogsResponse,
    summary="Clear audit logs",
    description="Delete every global audit record. Administrators only; the clearing itself is audited afterwards.",
)
async def clear_audit_logs(
    request: Request,
    admin_user: AdminUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
) -> ClearLogsResponse:
    result = await session.execute(delete(AuditLog))
    await session.commit()
    deleted = result.rowcount or 0

    logger.warning(f"Audit trail cleared by {admin_user.identifier} ({deleted} rows)")

    await audit.record(
        usuario=admin_user.identifier,
        accion="limpiar_logs",
        modulo="auditoria",
        descripcion="Limpieza de logs de auditoría",
        ip=get_client_ip(request),
        resultado=EXITOSO,
        detalles={"registros_eliminados": deleted},
    )

    return ClearLogsResponse(deleted=deleted)
