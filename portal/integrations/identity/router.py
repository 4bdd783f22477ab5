"""
Identity Lookup Router
DNI and RUC lookups proxied to the identity provider, with auditing.
"""

import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from portal.audit.trail import EXITOSO, FALLIDO, AuditTrail, get_audit_trail, get_client_ip
from portal.auth.dependencies import CallerIdentity, OptionalCaller
from portal.integrations.identity.client import IdentityApiClient, get_identity_client
from portal.integrations.identity.exceptions import IdentityApiError
from portal.integrations.identity.normalizers import (
    dni_summary,
    is_valid_dni,
    is_valid_ruc,
    normalize_dni,
    normalize_ruc,
    ruc_summary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Identity Lookups"])

MISSING_CALLER_MESSAGE = "No se recibió userId (sesión, header x-user-id o query userId)"


class _LookupAudit:
    """Binds the fixed fields of one lookup's audit records."""

    def __init__(
        self,
        audit: AuditTrail,
        request: Request,
        caller: Optional[CallerIdentity],
        accion: str,
        modulo: str,
        label: str,
    ):
        self.audit = audit
        self.ip = get_client_ip(request)
        self.caller = caller
        self.accion = accion
        self.modulo = modulo
        self.label = label

    @property
    def actor(self) -> Optional[str]:
        if self.caller is None:
            return None
        return self.caller.actor or self.caller.user_id

    async def failed(self, detalles: dict[str, Any], descripcion: Optional[str] = None) -> None:
        await self.audit.record(
            usuario=self.actor,
            accion=self.accion,
            modulo=self.modulo,
            descripcion=descripcion or f"Búsqueda fallida de {self.label}",
            ip=self.ip,
            resultado=FALLIDO,
            detalles=detalles,
        )

    async def succeeded(self, summary: dict[str, Any]) -> None:
        await self.audit.record(
            usuario=self.actor,
            accion=self.accion,
            modulo=self.modulo,
            descripcion=f"Búsqueda exitosa de {self.label}",
            ip=self.ip,
            resultado=EXITOSO,
            detalles=summary,
            user_id=self.caller.user_id if self.caller else None,
        )


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.get(
    "/dni/{dni}",
    summary="DNI lookup",
    description="Look up a national identity record. Requires a caller identity.",
)
async def lookup_dni(
    dni: str,
    request: Request,
    caller: OptionalCaller,
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
    client: Annotated[IdentityApiClient, Depends(get_identity_client)],
) -> dict:
    trail = _LookupAudit(audit, request, caller, "busqueda_dni", "consulta_dni", "DNI")

    if caller is None:
        await trail.failed({"motivo": "Sin userId", "dni": dni})
        raise _bad_request(MISSING_CALLER_MESSAGE)

    if not is_valid_dni(dni):
        await trail.failed({"motivo": "DNI inválido", "dni": dni})
        raise _bad_request("DNI inválido")

    try:
        payload = await client.fetch_dni(dni)
    except IdentityApiError as e:
        if e.upstream_error:
            await trail.failed({"motivo": e.upstream_error, "dni": dni})
            raise _bad_request(e.upstream_error)
        await trail.failed({"error": e.message, "dni": dni}, "Error consultando DNI")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error consultando DNI",
        )

    if payload.get("error"):
        await trail.failed({"motivo": payload["error"], "dni": dni})
        raise _bad_request(str(payload["error"]))

    record = normalize_dni(payload, dni)
    await trail.succeeded(dni_summary(record))

    logger.info(f"DNI lookup {dni} by {trail.actor}")
    return record


@router.get(
    "/ruc/{ruc}",
    summary="RUC lookup",
    description="Look up a taxpayer record.",
)
async def lookup_ruc(
    ruc: str,
    request: Request,
    caller: OptionalCaller,
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
    client: Annotated[IdentityApiClient, Depends(get_identity_client)],
) -> dict:
    trail = _LookupAudit(audit, request, caller, "busqueda_ruc", "consulta_ruc", "RUC")

    if not is_valid_ruc(ruc):
        await trail.failed({"motivo": "RUC inválido", "ruc": ruc})
        raise _bad_request("RUC inválido")

    try:
        payload = await client.fetch_ruc(ruc)
    except IdentityApiError as e:
        if e.upstream_error:
            await trail.failed({"motivo": e.upstream_error, "ruc": ruc})
            raise _bad_request(e.upstream_error)
        await trail.failed({"error": e.message, "ruc": ruc}, "Error inesperado en búsqueda de RUC")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error consultando RUC",
        )

    if payload.get("error"):
        await trail.failed({"motivo": payload["error"], "ruc": ruc})
        raise _bad_request(str(payload["error"]))

    record = normalize_ruc(payload, ruc)
    if not is_valid_ruc(record["ruc"]):
        await trail.failed({"motivo": "RUC inválido en respuesta externa", "ruc": record["ruc"]})
        raise _bad_request("RUC inválido en respuesta externa")

    await trail.succeeded(ruc_summary(record))

    logger.info(f"RUC lookup {ruc} by {trail.actor or 'desconocido'}")
    return record


@router.post(
    "/ruc/{ruc}/exportar",
    summary="Record RUC export",
    description="Audit the export of a RUC lookup to PDF (the PDF is built client-side).",
)
async def export_ruc(
    ruc: str,
    request: Request,
    caller: OptionalCaller,
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
) -> dict:
    if not is_valid_ruc(ruc):
        raise _bad_request("RUC inválido")

    actor = (caller.actor or caller.user_id) if caller else None
    await audit.record(
        usuario=actor,
        accion="exportacion",
        modulo="exportacion_ruc",
        descripcion="Exportación de consulta RUC",
        ip=get_client_ip(request),
        resultado=EXITOSO,
        detalles=f"Exportación de PDF de RUC {ruc} realizada por {actor or 'desconocido'}",
    )

    return {"success": True}
