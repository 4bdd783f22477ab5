"""
Authentication Dependencies
FastAPI dependencies resolving who is calling a route.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.audit.trail import FALLIDO, AuditTrail, get_audit_trail, get_client_ip
from portal.auth.service import AuthService
from portal.auth.utils import decode_token
from portal.database import get_async_session
from portal.models import User

logger = logging.getLogger(__name__)

# Optional: identity can also come from headers or query params
security = HTTPBearer(auto_error=False)


@dataclass
class CallerIdentity:
    """
    Resolved caller of a request.

    Attributes:
        user_id: Id as sent by the client (string form)
        actor: Email or DNI recorded in the audit trail
        source: Where the identity came from (``token``, ``header``, ``query``)
        user: Account row, when the id matched one
    """

    user_id: str
    actor: Optional[str]
    source: str
    user: Optional[User] = None


def _identity_from_token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[CallerIdentity]:
    if not credentials or not credentials.credentials:
        return None

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access" or not payload.get("sub"):
        return None

    return CallerIdentity(
        user_id=str(payload["sub"]),
        actor=payload.get("email") or payload.get("dni"),
        source="token",
    )


def _identity_from_request(request: Request) -> Optional[CallerIdentity]:
    header_id = (request.headers.get("x-user-id") or "").strip()
    if header_id:
        return CallerIdentity(
            user_id=header_id,
            actor=request.headers.get("x-user-email"),
            source="header",
        )

    query_id = (request.query_params.get("userId") or "").strip()
    if query_id:
        return CallerIdentity(
            user_id=query_id,
            actor=request.query_params.get("userEmail"),
            source="query",
        )

    return None


async def get_caller(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Optional[CallerIdentity]:
    """
    Resolve the caller from, in order: Bearer JWT, ``x-user-id`` header,
    ``userId`` query parameter.

    Numeric ids are looked up so the actor becomes the account's email or
    DNI. Returns None when no identity was sent.
    """
    caller = _identity_from_token(credentials) or _identity_from_request(request)
    if caller is None:
        return None

    if caller.user_id.isdigit():
        try:
            user = await AuthService(session).get_user_by_id(int(caller.user_id))
        except SQLAlchemyError as e:
            logger.error(f"Could not resolve caller {caller.user_id}: {e}")
            user = None

        if user:
            caller.user = user
            caller.actor = user.identifier

    return caller


OptionalCaller = Annotated[Optional[CallerIdentity], Depends(get_caller)]


async def require_admin(
    request: Request,
    caller: OptionalCaller,
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
) -> User:
    """
    Dependency restricting a route to accounts with the administrator role.

    Every refusal is audited.

    Raises:
        HTTPException: 403 when the caller is unknown or not an administrator
    """
    user = caller.user if caller else None
    if user is not None and user.is_admin:
        return user

    await audit.record(
        usuario=caller.actor if caller else None,
        accion="acceso_denegado",
        modulo="administracion",
        descripcion=f"Acceso denegado a {request.method} {request.url.path}",
        ip=get_client_ip(request),
        resultado=FALLIDO,
        detalles={"userId": caller.user_id if caller else None},
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="No autorizado",
    )


# Type aliases for cleaner route signatures
AdminUser = Annotated[User, Depends(require_admin)]
