"""
Authentication Router
Login, logout and session validation for portal staff.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.audit.trail import (
    ADVERTENCIA,
    EXITOSO,
    FALLIDO,
    AuditTrail,
    get_audit_trail,
    get_client_ip,
)
from portal.auth.dependencies import OptionalCaller
from portal.auth.login_attempts import LoginAttemptTracker, get_login_tracker
from portal.auth.rate_limit import limiter
from portal.auth.schemas import (
    LoginRequest,
    LoginResponse,
    LoginUser,
    LogoutRequest,
    SessionStatusResponse,
    ValidateSessionRequest,
)
from portal.auth.service import AuthService, LoginOutcome
from portal.auth.utils import create_access_token
from portal.config import settings
from portal.database import get_async_session
from portal.models import User
from portal.services.mailer import Notifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

MODULO = "autenticacion"
MAX_ATTEMPTS_WARNING = "max_attempts_reached"


def _login_user(user: User) -> LoginUser:
    return LoginUser(
        id=user.id,
        nombres=user.nombres,
        apellidos=user.apellidos,
        dni=user.dni,
        email=user.email,
        telefono=user.telefono,
        cargo_nombre=user.cargo.nombre if user.cargo else None,
        area_nombre=user.area.nombre if user.area else None,
        rol=user.rol_nombre,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate with email or DNI and open a session.",
)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    login_data: LoginRequest,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    tracker: Annotated[LoginAttemptTracker, Depends(get_login_tracker)],
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
):
    """
    Authenticate a user.

    Failed attempts are counted per identifier. The failure that reaches
    the warning threshold inside the window is audited as ``advertencia``,
    mails the account owner and adds ``warning`` to the response; later
    failures in the same window do not warn again.

    Rate limited per IP on top of the per-identifier counter.
    """
    ip = get_client_ip(request)
    identifier = (login_data.email_or_dni or "").strip()

    if not identifier or not login_data.password:
        await audit.record(
            usuario=identifier or None,
            accion="login",
            modulo=MODULO,
            descripcion="Intento de inicio de sesión sin credenciales",
            ip=ip,
            resultado=FALLIDO,
            detalles={"motivo": "Faltan credenciales"},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Faltan credenciales"},
        )

    auth_service = AuthService(session)

    try:
        result = await auth_service.authenticate(identifier, login_data.password)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Login lookup failed for {identifier}: {e}")
        await audit.record(
            usuario=identifier,
            accion="login",
            modulo=MODULO,
            descripcion="Error en el servidor durante el inicio de sesión",
            ip=ip,
            resultado=FALLIDO,
            detalles={"error": type(e).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Error en el servidor"},
        )

    if result.outcome is LoginOutcome.INVALID_CREDENTIALS:
        attempt = tracker.record_failed_attempt(identifier)
        should_warn = attempt.count >= settings.login_warning_threshold and not attempt.warned
        if should_warn:
            tracker.mark_warned(identifier)

        await audit.record(
            usuario=identifier,
            accion="login",
            modulo=MODULO,
            descripcion="Credenciales incorrectas",
            ip=ip,
            resultado=FALLIDO,
            detalles={"intentos": attempt.count},
        )

        body = {"success": False, "error": "Credenciales incorrectas"}

        if should_warn:
            logger.warning(f"Failed login threshold reached for {identifier} ({attempt.count} attempts)")
            await audit.record(
                usuario=identifier,
                accion="login",
                modulo=MODULO,
                descripcion=f"Se alcanzaron {attempt.count} intentos fallidos de inicio de sesión",
                ip=ip,
                resultado=ADVERTENCIA,
                detalles={
                    "intentos": attempt.count,
                    "ventana_minutos": settings.login_attempt_window_minutes,
                },
            )
            if result.user is not None:
                background_tasks.add_task(
                    notifier.send_security_alert,
                    result.user.email,
                    result.user.nombres,
                    attempt.count,
                )
            body["warning"] = MAX_ATTEMPTS_WARNING

        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=body)

    user = result.user

    if result.outcome is LoginOutcome.SUSPENDED:
        await audit.record(
            usuario=identifier,
            accion="login",
            modulo=MODULO,
            descripcion="Inicio de sesión de una cuenta suspendida",
            ip=ip,
            resultado=FALLIDO,
            detalles={"motivo": "Cuenta suspendida", "userId": user.id},
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"success": False, "error": "Cuenta suspendida"},
        )

    tracker.reset_attempts(identifier)

    # The rollback below expires ``user``; only plain values are used after it
    user_id = user.id
    try:
        session_token = await auth_service.start_session(user)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Could not open session for user {user_id}: {e}")
        await audit.record(
            usuario=identifier,
            accion="login",
            modulo=MODULO,
            descripcion="Error en el servidor al registrar la sesión",
            ip=ip,
            resultado=FALLIDO,
            detalles={"userId": user_id, "error": type(e).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Error en el servidor"},
        )

    access_token = create_access_token(
        subject=str(user.id),
        extra_data={"email": user.email, "dni": user.dni, "rol": user.rol_nombre},
    )

    await audit.record(
        usuario=user.identifier,
        accion="login",
        modulo=MODULO,
        descripcion="Inicio de sesión exitoso",
        ip=ip,
        resultado=EXITOSO,
        detalles={"userId": user.id, "rol": user.rol_nombre},
    )

    return LoginResponse(
        user=_login_user(user),
        token=access_token,
        session_token=session_token,
    ).model_dump(by_alias=True)


@router.post(
    "/logout",
    summary="Logout",
    description="Close the active session of a user.",
)
async def logout(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    audit: Annotated[AuditTrail, Depends(get_audit_trail)],
    caller: OptionalCaller,
    logout_data: Annotated[Optional[LogoutRequest], Body()] = None,
) -> dict:
    """Clear the session token; the user id comes from the body or the caller."""
    user_id = logout_data.user_id if logout_data else None
    if user_id is None and caller is not None and caller.user is not None:
        user_id = caller.user.id

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No se recibió userId",
        )

    user = await AuthService(session).end_session(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuario no encontrado",
        )

    await audit.record(
        usuario=user.identifier,
        accion="logout",
        modulo=MODULO,
        descripcion="Cierre de sesión",
        ip=get_client_ip(request),
        resultado=EXITOSO,
        detalles={"userId": user.id},
    )

    return {"success": True}


@router.post(
    "/validate-session",
    response_model=SessionStatusResponse,
    summary="Validate session",
    description="Check whether a session token is still the user's active one.",
)
async def validate_session(
    session_data: ValidateSessionRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> SessionStatusResponse:
    if session_data.user_id is None or not session_data.session_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Faltan datos de sesión",
        )

    valid = await AuthService(session).is_session_valid(session_data.user_id, session_data.session_token)
    return SessionStatusResponse(valid=valid)
