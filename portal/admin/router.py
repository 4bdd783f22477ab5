"""
Admin Router
User administration, catalogues and dashboard counters.
"""

import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.admin.schemas import (
    AdminStats,
    CargoItem,
    CatalogItem,
    EstadoRequest,
    UserCreateRequest,
    UserMutationResponse,
    UserSummary,
    UserUpdateRequest,
)
from portal.audit.trail import EXITOSO, FALLIDO, AuditTrail, get_audit_trail, get_client_ip
from portal.auth.dependencies import AdminUser
from portal.auth.utils import is_valid_email, validate_password_strength
from portal.database import get_async_session
from portal.services.mailer import Notifier, get_notifier
from portal.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])

MODULO = "usuarios"
SETTABLE_STATES = ("activo", "suspendido")

AuditDep = Annotated[AuditTrail, Depends(get_audit_trail)]
SessionDep = Annotated[AsyncSession, Depends(get_async_session)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]


def _weak_password(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Contraseña insegura", "detalle": message},
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")


async def _persistence_failure(
    session: AsyncSession,
    audit: AuditTrail,
    request: Request,
    admin_identifier: str,
    accion: str,
    descripcion: str,
    error: SQLAlchemyError,
    detalles: dict[str, Any],
    message: str,
) -> HTTPException:
    """Roll back, audit the failure on its own session and build the 500."""
    await session.rollback()
    logger.error(f"{accion} failed: {error}")
    await audit.record(
        usuario=admin_identifier,
        accion=accion,
        modulo=MODULO,
        descripcion=descripcion,
        ip=get_client_ip(request),
        resultado=FALLIDO,
        detalles={**detalles, "error": type(error).__name__},
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


# =============================================================================
# Users
# =============================================================================

@router.get(
    "/users",
    response_model=list[UserSummary],
    summary="List users",
)
async def list_users(admin_user: AdminUser, session: SessionDep) -> list[UserSummary]:
    users = await UserService(session).list_users()
    return [UserSummary.from_user(user) for user in users]


@router.post(
    "/users",
    response_model=UserMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create an active account and send the welcome email.",
)
async def create_user(
    request: Request,
    payload: UserCreateRequest,
    background_tasks: BackgroundTasks,
    admin_user: AdminUser,
    session: SessionDep,
    audit: AuditDep,
    notifier: NotifierDep,
):
    ip = get_client_ip(request)
    data = payload.model_dump()

    async def reject(motivo: str) -> None:
        await audit.record(
            usuario=admin_user.identifier,
            accion="crear_usuario",
            modulo=MODULO,
            descripcion="Registro de usuario rechazado",
            ip=ip,
            resultado=FALLIDO,
            detalles={"motivo": motivo, "email": payload.email, "dni": payload.dni},
        )

    if not all(data.values()):
        await reject("Faltan campos obligatorios")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Faltan campos obligatorios")

    if not is_valid_email(payload.email):
        await reject("Formato de correo inválido")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Formato de correo inválido")

    is_valid, message = validate_password_strength(payload.password)
    if not is_valid:
        await reject("Contraseña insegura")
        return _weak_password(message)

    service = UserService(session)
    if await service.find_conflict(payload.email, payload.dni):
        await reject("Correo o DNI duplicado")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El correo o DNI ya está registrado")

    try:
        user = await service.create(data, payload.password)
    except SQLAlchemyError as e:
        raise await _persistence_failure(
            session, audit, request, admin_user.identifier,
            "crear_usuario", "Error al registrar usuario", e,
            {"email": payload.email, "dni": payload.dni},
            "Error al registrar usuario",
        )

    await audit.record(
        usuario=admin_user.identifier,
        accion="crear_usuario",
        modulo=MODULO,
        descripcion=f"Usuario creado: {user.email}",
        ip=ip,
        resultado=EXITOSO,
        detalles={"id": user.id, "email": user.email, "dni": user.dni, "rol": user.rol_nombre},
    )

    background_tasks.add_task(
        notifier.send_welcome,
        user.email,
        user.nombres,
        user.dni,
        user.telefono,
        user.area.nombre if user.area else "",
        user.cargo.nombre if user.cargo else "",
    )

    return UserMutationResponse(user=UserSummary.from_user(user))


@router.put(
    "/users/{user_id}",
    response_model=UserMutationResponse,
    summary="Update user",
    description="Edit profile fields, optionally changing password and state.",
)
async def update_user(
    user_id: int,
    request: Request,
    payload: UserUpdateRequest,
    background_tasks: BackgroundTasks,
    admin_user: AdminUser,
    session: SessionDep,
    audit: AuditDep,
    notifier: NotifierDep,
):
    service = UserService(session)
    user = await service.get_by_id(user_id)
    if not user:
        raise _not_found()

    changes = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"password", "estado"})

    async def reject(motivo: str) -> None:
        await audit.record(
            usuario=admin_user.identifier,
            accion="editar_usuario",
            modulo=MODULO,
            descripcion=f"Edición del usuario {user_id} rechazada",
            ip=get_client_ip(request),
            resultado=FALLIDO,
            detalles={"motivo": motivo, "id": user_id, "campos": sorted(changes)},
        )

    if "email" in changes and not is_valid_email(changes["email"]):
        await reject("Formato de correo inválido")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Formato de correo inválido")

    new_password = None
    if payload.password and not service.is_current_password(user, payload.password):
        is_valid, message = validate_password_strength(payload.password)
        if not is_valid:
            await reject("Contraseña insegura")
            return _weak_password(message)
        new_password = payload.password

    estado_id: Optional[int] = None
    if payload.estado:
        estado = await service.get_estado_by_name(payload.estado)
        if not estado:
            await reject("Estado no válido")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Estado no válido")
        estado_id = estado.id_estado

    if "email" in changes or "dni" in changes:
        conflict = await service.find_conflict(
            changes.get("email", user.email), changes.get("dni", user.dni), exclude_id=user.id
        )
        if conflict:
            await reject("Correo o DNI duplicado")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El correo o DNI ya está registrado")

    try:
        user, password_changed, state_changed = await service.update(user, changes, new_password, estado_id)
    except SQLAlchemyError as e:
        raise await _persistence_failure(
            session, audit, request, admin_user.identifier,
            "editar_usuario", f"Error al actualizar usuario {user_id}", e,
            {"id": user_id},
            "Error al actualizar usuario",
        )

    await audit.record(
        usuario=admin_user.identifier,
        accion="editar_usuario",
        modulo=MODULO,
        descripcion=f"Usuario actualizado: {user.email}",
        ip=get_client_ip(request),
        resultado=EXITOSO,
        detalles={
            "id": user.id,
            "campos": sorted(changes),
            "password_cambiada": password_changed,
            "estado": user.estado.nombre_estado if state_changed and user.estado else None,
        },
    )

    if state_changed and user.estado:
        background_tasks.add_task(notifier.send_state_change, user.email, user.nombres, user.estado.nombre_estado)
    if password_changed:
        background_tasks.add_task(notifier.send_password_changed, user.email, user.nombres)

    return UserMutationResponse(user=UserSummary.from_user(user))


@router.delete(
    "/users/{user_id}",
    response_model=UserMutationResponse,
    summary="Delete user",
    description="Permanently delete an account and notify its owner.",
)
async def delete_user(
    user_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    admin_user: AdminUser,
    session: SessionDep,
    audit: AuditDep,
    notifier: NotifierDep,
) -> UserMutationResponse:
    service = UserService(session)
    user = await service.get_by_id(user_id)
    if not user:
        raise _not_found()

    if user.id == admin_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No puedes eliminar tu propia cuenta")

    summary = UserSummary.from_user(user)

    try:
        await service.delete(user)
    except SQLAlchemyError as e:
        raise await _persistence_failure(
            session, audit, request, admin_user.identifier,
            "eliminar_usuario", f"Error al eliminar usuario {user_id}", e,
            {"id": user_id},
            "Error al eliminar usuario",
        )

    await audit.record(
        usuario=admin_user.identifier,
        accion="eliminar_usuario",
        modulo=MODULO,
        descripcion=f"Usuario eliminado: {summary.email}",
        ip=get_client_ip(request),
        resultado=EXITOSO,
        detalles={"id": summary.id, "email": summary.email, "dni": summary.dni},
    )

    background_tasks.add_task(notifier.send_account_deleted, summary.email, summary.nombres)

    return UserMutationResponse(user=summary)


@router.put(
    "/users/{user_id}/estado",
    response_model=UserMutationResponse,
    summary="Change user state",
    description="Suspend or reactivate an account.",
)
async def change_user_state(
    user_id: int,
    request: Request,
    payload: EstadoRequest,
    background_tasks: BackgroundTasks,
    admin_user: AdminUser,
    session: SessionDep,
    audit: AuditDep,
    notifier: NotifierDep,
) -> UserMutationResponse:
    requested = (payload.estado or "").strip().lower()
    if requested not in SETTABLE_STATES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Estado no válido")

    service = UserService(session)
    estado = await service.get_estado_by_name(requested)
    if not estado:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Estado no válido")

    user = await service.get_by_id(user_id)
    if not user:
        raise _not_found()

    try:
        user, changed = await service.set_estado(user, estado.id_estado)
    except SQLAlchemyError as e:
        raise await _persistence_failure(
            session, audit, request, admin_user.identifier,
            "cambiar_estado", f"Error al cambiar estado del usuario {user_id}", e,
            {"id": user_id, "estado": requested},
            "Error al actualizar estado del usuario",
        )

    await audit.record(
        usuario=admin_user.identifier,
        accion="cambiar_estado",
        modulo=MODULO,
        descripcion=f"Estado de {user.email} cambiado a {requested}",
        ip=get_client_ip(request),
        resultado=EXITOSO,
        detalles={"id": user.id, "estado": requested, "cambio": changed},
    )

    if changed:
        background_tasks.add_task(notifier.send_state_change, user.email, user.nombres, requested)

    return UserMutationResponse(user=UserSummary.from_user(user))


# =============================================================================
# Catalogues
# =============================================================================

@router.get("/areas", response_model=list[CatalogItem], summary="List areas")
async def list_areas(session: SessionDep) -> list[CatalogItem]:
    areas = await UserService(session).list_areas()
    return [CatalogItem(id=area.id, nombre=area.nombre) for area in areas]


@router.get("/roles", response_model=list[CatalogItem], summary="List roles")
async def list_roles(session: SessionDep) -> list[CatalogItem]:
    roles = await UserService(session).list_roles()
    return [CatalogItem(id=role.id, nombre=role.nombre) for role in roles]


@router.get("/cargos", response_model=list[CargoItem], summary="List cargos")
async def list_cargos(
    session: SessionDep,
    area_id: Optional[int] = Query(None, description="Only cargos of this area"),
) -> list[CargoItem]:
    cargos = await UserService(session).list_cargos(area_id)
    return [CargoItem(id=cargo.id, nombre=cargo.nombre, area_id=cargo.area_id) for cargo in cargos]


@router.get("/estado", response_model=list[CatalogItem], summary="List account states")
async def list_estados(session: SessionDep) -> list[CatalogItem]:
    estados = await UserService(session).list_estados()
    return [CatalogItem(id=estado.id_estado, nombre=estado.nombre_estado) for estado in estados]


# =============================================================================
# Dashboard
# =============================================================================

@router.get(
    "/admin-stats",
    response_model=AdminStats,
    summary="Admin dashboard counters",
)
async def admin_stats(admin_user: AdminUser, session: SessionDep) -> AdminStats:
    stats = await UserService(session).get_stats()
    return AdminStats(**stats)
