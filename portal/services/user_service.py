"""
User Service
Handles staff account and catalogue database operations.
"""

from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.utils import hash_password, verify_password
from portal.models import (
    ADMIN_ROLE_NAME,
    ESTADO_ACTIVO,
    ESTADO_SUSPENDIDO,
    Area,
    Cargo,
    Estado,
    Role,
    User,
)

# Cargo names counted by the dashboard
AREA_HEAD_CARGO = "jefe de area"
WORKER_CARGO = "trabajador"

# Fields an update may change directly
EDITABLE_FIELDS = (
    "nombres",
    "apellidos",
    "email",
    "telefono",
    "dni",
    "cargo_id",
    "rol_id",
    "area_id",
)


class UserService:
    """Service for user-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_users(self) -> list[User]:
        result = await self.session.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def get_by_id(self, user_id: int) -> User | None:
        """
        Get user by ID.

        Args:
            user_id: User id

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_conflict(self, email: str, dni: str, exclude_id: Optional[int] = None) -> User | None:
        """Another account already using ``email`` or ``dni``."""
        query = select(User).where(or_(func.lower(User.email) == email.lower(), User.dni == dni))
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def create(self, data: dict[str, Any], password: str) -> User:
        """
        Create a new active user.

        Args:
            data: Profile and catalogue fields
            password: Plain text password (will be hashed)

        Returns:
            Created User instance with its relationships loaded
        """
        user = User(
            **{key: data[key] for key in EDITABLE_FIELDS},
            password=hash_password(password),
            estado_id=ESTADO_ACTIVO,
        )
        self.session.add(user)
        await self.session.commit()

        return await self._reload(user)

    async def update(
        self,
        user: User,
        changes: dict[str, Any],
        password: Optional[str] = None,
        estado_id: Optional[int] = None,
    ) -> tuple[User, bool, bool]:
        """
        Apply changes to a user.

        Args:
            user: Account to modify
            changes: Profile and catalogue fields to overwrite
            password: New plain text password, already checked against policy
            estado_id: New account state

        Returns:
            Tuple of (updated user, password changed, state changed)
        """
        for key, value in changes.items():
            if key in EDITABLE_FIELDS:
                setattr(user, key, value)

        password_changed = False
        if password:
            user.password = hash_password(password)
            password_changed = True

        state_changed = False
        if estado_id is not None and estado_id != user.estado_id:
            self._apply_estado(user, estado_id)
            state_changed = True

        await self.session.commit()
        return await self._reload(user), password_changed, state_changed

    async def set_estado(self, user: User, estado_id: int) -> tuple[User, bool]:
        """Change the account state; returns (user, changed)."""
        changed = user.estado_id != estado_id
        self._apply_estado(user, estado_id)
        await self.session.commit()
        return await self._reload(user), changed

    @staticmethod
    def is_current_password(user: User, password: str) -> bool:
        return verify_password(password, user.password)

    async def delete(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.commit()

    @staticmethod
    def _apply_estado(user: User, estado_id: int) -> None:
        user.estado_id = estado_id
        if estado_id == ESTADO_SUSPENDIDO:
            # A suspended account loses its open session
            user.session_token = None

    async def _reload(self, user: User) -> User:
        # Foreign keys may have changed; reload columns and catalogue rows
        await self.session.refresh(user)
        await self.session.refresh(user, attribute_names=["rol", "cargo", "area", "estado"])
        return user

    # =========================================================================
    # Catalogues
    # =========================================================================

    async def get_estado_by_name(self, nombre: str) -> Estado | None:
        result = await self.session.execute(
            select(Estado).where(func.lower(Estado.nombre_estado) == nombre.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_areas(self) -> list[Area]:
        result = await self.session.execute(select(Area).order_by(Area.id))
        return list(result.scalars().all())

    async def list_roles(self) -> list[Role]:
        result = await self.session.execute(select(Role).order_by(Role.id))
        return list(result.scalars().all())

    async def list_cargos(self, area_id: Optional[int] = None) -> list[Cargo]:
        query = select(Cargo).order_by(Cargo.id)
        if area_id is not None:
            query = query.where(Cargo.area_id == area_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_estados(self) -> list[Estado]:
        result = await self.session.execute(select(Estado).order_by(Estado.id_estado))
        return list(result.scalars().all())

    async def get_stats(self) -> dict[str, int]:
        """Account counters for the admin dashboard."""

        async def count(query) -> int:
            result = await self.session.execute(query)
            return result.scalar_one()

        base = select(func.count(User.id)).select_from(User)
        return {
            "total": await count(base),
            "admins": await count(
                base.join(Role, User.rol_id == Role.id).where(func.lower(Role.nombre) == ADMIN_ROLE_NAME)
            ),
            "areaHeads": await count(
                base.join(Cargo, User.cargo_id == Cargo.id).where(func.lower(Cargo.nombre) == AREA_HEAD_CARGO)
            ),
            "trabajadores": await count(
                base.join(Cargo, User.cargo_id == Cargo.id).where(func.lower(Cargo.nombre) == WORKER_CARGO)
            ),
            "suspendidos": await count(base.where(User.estado_id == ESTADO_SUSPENDIDO)),
        }
