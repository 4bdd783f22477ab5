"""
Bootstrap Administrator Script
Seeds the account states and roles, then creates or promotes an administrator.

    python scripts/create_admin.py --email jefe@mdva.gob.pe --dni 12345678 \
        --nombres "Ana" --apellidos "Quispe Rojas"

Missing values are prompted for; the password is always read without echo.
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

# Run from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.service import AuthService
from portal.auth.utils import hash_password, is_valid_email, validate_password_strength
from portal.database import session_scope
from portal.models import ADMIN_ROLE_NAME, ESTADO_ACTIVO, ESTADO_SUSPENDIDO, Estado, Role, User

SEED_ROLES = (ADMIN_ROLE_NAME, "trabajador")
SEED_ESTADOS = {ESTADO_ACTIVO: "activo", ESTADO_SUSPENDIDO: "suspendido"}


async def seed_catalogues(session: AsyncSession) -> Role:
    """Insert missing states and roles; returns the administrator role."""
    for id_estado, nombre in SEED_ESTADOS.items():
        if await session.get(Estado, id_estado) is None:
            session.add(Estado(id_estado=id_estado, nombre_estado=nombre))

    present = set((await session.execute(select(func.lower(Role.nombre)))).scalars().all())
    session.add_all(Role(nombre=nombre) for nombre in SEED_ROLES if nombre not in present)
    await session.flush()

    result = await session.execute(select(Role).where(func.lower(Role.nombre) == ADMIN_ROLE_NAME))
    return result.scalar_one()


async def current_admins(session: AsyncSession) -> list[User]:
    result = await session.execute(
        select(User)
        .join(Role, User.rol_id == Role.id)
        .where(func.lower(Role.nombre) == ADMIN_ROLE_NAME)
        .order_by(User.email)
    )
    return list(result.scalars().all())


async def upsert_admin(
    session: AsyncSession,
    admin_role: Role,
    email: str,
    dni: str,
    nombres: str,
    apellidos: str,
    password: str,
) -> tuple[User, bool]:
    """
    Create the administrator, or promote and reactivate the account that
    already uses the email or DNI. Returns (user, created).
    """
    auth_service = AuthService(session)
    user = await auth_service.get_user_by_identifier(email) or await auth_service.get_user_by_identifier(dni)

    created = user is None
    if created:
        user = User(email=email, dni=dni, nombres=nombres, apellidos=apellidos)
        session.add(user)

    user.rol_id = admin_role.id
    user.estado_id = ESTADO_ACTIVO
    user.password = hash_password(password)
    user.session_token = None
    await session.commit()
    return user, created


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote an MDVA portal administrator.")
    parser.add_argument("--email")
    parser.add_argument("--dni")
    parser.add_argument("--nombres")
    parser.add_argument("--apellidos")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    return parser.parse_args(argv)


def ask(value: str | None, label: str) -> str:
    value = (value or input(f"{label}: ")).strip()
    if not value:
        sys.exit(f"❌ {label} is required.")
    return value


async def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    async with session_scope() as session:
        admin_role = await seed_catalogues(session)
        await session.commit()

        admins = await current_admins(session)
        print(f"\n📋 Administrators ({len(admins)}):")
        for admin in admins:
            state = "suspended" if admin.is_suspended else "active"
            print(f"  • {admin.email} / DNI {admin.dni} ({state})")

        email = ask(args.email, "Email").lower()
        if not is_valid_email(email):
            sys.exit("❌ Invalid email address.")
        dni = ask(args.dni, "DNI")
        nombres = ask(args.nombres, "Nombres")
        apellidos = ask(args.apellidos, "Apellidos")

        password = getpass.getpass("Password: ")
        is_valid, message = validate_password_strength(password)
        if not is_valid:
            sys.exit(f"❌ {message}")

        if not args.yes and input(f"\nMake '{email}' an administrator? (yes/no): ").strip().lower() not in ("yes", "y"):
            sys.exit("Cancelled.")

        user, created = await upsert_admin(session, admin_role, email, dni, nombres, apellidos, password)

    print(f"\n✅ {'Created' if created else 'Promoted'} administrator {user.email} (id {user.id})")


if __name__ == "__main__":
    asyncio.run(main())
