"""
Authentication Utilities
Password hashing and policy, access tokens, session tokens and input checks.
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from portal.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100


def hash_password(password: str) -> str:
    """Bcrypt hash of a plain text password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Malformed or legacy hashes count as a mismatch instead of raising.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def create_access_token(subject: str, extra_data: dict[str, Any] | None = None) -> str:
    """
    Signed access token returned by /login.

    ``sub`` is the user id; ``extra_data`` adds the claims the caller
    resolution reads (email, DNI, role).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(32),
    }

    if extra_data:
        payload.update(extra_data)

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Returns:
        Token payload dict if valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def generate_session_token() -> str:
    """Opaque token identifying the single active session of a user."""
    return secrets.token_hex(32)


def normalize_identifier(identifier: str) -> str:
    return identifier.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email or ""))


def validate_password_strength(password: str) -> tuple[bool, str]:
    """
    Check a password against the account policy.

    8 to 100 characters, upper and lower case letters, at least one digit
    and no whitespace.
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return False, f"La contraseña debe tener al menos {PASSWORD_MIN_LENGTH} caracteres"

    if len(password) > PASSWORD_MAX_LENGTH:
        return False, f"La contraseña debe tener como máximo {PASSWORD_MAX_LENGTH} caracteres"

    if not re.search(r"[A-Z]", password):
        return False, "La contraseña debe incluir al menos una mayúscula"

    if not re.search(r"[a-z]", password):
        return False, "La contraseña debe incluir al menos una minúscula"

    if not re.search(r"\d", password):
        return False, "La contraseña debe incluir al menos un número"

    if re.search(r"\s", password):
        return False, "La contraseña no debe contener espacios"

    return True, ""
