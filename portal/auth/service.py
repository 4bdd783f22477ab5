"""
Authentication Service
Credential checks and session bookkeeping for staff accounts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.utils import generate_session_token, normalize_identifier, verify_password
from portal.models import User

logger = logging.getLogger(__name__)


class LoginOutcome(str, Enum):
    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    SUSPENDED = "suspended"


@dataclass
class LoginResult:
    outcome: LoginOutcome
    user: Optional[User] = None


class AuthService:
    """Service for authentication and session management."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: int) -> User | None:
        """
        Get user by ID.

        Args:
            user_id: User id

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_identifier(self, identifier: str) -> User | None:
        """
        Get user by email (case-insensitive) or DNI.

        Args:
            identifier: Email address or DNI

        Returns:
            User if found, None otherwise
        """
        raw = identifier.strip()
        query = select(User).where(
            or_(
                func.lower(User.email) == normalize_identifier(raw),
                User.dni == raw,
            )
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def authenticate(self, identifier: str, password: str) -> LoginResult:
        """
        Check credentials for an email-or-DNI login.

        Unknown identifiers and wrong passwords are indistinguishable to the
        caller. Suspension is only reported once the password matched.

        Returns:
            LoginResult with the outcome and, when known, the user
        """
        user = await self.get_user_by_identifier(identifier)

        if not user or not verify_password(password, user.password):
            return LoginResult(LoginOutcome.INVALID_CREDENTIALS, user)

        if user.is_suspended:
            logger.warning(f"Login attempt on suspended account: {user.id}")
            return LoginResult(LoginOutcome.SUSPENDED, user)

        return LoginResult(LoginOutcome.SUCCESS, user)

    async def start_session(self, user: User) -> str:
        """
        Rotate the session token and stamp the last access time.

        Any other open session of the same user stops validating.
        """
        token = generate_session_token()
        user.session_token = token
        user.ultimo_acceso = datetime.now(timezone.utc)
        await self.session.commit()

        logger.info(f"Successful login: {user.id} ({user.email})")
        return token

    async def end_session(self, user_id: int) -> User | None:
        """Clear the active session token of a user."""
        user = await self.get_user_by_id(user_id)
        if not user:
            return None

        user.session_token = None
        await self.session.commit()

        logger.info(f"User logged out: {user.id}")
        return user

    async def is_session_valid(self, user_id: int, session_token: str) -> bool:
        """True while ``session_token`` is the user's current session."""
        result = await self.session.execute(
            select(User.session_token).where(User.id == user_id)
        )
        current = result.scalar_one_or_none()
        return current is not None and current == session_token
