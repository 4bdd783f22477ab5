"""
Authentication Package
Handles staff login, sessions, failed-attempt tracking and caller identity.
"""

from portal.auth.dependencies import AdminUser, CallerIdentity, OptionalCaller, get_caller, require_admin
from portal.auth.login_attempts import LoginAttemptTracker, get_login_tracker, login_tracker
from portal.auth.schemas import LoginRequest, LoginResponse, LogoutRequest, ValidateSessionRequest
from portal.auth.service import AuthService, LoginOutcome, LoginResult
from portal.auth.utils import (
    create_access_token,
    decode_token,
    hash_password,
    validate_password_strength,
    verify_password,
)

__all__ = [
    # Dependencies
    "AdminUser",
    "CallerIdentity",
    "OptionalCaller",
    "get_caller",
    "require_admin",
    # Attempt tracking
    "LoginAttemptTracker",
    "get_login_tracker",
    "login_tracker",
    # Schemas
    "LoginRequest",
    "LoginResponse",
    "LogoutRequest",
    "ValidateSessionRequest",
    # Service
    "AuthService",
    "LoginOutcome",
    "LoginResult",
    # Utils
    "create_access_token",
    "decode_token",
    "hash_password",
    "validate_password_strength",
    "verify_password",
]
