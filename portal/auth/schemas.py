"""
Authentication Schemas
Request and response models for auth endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Request Schemas
# =============================================================================

class LoginRequest(BaseModel):
    """
    Request body for user login.

    Fields are optional so that a missing credential is answered with the
    portal's own 400 message instead of a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    email_or_dni: Optional[str] = Field(None, alias="emailOrDni", description="Email address or DNI")
    password: Optional[str] = Field(None, description="User password")


class LogoutRequest(BaseModel):
    """Request body for logout."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="userId", description="User id")


class ValidateSessionRequest(BaseModel):
    """Request body for session validation."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="userId", description="User id")
    session_token: Optional[str] = Field(None, alias="sessionToken", description="Token returned by /login")


# =============================================================================
# Response Schemas
# =============================================================================

class LoginUser(BaseModel):
    """User data returned by a successful login."""

    id: int
    nombres: str
    apellidos: str
    dni: str
    email: str
    telefono: Optional[str] = None
    cargo_nombre: Optional[str] = None
    area_nombre: Optional[str] = None
    rol: Optional[str] = None


class LoginResponse(BaseModel):
    """Successful login payload."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user: LoginUser
    token: str = Field(..., description="JWT access token")
    session_token: str = Field(..., alias="sessionToken", description="Active session token")


class SessionStatusResponse(BaseModel):
    valid: bool
