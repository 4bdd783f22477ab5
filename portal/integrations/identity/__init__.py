"""
Identity Integration Package
DNI/RUC lookups against the external identity provider.
"""

from portal.integrations.identity.client import IdentityApiClient, get_identity_client
from portal.integrations.identity.exceptions import IdentityApiError
from portal.integrations.identity.normalizers import normalize_dni, normalize_ruc
from portal.integrations.identity.router import router

__all__ = [
    "router",
    "IdentityApiClient",
    "IdentityApiError",
    "get_identity_client",
    "normalize_dni",
    "normalize_ruc",
]
