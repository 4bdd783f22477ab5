"""
Identity Integration Exceptions
Custom exceptions for the DNI/RUC lookup provider.
"""

from typing import Optional


class IdentityApiError(Exception):
    """
    Exception for lookup failures.

    ``upstream_error`` carries the provider's own ``error`` message when its
    response included one; those are reported back to the caller as-is.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        upstream_error: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.upstream_error = upstream_error
        super().__init__(self.message)
