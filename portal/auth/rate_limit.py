"""
Rate Limiting Utilities
Per-client request limiting for the login endpoint.

A coarse network-level guard keyed on the socket peer; per-identifier
throttling lives in ``portal.auth.login_attempts``. Behind a proxy, run
uvicorn with ``--proxy-headers`` and ``--forwarded-allow-ips`` so the peer
is the real client. Forwarding headers sent by the client are not trusted.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
