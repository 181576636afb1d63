"""
Shared slowapi limiter. Routers decorate endpoints with ``@limiter.limit``;
the application factory attaches the same instance to ``app.state``.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

DISCOVERY_RATE_LIMIT = "60/minute"

limiter = Limiter(key_func=get_remote_address)
