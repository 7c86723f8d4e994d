"""
api/limiter.py -- The one slowapi Limiter shared by every route.

api/main.py mounts it as middleware; api/routes/v1/users.py decorates the
login and forgot-password handlers with @limiter.limit().

Counters live in RATE_LIMIT_STORAGE_URI. The memory:// default is per
process, so deployments running several uvicorn workers should point it at a
shared backend (e.g. redis://) or each worker enforces its own quota.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_settings.rate_limit_storage_uri,
    enabled=_settings.rate_limit_enabled,
)
