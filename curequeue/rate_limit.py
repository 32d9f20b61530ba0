from slowapi import Limiter
from slowapi.util import get_remote_address

from curequeue.config import get_settings

settings = get_settings()

# Per-client-IP limits; counters live in RATE_LIMIT_STORAGE_URI (memory:// in dev)
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Applied to the credential endpoints (register, login)
AUTH_LIMIT = settings.AUTH_RATE_LIMIT
