from slowapi import Limiter
from slowapi.util import get_remote_address
from app.core.config import settings

# Shared limiter so the app state and the endpoint decorators agree
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)
