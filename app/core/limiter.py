from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

limiter = Limiter(key_func=get_remote_address)

# Applied to the unauthenticated endpoints (login, password reset)
PUBLIC_RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"
