"""
Shared slowapi limiter

Routes decorate themselves with `limiter.limit(...)`; main.py attaches the
same instance to app.state. Disabled with RATE_LIMITS_ENABLED=false.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from dailyquiz.config.settings import settings

IDENTIFY_LIMIT = "20/minute"
SUBMIT_LIMIT = "30/minute"
ADMIN_LOGIN_LIMIT = "5/minute"

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMITS_ENABLED)
