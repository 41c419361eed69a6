"""
Portal de Matrículas - Rate Limiter
Limite de requisições nos endpoints públicos
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from portal.core import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
