"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from ecoride.config import settings


def get_user_or_ip(request: Request) -> str:
    """Rate limit by identity-provider subject if sent, otherwise by IP."""
    subject = request.headers.get("X-Subject")
    if subject:
        return f"subject:{subject}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=get_user_or_ip, enabled=settings.rate_limit_enabled)
