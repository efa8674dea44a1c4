"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

from storefront_search.core.config import settings


def _get_real_client_ip(request: Request) -> str:
    """Extract the real client IP behind a CDN or reverse proxy."""
    return (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or (request.client.host if request.client else "127.0.0.1")
    )


limiter = Limiter(key_func=_get_real_client_ip)

# Storefront search is public and every semantic query may cost a provider call
search_rate_limit = settings.search_rate_limit
