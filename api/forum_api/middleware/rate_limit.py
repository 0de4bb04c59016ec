"""Rate limiting using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from forum_api.config import settings

# Keyed by client address. Rate-limited endpoints must accept a ``request: Request`` parameter.
limiter = Limiter(key_func=get_remote_address, default_limits=[])

SEARCH_RATE_LIMIT = settings.search_rate_limit


def reset_limiter() -> None:
    """Clear all recorded hits; tests call this between cases."""
    limiter.reset()
