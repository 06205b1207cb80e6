"""Per-IP request limiting for HTTP routes."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

limiter = Limiter(key_func=get_remote_address, default_limits=[get_settings().API_RATE_LIMIT])
