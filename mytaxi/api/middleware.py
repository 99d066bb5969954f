"""Shared rate limiter (slowapi), keyed by the caller's address."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from mytaxi.config import settings

limiter = Limiter(key_func=get_remote_address)

RATE_LIMIT = settings.rate_limit
