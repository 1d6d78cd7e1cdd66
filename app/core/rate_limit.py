"""Rate limiting for manually triggered endpoints (slowapi)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client address; ranking checks hit paid SERP quota
limiter = Limiter(key_func=get_remote_address)
