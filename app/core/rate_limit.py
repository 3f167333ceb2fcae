# app/core/rate_limit.py
from slowapi import Limiter
from slowapi.util import get_remote_address

# In-memory storage; one bucket per client address.
limiter = Limiter(key_func=get_remote_address)
