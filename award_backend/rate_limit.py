"""
Shared slowapi limiter. Attached to ``app.state`` in main.py and used by the
review endpoints.
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

REVIEW_RATE_LIMIT = os.getenv("REVIEW_RATE_LIMIT", "120/minute")

limiter = Limiter(key_func=get_remote_address)
