"""
api/limiter.py -- The one slowapi Limiter for the whole app.

api/main.py mounts it (SlowAPIMiddleware reads app.state.limiter) and
api/routes/v1/auth.py decorates the credential endpoints with it. Counters are
per-process and keyed on the client address.

RATE_LIMIT_ENABLED=false turns every limit off; the test suite does this.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)
