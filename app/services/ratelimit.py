"""Per-user rate limiting backed by the `limits` library.

Storage is chosen by RATELIMIT_STORAGE_URL (memory:// locally, redis:// in
production) so limits hold across workers.
"""
from __future__ import annotations

from typing import Optional

from limits import RateLimitItem, parse
from limits.storage import Storage, storage_from_string
from limits.strategies import MovingWindowRateLimiter


class RateLimiter:
    """Flask extension wrapping a moving-window limiter."""

    def __init__(self, app=None) -> None:
        self.storage: Optional[Storage] = None
        self.strategy: Optional[MovingWindowRateLimiter] = None
        self.default_limit: Optional[RateLimitItem] = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.storage = storage_from_string(app.config.get('RATELIMIT_STORAGE_URL', 'memory://'))
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.default_limit = parse(app.config.get('RATELIMIT_CHECKOUT', '10 per 10 seconds'))
        app.extensions['ratelimit'] = self

    def limit(self, key: str, limit: Optional[str] = None) -> bool:
        """Consume one hit for ``key``; False once the window is exhausted."""
        if self.strategy is None:
            raise RuntimeError("RateLimiter used before init_app()")
        item = parse(limit) if limit else self.default_limit
        return self.strategy.hit(item, key)

    def reset(self) -> None:
        if self.storage is not None:
            self.storage.reset()
