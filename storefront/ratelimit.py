import time
from collections import deque
from typing import Optional

from fastapi import HTTPException, Request


class RateLimiter:
    """Sliding-window limiter keyed by client address.

    State lives in this process only; several app instances each keep
    their own window, so this is no guard in a multi-instance deployment.
    """

    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits = {}
        self._last_sweep = None

    def _expire(self, hits: deque, now: float):
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float):
        for key in list(self._hits):
            self._expire(self._hits[key], now)
            if not self._hits[key]:
                del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        hits = self._hits.setdefault(key, deque())
        self._expire(hits, now)
        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        return True

    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self):
        self._hits.clear()
        self._last_sweep = None

    async def __call__(self, request: Request):
        key = request.client.host if request.client else "anonymous"
        if not self.hit(key):
            raise HTTPException(status_code=429, detail="Too many requests. Please try again later.")


contact_limiter = RateLimiter(max_requests=5, window_seconds=600)
