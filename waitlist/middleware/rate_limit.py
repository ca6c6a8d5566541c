"""Per-client sliding-window rate limiting for the proxy endpoints"""
from fastapi import Depends, HTTPException, Request
from typing import Callable, Dict, List, Optional
import math
import time
import logging

from waitlist.config import Settings, get_settings

logger = logging.getLogger(__name__)


def client_ip(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Address a request is counted against

    X-Forwarded-For is client supplied, so it is only honoured when the app
    runs behind a proxy that overwrites it.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RateLimiter:
    """Remembers request timestamps per client and rejects bursts"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._requests: Dict[str, List[float]] = {}
        self._last_sweep: Optional[float] = None

    def hit(self, key: str, max_requests: int, window_sec: int) -> bool:
        """
        Record a request

        Returns:
            True if the request is within the limit
        """
        now = self.clock()
        self._evict_idle(now, window_sec)
        recent = [t for t in self._requests.get(key, []) if now - t < window_sec]
        recent.append(now)
        self._requests[key] = recent
        return len(recent) <= max_requests

    def _evict_idle(self, now: float, window_sec: int) -> None:
        # At most one sweep per window; clients idle for a full window are dropped
        if self._last_sweep is not None and now - self._last_sweep < window_sec:
            return
        self._last_sweep = now
        self._requests = {
            key: timestamps
            for key, timestamps in self._requests.items()
            if now - timestamps[-1] < window_sec
        }

    def __len__(self) -> int:
        return len(self._requests)

    def reset(self) -> None:
        self._requests.clear()
        self._last_sweep = None


def rate_limited(limiter: RateLimiter):
    """Build a route dependency enforcing the configured limit with this limiter"""

    async def enforce(request: Request, settings: Settings = Depends(get_settings)) -> None:
        if settings.rate_limit_max <= 0:
            return
        ip = client_ip(request, settings.trust_forwarded_for)
        if not limiter.hit(ip, settings.rate_limit_max, settings.rate_limit_window_sec):
            logger.warning(f"Rate limit exceeded for {ip} on {request.url.path}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "Too many requests",
                    "retryAfter": math.ceil(settings.rate_limit_window_sec),
                },
            )

    return enforce
