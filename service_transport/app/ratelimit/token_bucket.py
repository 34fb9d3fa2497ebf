"""
Token bucket rate limiter for the Transport Service.

Buckets live in process memory, one per client id. Each bucket holds up to
``limit`` tokens and refills continuously at ``limit / window_seconds``
tokens per second.
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Request

from shared.logging import get_logger


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


class TokenBucketRateLimiter:
    """In-process per-client token bucket."""

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        if limit <= 0 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self.logger = get_logger("transport.rate_limiter")

    def _refill(self, client_id: str) -> _Bucket:
        now = self._clock()
        bucket = self._buckets.get(client_id)
        if bucket is None:
            bucket = _Bucket(tokens=float(self.limit), updated_at=now)
            self._buckets[client_id] = bucket
            return bucket
        elapsed = max(0.0, now - bucket.updated_at)
        bucket.tokens = min(float(self.limit), bucket.tokens + elapsed * self.limit / self.window_seconds)
        bucket.updated_at = now
        return bucket

    def check_rate_limit(self, client_id: str) -> Dict[str, Any]:
        """Take one token for ``client_id`` if available."""
        bucket = self._refill(client_id)

        if bucket.tokens < 1:
            retry_after = math.ceil((1 - bucket.tokens) * self.window_seconds / self.limit)
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                limit=self.limit,
                retry_after=retry_after,
            )
            return {
                "allowed": False,
                "limit": self.limit,
                "remaining": 0,
                "reset_in_seconds": retry_after,
                "retry_after": retry_after,
            }

        bucket.tokens -= 1
        remaining = int(bucket.tokens)
        return {
            "allowed": True,
            "limit": self.limit,
            "remaining": remaining,
            "reset_in_seconds": math.ceil((self.limit - bucket.tokens) * self.window_seconds / self.limit),
        }

    def get_rate_limit_status(self, client_id: str) -> Dict[str, Any]:
        """Current budget for ``client_id`` without consuming a token."""
        bucket = self._refill(client_id)
        return {"limit": self.limit, "remaining": int(bucket.tokens)}

    def reset_rate_limit(self, client_id: Optional[str] = None) -> None:
        """Forget one client's bucket, or every bucket."""
        if client_id is None:
            self._buckets.clear()
        else:
            self._buckets.pop(client_id, None)


def get_client_ip(request: Request) -> str:
    """Extract the caller IP from standard headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
