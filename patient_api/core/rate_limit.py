"""
In-memory sliding-window rate limiting, applied per route as a dependency.

Each limiter keeps a list of request timestamps per client IP and prunes
entries older than its window. State lives in the process; a multi-instance
deployment needs a shared store instead.
"""
import threading
import time
import logging
from typing import Callable, Dict, List, Optional

from fastapi import Request, status

from ..exceptions import AppException

# Set up logging
logger = logging.getLogger(__name__)

FIFTEEN_MINUTES = 15 * 60


class RateLimitExceededException(AppException):
    """Exception raised when a client exceeds a rate limit."""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class SlidingWindowRateLimiter:
    """
    Counts requests per client inside a moving time window.

    Args:
        name: Limiter name used in log lines
        limit: Requests allowed per window
        window_seconds: Window length
        message: Error message returned when the limit is hit
        clock: Time source, injectable for tests
    """
    def __init__(
        self,
        name: str,
        limit: int,
        window_seconds: int,
        message: str,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._requests: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, now: float) -> List[float]:
        timestamps = [
            timestamp for timestamp in self._requests.get(key, [])
            if now - timestamp < self.window_seconds
        ]
        self._requests[key] = timestamps
        return timestamps

    def hit(self, key: str) -> bool:
        """
        Record a request for a client.

        Returns:
            bool: False when the client is over the limit (request not recorded)
        """
        with self._lock:
            now = self._clock()
            timestamps = self._prune(key, now)
            if len(timestamps) >= self.limit:
                return False
            timestamps.append(now)
            return True

    def reset(self, key: str) -> None:
        """Forget a client's history, e.g. after a successful sign-in."""
        with self._lock:
            self._requests.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._requests.clear()

    def remaining(self, key: str) -> int:
        with self._lock:
            return max(0, self.limit - len(self._prune(key, self._clock())))

    async def __call__(self, request: Request) -> None:
        """FastAPI dependency entry point."""
        client_ip = client_key(request)
        if not self.hit(client_ip):
            logger.warning(f"🚫 Rate limit '{self.name}' exceeded for {client_ip}")
            raise RateLimitExceededException(self.message)


def client_key(request: Optional[Request]) -> str:
    if request is not None and request.client:
        return request.client.host
    return "unknown"


# Authentication endpoints. Successful sign-ins reset the counter, so only
# failed attempts accumulate.
auth_limiter = SlidingWindowRateLimiter(
    name="auth",
    limit=5,
    window_seconds=FIFTEEN_MINUTES,
    message="Too many authentication attempts from this IP, please try again after 15 minutes.",
)

# Write operations (refunds, refund requests)
write_limiter = SlidingWindowRateLimiter(
    name="write",
    limit=30,
    window_seconds=FIFTEEN_MINUTES,
    message="Too many write operations, please try again later.",
)

# Webhooks from the payment processor may arrive in bursts
webhook_limiter = SlidingWindowRateLimiter(
    name="webhook",
    limit=1000,
    window_seconds=FIFTEEN_MINUTES,
    message="Webhook rate limit exceeded.",
)

ALL_LIMITERS = (auth_limiter, write_limiter, webhook_limiter)
