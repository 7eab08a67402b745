"""
RateLimiter — Token bucket rate limiter for Gemini calls.

Keeps the AI helpers (campaign ideas, summary enhancement) inside the
Gemini quota when several admins click at once.
"""

import os
import time
import asyncio
import logging

logger = logging.getLogger('RateLimiter')


class RateLimiter:
    """Token bucket rate limiter.

    Allows up to `max_tokens` requests in a burst. Tokens refill at a steady
    rate. Callers use `await limiter.acquire()` before making an API call;
    it sleeps if the bucket is empty. `try_acquire()` never waits.

    Args:
        max_tokens: Maximum burst size.
        refill_rate: Tokens added per second (0.25 = 15 per minute).
        name: Label for logging.
    """

    def __init__(self, max_tokens: int = 15, refill_rate: float = 0.25, name: str = "default"):
        if max_tokens < 1 or refill_rate <= 0:
            raise ValueError("max_tokens must be >= 1 and refill_rate > 0")
        self.max_tokens = max_tokens
        self.refill_rate = refill_rate
        self.name = name
        self.tokens = float(max_tokens)
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, requests: int, name: str) -> "RateLimiter":
        return cls(max_tokens=requests, refill_rate=requests / 60.0, name=name)

    def _refill(self):
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    async def acquire(self):
        """Wait until a token is available, then consume one."""
        async with self._lock:
            self._refill()

            if self.tokens < 1.0:
                wait_time = (1.0 - self.tokens) / self.refill_rate
                logger.warning(f"[{self.name}] Rate limit — waiting {wait_time:.1f}s")
                await asyncio.sleep(wait_time)
                self._refill()

            self.tokens -= 1.0

    def try_acquire(self) -> bool:
        """Consume a token if one is available right now."""
        self._refill()
        if self.tokens < 1.0:
            logger.info(f"[{self.name}] Rate limit — request refused")
            return False
        self.tokens -= 1.0
        return True

    @property
    def available(self) -> float:
        """Current number of available tokens (without consuming)."""
        self._refill()
        return self.tokens


gemini_limiter = RateLimiter.per_minute(int(os.getenv("GEMINI_REQUESTS_PER_MINUTE", "15")), name="gemini")
