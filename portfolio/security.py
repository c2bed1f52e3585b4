"""Request guards — per-IP rate limiting for /api and the admin API key."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, Request

from portfolio.config import get_config

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


@dataclass
class _WindowEntry:
    count: int
    window_end: datetime


class RateLimitExceeded(Exception):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__("Rate limit exceeded")
        self.retry_after_seconds = retry_after_seconds


class RateLimiter:
    """Fixed-window request counter keyed by client identifier.

    Expired windows are swept out once the table reaches ``sweep_threshold``
    entries, so memory tracks recent clients rather than every client seen.
    """

    def __init__(self, sweep_threshold: int = 1024) -> None:
        self._entries: dict[str, _WindowEntry] = {}
        self._sweep_threshold = sweep_threshold

    def __len__(self) -> int:
        return len(self._entries)

    def hit(self, identifier: str, *, limit: int, window_seconds: int) -> None:
        """Count one request. Raises RateLimitExceeded once the window is full."""
        now = datetime.now(timezone.utc)
        entry = self._entries.get(identifier)

        if entry and entry.window_end > now:
            if entry.count >= limit:
                retry_after = int((entry.window_end - now).total_seconds())
                raise RateLimitExceeded(max(retry_after, 1))
            entry.count += 1
            return

        if len(self._entries) >= self._sweep_threshold:
            self._sweep(now)
        self._entries[identifier] = _WindowEntry(
            count=1, window_end=now + timedelta(seconds=window_seconds)
        )

    def _sweep(self, now: datetime) -> None:
        expired = [key for key, entry in self._entries.items() if entry.window_end <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired windows")

    def reset(self) -> None:
        self._entries.clear()


_limiter = RateLimiter()


def reset_rate_limits() -> None:
    """Clear in-memory counters (useful for tests)."""
    _limiter.reset()


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


async def enforce_rate_limit(request: Request) -> None:
    """Reject the request with 429 when its client IP is over the limit."""
    settings = get_config().rate_limit
    if not settings.enabled:
        return

    client_ip = request.client.host if request.client else "unknown"
    try:
        _limiter.hit(
            client_ip,
            limit=settings.max_requests,
            window_seconds=settings.window_seconds,
        )
    except RateLimitExceeded as e:
        logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(e.retry_after_seconds)},
        )


async def verify_api_key(request: Request) -> None:
    """Validate X-API-Key header against the configured key.
    If no api_key is set in config, auth is disabled (dev mode).
    """
    config = get_config()
    if not config.api_key:
        return  # Auth disabled — no key configured

    key = request.headers.get("X-API-Key")
    if key != config.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
