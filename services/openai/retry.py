"""Bounded retry for rate-limited upstream calls."""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

import openai

from services.openai.errors import RateLimitExhausted

LOGGER = logging.getLogger(__name__)
RETRY_DELAYS = (0.7, 1.4)

T = TypeVar("T")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True for provider errors that mean "slow down"."""
    if isinstance(exc, openai.RateLimitError):
        return True
    message = str(exc).lower()
    return "429" in message or "resource exhausted" in message


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    delays: Sequence[float] = RETRY_DELAYS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await `func`, retrying rate-limit failures after each delay in turn.

    Args:
        func: Zero-argument coroutine factory performing the upstream call.
        delays: Seconds to wait before each retry; its length is the retry count.
        sleep: Awaitable sleep, injectable for tests.

    Raises:
        RateLimitExhausted: If the last attempt is still rate limited.
    """
    for attempt in range(len(delays) + 1):
        try:
            return await func()
        except Exception as exc:
            if not is_rate_limit_error(exc):
                raise
            if attempt >= len(delays):
                raise RateLimitExhausted(str(exc)) from exc
            LOGGER.warning("Upstream rate limited (attempt %d), retrying in %.1fs", attempt + 1, delays[attempt])
            await sleep(delays[attempt])
    raise RateLimitExhausted("Retries exhausted")
