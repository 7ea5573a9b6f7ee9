"""Retry with backoff for rate-limited or overloaded model providers."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt

from adapters.base import ProviderReply
from exceptions import ProviderError, ProviderRetryExhaustedError

RATE_LIMITED = 429
MAX_RETRY_AFTER = 60.0

SendFn = Callable[..., Awaitable[ProviderReply]]
SleepFn = Callable[[float], Awaitable[None]]


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if 0 < seconds <= MAX_RETRY_AFTER:
        return seconds
    return None


class RetryPolicy:
    """
    Re-issues a provider request while it answers 429 or an overload status.

    ``send`` is called with the arguments given to ``call`` and must return an
    awaitable ProviderReply.
    Exceptions raised by ``send`` are not retried and propagate unchanged.
    """

    def __init__(
        self,
        max_retries: int = 3,
        overloaded_status: Optional[int] = None,
        provider: Optional[str] = None,
        sleep: SleepFn = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.max_retries = max_retries
        self.overloaded_status = overloaded_status
        self.provider = provider
        self.sleep = sleep
        self.logger = logger or logging.getLogger("retry_policy")

    def is_transient(self, reply: ProviderReply) -> bool:
        if reply.status_code == RATE_LIMITED:
            return True
        return self.overloaded_status is not None and reply.status_code == self.overloaded_status

    def backoff(self, reply: ProviderReply, attempt: int) -> float:
        """Seconds to wait after ``attempt`` (1-based) returned ``reply``."""
        if reply.status_code == RATE_LIMITED:
            retry_after = _parse_retry_after(reply.header("retry-after"))
            if retry_after is not None:
                return retry_after
            return float(min(10 * attempt, 30))
        return float(min(15 * attempt, 45))

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.backoff(retry_state.outcome.result(), retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        reply = retry_state.outcome.result()
        label = "Rate limited" if reply.status_code == RATE_LIMITED else "Provider overloaded"
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        self.logger.warning(
            f"{label} ({reply.status_code}). Waiting {wait:.0f}s before retry "
            f"{retry_state.attempt_number}/{self.max_retries}..."
        )

    async def call(self, send: SendFn, *args: Any) -> ProviderReply:
        """Send the request, retrying transient statuses, and return a 2xx reply."""

        async def attempt() -> ProviderReply:
            return await send(*args)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait,
            retry=retry_if_result(self.is_transient),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            retry_error_callback=lambda state: state.outcome.result(),
        )
        reply: ProviderReply = await retrying(attempt)

        if self.is_transient(reply):
            raise ProviderRetryExhaustedError(
                reply.status_code,
                attempts=self.max_retries + 1,
                provider=self.provider,
            )
        if not reply.ok:
            name = self.provider or "Provider"
            raise ProviderError(
                f"{name} API error {reply.status_code}: {reply.body[:500]}",
                status_code=reply.status_code,
                provider=self.provider,
            )
        return reply
