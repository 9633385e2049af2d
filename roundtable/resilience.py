"""Timeout, retry and server-informed backoff around a single provider call."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from roundtable.errors import ProviderHTTPError
from roundtable.models import Failure, ProviderCallOutcome, Success, Timeout

logger = logging.getLogger(__name__)

Attempt = Callable[[], Awaitable[str | None]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_sec: float = 2.0
    timeout_sec: float = 90.0
    max_retry_delay_sec: float | None = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay_sec < 0:
            raise ValueError(f"base_delay_sec must be >= 0, got {self.base_delay_sec}")
        if self.timeout_sec <= 0:
            raise ValueError(f"timeout_sec must be > 0, got {self.timeout_sec}")


def parse_retry_delay(value: object) -> float | None:
    """Parse a suggested retry delay in seconds.

    Accepts numbers, numeric strings (``Retry-After: 12``) and protobuf
    duration strings as sent in Google ``RetryInfo`` details (``"37s"``).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    if text.endswith("s"):
        text = text[:-1]
    try:
        seconds = float(text)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def backoff_delay(policy: RetryPolicy, retry_after: float | None) -> float:
    """Delay before the next attempt after a retryable error."""
    if retry_after is None:
        return policy.base_delay_sec
    delay = max(policy.base_delay_sec, retry_after)
    if policy.max_retry_delay_sec is not None:
        delay = min(delay, policy.max_retry_delay_sec)
    return delay


async def call_with_resilience(
    fn: Attempt,
    policy: RetryPolicy,
    *,
    provider: str = "",
    sleep: Sleep = asyncio.sleep,
) -> ProviderCallOutcome:
    """Run ``fn`` under ``policy`` and report Success, Timeout or Failure.

    ``fn`` performs exactly one network attempt and returns normalized text
    (or None when the payload was empty). Rate limits and server errors are
    retried with backoff; timeouts are retried after the base delay; any other
    error or an empty reply gets one extra attempt. Never raises, apart from
    cancellation.
    """
    label = provider or "provider"
    transient_retry_used = False
    last_reason = "no attempts made"

    for attempt in range(1, policy.max_attempts + 1):
        last_attempt = attempt == policy.max_attempts

        try:
            text = await asyncio.wait_for(fn(), timeout=policy.timeout_sec)
        except TimeoutError:
            if last_attempt:
                logger.warning(
                    "%s timed out after %d attempt(s) of %.0fs",
                    label, attempt, policy.timeout_sec,
                )
                return Timeout()
            logger.warning(
                "%s attempt %d/%d timed out after %.0fs, retrying in %.1fs",
                label, attempt, policy.max_attempts, policy.timeout_sec, policy.base_delay_sec,
            )
            await sleep(policy.base_delay_sec)
            continue
        except ProviderHTTPError as exc:
            last_reason = str(exc)
            if exc.retryable:
                if last_attempt:
                    break
                delay = backoff_delay(policy, exc.retry_after)
                logger.warning(
                    "%s attempt %d/%d failed (status %s), retrying in %.1fs",
                    label, attempt, policy.max_attempts, exc.status, delay,
                )
                await sleep(delay)
                continue
        except Exception as exc:
            last_reason = f"Unexpected error: {exc}"
        else:
            if text and text.strip():
                if attempt > 1:
                    logger.info("%s succeeded on attempt %d", label, attempt)
                return Success(text.strip())
            last_reason = "Empty response"

        # Non-retryable error or empty payload: one extra attempt at most.
        if last_attempt or transient_retry_used:
            break
        transient_retry_used = True
        logger.warning(
            "%s attempt %d/%d failed (%s), retrying once in %.1fs",
            label, attempt, policy.max_attempts, last_reason, policy.base_delay_sec,
        )
        await sleep(policy.base_delay_sec)

    logger.warning("%s failed: %s", label, last_reason)
    return Failure(last_reason)
