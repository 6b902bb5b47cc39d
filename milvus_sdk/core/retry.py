# milvus_sdk/core/retry.py
# SPDX-License-Identifier: Apache-2.0
"""
Synchronous retry helper with exponential backoff.

Every RPC the client issues goes through `retry_call` exactly once. The call
is attempted up to `max_retry_times` times. Only transient failures are
retried: a server rate-limit signal, or a transport UNAVAILABLE. Retrying
them is switched on and off by `RetryParam.retry_on_rate_limit`. Every other
failure comes back on first occurrence.

Usage:
    from milvus_sdk.core.retry import RetryParam, retry_call

    param = RetryParam(max_retry_times=5, initial_backoff_ms=50)
    status = retry_call(lambda: connection.invoke(...)[1], param)

`sleep` and `clock` are injectable for deterministic tests.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from milvus_sdk.core.status import Status

__all__ = ["RetryParam", "RetryStats", "retry_call"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryParam:
    """
    Retry configuration with exponential backoff.

    Attributes:
        max_retry_times:      Total tries including the first attempt (<= 1 means one try).
        max_retry_timeout_ms: Wall-clock budget for all tries; 0 means no budget.
        initial_backoff_ms:   Sleep before the second attempt.
        max_backoff_ms:       Maximum backoff cap in milliseconds.
        backoff_multiplier:   Growth factor applied after every attempt.
        retry_on_rate_limit:  Retry transient (rate-limited / unavailable) failures at all.
    """

    max_retry_times: int = 75
    max_retry_timeout_ms: int = 0
    initial_backoff_ms: int = 10
    max_backoff_ms: int = 3_000
    backoff_multiplier: float = 3.0
    retry_on_rate_limit: bool = True

    def __post_init__(self):
        """Validate configuration on initialization."""
        if self.max_retry_times < 0:
            raise ValueError("max_retry_times must be >= 0")
        if self.max_retry_timeout_ms < 0:
            raise ValueError("max_retry_timeout_ms must be >= 0")
        if self.initial_backoff_ms <= 0 or self.max_backoff_ms <= 0:
            raise ValueError("Backoff times must be positive")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")
        if self.initial_backoff_ms > self.max_backoff_ms:
            raise ValueError("initial_backoff_ms cannot exceed max_backoff_ms")

    def backoff_ms(self, attempt_index: int) -> int:
        """Backoff to sleep after the given zero-based attempt."""
        raw = int(self.initial_backoff_ms * (self.backoff_multiplier ** attempt_index))
        return min(raw, self.max_backoff_ms)


@dataclass(frozen=True)
class RetryStats:
    """
    Statistics about one `retry_call`.

    Attributes:
        attempts: Number of attempts made (including the final one)
        total_delay_ms: Time spent sleeping between attempts
        last_status: Status returned by the final attempt
    """
    attempts: int
    total_delay_ms: int
    last_status: Status


def retry_call(
    call: Callable[[], Status],
    param: Optional[RetryParam] = None,
    *,
    op: str = "rpc",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_backoff: Optional[Callable[[int, int, Status], None]] = None,
    stats: Optional[List[RetryStats]] = None,
) -> Status:
    """
    Run `call` until it succeeds, fails permanently, or the retry budget ends.

    Args:
        call: Zero-argument callable performing one attempt.
        param: Retry configuration (defaults to `RetryParam()`).
        op: Operation name used in log lines.
        sleep: Sleep function taking seconds.
        clock: Monotonic clock returning seconds.
        on_backoff: Optional hook `(attempt, sleep_ms, status)` called before each sleep.
        stats: Optional list; a `RetryStats` is appended when the call finishes.

    Returns:
        The first successful status, or the last failure.
    """
    param = param or RetryParam()
    started = clock()
    attempts = 0
    total_delay_ms = 0
    status = Status.success()

    def _finish(result: Status) -> Status:
        if stats is not None:
            stats.append(RetryStats(attempts=attempts, total_delay_ms=total_delay_ms, last_status=result))
        return result

    if param.max_retry_times <= 1:
        attempts = 1
        return _finish(call())

    for attempt in range(param.max_retry_times):
        attempts = attempt + 1
        status = call()
        if status.ok:
            return _finish(status)

        if not (param.retry_on_rate_limit and status.is_transient):
            return _finish(status)

        if attempts >= param.max_retry_times:
            logger.warning("%s: %d retry times, stop retry: %s", op, attempts, status)
            return _finish(status)

        delay_ms = param.backoff_ms(attempt)
        if param.max_retry_timeout_ms > 0:
            remaining_ms = param.max_retry_timeout_ms - (clock() - started) * 1000.0
            if remaining_ms < 1:
                logger.warning(
                    "%s: retry timeout %dms reached after %d attempts: %s",
                    op, param.max_retry_timeout_ms, attempts, status,
                )
                return _finish(status)
            # never sleep past the total budget
            delay_ms = min(delay_ms, int(remaining_ms))

        logger.debug("%s: attempt %d failed (%s), retry in %dms", op, attempts, status, delay_ms)
        if on_backoff is not None:
            on_backoff(attempts, delay_ms, status)
        sleep(delay_ms / 1000.0)
        total_delay_ms += delay_ms

    return _finish(status)
