# milvus_sdk/core/progress.py
# SPDX-License-Identifier: Apache-2.0
"""
Bounded progress polling for asynchronous server-side operations.

Loading a collection, building an index, flushing segments and compacting
are accepted by the server immediately and completed in the background. The
client waits for them by calling a *probe* on a fixed interval until the probe reports
completion, reports a hard failure, or the wait deadline elapses.

    status = wait_for_status(probe, ProgressMonitor(check_timeout_s=30))

A probe has the shape `probe(progress: Progress) -> Status`. It fills a fresh
`Progress` record on each call. Hard failures returned by a probe are not
retried here. A probe retries its own RPC through `retry_call` if needed.

Timing
------
- All sleeps are measured against `time.monotonic()`.
- Wake-ups are scheduled at `last_wake + interval`, capped at the deadline.
- A wait never overruns the deadline by more than one interval.
- A `CancelToken` interrupts the sleep between polls.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from milvus_sdk.core.status import Status, StatusCode

__all__ = [
    "Progress",
    "ProgressMonitor",
    "CancelToken",
    "wait_for_status",
]

logger = logging.getLogger(__name__)

_FOREVER_S = 2 ** 32 - 1


@dataclass
class Progress:
    """
    Polling accumulator: `finished` out of `total` units.

    `total` is None until a probe sets it; an unset total is never done.
    """

    finished: int = 0
    total: Optional[int] = None

    def done(self) -> bool:
        return self.total is not None and self.finished >= self.total

    def __str__(self) -> str:
        return f"{self.finished}/{self.total if self.total is not None else '?'}"


@dataclass(frozen=True)
class ProgressMonitor:
    """
    Wait configuration for one asynchronous operation.

    Attributes:
        check_timeout_s: Whole-wait budget in seconds; 0 disables waiting.
        check_interval_ms: Delay between probes.
        on_progress: Optional callback receiving each `Progress` snapshot.
    """

    check_timeout_s: float = 60
    check_interval_ms: int = 500
    on_progress: Optional[Callable[[Progress], None]] = field(default=None, compare=False)

    def __post_init__(self):
        if self.check_timeout_s < 0:
            raise ValueError("check_timeout_s must be >= 0")
        if self.check_interval_ms <= 0:
            raise ValueError("check_interval_ms must be positive")

    @classmethod
    def no_wait(cls) -> "ProgressMonitor":
        return cls(check_timeout_s=0)

    @classmethod
    def forever(cls, check_interval_ms: int = 500) -> "ProgressMonitor":
        return cls(check_timeout_s=_FOREVER_S, check_interval_ms=check_interval_ms)

    def notify(self, progress: Progress) -> None:
        """Report a snapshot to `on_progress`; callback errors are logged, not raised."""
        if self.on_progress is None:
            return
        try:
            self.on_progress(Progress(finished=progress.finished, total=progress.total))
        except Exception:
            logger.warning("progress callback raised; ignoring", exc_info=True)


class CancelToken:
    """Cross-thread cancellation flag for waits."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; return True if cancelled meanwhile."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


def wait_for_status(
    probe: Callable[[Progress], Status],
    monitor: ProgressMonitor,
    *,
    cancel: Optional[CancelToken] = None,
    op: str = "wait",
) -> Status:
    """
    Poll `probe` until it is done, fails, or `monitor.check_timeout_s` elapses.

    Returns:
        OK when the probe reports completion (or waiting is disabled),
        the probe's own failure, TIMEOUT on deadline, CANCELLED on cancel.
    """
    if monitor.check_timeout_s == 0:
        return Status.success()

    interval_s = monitor.check_interval_ms / 1000.0
    started = time.monotonic()
    deadline = started + monitor.check_timeout_s
    wake = started
    rounds = 0

    while True:
        wake = min(wake + interval_s, deadline)
        if _sleep_until(wake, cancel):
            logger.info("%s: cancelled after %d polls", op, rounds)
            return Status.error(StatusCode.CANCELLED, "wait cancelled")

        progress = Progress()
        status = probe(progress)
        rounds += 1
        if not status.ok:
            return status

        logger.debug("%s: poll %d progress %s", op, rounds, progress)
        monitor.notify(progress)

        if progress.done():
            return Status.success()

        if wake >= deadline:
            return Status.error(StatusCode.TIMEOUT, "time out")


def _sleep_until(when: float, cancel: Optional[CancelToken]) -> bool:
    remaining = when - time.monotonic()
    if cancel is not None:
        return cancel.wait(remaining)
    if remaining > 0:
        time.sleep(remaining)
    return False
