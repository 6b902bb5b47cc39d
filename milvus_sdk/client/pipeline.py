# milvus_sdk/client/pipeline.py
# SPDX-License-Identifier: Apache-2.0
r"""
Call pipeline shared by every client operation.

One operation runs as a small state machine:

    VALIDATING -> SENDING -> WAITING -> POST_PROCESSING -> DONE
         \____________\__________\______________\________-> FAILED

- VALIDATING runs the caller's `validate()`. No request is built when it fails.
- SENDING builds the request and sends it through `MilvusConnection.call`,
  which applies the session retry policy.
- WAITING runs `wait_for_status(response)`. This is where a load, index or
  flush poller runs.
- POST_PROCESSING converts the response into the caller's result.

The first failing step moves the call to FAILED, and its status is returned.
No later step runs, and no result is produced.

A step that raises `MilvusError` (for example marshaling bad field data in
`build_request`) fails the call with that error's status. Other exceptions
propagate.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Any, Callable, Optional, Tuple, TypeVar

from milvus_sdk.client.connection import MilvusConnection
from milvus_sdk.core.metrics import MetricsSink, NoopMetrics
from milvus_sdk.core.status import MilvusError, Status, StatusCode

__all__ = ["CallState", "advance", "CallPipeline"]

LOG = logging.getLogger(__name__)

R = TypeVar("R")
T = TypeVar("T")

_COMPONENT = "milvus_client"


class CallState(enum.Enum):
    VALIDATING = "validating"
    SENDING = "sending"
    WAITING = "waiting"
    POST_PROCESSING = "post_processing"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CallState.DONE, CallState.FAILED)


def advance(state: CallState, status: Status, *, has_wait: bool = True, has_post: bool = True) -> CallState:
    """
    Next state after `state` finished with `status`.

    Steps without a handler are skipped. Terminal states do not move.
    """
    if state.terminal:
        return state
    if not status.ok:
        return CallState.FAILED
    if state is CallState.VALIDATING:
        return CallState.SENDING
    if state is CallState.SENDING:
        if has_wait:
            return CallState.WAITING
        return CallState.POST_PROCESSING if has_post else CallState.DONE
    if state is CallState.WAITING:
        return CallState.POST_PROCESSING if has_post else CallState.DONE
    return CallState.DONE


def _guard(step: Callable[[], Status]) -> Status:
    try:
        return step()
    except MilvusError as e:
        return e.to_status()


class CallPipeline:
    """
    Runs client operations over one session.

    Each finished operation is reported once to the metrics sink as
    `observe(component="milvus_client", op=..., ms=..., ok=..., code=...)`.
    Each retry backoff increments the `rpc_retries` counter.
    """

    def __init__(self, connection: Optional[MilvusConnection], metrics: Optional[MetricsSink] = None) -> None:
        self._connection = connection
        self._metrics: MetricsSink = metrics or NoopMetrics()

    @property
    def connection(self) -> Optional[MilvusConnection]:
        return self._connection

    def invoke(
        self,
        op: str,
        method: str,
        build_request: Callable[[], R],
        *,
        validate: Optional[Callable[[], Status]] = None,
        wait_for_status: Optional[Callable[[Any], Status]] = None,
        post_process: Optional[Callable[[Any], T]] = None,
        deadline_ms: Optional[int] = None,
    ) -> Tuple[Status, Optional[T]]:
        """
        Run one operation.

        Args:
            op: Operation name for logs and metrics (e.g. "create_index").
            method: `MilvusServiceStub` method name (e.g. "CreateIndex").
            build_request: Builds the protobuf request.
            validate: Local argument checks, run before anything is built.
            wait_for_status: Blocks until the server finished the operation.
            post_process: Converts the response into the returned result.
            deadline_ms: Per-RPC deadline override for this call.

        Returns:
            `(status, result)`. `result` is None unless the call succeeded
            and `post_process` was given.
        """
        started = time.monotonic()
        status, result = self._run(op, method, build_request, validate, wait_for_status, post_process, deadline_ms)
        elapsed_ms = (time.monotonic() - started) * 1000.0
        self._metrics.observe(
            component=_COMPONENT, op=op, ms=elapsed_ms, ok=status.ok, code=status.code.name,
        )
        if status.ok:
            LOG.debug("%s finished in %.1fms", op, elapsed_ms)
        else:
            LOG.debug("%s failed in %.1fms: %s", op, elapsed_ms, status)
        return status, result

    def _run(self, op, method, build_request, validate, wait_for_status, post_process, deadline_ms):
        connection = self._connection
        if connection is None or not connection.connected:
            return Status.error(StatusCode.NOT_CONNECTED, "Connection is not created!"), None

        has_wait = wait_for_status is not None
        has_post = post_process is not None
        state = CallState.VALIDATING
        response: Any = None
        result: Optional[T] = None

        while not state.terminal:
            if state is CallState.VALIDATING:
                status = _guard(validate) if validate is not None else Status.success()
            elif state is CallState.SENDING:
                status, response = self._send(connection, op, method, build_request, deadline_ms)
            elif state is CallState.WAITING:
                status = _guard(lambda: wait_for_status(response))
            else:
                try:
                    result = post_process(response)
                    status = Status.success()
                except MilvusError as e:
                    status = e.to_status()
            next_state = advance(state, status, has_wait=has_wait, has_post=has_post)
            if next_state is CallState.FAILED:
                LOG.debug("%s: %s step failed: %s", op, state.value, status)
                return status, None
            state = next_state

        return Status.success(), result

    def _send(self, connection, op, method, build_request, deadline_ms):
        try:
            request = build_request()
        except MilvusError as e:
            return e.to_status(), None

        def _count_retry(attempt: int, delay_ms: int, status: Status) -> None:
            self._metrics.counter(component=_COMPONENT, name="rpc_retries", extra={"op": op})

        response, status = connection.call(
            method, request, op=op, timeout_ms=deadline_ms, on_backoff=_count_retry,
        )
        return status, response
