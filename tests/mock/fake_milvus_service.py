# tests/mock/fake_milvus_service.py
# SPDX-License-Identifier: Apache-2.0
"""
Scripted stand-in for `milvus_pb2_grpc.MilvusServiceStub`.

Every stub method has the generated signature `(request, timeout=None,
metadata=None)`. Responses are queued per method with `script()`. A queued
item can be:

- a protobuf response message, which is returned as is;
- an exception instance, which is raised (use `FakeRpcError` for transport errors);
- a callable `(request) -> response`, for responses that depend on the request.

Once a method's queue is empty, its `default()` response is returned. A method
with neither a queue nor a default raises UNIMPLEMENTED, like a real server
missing the RPC. Every call is recorded in `calls`.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

import grpc
from pymilvus.grpc_gen import common_pb2

__all__ = [
    "FakeRpcError",
    "RecordedCall",
    "FakeMilvusStub",
    "ok_status",
    "failed_status",
    "rate_limited_status",
]


class FakeRpcError(grpc.RpcError):
    """Transport error carrying a gRPC status code, as raised by real stubs."""

    def __init__(self, code: grpc.StatusCode, details: str = "") -> None:
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self) -> grpc.StatusCode:
        return self._code

    def details(self) -> str:
        return self._details


@dataclass
class RecordedCall:
    method: str
    request: Any
    timeout: Optional[float]
    metadata: Optional[Sequence[Tuple[str, str]]]


def ok_status() -> common_pb2.Status:
    return common_pb2.Status()


def failed_status(reason: str, code: int = 65535) -> common_pb2.Status:
    return common_pb2.Status(code=code, reason=reason)


def rate_limited_status(reason: str = "rate limit exceeded") -> common_pb2.Status:
    return common_pb2.Status(code=8, reason=reason)


class FakeMilvusStub:
    def __init__(self) -> None:
        self.calls: List[RecordedCall] = []
        self._queues: Dict[str, Deque[Any]] = defaultdict(deque)
        self._defaults: Dict[str, Any] = {}

    def script(self, method: str, *responses: Any) -> "FakeMilvusStub":
        self._queues[method].extend(responses)
        return self

    def default(self, method: str, response: Any) -> "FakeMilvusStub":
        self._defaults[method] = response
        return self

    def requests(self, method: str) -> List[Any]:
        return [c.request for c in self.calls if c.method == method]

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c.method == method)

    def methods(self) -> List[str]:
        return [c.method for c in self.calls]

    def __getattr__(self, method: str):
        if method.startswith("_"):
            raise AttributeError(method)

        def _rpc(request: Any, timeout: Optional[float] = None, metadata=None) -> Any:
            self.calls.append(RecordedCall(method, request, timeout, metadata))
            queue = self._queues.get(method)
            if queue:
                item = queue.popleft()
            elif method in self._defaults:
                item = self._defaults[method]
            else:
                raise FakeRpcError(grpc.StatusCode.UNIMPLEMENTED, f"{method} is not scripted")
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                return item(request)
            return item

        return _rpc
