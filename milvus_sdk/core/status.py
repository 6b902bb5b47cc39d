# milvus_sdk/core/status.py
# SPDX-License-Identifier: Apache-2.0
"""
Status values and normalized errors for the Milvus client core.

Purpose
-------
Every internal helper of the client core (marshaling, retry executor,
progress poller, call pipeline, probes) reports its outcome as a
`Status` value instead of raising. A `Status` always carries a
machine-checkable `StatusCode` plus a human-readable message; for
server failures the message is the server's own reason string and the
raw server codes are preserved for classification (e.g. rate limiting).

The public client facade converts a failed `Status` into an exception
from the normalized error taxonomy below via `Status.raise_for_status()`.

Error taxonomy
--------------
    MilvusError                 base (code=<StatusCode name>)
    ├── UnknownError            UNKNOWN_ERROR
    ├── NotSupported            NOT_SUPPORTED
    ├── NotConnected            NOT_CONNECTED
    ├── Cancelled               CANCELLED
    ├── InvalidArgument         INVALID_ARGUMENT
    │   ├── DimensionMismatch   DIMENSION_NOT_EQUAL
    │   └── VectorIsEmpty       VECTOR_IS_EMPTY
    ├── RpcFailed               RPC_FAILED
    ├── ServerFailed            SERVER_FAILED
    └── TimeoutExceeded         TIMEOUT
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Type

__all__ = [
    "StatusCode",
    "Status",
    "SERVER_RATE_LIMIT_CODE",
    "LEGACY_RATE_LIMIT_CODE",
    "TRANSIENT_RPC_CODES",
    "MilvusError",
    "UnknownError",
    "NotSupported",
    "NotConnected",
    "Cancelled",
    "InvalidArgument",
    "DimensionMismatch",
    "VectorIsEmpty",
    "RpcFailed",
    "ServerFailed",
    "TimeoutExceeded",
    "error_for_code",
]


class StatusCode(enum.IntEnum):
    """Outcome codes shared by every layer of the client core."""

    OK = 0

    # general
    UNKNOWN_ERROR = 1
    NOT_SUPPORTED = 2
    NOT_CONNECTED = 3
    CANCELLED = 4

    # validation / transport / server
    INVALID_ARGUMENT = 1000
    RPC_FAILED = 1001
    SERVER_FAILED = 1002
    TIMEOUT = 1003

    # field data
    DIMENSION_NOT_EQUAL = 2000
    VECTOR_IS_EMPTY = 2001


# Server-side rate limit signals: `Status.code` (2.3+) and the legacy
# `Status.error_code` enum value.
SERVER_RATE_LIMIT_CODE = 8
LEGACY_RATE_LIMIT_CODE = 49

# gRPC status names treated as transient transport failures.
TRANSIENT_RPC_CODES = frozenset({"UNAVAILABLE"})


@dataclass(frozen=True)
class Status:
    """
    Outcome of one client-core step.

    Attributes:
        code: Machine-checkable outcome kind
        message: Human-readable description (server reason for server failures)
        rpc_code: gRPC status name when the failure came from the transport
        server_code: Server `Status.code` when the failure came from the server
        legacy_server_code: Server `Status.error_code` (legacy enum) value
    """

    code: StatusCode = StatusCode.OK
    message: str = "OK"
    rpc_code: Optional[str] = None
    server_code: int = 0
    legacy_server_code: int = 0

    @classmethod
    def success(cls) -> "Status":
        return _OK

    @classmethod
    def error(cls, code: StatusCode, message: str, **kwargs: Any) -> "Status":
        return cls(code=StatusCode(code), message=message, **kwargs)

    @classmethod
    def from_server(cls, pb_status: Any) -> "Status":
        """Classify a server `common_pb2.Status`; success needs both codes at 0."""
        code = int(getattr(pb_status, "code", 0))
        legacy = int(pb_status.error_code)
        if code == 0 and legacy == 0:
            return _OK
        return cls(
            code=StatusCode.SERVER_FAILED,
            message=pb_status.reason or "server reported a failure without reason",
            server_code=code,
            legacy_server_code=legacy,
        )

    @property
    def ok(self) -> bool:
        return self.code == StatusCode.OK

    @property
    def is_rate_limited(self) -> bool:
        return (
            self.server_code == SERVER_RATE_LIMIT_CODE
            or self.legacy_server_code == LEGACY_RATE_LIMIT_CODE
        )

    @property
    def is_transient(self) -> bool:
        """True for failures that may succeed when the same call is repeated."""
        if self.ok:
            return False
        return self.is_rate_limited or (self.rpc_code in TRANSIENT_RPC_CODES)

    def to_error(self) -> "MilvusError":
        """Build the taxonomy exception matching this status."""
        details: Dict[str, Any] = {}
        if self.rpc_code is not None:
            details["rpc_code"] = self.rpc_code
        if self.server_code:
            details["server_code"] = self.server_code
        if self.legacy_server_code:
            details["legacy_server_code"] = self.legacy_server_code
        cls = error_for_code(self.code)
        return cls(self.message, status=self, details=details)

    def raise_for_status(self) -> None:
        if not self.ok:
            raise self.to_error()

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


_OK = Status()


# =============================================================================
# Normalized Errors
# =============================================================================

class MilvusError(Exception):
    """
    Base exception for all client errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (StatusCode name, UPPER_SNAKE_CASE)
        status: The `Status` the error was raised from, if any
        details: Additional context (rpc/server codes), JSON-serializable
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status: Optional[Status] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "UNKNOWN_ERROR"
        self.status = status
        self.details = dict(details or {})

    @property
    def status_code(self) -> StatusCode:
        return StatusCode.__members__.get(self.code, StatusCode.UNKNOWN_ERROR)

    def to_status(self) -> Status:
        if self.status is not None:
            return self.status
        return Status.error(self.status_code, self.message)

    def asdict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization and logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }

# Subclasses set default `code` from the StatusCode name.

class UnknownError(MilvusError):
    """Unclassified failure."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNKNOWN_ERROR")
        super().__init__(message, **kwargs)

class NotSupported(MilvusError):
    """Requested data type or operation is not supported by the client."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "NOT_SUPPORTED")
        super().__init__(message, **kwargs)

class NotConnected(MilvusError):
    """Operation attempted before a connection was established."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "NOT_CONNECTED")
        super().__init__(message, **kwargs)

class Cancelled(MilvusError):
    """A wait was cancelled by the caller."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "CANCELLED")
        super().__init__(message, **kwargs)

class InvalidArgument(MilvusError):
    """Caller supplied malformed input; never reaches the network."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "INVALID_ARGUMENT")
        super().__init__(message, **kwargs)

class DimensionMismatch(InvalidArgument):
    """Vector rows of one field have different dimensions."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "DIMENSION_NOT_EQUAL")
        super().__init__(message, **kwargs)

class VectorIsEmpty(InvalidArgument):
    """An empty vector was supplied where a dense vector is required."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "VECTOR_IS_EMPTY")
        super().__init__(message, **kwargs)

class RpcFailed(MilvusError):
    """Transport-level gRPC failure."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "RPC_FAILED")
        super().__init__(message, **kwargs)

class ServerFailed(MilvusError):
    """The server reported a failure status; message is the server reason."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "SERVER_FAILED")
        super().__init__(message, **kwargs)

class TimeoutExceeded(MilvusError):
    """A per-call deadline or a wait deadline elapsed."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "TIMEOUT")
        super().__init__(message, **kwargs)


_ERROR_CLASSES: Dict[StatusCode, Type[MilvusError]] = {
    StatusCode.UNKNOWN_ERROR: UnknownError,
    StatusCode.NOT_SUPPORTED: NotSupported,
    StatusCode.NOT_CONNECTED: NotConnected,
    StatusCode.CANCELLED: Cancelled,
    StatusCode.INVALID_ARGUMENT: InvalidArgument,
    StatusCode.RPC_FAILED: RpcFailed,
    StatusCode.SERVER_FAILED: ServerFailed,
    StatusCode.TIMEOUT: TimeoutExceeded,
    StatusCode.DIMENSION_NOT_EQUAL: DimensionMismatch,
    StatusCode.VECTOR_IS_EMPTY: VectorIsEmpty,
}


def error_for_code(code: StatusCode) -> Type[MilvusError]:
    """Return the exception class for a failure code."""
    return _ERROR_CLASSES.get(StatusCode(code), UnknownError)
