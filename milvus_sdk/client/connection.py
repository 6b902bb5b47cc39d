# milvus_sdk/client/connection.py
# SPDX-License-Identifier: Apache-2.0
"""
Connection parameters and the per-client session.

`MilvusConnection` owns the gRPC channel and the `MilvusServiceStub`. It also
holds the session state every call reads: the current database, the per-RPC
deadline, the retry policy and the authorization metadata.

Every RPC goes through `invoke(method, request)`. The returned status is
classified as follows:

- `grpc.RpcError` with DEADLINE_EXCEEDED gives TIMEOUT.
- Any other `grpc.RpcError` gives RPC_FAILED, with `rpc_code` set.
- A server status that is not success gives SERVER_FAILED. The message is
  the server reason, and the raw `code` / `error_code` are kept.

`call(method, request)` is `invoke` wrapped in `retry_call`.

Configuration
-------------
`ConnectParam.from_env()` reads MILVUS_URI, MILVUS_TOKEN, MILVUS_USER,
MILVUS_PASSWORD and MILVUS_DB_NAME. Explicit keyword arguments win.
"""

from __future__ import annotations

import base64
import datetime
import logging
import os
import socket
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional, Tuple
from urllib.parse import urlparse

import grpc
from pymilvus.grpc_gen import common_pb2, milvus_pb2, milvus_pb2_grpc

from milvus_sdk import __version__
from milvus_sdk.core.retry import RetryParam, retry_call
from milvus_sdk.core.status import InvalidArgument, Status, StatusCode

__all__ = [
    "DEFAULT_PORT",
    "ConnectParam",
    "MilvusConnection",
    "status_from_server",
    "status_from_rpc_error",
]

logger = logging.getLogger(__name__)

DEFAULT_PORT = 19530


@dataclass(frozen=True)
class ConnectParam:
    """
    How to reach and authenticate against a Milvus server.

    Attributes:
        uri: `http://host:port[/db]` or `https://...`; bare `host:port` is plain text
        token: API key or `user:password` token (takes precedence over username/password)
        username / password: Credentials, sent as base64 `user:password`
        db_name: Initial database; overrides a database in the uri path
        connect_timeout_ms: How long `connect()` waits for the channel
        rpc_deadline_ms: Default per-RPC deadline; 0 means none
        keepalive_time_ms / keepalive_timeout_ms: gRPC keepalive settings
        secure: Force TLS on/off; None infers from the uri scheme
        server_name: TLS server name override
        ca_cert / client_cert / client_key: PEM file paths for (m)TLS
    """

    uri: str = f"http://localhost:{DEFAULT_PORT}"
    token: str = field(default="", repr=False)
    username: str = ""
    password: str = field(default="", repr=False)
    db_name: str = ""
    connect_timeout_ms: int = 5_000
    rpc_deadline_ms: int = 0
    keepalive_time_ms: int = 10_000
    keepalive_timeout_ms: int = 5_000
    secure: Optional[bool] = None
    server_name: str = ""
    ca_cert: str = ""
    client_cert: str = ""
    client_key: str = ""

    def __post_init__(self) -> None:
        if self.connect_timeout_ms < 0 or self.rpc_deadline_ms < 0:
            raise ValueError("timeouts must be >= 0")
        if not self._parsed().hostname:
            raise ValueError(f"invalid uri: {self.uri!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ConnectParam":
        env = {
            "uri": os.getenv("MILVUS_URI"),
            "token": os.getenv("MILVUS_TOKEN"),
            "username": os.getenv("MILVUS_USER"),
            "password": os.getenv("MILVUS_PASSWORD"),
            "db_name": os.getenv("MILVUS_DB_NAME"),
        }
        kwargs = {k: v for k, v in env.items() if v}
        kwargs.update(overrides)
        return cls(**kwargs)

    def _parsed(self):
        uri = self.uri if "://" in self.uri else f"http://{self.uri}"
        return urlparse(uri)

    @property
    def host(self) -> str:
        return self._parsed().hostname or "localhost"

    @property
    def port(self) -> int:
        return self._parsed().port or DEFAULT_PORT

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def use_tls(self) -> bool:
        if self.secure is not None:
            return self.secure
        return self._parsed().scheme == "https"

    @property
    def database(self) -> str:
        """Initial database: explicit `db_name`, else the uri path."""
        if self.db_name:
            return self.db_name
        return self._parsed().path.strip("/")

    def authorization(self) -> Optional[str]:
        if self.token:
            secret = self.token
        elif self.username:
            secret = f"{self.username}:{self.password}"
        else:
            return None
        return base64.b64encode(secret.encode("utf-8")).decode("ascii")

    def with_updates(self, **changes: Any) -> "ConnectParam":
        return replace(self, **changes)


# =============================================================================
# Status classification
# =============================================================================

def status_from_server(pb_status: common_pb2.Status) -> Status:
    return Status.from_server(pb_status)


def status_from_rpc_error(error: grpc.RpcError) -> Status:
    code = error.code() if hasattr(error, "code") else None
    details = error.details() if hasattr(error, "details") else None
    name = code.name if code is not None else "UNKNOWN"
    message = details or str(error) or name
    if code == grpc.StatusCode.DEADLINE_EXCEEDED:
        return Status.error(StatusCode.TIMEOUT, message, rpc_code=name)
    return Status.error(StatusCode.RPC_FAILED, message, rpc_code=name)


def _response_status(response: Any) -> Status:
    if isinstance(response, common_pb2.Status):
        return status_from_server(response)
    if response is not None and hasattr(response, "status"):
        return status_from_server(response.status)
    return Status.success()


# =============================================================================
# Session
# =============================================================================

class MilvusConnection:
    """
    Channel, stub and session state of one client.

    Not thread-safe: one connection serves one caller at a time. Pass `stub`
    to run over an existing stub (tests, custom channels).
    """

    def __init__(
        self,
        param: Optional[ConnectParam] = None,
        *,
        stub: Any = None,
        channel: Optional[grpc.Channel] = None,
        retry_param: Optional[RetryParam] = None,
    ) -> None:
        self._param = param or ConnectParam()
        self._channel = channel
        self._stub = stub
        self._db_name = self._param.database
        self._rpc_deadline_ms = self._param.rpc_deadline_ms
        self._retry_param = retry_param or RetryParam()
        self._authorization = self._param.authorization()
        self._identifier: Optional[int] = None

    # ------------------------------------------------------------------ #
    # lifecycle
    # ------------------------------------------------------------------ #

    @property
    def param(self) -> ConnectParam:
        return self._param

    @property
    def connected(self) -> bool:
        return self._stub is not None

    def connect(self) -> Status:
        """Open the channel, wait until ready, then register this client."""
        if self.connected:
            return Status.success()
        options = [
            ("grpc.max_send_message_length", -1),
            ("grpc.max_receive_message_length", -1),
            ("grpc.keepalive_time_ms", self._param.keepalive_time_ms),
            ("grpc.keepalive_timeout_ms", self._param.keepalive_timeout_ms),
            ("grpc.keepalive_permit_without_calls", 1),
        ]
        if self._param.server_name:
            options.append(("grpc.ssl_target_name_override", self._param.server_name))
        try:
            if self._param.use_tls:
                channel = grpc.secure_channel(self._param.address, self._credentials(), options=options)
            else:
                channel = grpc.insecure_channel(self._param.address, options=options)
        except OSError as e:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"cannot read TLS files: {e}")

        try:
            grpc.channel_ready_future(channel).result(timeout=self._param.connect_timeout_ms / 1000.0)
        except grpc.FutureTimeoutError:
            channel.close()
            return Status.error(
                StatusCode.TIMEOUT,
                f"failed to connect to {self._param.address} within {self._param.connect_timeout_ms}ms",
            )

        self._channel = channel
        self._stub = milvus_pb2_grpc.MilvusServiceStub(channel)
        status = self._register()
        if not status.ok:
            self.close()
            return status
        logger.info("connected to %s (db=%r)", self._param.address, self._db_name or "default")
        return Status.success()

    def _credentials(self) -> grpc.ChannelCredentials:
        def _read(path: str) -> Optional[bytes]:
            if not path:
                return None
            with open(path, "rb") as fh:
                return fh.read()

        return grpc.ssl_channel_credentials(
            root_certificates=_read(self._param.ca_cert),
            private_key=_read(self._param.client_key),
            certificate_chain=_read(self._param.client_cert),
        )

    def _register(self) -> Status:
        request = milvus_pb2.ConnectRequest(
            client_info=common_pb2.ClientInfo(
                sdk_type="Python",
                sdk_version=__version__,
                local_time=datetime.datetime.now().astimezone().isoformat(),
                user=self._param.username,
                host=socket.gethostname(),
            )
        )
        response, status = self.invoke("Connect", request, timeout_ms=self._param.connect_timeout_ms)
        if status.rpc_code == "UNIMPLEMENTED":
            # servers before 2.3 have no Connect RPC
            return Status.success()
        if status.ok:
            self._identifier = response.identifier
        return status

    def close(self) -> None:
        if self._channel is not None:
            self._channel.close()
            logger.info("disconnected from %s", self._param.address)
        self._channel = None
        self._stub = None
        self._identifier = None

    # ------------------------------------------------------------------ #
    # session state
    # ------------------------------------------------------------------ #

    @property
    def db_name(self) -> str:
        return self._db_name

    def set_db_name(self, db_name: str) -> None:
        self._db_name = db_name

    def current_db_name(self, override: str = "") -> str:
        """Database for one call: the override if given, else the session database."""
        return override or self._db_name

    @property
    def rpc_deadline_ms(self) -> int:
        return self._rpc_deadline_ms

    def set_rpc_deadline_ms(self, deadline_ms: int) -> None:
        if deadline_ms < 0:
            raise InvalidArgument("rpc deadline must be >= 0")
        self._rpc_deadline_ms = deadline_ms

    @property
    def retry_param(self) -> RetryParam:
        return self._retry_param

    def set_retry_param(self, param: RetryParam) -> None:
        self._retry_param = param

    def metadata(self) -> List[Tuple[str, str]]:
        md: List[Tuple[str, str]] = []
        if self._authorization:
            md.append(("authorization", self._authorization))
        if self._db_name:
            md.append(("dbname", self._db_name))
        if self._identifier is not None:
            md.append(("identifier", str(self._identifier)))
        return md

    # ------------------------------------------------------------------ #
    # calls
    # ------------------------------------------------------------------ #

    def invoke(self, method: str, request: Any, *, timeout_ms: Optional[int] = None) -> Tuple[Any, Status]:
        """One RPC round trip; never raises for transport or server failures."""
        if self._stub is None:
            return None, Status.error(StatusCode.NOT_CONNECTED, "Connection is not created!")
        deadline_ms = self._rpc_deadline_ms if timeout_ms is None else timeout_ms
        timeout = deadline_ms / 1000.0 if deadline_ms > 0 else None
        logger.debug("rpc %s (timeout=%s)", method, timeout)
        try:
            response = getattr(self._stub, method)(request, timeout=timeout, metadata=self.metadata())
        except grpc.RpcError as e:
            return None, status_from_rpc_error(e)
        return response, _response_status(response)

    def call(
        self,
        method: str,
        request: Any,
        *,
        op: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        on_backoff=None,
    ) -> Tuple[Any, Status]:
        """`invoke` under the session retry policy; returns the last response and status."""
        last: List[Any] = [None]

        def _attempt() -> Status:
            response, status = self.invoke(method, request, timeout_ms=timeout_ms)
            last[0] = response
            return status

        status = retry_call(_attempt, self._retry_param, op=op or method, on_backoff=on_backoff)
        return last[0], status
