# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the milvus_sdk test suite.

No test talks to a real server. Client and session tests run over
`FakeMilvusStub`, and every retry backoff and polling interval is a few
milliseconds, so the suite stays fast.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import pytest

from milvus_sdk.client.connection import ConnectParam, MilvusConnection
from milvus_sdk.client.milvus_client import MilvusClient
from milvus_sdk.core.progress import ProgressMonitor
from milvus_sdk.core.retry import RetryParam
from tests.mock.fake_milvus_service import FakeMilvusStub


FAST_RETRY = RetryParam(max_retry_times=4, initial_backoff_ms=1, max_backoff_ms=4, backoff_multiplier=2.0)
FAST_MONITOR = ProgressMonitor(check_timeout_s=2, check_interval_ms=5)


class RecordingMetrics:
    """MetricsSink that keeps every observation for assertions."""

    def __init__(self) -> None:
        self.observations: List[Dict[str, Any]] = []
        self.counters: List[Dict[str, Any]] = []

    def observe(self, **kwargs: Any) -> None:
        self.observations.append(kwargs)

    def counter(self, **kwargs: Any) -> None:
        self.counters.append(kwargs)

    def ops(self) -> List[str]:
        return [o["op"] for o in self.observations]


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch):
    """Keep MILVUS_* variables of the developer shell out of the tests."""
    for name in ("MILVUS_URI", "MILVUS_TOKEN", "MILVUS_USER", "MILVUS_PASSWORD", "MILVUS_DB_NAME"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def stub() -> FakeMilvusStub:
    return FakeMilvusStub()


@pytest.fixture
def fast_retry() -> RetryParam:
    return FAST_RETRY


@pytest.fixture
def fast_monitor() -> ProgressMonitor:
    return FAST_MONITOR


@pytest.fixture
def connection(stub) -> MilvusConnection:
    param = ConnectParam(uri="http://localhost:19530", username="root", password="Milvus")
    return MilvusConnection(param, stub=stub, retry_param=FAST_RETRY)


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def client(stub, metrics):
    c = MilvusClient(retry_param=FAST_RETRY, monitor=FAST_MONITOR, metrics=metrics)
    c.connect(ConnectParam(uri="http://localhost:19530"), stub=stub)
    yield c
    c.disconnect()


@pytest.fixture
def caplog_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="milvus_sdk")
    return caplog
