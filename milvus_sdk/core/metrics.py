# milvus_sdk/core/metrics.py
# SPDX-License-Identifier: Apache-2.0
"""
Metrics interface for client operations (low-cardinality, no payload data).

The call pipeline reports one `observe` per public operation and one
`counter` per retried RPC attempt. Plug in any sink with this shape, for
example a thin Prometheus or StatsD bridge.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

__all__ = ["MetricsSink", "NoopMetrics"]


class MetricsSink(Protocol):
    """
    Protocol for metrics collection implementations.

    Metric names and tags must be low-cardinality: operation names and
    status code names only, never collection contents or credentials.
    """
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Record operation timing and status.
        """
        ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Increment a counter metric.
        """
        ...


class NoopMetrics:
    """No-operation metrics sink for testing or when metrics are disabled."""
    def observe(self, **_: Any) -> None: ...
    def counter(self, **_: Any) -> None: ...
