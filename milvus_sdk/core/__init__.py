# milvus_sdk/core/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Client core: status values, retry executor, progress polling and metrics.
"""

from milvus_sdk.core.status import (
    StatusCode,
    Status,
    MilvusError,
    UnknownError,
    NotSupported,
    NotConnected,
    Cancelled,
    InvalidArgument,
    DimensionMismatch,
    VectorIsEmpty,
    RpcFailed,
    ServerFailed,
    TimeoutExceeded,
)
from milvus_sdk.core.retry import RetryParam, RetryStats, retry_call
from milvus_sdk.core.progress import (
    Progress,
    ProgressMonitor,
    CancelToken,
    wait_for_status,
)
from milvus_sdk.core.metrics import MetricsSink, NoopMetrics

__all__ = [
    "StatusCode",
    "Status",
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
    "RetryParam",
    "RetryStats",
    "retry_call",
    "Progress",
    "ProgressMonitor",
    "CancelToken",
    "wait_for_status",
    "MetricsSink",
    "NoopMetrics",
]
