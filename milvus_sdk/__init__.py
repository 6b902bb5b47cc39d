# milvus_sdk/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
milvus_sdk

Synchronous Milvus client core:

- typed field containers and their protobuf marshaling
- a retry/backoff executor applied to every RPC
- bounded progress polling for load, index build and flush
- a call pipeline and a client facade over one gRPC session

Public API:
    from milvus_sdk import MilvusClient, ConnectParam
    from milvus_sdk.types import FloatVecFieldData, Int64FieldData, SearchArguments
"""

__version__ = "0.1.0"

from milvus_sdk.core import (  # noqa: E402
    StatusCode,
    Status,
    MilvusError,
    RetryParam,
    ProgressMonitor,
    CancelToken,
)
from milvus_sdk.client import ConnectParam, MilvusClient  # noqa: E402

__all__ = [
    "__version__",
    "StatusCode",
    "Status",
    "MilvusError",
    "RetryParam",
    "ProgressMonitor",
    "CancelToken",
    "ConnectParam",
    "MilvusClient",
]
