# milvus_sdk/client/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Session, call pipeline, progress probes and the public client.
"""

from milvus_sdk.client.connection import ConnectParam, MilvusConnection
from milvus_sdk.client.pipeline import CallPipeline, CallState, advance
from milvus_sdk.client.probes import (
    LoadCollectionProbe,
    LoadPartitionsProbe,
    IndexStateProbe,
    FlushProbe,
    CompactionProbe,
)
from milvus_sdk.client.milvus_client import MilvusClient

__all__ = [
    "ConnectParam",
    "MilvusConnection",
    "CallPipeline",
    "CallState",
    "advance",
    "LoadCollectionProbe",
    "LoadPartitionsProbe",
    "IndexStateProbe",
    "FlushProbe",
    "CompactionProbe",
    "MilvusClient",
]
