# milvus_sdk/client/probes.py
# SPDX-License-Identifier: Apache-2.0
"""
Progress probes for load, index build, flush and compaction.

Each probe is a callable `probe(progress) -> Status` meant for
`milvus_sdk.core.progress.wait_for_status`. A probe sends its own RPC through
`MilvusConnection.call`, so the session retry policy applies to every poll.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from pymilvus.grpc_gen import common_pb2, milvus_pb2

from milvus_sdk.client.connection import MilvusConnection
from milvus_sdk.core.progress import Progress
from milvus_sdk.core.status import Status, StatusCode

__all__ = [
    "LoadCollectionProbe",
    "LoadPartitionsProbe",
    "IndexStateProbe",
    "FlushProbe",
    "CompactionProbe",
]

logger = logging.getLogger(__name__)

_FULLY_LOADED = 100
_INDEX_PROGRESS_TOTAL = 100


def _count_loaded(names: Sequence[str], percentages: Sequence[int], targets: Sequence[str]) -> int:
    loaded = dict(zip(names, percentages))
    return sum(1 for t in targets if loaded.get(t, 0) >= _FULLY_LOADED)


class LoadCollectionProbe:
    """Done when the collection reports 100% in memory."""

    def __init__(self, connection: MilvusConnection, collection_name: str, db_name: str = "") -> None:
        self._connection = connection
        self._collection_name = collection_name
        self._db_name = db_name

    def __call__(self, progress: Progress) -> Status:
        request = milvus_pb2.ShowCollectionsRequest(
            db_name=self._db_name,
            collection_names=[self._collection_name],
            type=milvus_pb2.ShowType.InMemory,
        )
        response, status = self._connection.call("ShowCollections", request, op="load_collection.poll")
        if not status.ok:
            return status
        progress.total = 1
        progress.finished = _count_loaded(
            response.collection_names, response.inMemory_percentages, [self._collection_name]
        )
        return Status.success()


class LoadPartitionsProbe:
    """Done when every target partition reports 100% in memory."""

    def __init__(
        self,
        connection: MilvusConnection,
        collection_name: str,
        partition_names: Sequence[str],
        db_name: str = "",
    ) -> None:
        self._connection = connection
        self._collection_name = collection_name
        self._partition_names = list(partition_names)
        self._db_name = db_name

    def __call__(self, progress: Progress) -> Status:
        request = milvus_pb2.ShowPartitionsRequest(
            db_name=self._db_name,
            collection_name=self._collection_name,
            partition_names=self._partition_names,
            type=milvus_pb2.ShowType.InMemory,
        )
        response, status = self._connection.call("ShowPartitions", request, op="load_partitions.poll")
        if not status.ok:
            return status
        progress.total = len(self._partition_names)
        progress.finished = _count_loaded(
            response.partition_names, response.inMemory_percentages, self._partition_names
        )
        return Status.success()


class IndexStateProbe:
    """
    Tracks an index build through DescribeIndex.

    Progress is reported out of 100. A build still in progress reports its
    indexed row ratio, kept below 100 until the server says Finished.
    """

    def __init__(
        self,
        connection: MilvusConnection,
        collection_name: str,
        field_name: str,
        index_name: str = "",
        db_name: str = "",
    ) -> None:
        self._connection = connection
        self._collection_name = collection_name
        self._field_name = field_name
        self._index_name = index_name
        self._db_name = db_name

    def __call__(self, progress: Progress) -> Status:
        request = milvus_pb2.DescribeIndexRequest(
            db_name=self._db_name,
            collection_name=self._collection_name,
            field_name=self._field_name,
            index_name=self._index_name,
        )
        response, status = self._connection.call("DescribeIndex", request, op="create_index.poll")
        if not status.ok:
            return status

        descriptions = [d for d in response.index_descriptions if d.field_name == self._field_name]
        if not descriptions:
            descriptions = list(response.index_descriptions)
        if not descriptions:
            return Status.error(StatusCode.SERVER_FAILED, "Index is created but cannot be described")

        desc = descriptions[0]
        progress.total = _INDEX_PROGRESS_TOTAL
        if desc.state in (common_pb2.IndexState.Finished, common_pb2.IndexState.IndexStateNone):
            progress.finished = _INDEX_PROGRESS_TOTAL
        elif desc.state == common_pb2.IndexState.Failed:
            return Status.error(StatusCode.SERVER_FAILED, "index failed:" + desc.index_state_fail_reason)
        elif desc.total_rows > 0:
            ratio = desc.indexed_rows * _INDEX_PROGRESS_TOTAL // desc.total_rows
            progress.finished = min(ratio, _INDEX_PROGRESS_TOTAL - 1)
        else:
            progress.finished = 0
        return Status.success()


class FlushProbe:
    """
    Tracks flushed segments per collection.

    Built from the flush response: `{collection: [segment ids]}` and, when the
    server sends them, per-collection flush timestamps. A flushed collection
    adds its segment count to `finished` and is not polled again.
    """

    def __init__(
        self,
        connection: MilvusConnection,
        segments: Mapping[str, Sequence[int]],
        flush_ts: Optional[Mapping[str, int]] = None,
        db_name: str = "",
    ) -> None:
        self._connection = connection
        self._pending: Dict[str, List[int]] = {name: list(ids) for name, ids in segments.items()}
        self._flush_ts = dict(flush_ts or {})
        self._db_name = db_name
        self._total = sum(len(ids) for ids in self._pending.values())
        self._finished = 0

    @classmethod
    def from_response(
        cls, connection: MilvusConnection, response: milvus_pb2.FlushResponse, db_name: str = ""
    ) -> "FlushProbe":
        segments = {name: list(ids.data) for name, ids in response.coll_segIDs.items()}
        return cls(connection, segments, dict(response.coll_flush_ts), db_name=db_name)

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def __call__(self, progress: Progress) -> Status:
        progress.total = self._total
        for name in list(self._pending):
            segment_ids = self._pending[name]
            request = milvus_pb2.GetFlushStateRequest(
                segmentIDs=segment_ids,
                db_name=self._db_name,
                collection_name=name,
                flush_ts=self._flush_ts.get(name, 0),
            )
            response, status = self._connection.call("GetFlushState", request, op="flush.poll")
            if not status.ok:
                return status
            if response.flushed:
                self._finished += len(segment_ids)
                del self._pending[name]
                logger.debug("flush: collection %r flushed %d segments", name, len(segment_ids))
        progress.finished = self._finished
        return Status.success()


class CompactionProbe:
    """
    Tracks a manual compaction job through GetCompactionState.

    Progress counts finished plans (completed, failed or timed out) out of
    all plans, and stays below the total until the job reports Completed.
    """

    def __init__(self, connection: MilvusConnection, compaction_id: int) -> None:
        self._connection = connection
        self._compaction_id = compaction_id

    def __call__(self, progress: Progress) -> Status:
        request = milvus_pb2.GetCompactionStateRequest(compactionID=self._compaction_id)
        response, status = self._connection.call("GetCompactionState", request, op="compact.poll")
        if not status.ok:
            return status
        ended = response.completedPlanNo + response.failedPlanNo + response.timeoutPlanNo
        total = max(ended + response.executingPlanNo, 1)
        progress.total = total
        if response.state == common_pb2.CompactionState.Completed:
            progress.finished = total
            if response.failedPlanNo or response.timeoutPlanNo:
                logger.warning(
                    "compaction %d: %d plans failed, %d timed out",
                    self._compaction_id, response.failedPlanNo, response.timeoutPlanNo,
                )
        else:
            progress.finished = min(ended, total - 1)
        return Status.success()
