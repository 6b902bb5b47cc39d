# milvus_sdk/client/milvus_client.py
# SPDX-License-Identifier: Apache-2.0
"""
Synchronous Milvus client.

Each public method:

- validates its arguments locally,
- builds the protobuf request,
- sends it through the `CallPipeline` (retry policy, per-RPC deadline),
- optionally waits for server-side completion (load, index build, flush,
  compaction),
- converts the response into typed results.

Failures raise `MilvusError` subclasses from `milvus_sdk.core.status`:

- `InvalidArgument`: bad input, nothing was sent
- `NotConnected`: no session
- `RpcFailed` / `TimeoutExceeded`: transport failures
- `ServerFailed`: the server rejected the request (`message` is its reason)
- `Cancelled`: a wait was interrupted through its `CancelToken`

Example:
    client = MilvusClient()
    client.connect(ConnectParam(uri="http://localhost:19530"))
    client.create_collection(schema)
    client.insert("docs", [Int64FieldData("id", [1, 2]), FloatVecFieldData("vec", [[0.1, 0.2], [0.3, 0.4]])])
    client.create_index("docs", IndexDesc(field_name="vec", index_type="HNSW", metric_type="L2"))
    client.load_collection("docs")
    hits = client.search(SearchArguments.with_float_vectors("docs", [[0.1, 0.2]], limit=5))

The client is not thread-safe. Use one instance per thread.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from pymilvus.grpc_gen import common_pb2, milvus_pb2

from milvus_sdk.client.connection import ConnectParam, MilvusConnection
from milvus_sdk.client.pipeline import CallPipeline
from milvus_sdk.client.probes import (
    CompactionProbe,
    FlushProbe,
    IndexStateProbe,
    LoadCollectionProbe,
    LoadPartitionsProbe,
)
from milvus_sdk.core.metrics import MetricsSink, NoopMetrics
from milvus_sdk.core.progress import CancelToken, ProgressMonitor, wait_for_status
from milvus_sdk.core.retry import RetryParam
from milvus_sdk.core.status import InvalidArgument, NotConnected, Status, StatusCode
from milvus_sdk.types.arguments import HybridSearchArguments, QueryArguments, SearchArguments
from milvus_sdk.types.fields import Field
from milvus_sdk.types.ids import PrimaryKey
from milvus_sdk.types.results import DmlResults, QueryResults, SearchResults
from milvus_sdk.types.schema import (
    CollectionDesc,
    CollectionSchema,
    CompactionInfo,
    CompactionState,
    ConsistencyLevel,
    GrantItem,
    IndexDesc,
    LoadState,
    PartitionInfo,
    RoleDesc,
    UserDesc,
)
from milvus_sdk.wire.marshal import fields_to_wire, from_wire, ids_from_wire
from milvus_sdk.wire.requests import (
    ann_search_params,
    pk_cursor_filter,
    pk_filter,
    placeholder_group,
    query_params,
    rank_params,
    search_params,
    search_results_from_wire,
)
from milvus_sdk.wire.schema import (
    index_from_wire,
    index_params_to_wire,
    kv_dict,
    kv_pairs,
    schema_from_wire,
    schema_to_wire,
)

__all__ = ["MilvusClient"]

logger = logging.getLogger(__name__)

_MAX_QUERY_BATCH = 16384


def _require(value: Any, what: str) -> Callable[[], Status]:
    def _check() -> Status:
        if not value:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"{what} is empty")
        return Status.success()
    return _check


def _encode_secret(secret: str) -> str:
    return base64.b64encode(secret.encode("utf-8")).decode("ascii")


def _validate_fields(collection_name: str, fields: Sequence[Field]) -> Status:
    if not collection_name:
        return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
    if not fields:
        return Status.error(StatusCode.INVALID_ARGUMENT, "no field data supplied")
    counts = {f.name: f.count() for f in fields}
    if len(counts) != len(fields):
        return Status.error(StatusCode.INVALID_ARGUMENT, "duplicate field names in field data")
    if len(set(counts.values())) > 1:
        return Status.error(StatusCode.INVALID_ARGUMENT, f"row count of fields must be equal: {counts}")
    if 0 in counts.values():
        return Status.error(StatusCode.INVALID_ARGUMENT, "field data is empty")
    return Status.success()


def _consistency(level: Optional[ConsistencyLevel]) -> Dict[str, Any]:
    if level is None:
        return {"use_default_consistency": True}
    return {"consistency_level": int(level)}


def _dml_results(response: Any) -> DmlResults:
    return DmlResults(
        ids=ids_from_wire(response.IDs),
        timestamp=response.timestamp,
        insert_count=response.insert_cnt,
        upsert_count=response.upsert_cnt,
        delete_count=response.delete_cnt,
    )


class MilvusClient:
    """
    Client facade over one `MilvusConnection`.

    Args:
        retry_param: Retry policy applied to every RPC (also settable per session).
        monitor: Default wait configuration for load/index/flush operations.
        metrics: Sink receiving one observation per operation.
    """

    def __init__(
        self,
        *,
        retry_param: Optional[RetryParam] = None,
        monitor: Optional[ProgressMonitor] = None,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        self._retry_param = retry_param or RetryParam()
        self._monitor = monitor or ProgressMonitor()
        self._metrics: MetricsSink = metrics or NoopMetrics()
        self._connection: Optional[MilvusConnection] = None
        self._pipeline = CallPipeline(None, self._metrics)

    def __enter__(self) -> "MilvusClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.disconnect()

    # =========================================================================
    # plumbing
    # =========================================================================

    def _call(
        self,
        op: str,
        method: str,
        build_request: Callable[[], Any],
        *,
        validate: Optional[Callable[[], Status]] = None,
        wait: Optional[Callable[[Any], Status]] = None,
        post: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        status, result = self._pipeline.invoke(
            op, method, build_request, validate=validate, wait_for_status=wait, post_process=post,
        )
        status.raise_for_status()
        return result

    def _session(self) -> MilvusConnection:
        if self._connection is None:
            raise NotConnected("Connection is not created!")
        return self._connection

    def _db(self, db_name: str = "") -> str:
        if self._connection is None:
            return db_name
        return self._connection.current_db_name(db_name)

    def _wait(self, probe: Callable, monitor: Optional[ProgressMonitor], cancel: Optional[CancelToken], op: str) -> Status:
        return wait_for_status(probe, monitor or self._monitor, cancel=cancel, op=op)

    # =========================================================================
    # connection
    # =========================================================================

    def connect(self, param: Optional[ConnectParam] = None, *, stub: Any = None) -> None:
        """
        Open a session. An existing session is closed first.

        `stub` runs the session over an existing `MilvusServiceStub`-shaped
        object instead of opening a channel.
        """
        self.disconnect()
        connection = MilvusConnection(param or ConnectParam.from_env(), stub=stub, retry_param=self._retry_param)
        connection.connect().raise_for_status()
        self._connection = connection
        self._pipeline = CallPipeline(connection, self._metrics)

    def disconnect(self) -> None:
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._pipeline = CallPipeline(None, self._metrics)

    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    def set_rpc_deadline_ms(self, deadline_ms: int) -> None:
        self._session().set_rpc_deadline_ms(deadline_ms)

    def set_retry_param(self, param: RetryParam) -> None:
        self._session().set_retry_param(param)
        self._retry_param = param

    def use_database(self, db_name: str) -> None:
        self._session().set_db_name(db_name)
        logger.info("using database %r", db_name or "default")

    def current_db_name(self, override: str = "") -> str:
        return self._db(override)

    def get_server_version(self) -> str:
        return self._call(
            "get_server_version", "GetVersion",
            lambda: milvus_pb2.GetVersionRequest(),
            post=lambda r: r.version,
        )

    def check_health(self) -> Tuple[bool, List[str]]:
        """Return `(is_healthy, reasons)`."""
        return self._call(
            "check_health", "CheckHealth",
            lambda: milvus_pb2.CheckHealthRequest(),
            post=lambda r: (r.isHealthy, list(r.reasons)),
        )

    # =========================================================================
    # collections
    # =========================================================================

    def create_collection(
        self,
        schema: CollectionSchema,
        *,
        num_partitions: int = 0,
        shards_num: int = 1,
        consistency_level: ConsistencyLevel = ConsistencyLevel.BOUNDED,
        properties: Optional[Mapping[str, Any]] = None,
        db_name: str = "",
    ) -> None:
        def _validate() -> Status:
            if not schema.name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if num_partitions < 0 or shards_num < 0:
                return Status.error(StatusCode.INVALID_ARGUMENT, "num_partitions and shards_num must be >= 0")
            return Status.success()

        self._call(
            "create_collection", "CreateCollection",
            lambda: milvus_pb2.CreateCollectionRequest(
                db_name=self._db(db_name),
                collection_name=schema.name,
                schema=schema_to_wire(schema).SerializeToString(),
                shards_num=shards_num,
                consistency_level=int(consistency_level),
                properties=kv_pairs(properties or {}),
                num_partitions=num_partitions,
            ),
            validate=_validate,
        )

    def has_collection(self, collection_name: str, *, db_name: str = "") -> bool:
        return self._call(
            "has_collection", "HasCollection",
            lambda: milvus_pb2.HasCollectionRequest(db_name=self._db(db_name), collection_name=collection_name),
            validate=_require(collection_name, "collection name"),
            post=lambda r: r.value,
        )

    def drop_collection(self, collection_name: str, *, db_name: str = "") -> None:
        self._call(
            "drop_collection", "DropCollection",
            lambda: milvus_pb2.DropCollectionRequest(db_name=self._db(db_name), collection_name=collection_name),
            validate=_require(collection_name, "collection name"),
        )

    def describe_collection(self, collection_name: str, *, db_name: str = "") -> CollectionDesc:
        def _post(r: Any) -> CollectionDesc:
            return CollectionDesc(
                schema=schema_from_wire(r.schema),
                collection_id=r.collectionID,
                shards_num=r.shards_num,
                num_partitions=r.num_partitions,
                aliases=list(r.aliases),
                created_utc_timestamp=r.created_utc_timestamp,
                consistency_level=ConsistencyLevel(r.consistency_level),
                properties=kv_dict(r.properties),
            )

        return self._call(
            "describe_collection", "DescribeCollection",
            lambda: milvus_pb2.DescribeCollectionRequest(db_name=self._db(db_name), collection_name=collection_name),
            validate=_require(collection_name, "collection name"),
            post=_post,
        )

    def list_collections(self, *, db_name: str = "") -> List[str]:
        return self._call(
            "list_collections", "ShowCollections",
            lambda: milvus_pb2.ShowCollectionsRequest(db_name=self._db(db_name), type=milvus_pb2.ShowType.All),
            post=lambda r: list(r.collection_names),
        )

    def rename_collection(self, old_name: str, new_name: str, *, new_db_name: str = "", db_name: str = "") -> None:
        def _build() -> Any:
            kwargs = {"db_name": self._db(db_name), "oldName": old_name, "newName": new_name}
            if new_db_name:
                kwargs["newDBName"] = new_db_name
            return milvus_pb2.RenameCollectionRequest(**kwargs)

        def _validate() -> Status:
            if not old_name or not new_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            return Status.success()

        self._call("rename_collection", "RenameCollection", _build, validate=_validate)

    def alter_collection_properties(
        self, collection_name: str, properties: Mapping[str, Any], *, db_name: str = "",
    ) -> None:
        """Set collection properties such as `collection.ttl.seconds` or `mmap.enabled`."""
        def _validate() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if not properties:
                return Status.error(StatusCode.INVALID_ARGUMENT, "no properties supplied")
            return Status.success()

        self._call(
            "alter_collection_properties", "AlterCollection",
            lambda: milvus_pb2.AlterCollectionRequest(
                db_name=self._db(db_name), collection_name=collection_name, properties=kv_pairs(properties),
            ),
            validate=_validate,
        )

    def drop_collection_properties(self, collection_name: str, keys: Sequence[str], *, db_name: str = "") -> None:
        def _validate() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if not keys:
                return Status.error(StatusCode.INVALID_ARGUMENT, "no property keys supplied")
            return Status.success()

        self._call(
            "drop_collection_properties", "AlterCollection",
            lambda: milvus_pb2.AlterCollectionRequest(
                db_name=self._db(db_name), collection_name=collection_name, delete_keys=list(keys),
            ),
            validate=_validate,
        )

    def get_collection_stats(self, collection_name: str, *, db_name: str = "") -> Dict[str, str]:
        return self._call(
            "get_collection_stats", "GetCollectionStatistics",
            lambda: milvus_pb2.GetCollectionStatisticsRequest(
                db_name=self._db(db_name), collection_name=collection_name,
            ),
            validate=_require(collection_name, "collection name"),
            post=lambda r: kv_dict(r.stats),
        )

    def load_collection(
        self,
        collection_name: str,
        *,
        replica_number: int = 1,
        monitor: Optional[ProgressMonitor] = None,
        cancel: Optional[CancelToken] = None,
        db_name: str = "",
    ) -> None:
        """Load a collection and wait until it is fully in memory (per `monitor`)."""
        db = self._db(db_name)
        self._call(
            "load_collection", "LoadCollection",
            lambda: milvus_pb2.LoadCollectionRequest(
                db_name=db, collection_name=collection_name, replica_number=replica_number,
            ),
            validate=_require(collection_name, "collection name"),
            wait=lambda _: self._wait(
                LoadCollectionProbe(self._session(), collection_name, db), monitor, cancel, "load_collection",
            ),
        )

    def release_collection(self, collection_name: str, *, db_name: str = "") -> None:
        self._call(
            "release_collection", "ReleaseCollection",
            lambda: milvus_pb2.ReleaseCollectionRequest(db_name=self._db(db_name), collection_name=collection_name),
            validate=_require(collection_name, "collection name"),
        )

    def get_load_state(
        self, collection_name: str, partition_names: Sequence[str] = (), *, db_name: str = "",
    ) -> LoadState:
        return self._call(
            "get_load_state", "GetLoadState",
            lambda: milvus_pb2.GetLoadStateRequest(
                db_name=self._db(db_name), collection_name=collection_name, partition_names=list(partition_names),
            ),
            validate=_require(collection_name, "collection name"),
            post=lambda r: LoadState(r.state),
        )

    # =========================================================================
    # partitions
    # =========================================================================

    def _partition_validator(self, collection_name: str, partition_name: str) -> Callable[[], Status]:
        def _check() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if not partition_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "partition name is empty")
            return Status.success()
        return _check

    def create_partition(self, collection_name: str, partition_name: str, *, db_name: str = "") -> None:
        self._call(
            "create_partition", "CreatePartition",
            lambda: milvus_pb2.CreatePartitionRequest(
                db_name=self._db(db_name), collection_name=collection_name, partition_name=partition_name,
            ),
            validate=self._partition_validator(collection_name, partition_name),
        )

    def drop_partition(self, collection_name: str, partition_name: str, *, db_name: str = "") -> None:
        self._call(
            "drop_partition", "DropPartition",
            lambda: milvus_pb2.DropPartitionRequest(
                db_name=self._db(db_name), collection_name=collection_name, partition_name=partition_name,
            ),
            validate=self._partition_validator(collection_name, partition_name),
        )

    def has_partition(self, collection_name: str, partition_name: str, *, db_name: str = "") -> bool:
        return self._call(
            "has_partition", "HasPartition",
            lambda: milvus_pb2.HasPartitionRequest(
                db_name=self._db(db_name), collection_name=collection_name, partition_name=partition_name,
            ),
            validate=self._partition_validator(collection_name, partition_name),
            post=lambda r: r.value,
        )

    def list_partitions(self, collection_name: str, *, db_name: str = "") -> List[PartitionInfo]:
        def _post(r: Any) -> List[PartitionInfo]:
            out = []
            for i, name in enumerate(r.partition_names):
                out.append(PartitionInfo(
                    name=name,
                    partition_id=r.partitionIDs[i] if i < len(r.partitionIDs) else 0,
                    created_utc_timestamp=r.created_utc_timestamps[i] if i < len(r.created_utc_timestamps) else 0,
                    load_percentage=r.inMemory_percentages[i] if i < len(r.inMemory_percentages) else 0,
                ))
            return out

        return self._call(
            "list_partitions", "ShowPartitions",
            lambda: milvus_pb2.ShowPartitionsRequest(
                db_name=self._db(db_name), collection_name=collection_name, type=milvus_pb2.ShowType.All,
            ),
            validate=_require(collection_name, "collection name"),
            post=_post,
        )

    def load_partitions(
        self,
        collection_name: str,
        partition_names: Sequence[str],
        *,
        replica_number: int = 1,
        monitor: Optional[ProgressMonitor] = None,
        cancel: Optional[CancelToken] = None,
        db_name: str = "",
    ) -> None:
        db = self._db(db_name)
        names = list(partition_names)

        def _validate() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if not names:
                return Status.error(StatusCode.INVALID_ARGUMENT, "no partition names supplied")
            return Status.success()

        self._call(
            "load_partitions", "LoadPartitions",
            lambda: milvus_pb2.LoadPartitionsRequest(
                db_name=db, collection_name=collection_name, partition_names=names, replica_number=replica_number,
            ),
            validate=_validate,
            wait=lambda _: self._wait(
                LoadPartitionsProbe(self._session(), collection_name, names, db), monitor, cancel, "load_partitions",
            ),
        )

    def release_partitions(self, collection_name: str, partition_names: Sequence[str], *, db_name: str = "") -> None:
        self._call(
            "release_partitions", "ReleasePartitions",
            lambda: milvus_pb2.ReleasePartitionsRequest(
                db_name=self._db(db_name), collection_name=collection_name, partition_names=list(partition_names),
            ),
            validate=_require(collection_name, "collection name"),
        )

    # =========================================================================
    # indexes
    # =========================================================================

    def create_index(
        self,
        collection_name: str,
        index: IndexDesc,
        *,
        monitor: Optional[ProgressMonitor] = None,
        cancel: Optional[CancelToken] = None,
        db_name: str = "",
    ) -> None:
        """Create an index and wait until the server finished building it (per `monitor`)."""
        db = self._db(db_name)

        def _validate() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if not index.field_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "index field name is empty")
            return Status.success()

        self._call(
            "create_index", "CreateIndex",
            lambda: milvus_pb2.CreateIndexRequest(
                db_name=db,
                collection_name=collection_name,
                field_name=index.field_name,
                extra_params=index_params_to_wire(index),
                index_name=index.index_name,
            ),
            validate=_validate,
            wait=lambda _: self._wait(
                IndexStateProbe(self._session(), collection_name, index.field_name, index.index_name, db),
                monitor, cancel, "create_index",
            ),
        )

    def describe_index(
        self, collection_name: str, field_name: str = "", index_name: str = "", *, db_name: str = "",
    ) -> List[IndexDesc]:
        return self._call(
            "describe_index", "DescribeIndex",
            lambda: milvus_pb2.DescribeIndexRequest(
                db_name=self._db(db_name),
                collection_name=collection_name,
                field_name=field_name,
                index_name=index_name,
            ),
            validate=_require(collection_name, "collection name"),
            post=lambda r: [index_from_wire(d) for d in r.index_descriptions],
        )

    def drop_index(self, collection_name: str, field_name: str = "", index_name: str = "", *, db_name: str = "") -> None:
        self._call(
            "drop_index", "DropIndex",
            lambda: milvus_pb2.DropIndexRequest(
                db_name=self._db(db_name),
                collection_name=collection_name,
                field_name=field_name,
                index_name=index_name,
            ),
            validate=_require(collection_name, "collection name"),
        )

    # =========================================================================
    # aliases & databases
    # =========================================================================

    def create_alias(self, collection_name: str, alias: str, *, db_name: str = "") -> None:
        self._call(
            "create_alias", "CreateAlias",
            lambda: milvus_pb2.CreateAliasRequest(db_name=self._db(db_name), collection_name=collection_name, alias=alias),
            validate=_require(collection_name and alias, "collection name or alias"),
        )

    def drop_alias(self, alias: str, *, db_name: str = "") -> None:
        self._call(
            "drop_alias", "DropAlias",
            lambda: milvus_pb2.DropAliasRequest(db_name=self._db(db_name), alias=alias),
            validate=_require(alias, "alias"),
        )

    def alter_alias(self, collection_name: str, alias: str, *, db_name: str = "") -> None:
        self._call(
            "alter_alias", "AlterAlias",
            lambda: milvus_pb2.AlterAliasRequest(db_name=self._db(db_name), collection_name=collection_name, alias=alias),
            validate=_require(collection_name and alias, "collection name or alias"),
        )

    def list_aliases(self, collection_name: str, *, db_name: str = "") -> List[str]:
        return self._call(
            "list_aliases", "ListAliases",
            lambda: milvus_pb2.ListAliasesRequest(db_name=self._db(db_name), collection_name=collection_name),
            post=lambda r: list(r.aliases),
        )

    def create_database(self, db_name: str) -> None:
        self._call(
            "create_database", "CreateDatabase",
            lambda: milvus_pb2.CreateDatabaseRequest(db_name=db_name),
            validate=_require(db_name, "database name"),
        )

    def drop_database(self, db_name: str) -> None:
        self._call(
            "drop_database", "DropDatabase",
            lambda: milvus_pb2.DropDatabaseRequest(db_name=db_name),
            validate=_require(db_name, "database name"),
        )

    def list_databases(self) -> List[str]:
        return self._call(
            "list_databases", "ListDatabases",
            lambda: milvus_pb2.ListDatabasesRequest(),
            post=lambda r: list(r.db_names),
        )

    # =========================================================================
    # DML
    # =========================================================================

    def insert(
        self, collection_name: str, fields: Sequence[Field], *, partition_name: str = "", db_name: str = "",
    ) -> DmlResults:
        """Insert column data; every field must carry the same number of rows."""
        return self._call(
            "insert", "Insert",
            lambda: milvus_pb2.InsertRequest(
                db_name=self._db(db_name),
                collection_name=collection_name,
                partition_name=partition_name,
                fields_data=fields_to_wire(fields),
                num_rows=fields[0].count(),
            ),
            validate=lambda: _validate_fields(collection_name, fields),
            post=_dml_results,
        )

    def upsert(
        self, collection_name: str, fields: Sequence[Field], *, partition_name: str = "", db_name: str = "",
    ) -> DmlResults:
        return self._call(
            "upsert", "Upsert",
            lambda: milvus_pb2.UpsertRequest(
                db_name=self._db(db_name),
                collection_name=collection_name,
                partition_name=partition_name,
                fields_data=fields_to_wire(fields),
                num_rows=fields[0].count(),
            ),
            validate=lambda: _validate_fields(collection_name, fields),
            post=_dml_results,
        )

    def _pk_expr(self, collection_name: str, ids: Sequence[PrimaryKey], db_name: str) -> str:
        """Describe the collection to learn its primary key name, then build `pk in [...]`."""
        pk = self.describe_collection(collection_name, db_name=db_name).schema.primary_field
        if pk is None:
            raise InvalidArgument(f"collection '{collection_name}' has no primary key field")
        return pk_filter(pk.name, ids)

    def delete(
        self,
        collection_name: str,
        *,
        filter: str = "",
        ids: Optional[Sequence[PrimaryKey]] = None,
        partition_name: str = "",
        db_name: str = "",
    ) -> DmlResults:
        """
        Delete by filter expression or by primary keys (exactly one of them).

        Deleting by ids describes the collection first to learn the primary
        key field name.
        """
        def _validate() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if bool(filter) == bool(ids):
                return Status.error(StatusCode.INVALID_ARGUMENT, "delete requires exactly one of filter or ids")
            return Status.success()

        return self._call(
            "delete", "Delete",
            lambda: milvus_pb2.DeleteRequest(
                db_name=self._db(db_name),
                collection_name=collection_name,
                partition_name=partition_name,
                expr=self._pk_expr(collection_name, ids, db_name) if ids else filter,
            ),
            validate=_validate,
            post=_dml_results,
        )

    # =========================================================================
    # DQL
    # =========================================================================

    def search(self, args: SearchArguments) -> SearchResults:
        return self._call(
            "search", "Search",
            lambda: milvus_pb2.SearchRequest(
                db_name=self._db(args.db_name),
                collection_name=args.collection_name,
                partition_names=list(args.partition_names),
                dsl=args.filter,
                dsl_type=common_pb2.DslType.BoolExprV1,
                placeholder_group=placeholder_group(args.targets),
                output_fields=list(args.output_fields),
                search_params=search_params(args),
                guarantee_timestamp=args.guarantee_timestamp,
                nq=args.nq,
                **_consistency(args.consistency_level),
            ),
            validate=args.validate,
            post=lambda r: search_results_from_wire(r.results),
        )

    def query(self, args: QueryArguments) -> QueryResults:
        return self._call(
            "query", "Query",
            lambda: milvus_pb2.QueryRequest(
                db_name=self._db(args.db_name),
                collection_name=args.collection_name,
                expr=args.filter,
                output_fields=list(args.output_fields),
                partition_names=list(args.partition_names),
                query_params=query_params(args),
                guarantee_timestamp=args.guarantee_timestamp,
                **_consistency(args.consistency_level),
            ),
            validate=args.validate,
            post=lambda r: QueryResults(output_fields=[from_wire(fd) for fd in r.fields_data]),
        )

    def get(
        self,
        collection_name: str,
        ids: Sequence[PrimaryKey],
        *,
        output_fields: Sequence[str] = (),
        partition_names: Sequence[str] = (),
        db_name: str = "",
    ) -> QueryResults:
        """Fetch rows by primary key; the collection is described first to learn the key name."""
        def _validate() -> Status:
            if not collection_name:
                return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
            if not ids:
                return Status.error(StatusCode.INVALID_ARGUMENT, "no primary keys supplied")
            return Status.success()

        return self._call(
            "get", "Query",
            lambda: milvus_pb2.QueryRequest(
                db_name=self._db(db_name),
                collection_name=collection_name,
                expr=self._pk_expr(collection_name, ids, db_name),
                output_fields=list(output_fields),
                partition_names=list(partition_names),
            ),
            validate=_validate,
            post=lambda r: QueryResults(output_fields=[from_wire(fd) for fd in r.fields_data]),
        )

    def hybrid_search(self, args: HybridSearchArguments) -> SearchResults:
        """
        Run several vector searches and fuse their hits with `args.ranker`.

        Every sub-request's `anns_field` must name a vector field of the
        collection; the collection is described once to check this.
        """
        def _validate() -> Status:
            status = args.validate()
            if not status.ok:
                return status
            schema = self.describe_collection(args.collection_name, db_name=args.db_name).schema
            known = set(schema.anns_field_names())
            for req in args.requests:
                if req.anns_field and req.anns_field not in known:
                    return Status.error(
                        StatusCode.INVALID_ARGUMENT,
                        f"{req.anns_field} is not a valid anns field in collection {args.collection_name}",
                    )
            return Status.success()

        def _build() -> Any:
            sub_requests = [
                milvus_pb2.SearchRequest(
                    collection_name=args.collection_name,
                    partition_names=list(args.partition_names),
                    dsl=req.filter,
                    dsl_type=common_pb2.DslType.BoolExprV1,
                    placeholder_group=placeholder_group(req.targets),
                    search_params=ann_search_params(req),
                    nq=req.targets.count(),
                )
                for req in args.requests
            ]
            return milvus_pb2.HybridSearchRequest(
                db_name=self._db(args.db_name),
                collection_name=args.collection_name,
                partition_names=list(args.partition_names),
                requests=sub_requests,
                rank_params=rank_params(args),
                output_fields=list(args.output_fields),
                guarantee_timestamp=args.guarantee_timestamp,
                **_consistency(args.consistency_level),
            )

        return self._call(
            "hybrid_search", "HybridSearch", _build,
            validate=_validate,
            post=lambda r: search_results_from_wire(r.results),
        )

    def query_iterator(self, args: QueryArguments, *, batch_size: int = 1000) -> Iterator[QueryResults]:
        """
        Page through a query in primary key order, `batch_size` rows at a time.

        Each page filters on `pk > last key of the previous page`, so the
        collection is described first to learn the primary key. `args.limit`
        caps the total number of rows, `args.offset` skips rows before the
        first page. Every page reads the snapshot of the first one.
        """
        if not args.collection_name:
            raise InvalidArgument("collection name is empty")
        if not 0 < batch_size <= _MAX_QUERY_BATCH:
            raise InvalidArgument(f"batch_size must be in (0, {_MAX_QUERY_BATCH}], got {batch_size}")
        if args.limit is not None and args.limit < 0:
            raise InvalidArgument(f"limit must be >= 0, got {args.limit}")
        if args.offset is not None and args.offset < 0:
            raise InvalidArgument(f"offset must be >= 0, got {args.offset}")
        pk = self.describe_collection(args.collection_name, db_name=args.db_name).schema.primary_field
        if pk is None:
            raise InvalidArgument(f"collection '{args.collection_name}' has no primary key field")
        output_fields = list(args.output_fields)
        if pk.name not in output_fields and "*" not in output_fields:
            output_fields.append(pk.name)
        return self._iterate_query(args, pk.name, output_fields, batch_size)

    def _query_page(
        self, args: QueryArguments, expr: str, limit: int, output_fields: List[str], seek: bool, session_ts: int,
    ) -> Tuple[QueryResults, int]:
        params = {"limit": limit, "iterator": not seek, "reduce_stop_for_best": False}
        return self._call(
            "query_iterator", "Query",
            lambda: milvus_pb2.QueryRequest(
                db_name=self._db(args.db_name),
                collection_name=args.collection_name,
                expr=expr,
                output_fields=output_fields,
                partition_names=list(args.partition_names),
                query_params=kv_pairs(params),
                guarantee_timestamp=session_ts,
                **_consistency(args.consistency_level),
            ),
            post=lambda r: (QueryResults(output_fields=[from_wire(fd) for fd in r.fields_data]), r.session_ts),
        )

    def _iterate_query(
        self, args: QueryArguments, pk_name: str, output_fields: List[str], batch_size: int,
    ) -> Iterator[QueryResults]:
        cursor: Optional[PrimaryKey] = None
        session_ts = args.guarantee_timestamp

        def _page(limit: int, fields: List[str], seek: bool) -> QueryResults:
            nonlocal cursor, session_ts
            page, ts = self._query_page(
                args, pk_cursor_filter(pk_name, cursor, args.filter), limit, fields, seek, session_ts,
            )
            if not session_ts:
                # servers that report no snapshot get a client-side hybrid timestamp
                session_ts = ts or int(time.time() * 1000) << 18
            keys = page.output_field(pk_name)
            if keys is not None and keys.count():
                cursor = keys.data[-1]
            elif page.count():
                raise InvalidArgument(f"primary key '{pk_name}' missing from query iterator results")
            return page

        skip = args.offset or 0
        while skip > 0:
            seeked = _page(min(skip, _MAX_QUERY_BATCH), [pk_name], True).count()
            if seeked == 0:
                return
            skip -= seeked

        remaining = args.limit
        while remaining is None or remaining > 0:
            limit = batch_size if remaining is None else min(batch_size, remaining)
            page = _page(limit, output_fields, False)
            count = page.count()
            if count == 0:
                return
            yield page
            if remaining is not None:
                remaining -= count
            if count < limit:
                return

    # =========================================================================
    # flush
    # =========================================================================

    def flush(
        self,
        collection_names: Sequence[str],
        *,
        monitor: Optional[ProgressMonitor] = None,
        cancel: Optional[CancelToken] = None,
        db_name: str = "",
    ) -> None:
        """Seal and persist growing segments, then wait until every segment is flushed."""
        db = self._db(db_name)
        names = list(collection_names)
        self._call(
            "flush", "Flush",
            lambda: milvus_pb2.FlushRequest(db_name=db, collection_names=names),
            validate=_require(names, "collection names"),
            wait=lambda r: self._wait(FlushProbe.from_response(self._session(), r, db), monitor, cancel, "flush"),
        )

    def get_flush_state(self, segment_ids: Sequence[int], *, collection_name: str = "", db_name: str = "") -> bool:
        return self._call(
            "get_flush_state", "GetFlushState",
            lambda: milvus_pb2.GetFlushStateRequest(
                segmentIDs=list(segment_ids), db_name=self._db(db_name), collection_name=collection_name,
            ),
            post=lambda r: r.flushed,
        )

    # =========================================================================
    # compaction
    # =========================================================================

    def compact(
        self,
        collection_name: str,
        *,
        is_clustering: bool = False,
        monitor: Optional[ProgressMonitor] = None,
        cancel: Optional[CancelToken] = None,
        db_name: str = "",
    ) -> int:
        """
        Start a manual compaction and wait until every plan ended (per `monitor`).

        Returns the compaction id; pass `ProgressMonitor.no_wait()` to return
        right after the server accepted the job.
        """
        def _build() -> Any:
            desc = self.describe_collection(collection_name, db_name=db_name)
            return milvus_pb2.ManualCompactionRequest(
                collectionID=desc.collection_id,
                collection_name=collection_name,
                majorCompaction=is_clustering,
            )

        return self._call(
            "compact", "ManualCompaction", _build,
            validate=_require(collection_name, "collection name"),
            wait=lambda r: self._wait(CompactionProbe(self._session(), r.compactionID), monitor, cancel, "compact"),
            post=lambda r: r.compactionID,
        )

    def get_compaction_state(self, compaction_id: int) -> CompactionInfo:
        return self._call(
            "get_compaction_state", "GetCompactionState",
            lambda: milvus_pb2.GetCompactionStateRequest(compactionID=compaction_id),
            post=lambda r: CompactionInfo(
                compaction_id=compaction_id,
                state=CompactionState(r.state),
                executing_plans=r.executingPlanNo,
                completed_plans=r.completedPlanNo,
                failed_plans=r.failedPlanNo,
                timeout_plans=r.timeoutPlanNo,
            ),
        )

    # =========================================================================
    # RBAC
    # =========================================================================

    def create_credential(self, username: str, password: str) -> None:
        self._call(
            "create_credential", "CreateCredential",
            lambda: milvus_pb2.CreateCredentialRequest(username=username, password=_encode_secret(password)),
            validate=_require(username, "username"),
        )

    def update_credential(self, username: str, old_password: str, new_password: str) -> None:
        self._call(
            "update_credential", "UpdateCredential",
            lambda: milvus_pb2.UpdateCredentialRequest(
                username=username,
                oldPassword=_encode_secret(old_password),
                newPassword=_encode_secret(new_password),
            ),
            validate=_require(username, "username"),
        )

    def delete_credential(self, username: str) -> None:
        self._call(
            "delete_credential", "DeleteCredential",
            lambda: milvus_pb2.DeleteCredentialRequest(username=username),
            validate=_require(username, "username"),
        )

    def list_users(self) -> List[str]:
        return self._call(
            "list_users", "ListCredUsers",
            lambda: milvus_pb2.ListCredUsersRequest(),
            post=lambda r: list(r.usernames),
        )

    def create_role(self, role_name: str) -> None:
        self._call(
            "create_role", "CreateRole",
            lambda: milvus_pb2.CreateRoleRequest(entity=milvus_pb2.RoleEntity(name=role_name)),
            validate=_require(role_name, "role name"),
        )

    def drop_role(self, role_name: str) -> None:
        self._call(
            "drop_role", "DropRole",
            lambda: milvus_pb2.DropRoleRequest(role_name=role_name),
            validate=_require(role_name, "role name"),
        )

    def _operate_user_role(self, op: str, username: str, role_name: str, kind: int) -> None:
        self._call(
            op, "OperateUserRole",
            lambda: milvus_pb2.OperateUserRoleRequest(username=username, role_name=role_name, type=kind),
            validate=_require(username and role_name, "username or role name"),
        )

    def add_user_to_role(self, username: str, role_name: str) -> None:
        self._operate_user_role("add_user_to_role", username, role_name, milvus_pb2.OperateUserRoleType.AddUserToRole)

    def remove_user_from_role(self, username: str, role_name: str) -> None:
        self._operate_user_role(
            "remove_user_from_role", username, role_name, milvus_pb2.OperateUserRoleType.RemoveUserFromRole,
        )

    def select_role(self, role_name: str) -> RoleDesc:
        def _post(r: Any) -> RoleDesc:
            users: List[str] = []
            for result in r.results:
                if result.role.name == role_name:
                    users.extend(u.name for u in result.users)
            return RoleDesc(name=role_name, users=users)

        return self._call(
            "select_role", "SelectRole",
            lambda: milvus_pb2.SelectRoleRequest(role=milvus_pb2.RoleEntity(name=role_name), include_user_info=True),
            validate=_require(role_name, "role name"),
            post=_post,
        )

    def select_user(self, username: str) -> UserDesc:
        def _post(r: Any) -> UserDesc:
            roles: List[str] = []
            for result in r.results:
                if result.user.name == username:
                    roles.extend(role.name for role in result.roles)
            return UserDesc(name=username, roles=roles)

        return self._call(
            "select_user", "SelectUser",
            lambda: milvus_pb2.SelectUserRequest(user=milvus_pb2.UserEntity(name=username), include_role_info=True),
            validate=_require(username, "username"),
            post=_post,
        )

    def _operate_privilege(self, op: str, grant: GrantItem, kind: int) -> None:
        def _validate() -> Status:
            if not (grant.role_name and grant.object_type and grant.object_name and grant.privilege):
                return Status.error(
                    StatusCode.INVALID_ARGUMENT, "role, object type, object name and privilege are required",
                )
            return Status.success()

        self._call(
            op, "OperatePrivilege",
            lambda: milvus_pb2.OperatePrivilegeRequest(
                entity=milvus_pb2.GrantEntity(
                    role=milvus_pb2.RoleEntity(name=grant.role_name),
                    object=milvus_pb2.ObjectEntity(name=grant.object_type),
                    object_name=grant.object_name,
                    db_name=self._db(grant.db_name),
                    grantor=milvus_pb2.GrantorEntity(privilege=milvus_pb2.PrivilegeEntity(name=grant.privilege)),
                ),
                type=kind,
            ),
            validate=_validate,
        )

    def grant_privilege(self, grant: GrantItem) -> None:
        self._operate_privilege("grant_privilege", grant, milvus_pb2.OperatePrivilegeType.Grant)

    def revoke_privilege(self, grant: GrantItem) -> None:
        self._operate_privilege("revoke_privilege", grant, milvus_pb2.OperatePrivilegeType.Revoke)

    def list_grants(self, role_name: str, *, db_name: str = "") -> List[GrantItem]:
        def _post(r: Any) -> List[GrantItem]:
            return [
                GrantItem(
                    role_name=e.role.name,
                    object_type=e.object.name,
                    object_name=e.object_name,
                    privilege=e.grantor.privilege.name,
                    db_name=e.db_name,
                )
                for e in r.entities
            ]

        return self._call(
            "list_grants", "SelectGrant",
            lambda: milvus_pb2.SelectGrantRequest(
                entity=milvus_pb2.GrantEntity(role=milvus_pb2.RoleEntity(name=role_name), db_name=self._db(db_name)),
            ),
            validate=_require(role_name, "role name"),
            post=_post,
        )
