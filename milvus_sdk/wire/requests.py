# milvus_sdk/wire/requests.py
# SPDX-License-Identifier: Apache-2.0
"""
Search/query request building and search result splitting.

Search targets travel as a serialized `common_pb2.PlaceholderGroup`. It holds
one placeholder tagged "$0" with one byte string per query:

- float vectors: little-endian float32
- binary, float16 and bfloat16 vectors: the packed row bytes
- sparse vectors: the encoded (uint32, float32) pairs
- int8 vectors: the raw bytes
- texts: UTF-8

Search results come back flattened across queries. `topks[i]` is the number
of hits of query i, and ids, scores and output fields are split in order.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from pymilvus.grpc_gen import common_pb2, schema_pb2

from milvus_sdk.core.status import InvalidArgument, NotSupported
from milvus_sdk.types.arguments import AnnSearchRequest, HybridSearchArguments, QueryArguments, SearchArguments
from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.fields import Field
from milvus_sdk.types.ids import IDArray, PrimaryKey
from milvus_sdk.types.results import SearchResults, SingleResult
from milvus_sdk.wire.marshal import encode_sparse_row, from_wire, ids_from_wire
from milvus_sdk.wire.schema import kv_pairs

__all__ = [
    "PLACEHOLDER_TAG",
    "placeholder_group",
    "search_params",
    "ann_search_params",
    "rank_params",
    "query_params",
    "search_results_from_wire",
    "pk_filter",
    "pk_cursor_filter",
]

PLACEHOLDER_TAG = "$0"

# PlaceholderType enum names in common.proto
_PLACEHOLDER_TYPE_NAMES: Dict[DataType, str] = {
    DataType.FLOAT_VECTOR: "FloatVector",
    DataType.BINARY_VECTOR: "BinaryVector",
    DataType.FLOAT16_VECTOR: "Float16Vector",
    DataType.BFLOAT16_VECTOR: "BFloat16Vector",
    DataType.SPARSE_FLOAT_VECTOR: "SparseFloatVector",
    DataType.INT8_VECTOR: "Int8Vector",
    DataType.VARCHAR: "VarChar",
}


def _placeholder_values(targets: Field) -> List[bytes]:
    data_type = targets.data_type
    if data_type == DataType.FLOAT_VECTOR:
        return [np.asarray(row, dtype="<f4").tobytes() for row in targets.data]
    if data_type in (DataType.BINARY_VECTOR, DataType.FLOAT16_VECTOR, DataType.BFLOAT16_VECTOR):
        return list(targets.data)
    if data_type == DataType.SPARSE_FLOAT_VECTOR:
        return [encode_sparse_row(row) for row in targets.data]
    if data_type == DataType.INT8_VECTOR:
        return [np.asarray(row, dtype=np.int8).tobytes() for row in targets.data]
    if data_type == DataType.VARCHAR:
        return [str(text).encode("utf-8") for text in targets.data]
    raise NotSupported(f"search targets of type {data_type.name} are not supported")


def placeholder_group(targets: Field) -> bytes:
    """Serialize search targets into the placeholder group byte string."""
    try:
        type_name = _PLACEHOLDER_TYPE_NAMES[targets.data_type]
    except KeyError:
        raise NotSupported(f"search targets of type {targets.data_type.name} are not supported") from None
    group = common_pb2.PlaceholderGroup()
    placeholder = group.placeholders.add()
    placeholder.tag = PLACEHOLDER_TAG
    placeholder.type = common_pb2.PlaceholderType.Value(type_name)
    placeholder.values.extend(_placeholder_values(targets))
    return group.SerializeToString()


def search_params(args: SearchArguments) -> List[common_pb2.KeyValuePair]:
    """Top-level search parameters; index-specific ones go into a JSON `params` entry."""
    params: Dict[str, Any] = dict(args.params)
    if args.radius is not None:
        params["radius"] = float(args.radius)
    if args.range_filter is not None:
        params["range_filter"] = float(args.range_filter)

    top: Dict[str, Any] = {}
    if args.anns_field:
        top["anns_field"] = args.anns_field
    top["topk"] = args.limit
    if args.metric_type:
        top["metric_type"] = args.metric_type
    top["round_decimal"] = args.round_decimal
    top["offset"] = args.offset
    top["ignore_growing"] = args.ignore_growing
    top["params"] = json.dumps(params)
    return kv_pairs(top)


def ann_search_params(req: AnnSearchRequest) -> List[common_pb2.KeyValuePair]:
    """Search parameters of one hybrid sub-request."""
    top: Dict[str, Any] = {}
    if req.anns_field:
        top["anns_field"] = req.anns_field
    top["topk"] = req.limit
    if req.metric_type:
        top["metric_type"] = req.metric_type
    top["params"] = json.dumps(dict(req.params))
    return kv_pairs(top)


def rank_params(args: HybridSearchArguments) -> List[common_pb2.KeyValuePair]:
    """Ranker strategy plus the fused `limit`; hybrid search uses "limit", not "topk"."""
    return kv_pairs({
        "strategy": args.ranker.strategy,
        "params": json.dumps(args.ranker.params()),
        "limit": args.limit,
        "offset": args.offset,
        "round_decimal": args.round_decimal,
        "ignore_growing": args.ignore_growing,
    })


def query_params(args: QueryArguments) -> List[common_pb2.KeyValuePair]:
    top: Dict[str, Any] = {}
    if args.limit is not None:
        top["limit"] = args.limit
    if args.offset is not None:
        top["offset"] = args.offset
    return kv_pairs(top)


def search_results_from_wire(data: schema_pb2.SearchResultData) -> SearchResults:
    """Split flattened results into one `SingleResult` per query."""
    topks = list(data.topks)
    if not topks and data.num_queries:
        topks = [data.top_k] * data.num_queries
    total_ids = len(ids_from_wire(data.ids))
    if sum(topks) > total_ids or sum(topks) > len(data.scores):
        raise InvalidArgument(
            f"search result holds {total_ids} ids and {len(data.scores)} scores, topks sum to {sum(topks)}"
        )

    results: List[SingleResult] = []
    offset = 0
    for k in topks:
        results.append(
            SingleResult(
                ids=ids_from_wire(data.ids, offset, k),
                scores=list(data.scores[offset:offset + k]),
                output_fields=[from_wire(fd, offset, k) for fd in data.fields_data],
                primary_key_name=data.primary_field_name,
            )
        )
        offset += k
    return SearchResults(results=results)


def pk_filter(pk_name: str, ids: Sequence[PrimaryKey]) -> str:
    """Filter expression selecting rows by primary key, e.g. `id in [1,2]`."""
    keys = IDArray.of(ids)
    if len(keys) == 0:
        raise InvalidArgument("no primary keys supplied")
    if keys.is_int_array:
        body = ",".join(str(i) for i in keys.int_ids)
    else:
        body = ",".join(json.dumps(s, ensure_ascii=False) for s in keys.str_ids)
    return f"{pk_name} in [{body}]"


def pk_cursor_filter(pk_name: str, cursor: Optional[PrimaryKey], user_filter: str = "") -> str:
    """
    Filter of the next iterator page: rows after `cursor` in primary key order.

        pk_cursor_filter("id", 42, "age > 3")  ->  "(age > 3) and id > 42"
    """
    if cursor is None:
        return user_filter
    bound = json.dumps(cursor, ensure_ascii=False) if isinstance(cursor, str) else str(int(cursor))
    expr = f"{pk_name} > {bound}"
    return f"({user_filter}) and {expr}" if user_filter else expr
