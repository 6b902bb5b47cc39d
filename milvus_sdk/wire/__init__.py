# milvus_sdk/wire/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Conversion between the typed model and pymilvus protobuf messages.
"""

from milvus_sdk.wire.marshal import (
    to_wire,
    from_wire,
    fields_to_wire,
    wire_row_count,
    encode_sparse_row,
    decode_sparse_row,
    ids_to_wire,
    ids_from_wire,
)
from milvus_sdk.wire.schema import (
    kv_pairs,
    kv_dict,
    schema_to_wire,
    schema_from_wire,
    index_params_to_wire,
    index_from_wire,
)
from milvus_sdk.wire.requests import (
    placeholder_group,
    search_params,
    ann_search_params,
    rank_params,
    query_params,
    search_results_from_wire,
    pk_filter,
    pk_cursor_filter,
)

__all__ = [
    "to_wire",
    "from_wire",
    "fields_to_wire",
    "wire_row_count",
    "encode_sparse_row",
    "decode_sparse_row",
    "ids_to_wire",
    "ids_from_wire",
    "kv_pairs",
    "kv_dict",
    "schema_to_wire",
    "schema_from_wire",
    "index_params_to_wire",
    "index_from_wire",
    "placeholder_group",
    "search_params",
    "ann_search_params",
    "rank_params",
    "query_params",
    "search_results_from_wire",
    "pk_filter",
    "pk_cursor_filter",
]
