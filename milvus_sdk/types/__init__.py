# milvus_sdk/types/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Typed data model: field containers, ids, schemas and results.
"""

from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.float16 import Float16Variant
from milvus_sdk.types.ids import IDArray
from milvus_sdk.types.fields import (
    Field,
    ScalarField,
    VectorField,
    BoolFieldData,
    Int8FieldData,
    Int16FieldData,
    Int32FieldData,
    Int64FieldData,
    FloatFieldData,
    DoubleFieldData,
    VarCharFieldData,
    JSONFieldData,
    ArrayFieldData,
    FloatVecFieldData,
    BinaryVecFieldData,
    Float16VecFieldData,
    BFloat16VecFieldData,
    Int8VecFieldData,
    SparseFloatVecFieldData,
    StructFieldData,
    make_field,
    pack_bools,
    unpack_bools,
)
from milvus_sdk.types.schema import (
    ConsistencyLevel,
    LoadState,
    IndexState,
    CompactionState,
    CompactionInfo,
    FieldSchema,
    StructFieldSchema,
    CollectionSchema,
    CollectionDesc,
    PartitionInfo,
    IndexDesc,
    RoleDesc,
    UserDesc,
    GrantItem,
)
from milvus_sdk.types.results import DmlResults, SingleResult, SearchResults, QueryResults
from milvus_sdk.types.arguments import (
    SearchArguments,
    QueryArguments,
    AnnSearchRequest,
    RRFRanker,
    WeightedRanker,
    HybridSearchArguments,
)

__all__ = [
    "DataType",
    "Float16Variant",
    "IDArray",
    "Field",
    "ScalarField",
    "VectorField",
    "BoolFieldData",
    "Int8FieldData",
    "Int16FieldData",
    "Int32FieldData",
    "Int64FieldData",
    "FloatFieldData",
    "DoubleFieldData",
    "VarCharFieldData",
    "JSONFieldData",
    "ArrayFieldData",
    "FloatVecFieldData",
    "BinaryVecFieldData",
    "Float16VecFieldData",
    "BFloat16VecFieldData",
    "Int8VecFieldData",
    "SparseFloatVecFieldData",
    "StructFieldData",
    "make_field",
    "pack_bools",
    "unpack_bools",
    "ConsistencyLevel",
    "LoadState",
    "IndexState",
    "CompactionState",
    "CompactionInfo",
    "FieldSchema",
    "StructFieldSchema",
    "CollectionSchema",
    "CollectionDesc",
    "PartitionInfo",
    "IndexDesc",
    "RoleDesc",
    "UserDesc",
    "GrantItem",
    "DmlResults",
    "SingleResult",
    "SearchResults",
    "QueryResults",
    "SearchArguments",
    "QueryArguments",
    "AnnSearchRequest",
    "RRFRanker",
    "WeightedRanker",
    "HybridSearchArguments",
]
