# milvus_sdk/types/data_type.py
# SPDX-License-Identifier: Apache-2.0
"""Field data types, numbered as on the wire (`schema_pb2.DataType`)."""

from __future__ import annotations

import enum

__all__ = [
    "DataType",
    "is_vector_type",
    "is_dense_vector_type",
    "is_integer_type",
    "SCALAR_TYPES",
    "VECTOR_TYPES",
    "ARRAY_ELEMENT_TYPES",
]


class DataType(enum.IntEnum):
    NONE = 0
    BOOL = 1
    INT8 = 2
    INT16 = 3
    INT32 = 4
    INT64 = 5
    FLOAT = 10
    DOUBLE = 11
    VARCHAR = 21
    ARRAY = 22
    JSON = 23
    BINARY_VECTOR = 100
    FLOAT_VECTOR = 101
    FLOAT16_VECTOR = 102
    BFLOAT16_VECTOR = 103
    SPARSE_FLOAT_VECTOR = 104
    INT8_VECTOR = 105
    ARRAY_OF_STRUCT = 200


SCALAR_TYPES = frozenset({
    DataType.BOOL,
    DataType.INT8,
    DataType.INT16,
    DataType.INT32,
    DataType.INT64,
    DataType.FLOAT,
    DataType.DOUBLE,
    DataType.VARCHAR,
    DataType.ARRAY,
    DataType.JSON,
})

VECTOR_TYPES = frozenset({
    DataType.BINARY_VECTOR,
    DataType.FLOAT_VECTOR,
    DataType.FLOAT16_VECTOR,
    DataType.BFLOAT16_VECTOR,
    DataType.SPARSE_FLOAT_VECTOR,
    DataType.INT8_VECTOR,
})

# element types allowed inside ARRAY fields and struct sub-fields
ARRAY_ELEMENT_TYPES = frozenset({
    DataType.BOOL,
    DataType.INT8,
    DataType.INT16,
    DataType.INT32,
    DataType.INT64,
    DataType.FLOAT,
    DataType.DOUBLE,
    DataType.VARCHAR,
})


def is_vector_type(data_type: DataType) -> bool:
    return data_type in VECTOR_TYPES


def is_dense_vector_type(data_type: DataType) -> bool:
    """Vector types whose rows must share one dimension."""
    return data_type in VECTOR_TYPES and data_type != DataType.SPARSE_FLOAT_VECTOR


def is_integer_type(data_type: DataType) -> bool:
    return data_type in (DataType.INT8, DataType.INT16, DataType.INT32, DataType.INT64)
