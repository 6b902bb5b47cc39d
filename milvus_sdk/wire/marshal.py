# milvus_sdk/wire/marshal.py
# SPDX-License-Identifier: Apache-2.0
"""
Field data marshaling between typed containers and `schema_pb2.FieldData`.

    wire = to_wire(field)           # Field -> schema_pb2.FieldData
    field = from_wire(wire)         # schema_pb2.FieldData -> Field
    part = from_wire(wire, 3, 2)    # rows [3, 5) only (search result slicing)

Wire layout
-----------
- Scalars are repeated primitives under `scalars.*_data.data`. INT8, INT16
  and INT32 share `int_data`.
- Dense vectors are one flat payload plus `vectors.dim`. Row r covers
  `[r*dim, (r+1)*dim)` elements.
  - Binary vectors: `dim` counts bits, so each row is `dim // 8` bytes.
  - Float16 / bfloat16 vectors: each row is `2*dim` bytes.
  - Int8 vectors: each row is `dim` bytes.
- Sparse vectors: one byte string per row, made of `<uint32 index><float32
  value>` pairs in little-endian order. `dim` is the largest pair count.
- Nullable scalars send only the non-null values, plus a `valid_data` mask.
- Array-of-struct: `struct_arrays.fields` holds one sub-field per struct
  member. Each sub-field carries one array (or vector array) per row.

Every `DataType` has an entry in both dispatch tables. Unknown wire types
raise `NotSupported` instead of being dropped.
"""

from __future__ import annotations

import json
import struct
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
from pymilvus.grpc_gen import schema_pb2

from milvus_sdk.core.status import InvalidArgument, NotSupported
from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.fields import (
    ArrayFieldData,
    BFloat16VecFieldData,
    BinaryVecFieldData,
    BoolFieldData,
    DoubleFieldData,
    Field,
    Float16VecFieldData,
    FloatFieldData,
    FloatVecFieldData,
    Int16FieldData,
    Int32FieldData,
    Int64FieldData,
    Int8FieldData,
    Int8VecFieldData,
    JSONFieldData,
    ScalarField,
    SparseFloatVecFieldData,
    StructFieldData,
    VarCharFieldData,
)
from milvus_sdk.types.ids import IDArray

__all__ = [
    "to_wire",
    "from_wire",
    "fields_to_wire",
    "wire_row_count",
    "encode_sparse_row",
    "decode_sparse_row",
    "ids_to_wire",
    "ids_from_wire",
]

_SPARSE_PAIR = struct.Struct("<If")


# =============================================================================
# Sparse rows
# =============================================================================

def encode_sparse_row(row: Mapping[int, float]) -> bytes:
    """Serialize `{index: value}` as little-endian (uint32, float32) pairs."""
    return b"".join(_SPARSE_PAIR.pack(int(i), float(v)) for i, v in sorted(row.items()))


def decode_sparse_row(data: bytes) -> Dict[int, float]:
    if len(data) % _SPARSE_PAIR.size != 0:
        raise InvalidArgument(f"sparse row length {len(data)} is not a multiple of {_SPARSE_PAIR.size}")
    return {index: value for index, value in _SPARSE_PAIR.iter_unpack(data)}


# =============================================================================
# Scalar helpers
# =============================================================================

# name of the ScalarField member holding each scalar type
_SCALAR_SLOT: Dict[DataType, str] = {
    DataType.BOOL: "bool_data",
    DataType.INT8: "int_data",
    DataType.INT16: "int_data",
    DataType.INT32: "int_data",
    DataType.INT64: "long_data",
    DataType.FLOAT: "float_data",
    DataType.DOUBLE: "double_data",
    DataType.VARCHAR: "string_data",
    DataType.JSON: "json_data",
    DataType.ARRAY: "array_data",
}

_INT_BOUNDS = {
    DataType.INT8: (-(2 ** 7), 2 ** 7 - 1),
    DataType.INT16: (-(2 ** 15), 2 ** 15 - 1),
    DataType.INT32: (-(2 ** 31), 2 ** 31 - 1),
}


def _encode_json(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return json.dumps(value, ensure_ascii=False).encode("utf-8")


def _check_int_width(name: str, data_type: DataType, values: Iterable[int]) -> None:
    low, high = _INT_BOUNDS[data_type]
    for v in values:
        if not low <= v <= high:
            raise InvalidArgument(f"field '{name}': value {v} out of range for {data_type.name}")


def _scalar_array(element_type: DataType, values: Sequence[Any]) -> schema_pb2.ScalarField:
    """One array row (or struct sub-field row) as a ScalarField."""
    scalar = schema_pb2.ScalarField()
    slot = _SCALAR_SLOT[element_type]
    if element_type == DataType.BOOL:
        values = [bool(v) for v in values]
    elif element_type in (DataType.INT8, DataType.INT16, DataType.INT32, DataType.INT64):
        values = [int(v) for v in values]
    elif element_type in (DataType.FLOAT, DataType.DOUBLE):
        values = [float(v) for v in values]
    else:
        values = [str(v) for v in values]
    getattr(scalar, slot).data.extend(values)
    return scalar


def _scalar_array_values(element_type: DataType, scalar: schema_pb2.ScalarField) -> List[Any]:
    return list(getattr(scalar, _SCALAR_SLOT[element_type]).data)


def _non_null(field: ScalarField) -> List[Any]:
    return [v for v in field.data if v is not None]


def _with_nulls(values: List[Any], valid: Sequence[bool]) -> List[Any]:
    """Re-expand values to full length using the validity mask."""
    if not valid:
        return values
    if len(values) == len(valid):
        return [v if ok else None for v, ok in zip(values, valid)]
    it = iter(values)
    return [next(it) if ok else None for ok in valid]


# =============================================================================
# Field -> wire
# =============================================================================

def _scalars_to_wire(field: ScalarField, fd: schema_pb2.FieldData) -> None:
    data_type = field.data_type
    if field.nullable:
        fd.valid_data.extend(field.valid_data())
    values = _non_null(field)
    if data_type == DataType.BOOL:
        values = [bool(v) for v in values]
    elif data_type in _INT_BOUNDS:
        values = [int(v) for v in values]
        _check_int_width(field.name, data_type, values)
    elif data_type == DataType.INT64:
        values = [int(v) for v in values]
    elif data_type in (DataType.FLOAT, DataType.DOUBLE):
        values = [float(v) for v in values]
    elif data_type == DataType.VARCHAR:
        values = [str(v) for v in values]
    elif data_type == DataType.JSON:
        values = [_encode_json(v) for v in values]
    getattr(fd.scalars, _SCALAR_SLOT[data_type]).data.extend(values)


def _array_to_wire(field: ArrayFieldData, fd: schema_pb2.FieldData) -> None:
    if field.nullable:
        fd.valid_data.extend(field.valid_data())
    array = fd.scalars.array_data
    array.element_type = int(field.element_type)
    for row in _non_null(field):
        if field.max_capacity is not None and len(row) > field.max_capacity:
            raise InvalidArgument(
                f"field '{field.name}': array of {len(row)} elements exceeds max_capacity {field.max_capacity}"
            )
        array.data.append(_scalar_array(field.element_type, row))


def _float_vectors_to_wire(field: FloatVecFieldData, fd: schema_pb2.FieldData) -> None:
    fd.vectors.dim = field.dimension()
    fd.vectors.float_vector.data.extend(v for row in field.data for v in row)


def _binary_vectors_to_wire(field: BinaryVecFieldData, fd: schema_pb2.FieldData) -> None:
    fd.vectors.dim = field.dimension()
    fd.vectors.binary_vector = b"".join(field.data)


def _float16_vectors_to_wire(field: Float16VecFieldData, fd: schema_pb2.FieldData) -> None:
    fd.vectors.dim = field.dimension()
    fd.vectors.float16_vector = b"".join(field.data)


def _bfloat16_vectors_to_wire(field: BFloat16VecFieldData, fd: schema_pb2.FieldData) -> None:
    fd.vectors.dim = field.dimension()
    fd.vectors.bfloat16_vector = b"".join(field.data)


def _int8_vectors_to_wire(field: Int8VecFieldData, fd: schema_pb2.FieldData) -> None:
    fd.vectors.dim = field.dimension()
    fd.vectors.int8_vector = np.asarray(field.data, dtype=np.int8).tobytes()


def _sparse_vectors_to_wire(field: SparseFloatVecFieldData, fd: schema_pb2.FieldData) -> None:
    sparse = fd.vectors.sparse_float_vector
    sparse.contents.extend(encode_sparse_row(row) for row in field.data)
    sparse.dim = field.dimension()
    fd.vectors.dim = sparse.dim


def _struct_to_wire(field: StructFieldData, fd: schema_pb2.FieldData) -> None:
    for sub_name, sub_type in field.sub_fields.items():
        sub = fd.struct_arrays.fields.add()
        sub.field_name = sub_name
        if sub_type == DataType.FLOAT_VECTOR:
            sub.type = schema_pb2.DataType.Value("ArrayOfVector")
            vector_array = sub.vectors.vector_array
            vector_array.element_type = int(DataType.FLOAT_VECTOR)
            dim = 0
            for row in field.data:
                vectors = [list(map(float, record[sub_name])) for record in row]
                row_dim = len(vectors[0]) if vectors else dim
                if any(len(v) != row_dim for v in vectors) or (dim and row_dim != dim):
                    raise InvalidArgument(f"struct field '{field.name}': '{sub_name}' vectors differ in dimension")
                dim = row_dim
                vf = vector_array.data.add()
                vf.dim = row_dim
                vf.float_vector.data.extend(x for v in vectors for x in v)
            vector_array.dim = dim
            sub.vectors.dim = dim
        else:
            sub.type = int(DataType.ARRAY)
            array = sub.scalars.array_data
            array.element_type = int(sub_type)
            for row in field.data:
                array.data.append(_scalar_array(sub_type, [record[sub_name] for record in row]))


_TO_WIRE: Dict[DataType, Callable[[Any, schema_pb2.FieldData], None]] = {
    DataType.BOOL: _scalars_to_wire,
    DataType.INT8: _scalars_to_wire,
    DataType.INT16: _scalars_to_wire,
    DataType.INT32: _scalars_to_wire,
    DataType.INT64: _scalars_to_wire,
    DataType.FLOAT: _scalars_to_wire,
    DataType.DOUBLE: _scalars_to_wire,
    DataType.VARCHAR: _scalars_to_wire,
    DataType.JSON: _scalars_to_wire,
    DataType.ARRAY: _array_to_wire,
    DataType.FLOAT_VECTOR: _float_vectors_to_wire,
    DataType.BINARY_VECTOR: _binary_vectors_to_wire,
    DataType.FLOAT16_VECTOR: _float16_vectors_to_wire,
    DataType.BFLOAT16_VECTOR: _bfloat16_vectors_to_wire,
    DataType.INT8_VECTOR: _int8_vectors_to_wire,
    DataType.SPARSE_FLOAT_VECTOR: _sparse_vectors_to_wire,
    DataType.ARRAY_OF_STRUCT: _struct_to_wire,
}


def to_wire(field: Field) -> schema_pb2.FieldData:
    """Convert one typed field into its wire representation."""
    try:
        encoder = _TO_WIRE[field.data_type]
    except KeyError:
        raise NotSupported(f"field '{field.name}': unsupported data type {field.data_type!r}") from None
    fd = schema_pb2.FieldData(type=int(field.data_type), field_name=field.name)
    encoder(field, fd)
    return fd


def fields_to_wire(fields: Sequence[Field], num_rows: Optional[int] = None) -> List[schema_pb2.FieldData]:
    """Marshal several fields that must agree on row count."""
    if not fields:
        raise InvalidArgument("no field data supplied")
    expected = fields[0].count() if num_rows is None else num_rows
    seen = set()
    for f in fields:
        if f.name in seen:
            raise InvalidArgument(f"duplicate field '{f.name}'")
        seen.add(f.name)
        if f.count() != expected:
            raise InvalidArgument(
                f"row count of field '{f.name}' is {f.count()}, expected {expected}"
            )
    if expected == 0:
        raise InvalidArgument("field data has no rows")
    return [to_wire(f) for f in fields]


# =============================================================================
# Wire -> field
# =============================================================================

def _vector_rows(flat: Sequence[Any], dim: int, start: int, end: int) -> List[Any]:
    return [flat[r * dim:(r + 1) * dim] for r in range(start, end)]


def wire_row_count(fd: schema_pb2.FieldData) -> int:
    """Number of logical rows held by a wire field."""
    data_type = DataType(fd.type) if fd.type in _WIRE_TYPES else None
    if fd.valid_data:
        return len(fd.valid_data)
    if data_type is None:
        raise NotSupported(f"field '{fd.field_name}': unsupported wire data type {fd.type}")
    if data_type in _SCALAR_SLOT:
        return len(getattr(fd.scalars, _SCALAR_SLOT[data_type]).data)
    vectors = fd.vectors
    dim = vectors.dim
    if data_type == DataType.FLOAT_VECTOR:
        return len(vectors.float_vector.data) // dim if dim else 0
    if data_type == DataType.BINARY_VECTOR:
        return len(vectors.binary_vector) // (dim // 8) if dim >= 8 else 0
    if data_type == DataType.FLOAT16_VECTOR:
        return len(vectors.float16_vector) // (dim * 2) if dim else 0
    if data_type == DataType.BFLOAT16_VECTOR:
        return len(vectors.bfloat16_vector) // (dim * 2) if dim else 0
    if data_type == DataType.INT8_VECTOR:
        return len(vectors.int8_vector) // dim if dim else 0
    if data_type == DataType.SPARSE_FLOAT_VECTOR:
        return len(vectors.sparse_float_vector.contents)
    # ARRAY_OF_STRUCT: every sub-field holds one entry per row
    if not fd.struct_arrays.fields:
        return 0
    sub = fd.struct_arrays.fields[0]
    if sub.type == int(DataType.ARRAY):
        return len(sub.scalars.array_data.data)
    return len(sub.vectors.vector_array.data)


def _scalars_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    data_type = DataType(fd.type)
    values = list(getattr(fd.scalars, _SCALAR_SLOT[data_type]).data)
    nullable = bool(fd.valid_data)
    values = _with_nulls(values, list(fd.valid_data))[start:end]
    if data_type == DataType.JSON:
        # null rows may carry empty placeholder bytes
        values = [None if v is None else json.loads(v) for v in values]
    cls = _SCALAR_CLASSES[data_type]
    return cls(fd.field_name, values, nullable=nullable)


def _array_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    array = fd.scalars.array_data
    element_type = DataType(array.element_type)
    rows = [_scalar_array_values(element_type, s) for s in array.data]
    nullable = bool(fd.valid_data)
    rows = _with_nulls(rows, list(fd.valid_data))[start:end]
    return ArrayFieldData(fd.field_name, element_type, rows, nullable=nullable)


def _float_vectors_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    flat = list(fd.vectors.float_vector.data)
    return FloatVecFieldData(fd.field_name, _vector_rows(flat, fd.vectors.dim, start, end))


def _binary_vectors_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    width = fd.vectors.dim // 8
    return BinaryVecFieldData(fd.field_name, _vector_rows(fd.vectors.binary_vector, width, start, end))


def _float16_vectors_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    width = fd.vectors.dim * 2
    return Float16VecFieldData(fd.field_name, _vector_rows(fd.vectors.float16_vector, width, start, end))


def _bfloat16_vectors_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    width = fd.vectors.dim * 2
    return BFloat16VecFieldData(fd.field_name, _vector_rows(fd.vectors.bfloat16_vector, width, start, end))


def _int8_vectors_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    flat = np.frombuffer(fd.vectors.int8_vector, dtype=np.int8).tolist()
    return Int8VecFieldData(fd.field_name, _vector_rows(flat, fd.vectors.dim, start, end))


def _sparse_vectors_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    contents = fd.vectors.sparse_float_vector.contents[start:end]
    return SparseFloatVecFieldData(fd.field_name, [decode_sparse_row(row) for row in contents])


def _struct_from_wire(fd: schema_pb2.FieldData, start: int, end: int) -> Field:
    sub_fields: Dict[str, DataType] = {}
    columns: Dict[str, List[List[Any]]] = {}
    for sub in fd.struct_arrays.fields:
        if sub.type == int(DataType.ARRAY):
            element_type = DataType(sub.scalars.array_data.element_type)
            sub_fields[sub.field_name] = element_type
            columns[sub.field_name] = [
                _scalar_array_values(element_type, s) for s in sub.scalars.array_data.data
            ]
        else:
            sub_fields[sub.field_name] = DataType.FLOAT_VECTOR
            columns[sub.field_name] = [
                _vector_rows(list(vf.float_vector.data), vf.dim, 0, len(vf.float_vector.data) // vf.dim)
                if vf.dim else []
                for vf in sub.vectors.vector_array.data
            ]
    rows: List[List[Dict[str, Any]]] = []
    for r in range(start, end):
        width = max((len(col[r]) for col in columns.values()), default=0)
        rows.append([{name: col[r][i] for name, col in columns.items()} for i in range(width)])
    return StructFieldData(fd.field_name, sub_fields, rows)


_SCALAR_CLASSES = {
    DataType.BOOL: BoolFieldData,
    DataType.INT8: Int8FieldData,
    DataType.INT16: Int16FieldData,
    DataType.INT32: Int32FieldData,
    DataType.INT64: Int64FieldData,
    DataType.FLOAT: FloatFieldData,
    DataType.DOUBLE: DoubleFieldData,
    DataType.VARCHAR: VarCharFieldData,
    DataType.JSON: JSONFieldData,
}

_FROM_WIRE: Dict[DataType, Callable[[schema_pb2.FieldData, int, int], Field]] = {
    DataType.BOOL: _scalars_from_wire,
    DataType.INT8: _scalars_from_wire,
    DataType.INT16: _scalars_from_wire,
    DataType.INT32: _scalars_from_wire,
    DataType.INT64: _scalars_from_wire,
    DataType.FLOAT: _scalars_from_wire,
    DataType.DOUBLE: _scalars_from_wire,
    DataType.VARCHAR: _scalars_from_wire,
    DataType.JSON: _scalars_from_wire,
    DataType.ARRAY: _array_from_wire,
    DataType.FLOAT_VECTOR: _float_vectors_from_wire,
    DataType.BINARY_VECTOR: _binary_vectors_from_wire,
    DataType.FLOAT16_VECTOR: _float16_vectors_from_wire,
    DataType.BFLOAT16_VECTOR: _bfloat16_vectors_from_wire,
    DataType.INT8_VECTOR: _int8_vectors_from_wire,
    DataType.SPARSE_FLOAT_VECTOR: _sparse_vectors_from_wire,
    DataType.ARRAY_OF_STRUCT: _struct_from_wire,
}

_WIRE_TYPES = frozenset(int(t) for t in _FROM_WIRE)

for _table in (_TO_WIRE, _FROM_WIRE):
    _missing = set(DataType) - {DataType.NONE} - set(_table)
    if _missing:
        raise RuntimeError(f"marshaling table lacks {sorted(t.name for t in _missing)}")
del _table, _missing


def from_wire(fd: schema_pb2.FieldData, offset: int = 0, count: Optional[int] = None) -> Field:
    """
    Convert a wire field into a typed field.

    `offset`/`count` select a row window (used to split search results per
    query); by default every row is converted.
    """
    if fd.type not in _WIRE_TYPES:
        raise NotSupported(f"field '{fd.field_name}': unsupported wire data type {fd.type}")
    total = wire_row_count(fd)
    end = total if count is None else min(total, offset + count)
    start = min(offset, end)
    return _FROM_WIRE[DataType(fd.type)](fd, start, end)


# =============================================================================
# Primary keys
# =============================================================================

def ids_to_wire(ids: IDArray) -> schema_pb2.IDs:
    out = schema_pb2.IDs()
    if ids.is_int_array:
        out.int_id.data.extend(ids.int_ids)
    else:
        out.str_id.data.extend(ids.str_ids)
    return out


def ids_from_wire(ids: schema_pb2.IDs, offset: int = 0, count: Optional[int] = None) -> IDArray:
    """Integer keys when `int_id` is set, string keys otherwise."""
    if ids.HasField("int_id"):
        values = list(ids.int_id.data)
        end = len(values) if count is None else offset + count
        return IDArray(int_ids=tuple(values[offset:end]))
    values = list(ids.str_id.data)
    end = len(values) if count is None else offset + count
    return IDArray(str_ids=tuple(values[offset:end]))

