# milvus_sdk/types/fields.py
# SPDX-License-Identifier: Apache-2.0
"""
Typed field containers: one named, homogeneous column per field.

Every container exposes the same small surface:

    field.name          -> str
    field.data_type     -> DataType
    field.count()       -> number of rows
    field.add(element)  -> StatusCode
    field.data          -> mutable backing list
    field.view()        -> immutable tuple of rows

`add` never raises for bad input; it returns a `StatusCode` and leaves the
field unchanged on failure. Scalar containers accept any element. Dense
vector containers reject empty rows (`VECTOR_IS_EMPTY`) and rows whose
dimension differs from the first stored row (`DIMENSION_NOT_EQUAL`).

Binary, float16 and bfloat16 vectors keep one packed `bytes` object per row.
The helpers `add_bools` / `add_floats` pack raw input on the way in, and
`to_bools` / `to_floats` unpack on demand.

Constructors that receive initial rows raise the matching `MilvusError`
subclass if any row is rejected.
"""

from __future__ import annotations

import math
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
)

from milvus_sdk.core.status import (
    InvalidArgument,
    NotSupported,
    StatusCode,
    error_for_code,
)
from milvus_sdk.types import float16
from milvus_sdk.types.data_type import ARRAY_ELEMENT_TYPES, DataType

__all__ = [
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
    "FIELD_CLASSES",
    "make_field",
    "pack_bools",
    "unpack_bools",
]

SPARSE_MAX_INDEX = 2 ** 32 - 2


# =============================================================================
# Bit packing
# =============================================================================

def pack_bools(bits: Sequence[bool]) -> bytes:
    """Pack booleans LSB-first: element i lands in bit i % 8 of byte i // 8."""
    out = bytearray((len(bits) + 7) // 8)
    for i, bit in enumerate(bits):
        if bit:
            out[i // 8] |= 1 << (i % 8)
    return bytes(out)


def unpack_bools(data: bytes, dim: Optional[int] = None) -> List[bool]:
    """Inverse of `pack_bools`; `dim` trims padding bits of the last byte."""
    bits = [bool(byte >> shift & 1) for byte in data for shift in range(8)]
    return bits if dim is None else bits[:dim]


# =============================================================================
# Base containers
# =============================================================================

class Field:
    """Named homogeneous column; subclasses fix the element type."""

    data_type: ClassVar[DataType] = DataType.NONE
    is_vector: ClassVar[bool] = False

    def __init__(self, name: str, data: Optional[Iterable[Any]] = None) -> None:
        self._name = name
        self._data: List[Any] = []
        if data is not None:
            self._add_all(data)

    def _add_all(self, data: Iterable[Any]) -> None:
        for element in data:
            code = self.add(element)
            if code != StatusCode.OK:
                raise error_for_code(code)(
                    f"field '{self._name}': row {len(self._data)} rejected ({code.name})"
                )

    @property
    def name(self) -> str:
        return self._name

    @property
    def data(self) -> List[Any]:
        return self._data

    def view(self) -> Tuple[Any, ...]:
        return tuple(self._data)

    def count(self) -> int:
        return len(self._data)

    def add(self, element: Any) -> StatusCode:
        raise NotImplementedError

    def extend(self, elements: Iterable[Any]) -> StatusCode:
        """Add several rows; on failure no row of this batch is kept."""
        mark = len(self._data)
        for element in elements:
            code = self.add(element)
            if code != StatusCode.OK:
                del self._data[mark:]
                return code
        return StatusCode.OK

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return NotImplemented
        return (
            type(self) is type(other)
            and self._name == other._name
            and self.data_type == other.data_type
            and self._data == other._data
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, count={len(self._data)})"


class ScalarField(Field):
    """Scalar column; every non-null element is accepted."""

    def __init__(
        self,
        name: str,
        data: Optional[Iterable[Any]] = None,
        *,
        nullable: bool = False,
    ) -> None:
        self._nullable = nullable
        super().__init__(name, data)

    @property
    def nullable(self) -> bool:
        return self._nullable

    def add(self, element: Any) -> StatusCode:
        if element is None:
            if not self._nullable:
                return StatusCode.INVALID_ARGUMENT
            self._data.append(None)
            return StatusCode.OK
        self._data.append(self._coerce(element))
        return StatusCode.OK

    def _coerce(self, element: Any) -> Any:
        return element

    def valid_data(self) -> List[bool]:
        return [element is not None for element in self._data]


class VectorField(Field):
    """Dense vector column: non-empty rows of one shared dimension."""

    is_vector = True

    def add(self, element: Any) -> StatusCode:
        row = self._normalize(element)
        if row is None:
            return StatusCode.INVALID_ARGUMENT
        dim = self._row_dim(row)
        if dim == 0:
            return StatusCode.VECTOR_IS_EMPTY
        if self._data and dim != self._row_dim(self._data[0]):
            return StatusCode.DIMENSION_NOT_EQUAL
        self._data.append(row)
        return StatusCode.OK

    def dimension(self) -> int:
        """Dimension of the stored rows; undefined for an empty field."""
        if not self._data:
            raise InvalidArgument(f"vector field '{self._name}' is empty; dimension is undefined")
        return self._row_dim(self._data[0])

    def _normalize(self, element: Any) -> Optional[Any]:
        raise NotImplementedError

    def _row_dim(self, row: Any) -> int:
        return len(row)


# =============================================================================
# Scalars
# =============================================================================

class BoolFieldData(ScalarField):
    data_type = DataType.BOOL


class Int8FieldData(ScalarField):
    data_type = DataType.INT8


class Int16FieldData(ScalarField):
    data_type = DataType.INT16


class Int32FieldData(ScalarField):
    data_type = DataType.INT32


class Int64FieldData(ScalarField):
    data_type = DataType.INT64


class FloatFieldData(ScalarField):
    data_type = DataType.FLOAT


class DoubleFieldData(ScalarField):
    data_type = DataType.DOUBLE


class VarCharFieldData(ScalarField):
    data_type = DataType.VARCHAR


class JSONFieldData(ScalarField):
    """Rows are JSON-serializable values (usually dicts)."""
    data_type = DataType.JSON


class ArrayFieldData(ScalarField):
    """Rows are lists of one scalar element type."""

    data_type = DataType.ARRAY

    def __init__(
        self,
        name: str,
        element_type: DataType,
        data: Optional[Iterable[Any]] = None,
        *,
        max_capacity: Optional[int] = None,
        nullable: bool = False,
    ) -> None:
        element_type = DataType(element_type)
        if element_type not in ARRAY_ELEMENT_TYPES:
            raise NotSupported(f"array field '{name}': unsupported element type {element_type.name}")
        self._element_type = element_type
        self._max_capacity = max_capacity
        super().__init__(name, data, nullable=nullable)

    @property
    def element_type(self) -> DataType:
        return self._element_type

    @property
    def max_capacity(self) -> Optional[int]:
        return self._max_capacity

    def _coerce(self, element: Any) -> Any:
        return list(element)

    def __eq__(self, other: object) -> bool:
        result = super().__eq__(other)
        if result is True:
            return self._element_type == other.element_type  # type: ignore[union-attr]
        return result


# =============================================================================
# Vectors
# =============================================================================

class FloatVecFieldData(VectorField):
    data_type = DataType.FLOAT_VECTOR

    def _normalize(self, element: Any) -> Optional[List[float]]:
        try:
            return [float(x) for x in element]
        except (TypeError, ValueError):
            return None


class BinaryVecFieldData(VectorField):
    """Rows are packed bytes; dimension is counted in bits."""

    data_type = DataType.BINARY_VECTOR

    def _normalize(self, element: Any) -> Optional[bytes]:
        if isinstance(element, (bytes, bytearray, memoryview)):
            return bytes(element)
        return None

    def _row_dim(self, row: bytes) -> int:
        return len(row) * 8

    def add_bools(self, bits: Sequence[bool]) -> StatusCode:
        return self.add(pack_bools(bits))

    def to_bools(self, index: int) -> List[bool]:
        return unpack_bools(self._data[index])

    @classmethod
    def from_bools(cls, name: str, rows: Iterable[Sequence[bool]]) -> "BinaryVecFieldData":
        return cls(name, [pack_bools(bits) for bits in rows])


class _HalfVecFieldData(VectorField):
    """Rows are packed 16-bit floats; dimension is the element count."""

    variant: ClassVar[float16.Float16Variant]

    def _normalize(self, element: Any) -> Optional[bytes]:
        if isinstance(element, (bytes, bytearray, memoryview)):
            row = bytes(element)
            return row if len(row) % 2 == 0 else None
        return None

    def _row_dim(self, row: bytes) -> int:
        return len(row) // 2

    def add_floats(self, values: Iterable[float]) -> StatusCode:
        return self.add(float16.encode(values, self.variant))

    def to_floats(self, index: int) -> List[float]:
        return float16.decode(self._data[index], self.variant)

    @classmethod
    def from_floats(cls, name: str, rows: Iterable[Iterable[float]]):
        return cls(name, [float16.encode(values, cls.variant) for values in rows])


class Float16VecFieldData(_HalfVecFieldData):
    data_type = DataType.FLOAT16_VECTOR
    variant = float16.Float16Variant.FLOAT16


class BFloat16VecFieldData(_HalfVecFieldData):
    data_type = DataType.BFLOAT16_VECTOR
    variant = float16.Float16Variant.BFLOAT16


class Int8VecFieldData(VectorField):
    data_type = DataType.INT8_VECTOR

    def _normalize(self, element: Any) -> Optional[List[int]]:
        if isinstance(element, (bytes, bytearray, memoryview)):
            return [b - 256 if b > 127 else b for b in bytes(element)]
        try:
            row = [int(x) for x in element]
        except (TypeError, ValueError):
            return None
        if any(x < -128 or x > 127 for x in row):
            return None
        return row


class SparseFloatVecFieldData(Field):
    """
    Rows are `{index: value}` mappings (or `(index, value)` pairs).

    Rows may be empty and may differ in length; indices must fit uint32
    and values must not be NaN.
    """

    data_type = DataType.SPARSE_FLOAT_VECTOR
    is_vector = True

    def add(self, element: Any) -> StatusCode:
        pairs = element.items() if isinstance(element, Mapping) else element
        row: Dict[int, float] = {}
        try:
            for index, value in pairs:
                index, value = int(index), float(value)
                if not 0 <= index <= SPARSE_MAX_INDEX or math.isnan(value):
                    return StatusCode.INVALID_ARGUMENT
                row[index] = value
        except (TypeError, ValueError):
            return StatusCode.INVALID_ARGUMENT
        self._data.append(dict(sorted(row.items())))
        return StatusCode.OK

    def dimension(self) -> int:
        """Largest number of pairs in one row."""
        return max((len(row) for row in self._data), default=0)


class StructFieldData(Field):
    """
    Array-of-struct column.

    Each row is a list of sub-records; each sub-record maps every declared
    sub-field name to a value. Sub-fields are scalar element types or
    FLOAT_VECTOR.
    """

    data_type = DataType.ARRAY_OF_STRUCT

    def __init__(
        self,
        name: str,
        sub_fields: Mapping[str, DataType],
        data: Optional[Iterable[Any]] = None,
        *,
        max_capacity: Optional[int] = None,
    ) -> None:
        self._sub_fields: Dict[str, DataType] = {}
        for sub_name, sub_type in sub_fields.items():
            sub_type = DataType(sub_type)
            if sub_type not in ARRAY_ELEMENT_TYPES and sub_type != DataType.FLOAT_VECTOR:
                raise NotSupported(
                    f"struct field '{name}': unsupported sub-field type {sub_type.name} for '{sub_name}'"
                )
            self._sub_fields[sub_name] = sub_type
        self._max_capacity = max_capacity
        super().__init__(name, data)

    @property
    def sub_fields(self) -> Mapping[str, DataType]:
        return dict(self._sub_fields)

    @property
    def max_capacity(self) -> Optional[int]:
        return self._max_capacity

    def add(self, element: Any) -> StatusCode:
        if not isinstance(element, (list, tuple)):
            return StatusCode.INVALID_ARGUMENT
        row: List[Dict[str, Any]] = []
        for record in element:
            if not isinstance(record, Mapping) or set(record) != set(self._sub_fields):
                return StatusCode.INVALID_ARGUMENT
            row.append(dict(record))
        self._data.append(row)
        return StatusCode.OK


# =============================================================================
# Factory
# =============================================================================

FIELD_CLASSES: Dict[DataType, Type[Field]] = {
    DataType.BOOL: BoolFieldData,
    DataType.INT8: Int8FieldData,
    DataType.INT16: Int16FieldData,
    DataType.INT32: Int32FieldData,
    DataType.INT64: Int64FieldData,
    DataType.FLOAT: FloatFieldData,
    DataType.DOUBLE: DoubleFieldData,
    DataType.VARCHAR: VarCharFieldData,
    DataType.JSON: JSONFieldData,
    DataType.ARRAY: ArrayFieldData,
    DataType.FLOAT_VECTOR: FloatVecFieldData,
    DataType.BINARY_VECTOR: BinaryVecFieldData,
    DataType.FLOAT16_VECTOR: Float16VecFieldData,
    DataType.BFLOAT16_VECTOR: BFloat16VecFieldData,
    DataType.INT8_VECTOR: Int8VecFieldData,
    DataType.SPARSE_FLOAT_VECTOR: SparseFloatVecFieldData,
    DataType.ARRAY_OF_STRUCT: StructFieldData,
}

_missing = set(DataType) - {DataType.NONE} - set(FIELD_CLASSES)
if _missing:
    raise RuntimeError(f"no field container for {sorted(t.name for t in _missing)}")
del _missing


def make_field(name: str, data_type: DataType, data: Optional[Iterable[Any]] = None, **kwargs: Any) -> Field:
    """Create the container for `data_type` (extra kwargs go to the class)."""
    try:
        cls = FIELD_CLASSES[DataType(data_type)]
    except (KeyError, ValueError):
        raise NotSupported(f"field '{name}': unsupported data type {data_type!r}") from None
    return cls(name, data=data, **kwargs)
