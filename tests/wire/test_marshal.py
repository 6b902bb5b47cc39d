# SPDX-License-Identifier: Apache-2.0
"""
Wire: field data marshaling.

Fields are converted to `schema_pb2.FieldData` and back; a few cases build
the wire message by hand to pin the layout the server sends.
"""

import struct

import pytest
from pymilvus.grpc_gen import schema_pb2

from milvus_sdk.core.status import InvalidArgument, NotSupported
from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.fields import (
    FIELD_CLASSES,
    ArrayFieldData,
    BFloat16VecFieldData,
    BinaryVecFieldData,
    BoolFieldData,
    DoubleFieldData,
    Float16VecFieldData,
    FloatFieldData,
    FloatVecFieldData,
    Int8FieldData,
    Int8VecFieldData,
    Int16FieldData,
    Int32FieldData,
    Int64FieldData,
    JSONFieldData,
    SparseFloatVecFieldData,
    StructFieldData,
    VarCharFieldData,
)
from milvus_sdk.types.ids import IDArray
from milvus_sdk.wire.marshal import (
    decode_sparse_row,
    encode_sparse_row,
    fields_to_wire,
    from_wire,
    ids_from_wire,
    ids_to_wire,
    to_wire,
    wire_row_count,
)


# --------------------------------------------------------------------------- #
# dense vectors
# --------------------------------------------------------------------------- #

def test_marshal_float_vectors_are_flattened_with_dim():
    fd = to_wire(FloatVecFieldData("vec", [[1, 2, 3], [4, 5, 6]]))
    assert fd.type == int(DataType.FLOAT_VECTOR)
    assert fd.field_name == "vec"
    assert fd.vectors.dim == 3
    assert list(fd.vectors.float_vector.data) == [1, 2, 3, 4, 5, 6]


def test_marshal_flat_vector_payload_is_sliced_by_dim():
    fd = schema_pb2.FieldData(type=int(DataType.FLOAT_VECTOR), field_name="vec")
    fd.vectors.dim = 3
    fd.vectors.float_vector.data.extend([1, 2, 3, 4, 5, 6])
    field = from_wire(fd)
    assert isinstance(field, FloatVecFieldData)
    assert field.data == [[1, 2, 3], [4, 5, 6]]
    assert from_wire(fd, 1, 1).data == [[4, 5, 6]]


def test_marshal_binary_vector_dim_counts_bits():
    fd = to_wire(BinaryVecFieldData("bits", [b"\x0d\x01", b"\xff\x00"]))
    assert fd.vectors.dim == 16
    assert fd.vectors.binary_vector == b"\x0d\x01\xff\x00"
    assert wire_row_count(fd) == 2
    assert from_wire(fd, 1).data == [b"\xff\x00"]


def test_marshal_float16_rows_are_two_bytes_per_element():
    original = Float16VecFieldData.from_floats("half", [[1.0, 0.5], [-2.0, 0.0]])
    fd = to_wire(original)
    assert fd.vectors.dim == 2
    assert len(fd.vectors.float16_vector) == 8
    assert from_wire(fd) == original


def test_marshal_int8_vectors_travel_as_raw_bytes():
    fd = to_wire(Int8VecFieldData("q", [[1, -1], [127, -128]]))
    assert fd.vectors.int8_vector == b"\x01\xff\x7f\x80"
    assert from_wire(fd).data == [[1, -1], [127, -128]]


# --------------------------------------------------------------------------- #
# sparse
# --------------------------------------------------------------------------- #

def test_marshal_sparse_row_encoding_is_little_endian_pairs():
    assert encode_sparse_row({3: 0.5, 1: 2.0}) == struct.pack("<IfIf", 1, 2.0, 3, 0.5)
    assert decode_sparse_row(struct.pack("<If", 7, 0.25)) == {7: 0.25}
    with pytest.raises(InvalidArgument):
        decode_sparse_row(b"\x00\x00\x00")


def test_marshal_sparse_dim_is_largest_row():
    field = SparseFloatVecFieldData("sp", [{1: 0.5}, {}, {2: 1.0, 9: 0.25}])
    fd = to_wire(field)
    assert fd.vectors.sparse_float_vector.dim == 2
    assert len(fd.vectors.sparse_float_vector.contents) == 3
    assert from_wire(fd).data == [{1: 0.5}, {}, {2: 1.0, 9: 0.25}]


# --------------------------------------------------------------------------- #
# scalars
# --------------------------------------------------------------------------- #

def test_marshal_nullable_scalars_send_only_valid_values():
    fd = to_wire(Int64FieldData("n", [1, None, 3], nullable=True))
    assert list(fd.valid_data) == [True, False, True]
    assert list(fd.scalars.long_data.data) == [1, 3]
    back = from_wire(fd)
    assert back.nullable
    assert back.data == [1, None, 3]


def test_marshal_full_length_nullable_payload_is_masked():
    # some servers send a placeholder value for null rows
    fd = schema_pb2.FieldData(type=int(DataType.VARCHAR), field_name="s")
    fd.valid_data.extend([True, False])
    fd.scalars.string_data.data.extend(["a", ""])
    assert from_wire(fd).data == ["a", None]


def test_marshal_full_length_nullable_json_skips_placeholder_bytes():
    fd = schema_pb2.FieldData(type=int(DataType.JSON), field_name="meta")
    fd.valid_data.extend([True, False, True])
    fd.scalars.json_data.data.extend([b'{"a": 1}', b"", b"[2]"])
    assert from_wire(fd).data == [{"a": 1}, None, [2]]


def test_marshal_small_ints_share_int_data_and_are_range_checked():
    fd = to_wire(Int8FieldData("tiny", [1, -2]))
    assert list(fd.scalars.int_data.data) == [1, -2]
    with pytest.raises(InvalidArgument):
        to_wire(Int8FieldData("tiny", [300]))


def test_marshal_json_values_are_encoded_as_utf8():
    fd = to_wire(JSONFieldData("meta", [{"k": "é"}, [1, 2]]))
    assert fd.scalars.json_data.data[0] == '{"k": "é"}'.encode("utf-8")
    assert from_wire(fd).data == [{"k": "é"}, [1, 2]]


def test_marshal_array_rows_and_capacity():
    field = ArrayFieldData("tags", DataType.VARCHAR, [["a", "b"], []])
    fd = to_wire(field)
    assert fd.scalars.array_data.element_type == int(DataType.VARCHAR)
    assert [list(s.string_data.data) for s in fd.scalars.array_data.data] == [["a", "b"], []]
    assert from_wire(fd) == field

    with pytest.raises(InvalidArgument):
        to_wire(ArrayFieldData("tags", DataType.INT32, [[1, 2, 3]], max_capacity=2))


# --------------------------------------------------------------------------- #
# struct
# --------------------------------------------------------------------------- #

def test_marshal_struct_rows_become_one_sub_field_per_member():
    field = StructFieldData(
        "clips",
        {"start": DataType.INT32, "emb": DataType.FLOAT_VECTOR},
        [
            [{"start": 0, "emb": [0.5, 0.25]}, {"start": 5, "emb": [1.0, 2.0]}],
            [],
            [{"start": 9, "emb": [0.0, -1.0]}],
        ],
    )
    fd = to_wire(field)
    subs = {sub.field_name: sub for sub in fd.struct_arrays.fields}
    assert list(subs) == ["start", "emb"]
    assert [list(s.int_data.data) for s in subs["start"].scalars.array_data.data] == [[0, 5], [], [9]]
    assert subs["emb"].vectors.dim == 2
    assert wire_row_count(fd) == 3

    back = from_wire(fd)
    assert back.sub_fields == {"start": DataType.INT32, "emb": DataType.FLOAT_VECTOR}
    assert back == field


def test_marshal_struct_vectors_must_share_dimension():
    field = StructFieldData(
        "clips",
        {"emb": DataType.FLOAT_VECTOR},
        [[{"emb": [1.0, 2.0]}], [{"emb": [1.0]}]],
    )
    with pytest.raises(InvalidArgument):
        to_wire(field)


# --------------------------------------------------------------------------- #
# every container type
# --------------------------------------------------------------------------- #

_SAMPLES = {
    DataType.BOOL: lambda: BoolFieldData("f", [True, False]),
    DataType.INT8: lambda: Int8FieldData("f", [1, -2]),
    DataType.INT16: lambda: Int16FieldData("f", [300, -300]),
    DataType.INT32: lambda: Int32FieldData("f", [70000, 0]),
    DataType.INT64: lambda: Int64FieldData("f", [2 ** 40, -1]),
    DataType.FLOAT: lambda: FloatFieldData("f", [0.5, -1.25]),
    DataType.DOUBLE: lambda: DoubleFieldData("f", [0.1, 2.5]),
    DataType.VARCHAR: lambda: VarCharFieldData("f", ["a", "é"]),
    DataType.JSON: lambda: JSONFieldData("f", [{"k": 1}, [1, 2]]),
    DataType.ARRAY: lambda: ArrayFieldData("f", DataType.INT64, [[1, 2], []]),
    DataType.FLOAT_VECTOR: lambda: FloatVecFieldData("f", [[0.5, 1.0], [-2.0, 0.0]]),
    DataType.BINARY_VECTOR: lambda: BinaryVecFieldData("f", [b"\x01", b"\xff"]),
    DataType.FLOAT16_VECTOR: lambda: Float16VecFieldData.from_floats("f", [[1.0, -2.0], [0.5, 0.0]]),
    DataType.BFLOAT16_VECTOR: lambda: BFloat16VecFieldData.from_floats("f", [[1.0, -2.0], [0.5, 0.0]]),
    DataType.INT8_VECTOR: lambda: Int8VecFieldData("f", [[1, -1], [127, -128]]),
    DataType.SPARSE_FLOAT_VECTOR: lambda: SparseFloatVecFieldData("f", [{1: 0.5, 7: 2.0}, {}]),
    DataType.ARRAY_OF_STRUCT: lambda: StructFieldData(
        "f",
        {"start": DataType.INT32, "emb": DataType.FLOAT_VECTOR},
        [[{"start": 1, "emb": [0.5, 0.25]}], [{"start": 2, "emb": [1.0, 2.0]}]],
    ),
}


@pytest.mark.parametrize("data_type", sorted(FIELD_CLASSES), ids=lambda t: t.name)
def test_marshal_every_field_type_survives_the_wire(data_type):
    field = _SAMPLES[data_type]()
    assert type(field) is FIELD_CLASSES[data_type]
    back = from_wire(to_wire(field))
    assert type(back) is FIELD_CLASSES[data_type]
    assert back == field


def test_marshal_public_names_are_exported_by_the_wire_package():
    import milvus_sdk.wire as wire
    import milvus_sdk.wire.marshal as marshal

    assert all(hasattr(marshal, name) for name in marshal.__all__)
    assert set(marshal.__all__) <= set(wire.__all__)


# --------------------------------------------------------------------------- #
# batches / errors / ids
# --------------------------------------------------------------------------- #

def test_marshal_unknown_wire_type_is_not_silently_dropped():
    fd = schema_pb2.FieldData(type=int(DataType.NONE), field_name="mystery")
    with pytest.raises(NotSupported):
        from_wire(fd)


def test_marshal_fields_must_agree_on_row_count():
    ids = Int64FieldData("id", [1, 2])
    vec = FloatVecFieldData("vec", [[0.5, 0.5]])
    with pytest.raises(InvalidArgument, match="row count"):
        fields_to_wire([ids, vec])
    with pytest.raises(InvalidArgument, match="duplicate"):
        fields_to_wire([ids, Int64FieldData("id", [3, 4])])
    with pytest.raises(InvalidArgument):
        fields_to_wire([])
    with pytest.raises(InvalidArgument):
        fields_to_wire([Int64FieldData("id")])

    wires = fields_to_wire([ids, VarCharFieldData("title", ["a", "b"])])
    assert [w.field_name for w in wires] == ["id", "title"]


def test_marshal_ids_keep_their_variant_and_window():
    wire = ids_to_wire(IDArray(int_ids=(5, 6, 7)))
    assert wire.HasField("int_id")
    assert ids_from_wire(wire, 1, 2) == IDArray(int_ids=(6, 7))

    strs = ids_from_wire(ids_to_wire(IDArray(str_ids=("a", "b"))))
    assert strs == IDArray(str_ids=("a", "b"))
