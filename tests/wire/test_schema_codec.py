# SPDX-License-Identifier: Apache-2.0
"""
Wire: collection schema, index and key/value conversion.
"""

import json

import pytest
from pymilvus.grpc_gen import common_pb2, milvus_pb2, schema_pb2

from milvus_sdk.core.status import InvalidArgument, NotSupported
from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.schema import CollectionSchema, FieldSchema, IndexDesc, IndexState, StructFieldSchema
from milvus_sdk.wire.schema import (
    index_from_wire,
    index_params_to_wire,
    kv_dict,
    kv_pairs,
    schema_from_wire,
    schema_to_wire,
)


def _schema():
    return (
        CollectionSchema(name="docs", description="test docs", enable_dynamic_field=True)
        .add_field(FieldSchema("id", DataType.INT64, is_primary_key=True, auto_id=True))
        .add_field(FieldSchema("title", DataType.VARCHAR, max_length=256, nullable=True))
        .add_field(FieldSchema("tags", DataType.ARRAY, element_type=DataType.INT32, max_capacity=8))
        .add_field(FieldSchema("vec", DataType.FLOAT_VECTOR, dimension=4, type_params={"mmap.enabled": "true"}))
    )


def test_kv_pairs_stringify_values():
    pairs = kv_pairs({"a": 1, "b": True, "c": {"x": [1]}, "d": "s"})
    assert all(isinstance(p, common_pb2.KeyValuePair) for p in pairs)
    assert kv_dict(pairs) == {"a": "1", "b": "true", "c": '{"x": [1]}', "d": "s"}


def test_schema_to_wire_moves_limits_into_type_params():
    pb = schema_to_wire(_schema())
    assert pb.name == "docs"
    assert pb.enable_dynamic_field
    assert pb.autoID
    by_name = {f.name: f for f in pb.fields}
    assert by_name["id"].is_primary_key
    assert by_name["title"].nullable
    assert kv_dict(by_name["title"].type_params) == {"max_length": "256"}
    assert by_name["tags"].element_type == int(DataType.INT32)
    assert kv_dict(by_name["vec"].type_params) == {"mmap.enabled": "true", "dim": "4"}


def test_schema_from_wire_restores_typed_limits():
    back = schema_from_wire(schema_to_wire(_schema()))
    assert back == _schema()
    assert back.primary_field.name == "id"
    assert back.auto_id
    assert [f.name for f in back.vector_fields()] == ["vec"]


def test_schema_without_primary_key_is_rejected():
    schema = CollectionSchema(name="docs").add_field(FieldSchema("vec", DataType.FLOAT_VECTOR, dimension=2))
    with pytest.raises(InvalidArgument):
        schema_to_wire(schema)
    with pytest.raises(InvalidArgument):
        schema_to_wire(CollectionSchema(name="empty"))


def test_schema_duplicate_field_names_are_rejected():
    with pytest.raises(InvalidArgument):
        CollectionSchema().add_field(FieldSchema("a", DataType.INT64)).add_field(FieldSchema("a", DataType.BOOL))


def test_schema_unknown_wire_type_is_not_supported():
    pb = schema_pb2.CollectionSchema(name="docs", fields=[schema_pb2.FieldSchema(name="x", data_type=999)])
    with pytest.raises(NotSupported):
        schema_from_wire(pb)


def test_schema_collection_auto_id_flag_marks_primary_key():
    pb = schema_pb2.CollectionSchema(
        name="docs",
        autoID=True,
        fields=[
            schema_pb2.FieldSchema(name="id", data_type=int(DataType.INT64), is_primary_key=True),
            schema_pb2.FieldSchema(
                name="vec",
                data_type=int(DataType.FLOAT_VECTOR),
                type_params=[common_pb2.KeyValuePair(key="dim", value="2")],
            ),
        ],
    )
    back = schema_from_wire(pb)
    assert back.auto_id
    assert back.primary_field.auto_id
    assert not back.get_field("vec").auto_id


# --------------------------------------------------------------------------- #
# struct fields
# --------------------------------------------------------------------------- #

def _clips():
    return (
        StructFieldSchema("clips", description="video clips", max_capacity=8)
        .add_field(FieldSchema("start", DataType.INT32))
        .add_field(FieldSchema("label", DataType.VARCHAR, max_length=32))
        .add_field(FieldSchema("emb", DataType.FLOAT_VECTOR, dimension=2))
    )


def test_schema_struct_field_travels_as_array_sub_fields():
    schema = _schema().add_struct_field(_clips())
    pb = schema_to_wire(schema)
    assert len(pb.struct_array_fields) == 1
    struct_pb = pb.struct_array_fields[0]
    assert struct_pb.name == "clips"
    subs = {f.name: f for f in struct_pb.fields}
    assert subs["start"].data_type == int(DataType.ARRAY)
    assert subs["start"].element_type == int(DataType.INT32)
    assert kv_dict(subs["start"].type_params) == {"max_capacity": "8"}
    assert kv_dict(subs["label"].type_params) == {"max_length": "32", "max_capacity": "8"}
    assert subs["emb"].data_type == schema_pb2.DataType.Value("ArrayOfVector")
    assert subs["emb"].element_type == int(DataType.FLOAT_VECTOR)
    assert kv_dict(subs["emb"].type_params) == {"dim": "2", "max_capacity": "8"}


def test_schema_struct_field_is_restored_from_wire():
    schema = _schema().add_struct_field(_clips())
    back = schema_from_wire(schema_to_wire(schema))
    assert back == schema
    assert back.struct_fields[0].sub_field_types() == {
        "start": DataType.INT32,
        "label": DataType.VARCHAR,
        "emb": DataType.FLOAT_VECTOR,
    }
    assert back.anns_field_names() == ["vec", "clips[emb]"]


def test_schema_struct_field_declaration_errors():
    with pytest.raises(NotSupported):
        schema_to_wire(_schema().add_field(FieldSchema("clips", DataType.ARRAY_OF_STRUCT)))
    with pytest.raises(NotSupported):
        StructFieldSchema("clips").add_field(FieldSchema("meta", DataType.JSON))
    with pytest.raises(InvalidArgument):
        StructFieldSchema("clips").add_field(FieldSchema("a", DataType.INT32)).add_field(
            FieldSchema("a", DataType.BOOL)
        )
    with pytest.raises(InvalidArgument):
        _schema().add_struct_field(StructFieldSchema("vec"))
    with pytest.raises(InvalidArgument):
        schema_to_wire(_schema().add_struct_field(StructFieldSchema("empty")))


def test_index_params_are_json_encoded():
    index = IndexDesc("vec", index_type="HNSW", metric_type="COSINE", params={"M": 16, "efConstruction": 200})
    kv = kv_dict(index_params_to_wire(index))
    assert kv["index_type"] == "HNSW"
    assert kv["metric_type"] == "COSINE"
    assert json.loads(kv["params"]) == {"M": 16, "efConstruction": 200}


def test_index_from_wire_merges_params_and_state():
    desc = milvus_pb2.IndexDescription(
        index_name="vec_idx",
        indexID=42,
        field_name="vec",
        params=kv_pairs({"index_type": "IVF_FLAT", "metric_type": "L2", "params": '{"nlist": 128}', "mmap.enabled": "true"}),
        state=common_pb2.IndexState.Finished,
        indexed_rows=100,
        total_rows=100,
    )
    index = index_from_wire(desc)
    assert index.index_name == "vec_idx"
    assert index.index_id == 42
    assert index.index_type == "IVF_FLAT"
    assert index.metric_type == "L2"
    assert index.params == {"nlist": 128, "mmap.enabled": True}
    assert index.state == IndexState.FINISHED
    assert (index.indexed_rows, index.total_rows) == (100, 100)
