# milvus_sdk/wire/schema.py
# SPDX-License-Identifier: Apache-2.0
"""Schema, index and key/value conversion to and from protobuf messages."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping

from pymilvus.grpc_gen import common_pb2, schema_pb2

from milvus_sdk.core.status import InvalidArgument, NotSupported
from milvus_sdk.types.data_type import DataType, is_vector_type
from milvus_sdk.types.schema import (
    CollectionSchema,
    FieldSchema,
    IndexDesc,
    IndexState,
    StructFieldSchema,
)

__all__ = [
    "kv_pairs",
    "kv_dict",
    "schema_to_wire",
    "schema_from_wire",
    "index_params_to_wire",
    "index_from_wire",
]

_DIM = "dim"
_MAX_LENGTH = "max_length"
_MAX_CAPACITY = "max_capacity"
_INDEX_TYPE = "index_type"
_METRIC_TYPE = "metric_type"
_PARAMS = "params"

# schema_pb2.DataType of struct sub-fields holding one vector list per row
_ARRAY_OF_VECTOR = schema_pb2.DataType.Value("ArrayOfVector")


def kv_pairs(mapping: Mapping[str, Any]) -> List[common_pb2.KeyValuePair]:
    """Mapping -> KeyValuePair list; non-string values become strings (dicts as JSON)."""
    out = []
    for key, value in mapping.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        elif isinstance(value, bool):
            value = "true" if value else "false"
        out.append(common_pb2.KeyValuePair(key=str(key), value=str(value)))
    return out


def kv_dict(pairs: Iterable[common_pb2.KeyValuePair]) -> Dict[str, str]:
    return {p.key: p.value for p in pairs}


# =============================================================================
# Collection schema
# =============================================================================

def _field_to_wire(f: FieldSchema) -> schema_pb2.FieldSchema:
    if f.data_type == DataType.ARRAY_OF_STRUCT:
        raise NotSupported(f"field '{f.name}': declare array-of-struct columns with StructFieldSchema")
    if f.data_type == DataType.NONE:
        raise NotSupported(f"field '{f.name}': NONE cannot be declared in a collection schema")
    params: Dict[str, Any] = dict(f.type_params)
    if f.dimension is not None:
        params[_DIM] = f.dimension
    if f.max_length is not None:
        params[_MAX_LENGTH] = f.max_length
    if f.max_capacity is not None:
        params[_MAX_CAPACITY] = f.max_capacity
    out = schema_pb2.FieldSchema(
        name=f.name,
        description=f.description,
        data_type=int(f.data_type),
        is_primary_key=f.is_primary_key,
        autoID=f.auto_id,
        is_partition_key=f.is_partition_key,
        is_clustering_key=f.is_clustering_key,
        nullable=f.nullable,
        type_params=kv_pairs(params),
    )
    if f.element_type is not None:
        out.element_type = int(f.element_type)
    return out


def _struct_sub_to_wire(s: StructFieldSchema, f: FieldSchema) -> schema_pb2.FieldSchema:
    out = _field_to_wire(f)
    out.element_type = int(f.data_type)
    out.data_type = _ARRAY_OF_VECTOR if is_vector_type(f.data_type) else int(DataType.ARRAY)
    if s.max_capacity is not None:
        out.type_params.append(common_pb2.KeyValuePair(key=_MAX_CAPACITY, value=str(s.max_capacity)))
    return out


def _struct_to_wire(s: StructFieldSchema) -> schema_pb2.StructArrayFieldSchema:
    if not s.fields:
        raise InvalidArgument(f"struct field '{s.name}' has no sub-fields")
    return schema_pb2.StructArrayFieldSchema(
        name=s.name,
        description=s.description,
        fields=[_struct_sub_to_wire(s, f) for f in s.fields],
    )


def schema_to_wire(schema: CollectionSchema) -> schema_pb2.CollectionSchema:
    if not schema.fields:
        raise InvalidArgument(f"collection '{schema.name}' schema has no fields")
    if schema.primary_field is None:
        raise InvalidArgument(f"collection '{schema.name}' schema has no primary key field")
    return schema_pb2.CollectionSchema(
        name=schema.name,
        description=schema.description,
        autoID=schema.auto_id,
        enable_dynamic_field=schema.enable_dynamic_field,
        fields=[_field_to_wire(f) for f in schema.fields],
        struct_array_fields=[_struct_to_wire(s) for s in schema.struct_fields],
    )


def _field_from_wire(f: schema_pb2.FieldSchema) -> FieldSchema:
    try:
        data_type = DataType(f.data_type)
    except ValueError:
        raise NotSupported(f"field '{f.name}': unsupported data type {f.data_type}") from None
    params = kv_dict(f.type_params)
    dimension = params.pop(_DIM, None)
    max_length = params.pop(_MAX_LENGTH, None)
    max_capacity = params.pop(_MAX_CAPACITY, None)
    element_type = None
    if data_type == DataType.ARRAY:
        element_type = DataType(f.element_type)
    return FieldSchema(
        name=f.name,
        data_type=data_type,
        description=f.description,
        is_primary_key=f.is_primary_key,
        auto_id=f.autoID,
        is_partition_key=f.is_partition_key,
        is_clustering_key=f.is_clustering_key,
        nullable=f.nullable,
        element_type=element_type,
        dimension=int(dimension) if dimension is not None else None,
        max_length=int(max_length) if max_length is not None else None,
        max_capacity=int(max_capacity) if max_capacity is not None else None,
        type_params=params,
    )


def _struct_from_wire(pb: schema_pb2.StructArrayFieldSchema) -> StructFieldSchema:
    out = StructFieldSchema(name=pb.name, description=pb.description)
    for f in pb.fields:
        try:
            element_type = DataType(f.element_type)
        except ValueError:
            raise NotSupported(f"struct field '{pb.name}': unsupported sub-field type {f.element_type}") from None
        params = kv_dict(f.type_params)
        dimension = params.pop(_DIM, None)
        max_length = params.pop(_MAX_LENGTH, None)
        max_capacity = params.pop(_MAX_CAPACITY, None)
        if max_capacity is not None:
            out.max_capacity = int(max_capacity)
        out.add_field(FieldSchema(
            name=f.name,
            data_type=element_type,
            description=f.description,
            nullable=f.nullable,
            dimension=int(dimension) if dimension is not None else None,
            max_length=int(max_length) if max_length is not None else None,
            type_params=params,
        ))
    return out


def schema_from_wire(pb: schema_pb2.CollectionSchema) -> CollectionSchema:
    schema = CollectionSchema(
        name=pb.name,
        description=pb.description,
        enable_dynamic_field=pb.enable_dynamic_field,
        fields=[_field_from_wire(f) for f in pb.fields],
        struct_fields=[_struct_from_wire(s) for s in pb.struct_array_fields],
    )
    # older servers only flag auto id on the collection
    pk = schema.primary_field
    if pb.autoID and pk is not None:
        pk.auto_id = True
    return schema


# =============================================================================
# Index
# =============================================================================

def index_params_to_wire(index: IndexDesc) -> List[common_pb2.KeyValuePair]:
    """`index_type`, `metric_type` and the type parameters as one JSON `params` entry."""
    extra: Dict[str, Any] = {}
    if index.index_type:
        extra[_INDEX_TYPE] = index.index_type
    if index.metric_type:
        extra[_METRIC_TYPE] = index.metric_type
    extra[_PARAMS] = json.dumps(index.params)
    return kv_pairs(extra)


def _parse_param(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return value


def index_from_wire(desc: Any) -> IndexDesc:
    """Build an `IndexDesc` from a `milvus_pb2.IndexDescription`."""
    params = kv_dict(desc.params)
    index_type = params.pop(_INDEX_TYPE, "")
    metric_type = params.pop(_METRIC_TYPE, "")
    merged: Dict[str, Any] = {}
    raw = params.pop(_PARAMS, None)
    if raw:
        parsed = _parse_param(raw)
        if isinstance(parsed, dict):
            merged.update(parsed)
    merged.update({k: _parse_param(v) for k, v in params.items()})
    try:
        state = IndexState(desc.state)
    except ValueError:
        state = IndexState.NONE
    return IndexDesc(
        field_name=desc.field_name,
        index_name=desc.index_name,
        index_type=index_type,
        metric_type=metric_type,
        params=merged,
        index_id=desc.indexID,
        state=state,
        fail_reason=desc.index_state_fail_reason,
        indexed_rows=desc.indexed_rows,
        total_rows=desc.total_rows,
        pending_index_rows=desc.pending_index_rows,
    )
