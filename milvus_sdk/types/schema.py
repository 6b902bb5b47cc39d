# milvus_sdk/types/schema.py
# SPDX-License-Identifier: Apache-2.0
"""
Collection, partition and index descriptions.

Plain dataclasses built with keyword arguments; the wire conversion lives
in `milvus_sdk.wire.schema`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from milvus_sdk.core.status import InvalidArgument, NotSupported
from milvus_sdk.types.data_type import ARRAY_ELEMENT_TYPES, DataType, is_vector_type

__all__ = [
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
]


class ConsistencyLevel(enum.IntEnum):
    STRONG = 0
    SESSION = 1
    BOUNDED = 2
    EVENTUALLY = 3
    CUSTOMIZED = 4


class LoadState(enum.IntEnum):
    NOT_EXIST = 0
    NOT_LOAD = 1
    LOADING = 2
    LOADED = 3


class IndexState(enum.IntEnum):
    NONE = 0
    UNISSUED = 1
    IN_PROGRESS = 2
    FINISHED = 3
    FAILED = 4
    RETRY = 5


class CompactionState(enum.IntEnum):
    UNDEFINED = 0
    EXECUTING = 1
    COMPLETED = 2


@dataclass
class FieldSchema:
    """
    One column of a collection.

    Attributes:
        name: Field name
        data_type: Column type
        description: Free text
        is_primary_key: Primary key column (INT64 or VARCHAR)
        auto_id: Server assigns primary keys
        is_partition_key: Column drives partition routing
        is_clustering_key: Column drives clustering compaction
        nullable: Column accepts null values
        element_type: Element type of ARRAY columns
        dimension: Vector dimension (dense vector columns)
        max_length: Max bytes of VARCHAR values
        max_capacity: Max elements of ARRAY values
        type_params: Extra type parameters passed through as strings
    """

    name: str
    data_type: DataType
    description: str = ""
    is_primary_key: bool = False
    auto_id: bool = False
    is_partition_key: bool = False
    is_clustering_key: bool = False
    nullable: bool = False
    element_type: Optional[DataType] = None
    dimension: Optional[int] = None
    max_length: Optional[int] = None
    max_capacity: Optional[int] = None
    type_params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.data_type = DataType(self.data_type)
        if self.element_type is not None:
            self.element_type = DataType(self.element_type)


@dataclass
class StructFieldSchema:
    """
    Array-of-struct column: every row holds up to `max_capacity` records.

    Sub-fields are declared with their element type (a scalar array element
    type or FLOAT_VECTOR); the collection stores each one as an array column.
    """

    name: str
    description: str = ""
    max_capacity: Optional[int] = None
    fields: List[FieldSchema] = field(default_factory=list)

    def add_field(self, field_schema: FieldSchema) -> "StructFieldSchema":
        sub_type = field_schema.data_type
        if sub_type not in ARRAY_ELEMENT_TYPES and sub_type != DataType.FLOAT_VECTOR:
            raise NotSupported(
                f"struct field '{self.name}': unsupported sub-field type {sub_type.name} for '{field_schema.name}'"
            )
        if any(f.name == field_schema.name for f in self.fields):
            raise InvalidArgument(f"struct field '{self.name}': duplicate sub-field name '{field_schema.name}'")
        self.fields.append(field_schema)
        return self

    def sub_field_types(self) -> Dict[str, DataType]:
        return {f.name: f.data_type for f in self.fields}


@dataclass
class CollectionSchema:
    name: str = ""
    description: str = ""
    fields: List[FieldSchema] = field(default_factory=list)
    enable_dynamic_field: bool = False
    struct_fields: List[StructFieldSchema] = field(default_factory=list)

    def _check_unique(self, name: str) -> None:
        if any(f.name == name for f in self.fields) or any(s.name == name for s in self.struct_fields):
            raise InvalidArgument(f"duplicate field name '{name}'")

    def add_field(self, field_schema: FieldSchema) -> "CollectionSchema":
        self._check_unique(field_schema.name)
        self.fields.append(field_schema)
        return self

    def add_struct_field(self, struct_schema: StructFieldSchema) -> "CollectionSchema":
        self._check_unique(struct_schema.name)
        self.struct_fields.append(struct_schema)
        return self

    def get_field(self, name: str) -> Optional[FieldSchema]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def primary_field(self) -> Optional[FieldSchema]:
        for f in self.fields:
            if f.is_primary_key:
                return f
        return None

    @property
    def auto_id(self) -> bool:
        pk = self.primary_field
        return bool(pk and pk.auto_id)

    def vector_fields(self) -> List[FieldSchema]:
        return [f for f in self.fields if is_vector_type(f.data_type)]

    def anns_field_names(self) -> List[str]:
        """Searchable fields; struct vector sub-fields are addressed as `struct[sub]`."""
        names = [f.name for f in self.vector_fields()]
        for s in self.struct_fields:
            names.extend(f"{s.name}[{f.name}]" for f in s.fields if is_vector_type(f.data_type))
        return names


@dataclass
class CollectionDesc:
    schema: CollectionSchema
    collection_id: int = 0
    shards_num: int = 0
    num_partitions: int = 0
    aliases: List[str] = field(default_factory=list)
    created_utc_timestamp: int = 0
    consistency_level: ConsistencyLevel = ConsistencyLevel.BOUNDED
    properties: Dict[str, str] = field(default_factory=dict)


@dataclass
class PartitionInfo:
    name: str
    partition_id: int = 0
    created_utc_timestamp: int = 0
    load_percentage: int = 0

    @property
    def loaded(self) -> bool:
        return self.load_percentage >= 100


@dataclass
class IndexDesc:
    """
    Index definition and, when described by the server, its build state.

    `params` holds index-type parameters (e.g. {"M": 16, "efConstruction": 200}).
    """

    field_name: str
    index_name: str = ""
    index_type: str = ""
    metric_type: str = ""
    params: Dict[str, Any] = field(default_factory=dict)
    index_id: int = 0
    state: IndexState = IndexState.NONE
    fail_reason: str = ""
    indexed_rows: int = 0
    total_rows: int = 0
    pending_index_rows: int = 0


@dataclass
class RoleDesc:
    name: str
    users: List[str] = field(default_factory=list)


@dataclass
class UserDesc:
    name: str
    roles: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class GrantItem:
    """One privilege granted to a role on an object."""

    role_name: str
    object_type: str
    object_name: str
    privilege: str
    db_name: str = ""


@dataclass
class CompactionInfo:
    """Plan counters of one compaction job."""

    compaction_id: int
    state: CompactionState = CompactionState.UNDEFINED
    executing_plans: int = 0
    completed_plans: int = 0
    failed_plans: int = 0
    timeout_plans: int = 0

    @property
    def completed(self) -> bool:
        return self.state == CompactionState.COMPLETED
