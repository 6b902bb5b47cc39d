# milvus_sdk/types/arguments.py
# SPDX-License-Identifier: Apache-2.0
"""
Search and query arguments.

Both are plain dataclasses with keyword construction. `validate()` returns a
`Status` and never touches the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from milvus_sdk.core.status import Status, StatusCode
from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.fields import (
    Field,
    FloatVecFieldData,
    SparseFloatVecFieldData,
    VarCharFieldData,
)
from milvus_sdk.types.schema import ConsistencyLevel

__all__ = [
    "SearchArguments",
    "QueryArguments",
    "AnnSearchRequest",
    "RRFRanker",
    "WeightedRanker",
    "HybridSearchArguments",
]

_SEARCH_TARGET_TYPES = frozenset({
    DataType.FLOAT_VECTOR,
    DataType.BINARY_VECTOR,
    DataType.FLOAT16_VECTOR,
    DataType.BFLOAT16_VECTOR,
    DataType.INT8_VECTOR,
    DataType.SPARSE_FLOAT_VECTOR,
    DataType.VARCHAR,
})


@dataclass
class SearchArguments:
    """
    One ANN search request.

    Attributes:
        collection_name: Target collection
        anns_field: Vector field to search (may be empty when the collection has one)
        targets: Query vectors as a typed field (one row per query);
            a VARCHAR field carries raw texts for server-side embedding functions
        limit: Top-k hits per query
        filter: Boolean filter expression
        output_fields: Fields to return with each hit
        partition_names: Restrict to partitions
        metric_type: Override the index metric
        params: Index-specific search parameters (nprobe, ef, ...)
        radius / range_filter: Range search bounds
        round_decimal: Score rounding (-1 keeps full precision)
        offset: Skip this many hits per query
        ignore_growing: Skip growing segments
        consistency_level: Per-request consistency (None uses the collection default)
        guarantee_timestamp: Explicit guarantee timestamp
        db_name: Database override (empty uses the session database)
    """

    collection_name: str
    targets: Field
    anns_field: str = ""
    limit: int = 10
    filter: str = ""
    output_fields: List[str] = field(default_factory=list)
    partition_names: List[str] = field(default_factory=list)
    metric_type: str = ""
    params: Dict[str, Any] = field(default_factory=dict)
    radius: Optional[float] = None
    range_filter: Optional[float] = None
    round_decimal: int = -1
    offset: int = 0
    ignore_growing: bool = False
    consistency_level: Optional[ConsistencyLevel] = None
    guarantee_timestamp: int = 0
    db_name: str = ""

    @classmethod
    def with_float_vectors(cls, collection_name: str, vectors: List[List[float]], **kwargs: Any) -> "SearchArguments":
        return cls(collection_name=collection_name, targets=FloatVecFieldData("", vectors), **kwargs)

    @classmethod
    def with_sparse_vectors(cls, collection_name: str, vectors: List[Dict[int, float]], **kwargs: Any) -> "SearchArguments":
        return cls(collection_name=collection_name, targets=SparseFloatVecFieldData("", vectors), **kwargs)

    @classmethod
    def with_texts(cls, collection_name: str, texts: List[str], **kwargs: Any) -> "SearchArguments":
        return cls(collection_name=collection_name, targets=VarCharFieldData("", texts), **kwargs)

    @property
    def nq(self) -> int:
        return self.targets.count()

    def validate(self) -> Status:
        if not self.collection_name:
            return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
        if self.targets.data_type not in _SEARCH_TARGET_TYPES:
            return Status.error(
                StatusCode.INVALID_ARGUMENT,
                f"search target type {self.targets.data_type.name} is not searchable",
            )
        if self.targets.count() == 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, "no target vector is assigned")
        if self.limit <= 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"limit must be positive, got {self.limit}")
        if self.offset < 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"offset must be >= 0, got {self.offset}")
        if self.range_filter is not None and self.radius is None:
            return Status.error(StatusCode.INVALID_ARGUMENT, "range_filter requires radius")
        return Status.success()


@dataclass
class QueryArguments:
    """
    Scalar query by filter expression.

    Attributes:
        collection_name: Target collection
        filter: Boolean filter expression (required unless `limit` is set)
        output_fields: Fields to return ("*" for all)
        partition_names: Restrict to partitions
        limit / offset: Pagination
        consistency_level: Per-request consistency (None uses the collection default)
        db_name: Database override
    """

    collection_name: str
    filter: str = ""
    output_fields: List[str] = field(default_factory=list)
    partition_names: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    consistency_level: Optional[ConsistencyLevel] = None
    guarantee_timestamp: int = 0
    db_name: str = ""

    def validate(self) -> Status:
        if not self.collection_name:
            return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
        if not self.filter and self.limit is None:
            return Status.error(StatusCode.INVALID_ARGUMENT, "query requires a filter or a limit")
        if self.limit is not None and self.limit <= 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"limit must be positive, got {self.limit}")
        if self.offset is not None and self.offset < 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"offset must be >= 0, got {self.offset}")
        return Status.success()


# =============================================================================
# Hybrid search
# =============================================================================

@dataclass
class AnnSearchRequest:
    """
    One vector field search inside a hybrid search.

    Every sub-request must carry the same number of target rows; the server
    fuses their hits per query with the ranker.
    """

    anns_field: str
    targets: Field
    limit: int = 10
    filter: str = ""
    metric_type: str = ""
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def with_float_vectors(cls, anns_field: str, vectors: List[List[float]], **kwargs: Any) -> "AnnSearchRequest":
        return cls(anns_field=anns_field, targets=FloatVecFieldData("", vectors), **kwargs)

    @classmethod
    def with_sparse_vectors(cls, anns_field: str, vectors: List[Dict[int, float]], **kwargs: Any) -> "AnnSearchRequest":
        return cls(anns_field=anns_field, targets=SparseFloatVecFieldData("", vectors), **kwargs)

    def validate(self) -> Status:
        if self.targets.data_type not in _SEARCH_TARGET_TYPES:
            return Status.error(
                StatusCode.INVALID_ARGUMENT,
                f"search target type {self.targets.data_type.name} is not searchable",
            )
        if self.targets.count() == 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, "no target vector is assigned")
        if self.limit <= 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"limit must be positive, got {self.limit}")
        return Status.success()


@dataclass(frozen=True)
class RRFRanker:
    """Reciprocal rank fusion: score = sum(1 / (k + rank))."""

    k: int = 60

    strategy = "rrf"

    def params(self) -> Dict[str, Any]:
        return {"k": self.k}


@dataclass(frozen=True)
class WeightedRanker:
    """Weighted score fusion; one weight per sub-request, in order."""

    weights: Sequence[float] = ()

    strategy = "weighted"

    def params(self) -> Dict[str, Any]:
        return {"weights": [float(w) for w in self.weights]}


@dataclass
class HybridSearchArguments:
    """
    Multi-vector search fused by a ranker.

    Attributes:
        collection_name: Target collection
        requests: One `AnnSearchRequest` per vector field
        ranker: `RRFRanker` or `WeightedRanker`
        limit: Fused hits per query
        offset / round_decimal / ignore_growing: As in `SearchArguments`
        output_fields, partition_names, consistency_level,
        guarantee_timestamp, db_name: As in `SearchArguments`
    """

    collection_name: str
    requests: List[AnnSearchRequest] = field(default_factory=list)
    ranker: Union[RRFRanker, WeightedRanker] = field(default_factory=RRFRanker)
    limit: int = 10
    offset: int = 0
    round_decimal: int = -1
    ignore_growing: bool = False
    output_fields: List[str] = field(default_factory=list)
    partition_names: List[str] = field(default_factory=list)
    consistency_level: Optional[ConsistencyLevel] = None
    guarantee_timestamp: int = 0
    db_name: str = ""

    def validate(self) -> Status:
        if not self.collection_name:
            return Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty")
        if not self.requests:
            return Status.error(StatusCode.INVALID_ARGUMENT, "hybrid search requires at least one sub-request")
        for req in self.requests:
            status = req.validate()
            if not status.ok:
                return status
        if len({req.targets.count() for req in self.requests}) > 1:
            return Status.error(StatusCode.INVALID_ARGUMENT, "sub-requests must carry the same number of targets")
        if isinstance(self.ranker, WeightedRanker) and len(self.ranker.weights) != len(self.requests):
            return Status.error(
                StatusCode.INVALID_ARGUMENT,
                f"weighted ranker has {len(self.ranker.weights)} weights for {len(self.requests)} sub-requests",
            )
        if self.limit <= 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"limit must be positive, got {self.limit}")
        if self.offset < 0:
            return Status.error(StatusCode.INVALID_ARGUMENT, f"offset must be >= 0, got {self.offset}")
        return Status.success()
