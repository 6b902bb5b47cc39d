# milvus_sdk/types/results.py
# SPDX-License-Identifier: Apache-2.0
"""Typed results of mutation and query calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from milvus_sdk.types.fields import Field
from milvus_sdk.types.ids import IDArray

__all__ = ["DmlResults", "SingleResult", "SearchResults", "QueryResults", "rows_from_fields"]


def rows_from_fields(fields: List[Field]) -> List[Dict[str, Any]]:
    """Pivot columns into per-row dicts."""
    count = max((f.count() for f in fields), default=0)
    return [{f.name: f.data[i] for f in fields if i < f.count()} for i in range(count)]


@dataclass(frozen=True)
class DmlResults:
    """
    Attributes:
        ids: Primary keys written (or deleted, when returned by the server)
        timestamp: Server timestamp of the mutation
        insert_count / upsert_count / delete_count: Server-reported counts
    """
    ids: IDArray = field(default_factory=IDArray)
    timestamp: int = 0
    insert_count: int = 0
    upsert_count: int = 0
    delete_count: int = 0


@dataclass
class SingleResult:
    """Hits of one query vector, best first."""

    ids: IDArray
    scores: List[float]
    output_fields: List[Field] = field(default_factory=list)
    primary_key_name: str = ""

    def __len__(self) -> int:
        return len(self.ids)

    def output_field(self, name: str) -> Optional[Field]:
        for f in self.output_fields:
            if f.name == name:
                return f
        return None

    def rows(self) -> List[Dict[str, Any]]:
        out = rows_from_fields(self.output_fields)
        out += [{} for _ in range(len(self.ids) - len(out))]
        for i, row in enumerate(out):
            row[self.primary_key_name or "id"] = self.ids[i]
            row["score"] = self.scores[i]
        return out


@dataclass
class SearchResults:
    results: List[SingleResult] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[SingleResult]:
        return iter(self.results)

    def __getitem__(self, index: int) -> SingleResult:
        return self.results[index]


@dataclass
class QueryResults:
    output_fields: List[Field] = field(default_factory=list)

    def output_field(self, name: str) -> Optional[Field]:
        for f in self.output_fields:
            if f.name == name:
                return f
        return None

    def count(self) -> int:
        return max((f.count() for f in self.output_fields), default=0)

    def rows(self) -> List[Dict[str, Any]]:
        return rows_from_fields(self.output_fields)
