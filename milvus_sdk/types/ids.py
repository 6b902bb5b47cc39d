# milvus_sdk/types/ids.py
# SPDX-License-Identifier: Apache-2.0
"""Primary-key arrays returned by mutations and searches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

from milvus_sdk.core.status import InvalidArgument

__all__ = ["IDArray", "PrimaryKey"]

PrimaryKey = Union[int, str]


@dataclass(frozen=True)
class IDArray:
    """
    Either integer or string primary keys, never both.

    Attributes:
        int_ids: 64-bit integer keys
        str_ids: VarChar keys
    """

    int_ids: Tuple[int, ...] = ()
    str_ids: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.int_ids and self.str_ids:
            raise InvalidArgument("IDArray holds either integer or string keys, not both")
        object.__setattr__(self, "int_ids", tuple(int(i) for i in self.int_ids))
        object.__setattr__(self, "str_ids", tuple(str(s) for s in self.str_ids))

    @classmethod
    def of(cls, ids: Iterable[PrimaryKey]) -> "IDArray":
        """Build from a homogeneous key sequence; the variant follows the first key."""
        items: List[PrimaryKey] = list(ids)
        if not items:
            return cls()
        if all(isinstance(i, str) for i in items):
            return cls(str_ids=tuple(items))
        if all(isinstance(i, int) and not isinstance(i, bool) for i in items):
            return cls(int_ids=tuple(items))
        raise InvalidArgument("primary keys must be all integers or all strings")

    @property
    def is_int_array(self) -> bool:
        return not self.str_ids

    @property
    def values(self) -> Sequence[PrimaryKey]:
        return self.str_ids if self.str_ids else self.int_ids

    def slice(self, start: int, end: int) -> "IDArray":
        if self.str_ids:
            return IDArray(str_ids=self.str_ids[start:end])
        return IDArray(int_ids=self.int_ids[start:end])

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[PrimaryKey]:
        return iter(self.values)

    def __getitem__(self, index: int) -> PrimaryKey:
        return self.values[index]
