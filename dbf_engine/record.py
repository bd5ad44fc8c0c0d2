"""Record value container: typed values per field, deletion flag and row index."""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Union

from .schema import Field, Schema
from .types import Value, coerce_by_kind

Key = Union[int, str]


class Record:
    def __init__(self, schema: Optional[Schema] = None, values: Optional[List[Any]] = None,
                 deleted: bool = False, record_index: int = -1):
        self.schema = schema if schema is not None else Schema()
        self.values: List[Value] = [None] * len(self.schema)
        self.deleted = deleted
        self.record_index = record_index
        if values is not None:
            if len(values) != len(self.schema):
                raise ValueError("Arity mismatch")
            for i, v in enumerate(values):
                self.set_value(i, v)

    def _pos(self, key: Key) -> int:
        if isinstance(key, str):
            return self.schema.index_of(key)
        if key < 0 or key >= len(self.values):
            raise IndexError(f"field index out of range: {key}")
        return key

    def count(self) -> int:
        return len(self.values)

    def field(self, key: Key) -> Field:
        return self.schema[self._pos(key)]

    def value(self, key: Key) -> Value:
        return self.values[self._pos(key)]

    def set_value(self, key: Key, value: Any) -> None:
        i = self._pos(key)
        self.values[i] = coerce_by_kind(value, self.schema[i].kind)

    def clear_values(self) -> None:
        self.values = [None] * len(self.schema)

    def is_deleted(self) -> bool:
        return self.deleted

    def set_deleted(self, deleted: bool) -> None:
        self.deleted = deleted

    def to_dict(self) -> Dict[str, Value]:
        return dict(zip(self.schema.names(), self.values))

    def copy(self) -> "Record":
        r = Record(self.schema, deleted=self.deleted, record_index=self.record_index)
        r.values = list(self.values)
        return r

    def __getitem__(self, key: Key) -> Value:
        return self.value(key)

    def __setitem__(self, key: Key, value: Any) -> None:
        self.set_value(key, value)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return (self.schema == other.schema and self.values == other.values
                and self.deleted == other.deleted)

    def __repr__(self) -> str:
        flag = " deleted" if self.deleted else ""
        return f"Record(#{self.record_index}{flag} {self.to_dict()!r})"
