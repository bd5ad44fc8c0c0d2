"""Field descriptors and the ordered field schema of a table."""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Union

from .types import DbfType, ValueKind

# 每条记录第 0 字节是删除标记，字段从偏移 1 开始
FIRST_FIELD_OFFSET = 1


@dataclass(frozen=True)
class Field:
    name: str
    dbf_type: DbfType
    length: int
    precision: int = 0
    # 记录内偏移由 Schema 计算，不参与相等比较
    offset: int = field(default=0, compare=False)

    @property
    def kind(self) -> ValueKind:
        return self.dbf_type.kind


@dataclass
class Schema:
    fields: List[Field] = field(default_factory=list)

    @classmethod
    def from_fields(cls, fields) -> "Schema":
        """按顺序累计计算每个字段的 offset（从 1 开始）。"""
        out: List[Field] = []
        offset = FIRST_FIELD_OFFSET
        for f in fields:
            out.append(replace(f, offset=offset))
            offset += f.length
        return cls(out)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __getitem__(self, key: Union[int, str]) -> Field:
        if isinstance(key, str):
            return self.fields[self.index_of(key)]
        return self.fields[key]

    def index_of(self, name: str) -> int:
        for i, c in enumerate(self.fields):
            if c.name == name:
                return i
        # 名称大小写不敏感的回退（DBF 字段名通常是大写）
        upper = name.upper()
        for i, c in enumerate(self.fields):
            if c.name.upper() == upper:
                return i
        raise KeyError(name)

    def names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def record_length(self) -> int:
        return FIRST_FIELD_OFFSET + sum(f.length for f in self.fields)
