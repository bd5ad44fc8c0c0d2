from __future__ import annotations
import datetime
from enum import Enum
from typing import Any, Optional, Union

Value = Union[str, datetime.date, float, bool, None]


class ValueKind(Enum):
    TEXT = "TEXT"
    DATE = "DATE"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"


class DbfType(Enum):
    """字段描述符里的类型字节（ASCII）。"""
    CHARACTER = "C"
    DATE = "D"
    FLOATING_POINT = "F"
    NUMBER = "N"
    LOGICAL = "L"
    UNKNOWN = "?"

    @property
    def kind(self) -> ValueKind:
        return _KIND_BY_TYPE[self]

    @classmethod
    def from_byte(cls, b: int) -> "DbfType":
        try:
            return cls(chr(b))
        except ValueError:
            return cls.UNKNOWN

    def to_byte(self) -> int:
        return ord(self.value)


_KIND_BY_TYPE = {
    DbfType.CHARACTER: ValueKind.TEXT,
    DbfType.DATE: ValueKind.DATE,
    DbfType.FLOATING_POINT: ValueKind.NUMBER,
    DbfType.NUMBER: ValueKind.NUMBER,
    DbfType.LOGICAL: ValueKind.BOOLEAN,
    DbfType.UNKNOWN: ValueKind.NULL,
}


def normalize_type(t: Any) -> DbfType:
    if isinstance(t, DbfType):
        return t
    s = (t or "").strip().upper()
    aliases = {
        "TEXT": DbfType.CHARACTER, "STRING": DbfType.CHARACTER, "CHAR": DbfType.CHARACTER,
        "DATE": DbfType.DATE,
        "FLOAT": DbfType.FLOATING_POINT, "DOUBLE": DbfType.FLOATING_POINT,
        "NUMBER": DbfType.NUMBER, "NUMERIC": DbfType.NUMBER, "INT": DbfType.NUMBER,
        "BOOL": DbfType.LOGICAL, "BOOLEAN": DbfType.LOGICAL, "LOGICAL": DbfType.LOGICAL,
    }
    if s in aliases:
        return aliases[s]
    if len(s) == 1 and DbfType.from_byte(ord(s)) is not DbfType.UNKNOWN:
        return DbfType.from_byte(ord(s))
    raise ValueError(f"unknown field type: {t!r}")


def coerce_by_kind(value: Any, kind: ValueKind) -> Value:
    """
    把调用方给的值转换成字段类别对应的值：
      TEXT -> str, DATE -> datetime.date, NUMBER -> float, BOOLEAN -> bool, NULL -> None
    None 始终保持 None（表示空值）。无法转换时抛 ValueError / TypeError。
    """
    if value is None or kind is ValueKind.NULL:
        return None
    if kind is ValueKind.TEXT:
        return str(value)
    if kind is ValueKind.NUMBER:
        if isinstance(value, bool):
            return float(int(value))
        return float(value)
    if kind is ValueKind.BOOLEAN:
        if isinstance(value, str):
            return value.strip().upper() in ("T", "Y", "TRUE", "YES", "1")
        return bool(value)
    if kind is ValueKind.DATE:
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, str):
            return parse_date(value)
        raise TypeError(f"cannot convert {type(value).__name__} to date")
    raise TypeError(f"unsupported kind: {kind}")


def parse_date(s: str) -> Optional[datetime.date]:
    """'YYYYMMDD' 或 'YYYY-MM-DD'；空串返回 None。"""
    s = s.strip()
    if not s:
        return None
    if len(s) == 10 and s[4] == "-" and s[7] == "-":
        s = s.replace("-", "")
    if len(s) != 8 or not s.isdigit():
        raise ValueError(f"bad date literal: {s!r}")
    return datetime.date(int(s[0:4]), int(s[4:6]), int(s[6:8]))
