"""
定长记录 <-> Record 的编解码。

记录布局: [删除标记 1B]['*' = 已删除, ' ' = 有效][字段1][字段2]...
字段按 Schema 的 offset/length 切片，编码方式由字段类型决定：
  C  文本，左对齐，空格填充/截断
  D  'YYYYMMDD'
  F/N 定点小数，precision 位小数，右对齐
  L  'T' / 'F'
"""
from __future__ import annotations
import datetime
from typing import Optional

from dbf_engine.record import Record
from dbf_engine.schema import Field, Schema
from dbf_engine.types import DbfType, Value

from .codepage import TextCodec
from .config import END_OF_FILE_MARK
from .errors import SchemaMismatchError

DELETED_MARK = ord("*")
ACTIVE_MARK = ord(" ")


# ---------------- 解码 ----------------

def _decode_date(raw: bytes) -> Optional[datetime.date]:
    try:
        return datetime.date(int(raw[0:4]), int(raw[4:6]), int(raw[6:8]))
    except ValueError:
        return None


def _decode_number(raw: bytes) -> Optional[float]:
    try:
        return float(raw.strip())
    except ValueError:
        return None


def decode_value(raw: bytes, f: Field, codec: TextCodec) -> Value:
    t = f.dbf_type
    if t is DbfType.CHARACTER:
        return codec.decode(raw)
    if t is DbfType.DATE:
        return _decode_date(raw)
    if t in (DbfType.FLOATING_POINT, DbfType.NUMBER):
        return _decode_number(raw)
    if t is DbfType.LOGICAL:
        return raw.strip().upper() in (b"T", b"Y")
    return None


def decode_record(raw: bytes, template: Record, codec: TextCodec) -> Record:
    """按 template 的 schema 把原始字节解析成一条新 Record（不修改 template）。"""
    rec = template.copy()
    rec.deleted = raw[:1] == b"*"
    for i, f in enumerate(rec.schema):
        rec.values[i] = decode_value(raw[f.offset: f.offset + f.length], f, codec)
    return rec


# ---------------- 编码 ----------------

def _fit_left(data: bytes, length: int) -> bytes:
    return data.ljust(length, b" ")[:length]


def _fit_right(data: bytes, length: int) -> bytes:
    return data.rjust(length, b" ")[:length]


def encode_value(value: Value, f: Field, codec: TextCodec) -> bytes:
    t = f.dbf_type
    if t is DbfType.CHARACTER:
        return _fit_left(codec.encode_fit("" if value is None else str(value), f.length), f.length)
    if t is DbfType.DATE:
        # strftime 不保证年份补足 4 位
        text = f"{value.year:04d}{value.month:02d}{value.day:02d}" if isinstance(value, datetime.date) else ""
        return _fit_left(text.encode("ascii"), f.length)
    if t in (DbfType.FLOATING_POINT, DbfType.NUMBER):
        number = 0.0 if value is None else float(value)
        return _fit_right(f"{number:.{f.precision}f}".encode("ascii"), f.length)
    if t is DbfType.LOGICAL:
        return _fit_left(b"T" if value else b"F", f.length)
    return b" " * f.length


def encode_record(record: Record, schema: Schema, codec: TextCodec,
                  add_end_of_file_mark: bool = False) -> bytes:
    """
    把 record 编码成定长字节串。record 的每个字段必须与表的 schema 完全一致
    （名称/类型/长度/精度），否则抛 SchemaMismatchError，不做任何截断或转换。
    """
    if len(record.schema) != len(schema):
        pos = min(len(record.schema), len(schema))
        expected = schema[pos] if pos < len(schema) else None
        actual = record.schema[pos] if pos < len(record.schema) else None
        raise SchemaMismatchError(pos, expected, actual)
    out = bytearray([DELETED_MARK if record.deleted else ACTIVE_MARK])
    for i, f in enumerate(schema):
        if record.schema[i] != f:
            raise SchemaMismatchError(i, f, record.schema[i])
        out += encode_value(record.values[i], f, codec)
    if add_end_of_file_mark:
        out.append(END_OF_FILE_MARK)
    return bytes(out)
