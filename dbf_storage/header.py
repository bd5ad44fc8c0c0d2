# header.py
from __future__ import annotations
import datetime
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dbf_engine.schema import Field, Schema
from dbf_engine.types import DbfType

from . import config
from .codepage import Codepage, TextCodec
from .errors import UnrecognizedFormatError

# ---------------- 表描述符（文件头前 32 字节）的二进制布局 ----------------
#   version(B) | yy mm dd(3B) | records_count(uint32) | header_length(uint16)
#   | record_length(uint16) | reserved(17) | codepage(B) | reserved(2)
# 含义：
#   - version:        版本号，决定表类型（普通表 / 带 DBC 的表）
#   - yy mm dd:       最后修改日期（年份 - 1900）
#   - records_count:  记录条数（包含已逻辑删除的记录）
#   - header_length:  记录区起始偏移
#   - record_length:  单条记录长度（含 1 字节删除标记）
#   - codepage:       语言驱动 / 代码页字节
_DESC_FMT = "<BBBBIHH17xB2x"
_DESC_SIZE = struct.calcsize(_DESC_FMT)
assert _DESC_SIZE == config.TABLE_DESCRIPTOR_LENGTH

# 字段描述符格式: name(11s) | type(c) | reserved(4) | length(B) | precision(B) | reserved(14)
_FIELD_FMT = "<11sc4xBB14x"
_FIELD_SIZE = struct.calcsize(_FIELD_FMT)
assert _FIELD_SIZE == config.FIELD_DESCRIPTOR_LENGTH

_COUNT_FMT = "<I"


class TableType(Enum):
    SIMPLE_TABLE = "simple"
    TABLE_WITH_DBC = "dbc"


_TYPE_BY_VERSION = {
    2: TableType.SIMPLE_TABLE,
    3: TableType.SIMPLE_TABLE,
    4: TableType.SIMPLE_TABLE,
    5: TableType.SIMPLE_TABLE,
    7: TableType.SIMPLE_TABLE,
    48: TableType.TABLE_WITH_DBC,
    49: TableType.TABLE_WITH_DBC,
}

_BYTE_BY_CODEPAGE = {
    Codepage.NOT_SET: 0,
    Codepage.IBM866: 101,
    Codepage.WINDOWS1251: 201,
}


@dataclass
class TableDescriptor:
    """
    内存中的表描述符。读文件时由 unpack_from 解析；新建表时 pack 写出。
    注意：已打开的表只会局部改写 records_count / codepage 字节，不会整体回写。
    """
    version: int
    records_count: int
    header_length: int
    record_length: int
    codepage_byte: int = 0
    year: int = 0
    month: int = 0
    day: int = 0

    @property
    def table_type(self) -> TableType:
        return _TYPE_BY_VERSION[self.version]

    def pack(self) -> bytes:
        return struct.pack(_DESC_FMT, self.version, self.year, self.month, self.day,
                           self.records_count, self.header_length, self.record_length,
                           self.codepage_byte)

    @classmethod
    def unpack_from(cls, data: bytes) -> "TableDescriptor":
        version, yy, mm, dd, count, hlen, rlen, cp = struct.unpack_from(_DESC_FMT, data, 0)
        return cls(version, count, hlen, rlen, cp, yy, mm, dd)


def parse_descriptor(data: bytes) -> TableDescriptor:
    """解析并校验前 32 字节；版本号未知或长度不足抛 UnrecognizedFormatError。"""
    if len(data) < _DESC_SIZE:
        raise UnrecognizedFormatError(f"truncated table descriptor: {len(data)} bytes")
    desc = TableDescriptor.unpack_from(data)
    if desc.version not in _TYPE_BY_VERSION:
        raise UnrecognizedFormatError(f"unknown version byte: {desc.version}")
    return desc


def field_descriptors_length(desc: TableDescriptor) -> int:
    n = desc.header_length - config.TABLE_DESCRIPTOR_LENGTH - config.TERMINATOR_LENGTH
    if desc.table_type is TableType.TABLE_WITH_DBC:
        n -= config.DBC_LENGTH
    if n < 0:
        raise UnrecognizedFormatError(f"header length too small: {desc.header_length}")
    return n


def parse_fields(data: bytes, codec: TextCodec) -> Schema:
    """
    把字段描述符区切成 32 字节一段，逐个解析：
      - 名字取前 11 字节，跳过 NUL，再按当前编码解码
      - 类型字节映射为 DbfType，未知类型为 UNKNOWN
    多余的不足 32 字节的尾巴被忽略。
    """
    fields = []
    for i in range(len(data) // _FIELD_SIZE):
        raw_name, type_byte, length, precision = struct.unpack_from(_FIELD_FMT, data, i * _FIELD_SIZE)
        name = codec.decode(raw_name.replace(b"\x00", b""))
        fields.append(Field(name, DbfType.from_byte(type_byte[0]), length, precision))
    return Schema.from_fields(fields)


def pack_field(f: Field, codec: TextCodec) -> bytes:
    """字段名至多 10 字节（第 11 字节留给 NUL），长度/精度各占 1 字节。"""
    name = codec.encode(f.name)
    if not name or len(name) > config.FIELD_NAME_LENGTH - 1:
        raise ValueError(f"field name must be 1..{config.FIELD_NAME_LENGTH - 1} bytes: {f.name!r}")
    for what, n in (("length", f.length), ("precision", f.precision)):
        if not 0 <= n <= 0xFF:
            raise ValueError(f"field {f.name!r}: {what} {n} out of range 0..255")
    type_byte = b" " if f.dbf_type is DbfType.UNKNOWN else bytes([f.dbf_type.to_byte()])
    return struct.pack(_FIELD_FMT, name, type_byte, f.length, f.precision)


def codepage_byte_for(codepage: Codepage) -> int:
    try:
        return _BYTE_BY_CODEPAGE[codepage]
    except KeyError:
        raise ValueError(f"codepage cannot be written: {codepage}") from None


def records_count_bytes(count: int) -> bytes:
    return struct.pack(_COUNT_FMT, count)


def header_length_for(fields_count: int, table_type: TableType) -> int:
    n = config.TABLE_DESCRIPTOR_LENGTH + fields_count * config.FIELD_DESCRIPTOR_LENGTH + config.TERMINATOR_LENGTH
    if table_type is TableType.TABLE_WITH_DBC:
        n += config.DBC_LENGTH
    return n


def build_header(schema: Schema, codec: TextCodec, codepage: Codepage = Codepage.NOT_SET,
                 table_type: TableType = TableType.SIMPLE_TABLE, version: Optional[int] = None,
                 today: Optional[datetime.date] = None) -> bytes:
    """
    生成一张空表的完整文件头：
      [描述符 32B][字段描述符 N×32B][终止符 0x0D][DBC 区 263B（仅 DBC 表）]
    """
    if version is None:
        version = config.DEFAULT_DBC_VERSION if table_type is TableType.TABLE_WITH_DBC else config.DEFAULT_VERSION
    if _TYPE_BY_VERSION.get(version) is not table_type:
        raise ValueError(f"version {version} does not describe a {table_type.value} table")
    header_length = header_length_for(len(schema), table_type)
    if schema.record_length > 0xFFFF or header_length > 0xFFFF:
        raise ValueError(f"table too wide: record length {schema.record_length}, "
                         f"header length {header_length} (limit 65535)")
    today = today or datetime.date.today()
    desc = TableDescriptor(
        version=version,
        records_count=0,
        header_length=header_length,
        record_length=schema.record_length,
        codepage_byte=codepage_byte_for(codepage),
        year=today.year - 1900, month=today.month, day=today.day,
    )
    out = bytearray(desc.pack())
    for f in schema:
        out += pack_field(f, codec)
    out.append(config.HEADER_TERMINATOR)
    if table_type is TableType.TABLE_WITH_DBC:
        out += bytes(config.DBC_LENGTH)
    assert len(out) == desc.header_length
    return bytes(out)
