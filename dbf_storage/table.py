# table.py
from __future__ import annotations

import io
import logging
from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Tuple, Union

from dbf_engine.record import Record
from dbf_engine.schema import Field, Schema
from dbf_engine.types import Value

from . import config
from .codepage import Codepage, TextCodec, codec_for, resolve_codepage
from .errors import DbfError, SchemaMismatchError, TableError, UnrecognizedFormatError
from .header import (
    TableType,
    build_header,
    codepage_byte_for,
    field_descriptors_length,
    parse_descriptor,
    parse_fields,
    records_count_bytes,
)
from .record_codec import DELETED_MARK, decode_record, encode_record

logger = logging.getLogger(__name__)


class OpenMode(Enum):
    READ_ONLY = "r"
    READ_WRITE = "rw"


class DbfTable:
    """
    单个 DBF 表文件的读写引擎：
      - 打开文件、解析表描述符与字段描述符、确定代码页
      - 游标：seek/first/last/next/previous，位置范围 [-1, size-1]，越界一律夹紧
      - record(): 惰性读取并解码当前位置的记录（单槽缓存）
      - append/update/remove_at/set_codepage: 直接改写文件字节
    文件布局：
      - [0, header_length): 文件头（描述符 + 字段描述符 + 终止符 [+ DBC 区]）
      - header_length + record_length * i: 第 i 条记录
      - 末尾 0x1A（追加时写入）
    错误不抛异常：失败的调用返回 False（或模板记录），原因通过 error() 查询。
    """

    BEFORE_FIRST_ROW = -1
    FIRST_ROW = 0

    def __init__(self, file_name: Optional[str] = None):
        self._file_name = file_name
        self._f: Optional[io.FileIO] = None
        self._open_mode = OpenMode.READ_ONLY
        self._error = TableError.NO_ERROR
        self._reset()

    def _reset(self) -> None:
        self._type = TableType.SIMPLE_TABLE
        self._codepage = Codepage.NOT_SET
        self._codec: TextCodec = codec_for(Codepage.NOT_SET)
        self._header_length = 0
        self._record_length = 0
        self._fields_count = 0
        self._records_count = 0
        self._current_index = self.BEFORE_FIRST_ROW
        # 单槽缓存：(位置, 已解码记录)
        self._cache: Optional[Tuple[int, Record]] = None
        # 只含 schema、值全为空的模板记录
        self._template = Record()

    # ------------------------- 打开 / 关闭 -------------------------

    @classmethod
    def create(cls, file_name: str, fields: Iterable[Field], codepage: Codepage = Codepage.NOT_SET,
               table_type: TableType = TableType.SIMPLE_TABLE,
               open_mode: OpenMode = OpenMode.READ_WRITE) -> "DbfTable":
        """
        新建一张空表（覆盖已有文件）并打开。
        文件内容：完整文件头 + 0x1A。创建失败（路径不可写等）直接抛 OSError。
        """
        schema = Schema.from_fields(fields)
        header = build_header(schema, codec_for(codepage), codepage, table_type)
        with open(file_name, "wb") as f:
            f.write(header)
            f.write(bytes([config.END_OF_FILE_MARK]))
        logger.debug("created %s: %d fields, record length %d", file_name, len(schema), schema.record_length)
        table = cls(file_name)
        table.open(open_mode=open_mode)
        return table

    def open(self, file_name: Optional[str] = None, open_mode: OpenMode = OpenMode.READ_ONLY) -> bool:
        """
        打开（或重新打开）表文件并解析文件头。之前的状态全部重置。
          - 文件无法打开 -> OPEN_ERROR
          - 文件头无法识别 -> UNRECOGNIZED_FORMAT（文件随即关闭）
        """
        if file_name is not None:
            self._file_name = file_name
        self.close()
        self._reset()
        self._open_mode = open_mode
        self._error = TableError.NO_ERROR

        if self._file_name is None:
            self._error = TableError.OPEN_ERROR
            return False
        try:
            # buffering=0：直接读写文件，write() 返回真实写入字节数
            self._f = open(self._file_name, "r+b" if open_mode is OpenMode.READ_WRITE else "rb", buffering=0)
        except OSError as e:
            logger.warning("cannot open %s: %s", self._file_name, e)
            self._error = TableError.OPEN_ERROR
            return False

        try:
            self._load_header()
        except DbfError as e:
            logger.warning("cannot parse %s: %s", self._file_name, e)
            self._error = e.code
        except OSError as e:
            logger.warning("cannot read header of %s: %s", self._file_name, e)
            self._error = TableError.READ_ERROR
        if self._error is not TableError.NO_ERROR:
            self.close()
            self._reset()
            return False

        logger.debug("opened %s (%s, %s): %d fields x %d records",
                     self._file_name, self._type.value, self._codepage.value,
                     self._fields_count, self._records_count)
        return True

    def _load_header(self) -> None:
        self._f.seek(0)
        desc = parse_descriptor(self._f.read(config.TABLE_DESCRIPTOR_LENGTH))
        self._type = desc.table_type
        self._records_count = desc.records_count
        self._header_length = desc.header_length
        self._record_length = desc.record_length

        descriptors_length = field_descriptors_length(desc)
        self._fields_count = descriptors_length // config.FIELD_DESCRIPTOR_LENGTH

        self._codepage = resolve_codepage(desc.codepage_byte)
        self._codec = codec_for(self._codepage)

        data = self._f.read(descriptors_length)
        if len(data) != descriptors_length:
            raise UnrecognizedFormatError(f"truncated field descriptors: {len(data)} of {descriptors_length} bytes")
        schema = parse_fields(data, self._codec)
        if schema.record_length != self._record_length:
            logger.warning("%s: header record length %d != fields total %d",
                           self._file_name, self._record_length, schema.record_length)
        self._template = Record(schema)

    def close(self) -> None:
        if self._f is not None:
            try:
                self._f.close()
            finally:
                self._f = None

    def is_open(self) -> bool:
        return self._f is not None and not self._f.closed

    def __enter__(self) -> "DbfTable":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def copy(self) -> "DbfTable":
        """
        显式复制：元信息、游标位置、缓存都被复制，并以相同模式重新打开一个独立的文件句柄。
        两个实例互不共享位置与缓存。
        """
        other = DbfTable(self._file_name)
        other._open_mode = self._open_mode
        other._error = self._error
        other._type = self._type
        other._codepage = self._codepage
        other._codec = self._codec
        other._header_length = self._header_length
        other._record_length = self._record_length
        other._fields_count = self._fields_count
        other._records_count = self._records_count
        other._current_index = self._current_index
        other._template = self._template.copy()
        if self._cache is not None:
            other._cache = (self._cache[0], self._cache[1].copy())
        if self.is_open():
            mode = "r+b" if self._open_mode is OpenMode.READ_WRITE else "rb"
            try:
                other._f = open(self._file_name, mode, buffering=0)
            except OSError as e:
                logger.warning("copy: cannot reopen %s: %s", self._file_name, e)
                other._error = TableError.OPEN_ERROR
        return other

    # ------------------------- 元信息 -------------------------

    def file_name(self) -> Optional[str]:
        return self._file_name

    def open_mode(self) -> OpenMode:
        return self._open_mode

    def error(self) -> TableError:
        return self._error

    def table_type(self) -> TableType:
        return self._type

    def codepage(self) -> Codepage:
        return self._codepage

    def header_length(self) -> int:
        return self._header_length

    def record_length(self) -> int:
        return self._record_length

    def fields_count(self) -> int:
        return self._fields_count

    def schema(self) -> Schema:
        return self._template.schema

    def size(self) -> int:
        return self._records_count

    def at(self) -> int:
        return self._current_index

    # ------------------------- 游标 -------------------------

    def seek(self, index: int) -> bool:
        """夹紧到 [-1, size-1]；位置变化时使缓存失效。总是返回 True。"""
        previous = self._current_index
        if index < self.FIRST_ROW:
            self._current_index = self.BEFORE_FIRST_ROW
        elif index > self.size() - 1:
            self._current_index = self.size() - 1
        else:
            self._current_index = index
        if previous != self._current_index:
            self._cache = None
        return True

    def first(self) -> bool:
        return self.seek(self.FIRST_ROW)

    def last(self) -> bool:
        return self.seek(self.size() - 1)

    def next(self) -> bool:
        if self.at() < self.FIRST_ROW:
            return self.first()
        if self.at() >= self.size() - 1:
            return False
        return self.seek(self.at() + 1)

    def previous(self) -> bool:
        if self.at() <= self.FIRST_ROW:
            return False
        if self.at() > self.size() - 1:
            return self.last()
        return self.seek(self.at() - 1)

    def record(self) -> Record:
        """
        读取当前位置的记录：
          - 缓存命中：直接返回缓存的副本
          - 位于第一条之前：返回模板记录，不读文件
          - 否则读 record_length 字节并解码；读取不足 -> UNSPECIFIED_ERROR，返回模板值
        """
        if self._cache is not None and self._cache[0] == self._current_index:
            return self._cache[1].copy()

        rec = self._template.copy()
        if self._current_index < self.FIRST_ROW:
            return rec
        if not self._check_open("record"):
            return rec

        rec.record_index = self._current_index
        position = self._record_position(self._current_index)
        try:
            self._f.seek(position)
            raw = self._f.read(self._record_length)
        except OSError as e:
            logger.warning("record(): read failed at %d: %s", position, e)
            self._error = TableError.READ_ERROR
            return rec
        if len(raw) != self._record_length:
            logger.warning("record(): short read at %d (%d of %d bytes)", position, len(raw), self._record_length)
            self._error = TableError.UNSPECIFIED_ERROR
            return rec

        rec = decode_record(raw, self._template, self._codec)
        rec.record_index = self._current_index
        self._cache = (self._current_index, rec)
        self._error = TableError.NO_ERROR
        return rec.copy()

    def value(self, key: Union[int, str]) -> Value:
        return self.record().value(key)

    def scan(self, include_deleted: bool = True) -> Iterator[Record]:
        """从第一条走到最后一条（会移动游标）；读取出错时停止。"""
        self.seek(self.BEFORE_FIRST_ROW)
        while self.next():
            rec = self.record()
            if self._error is not TableError.NO_ERROR:
                return
            if include_deleted or not rec.deleted:
                yield rec

    # ------------------------- 修改 -------------------------

    def set_codepage(self, codepage: Codepage) -> bool:
        """改写偏移 29 处的代码页字节，之后的解码/编码使用新编码；已写入的数据不重新编码。"""
        if not self._check_writable("set_codepage"):
            return False
        try:
            byte = codepage_byte_for(codepage)
        except ValueError as e:
            logger.warning("set_codepage(): %s", e)
            self._error = TableError.UNSPECIFIED_ERROR
            return False
        if not self._write_at(config.LANGUAGE_DRIVER_OFFSET, bytes([byte])):
            return False
        self._codepage = codepage
        self._codec = codec_for(codepage)
        self._cache = None
        self._error = TableError.NO_ERROR
        return True

    def append(self, record: Optional[Record] = None) -> bool:
        """
        在记录区逻辑末尾（header_length + record_length * size）追加一条记录并带上 0x1A，
        然后改写文件头中的记录数。不复用已删除记录的位置。
        不传 record 时追加一条空白记录。
        注意：数据已写入但记录数改写失败时不回滚（文件可恢复但记录数未更新）。
        """
        if not self._check_writable("append"):
            return False
        if record is None:
            record = self._template.copy()
            record.deleted = False
        data = self._encode(record, add_end_of_file_mark=True)
        if data is None:
            return False

        index = self._records_count
        if not self._write_at(self._record_position(index), data):
            return False
        if not self._write_at(config.RECORDS_COUNT_OFFSET, records_count_bytes(index + 1)):
            logger.error("append(): record #%d written but records count not updated in %s",
                         index, self._file_name)
            return False
        self._records_count = index + 1
        self._error = TableError.NO_ERROR
        logger.debug("appended record #%d to %s", index, self._file_name)
        return True

    def update(self, record: Record) -> bool:
        """按 record.record_index 原地覆盖该条记录（不写 0x1A，不改记录数）。"""
        if not self._check_writable("update"):
            return False
        index = record.record_index
        if not self._check_index(index, "update"):
            return False
        data = self._encode(record, add_end_of_file_mark=False)
        if data is None:
            return False
        if not self._write_at(self._record_position(index), data):
            return False
        self._drop_cached(index)
        self._error = TableError.NO_ERROR
        logger.debug("updated record #%d in %s", index, self._file_name)
        return True

    def remove_at(self, index: int) -> bool:
        """逻辑删除：只把该记录第 0 字节改写成 '*'，不回收空间。"""
        if not self._check_writable("remove_at"):
            return False
        if not self._check_index(index, "remove_at"):
            return False
        position = self._record_position(index)
        try:
            self._f.seek(position)
            raw = self._f.read(self._record_length)
        except OSError as e:
            logger.warning("remove_at(): read failed at %d: %s", position, e)
            self._error = TableError.READ_ERROR
            return False
        if len(raw) != self._record_length:
            self._error = TableError.UNSPECIFIED_ERROR
            return False
        if not self._write_at(position, bytes([DELETED_MARK])):
            return False
        self._drop_cached(index)
        self._error = TableError.NO_ERROR
        logger.debug("removed record #%d in %s", index, self._file_name)
        return True

    # ------------------------- 内部方法 -------------------------

    def _record_position(self, index: int) -> int:
        return self._header_length + self._record_length * index

    def _check_open(self, op: str) -> bool:
        if not self.is_open():
            logger.warning("DbfTable.%s(): file is not open", op)
            return False
        return True

    def _check_writable(self, op: str) -> bool:
        if not self._check_open(op):
            return False
        if self._open_mode is not OpenMode.READ_WRITE:
            logger.warning("DbfTable.%s(): %s is opened read-only", op, self._file_name)
            self._error = TableError.WRITE_ERROR
            return False
        return True

    def _check_index(self, index: int, op: str) -> bool:
        if index < self.FIRST_ROW or index > self.size() - 1:
            logger.warning("DbfTable.%s(): index %d out of range [0, %d)", op, index, self.size())
            self._error = TableError.UNSPECIFIED_ERROR
            return False
        return True

    def _encode(self, record: Record, add_end_of_file_mark: bool) -> Optional[bytes]:
        """编码结果必须正好是 record_length（+1 字节 0x1A），否则不写，避免覆盖相邻记录。"""
        try:
            data = encode_record(record, self._template.schema, self._codec, add_end_of_file_mark)
        except SchemaMismatchError as e:
            logger.warning("schema mismatch: %s", e)
            self._error = TableError.SCHEMA_MISMATCH
            return None
        expected = self._record_length + (1 if add_end_of_file_mark else 0)
        if len(data) != expected:
            logger.warning("%s: encoded record is %d bytes, header record length allows %d",
                           self._file_name, len(data), expected)
            self._error = TableError.SCHEMA_MISMATCH
            return None
        return data

    def _write_at(self, position: int, data: bytes) -> bool:
        """定位并写入 data；写入不足或 I/O 失败 -> WRITE_ERROR。"""
        try:
            self._f.seek(position)
            written = self._f.write(data)
        except OSError as e:
            logger.warning("write failed at %d in %s: %s", position, self._file_name, e)
            self._error = TableError.WRITE_ERROR
            return False
        if written != len(data):
            logger.warning("short write at %d in %s (%s of %d bytes)", position, self._file_name, written, len(data))
            self._error = TableError.WRITE_ERROR
            return False
        return True

    def _drop_cached(self, index: int) -> None:
        if self._cache is not None and self._cache[0] == index:
            self._cache = None

    # ------------------------- 比较 / 展示 -------------------------

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, DbfTable):
            return NotImplemented
        return (self._file_name == other._file_name
                and self._type == other._type
                and self._codepage == other._codepage
                and self._header_length == other._header_length
                and self._record_length == other._record_length
                and self._fields_count == other._fields_count
                and self._records_count == other._records_count)

    __hash__ = None

    def __repr__(self) -> str:
        return f"DbfTable({self._file_name!r}, size: {self._fields_count} x {self._records_count})"
