"""
错误类型：
  - TableError: DbfTable 的“最近一次错误”状态码（对外查询用，不抛出）
  - DbfError 及子类: 纯解析/编码层抛出的异常，由 DbfTable 在边界处捕获并转成状态码
"""
from enum import IntEnum


class TableError(IntEnum):
    NO_ERROR = 0
    OPEN_ERROR = 1
    UNRECOGNIZED_FORMAT = 2
    READ_ERROR = 3
    WRITE_ERROR = 4
    SCHEMA_MISMATCH = 5
    UNSPECIFIED_ERROR = 6


class DbfError(Exception):
    """通用 DBF 错误。"""
    code = TableError.UNSPECIFIED_ERROR


class UnrecognizedFormatError(DbfError):
    """文件头版本号或结构无法识别。"""
    code = TableError.UNRECOGNIZED_FORMAT


class SchemaMismatchError(DbfError):
    """待写入记录的字段定义与表结构不一致。"""
    code = TableError.SCHEMA_MISMATCH

    def __init__(self, position: int, expected, actual):
        super().__init__(f"field #{position}: expected {expected!r}, got {actual!r}")
        self.position = position
        self.expected = expected
        self.actual = actual
