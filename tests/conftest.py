import struct

import pytest


def make_dbf(path, fields, records=(), version=3, codepage=0, dbc=False,
             records_count=None, record_length=None, eof=True):
    """
    手工拼出一个表文件（不经过 dbf_storage.header，便于独立校验解析逻辑）。
    fields:  [(name, type_char, length, precision), ...]
    records: 每条记录的完整字节（含删除标记）
    """
    header_length = 32 + 32 * len(fields) + 1 + (263 if dbc else 0)
    if record_length is None:
        record_length = 1 + sum(f[2] for f in fields)
    if records_count is None:
        records_count = len(records)
    out = bytearray(32)
    out[0] = version
    out[1:4] = bytes([124, 1, 2])
    struct.pack_into("<I", out, 4, records_count)
    struct.pack_into("<H", out, 8, header_length)
    struct.pack_into("<H", out, 10, record_length)
    out[29] = codepage
    for name, type_char, length, precision in fields:
        fd = bytearray(32)
        raw = name.encode("ascii") if isinstance(name, str) else name
        fd[0:len(raw)] = raw
        fd[11] = ord(type_char)
        fd[16] = length
        fd[17] = precision
        out += fd
    out.append(0x0D)
    if dbc:
        out += bytes(263)
    for r in records:
        out += r
    if eof:
        out.append(0x1A)
    path.write_bytes(bytes(out))
    return path


PEOPLE_FIELDS = [
    ("NAME", "C", 10, 0),
    ("BORN", "D", 8, 0),
    ("SALARY", "N", 8, 2),
    ("ACTIVE", "L", 1, 0),
]


def people_record(name, born, salary, active, deleted=False):
    return (b"*" if deleted else b" ") + name.ljust(10).encode("ascii") + born.encode("ascii") \
        + salary.rjust(8).encode("ascii") + active.encode("ascii")


@pytest.fixture
def people_path(tmp_path):
    return make_dbf(tmp_path / "people.dbf", PEOPLE_FIELDS, [
        people_record("ALICE", "19800102", "1234.50", "T"),
        people_record("BOB", "19751231", "99.00", "F"),
        people_record("CAROL", "20000229", "0.75", "Y", deleted=True),
    ])


@pytest.fixture
def john_path(tmp_path):
    # version 3, headerLength 65, recordLength 21, 一个 20 字节字符字段 NAME
    return make_dbf(tmp_path / "john.dbf", [("NAME", "C", 20, 0)],
                    [b" " + b"JOHN DOE".ljust(20)])
