import datetime

import pytest

from dbf_engine.record import Record
from dbf_engine.schema import Field, Schema
from dbf_engine.types import DbfType
from dbf_storage.codepage import TextCodec
from dbf_storage.errors import SchemaMismatchError, TableError
from dbf_storage.record_codec import decode_record, decode_value, encode_record, encode_value

ASCII = TextCodec("ascii")

SCHEMA = Schema.from_fields([
    Field("NAME", DbfType.CHARACTER, 10),
    Field("BORN", DbfType.DATE, 8),
    Field("SALARY", DbfType.NUMBER, 8, 2),
    Field("RATE", DbfType.FLOATING_POINT, 6, 3),
    Field("ACTIVE", DbfType.LOGICAL, 1),
    Field("BLOB", DbfType.UNKNOWN, 4),
])


def _raw(deleted=False):
    return (b"*" if deleted else b" ") + b"ALICE     " + b"19800102" + b" 1234.50" + b" 0.125" + b"T" + b"xxxx"


def test_decode_record():
    rec = decode_record(_raw(), Record(SCHEMA), ASCII)
    assert not rec.is_deleted()
    assert rec["NAME"] == "ALICE"
    assert rec["BORN"] == datetime.date(1980, 1, 2)
    assert rec["SALARY"] == 1234.5
    assert rec["RATE"] == 0.125
    assert rec["ACTIVE"] is True
    assert rec["BLOB"] is None


def test_decode_deleted_marker():
    assert decode_record(_raw(deleted=True), Record(SCHEMA), ASCII).is_deleted()


def test_decode_does_not_touch_template():
    template = Record(SCHEMA)
    decode_record(_raw(), template, ASCII)
    assert template.values == [None] * 6


@pytest.mark.parametrize("raw, expected", [
    (b"T", True), (b"t", True), (b"Y", True), (b"y", True),
    (b"F", False), (b"N", False), (b"?", False), (b" ", False),
])
def test_decode_logical(raw, expected):
    assert decode_value(raw, Field("L", DbfType.LOGICAL, 1), ASCII) is expected


@pytest.mark.parametrize("raw", [b"        ", b"2024XX01", b"20241301", b"00000000"])
def test_decode_malformed_date_is_null(raw):
    assert decode_value(raw, Field("D", DbfType.DATE, 8), ASCII) is None


@pytest.mark.parametrize("raw, expected", [
    (b"   12.50", 12.5), (b"-3.25   ", -3.25), (b"      42", 42.0), (b"+1.5", 1.5),
])
def test_decode_number(raw, expected):
    assert decode_value(raw, Field("N", DbfType.NUMBER, len(raw), 2), ASCII) == expected


@pytest.mark.parametrize("raw", [b"        ", b"  1.2.3 ", b"****"])
def test_decode_blank_or_malformed_number_is_null(raw):
    assert decode_value(raw, Field("N", DbfType.NUMBER, len(raw), 2), ASCII) is None


def test_encode_text_pads_and_truncates():
    f = Field("C", DbfType.CHARACTER, 5)
    assert encode_value("AB", f, ASCII) == b"AB   "
    assert encode_value("ABCDEFG", f, ASCII) == b"ABCDE"
    assert encode_value(None, f, ASCII) == b"     "


def test_encode_text_uses_codec():
    f = Field("C", DbfType.CHARACTER, 6)
    assert encode_value("Мир", f, TextCodec("cp1251")) == "Мир".encode("cp1251") + b"   "


def test_encode_date():
    f = Field("D", DbfType.DATE, 8)
    assert encode_value(datetime.date(2024, 2, 29), f, ASCII) == b"20240229"
    assert encode_value(None, f, ASCII) == b"        "


def test_encode_number_precision_and_justification():
    f = Field("N", DbfType.NUMBER, 8, 2)
    assert encode_value(12.5, f, ASCII) == b"   12.50"
    assert encode_value(1.005, Field("N", DbfType.NUMBER, 6, 0), ASCII) == b"     1"
    assert encode_value(None, f, ASCII) == b"    0.00"
    # 超长时截断到字段长度
    assert encode_value(123456789.0, Field("N", DbfType.NUMBER, 4, 0), ASCII) == b"1234"


def test_encode_logical_and_unknown():
    assert encode_value(True, Field("L", DbfType.LOGICAL, 1), ASCII) == b"T"
    assert encode_value(None, Field("L", DbfType.LOGICAL, 1), ASCII) == b"F"
    assert encode_value("anything", Field("X", DbfType.UNKNOWN, 3), ASCII) == b"   "


def test_encode_record_layout():
    rec = Record(SCHEMA, ["BOB", datetime.date(1975, 12, 31), 99, 0.5, False, None])
    data = encode_record(rec, SCHEMA, ASCII)
    assert data == b" " + b"BOB       " + b"19751231" + b"   99.00" + b" 0.500" + b"F" + b"    "
    assert len(data) == SCHEMA.record_length


def test_encode_record_deleted_and_eof_mark():
    rec = Record(SCHEMA, deleted=True)
    data = encode_record(rec, SCHEMA, ASCII, add_end_of_file_mark=True)
    assert data[0:1] == b"*"
    assert data[-1] == 0x1A
    assert len(data) == SCHEMA.record_length + 1


def test_encode_record_schema_mismatch():
    other = Schema.from_fields([
        Field("NAME", DbfType.CHARACTER, 12),
        *SCHEMA.fields[1:],
    ])
    with pytest.raises(SchemaMismatchError) as exc:
        encode_record(Record(other), SCHEMA, ASCII)
    assert exc.value.position == 0
    assert exc.value.code is TableError.SCHEMA_MISMATCH


def test_encode_record_field_count_mismatch():
    short = Schema.from_fields(SCHEMA.fields[:2])
    with pytest.raises(SchemaMismatchError) as exc:
        encode_record(Record(short), SCHEMA, ASCII)
    assert exc.value.position == 2


def test_roundtrip_up_to_precision():
    rec = Record(SCHEMA, ["CAROL", datetime.date(2000, 2, 29), 10.126, 0.5, True, None])
    back = decode_record(encode_record(rec, SCHEMA, ASCII), Record(SCHEMA), ASCII)
    assert back["SALARY"] == 10.13
    back["SALARY"] = 10.126
    assert back == rec


def test_date_before_year_1000_keeps_four_digit_year():
    f = Field("D", DbfType.DATE, 8)
    raw = encode_value(datetime.date(999, 1, 2), f, ASCII)
    assert raw == b"09990102"
    assert decode_value(raw, f, ASCII) == datetime.date(999, 1, 2)


def test_encode_text_truncates_on_character_boundary():
    utf8 = TextCodec("utf-8")
    f = Field("C", DbfType.CHARACTER, 5)
    raw = encode_value("жжж", f, utf8)
    assert raw == "жж".encode("utf-8") + b" "
    assert decode_value(raw, f, utf8) == "жж"
