import datetime

from openpyxl import load_workbook

from dbf_engine.export import export_rows, table_rows
from dbf_storage.table import DbfTable


def test_table_rows(people_path):
    table = DbfTable(str(people_path))
    assert table.open()
    with table:
        columns, rows = table_rows(table)
        assert columns == ["NAME", "BORN", "SALARY", "ACTIVE"]
        assert rows == [
            ["ALICE", datetime.date(1980, 1, 2), 1234.5, True],
            ["BOB", datetime.date(1975, 12, 31), 99.0, False],
        ]
        columns, rows = table_rows(table, include_deleted=True)
        assert columns[-1] == "_deleted"
        assert rows[2][0] == "CAROL" and rows[2][-1] is True


def test_export_xlsx_nulls_and_widths(tmp_path):
    path = str(tmp_path / "out.xlsx")
    assert export_rows(path, ["A", "LONG"], [[None, "x" * 80], [1.5, "y"]]) == path
    ws = load_workbook(path).active
    assert ws["A2"].value is None or ws["A2"].value == ""
    assert ws["B2"].value == "x" * 80
    assert ws["A3"].value == 1.5
    assert ws.column_dimensions["B"].width == 50


def test_export_csv(tmp_path):
    path = tmp_path / "out.csv"
    export_rows(str(path), ["A", "B"], [[None, 2.0], ["x", True]])
    assert path.read_text(encoding="utf-8-sig").splitlines() == ["A,B", ",2.0", "x,True"]
