"""
表数据导出：
  - .xlsx: openpyxl 工作簿（表头 + 数据行，自动列宽）
  - 其他扩展名: CSV（utf-8-sig，Excel 可直接打开）
"""
from __future__ import annotations
import csv
from typing import Any, List, Sequence, Tuple

from openpyxl import Workbook

from dbf_storage.table import DbfTable


def table_rows(table: DbfTable, include_deleted: bool = False) -> Tuple[List[str], List[List[Any]]]:
    """把整张表读成 (列名, 行列表)；include_deleted=True 时额外输出 _deleted 列。"""
    columns = table.schema().names()
    rows: List[List[Any]] = []
    for rec in table.scan(include_deleted=include_deleted):
        row = list(rec.values)
        if include_deleted:
            row.append(rec.deleted)
        rows.append(row)
    if include_deleted:
        columns = columns + ["_deleted"]
    return columns, rows


def _export_to_csv(path: str, cols: Sequence[str], rs: Sequence[Sequence[Any]]) -> None:
    with open(path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.writer(f)
        writer.writerow(cols)
        for r in rs:
            writer.writerow(["" if v is None else str(v) for v in r])


def _export_to_xlsx(path: str, cols: Sequence[str], rs: Sequence[Sequence[Any]], title: str) -> None:
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31] or "Sheet"

    ws.append(list(cols))
    for r in rs:
        ws.append(["" if v is None else v for v in r])

    # 自动调整列宽（上限 50）
    for column in ws.columns:
        max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
        ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

    wb.save(path)


def export_rows(path: str, columns: Sequence[str], rows: Sequence[Sequence[Any]], title: str = "export") -> str:
    """按扩展名导出，返回实际写入的路径。"""
    if path.lower().endswith(".xlsx"):
        _export_to_xlsx(path, columns, rows, title)
    else:
        _export_to_csv(path, columns, rows)
    return path
