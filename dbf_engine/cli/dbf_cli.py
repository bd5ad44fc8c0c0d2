# dbf_engine/cli/dbf_cli.py
from __future__ import annotations
import argparse
import sys
import time
from typing import Any, Dict, List, Optional

from dbf_engine.export import export_rows, table_rows
from dbf_engine.record import Record
from dbf_engine.schema import Field
from dbf_engine.types import normalize_type
from dbf_storage.codepage import Codepage
from dbf_storage.errors import TableError
from dbf_storage.header import TableType
from dbf_storage.log import enable_log
from dbf_storage.table import DbfTable, OpenMode

_CODEPAGE_CHOICES = {cp.value: cp for cp in (Codepage.NOT_SET, Codepage.IBM866, Codepage.WINDOWS1251)}


class CliError(Exception):
    """命令执行失败：携带表的错误码，main() 据此打印并返回 1。"""

    def __init__(self, table: DbfTable, action: str):
        super().__init__(f"{action} failed: {table.error().name}")
        self.code = table.error()


def _print_rows(rows: List[Dict[str, Any]]) -> None:
    if not rows:
        print("(空集)")
        return
    cols = list(rows[0].keys())
    header_row = {c: c for c in cols}

    def _fmt(v):
        return "NULL" if v is None else str(v)

    widths = [max(len(_fmt(r.get(c, ""))) for r in rows + [header_row]) for c in cols]
    print(" | ".join(c.ljust(w) for c, w in zip(cols, widths)))
    print("-+-".join("-" * w for w in widths))
    for r in rows:
        print(" | ".join(_fmt(r.get(c, "")).ljust(w) for c, w in zip(cols, widths)))
    print(f"(共 {len(rows)} 行)")


def _open(path: str, mode: OpenMode = OpenMode.READ_ONLY) -> DbfTable:
    table = DbfTable(path)
    if not table.open(open_mode=mode):
        raise CliError(table, f"open {path}")
    return table


def _assign(rec: Record, pairs: List[str]) -> None:
    """FIELD=VALUE 形式的赋值，值按字段类型转换。"""
    for p in pairs:
        name, sep, raw = p.partition("=")
        if not sep:
            raise ValueError(f"expected FIELD=VALUE, got {p!r}")
        rec.set_value(name.strip(), raw if raw != "" else None)


# ---------------- 子命令 ----------------

def cmd_info(args) -> None:
    with _open(args.file) as table:
        print(f"文件:     {table.file_name()}")
        print(f"类型:     {table.table_type().value}")
        print(f"代码页:   {table.codepage().value}")
        print(f"头长度:   {table.header_length()}")
        print(f"记录长度: {table.record_length()}")
        print(f"记录数:   {table.size()}")
        for f in table.schema():
            print(f"  {f.name:<10} {f.dbf_type.value} {f.length:>3}.{f.precision:<2} @{f.offset}")


def cmd_dump(args) -> None:
    with _open(args.file) as table:
        rows = []
        for rec in table.scan(include_deleted=args.deleted):
            row: Dict[str, Any] = {"#": rec.record_index}
            if args.deleted:
                row["*"] = "*" if rec.deleted else ""
            row.update(rec.to_dict())
            rows.append(row)
            if args.limit is not None and len(rows) >= args.limit:
                break
        if table.error() is not TableError.NO_ERROR:
            raise CliError(table, "dump")
        _print_rows(rows)


def cmd_export(args) -> None:
    with _open(args.file) as table:
        columns, rows = table_rows(table, include_deleted=args.deleted)
        if table.error() is not TableError.NO_ERROR:
            raise CliError(table, "export")
    saved = export_rows(args.out, columns, rows)
    print(f"已导出到: {saved}")


def _parse_field(spec: str) -> Field:
    """NAME:TYPE:LENGTH[:PRECISION]，TYPE 可写 C/D/N/F/L 或 text/date/number/float/bool。"""
    parts = spec.split(":")
    if len(parts) not in (3, 4):
        raise ValueError(f"expected NAME:TYPE:LENGTH[:PRECISION], got {spec!r}")
    precision = int(parts[3]) if len(parts) == 4 else 0
    return Field(parts[0], normalize_type(parts[1]), int(parts[2]), precision)


def cmd_create(args) -> None:
    fields = [_parse_field(s) for s in args.fields]
    table_type = TableType.TABLE_WITH_DBC if args.dbc else TableType.SIMPLE_TABLE
    with DbfTable.create(args.file, fields, _CODEPAGE_CHOICES[args.codepage], table_type) as table:
        if not table.is_open():
            raise CliError(table, f"create {args.file}")
        print(f"已创建 {table!r}")


def cmd_append(args) -> None:
    with _open(args.file, OpenMode.READ_WRITE) as table:
        rec = table.record()
        rec.clear_values()
        rec.deleted = False
        _assign(rec, args.values)
        if not table.append(rec):
            raise CliError(table, "append")
        print(f"已追加记录 #{table.size() - 1}")


def cmd_update(args) -> None:
    with _open(args.file, OpenMode.READ_WRITE) as table:
        if not 0 <= args.index < table.size():
            raise ValueError(f"index out of range: {args.index} (size {table.size()})")
        table.seek(args.index)
        rec = table.record()
        if table.error() is not TableError.NO_ERROR:
            raise CliError(table, f"read #{args.index}")
        _assign(rec, args.values)
        if not table.update(rec):
            raise CliError(table, "update")
        print(f"已更新记录 #{args.index}")


def cmd_delete(args) -> None:
    with _open(args.file, OpenMode.READ_WRITE) as table:
        if not table.remove_at(args.index):
            raise CliError(table, "delete")
        print(f"已删除记录 #{args.index}")


def cmd_codepage(args) -> None:
    with _open(args.file, OpenMode.READ_WRITE) as table:
        if not table.set_codepage(_CODEPAGE_CHOICES[args.codepage]):
            raise CliError(table, "codepage")
        print(f"代码页已设置为 {args.codepage}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="mini-dbf", description="DBF 表文件命令行工具")
    ap.add_argument("--debug", action="store_true", help="显示详细报错堆栈")
    ap.add_argument("--log", nargs="?", const="", default=None, metavar="PATH",
                    help="开启文件日志（默认 __logs__/dbf.log）")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("info", help="显示表结构")
    p.add_argument("file")
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("dump", help="打印记录")
    p.add_argument("file")
    p.add_argument("--deleted", action="store_true", help="同时显示已删除记录")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_dump)

    p = sub.add_parser("export", help="导出为 xlsx / csv")
    p.add_argument("file")
    p.add_argument("out")
    p.add_argument("--deleted", action="store_true", help="包含已删除记录")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("create", help="新建空表")
    p.add_argument("file")
    p.add_argument("fields", nargs="+", metavar="NAME:TYPE:LENGTH[:PRECISION]")
    p.add_argument("--codepage", choices=sorted(_CODEPAGE_CHOICES), default=Codepage.NOT_SET.value)
    p.add_argument("--dbc", action="store_true", help="带内嵌 DBC 区的表（版本 48）")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("append", help="追加一条记录")
    p.add_argument("file")
    p.add_argument("values", nargs="*", metavar="FIELD=VALUE")
    p.set_defaults(func=cmd_append)

    p = sub.add_parser("update", help="修改一条记录")
    p.add_argument("file")
    p.add_argument("index", type=int)
    p.add_argument("values", nargs="+", metavar="FIELD=VALUE")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("delete", help="逻辑删除一条记录")
    p.add_argument("file")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("codepage", help="设置代码页字节")
    p.add_argument("file")
    p.add_argument("codepage", choices=sorted(_CODEPAGE_CHOICES))
    p.set_defaults(func=cmd_codepage)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log is not None:
        enable_log(args.log or None)

    start = time.perf_counter()
    try:
        args.func(args)
    except CliError as e:
        print(f"[{e.code.name}] {e}", file=sys.stderr)
        return 1
    except (KeyError, ValueError, TypeError, OSError) as e:
        # 字段名不存在、值无法转换、文件无法创建等
        print(f"[Runtime error] {e}", file=sys.stderr)
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1
    if args.debug:
        print(f"（耗时 {time.perf_counter() - start:.6f} s）")
    return 0


if __name__ == "__main__":
    sys.exit(main())
