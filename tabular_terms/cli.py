from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from tabular_terms import __version__ as TOOL_VERSION
from tabular_terms.base import Table, TabularDataset
from tabular_terms.config import STARTER_CONFIG, ConfigError, ReaderConfig
from tabular_terms.factory import open_dataset
from tabular_terms.header import Header
from tabular_terms.terms import Term

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class TabularTermsArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.ERROR
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (ImportError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    if isinstance(exc, (FileNotFoundError, ConfigError, TypeError)):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, ValueError):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def resolve_config(args: argparse.Namespace) -> ReaderConfig:
    """Defaults < config file < TABULAR_TERMS_* environment < flags."""
    config = ReaderConfig.from_file(args.config) if args.config else ReaderConfig()
    config = config.with_env()
    return config.merged(
        file_extension=args.ext,
        delimiter=args.delimiter,
        encoding=args.encoding,
        trim_values=True if args.trim_values else None,
        trim_header=False if args.no_trim_header else None,
    )


def open_table(dataset: TabularDataset, table_name: str) -> Table:
    table = dataset.get_table(table_name)
    if table is None:
        raise CliError(
            f"Table '{table_name}' not found. Available: {dataset.get_table_names()}",
            EXIT_COMMAND_ERROR,
        )
    return table


def add_reader_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Workbook file or directory of delimited files")
    parser.add_argument("--config", help="JSON reader config path")
    parser.add_argument("--ext", help="Extension of delimited files (directories only)")
    parser.add_argument("--delimiter", help="Field delimiter pattern (directories only)")
    parser.add_argument("--encoding", help="Text encoding (default: detected)")
    parser.add_argument("--trim-values", dest="trim_values", action="store_true", help="Strip whitespace around values")
    parser.add_argument("--no-trim-header", dest="no_trim_header", action="store_true", help="Keep whitespace around header labels")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = TabularTermsArgumentParser(
        prog="tabular-terms",
        description="Inspect workbooks and directories of delimited files as multilingual tables.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    tables = subparsers.add_parser("tables", help="List the tables of a dataset.")
    add_reader_arguments(tables)
    tables.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    header = subparsers.add_parser("header", help="Describe the header of a table.")
    add_reader_arguments(header)
    header.add_argument("table", help="Table name")
    header.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    rows = subparsers.add_parser("rows", help="Print table rows as JSON lines.")
    add_reader_arguments(rows)
    rows.add_argument("table", help="Table name")
    rows.add_argument("--limit", type=int, default=None, help="Maximum number of rows")
    rows.add_argument(
        "--field",
        dest="fields",
        action="append",
        default=None,
        help="Field to print, as NAME or NAME@LANG (repeatable)",
    )

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="tabular-terms.json", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def resolve_field(header: Header, text: str) -> Term:
    """
    Match ``text`` against the rendered header terms first, so a column
    labelled ``name@fr`` is found as written; otherwise read it as
    ``NAME@LANG``.
    """
    for field in header.get_fields():
        if str(field) == text:
            return field
    return Term.parse(text)


def describe_header(table: Table) -> dict[str, Any]:
    header = table.header
    return {
        "table": table.name,
        "records": table.number_of_records,
        "fields": [str(field) for field in header.get_fields()],
        "field_names": header.get_field_names(),
        "languages": header.get_languages(),
        "num_fields": header.num_fields,
        "size": header.size,
    }


def render_header_text(payload: dict[str, Any]) -> str:
    lines = [
        f"Table: {payload['table']}",
        f"Records: {payload['records']}",
        f"Fields ({payload['num_fields']} distinct, {payload['size']} columns):",
    ]
    lines.extend(f"  - {field}" for field in payload["fields"])
    if payload["languages"]:
        lines.append(f"Languages: {', '.join(payload['languages'])}")
    return "\n".join(lines)


def run_tables(args: argparse.Namespace) -> int:
    with open_dataset(Path(args.input), resolve_config(args)) as dataset:
        names = dataset.get_table_names()
    if args.json:
        print(json_dumps({"input": args.input, "tables": names, "version": TOOL_VERSION}))
    else:
        for name in names:
            print(name)
    return EXIT_SUCCESS


def run_header(args: argparse.Namespace) -> int:
    with open_dataset(Path(args.input), resolve_config(args)) as dataset:
        with open_table(dataset, args.table) as table:
            payload = describe_header(table)
    if args.json:
        print(json_dumps(payload))
    else:
        print(render_header_text(payload))
    return EXIT_SUCCESS


def run_rows(args: argparse.Namespace) -> int:
    if args.limit is not None and args.limit < 0:
        raise CliError("--limit must be zero or positive", EXIT_COMMAND_ERROR)
    with open_dataset(Path(args.input), resolve_config(args)) as dataset:
        with open_table(dataset, args.table) as table:
            if args.fields:
                fields = [resolve_field(table.header, text) for text in args.fields]
            else:
                fields = table.header.get_fields()
            for count, row in enumerate(table):
                if args.limit is not None and count >= args.limit:
                    break
                record = {str(field): row.get_field_string_value(field) for field in fields}
                print(json.dumps(record, ensure_ascii=False))
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json_dumps(STARTER_CONFIG) + "\n", encoding="utf-8")
    eprint(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: Optional[list[str]] = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args)
        if args.command == "tables":
            return run_tables(args)
        if args.command == "header":
            return run_header(args)
        if args.command == "rows":
            return run_rows(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


if __name__ == "__main__":
    raise SystemExit(main())
