"""
ascii.py: Tables backed by delimited text files in a directory

Each file in the directory is one table named after the file (minus the
configured extension). The first line of a file is its header; every later
line is a record. Fields are split with ``re.split`` on the configured
delimiter, so regex metacharacters in the delimiter must be escaped.

Public API:
    dataset = ASCIIFileDirectoryDataset("data/", ReaderConfig(file_extension="csv"))
    table   = dataset.get_table("people")
    row     = table.get_next_row()
    name    = row.get_field_string_value(Term("name"))
"""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path
from typing import IO, Optional

import chardet

from tabular_terms.base import TableCell, TableRow, Table, TabularDataset
from tabular_terms.config import ReaderConfig
from tabular_terms.errors import InvalidFormatError
from tabular_terms.header import FieldMapHeader, Header
from tabular_terms.parsing import parse_boolean, parse_float, parse_int
from tabular_terms.terms import Multimap, Term

logger = logging.getLogger(__name__)

ENCODING_SAMPLE_BYTES = 64 * 1024
FALLBACK_ENCODING = "utf-8"


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_encoding(path: Path, sample_bytes: int = ENCODING_SAMPLE_BYTES) -> str:
    """
    Guess the text encoding of ``path`` from a leading sample.

    Plain ASCII is reported as utf-8 since the rest of the file may not stay
    within ASCII. Unreadable files and inconclusive guesses fall back to utf-8.
    """
    try:
        with path.open("rb") as handle:
            raw = handle.read(sample_bytes)
    except OSError as exc:
        logger.warning("Could not sample %s for encoding detection: %s", path, exc)
        return FALLBACK_ENCODING

    detected = chardet.detect(raw).get("encoding")
    if not detected or detected.lower() == "ascii":
        return FALLBACK_ENCODING
    return detected


def compile_delimiter(delimiter: str) -> "re.Pattern[str]":
    try:
        return re.compile(delimiter)
    except re.error as exc:
        raise InvalidFormatError(f"Invalid delimiter pattern {delimiter!r}: {exc}") from exc


def resolve_encoding(encoding: str) -> str:
    try:
        return codecs.lookup(encoding).name
    except LookupError as exc:
        raise InvalidFormatError(f"Unknown text encoding {encoding!r}") from exc


def _clean_line(line: str) -> str:
    return line.rstrip("\n").replace("\x00", "")


# ══════════════════════════════════════════════════════════════════════════════
# CELLS AND ROWS
# ══════════════════════════════════════════════════════════════════════════════

class ASCIITableCell(TableCell):
    """A cell holding one token of a delimited line."""

    def __init__(self, string_value: Optional[str]) -> None:
        self._string_value = string_value

    def is_empty(self) -> bool:
        return not self._string_value

    def get_string_value(self) -> Optional[str]:
        return self._string_value

    def get_int_value(self) -> Optional[int]:
        return parse_int(self._string_value)

    def get_float_value(self) -> Optional[float]:
        return parse_float(self._string_value)

    def get_boolean_value(self) -> Optional[bool]:
        return parse_boolean(self._string_value)


class ASCIITableRow(TableRow):
    """
    One delimited line resolved against a table header.

    Tokens are parsed eagerly into a ``FieldMapHeader`` of cells, one per
    header occurrence whose column exists in the line. When a field has
    several cells, ``get_cell`` picks the first non-empty one.
    """

    def __init__(
        self,
        header: FieldMapHeader[int],
        line: Optional[str],
        delimiter: "str | re.Pattern[str]" = ",",
        trim_values: bool = False,
    ) -> None:
        if isinstance(delimiter, str):
            delimiter = compile_delimiter(delimiter or ",")
        self._pattern = delimiter
        self._trim_values = trim_values
        self._field_cells = self._parse_cells(header, line)

    def _parse_cells(self, header: FieldMapHeader[int], line: Optional[str]) -> FieldMapHeader[TableCell]:
        cells: FieldMapHeader[TableCell] = FieldMapHeader()
        if header is None or header.is_empty() or not line:
            return cells

        tokens = self._pattern.split(line)
        for field in header.get_fields():
            for index in header.get_values(field):
                if index is None or not 0 <= index < len(tokens):
                    continue
                value = tokens[index]
                if self._trim_values:
                    value = value.strip()
                cells.put(field, ASCIITableCell(value))
        return cells

    @property
    def header(self) -> Header:
        return self._field_cells

    def get_cell(self, field: Term) -> TableCell:
        for cell in self._field_cells.get_values(field):
            if not cell.is_empty():
                return cell
        return ASCIITableCell(None)

    def get_cells(self, field: Term) -> list[TableCell]:
        return self._field_cells.get_values(field)

    def get_cells_by_name(self, field_name: str) -> Multimap[Optional[str], TableCell]:
        return self._field_cells.get_values_by_name(field_name)


# ══════════════════════════════════════════════════════════════════════════════
# TABLES
# ══════════════════════════════════════════════════════════════════════════════

class ASCIIFileTable(Table):
    """
    A delimited text file read sequentially.

    The header is parsed and records are counted when the table is opened.
    The file stays open until ``close``; ``reset`` reopens it and skips the
    header line again. Read errors after opening end the table quietly.
    """

    def __init__(
        self,
        path: "str | Path",
        name: Optional[str] = None,
        config: Optional[ReaderConfig] = None,
    ) -> None:
        self.path = Path(path)
        self.config = config or ReaderConfig()
        self._name = name
        self._pattern = compile_delimiter(self.config.delimiter)
        self._encoding = resolve_encoding(self.config.encoding or detect_encoding(self.path))
        self._reader: Optional[IO[str]] = None
        self._position = 0

        self._header, self._number_of_records = self._scan()
        self._open_reader()
        logger.debug(
            "Opened %s (%s): %d fields, %d records",
            self.path, self._encoding, self._header.num_fields, self._number_of_records,
        )

    def _open(self) -> IO[str]:
        return self.path.open("r", encoding=self._encoding, errors="replace")

    def _scan(self) -> tuple[FieldMapHeader[int], int]:
        try:
            with self._open() as handle:
                first_line = handle.readline()
                records = sum(1 for _ in handle)
        except OSError as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return FieldMapHeader(), 0
        if not first_line:
            return FieldMapHeader(), 0
        return self._parse_header(_clean_line(first_line)), records

    def _parse_header(self, line: str) -> FieldMapHeader[int]:
        header: FieldMapHeader[int] = FieldMapHeader()
        if not line:
            return header
        for index, token in enumerate(self._pattern.split(line)):
            label = token.strip() if self.config.trim_header else token
            if not label or not label.strip():
                continue
            header.put(Term(label), index)
        return header

    def _open_reader(self) -> None:
        try:
            self._reader = self._open()
            self._reader.readline()
        except OSError as exc:
            logger.warning("Could not reopen %s: %s", self.path, exc)
            self._close_reader()

    def _close_reader(self) -> None:
        if self._reader is not None:
            try:
                self._reader.close()
            except OSError as exc:
                logger.debug("Error closing %s: %s", self.path, exc)
            self._reader = None

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def header(self) -> Header:
        return self._header

    @property
    def number_of_records(self) -> int:
        return self._number_of_records

    @property
    def position(self) -> int:
        return self._position

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def closed(self) -> bool:
        """True once the file handle is released, by ``close`` or a failed open."""
        return self._reader is None

    def get_next_row(self) -> Optional[ASCIITableRow]:
        if self._reader is None or self._position >= self._number_of_records:
            return None
        try:
            line = self._reader.readline()
        except (OSError, ValueError) as exc:
            logger.warning("Stopped reading %s at record %d: %s", self.path, self._position, exc)
            return None
        if not line:
            return None
        self._position += 1
        return ASCIITableRow(self._header, _clean_line(line), self._pattern, self.config.trim_values)

    def reset(self) -> None:
        self._close_reader()
        self._open_reader()
        self._position = 0

    def close(self) -> None:
        self._close_reader()

    def __repr__(self) -> str:
        return f"ASCIIFileTable(path={str(self.path)!r}, name={self._name!r})"


# ══════════════════════════════════════════════════════════════════════════════
# DATASET
# ══════════════════════════════════════════════════════════════════════════════

class ASCIIFileDirectoryDataset(TabularDataset):
    """
    A directory of delimited files, one table per file.

    An empty extension accepts every file and keeps file names whole;
    otherwise only files ending in the extension are listed, and the table
    name is the file name without it.
    """

    def __init__(self, directory: "str | Path", config: Optional[ReaderConfig] = None) -> None:
        self.directory = Path(directory)
        self.config = config or ReaderConfig()
        compile_delimiter(self.config.delimiter)
        self._open_tables: list[ASCIIFileTable] = []

    @property
    def file_extension(self) -> str:
        return self.config.file_extension

    @property
    def delimiter(self) -> str:
        return self.config.delimiter

    def get_table(self, table_name: str) -> Optional[ASCIIFileTable]:
        if table_name is None or not self.directory.is_dir():
            return None
        # table names are plain file names inside the directory
        if not table_name or Path(table_name).name != table_name:
            return None
        path = self.directory / f"{table_name}{self.file_extension}"
        if not path.is_file():
            return None
        table = ASCIIFileTable(path, table_name, self.config)
        self._open_tables = [opened for opened in self._open_tables if not opened.closed]
        self._open_tables.append(table)
        return table

    def get_table_names(self) -> list[str]:
        extension = self.file_extension
        try:
            entries = sorted(self.directory.iterdir())
        except OSError as exc:
            logger.warning("Could not list %s: %s", self.directory, exc)
            return []

        names = []
        for entry in entries:
            if not entry.is_file() or not entry.name.endswith(extension):
                continue
            name = entry.name[: -len(extension)] if extension else entry.name
            if name:
                names.append(name)
        return names

    def close(self) -> None:
        for table in self._open_tables:
            table.close()
        self._open_tables.clear()

    def __repr__(self) -> str:
        return f"ASCIIFileDirectoryDataset({str(self.directory)!r}, extension={self.file_extension!r})"
