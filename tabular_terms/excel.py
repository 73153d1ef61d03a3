"""
excel.py: Tables backed by workbook sheets

Each sheet of a workbook is one table. Row 0 of a sheet is its header and
data records start at row 1. Workbooks are read fully into memory, so the
tables opened from one dataset share the same workbook read-only.

Backends:
    .xlsx .xlsm .xltx .xltm  openpyxl (cached formula values)
    .xls                     xlrd (optional: pip install xlrd)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from tabular_terms.base import TableCell, TableRow, Table, TabularDataset
from tabular_terms.errors import InvalidFormatError
from tabular_terms.header import FieldMapHeader, Header
from tabular_terms.parsing import (
    format_number,
    number_to_boolean,
    number_to_int,
    parse_boolean,
    parse_float,
    parse_int,
)
from tabular_terms.terms import Multimap, Term

logger = logging.getLogger(__name__)

OPENPYXL_FORMATS = {".xlsx", ".xlsm", ".xltx", ".xltm"}
LEGACY_FORMATS = {".xls"}
EXCEL_FORMATS = OPENPYXL_FORMATS | LEGACY_FORMATS


class CellType(Enum):
    STRING = "string"
    NUMERIC = "numeric"
    BLANK = "blank"
    BOOLEAN = "boolean"
    OTHER = "other"


@dataclass(frozen=True)
class SheetCell:
    """A raw sheet value together with its resolved cell type."""

    cell_type: CellType
    value: Any = None


BLANK_CELL = SheetCell(CellType.BLANK)

# xlrd ctype codes: EMPTY, TEXT, NUMBER, DATE, BOOLEAN, ERROR, BLANK
XLRD_CELL_TYPES = {
    0: CellType.BLANK,
    1: CellType.STRING,
    2: CellType.NUMERIC,
    3: CellType.OTHER,
    4: CellType.BOOLEAN,
    5: CellType.OTHER,
    6: CellType.BLANK,
}


def classify_value(value: Any) -> SheetCell:
    """Resolve an openpyxl cell value to a ``SheetCell``."""
    if value is None:
        return BLANK_CELL
    if isinstance(value, bool):
        return SheetCell(CellType.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return SheetCell(CellType.NUMERIC, value)
    if isinstance(value, str):
        return SheetCell(CellType.STRING, value)
    # dates, times and durations
    return SheetCell(CellType.OTHER, value)


def classify_xlrd_cell(cell: Any) -> SheetCell:
    cell_type = XLRD_CELL_TYPES.get(cell.ctype, CellType.OTHER)
    if cell_type is CellType.BLANK:
        return BLANK_CELL
    if cell_type is CellType.BOOLEAN:
        return SheetCell(cell_type, bool(cell.value))
    return SheetCell(cell_type, cell.value)


def classify_openpyxl_cell(cell: Any) -> SheetCell:
    """Resolve an openpyxl cell, mapping error cells such as ``#N/A`` to OTHER."""
    if cell.data_type == "e":
        return SheetCell(CellType.OTHER, cell.value)
    return classify_value(cell.value)


def _is_blank_row(cells: list[SheetCell]) -> bool:
    return all(cell.cell_type is CellType.BLANK for cell in cells)


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOK SOURCES
# ══════════════════════════════════════════════════════════════════════════════

class SheetSource(ABC):
    """The minimal sheet surface tables read from."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def row_count(self) -> int:
        """Number of physical rows, header included."""

    @abstractmethod
    def row(self, index: int) -> Optional[list[SheetCell]]:
        """Cells of the 0-based row ``index``; ``None`` when the row does not exist."""


class WorkbookSource(ABC):
    @abstractmethod
    def sheet_names(self) -> list[str]:
        ...

    @abstractmethod
    def sheet(self, name: str) -> Optional[SheetSource]:
        ...

    def sheet_at(self, index: int) -> Optional[SheetSource]:
        names = self.sheet_names()
        if 0 <= index < len(names):
            return self.sheet(names[index])
        return None

    def close(self) -> None:
        pass


class OpenpyxlSheet(SheetSource):
    """
    A worksheet materialised as rows of ``SheetCell``, classified from the
    cells so error values keep their own type.

    Trailing rows without any value do not count as physical rows, so an
    untouched worksheet has no rows at all.
    """

    def __init__(self, worksheet: Worksheet) -> None:
        self._title = worksheet.title
        rows = [[classify_openpyxl_cell(cell) for cell in cells] for cells in worksheet.iter_rows()]
        while rows and _is_blank_row(rows[-1]):
            rows.pop()
        self._rows = rows

    @property
    def name(self) -> str:
        return self._title

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def row(self, index: int) -> Optional[list[SheetCell]]:
        if not 0 <= index < len(self._rows):
            return None
        return list(self._rows[index])


class OpenpyxlWorkbook(WorkbookSource):
    def __init__(self, workbook: Workbook) -> None:
        self._workbook = workbook

    def sheet_names(self) -> list[str]:
        return [worksheet.title for worksheet in self._workbook.worksheets]

    def sheet(self, name: str) -> Optional[SheetSource]:
        for worksheet in self._workbook.worksheets:
            if worksheet.title == name:
                return OpenpyxlSheet(worksheet)
        return None

    def close(self) -> None:
        self._workbook.close()


class XlrdSheet(SheetSource):
    def __init__(self, sheet: Any) -> None:
        self._sheet = sheet

    @property
    def name(self) -> str:
        return self._sheet.name

    @property
    def row_count(self) -> int:
        return self._sheet.nrows

    def row(self, index: int) -> Optional[list[SheetCell]]:
        if not 0 <= index < self._sheet.nrows:
            return None
        return [classify_xlrd_cell(cell) for cell in self._sheet.row(index)]


class XlrdWorkbook(WorkbookSource):
    def __init__(self, book: Any) -> None:
        self._book = book

    def sheet_names(self) -> list[str]:
        return list(self._book.sheet_names())

    def sheet(self, name: str) -> Optional[SheetSource]:
        if name not in self._book.sheet_names():
            return None
        return XlrdSheet(self._book.sheet_by_name(name))

    def close(self) -> None:
        self._book.release_resources()


def as_workbook_source(workbook: Any) -> WorkbookSource:
    if isinstance(workbook, WorkbookSource):
        return workbook
    if isinstance(workbook, Workbook):
        return OpenpyxlWorkbook(workbook)
    if hasattr(workbook, "sheet_by_name"):
        return XlrdWorkbook(workbook)
    raise TypeError(f"Unsupported workbook object: {type(workbook).__name__}")


def as_sheet_source(sheet: Any) -> Optional[SheetSource]:
    if sheet is None or isinstance(sheet, SheetSource):
        return sheet
    if isinstance(sheet, Worksheet):
        return OpenpyxlSheet(sheet)
    if hasattr(sheet, "nrows"):
        return XlrdSheet(sheet)
    raise TypeError(f"Unsupported sheet object: {type(sheet).__name__}")


def load_workbook_source(path: Path) -> WorkbookSource:
    """
    Open a workbook file with the backend matching its extension.

    Raises:
        ImportError         if a .xls file is given and xlrd is missing.
        InvalidFormatError  if the file cannot be parsed as a workbook.
    """
    suffix = path.suffix.lower()
    if suffix in LEGACY_FORMATS:
        try:
            import xlrd
        except ImportError:
            raise ImportError(".xls files require xlrd: run pip install xlrd")
        try:
            book = xlrd.open_workbook(str(path))
        except Exception as exc:
            raise InvalidFormatError(f"Could not open workbook: {exc}") from exc
        return XlrdWorkbook(book)

    try:
        workbook = load_workbook(path, data_only=True)
    except Exception as exc:
        raise InvalidFormatError(f"Could not open workbook: {exc}") from exc
    return OpenpyxlWorkbook(workbook)


# ══════════════════════════════════════════════════════════════════════════════
# CELLS AND ROWS
# ══════════════════════════════════════════════════════════════════════════════

class ExcelTableCell(TableCell):
    """
    A sheet cell read through the typed accessors.

    Numbers render as text without a redundant ``.0``, booleans render as
    ``"true"``/``"false"`` and blanks as ``""``. Dates, errors and other
    values have no typed reading.
    """

    def __init__(self, cell: Optional[SheetCell], trim_whitespace: bool = False) -> None:
        self.cell = cell
        self.trim_whitespace = trim_whitespace

    @property
    def cell_type(self) -> Optional[CellType]:
        return self.cell.cell_type if self.cell is not None else None

    def is_empty(self) -> bool:
        if self.cell is None or self.cell.cell_type is CellType.BLANK:
            return True
        return self.cell.cell_type is CellType.STRING and not self.cell.value

    def get_string_value(self) -> Optional[str]:
        if self.cell is None:
            return None
        cell_type, value = self.cell.cell_type, self.cell.value
        if cell_type is CellType.STRING:
            return value.strip() if self.trim_whitespace else value
        if cell_type is CellType.NUMERIC:
            return format_number(value)
        if cell_type is CellType.BLANK:
            return ""
        if cell_type is CellType.BOOLEAN:
            return "true" if value else "false"
        return None

    def get_int_value(self) -> Optional[int]:
        if self.cell is None:
            return None
        cell_type, value = self.cell.cell_type, self.cell.value
        if cell_type is CellType.NUMERIC:
            return number_to_int(value)
        if cell_type is CellType.STRING:
            return parse_int(value)
        if cell_type is CellType.BOOLEAN:
            return 1 if value else 0
        return None

    def get_float_value(self) -> Optional[float]:
        if self.cell is None:
            return None
        cell_type, value = self.cell.cell_type, self.cell.value
        if cell_type is CellType.NUMERIC:
            return float(value)
        if cell_type is CellType.STRING:
            return parse_float(value)
        if cell_type is CellType.BOOLEAN:
            return 1.0 if value else 0.0
        return None

    def get_boolean_value(self) -> Optional[bool]:
        if self.cell is None:
            return None
        cell_type, value = self.cell.cell_type, self.cell.value
        if cell_type is CellType.NUMERIC:
            return number_to_boolean(value)
        if cell_type is CellType.STRING:
            return parse_boolean(value)
        if cell_type is CellType.BOOLEAN:
            return bool(value)
        return None


class ExcelTableRow(TableRow):
    """
    A sheet row resolved against the table header.

    ``get_cell`` returns the cell at the first column registered for the
    field, even when that cell is blank.
    """

    def __init__(
        self,
        header: FieldMapHeader[int],
        row: Optional[list[SheetCell]],
        trim_values: bool = False,
    ) -> None:
        self._header = header if header is not None else FieldMapHeader()
        self._row = row
        self._trim_values = trim_values

    def _sheet_cell(self, index: Optional[int]) -> Optional[SheetCell]:
        if self._row is None or index is None or not 0 <= index < len(self._row):
            return None
        return self._row[index]

    def _wrap(self, cell: Optional[SheetCell]) -> ExcelTableCell:
        return ExcelTableCell(cell, self._trim_values)

    @property
    def header(self) -> Header:
        return self._header

    def get_cell(self, field: Term) -> TableCell:
        return self._wrap(self._sheet_cell(self._header.get_value(field)))

    def get_cells(self, field: Term) -> list[TableCell]:
        cells: list[TableCell] = []
        for index in self._header.get_values(field):
            cell = self._sheet_cell(index)
            if cell is not None:
                cells.append(self._wrap(cell))
        return cells

    def get_cells_by_name(self, field_name: str) -> Multimap[Optional[str], TableCell]:
        cells: Multimap[Optional[str], TableCell] = Multimap()
        for language, indexes in self._header.get_values_by_name(field_name).items():
            for index in indexes:
                cell = self._sheet_cell(index)
                if cell is not None:
                    cells.put(language, self._wrap(cell))
        return cells


# ══════════════════════════════════════════════════════════════════════════════
# TABLES
# ══════════════════════════════════════════════════════════════════════════════

class ExcelTable(Table):
    """A worksheet read as a table; closing it leaves the workbook open."""

    def __init__(self, sheet: Any, trim_header: bool = True, trim_values: bool = False) -> None:
        self.sheet = as_sheet_source(sheet)
        self.trim_values = trim_values
        self._header = self._parse_header(trim_header)
        row_count = self.sheet.row_count if self.sheet is not None else 0
        self._number_of_records = max(0, row_count - 1)
        self._next_row = 0
        logger.debug(
            "Opened sheet %r: %d fields, %d records",
            self.name, self._header.num_fields, self._number_of_records,
        )

    def _parse_header(self, trim_header: bool) -> FieldMapHeader[int]:
        header: FieldMapHeader[int] = FieldMapHeader()
        if self.sheet is None or self.sheet.row_count == 0:
            return header
        for index, cell in enumerate(self.sheet.row(0) or []):
            label = ExcelTableCell(cell).get_string_value()
            if label is None:
                continue
            if trim_header:
                label = label.strip()
            if not label.strip():
                continue
            header.put(Term(label), index)
        return header

    @property
    def name(self) -> Optional[str]:
        return self.sheet.name if self.sheet is not None else None

    @property
    def header(self) -> Header:
        return self._header

    @property
    def number_of_records(self) -> int:
        return self._number_of_records

    @property
    def number_of_columns(self) -> int:
        return self._header.num_fields

    @property
    def position(self) -> int:
        return self._next_row

    def is_empty(self) -> bool:
        return self._header.is_empty() or self._number_of_records == 0

    def get_row(self, index: int) -> Optional[ExcelTableRow]:
        """Random access to the 0-based data record ``index``."""
        if not 0 <= index < self._number_of_records:
            return None
        return ExcelTableRow(self._header, self.sheet.row(index + 1), self.trim_values)

    def get_next_row(self) -> Optional[ExcelTableRow]:
        row = self.get_row(self._next_row)
        if self._next_row < self._number_of_records:
            self._next_row += 1
        return row

    def reset(self) -> None:
        self._next_row = 0

    def __repr__(self) -> str:
        return f"ExcelTable(name={self.name!r})"


# ══════════════════════════════════════════════════════════════════════════════
# DATASET
# ══════════════════════════════════════════════════════════════════════════════

class ExcelDataset(TabularDataset):
    """A workbook whose sheets are tables, named after the sheet tabs."""

    def __init__(self, workbook: Any, trim_header: bool = True, trim_values: bool = False) -> None:
        self.workbook = as_workbook_source(workbook)
        self.trim_header = trim_header
        self.trim_values = trim_values

    def get_table(self, table_name: str) -> Optional[ExcelTable]:
        if table_name is None:
            return None
        sheet = self.workbook.sheet(table_name)
        if sheet is None:
            return None
        return ExcelTable(sheet, self.trim_header, self.trim_values)

    def get_table_names(self) -> list[str]:
        return self.workbook.sheet_names()

    def close(self) -> None:
        self.workbook.close()
