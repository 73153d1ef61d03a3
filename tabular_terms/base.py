"""Format-independent contracts for cells, rows, tables and datasets."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from tabular_terms.header import Header
from tabular_terms.terms import Multimap, Term


class TableCell(ABC):
    """
    The atomic value of a table.

    Typed accessors never raise. They return ``None`` when the underlying
    value cannot be read as the requested type. A blank cell reads as ``""``
    from ``get_string_value`` so that "present but blank" stays distinct from
    "not present".
    """

    @abstractmethod
    def get_string_value(self) -> Optional[str]:
        ...

    @abstractmethod
    def get_int_value(self) -> Optional[int]:
        ...

    @abstractmethod
    def get_float_value(self) -> Optional[float]:
        ...

    @abstractmethod
    def get_boolean_value(self) -> Optional[bool]:
        """
        ``"true", "yes", "y", "t", "1"`` -> True
        ``"false", "no", "n", "f", "0"`` -> False
        anything else -> None
        """

    @abstractmethod
    def is_empty(self) -> bool:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_string_value()!r})"


class Tabular(ABC):
    @property
    @abstractmethod
    def header(self) -> Header:
        """The header of this structure; an empty header rather than ``None``."""


class TableRow(Tabular):
    """
    One record of a table, resolved through the table header.

    A field may map to zero, one or several cells. Subclasses decide which
    cell ``get_cell`` picks when several match; the typed ``get_field_*``
    helpers below are shared by every row type.
    """

    @abstractmethod
    def get_cell(self, field: Term) -> TableCell:
        """Return a cell for ``field``; an empty cell when nothing matches."""

    @abstractmethod
    def get_cells(self, field: Term) -> list[TableCell]:
        ...

    @abstractmethod
    def get_cells_by_name(self, field_name: str) -> Multimap[Optional[str], TableCell]:
        """Cells of every language variant of ``field_name``, keyed by language."""

    def get_field_string_value(self, field: Term) -> Optional[str]:
        """First non-empty string value of ``field``, if any."""
        preferred = None
        for cell in self.get_cells(field):
            if cell is None or cell.is_empty():
                continue
            value = cell.get_string_value()
            if value is None:
                continue
            if value:
                return value
            if preferred is None:
                preferred = value
        return preferred

    def get_field_int_value(self, field: Term) -> Optional[int]:
        for cell in self.get_cells(field):
            if cell is not None and not cell.is_empty():
                value = cell.get_int_value()
                if value is not None:
                    return value
        return None

    def get_field_float_value(self, field: Term) -> Optional[float]:
        for cell in self.get_cells(field):
            if cell is not None and not cell.is_empty():
                value = cell.get_float_value()
                if value is not None:
                    return value
        return None

    def get_field_boolean_value(self, field: Term) -> Optional[bool]:
        for cell in self.get_cells(field):
            if cell is not None and not cell.is_empty():
                value = cell.get_boolean_value()
                if value is not None:
                    return value
        return None

    def to_dict(self) -> dict[str, Optional[str]]:
        """String values keyed by ``str(term)`` for every header field."""
        return {str(field): self.get_field_string_value(field) for field in self.header.get_fields()}


class Table(Tabular):
    """
    A named collection of rows sharing one header, read through a cursor.

    The cursor starts at 0 and moves forward one record per
    ``get_next_row`` call until it reaches ``number_of_records``.
    """

    @property
    @abstractmethod
    def name(self) -> Optional[str]:
        ...

    @property
    @abstractmethod
    def number_of_records(self) -> int:
        ...

    @property
    @abstractmethod
    def position(self) -> int:
        ...

    @abstractmethod
    def get_next_row(self) -> Optional[TableRow]:
        """Return the row under the cursor and advance; ``None`` once exhausted."""

    @abstractmethod
    def reset(self) -> None:
        ...

    def close(self) -> None:
        pass

    def __iter__(self) -> Iterator[TableRow]:
        while True:
            row = self.get_next_row()
            if row is None:
                return
            yield row

    def __enter__(self) -> "Table":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class TabularDataset(ABC):
    """A collection of named tables backed by one workbook or directory."""

    @abstractmethod
    def get_table(self, table_name: str) -> Optional[Table]:
        ...

    @abstractmethod
    def get_table_names(self) -> list[str]:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "TabularDataset":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
