__version__ = "0.1.0"

from tabular_terms.ascii import ASCIIFileDirectoryDataset, ASCIIFileTable, ASCIITableCell, ASCIITableRow
from tabular_terms.base import Table, TableCell, TableRow, TabularDataset
from tabular_terms.config import ReaderConfig
from tabular_terms.errors import InvalidFormatError, TabularError
from tabular_terms.excel import CellType, ExcelDataset, ExcelTable, ExcelTableCell, ExcelTableRow
from tabular_terms.factory import create_from_ascii_dir, create_from_excel, open_dataset
from tabular_terms.header import FieldMapHeader, Header
from tabular_terms.terms import Multimap, Term, TermMap

__all__ = [
    "ASCIIFileDirectoryDataset",
    "ASCIIFileTable",
    "ASCIITableCell",
    "ASCIITableRow",
    "CellType",
    "ExcelDataset",
    "ExcelTable",
    "ExcelTableCell",
    "ExcelTableRow",
    "FieldMapHeader",
    "Header",
    "InvalidFormatError",
    "Multimap",
    "ReaderConfig",
    "Table",
    "TableCell",
    "TableRow",
    "TabularDataset",
    "TabularError",
    "Term",
    "TermMap",
    "__version__",
    "create_from_ascii_dir",
    "create_from_excel",
    "open_dataset",
]
