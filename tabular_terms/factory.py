"""Build datasets from paths on disk.

These are the only entry points that raise on bad input; once a dataset is
open, reading from it degrades to ``None`` and empty results instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from tabular_terms.ascii import ASCIIFileDirectoryDataset
from tabular_terms.base import TabularDataset
from tabular_terms.config import ReaderConfig
from tabular_terms.errors import InvalidFormatError
from tabular_terms.excel import ExcelDataset, load_workbook_source

logger = logging.getLogger(__name__)


def _require_path(path: "str | Path | None") -> Path:
    if path is None:
        raise TypeError("Specified path is None")
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path


def create_from_excel(
    path: "str | Path",
    trim_header: bool = True,
    trim_values: bool = False,
) -> ExcelDataset:
    """
    Open a workbook as a dataset with one table per sheet.

    Every sheet must carry its header in the first row; each later row is a
    record.

    Raises:
        TypeError           if ``path`` is None.
        FileNotFoundError   if the file does not exist.
        InvalidFormatError  if the path is a directory or not a readable workbook.
        ImportError         if a .xls file is given and xlrd is missing.
    """
    path = _require_path(path)
    if not path.is_file():
        raise InvalidFormatError(f"'{path.resolve()}' is not a file.")
    workbook = load_workbook_source(path)
    logger.debug("Opened workbook %s with sheets %s", path, workbook.sheet_names())
    return ExcelDataset(workbook, trim_header=trim_header, trim_values=trim_values)


def create_from_ascii_dir(
    path: "str | Path",
    file_extension: Optional[str] = None,
    delimiter: Optional[str] = None,
    config: Optional[ReaderConfig] = None,
) -> ASCIIFileDirectoryDataset:
    """
    Open a directory of delimited text files as a dataset.

    Each matching file is one table named after the file without the
    extension; its first line is the header. ``file_extension`` and
    ``delimiter`` override the matching ``config`` fields. Example file,
    with ``"|"`` as the delimiter (escaped, since it is a regex)::

        id|name|date of birth
        1|Mark|01021970
        2|Matthew|01021972

    Raises:
        TypeError           if ``path`` is None.
        FileNotFoundError   if the directory does not exist.
        InvalidFormatError  if the path is not a directory or the delimiter
                            is not a valid pattern.
    """
    path = _require_path(path)
    if not path.is_dir():
        raise InvalidFormatError(f"'{path.resolve()}' is not a directory.")
    config = (config or ReaderConfig()).merged(file_extension=file_extension, delimiter=delimiter)
    logger.debug("Opened directory %s with %s", path, config)
    return ASCIIFileDirectoryDataset(path, config)


def open_dataset(path: "str | Path", config: Optional[ReaderConfig] = None) -> TabularDataset:
    """Open a directory as delimited text tables and any file as a workbook."""
    path = _require_path(path)
    if path.is_dir():
        return create_from_ascii_dir(path, config=config)
    config = config or ReaderConfig()
    return create_from_excel(path, trim_header=config.trim_header, trim_values=config.trim_values)
