"""Read a whole table into a pandas DataFrame of string values."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from tabular_terms.base import Table
from tabular_terms.terms import Term


def table_to_dataframe(table: Table, fields: Optional[Sequence[Term]] = None) -> pd.DataFrame:
    """
    Load every record of ``table`` into a DataFrame.

    Columns follow ``fields`` (default: every header field) and are labelled
    ``str(term)``. Header labels read from files are kept whole, so a column
    written as ``label@en`` is the untagged field ``"label@en"``; only terms
    built with a language render their tag.
    Values are the first non-empty string of each field, ``None`` when the
    field has no value in a row. The table cursor is rewound before and
    after reading.
    """
    fields = list(fields) if fields is not None else table.header.get_fields()
    columns = [str(field) for field in fields]

    table.reset()
    try:
        records = [
            [row.get_field_string_value(field) for field in fields]
            for row in table
        ]
    finally:
        table.reset()

    return pd.DataFrame(records, columns=columns, dtype=object)
