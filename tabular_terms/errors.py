"""Errors raised while opening datasets and tables.

Reading cells and rows never raises; these only surface from construction.
"""

from __future__ import annotations


class TabularError(Exception):
    pass


class InvalidFormatError(TabularError, ValueError):
    """The path has the wrong kind, or its content is not a readable workbook."""
