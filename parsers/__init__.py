"""
Spreadsheet parsers module.
"""

from parsers.spreadsheet_parser import (
    read_spreadsheet_rows,
    RawRow,
)

__all__ = [
    "read_spreadsheet_rows",
    "RawRow",
]
