"""
Spreadsheet reader for product uploads.

Reads the first sheet of a supplier price list into raw rows: one dict per
data row, keyed by the header row, blank cells as "".
"""

from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union
import structlog

import pandas as pd

from exceptions import SpreadsheetParseError

logger = structlog.get_logger(__name__)

RawRow = dict[str, Any]


def read_spreadsheet_rows(
    file: Union[str, Path, BytesIO],
    filename: Optional[str] = None,
) -> list[RawRow]:
    """
    Parse a spreadsheet into raw rows.

    Args:
        file: File path (str/Path) or file-like object (BytesIO)
        filename: Original file name, used to detect CSV uploads when
                  file is a buffer

    Returns:
        Rows in sheet order. Every value is a string; empty cells are "".

    Raises:
        SpreadsheetParseError: If the file cannot be read
    """
    name = filename or (str(file) if isinstance(file, (str, Path)) else "")
    is_csv = name.lower().endswith(".csv")

    logger.info("reading_spreadsheet", filename=name or None, csv=is_csv)

    try:
        if is_csv:
            df = pd.read_csv(file, dtype=str, keep_default_na=False)
        else:
            # First sheet only
            df = pd.read_excel(
                file,
                sheet_name=0,
                dtype=str,
                keep_default_na=False,
                engine="openpyxl",
            )
    except Exception as e:
        logger.error("spreadsheet_read_failed", filename=name or None, error=str(e))
        raise SpreadsheetParseError(
            message="Failed to read spreadsheet",
            details={"original_error": str(e)}
        )

    df.columns = [str(col).strip() for col in df.columns]
    df = df.fillna("")

    rows = df.to_dict(orient="records")

    logger.info("spreadsheet_read", row_count=len(rows), columns=list(df.columns))

    return rows
