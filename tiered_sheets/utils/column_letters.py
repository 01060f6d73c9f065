"""
Column letter codec and A1 range helpers.

Column letters are bijective base-26: A=0, Z=25, AA=26, AZ=51, BA=52,
ZZ=701, AAA=702. There is no zero digit, so encoding decrements before
each division.
"""

import re
from typing import Any, Mapping, Optional

_LETTERS_RE = re.compile(r"^[A-Za-z]+$")
_PLAIN_TITLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def index_to_letter(index: int) -> str:
    """
    Convert a 0-based column index to column letters.

    Args:
        index: 0-based column index

    Returns:
        Column letters (e.g. 0 -> "A", 26 -> "AA")

    Raises:
        ValueError: negative index
    """
    if index < 0:
        raise ValueError(f"Column index must be non-negative: {index}")

    letters = ""
    num = index
    while num >= 0:
        letters = chr(num % 26 + ord("A")) + letters
        num = num // 26 - 1
    return letters


def letter_to_index(letters: str) -> int:
    """
    Convert column letters to a 0-based column index.

    Args:
        letters: Column letters, case-insensitive (e.g. "A", "aa")

    Returns:
        0-based column index

    Raises:
        ValueError: empty or non-letter input
    """
    if not letters or not _LETTERS_RE.match(letters):
        raise ValueError(f"Invalid column letters: {letters!r}")

    result = 0
    for char in letters.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def cell_reference(column_index: int, row_index: int) -> str:
    """Single-cell A1 reference from 0-based indices (0, 0 -> "A1")."""
    return f"{index_to_letter(column_index)}{row_index + 1}"


def quote_sheet_title(title: str) -> str:
    """Quote a sheet title for use in an A1 range when it is not a plain identifier."""
    if _PLAIN_TITLE_RE.match(title):
        return title
    escaped = title.replace("'", "''")
    return f"'{escaped}'"


def a1_range(sheet_title: str, last_column_index: int, last_row: int) -> str:
    """
    Range from A1 to the given last column and 1-based last row.

    Degenerate sheets (no columns or rows) collapse to at least A1.

    >>> a1_range("Sheet1", 2, 11)
    'Sheet1!A1:C11'
    """
    last_column = index_to_letter(max(last_column_index, 0))
    return f"{quote_sheet_title(sheet_title)}!A1:{last_column}{max(last_row, 1)}"


def grid_range_to_a1(grid_range: Mapping[str, Any]) -> str:
    """
    Render a Sheets API GridRange (0-based, end-exclusive) as a 1-based A1 range.

    Missing start indices default to 0; a missing end collapses the range to
    its start row/column.
    """
    start_col = grid_range.get("startColumnIndex") or 0
    end_col: Optional[int] = grid_range.get("endColumnIndex")
    if end_col is None:
        end_col = start_col + 1
    start_row = (grid_range.get("startRowIndex") or 0) + 1
    end_row: Optional[int] = grid_range.get("endRowIndex")
    if end_row is None:
        end_row = start_row
    last_col = max(end_col - 1, start_col)
    return f"{index_to_letter(start_col)}{start_row}:{index_to_letter(last_col)}{end_row}"
