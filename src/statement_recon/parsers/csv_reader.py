"""
Lenient tokenizer for hand-exported bank statement CSV text.

Quoting follows RFC 4180 (a doubled quote inside a quoted field is a literal
quote, quoted fields may hold the delimiter and line breaks). Irregular input
never raises: an unterminated quote runs to the end of the text.
"""

import logging

logger = logging.getLogger(__name__)

QUOTE = '"'


def read_rows(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Split delimited text into rows of trimmed cell strings.

    Rows made only of blank cells are dropped.

    Args:
        text: Raw statement text
        delimiter: Single-character cell separator

    Returns:
        Ordered list of rows, each an ordered list of cells
    """
    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    def end_row() -> None:
        nonlocal row
        if any(value != "" for value in row):
            rows.append(row)
        row = []

    while i < length:
        char = text[i]

        if char == QUOTE:
            if in_quotes and i + 1 < length and text[i + 1] == QUOTE:
                cell.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            row.append("".join(cell).strip())
            cell = []
        elif char in "\r\n" and not in_quotes:
            if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            if cell or row:
                row.append("".join(cell).strip())
                cell = []
                end_row()
        else:
            cell.append(char)
        i += 1

    if in_quotes:
        logger.warning("Unterminated quoted field at end of statement text; keeping partial cell")

    if cell or row:
        row.append("".join(cell).strip())
        end_row()

    return rows
