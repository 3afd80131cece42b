from __future__ import annotations

import re
from typing import Tuple

from .errors import AppError, MALFORMED_ADDRESS


_COL_RE = re.compile(r"^[A-Z]+$")
_CELL_RE = re.compile(r"^\$?([A-Za-z]+)\$?(\d+)$")

# Excel limits (XFD / 1048576)
MAX_COLUMN = 16384
MAX_ROW = 1048576


def col_letters_to_index(col: str) -> int:
    """
    Convert Excel column letters to 1-based index (A->1, Z->26, AA->27).
    """
    s = (col or "").strip().upper()
    if not s or not _COL_RE.match(s):
        raise AppError(MALFORMED_ADDRESS, f"Bad column: {col!r}")
    n = 0
    for ch in s:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n


def col_index_to_letters(n: int) -> str:
    """
    Convert 1-based index to Excel column letters (1->A).
    """
    if n <= 0:
        raise AppError(MALFORMED_ADDRESS, f"Bad column index: {n}")
    out = []
    x = n
    while x:
        x, rem = divmod(x - 1, 26)
        out.append(chr(ord("A") + rem))
    return "".join(reversed(out))


def parse_cell_ref(ref: str) -> Tuple[int, int]:
    """
    Decode a cell reference like 'B7' or '$B$7' into 1-based (row, column).
    """
    s = (ref or "").strip()
    m = _CELL_RE.match(s)
    if not m:
        raise AppError(MALFORMED_ADDRESS, f"Bad cell reference: {ref!r}")
    col = col_letters_to_index(m.group(1))
    row = int(m.group(2))
    if row <= 0 or row > MAX_ROW:
        raise AppError(MALFORMED_ADDRESS, f"Row out of range in {ref!r}")
    if col > MAX_COLUMN:
        raise AppError(MALFORMED_ADDRESS, f"Column out of range in {ref!r}")
    return row, col


def format_cell_ref(row: int, col: int) -> str:
    return f"{col_index_to_letters(col)}{row}"


def split_sheet_address(address: str) -> Tuple[str, str]:
    """
    Split "'My Sheet'!A1:C10" into ("My Sheet", "A1:C10").

    Quoted sheet names may contain '!' and use '' for a literal quote.
    Unquoted names are taken up to the last '!'.
    """
    s = (address or "").strip()
    if s.startswith("'"):
        i = 1
        name_chars = []
        while i < len(s):
            ch = s[i]
            if ch == "'":
                if i + 1 < len(s) and s[i + 1] == "'":
                    name_chars.append("'")
                    i += 2
                    continue
                break
            name_chars.append(ch)
            i += 1
        else:
            raise AppError(MALFORMED_ADDRESS, f"Unterminated sheet name in {address!r}")
        rest = s[i + 1:]
        if not rest.startswith("!"):
            raise AppError(MALFORMED_ADDRESS, f"Expected '!' after sheet name in {address!r}")
        name = "".join(name_chars)
        cells = rest[1:]
    else:
        name, sep, cells = s.rpartition("!")
        if not sep:
            raise AppError(MALFORMED_ADDRESS, f"Missing sheet name in {address!r}")

    if name.strip() == "":
        raise AppError(MALFORMED_ADDRESS, f"Missing sheet name in {address!r}")
    if cells.strip() == "":
        raise AppError(MALFORMED_ADDRESS, f"Missing cell reference in {address!r}")
    return name, cells.strip()


def quote_sheet_name(name: str) -> str:
    return "'" + name.replace("'", "''") + "'"
