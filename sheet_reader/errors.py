from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class AppError(Exception):
    """
    Reader error with a short code and structured details.
    Raised from the core modules; the CLI renders it with friendly_message().
    """
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if self.details:
            return f"{self.code}: {self.message} ({self.details})"
        return f"{self.code}: {self.message}"


# ── Error codes (keep stable for tests and CLI) ───────────────────────────────

MALFORMED_ADDRESS         = "MALFORMED_ADDRESS"
SHEET_NOT_FOUND           = "SHEET_NOT_FOUND"
MISSING_HEADER_ROW        = "MISSING_HEADER_ROW"
SOURCE_ORDERING_VIOLATION = "SOURCE_ORDERING_VIOLATION"
SOURCE_READ_FAILED        = "SOURCE_READ_FAILED"
FILE_LOCKED               = "FILE_LOCKED"
BAD_OPTION                = "BAD_OPTION"


# ── Friendly message lookup ───────────────────────────────────────────────────

def friendly_message(e: AppError) -> str:
    """
    Return a plain-English one-liner suitable for a terminal.
    Never exposes raw tracebacks or internal code paths.
    """
    code = e.code
    msg  = e.message or ""
    details = e.details or {}

    if code == FILE_LOCKED:
        fname = ""
        if "path" in details:
            fname = f" ({os.path.basename(details['path'])})"
        return f"File is open in another program{fname}. Close it and try again."

    if code == MALFORMED_ADDRESS:
        return (
            "Invalid data address. Use a form like 'Sheet1'!A1 or 'Sheet1'!A1:C10.\n"
            f"({msg})"
        )

    if code == SHEET_NOT_FOUND:
        sheet = details.get("sheet", "")
        name = f" '{sheet}'" if sheet else ""
        return f"Sheet{name} not found in source file. Check that the sheet name is correct."

    if code == MISSING_HEADER_ROW:
        return (
            "A header row was requested but the address range contains no rows.\n"
            f"({msg})"
        )

    if code == SOURCE_ORDERING_VIOLATION:
        return f"The sheet's rows arrived out of order; the read was aborted.\n({msg})"

    if code == SOURCE_READ_FAILED:
        low = msg.lower()
        if "no such file" in low or "not found" in low:
            return "Source file not found. Check that the file path is correct."
        return f"Could not read the source file. Check that it is a valid XLSX.\n({msg})"

    if code == BAD_OPTION:
        option = details.get("option", "")
        if option:
            return f"Invalid value for option '{option}'.\n({msg})"
        return f"Invalid option, please check your configuration.\n({msg})"

    clean = msg.splitlines()[0] if msg else "An unexpected error occurred."
    return clean
