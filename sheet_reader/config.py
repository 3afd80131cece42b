from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .errors import AppError, BAD_OPTION
from .models import ReconciliationPolicy
from .reconcile import WIDTH_FROM_HEADER, WIDTH_SOURCES


logger = logging.getLogger("sheet_reader")


# camelCase spellings accepted alongside the field names
_ALIASES = {
    "keepUndefinedRows": "keep_undefined_rows",
    "dataAddress": "data_address",
    "maxRowsInMemory": "max_rows_in_memory",
    "columnNameOfRowNumber": "column_name_of_row_number",
    "widthFrom": "width_from",
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    raise AppError(BAD_OPTION, f"{name} must be true or false (got {value!r})", {"option": name})


def _to_optional_int(name: str, value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    if isinstance(value, bool):
        raise AppError(BAD_OPTION, f"{name} must be a number (got {value!r})", {"option": name})
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise AppError(BAD_OPTION, f"{name} must be a number (got {value!r})", {"option": name})
    if n < 1:
        raise AppError(BAD_OPTION, f"{name} must be >= 1 (got {n})", {"option": name})
    return n


def _to_optional_str(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise AppError(BAD_OPTION, f"{name} must be text (got {value!r})", {"option": name})
    s = value.strip()
    return s or None


def _to_schema(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise AppError(BAD_OPTION, f"schema must be a list of names (got {value!r})", {"option": "schema"})


@dataclass
class ReadOptions:
    """
    Options for one read operation.
    Blank max_rows_in_memory means the whole workbook is loaded; any number
    switches to streaming (read-only) mode.
    """
    header: bool = False
    keep_undefined_rows: bool = False
    data_address: Optional[str] = None
    max_rows_in_memory: Optional[int] = None
    column_name_of_row_number: Optional[str] = None
    width_from: str = WIDTH_FROM_HEADER
    schema: Optional[List[str]] = field(default=None)

    @property
    def policy(self) -> ReconciliationPolicy:
        return ReconciliationPolicy(
            keep_undefined_rows=self.keep_undefined_rows,
            has_header=self.header,
        )

    @property
    def streaming(self) -> bool:
        return self.max_rows_in_memory is not None

    # ---------- Serialization ----------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReadOptions":
        """
        Build options from a mapping. Values may be strings ("true", "1000"),
        keys may be snake_case or camelCase. Unknown keys are ignored.
        """
        known = {f for f in cls.__dataclass_fields__}
        normalized: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = _ALIASES.get(key, key)
            if name not in known:
                logger.warning("Ignoring unknown read option %r", key)
                continue
            normalized[name] = value

        width_from = _to_optional_str("width_from", normalized.get("width_from")) or WIDTH_FROM_HEADER
        if width_from not in WIDTH_SOURCES:
            raise AppError(
                BAD_OPTION,
                f"width_from must be one of {WIDTH_SOURCES} (got {width_from!r})",
                {"option": "width_from"},
            )

        return cls(
            header=_to_bool("header", normalized.get("header", False)),
            keep_undefined_rows=_to_bool(
                "keep_undefined_rows", normalized.get("keep_undefined_rows", False)
            ),
            data_address=_to_optional_str("data_address", normalized.get("data_address")),
            max_rows_in_memory=_to_optional_int(
                "max_rows_in_memory", normalized.get("max_rows_in_memory")
            ),
            column_name_of_row_number=_to_optional_str(
                "column_name_of_row_number", normalized.get("column_name_of_row_number")
            ),
            width_from=width_from,
            schema=_to_schema(normalized.get("schema")),
        )

    # ---------- File IO ----------

    def save_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_json(cls, path: str) -> "ReadOptions":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise AppError(BAD_OPTION, f"Options file not found: {path}", {"path": path})
        except json.JSONDecodeError as e:
            raise AppError(BAD_OPTION, f"Options file is not valid JSON: {e}", {"path": path})
        if not isinstance(data, dict):
            raise AppError(BAD_OPTION, "Options file must contain a JSON object", {"path": path})
        return cls.from_dict(data)
