"""
Spreadsheet row normalization.

Maps rows with arbitrary, producer-defined headers onto the canonical patient
record. Pure and synchronous: no I/O and no shared state, so it can be run
repeatedly or in parallel on independent datasets.

Responsibilities:
- header resolution through the alias tables in rules.py
- typed parsing with per-field defaults (malformed cells never raise)
- one record per input row, in input order
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import EmptyDatasetError
from .rules import (
    ANGINA_NUMERIC_ALIASES,
    FIELD_ALIASES,
    FIELD_DEFAULTS,
    FLOAT_FIELDS,
    INTEGER_FIELDS,
    NAME_FORMAT,
    PATIENT_ID_FORMAT,
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class PatientRecord:
    patient_id: str
    name: str
    age: int
    gender: str
    resting_hr: int
    systolic_bp: int
    diastolic_bp: int
    st_depression: float
    st_slope: str
    qrs_duration: int
    pr_interval: int
    mets_achieved: float
    max_heart_rate: int
    exercise_duration: int
    angina: bool

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


def header_key(header: Any) -> str:
    """Comparison key for a header: lowercase, ASCII letters and digits only."""
    return _NON_ALNUM.sub("", str(header).lower())


def resolve(row: Mapping[Any, Any], aliases: Sequence[str]) -> Tuple[bool, Any]:
    """
    Find the value of the first alias present in the row.

    Aliases are tried in order and the first alias with a matching header wins,
    even when a later alias's column comes earlier in the sheet. Returns
    (False, None) when nothing matches; the caller applies the field default.
    """
    for alias in aliases:
        wanted = header_key(alias)
        for header in row:
            if header_key(header) == wanted:
                return True, row[header]
    return False, None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _cell_text(value: Any) -> str:
    # Excel columns with blanks come back as floats: 1001.0 -> "1001"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_int(value: Any, default: int) -> int:
    """Leading base-10 integer of the cell, truncating decimals ("45.7" -> 45)."""
    # A cell holding 0 is kept as 0. The Node upload server this replaces used
    # `parseInt(x) || default`, which turned 0 into the default.
    if _is_blank(value) or isinstance(value, bool):
        return default
    if _is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            return default
        return int(value)
    match = _INT_PREFIX.match(str(value))
    if match is None:
        return default
    return int(match.group(1))


def parse_float(value: Any, default: float) -> float:
    if _is_blank(value) or isinstance(value, bool):
        return default
    if _is_number(value):
        parsed = float(value)
    else:
        match = _FLOAT_PREFIX.match(str(value))
        if match is None:
            return default
        parsed = float(match.group(1))
    if not math.isfinite(parsed):
        return default
    return parsed


def parse_gender(value: Any) -> str:
    # Binary collapse: anything not starting with "f" is Male, "Other" included.
    text = FIELD_DEFAULTS["gender"] if _is_blank(value) else _cell_text(value)
    return "Female" if text.lower().startswith("f") else "Male"


def parse_slope(value: Any) -> str:
    # Free text is kept as-is; no check against Upsloping/Flat/Downsloping.
    if _is_blank(value):
        return FIELD_DEFAULTS["st_slope"]
    return value if isinstance(value, str) else _cell_text(value)


def parse_flag(value: Any, numeric_value: Any = None) -> bool:
    """
    Yes-like text in `value`, or the number 1 in `numeric_value`.

    The two are resolved through different alias lists, see
    ANGINA_NUMERIC_ALIASES.
    """
    if not _is_blank(value) and str(value).lower().startswith("y"):
        return True
    return _is_number(numeric_value) and numeric_value == 1


def parse_text(value: Any, default: str) -> str:
    if _is_blank(value):
        return default
    return _cell_text(value).strip() or default


def map_row(row: Mapping[Any, Any], index: int) -> PatientRecord:
    """Build the canonical record for one row; `index` is 1-based."""
    raw = {field: resolve(row, aliases)[1] for field, aliases in FIELD_ALIASES.items()}

    fields: Dict[str, Any] = {
        "patient_id": parse_text(raw["patient_id"], PATIENT_ID_FORMAT.format(index=index)),
        "name": parse_text(raw["name"], NAME_FORMAT.format(index=index)),
        "gender": parse_gender(raw["gender"]),
        "st_slope": parse_slope(raw["st_slope"]),
        "angina": parse_flag(raw["angina"], resolve(row, ANGINA_NUMERIC_ALIASES)[1]),
    }
    for field in INTEGER_FIELDS:
        fields[field] = parse_int(raw[field], FIELD_DEFAULTS[field])
    for field in FLOAT_FIELDS:
        fields[field] = parse_float(raw[field], FIELD_DEFAULTS[field])

    return PatientRecord(**fields)


def normalize_rows(rows: Iterable[Mapping[Any, Any]]) -> List[PatientRecord]:
    """
    Normalize a decoded dataset.

    Raises EmptyDatasetError for zero rows so the caller aborts before any
    persistence attempt.
    """
    rows = list(rows)
    if not rows:
        raise EmptyDatasetError("dataset has no rows")
    return [map_row(row, index) for index, row in enumerate(rows, start=1)]
