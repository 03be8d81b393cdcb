"""
Spreadsheet decoding: upload bytes -> rows of named cells.

CSV goes through encoding detection and delimiter sniffing; XLS/XLSX are read
with pandas. Only the first sheet is used and its first row is the header.
Blank cells are left out of each row mapping.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from typing import Any, Dict, List

import numpy as np
import pandas as pd
from charset_normalizer import from_bytes

from .errors import DecodeError, UnsupportedFileError
from .rules import CSV_DELIMITERS, SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

RawRow = Dict[str, Any]

# Plain decimal numbers only; "007" stays text so zero-padded ids survive.
_CSV_NUMBER = re.compile(r"^[+-]?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?$")


def _extension(filename: str) -> str:
    dot = filename.rfind(".")
    return filename[dot:].lower() if dot != -1 else ""


def decode_text(raw: bytes) -> str:
    """
    Decode CSV bytes to text with LF newlines.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is stripped.
    - If decode fails, fall back to UTF-8, then to replacement characters.
    """
    match = from_bytes(raw).best()
    decode_used = match.encoding if match is not None else "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and decode_used.lower().replace("-", "_") in ("utf_8", "utf8"):
        decode_used = "utf-8-sig"

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="replace")
            logger.warning("csv is not valid %s or utf-8; decoded with replacement", decode_used)

    return text.replace("\r\n", "\n").replace("\r", "\n")


def _sniff_delimiter(text: str) -> str:
    try:
        return csv.Sniffer().sniff(text[:4096], delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _clean_cell(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _csv_cell(text: str) -> Any:
    """CSV cells that read as numbers become int/float, like cells typed in a workbook."""
    stripped = text.strip()
    if not _CSV_NUMBER.match(stripped):
        return text
    if "." in stripped or "e" in stripped.lower():
        return float(stripped)
    return int(stripped)


def _build_row(headers: List[str], cells: List[Any]) -> RawRow:
    row: RawRow = {}
    for header, cell in zip(headers, cells):
        value = _clean_cell(cell)
        if value is not None and header:
            row[header] = value
    return row


def read_csv_rows(raw: bytes) -> List[RawRow]:
    text = decode_text(raw)
    delimiter = _sniff_delimiter(text)
    try:
        lines = [line for line in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter) if line]
    except csv.Error as e:
        raise DecodeError(f"unreadable csv: {e}") from e

    if not lines:
        return []
    headers = [h.strip() for h in lines[0]]
    return [_build_row(headers, [_csv_cell(c) for c in cells]) for cells in lines[1:]]


def read_excel_rows(raw: bytes) -> List[RawRow]:
    try:
        df = pd.read_excel(io.BytesIO(raw), sheet_name=0, header=0, dtype=object)
    except Exception as e:
        # pandas surfaces engine-specific exceptions (zipfile, xlrd, openpyxl)
        raise DecodeError(f"unreadable workbook: {e}") from e

    headers = [str(c).strip() for c in df.columns]
    return [_build_row(headers, list(cells)) for cells in df.itertuples(index=False, name=None)]


def decode_spreadsheet(filename: str, raw: bytes) -> List[RawRow]:
    """Decode an uploaded CSV/XLS/XLSX file into rows keyed by header."""
    ext = _extension(filename or "")
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileError(
            f"unsupported file type {ext or '(none)'}; expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    rows = read_csv_rows(raw) if ext == ".csv" else read_excel_rows(raw)
    logger.info("decoded %s: %d rows", filename, len(rows))
    return rows
