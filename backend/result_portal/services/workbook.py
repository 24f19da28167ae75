"""
Workbook Decoder - reads an uploaded spreadsheet into named cell grids.

Supported containers:
1. Office Open XML workbooks (.xlsx / .xlsm), read with openpyxl
2. Delimited text (.csv), read as a single sheet

Every cell comes out as str, int, float or None so the normalizer never
has to know which container the data came from.
"""

import csv
import io
import math
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, List, Optional, Union
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from result_portal.exceptions import DecodeError
from result_portal.logging_config import get_logger, log_with_context

logger = get_logger("ingest")

ZIP_MAGIC = b"PK\x03\x04"
OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
CSV_SHEET_NAME = "Sheet1"
CSV_DELIMITERS = ",;\t|"
TEXT_ENCODINGS = ("utf-8-sig", "cp1252")

Cell = Union[str, int, float, None]


@dataclass
class Sheet:
    """A named, rectangular grid of cells."""
    name: str
    rows: List[List[Cell]] = field(default_factory=list)


def _normalize_cell(value: Any) -> Cell:
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, int):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    text = str(value)
    return text if text.strip() else None


def _rectangular(rows: List[List[Cell]]) -> List[List[Cell]]:
    """Drop trailing empty rows and pad every row to the same width."""
    while rows and all(cell is None for cell in rows[-1]):
        rows.pop()
    width = max((len(row) for row in rows), default=0)
    return [row + [None] * (width - len(row)) for row in rows]


def _read_xlsx(data: bytes) -> List[Sheet]:
    try:
        workbook = load_workbook(filename=io.BytesIO(data), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, ValueError, OSError) as e:
        raise DecodeError(f"File is not a valid Excel workbook: {e}") from e

    # read-only worksheets parse their XML lazily, while rows are iterated
    sheets = []
    try:
        for worksheet in workbook.worksheets:
            rows = [
                [_normalize_cell(value) for value in row]
                for row in worksheet.iter_rows(values_only=True)
            ]
            sheets.append(Sheet(name=worksheet.title, rows=_rectangular(rows)))
    except (ParseError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise DecodeError(f"File is not a valid Excel workbook: {e}") from e
    finally:
        workbook.close()
    return sheets


def _decode_text(data: bytes) -> str:
    if b"\x00" in data:
        raise DecodeError("File is not a recognizable spreadsheet (binary content)")
    for encoding in TEXT_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise DecodeError("File is not a recognizable spreadsheet (unknown text encoding)")


def _guess_delimiter(sample: str) -> str:
    try:
        return csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _read_csv(data: bytes) -> List[Sheet]:
    text = _decode_text(data)
    delimiter = _guess_delimiter(text[:65536])
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        rows = [[_normalize_cell(value) for value in row] for row in reader]
    except csv.Error as e:
        raise DecodeError(f"File is not a valid CSV file: {e}") from e
    return [Sheet(name=CSV_SHEET_NAME, rows=_rectangular(rows))]


def decode_workbook(source: Union[str, Path, bytes], filename: Optional[str] = None) -> List[Sheet]:
    """
    Decode a spreadsheet into its sheets, in workbook order.

    The container is recognized from the content, not the file name, so
    uploads stored under a random temporary name still decode.

    Args:
        source: Path to the file, or its raw bytes
        filename: Optional original name, used only in log entries

    Returns:
        List of Sheet objects

    Raises:
        DecodeError: if the content is empty, unreadable, or not a
            workbook this decoder understands
    """
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        try:
            data = Path(source).read_bytes()
        except OSError as e:
            raise DecodeError(f"Could not read uploaded file: {e}") from e
        filename = filename or Path(source).name

    if not data.strip():
        raise DecodeError("Uploaded file is empty")

    if data.startswith(ZIP_MAGIC):
        sheets = _read_xlsx(data)
        container = "xlsx"
    elif data.startswith(OLE2_MAGIC):
        raise DecodeError("Legacy .xls workbooks are not supported; save the file as .xlsx")
    else:
        sheets = _read_csv(data)
        container = "csv"

    log_with_context(logger, "INFO",
        "Decoded {} workbook with {} sheet(s)".format(container, len(sheets)),
        context={"filename": filename},
        extra_data={"bytes": len(data), "sheets": [s.name for s in sheets]})
    return sheets
