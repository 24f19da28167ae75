"""
Row Normalizer - turns a sheet's cell grid into typed result records.

Processing rules for each sheet:
1. Rows above HEADER_ROW_INDEX are banner/template rows and are skipped
2. The row at HEADER_ROW_INDEX holds the column headers
3. Every non-blank row below it is a candidate result row
4. A row needs both a registration number and a name, otherwise it
   is skipped without raising
5. Marks are coerced to a non-negative number (0 when unusable) and
   the grade is derived from them

Header matching ignores case and whitespace, so "Registration No",
"registration no" and "RegistrationNo" all resolve to the same column.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from result_portal.schemas import ResultRecord
from result_portal.services.workbook import Cell, Sheet

# ──────────────────────────────────────────────────────────────
# Configuration constants
# ──────────────────────────────────────────────────────────────
HEADER_ROW_INDEX = 4              # 0-based: four banner rows, then the header row
DEFAULT_SUBJECT = "English"       # Per-sheet subject is not configurable yet
DEFAULT_EXAM_DATE = "Exam-4"

REGISTRATION_HEADERS = ("Reg", "Registration", "Registration No", "ID")
NAME_HEADERS = ("Name", "Student Name", "Full Name")
MARK_HEADERS = ("Mark", "Marks", "Score")

# Ordered ladder: evaluated top-down, first threshold reached wins
GRADE_THRESHOLDS = (
    (80, "A+"),
    (70, "A"),
    (60, "A-"),
    (50, "B"),
    (40, "C"),
    (33, "D"),
)
FAILING_GRADE = "F"

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class NormalizedSheet:
    """Records produced from one sheet plus row bookkeeping for logs."""
    records: List[ResultRecord] = field(default_factory=list)
    data_rows: int = 0
    rejected: int = 0


def header_key(value: Cell) -> str:
    """Case- and whitespace-insensitive key for a header cell."""
    if value is None:
        return ""
    return re.sub(r"\s+", "", str(value)).lower()


def calculate_grade(marks: float) -> str:
    """Map marks to a letter grade using the threshold ladder."""
    for threshold, grade in GRADE_THRESHOLDS:
        if marks >= threshold:
            return grade
    return FAILING_GRADE


def coerce_marks(value: Cell) -> float:
    """
    Coerce a mark cell to a non-negative float.

    Numbers are used as-is. Strings are read by their leading numeric
    part, so "72.5" and "64 (retest)" both parse. Anything unusable,
    including negative and non-finite values, becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value))
        if not match:
            return 0.0
        number = float(match.group(0))
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _cell_text(value: Cell) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _is_blank(cell: Cell) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


def resolve_columns(header_row: Sequence[Cell]) -> Dict[str, int]:
    """
    Map normalized header text to its column index.

    When a header repeats, the leftmost column keeps the name.
    """
    columns = {}
    for index, cell in enumerate(header_row):
        key = header_key(cell)
        if key and key not in columns:
            columns[key] = index
    return columns


def _first_value(row: Sequence[Cell], columns: Dict[str, int], aliases: Sequence[str]) -> Cell:
    """Return the first non-empty value among the alias columns, in alias order."""
    for alias in aliases:
        index = columns.get(header_key(alias))
        if index is None or index >= len(row):
            continue
        value = row[index]
        if not _is_blank(value):
            return value
    return None


def normalize_row(row: Sequence[Cell], columns: Dict[str, int],
                  class_name: str, batch: str) -> Optional[ResultRecord]:
    """Build a ResultRecord from one data row, or None when the row is rejected."""
    registration_number = _cell_text(_first_value(row, columns, REGISTRATION_HEADERS))
    student_name = _cell_text(_first_value(row, columns, NAME_HEADERS))
    if not registration_number or not student_name:
        return None

    marks = coerce_marks(_first_value(row, columns, MARK_HEADERS))
    return ResultRecord(
        registration_number=registration_number,
        student_name=student_name,
        class_name=class_name,
        batch=batch,
        subject=DEFAULT_SUBJECT,
        marks=marks,
        grade=calculate_grade(marks),
        exam_date=DEFAULT_EXAM_DATE,
    )


def normalize_sheet(sheet: Sheet, class_name: str, batch: str) -> NormalizedSheet:
    """
    Normalize every data row of a sheet.

    Args:
        sheet: Decoded sheet
        class_name: Class tag for every record of this sheet
        batch: Batch tag for every record of this sheet

    Returns:
        NormalizedSheet with the accepted records, the number of
        non-blank data rows, and how many of those were rejected
    """
    result = NormalizedSheet()
    if len(sheet.rows) <= HEADER_ROW_INDEX:
        return result

    columns = resolve_columns(sheet.rows[HEADER_ROW_INDEX])
    for row in sheet.rows[HEADER_ROW_INDEX + 1:]:
        if all(_is_blank(cell) for cell in row):
            continue
        result.data_rows += 1
        record = normalize_row(row, columns, class_name, batch)
        if record is None:
            result.rejected += 1
            continue
        result.records.append(record)
    return result
