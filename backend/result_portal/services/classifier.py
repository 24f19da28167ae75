"""
Sheet Classifier - derives the class and batch a sheet belongs to.

Sheet names are typed by hand ("Batch-9B", "5d", "Class 10 C"), so the
match is a tolerant search rather than a strict format: a run of digits,
optional whitespace, then one batch letter A-D in either case. Only ASCII
digits count as a class number.
A sheet whose name does not match is still ingested, tagged Unknown.
"""

import re
from dataclasses import dataclass
from typing import Tuple, Union

UNKNOWN = "Unknown"

SHEET_NAME_PATTERN = re.compile(r"(\d+)\s*([A-D])", re.IGNORECASE | re.ASCII)


@dataclass(frozen=True)
class Matched:
    class_name: str
    batch: str

    @property
    def tags(self) -> Tuple[str, str]:
        return (self.class_name, self.batch)


@dataclass(frozen=True)
class Unmatched:
    name: str

    @property
    def tags(self) -> Tuple[str, str]:
        return (UNKNOWN, UNKNOWN)


def classify_sheet(name: str) -> Union[Matched, Unmatched]:
    """
    Classify a sheet by its name.

    The digit run is kept verbatim ("09" stays "09"); the letter is
    upper-cased. Never raises.
    """
    match = SHEET_NAME_PATTERN.search(name or "")
    if not match:
        return Unmatched(name=name or "")
    return Matched(class_name=match.group(1), batch=match.group(2).upper())


def sheet_tags(name: str) -> Tuple[str, str]:
    """Return (class, batch) for a sheet name, falling back to Unknown."""
    return classify_sheet(name).tags
