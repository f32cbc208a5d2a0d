"""Spreadsheet CSV parsing and latest-row lookup.

Keep all network calls out of here; parsing and column detection are
deterministic and unit-testable on plain strings.

Column selection:
- driver: first header containing ``user`` or ``name``
- mileage: first header containing ``mileage`` (or the form's mileage field id)
- otherwise fall back to columns ``1`` and ``2`` (column ``0`` is the
  form timestamp)
"""

from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass

from pytriplog.models.mirror import MirrorSnapshot

DRIVER_HEADER_KEYWORDS: tuple[str, ...] = ("user", "name")
MILEAGE_HEADER_KEYWORDS: tuple[str, ...] = ("mileage", "1493291277")
FALLBACK_DRIVER_COLUMN = 1
FALLBACK_MILEAGE_COLUMN = 2
UNKNOWN_DRIVER = "Unknown"

# Driver cells that read as "no driver" in spreadsheet exports.
_PLACEHOLDER_DRIVERS = frozenset({"", "--", "nan"})


@dataclass(frozen=True, slots=True)
class SheetTable:
    headers: list[str]
    rows: list[list[str]]


@dataclass(frozen=True, slots=True)
class SheetColumns:
    driver: int
    mileage: int
    driver_from_header: bool
    mileage_from_header: bool


def parse_csv(text: str) -> list[list[str]]:
    """Split CSV text into rows, dropping a trailing blank row."""
    rows = [list(row) for row in csv.reader(io.StringIO(text, newline=""))]
    while rows and (not rows[-1] or rows[-1] == [""]):
        rows.pop()
    return rows


def parse_table(text: str) -> SheetTable:
    rows = parse_csv(text)
    if not rows:
        return SheetTable(headers=[], rows=[])
    return SheetTable(headers=rows[0], rows=rows[1:])


def _find_header(headers: list[str], keywords: tuple[str, ...]) -> int | None:
    for index, header in enumerate(headers):
        lowered = header.lower()
        if any(keyword in lowered for keyword in keywords):
            return index
    return None


def locate_columns(headers: list[str]) -> SheetColumns:
    driver = _find_header(headers, DRIVER_HEADER_KEYWORDS)
    mileage = _find_header(headers, MILEAGE_HEADER_KEYWORDS)
    return SheetColumns(
        driver=driver if driver is not None else FALLBACK_DRIVER_COLUMN,
        mileage=mileage if mileage is not None else FALLBACK_MILEAGE_COLUMN,
        driver_from_header=driver is not None,
        mileage_from_header=mileage is not None,
    )


def strip_quotes(value: str) -> str:
    """Remove one leading and one trailing double quote, then whitespace."""
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def clean_mileage(value: str) -> str:
    return strip_quotes(value).replace(",", "").strip()


def parse_mileage(value: str) -> float | None:
    cleaned = clean_mileage(value)
    try:
        result = float(cleaned)
    except ValueError:
        return None
    return result if math.isfinite(result) else None


def _cell(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def latest_snapshot(table: SheetTable) -> MirrorSnapshot | None:
    """Return the last data row as a snapshot, or ``None`` for an empty sheet.

    Empty or placeholder (``--``, ``NaN``) driver cells read as
    ``"Unknown"`` and empty mileage cells as ``"0"``; a mileage that still does not parse yields ``odometer=None``.
    """
    if not table.rows:
        return None
    columns = locate_columns(table.headers)
    last = table.rows[-1]
    driver = strip_quotes(_cell(last, columns.driver))
    if driver.casefold() in _PLACEHOLDER_DRIVERS:
        driver = UNKNOWN_DRIVER
    mileage = _cell(last, columns.mileage) or "0"
    return MirrorSnapshot(driver_name=driver, odometer=parse_mileage(mileage))
