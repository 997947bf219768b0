"""Helpers shared by the statement extractors."""

import re
from typing import List, Optional, Pattern, Sequence

from atabai.services.excel_reader import SourceRow, SourceSheet
from atabai.services.numeric_parser import Number, get_numeric_parser

Values = List[Optional[Number]]

# Report titles that precede the company line
TITLE_PATTERN = re.compile(
    r"отч[её]т|report|statement|форма|form\b|баланс|hisobot",
    re.IGNORECASE,
)

PERIOD_PATTERN = re.compile(r"\b(19|20)\d{2}\b|за\s+\S+|period|период", re.IGNORECASE)

# Taxpayer id line: "ИНН 302345678", "INN: 302345678"
TAX_ID_PATTERN = re.compile(r"\b(?:ИНН|INN|STIR)\b\W*(\d{6,})", re.IGNORECASE)

# Company name search window at the top of the sheet
METADATA_ROWS = 6


def matches_any(label: str, patterns: Sequence[Pattern]) -> bool:
    return any(pattern.search(label) for pattern in patterns)


def row_values(row: SourceRow, columns: Sequence[int]) -> Values:
    """Parsed numbers of a row for the given 1-based columns."""
    parser = get_numeric_parser()
    return [parser.to_number(row.value(col)) for col in columns]


def add_values(total: Values, values: Sequence[Optional[Number]]) -> Values:
    """
    Element-wise sum that keeps None where both sides are empty.

    Args:
        total: Accumulator, modified in place.
        values: Values to add, same length as ``total``.

    Returns:
        The accumulator.
    """
    for i, value in enumerate(values):
        if value is None:
            continue
        total[i] = value if total[i] is None else total[i] + value
    return total


def empty_values(count: int) -> Values:
    return [None] * count


def find_company_name(sheet: SourceSheet, before_row: Optional[int] = None) -> Optional[str]:
    """First text label near the top of the sheet that is not a report title."""
    limit = min(METADATA_ROWS, len(sheet))
    if before_row is not None:
        limit = min(limit, before_row - 1)

    for row in sheet.rows[:limit]:
        label = row.label
        if not label or not isinstance(row.value(1), str):
            continue
        if TITLE_PATTERN.search(label) or PERIOD_PATTERN.search(label) or TAX_ID_PATTERN.search(label):
            continue
        return label
    return None


def find_period_line(sheet: SourceSheet, before_row: Optional[int] = None) -> Optional[str]:
    """Label near the top of the sheet naming the reporting period."""
    limit = min(METADATA_ROWS, len(sheet))
    if before_row is not None:
        limit = min(limit, before_row - 1)

    for row in sheet.rows[:limit]:
        for value in row.values:
            if isinstance(value, str) and PERIOD_PATTERN.search(value):
                return value.strip()
    return None


def find_tax_id(sheet: SourceSheet, before_row: Optional[int] = None) -> Optional[str]:
    """Taxpayer id (INN) from the metadata rows, label and number in one or adjacent cells."""
    limit = min(METADATA_ROWS, len(sheet))
    if before_row is not None:
        limit = min(limit, before_row - 1)

    for row in sheet.rows[:limit]:
        text = " ".join(str(value) for value in row.values if value is not None)
        match = TAX_ID_PATTERN.search(text)
        if match:
            return match.group(1)
    return None
