"""
Cash flow statement extractor.

Reads two source layouts:

* Coded NSBU forms (Form 4): a label column, a line-code column and one
  value column per reporting period. Values are aggregated per normalized
  line code; codes without a mapping are reported and skipped.
* Label-based monthly reports: line names in column A grouped under
  activity section headers and "приток" / "отток" subsections, with a
  period header row marked "CF". Used when no line-code column is found.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import structlog

from atabai.exceptions import ExtractionError
from atabai.mappings import (
    FlowDirection,
    LineMapping,
    MappingRegistry,
    Section,
    get_cash_flow_registry,
    normalize_code,
)
from atabai.services.excel_builder.diagnostics import DiagnosticCode, RenderDiagnostics
from atabai.services.excel_builder.layout import Period
from atabai.services.excel_reader import SourceRow, SourceSheet
from atabai.services.extractors.common import (
    Values,
    add_values,
    empty_values,
    find_company_name,
    find_period_line,
    find_tax_id,
    row_values,
)
from atabai.services.numeric_parser import get_numeric_parser

logger = structlog.get_logger(__name__)

# Line codes sit in one of the first few columns
MAX_CODE_COLUMN = 6

CODED = "coded"
LABELED = "labeled"

# Label-based layout markers, all matched in column A
HEADER_MARKER = "CF"
HEADER_SCAN_ROWS = 5

SECTION_MARKERS = (
    (re.compile(r"операционн\w*\s+деятельност", re.IGNORECASE), Section.OPERATING),
    (re.compile(r"инвестиционн\w*\s+деятельност", re.IGNORECASE), Section.INVESTING),
    (re.compile(r"финансов\w*\s+деятельност", re.IGNORECASE), Section.FINANCING),
)

INFLOW_MARKER = re.compile(r"приток", re.IGNORECASE)
OUTFLOW_MARKER = re.compile(r"отток", re.IGNORECASE)

SUBTOTAL_PATTERN = re.compile(
    r"^(итого|всего|total)\b|^чист\w*\s+(денежн|поток|изменени)",
    re.IGNORECASE,
)

# Reconciliation lines found by label, mapped to their Form 4 codes
RECONCILIATION_LABELS = (
    (re.compile(r"на\s+начало|beginning|opening", re.IGNORECASE), "230"),
    (re.compile(r"на\s+конец|end\s+of|closing", re.IGNORECASE), "240"),
    (re.compile(r"курсов|exchange\s+rate", re.IGNORECASE), "221"),
)


@dataclass
class CashFlowLine:
    """Aggregated source values of one statement line."""

    mapping: LineMapping
    label: str
    values: Values
    source_rows: List[int] = field(default_factory=list)
    labeled: bool = False  # Found by label, not by registry code

    @property
    def code(self) -> str:
        return self.mapping.source_code


@dataclass
class CashFlowSource:
    """Everything the cash flow transformer needs from the source sheet."""

    periods: List[Period]
    lines: Dict[str, CashFlowLine] = field(default_factory=dict)
    company_name: Optional[str] = None
    period_line: Optional[str] = None
    tax_id: Optional[str] = None
    source_format: str = CODED
    code_column: int = 0
    original_rows: int = 0
    unmapped_codes: List[str] = field(default_factory=list)
    diagnostics: RenderDiagnostics = field(default_factory=RenderDiagnostics)

    def line(self, code: Any) -> Optional[CashFlowLine]:
        key = normalize_code(code)
        return self.lines.get(key) if key else None

    def labeled_lines(self, section: Optional[Section] = None) -> List[CashFlowLine]:
        """Label-based lines in source order, optionally of one section."""
        return [
            line for line in self.lines.values()
            if line.labeled and (section is None or line.mapping.section == section)
        ]


def _add_line(
    result: CashFlowSource,
    key: str,
    mapping: LineMapping,
    label: str,
    values: Values,
    row_number: int,
    labeled: bool = False,
) -> None:
    line = result.lines.get(key)
    if line is None:
        line = CashFlowLine(
            mapping=mapping,
            label=label,
            values=empty_values(len(values)),
            labeled=labeled,
        )
        result.lines[key] = line
    else:
        logger.debug("Aggregating repeated line", key=key, row=row_number)

    add_values(line.values, values)
    line.source_rows.append(row_number)


def _find_code_column(sheet: SourceSheet, registry: MappingRegistry) -> Optional[int]:
    """
    Column with the most registered line codes, leftmost on ties.

    A column qualifies only if at least one of its codes is typed as text,
    so amounts that happen to equal a code never make a value column coded.
    """
    best_column, best_hits = None, 0
    for column in range(1, min(sheet.max_column, MAX_CODE_COLUMN) + 1):
        codes = [
            row.value(column) for row in sheet
            if registry.lookup(row.value(column)) is not None
        ]
        if not any(isinstance(code, str) for code in codes):
            continue
        if len(codes) > best_hits:
            best_column, best_hits = column, len(codes)
    return best_column


def _is_numbering_row(row: SourceRow, code_column: int) -> bool:
    """Column-numbering rows ("1 2 3 4") under the form header."""
    if code_column == 1:
        return False
    return normalize_code(row.value(1)) is not None


def _label_of(row: SourceRow, code_column: int) -> Optional[str]:
    for column in range(1, code_column):
        value = row.value(column)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _header_label(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime("%b %Y")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _detect_period_labels(
    sheet: SourceSheet,
    first_coded_row: int,
    period_columns: List[int],
) -> List[Period]:
    """
    Label each period column from the nearest header row above the data.

    A header row has at least one text or date value in the period columns;
    rows of bare numbers (column numbering) are passed over.
    """
    parser = get_numeric_parser()
    labels: List[Optional[str]] = [None] * len(period_columns)

    for number in range(first_coded_row - 1, 0, -1):
        row = sheet.row(number)
        values = [row.value(col) for col in period_columns]
        present = [v for v in values if v is not None]
        if not present:
            continue
        if all(parser.to_number(v) is not None and not _looks_like_year(v) for v in present):
            continue
        labels = [_header_label(v) for v in values]
        break

    return [
        Period(label or f"Period {i + 1}")
        for i, label in enumerate(labels)
    ]


def _looks_like_year(value: Any) -> bool:
    number = get_numeric_parser().to_number(value)
    return number is not None and number.is_integer() and 1900 <= number <= 2100


def extract_cash_flow(
    sheet: SourceSheet,
    registry: Optional[MappingRegistry] = None,
) -> CashFlowSource:
    """
    Extract cash flow lines from a sheet.

    Coded forms are read by line code. Sheets without a line-code column are
    read as label-based monthly reports (see ``extract_labeled_cash_flow``).

    Args:
        sheet: Normalized source worksheet.
        registry: Line-code registry; defaults to the NSBU Form 4 registry.

    Returns:
        CashFlowSource with per-code values, periods and metadata. Unknown
        codes are listed in ``unmapped_codes`` and as NOT_FOUND diagnostics.

    Raises:
        ExtractionError: Neither line codes nor activity sections were found.
    """
    registry = registry or get_cash_flow_registry()
    code_column = _find_code_column(sheet, registry)
    if code_column is None:
        logger.info("No line-code column, reading labels", sheet=sheet.name)
        return extract_labeled_cash_flow(sheet, registry)

    coded_rows = [
        row for row in sheet
        if normalize_code(row.value(code_column)) is not None
        and not _is_numbering_row(row, code_column)
    ]

    parser = get_numeric_parser()
    period_columns = sorted({
        column
        for row in coded_rows
        if registry.lookup(row.value(code_column)) is not None
        for column in range(code_column + 1, len(row.values) + 1)
        if parser.to_number(row.value(column)) is not None
    })

    first_coded_row = coded_rows[0].number if coded_rows else 1
    periods = _detect_period_labels(sheet, first_coded_row, period_columns)

    logger.info(
        "Cash flow layout detected",
        sheet=sheet.name,
        code_column=code_column,
        period_columns=period_columns,
        coded_rows=len(coded_rows),
    )

    result = CashFlowSource(
        periods=periods,
        company_name=find_company_name(sheet, before_row=first_coded_row),
        period_line=find_period_line(sheet, before_row=first_coded_row),
        tax_id=find_tax_id(sheet, before_row=first_coded_row),
        code_column=code_column,
        original_rows=len(coded_rows),
    )

    for row in coded_rows:
        code = normalize_code(row.value(code_column))
        mapping = registry.lookup(code)

        if mapping is None:
            logger.warning("Unmapped line code", code=code, row=row.number)
            result.unmapped_codes.append(code)
            result.diagnostics.add(
                DiagnosticCode.NOT_FOUND,
                f"Line code {code} has no IFRS mapping",
                code=code,
                source_row=row.number,
            )
            continue

        if mapping.is_computed:
            # Recomputed by formula in the output
            logger.debug("Skipping computed source line", code=code, row=row.number)
            continue

        _add_line(
            result,
            code,
            mapping,
            _label_of(row, code_column) or mapping.target_classification,
            row_values(row, period_columns),
            row.number,
        )

    logger.info(
        "Cash flow extracted",
        lines=len(result.lines),
        periods=len(periods),
        unmapped=len(result.unmapped_codes),
    )

    return result


def _section_of(label: str) -> Optional[Section]:
    for pattern, section in SECTION_MARKERS:
        if pattern.search(label):
            return section
    return None


def _direction_of(label: str) -> Optional[FlowDirection]:
    if INFLOW_MARKER.search(label):
        return FlowDirection.INFLOW
    if OUTFLOW_MARKER.search(label):
        return FlowDirection.OUTFLOW
    return None


def _reconciliation_code(label: str) -> Optional[str]:
    for pattern, code in RECONCILIATION_LABELS:
        if pattern.search(label):
            return code
    return None


def _find_labeled_header(sheet: SourceSheet) -> Optional[int]:
    """
    Period header row of a label-based report.

    The row whose column A reads "CF", else the row just above the first
    activity section header.
    """
    for row in sheet.rows[:HEADER_SCAN_ROWS]:
        label = row.label
        if label is None:
            continue
        if label.upper() == HEADER_MARKER:
            return row.number
        if _section_of(label) is not None:
            return row.number - 1 if row.number > 1 else None
    return None


def extract_labeled_cash_flow(
    sheet: SourceSheet,
    registry: Optional[MappingRegistry] = None,
) -> CashFlowSource:
    """
    Extract a label-based monthly cash flow report.

    Lines are grouped by the activity section header and the inflow or
    outflow subsection above them; lines outside a subsection are net flows.
    Subtotal rows are skipped. Opening cash, closing cash and exchange rate
    lines are matched by label to their Form 4 codes.

    Raises:
        ExtractionError: No activity section header was found.
    """
    registry = registry or get_cash_flow_registry()
    header_row = _find_labeled_header(sheet)
    body = [row for row in sheet if header_row is None or row.number > header_row]

    if not any(row.label and _section_of(row.label) for row in body):
        raise ExtractionError(
            f"No NSBU line codes or activity sections found on sheet '{sheet.name}'",
            details={"sheet": sheet.name},
        )

    header = sheet.row(header_row) if header_row else None
    period_columns: List[int] = []
    if header is not None:
        period_columns = [
            column for column in range(2, len(header.values) + 1)
            if _header_label(header.value(column)) is not None
        ]
    if not period_columns:
        parser = get_numeric_parser()
        period_columns = sorted({
            column
            for row in body
            for column in range(2, len(row.values) + 1)
            if parser.to_number(row.value(column)) is not None
        })
        header = None

    periods = [
        Period((_header_label(header.value(column)) if header else None) or f"Period {i + 1}")
        for i, column in enumerate(period_columns)
    ]

    # Metadata sits above the header row
    metadata_end = header_row or 1
    result = CashFlowSource(
        periods=periods,
        company_name=find_company_name(sheet, before_row=metadata_end),
        period_line=find_period_line(sheet, before_row=metadata_end),
        tax_id=find_tax_id(sheet, before_row=metadata_end),
        source_format=LABELED,
    )

    logger.info(
        "Labeled cash flow layout detected",
        sheet=sheet.name,
        header_row=header_row,
        period_columns=period_columns,
    )

    section: Optional[Section] = None
    direction = FlowDirection.NET

    for row in body:
        label = row.label
        if label is None:
            continue

        if SUBTOTAL_PATTERN.search(label):
            logger.debug("Skipping subtotal row", label=label, row=row.number)
            continue

        marker = _section_of(label)
        if marker is not None:
            section, direction = marker, FlowDirection.NET
            continue

        subsection = _direction_of(label)
        if subsection is not None:
            direction = subsection
            continue

        values = row_values(row, period_columns)
        if all(value is None for value in values):
            continue

        result.original_rows += 1

        code = _reconciliation_code(label)
        if code is not None:
            mapping = registry.lookup(code)
            if mapping is not None and not mapping.is_computed:
                _add_line(result, code, mapping, label, values, row.number)
            continue

        if section is None:
            logger.warning("Line outside any activity section", label=label, row=row.number)
            result.diagnostics.add(
                DiagnosticCode.NOT_FOUND,
                f"Line '{label}' is outside any activity section",
                label=label,
                source_row=row.number,
            )
            continue

        key = f"{section.name}/{direction.value}/{label}"
        mapping = LineMapping(key, label, section, direction, description=label)
        _add_line(result, key, mapping, label, values, row.number, labeled=True)

    logger.info(
        "Labeled cash flow extracted",
        lines=len(result.lines),
        periods=len(periods),
    )

    return result
