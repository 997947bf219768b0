"""
Profit and loss extractor.

Reads NSBU management P&L reports: a label column followed by monthly
period columns. Sections are found by their header labels in a first pass;
a second pass collects project revenue and cost lines and classifies
overhead and administrative lines into IFRS expense buckets.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from atabai.services.excel_builder.layout import Period
from atabai.services.excel_reader import SourceRow, SourceSheet
from atabai.services.extractors.common import (
    Values,
    add_values,
    empty_values,
    find_company_name,
    matches_any,
    row_values,
)

logger = structlog.get_logger(__name__)

# Month names used for period column detection
MONTH_LABELS = frozenset({
    "янв", "фев", "мар", "апр", "май", "июн",
    "июл", "авг", "сен", "окт", "ноя", "дек",
    "январь", "февраль", "март", "апрель", "июнь", "июль",
    "август", "сентябрь", "октябрь", "ноябрь", "декабрь",
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
})

# Header search window and minimum months for a period row
PERIOD_SEARCH_ROWS = 15
PERIOD_SEARCH_COLUMNS = 30
MIN_PERIOD_COLUMNS = 3

# Value marking hidden helper rows
HELPER_ROW_VALUE = -1

# Aggregate labels inside the revenue section
REVENUE_SKIP_PATTERNS = [
    re.compile(r"^ДОХОДЫ", re.IGNORECASE),
    re.compile(r"^Субподряд$", re.IGNORECASE),
    re.compile(r"^Внешний Заказчик$", re.IGNORECASE),
    re.compile(r"^Внешний Заказчик[- ]", re.IGNORECASE),
    re.compile(r"^Проекты завершающиеся", re.IGNORECASE),
    re.compile(r"^Проекты не учтенные", re.IGNORECASE),
    re.compile(r"^Доходы от ген", re.IGNORECASE),
    re.compile(r"^Ген услуги", re.IGNORECASE),
    re.compile(r"\(ВГО\)", re.IGNORECASE),  # Intercompany eliminations
]

# Aggregate labels inside the cost of sales section
COGS_SKIP_PATTERNS = [
    re.compile(r"^РАСХОДЫ", re.IGNORECASE),
    re.compile(r"^ПРЯМЫЕ РАСХОДЫ", re.IGNORECASE),
    re.compile(r"^Субподрядные работы", re.IGNORECASE),
    re.compile(r"^Субподряд$", re.IGNORECASE),
    re.compile(r"^Внешний Заказчик", re.IGNORECASE),
    re.compile(r"^Проекты завершающиеся", re.IGNORECASE),
    re.compile(r"^Проекты не учтенные", re.IGNORECASE),
    re.compile(r"^Сырье и материалы", re.IGNORECASE),
    re.compile(r"^Расходы на технику", re.IGNORECASE),
    re.compile(r"^Производственный персонал", re.IGNORECASE),
    re.compile(r"^ФОТ строителей", re.IGNORECASE),
    re.compile(r"^ЕСП строителей", re.IGNORECASE),
    re.compile(r"^Валовая прибыль", re.IGNORECASE),
    re.compile(r"\(ВГО\)", re.IGNORECASE),
]

# Skipped in every section
GLOBAL_SKIP_PATTERNS = [
    re.compile(r"^%$"),
    re.compile(r"^EBITDA", re.IGNORECASE),
    re.compile(r"^Налогооблагаемая база", re.IGNORECASE),
    re.compile(r"^Чистая прибыль", re.IGNORECASE),
    re.compile(r"^Всего расходы", re.IGNORECASE),
    re.compile(r"^SG&A", re.IGNORECASE),
]

SECTION_MARKERS = {
    "revenue": re.compile(r"^ДОХОДЫ", re.IGNORECASE),
    "cogs": re.compile(r"^(РАСХОДЫ|ПРЯМЫЕ РАСХОДЫ)", re.IGNORECASE),
    "overhead": re.compile(r"^Накладные проекта", re.IGNORECASE),
    "admin": re.compile(r"^Административно-хозяйственные", re.IGNORECASE),
    "other_income": re.compile(r"^Прочие доходы", re.IGNORECASE),
    "income_tax": re.compile(r"^Налог на прибыль", re.IGNORECASE),
}

GEN_SERVICES_PATTERN = re.compile(r"^(Ген услуги|Доходы от генуслуг)", re.IGNORECASE)

# Section header in some reports, an admin line in others
OTHER_OPERATING_PATTERN = re.compile(r"^Прочие операционные расходы", re.IGNORECASE)

# Rows after the admin header before OTHER_OPERATING_PATTERN counts as a section
OTHER_OPERATING_SECTION_GAP = 5

OVERHEAD_AGGREGATE_PATTERN = re.compile(r"^Накладные расходы проекта", re.IGNORECASE)


def is_payroll(label: str) -> bool:
    return bool(re.search(r"ФОТ|Фонд оплаты труда", label, re.IGNORECASE))


def is_social_tax(label: str) -> bool:
    return bool(re.match(r"ЕСП", label, re.IGNORECASE))


def is_depreciation(label: str) -> bool:
    return bool(re.search(r"Амортизация", label, re.IGNORECASE))


def is_vehicle(label: str) -> bool:
    return bool(re.search(r"ГСМ|автотранспорт|Аренда транспорта", label, re.IGNORECASE))


@dataclass
class ProfitLossItem:
    """A project line; subheaders carry no values and are never summed."""

    name: str
    values: Values = field(default_factory=list)
    is_subheader: bool = False


@dataclass
class SectionBounds:
    """0-based row positions of the section headers found in pass one."""

    revenue: Optional[int] = None
    cogs: Optional[int] = None
    overhead: Optional[int] = None
    admin: Optional[int] = None
    other_operating: Optional[int] = None
    other_income: Optional[int] = None
    income_tax: Optional[int] = None
    gen_services: Optional[int] = None

    def as_dict(self) -> Dict[str, Optional[int]]:
        return asdict(self)


@dataclass
class ProfitLossSource:
    """Everything the P&L transformer needs from the source sheet."""

    periods: List[Period]
    company_name: Optional[str] = None
    revenue_items: List[ProfitLossItem] = field(default_factory=list)
    cogs_items: List[ProfitLossItem] = field(default_factory=list)
    gen_services: Optional[Values] = None
    overhead: Dict[str, Values] = field(default_factory=dict)
    admin: Dict[str, Values] = field(default_factory=dict)
    depreciation: Values = field(default_factory=list)
    finance_income_items: List[ProfitLossItem] = field(default_factory=list)
    income_tax: Optional[Values] = None
    original_rows: int = 0

    @property
    def period_count(self) -> int:
        return len(self.periods)


def detect_periods(sheet: SourceSheet) -> List[Tuple[str, int]]:
    """
    Find the monthly period columns.

    Returns:
        (label, column) pairs from the first row with at least three month
        names, or a single ("Total", column B) when no such row exists.
    """
    for row in sheet.rows[:PERIOD_SEARCH_ROWS]:
        periods = []
        for column in range(2, PERIOD_SEARCH_COLUMNS + 1):
            value = row.value(column)
            if value is None:
                continue
            text = str(value).strip()
            if text.lower() in MONTH_LABELS:
                periods.append((text, column))
        if len(periods) >= MIN_PERIOD_COLUMNS:
            logger.info("Period columns found", count=len(periods), row=row.number)
            return periods

    logger.warning("No period columns detected, defaulting to column B")
    return [("Total", 2)]


def find_section_bounds(sheet: SourceSheet) -> SectionBounds:
    """Pass one: locate the first header of every section."""
    bounds = SectionBounds()
    other_operating_rows: List[int] = []

    for position, row in enumerate(sheet.rows):
        label = row.label
        if not label:
            continue

        # First matching marker only, in section order
        for name, pattern in SECTION_MARKERS.items():
            if getattr(bounds, name) is None and pattern.search(label):
                setattr(bounds, name, position)
                break

        if bounds.gen_services is None and GEN_SERVICES_PATTERN.search(label):
            bounds.gen_services = position

        if OTHER_OPERATING_PATTERN.search(label):
            other_operating_rows.append(position)

    if bounds.admin is not None:
        for position in other_operating_rows:
            if position > bounds.admin + OTHER_OPERATING_SECTION_GAP:
                bounds.other_operating = position
                break

    logger.info("Section boundaries", **bounds.as_dict())
    return bounds


def _first_of(*positions: Optional[int], default: int) -> int:
    for position in positions:
        if position is not None:
            return position
    return default


class _Collector:
    """Pass two: reads row ranges against the detected period columns."""

    def __init__(self, sheet: SourceSheet, columns: List[int]):
        self.sheet = sheet
        self.columns = columns

    def rows(self, start: int, stop: int):
        for row in self.sheet.rows[max(start, 0):max(stop, 0)]:
            label = row.label
            if not label or matches_any(label, GLOBAL_SKIP_PATTERNS):
                continue
            yield row, label

    def values(self, row: SourceRow) -> Values:
        return row_values(row, self.columns)

    def project_items(self, start: int, stop: int, skip_patterns) -> List[ProfitLossItem]:
        """
        Collect project lines.

        Bold rows are aggregates: kept as subheaders unless they are section
        aggregates. Non-bold rows matching the skip patterns are aggregates
        in poorly formatted files and are dropped.
        """
        items: List[ProfitLossItem] = []
        for row, label in self.rows(start, stop):
            if self.columns and row.value(self.columns[0]) == HELPER_ROW_VALUE:
                continue
            if matches_any(label, skip_patterns):
                continue
            if row.bold:
                items.append(ProfitLossItem(name=label, is_subheader=True))
                continue
            items.append(ProfitLossItem(name=label, values=self.values(row)))
        return items

    def buckets(self, start: int, stop: int, classify, skip) -> Dict[str, Values]:
        """Sum classified lines into named buckets."""
        result: Dict[str, Values] = {}
        for row, label in self.rows(start, stop):
            if skip(label):
                continue
            bucket = classify(label)
            add_values(result.setdefault(bucket, empty_values(len(self.columns))), self.values(row))
        return result


def _overhead_bucket(label: str) -> str:
    if is_payroll(label):
        return "fot"
    if is_social_tax(label):
        return "esp"
    if is_depreciation(label):
        return "depreciation"
    return "other"


def _admin_bucket(label: str) -> str:
    if is_payroll(label):
        return "fot"
    if is_social_tax(label):
        return "esp"
    if is_vehicle(label):
        return "vehicles"
    if is_depreciation(label):
        return "depreciation"
    return "other"


def extract_profit_loss(sheet: SourceSheet) -> ProfitLossSource:
    """
    Extract P&L data from a sheet.

    Args:
        sheet: Normalized source worksheet.

    Returns:
        ProfitLossSource with project items, expense buckets and metadata.
    """
    logger.info("Extracting profit and loss", sheet=sheet.name, rows=len(sheet))

    detected = detect_periods(sheet)
    columns = [column for _, column in detected]
    count = len(columns)
    bounds = find_section_bounds(sheet)
    collect = _Collector(sheet, columns)
    row_count = len(sheet)

    revenue_start = _first_of(bounds.revenue, default=0)
    cogs_start = _first_of(bounds.cogs, default=revenue_start + 1)
    overhead_start = _first_of(bounds.overhead, default=cogs_start + 1)
    admin_start = _first_of(bounds.admin, default=overhead_start + 1)
    admin_end = _first_of(bounds.other_operating, bounds.other_income, bounds.income_tax, default=row_count)
    other_operating_end = _first_of(bounds.other_income, bounds.income_tax, default=row_count)
    other_income_end = _first_of(bounds.income_tax, default=row_count)

    revenue_items = collect.project_items(revenue_start + 1, cogs_start, REVENUE_SKIP_PATTERNS)
    cogs_items = collect.project_items(cogs_start + 1, overhead_start, COGS_SKIP_PATTERNS)

    gen_services = None
    if bounds.gen_services is not None:
        gen_services = collect.values(sheet.rows[bounds.gen_services])

    overhead = collect.buckets(
        overhead_start + 1,
        admin_start,
        _overhead_bucket,
        skip=lambda label: bool(
            OVERHEAD_AGGREGATE_PATTERN.search(label) or SECTION_MARKERS["overhead"].search(label)
        ),
    )
    admin = collect.buckets(
        admin_start + 1,
        admin_end,
        _admin_bucket,
        skip=lambda label: bool(SECTION_MARKERS["admin"].search(label)),
    )

    if bounds.other_operating is not None:
        other_operating = collect.buckets(
            bounds.other_operating + 1,
            other_operating_end,
            lambda label: "depreciation" if is_depreciation(label) else "other",
            skip=lambda label: bool(OTHER_OPERATING_PATTERN.search(label)),
        )
        add_values(overhead.setdefault("depreciation", empty_values(count)), other_operating.get("depreciation", []))
        add_values(admin.setdefault("other", empty_values(count)), other_operating.get("other", []))

    # Single D&A line from overhead and admin depreciation
    depreciation = empty_values(count)
    add_values(depreciation, overhead.pop("depreciation", []))
    add_values(depreciation, admin.pop("depreciation", []))
    depreciation = [None if v == 0 else v for v in depreciation]

    finance_income_items: List[ProfitLossItem] = []
    if bounds.other_income is not None:
        finance_income_items = [
            ProfitLossItem(name=label, values=collect.values(row))
            for row, label in collect.rows(bounds.other_income + 1, other_income_end)
            if not SECTION_MARKERS["other_income"].search(label)
        ]

    income_tax = None
    if bounds.income_tax is not None:
        income_tax = collect.values(sheet.rows[bounds.income_tax])

    result = ProfitLossSource(
        periods=[Period(label) for label, _ in detected],
        company_name=find_company_name(sheet),
        revenue_items=revenue_items,
        cogs_items=cogs_items,
        gen_services=gen_services,
        overhead=overhead,
        admin=admin,
        depreciation=depreciation,
        finance_income_items=finance_income_items,
        income_tax=income_tax,
        original_rows=len(revenue_items) + len(cogs_items),
    )

    logger.info(
        "Profit and loss extracted",
        periods=count,
        revenue_items=len(revenue_items),
        cogs_items=len(cogs_items),
        finance_income_items=len(finance_income_items),
    )

    return result
