"""
Layout model for rendered statements.

A layout is an ordered list of typed rows plus a table of named references
and the reporting periods. It is built once per report by a transformer,
consumed by the ExcelBuilder and then discarded.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Iterator, List, Optional, Sequence, Tuple, Union

Number = Union[int, float]
Reference = Union[int, str]  # Logical row index or named reference key


class RowKind(Enum):
    """Kinds of rows in a statement layout."""

    BLANK = "blank"  # Spacer row
    TITLE = "title"  # Section heading (e.g., "I. REVENUE")
    SUBHEADER = "subheader"  # Sub-section label
    ITEM = "item"  # Line item with period values
    TOTAL = "total"  # SUM over a range of items
    CALCULATED = "calculated"  # Addition of referenced rows


@dataclass(frozen=True)
class Period:
    """A reporting period column."""

    label: str


@dataclass(frozen=True)
class SumRange:
    """Half-open range [start, stop) of logical row indices."""

    start: int
    stop: int

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.stop))

    def __len__(self) -> int:
        return max(0, self.stop - self.start)


@dataclass(frozen=True)
class BlankRow:
    kind: ClassVar[RowKind] = RowKind.BLANK


@dataclass(frozen=True)
class TitleRow:
    label: str
    kind: ClassVar[RowKind] = RowKind.TITLE


@dataclass(frozen=True)
class SubheaderRow:
    label: str
    kind: ClassVar[RowKind] = RowKind.SUBHEADER


@dataclass(frozen=True)
class ItemRow:
    """Line item; ``values`` is indexed by period."""

    label: str
    values: Tuple[Optional[Number], ...] = ()
    indent: int = 0
    kind: ClassVar[RowKind] = RowKind.ITEM

    def value_at(self, period_index: int) -> Optional[Number]:
        if 0 <= period_index < len(self.values):
            return self.values[period_index]
        return None


@dataclass(frozen=True)
class TotalRow:
    label: str
    sum_range: SumRange
    kind: ClassVar[RowKind] = RowKind.TOTAL


@dataclass(frozen=True)
class CalculatedRow:
    label: str
    add_refs: Tuple[Reference, ...] = ()
    kind: ClassVar[RowKind] = RowKind.CALCULATED


LayoutRow = Union[BlankRow, TitleRow, SubheaderRow, ItemRow, TotalRow, CalculatedRow]

VALUE_KINDS = frozenset({RowKind.ITEM, RowKind.TOTAL, RowKind.CALCULATED})


def should_alternate(kind: RowKind) -> bool:
    """Whether a row kind takes part in alternating row shading."""
    return kind in (RowKind.SUBHEADER, RowKind.ITEM)


@dataclass
class StatementLayout:
    """Complete layout handed to the ExcelBuilder."""

    periods: List[Period]
    rows: List[LayoutRow]
    named_refs: Dict[str, int] = field(default_factory=dict)
    company_name: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    sheet_name: str = "Statement"
    tax_id: Optional[str] = None

    @property
    def period_count(self) -> int:
        return len(self.periods)

    def __len__(self) -> int:
        return len(self.rows)

    def count(self, kind: RowKind) -> int:
        """Number of rows of the given kind."""
        return sum(1 for row in self.rows if row.kind == kind)


class LayoutBuilder:
    """
    Incrementally assembles a StatementLayout.

    Every ``add_*`` method returns the logical index of the row it appended,
    which transformers keep for later references.
    """

    def __init__(self, period_count: int):
        self.period_count = period_count
        self._rows: List[LayoutRow] = []
        self._named_refs: Dict[str, int] = {}

    @property
    def next_index(self) -> int:
        return len(self._rows)

    def _append(self, row: LayoutRow) -> int:
        self._rows.append(row)
        return len(self._rows) - 1

    def add_blank(self) -> int:
        return self._append(BlankRow())

    def add_title(self, label: str) -> int:
        return self._append(TitleRow(label))

    def add_subheader(self, label: str) -> int:
        return self._append(SubheaderRow(label))

    def add_item(
        self,
        label: str,
        values: Optional[Sequence[Optional[Number]]] = None,
        indent: int = 0,
    ) -> int:
        """Append an item, padding or truncating values to the period count."""
        normalized: List[Optional[Number]] = list(values or [])[: self.period_count]
        normalized.extend([None] * (self.period_count - len(normalized)))
        return self._append(ItemRow(label, tuple(normalized), indent))

    def add_total(self, label: str, start: int, stop: int, name: Optional[str] = None) -> int:
        index = self._append(TotalRow(label, SumRange(start, stop)))
        if name:
            self.name(name, index)
        return index

    def add_calculated(
        self,
        label: str,
        refs: Sequence[Reference],
        name: Optional[str] = None,
    ) -> int:
        index = self._append(CalculatedRow(label, tuple(refs)))
        if name:
            self.name(name, index)
        return index

    def name(self, key: str, index: int) -> None:
        """Register a named reference to a logical row."""
        self._named_refs[key] = index

    def build(
        self,
        periods: Sequence[Period],
        company_name: Optional[str] = None,
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
        sheet_name: str = "Statement",
        tax_id: Optional[str] = None,
    ) -> StatementLayout:
        return StatementLayout(
            periods=list(periods),
            rows=list(self._rows),
            named_refs=dict(self._named_refs),
            company_name=company_name,
            title=title,
            subtitle=subtitle,
            sheet_name=sheet_name,
            tax_id=tax_id,
        )
