"""
Formula Engine for building live Excel formulas.

Totals and calculated rows are expressed as formula descriptors (operator +
cell operands) and serialized to Excel formula text only when written, so
the summation policy can be tested structurally.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import structlog
from openpyxl.utils import column_index_from_string, get_column_letter

from atabai.services.excel_builder.coordinates import CoordinateMap
from atabai.services.excel_builder.layout import Reference, RowKind, StatementLayout, SumRange

logger = structlog.get_logger(__name__)


def column_letter(index: int) -> str:
    """1-based column index to letters (1 -> A, 27 -> AA)."""
    return get_column_letter(index)


def column_index(letters: str) -> int:
    """Column letters to 1-based index (AA -> 27)."""
    return column_index_from_string(letters.upper())


def is_contiguous(rows: Sequence[int]) -> bool:
    """True when each row is exactly one more than the previous."""
    return all(b == a + 1 for a, b in zip(rows, rows[1:]))


class Operator(Enum):
    """Formula shapes produced by the engine."""

    CONSTANT = "constant"  # =0
    REF = "ref"  # =C10
    RANGE_SUM = "range_sum"  # =SUM(C10:C12)
    LIST_SUM = "list_sum"  # =SUM(C10,C11,C13)
    ADD = "add"  # =B5+B9


@dataclass(frozen=True)
class CellRef:
    """A single-cell reference."""

    column: int
    row: int

    @property
    def coordinate(self) -> str:
        return f"{column_letter(self.column)}{self.row}"


@dataclass(frozen=True)
class FormulaExpression:
    """Formula descriptor: an operator applied to cell operands."""

    operator: Operator
    operands: Tuple[CellRef, ...] = ()

    @classmethod
    def zero(cls) -> "FormulaExpression":
        return cls(Operator.CONSTANT)

    @property
    def is_constant(self) -> bool:
        return self.operator == Operator.CONSTANT

    def to_formula(self) -> str:
        """Serialize to Excel formula text."""
        refs = [operand.coordinate for operand in self.operands]

        if self.operator == Operator.CONSTANT:
            return "=0"
        if self.operator == Operator.REF:
            return f"={refs[0]}"
        if self.operator == Operator.RANGE_SUM:
            return f"=SUM({refs[0]}:{refs[-1]})"
        if self.operator == Operator.LIST_SUM:
            return f"=SUM({','.join(refs)})"
        if self.operator == Operator.ADD:
            return "=" + "+".join(refs)

        raise ValueError(f"Unknown operator: {self.operator}")


class FormulaEngine:
    """
    Builds formulas over resolved grid coordinates.

    Handles:
    - SUM formulas over item rows of a total's range
    - Addition formulas over explicitly referenced rows
    - Named references resolved through the layout's reference table
    """

    def __init__(self, layout: StatementLayout, coordinates: CoordinateMap):
        """
        Initialize formula engine.

        Args:
            layout: Layout whose rows are referenced.
            coordinates: Resolved logical-to-grid row mapping for the layout.
        """
        self.layout = layout
        self.coordinates = coordinates

    def item_rows(self, sum_range: SumRange) -> List[int]:
        """Grid rows of the ITEM rows inside a range, ascending."""
        rows: List[int] = []
        for index in sum_range:
            if index not in self.coordinates:
                continue
            if self.layout.rows[index].kind != RowKind.ITEM:
                continue
            rows.append(self.coordinates.grid_row(index))
        return rows

    def build_range_sum(self, sum_range: SumRange, column: int) -> FormulaExpression:
        """
        Build the formula of a total row.

        Args:
            sum_range: Logical [start, stop) range of the total.
            column: 1-based period column.

        Returns:
            CONSTANT for no items, REF for one item, RANGE_SUM for a
            contiguous run and LIST_SUM when excluded rows break the run.
        """
        rows = self.item_rows(sum_range)

        if not rows:
            return FormulaExpression.zero()

        operands = tuple(CellRef(column, row) for row in rows)

        if len(rows) == 1:
            return FormulaExpression(Operator.REF, operands)

        if is_contiguous(rows):
            return FormulaExpression(
                Operator.RANGE_SUM,
                (operands[0], operands[-1]),
            )

        return FormulaExpression(Operator.LIST_SUM, operands)

    def resolve_reference(self, ref: Reference) -> Optional[int]:
        """Grid row of a logical index or named reference, or None."""
        if isinstance(ref, bool):
            return None
        if isinstance(ref, str):
            index = self.layout.named_refs.get(ref)
            if index is None:
                return None
            return self.coordinates.resolve(index)
        if isinstance(ref, int):
            return self.coordinates.resolve(ref)
        return None

    def unresolved_references(self, add_refs: Sequence[Reference]) -> List[Reference]:
        """References of a calculated row that do not resolve to a row."""
        return [ref for ref in add_refs if self.resolve_reference(ref) is None]

    def build_additive_sum(self, add_refs: Sequence[Reference], column: int) -> FormulaExpression:
        """
        Build the formula of a calculated row.

        Unresolvable references are dropped; see ``unresolved_references``
        for reporting them.

        Args:
            add_refs: Logical indices or named reference keys, in order.
            column: 1-based period column.

        Returns:
            ADD over the resolved cells, or CONSTANT when none resolve.
        """
        rows = [self.resolve_reference(ref) for ref in add_refs]
        operands = tuple(CellRef(column, row) for row in rows if row is not None)

        if not operands:
            return FormulaExpression.zero()

        return FormulaExpression(Operator.ADD, operands)
