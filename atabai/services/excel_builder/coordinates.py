"""
Coordinate resolution from logical layout rows to worksheet rows.

Every logical row, blank rows included, consumes exactly one worksheet row,
so the mapping is ``grid_row(i) = first_row + i``. Formulas built from it
stay valid without a second pass.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class CoordinateMap:
    """Bijection between logical indices 0..size-1 and grid rows."""

    first_row: int
    size: int

    def __len__(self) -> int:
        return self.size

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < self.size

    def grid_row(self, index: int) -> int:
        """Worksheet row of a logical row; raises IndexError outside the layout."""
        if index not in self:
            raise IndexError(f"Logical row {index} outside layout of {self.size} rows")
        return self.first_row + index

    def resolve(self, index: int) -> Optional[int]:
        """Worksheet row of a logical row, or None when it does not exist."""
        if index not in self:
            return None
        return self.first_row + index

    @property
    def last_row(self) -> Optional[int]:
        if self.size == 0:
            return None
        return self.first_row + self.size - 1

    @property
    def next_row(self) -> int:
        """First worksheet row after the layout."""
        return self.first_row + self.size

    def as_dict(self) -> Dict[int, int]:
        return {index: self.first_row + index for index in range(self.size)}


def resolve_coordinates(row_count: int, first_row: int) -> CoordinateMap:
    """
    Map a layout of ``row_count`` rows onto the grid starting at ``first_row``.

    Args:
        row_count: Number of logical rows (may be 0).
        first_row: First worksheet row after the preamble (1-based).

    Returns:
        CoordinateMap for the layout.
    """
    if row_count < 0:
        raise ValueError("row_count must not be negative")
    if first_row < 1:
        raise ValueError("first_row is 1-based")
    return CoordinateMap(first_row=first_row, size=row_count)
