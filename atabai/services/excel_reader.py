"""
NSBU workbook reader.

Loads a source statement workbook into plain row records the extractors can
scan: cached formula results for every cell, plus the bold flag and indent of
the label cell, which NSBU reports use to mark aggregate rows.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union
from zipfile import BadZipFile

import structlog
from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from atabai.exceptions import NoWorksheetsError, WorkbookReadError

logger = structlog.get_logger(__name__)

WorkbookSource = Union[Path, str, Workbook]


@dataclass
class SourceRow:
    """One worksheet row; ``values`` holds column A first."""

    number: int  # 1-based worksheet row
    values: List[Any] = field(default_factory=list)
    bold: bool = False
    indent: int = 0

    def value(self, column: int) -> Any:
        """Value of a 1-based column, None past the end of the row."""
        if 1 <= column <= len(self.values):
            return self.values[column - 1]
        return None

    @property
    def label(self) -> Optional[str]:
        """Trimmed text of column A, or None when empty."""
        raw = self.value(1)
        if raw is None:
            return None
        text = str(raw).strip()
        return text or None

    @property
    def is_empty(self) -> bool:
        return all(v is None or (isinstance(v, str) and not v.strip()) for v in self.values)


@dataclass
class SourceSheet:
    """A worksheet as a list of rows."""

    name: str
    rows: List[SourceRow] = field(default_factory=list)
    max_column: int = 0

    def __iter__(self) -> Iterator[SourceRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def row(self, number: int) -> Optional[SourceRow]:
        """Row by 1-based worksheet number."""
        if 1 <= number <= len(self.rows):
            return self.rows[number - 1]
        return None

    def cell(self, number: int, column: int) -> Any:
        row = self.row(number)
        return row.value(column) if row else None


@dataclass
class SourceWorkbook:
    """All worksheets of a source file."""

    filename: str
    sheets: List[SourceSheet] = field(default_factory=list)

    @property
    def sheet_count(self) -> int:
        return len(self.sheets)

    @property
    def first_sheet(self) -> SourceSheet:
        if not self.sheets:
            raise NoWorksheetsError(self.filename)
        return self.sheets[0]


def _cell_value(cell) -> Any:
    value = cell.value
    if isinstance(value, str):
        # Formula text without a cached result carries no data
        if value.startswith("="):
            return None
        return value.strip() or None
    return value


def _read_sheet(ws: Worksheet) -> SourceSheet:
    """
    Normalize a worksheet into SourceRows.

    Args:
        ws: openpyxl Worksheet object.

    Returns:
        SourceSheet with one row per worksheet row up to ``max_row``.
    """
    max_column = ws.max_column or 0
    rows: List[SourceRow] = []

    for number, cells in enumerate(
        ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=max_column), start=1
    ):
        values = [_cell_value(cell) for cell in cells]
        label_cell = cells[0] if cells else None
        bold = bool(label_cell is not None and label_cell.font and label_cell.font.bold)
        indent = 0
        if label_cell is not None and label_cell.alignment and label_cell.alignment.indent:
            indent = int(label_cell.alignment.indent)
        rows.append(SourceRow(number=number, values=values, bold=bold, indent=indent))

    return SourceSheet(name=ws.title, rows=rows, max_column=max_column)


def read_workbook(source: WorkbookSource) -> SourceWorkbook:
    """
    Read a source statement workbook.

    Args:
        source: Path to an ``.xlsx`` file or an already loaded Workbook.

    Returns:
        SourceWorkbook with every worksheet normalized.

    Raises:
        WorkbookReadError: The file is missing or not a readable workbook.
        NoWorksheetsError: The workbook has no worksheets.
    """
    if isinstance(source, Workbook):
        workbook = source
        filename = "<workbook>"
    else:
        path = Path(source)
        filename = path.name
        logger.info("Reading workbook", path=str(path))
        try:
            # Cached formula results, not formula text
            workbook = load_workbook(filename=str(path), data_only=True)
        except FileNotFoundError as e:
            raise WorkbookReadError(
                f"Failed to read Excel file: {path} does not exist",
                details={"path": str(path)},
            ) from e
        except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError) as e:
            raise WorkbookReadError(
                f"Failed to read Excel file: {e}",
                details={"path": str(path)},
            ) from e

    if not workbook.worksheets:
        raise NoWorksheetsError(filename)

    sheets = [_read_sheet(ws) for ws in workbook.worksheets]

    logger.info(
        "Workbook read",
        filename=filename,
        sheets=len(sheets),
        rows=sum(len(sheet) for sheet in sheets),
    )

    return SourceWorkbook(filename=filename, sheets=sheets)
