"""
Main ExcelBuilder class for rendering statement layouts.

Orchestrates preamble rendering, coordinate resolution, formula building
and styling to produce IFRS statements with live formulas.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from atabai.config import Settings, get_settings
from atabai.exceptions import LayoutError
from atabai.services.excel_builder.branding import add_brand_row
from atabai.services.excel_builder.coordinates import CoordinateMap, resolve_coordinates
from atabai.services.excel_builder.diagnostics import DiagnosticCode, RenderDiagnostics
from atabai.services.excel_builder.formula_engine import FormulaEngine
from atabai.services.excel_builder.layout import (
    CalculatedRow,
    ItemRow,
    LayoutRow,
    RowKind,
    StatementLayout,
    SubheaderRow,
    TitleRow,
    TotalRow,
    should_alternate,
)
from atabai.services.excel_builder.styles import StyleConfig, get_style

logger = structlog.get_logger(__name__)

# Excel limits sheet titles to 31 characters
MAX_SHEET_TITLE = 31


def is_blank_value(value) -> bool:
    """Item values written as empty cells: absent, exactly zero or NaN."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value == 0


@dataclass
class RenderResult:
    """Rendered workbook plus the coordinates and diagnostics of the run."""

    workbook: Workbook
    worksheet: Worksheet
    header_row: int
    coordinates: CoordinateMap
    diagnostics: RenderDiagnostics
    last_row: int

    @property
    def first_data_row(self) -> int:
        return self.coordinates.first_row


@dataclass
class _RenderState:
    ws: Worksheet
    layout: StatementLayout
    engine: FormulaEngine
    diagnostics: RenderDiagnostics
    period_columns: List[int]
    alternation: int = 0
    formulas: int = 0

    @property
    def all_columns(self) -> List[int]:
        return [ExcelBuilder.LABEL_COLUMN, *self.period_columns]


class ExcelBuilder:
    """
    Renders a StatementLayout into a styled worksheet.

    Main orchestrator that:
    1. Writes the preamble (brand mark, titles, column headers)
    2. Resolves logical rows to worksheet rows
    3. Writes every layout row by kind, with live formulas for totals
    4. Freezes the header region and reports diagnostics
    """

    # Label column (A = 1)
    LABEL_COLUMN = 1

    # First data column (B = 2)
    DATA_START_COLUMN = 2

    HEADER_LABEL = "Line Items"
    DEFAULT_TITLE = "FINANCIAL STATEMENT (IFRS)"

    def __init__(
        self,
        style: Optional[str] = None,
        colorway: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize ExcelBuilder.

        Args:
            style: Style variant (atabai, basic, professional).
            colorway: Color palette name.
            settings: Settings override; defaults to the cached settings.
        """
        self.settings = settings or get_settings()
        self.style_name = style or self.settings.default_style
        self.colorway_name = colorway or self.settings.default_colorway
        self.applied_style: StyleConfig = get_style(self.style_name, self.colorway_name)

        self._handlers: Dict[RowKind, Callable[[_RenderState, int, LayoutRow, int], None]] = {
            RowKind.BLANK: self._render_blank,
            RowKind.TITLE: self._render_title,
            RowKind.SUBHEADER: self._render_subheader,
            RowKind.ITEM: self._render_item,
            RowKind.TOTAL: self._render_total,
            RowKind.CALCULATED: self._render_calculated,
        }

    def build(self, layout: StatementLayout) -> RenderResult:
        """
        Build the workbook for a layout.

        Args:
            layout: Rows, periods and named references to render.

        Returns:
            RenderResult with the workbook and diagnostics.
        """
        logger.info(
            "Rendering statement",
            rows=len(layout.rows),
            periods=layout.period_count,
            style=self.style_name,
            colorway=self.colorway_name,
        )

        workbook = Workbook()
        ws = workbook.active
        ws.title = layout.sheet_name[:MAX_SHEET_TITLE]

        period_columns = [self.DATA_START_COLUMN + i for i in range(layout.period_count)]
        diagnostics = RenderDiagnostics()

        self._set_column_widths(ws, period_columns)
        header_row = self._render_preamble(ws, layout, period_columns, diagnostics)

        coordinates = resolve_coordinates(len(layout.rows), header_row + 1)
        state = _RenderState(
            ws=ws,
            layout=layout,
            engine=FormulaEngine(layout, coordinates),
            diagnostics=diagnostics,
            period_columns=period_columns,
        )

        for index, row in enumerate(layout.rows):
            handler = self._handlers.get(row.kind)
            if handler is None:
                raise LayoutError(f"No renderer for row kind {row.kind!r}")
            handler(state, index, row, coordinates.grid_row(index))

        # Rows above and including the header, plus column A, stay visible
        ws.freeze_panes = ws.cell(row=header_row + 1, column=self.DATA_START_COLUMN)

        last_row = coordinates.last_row or header_row
        if self.settings.watermark_text:
            last_row = self._render_watermark(ws, coordinates.next_row + 2, len(state.all_columns))

        logger.info(
            "Statement rendered",
            total_rows=last_row,
            formulas=state.formulas,
            diagnostics=diagnostics.counts(),
        )

        return RenderResult(
            workbook=workbook,
            worksheet=ws,
            header_row=header_row,
            coordinates=coordinates,
            diagnostics=diagnostics,
            last_row=last_row,
        )

    def save(self, result: RenderResult, output_path: Path) -> Path:
        """
        Save a rendered workbook to a file.

        Args:
            result: Output of ``build``.
            output_path: Path to save the Excel file.

        Returns:
            Path to the saved file.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result.workbook.save(output_path)
        logger.info("Workbook saved", path=str(output_path))
        return output_path

    # -------------------------------------------------------------------------
    # Preamble
    # -------------------------------------------------------------------------

    def _set_column_widths(self, ws: Worksheet, period_columns: List[int]) -> None:
        ws.column_dimensions[get_column_letter(self.LABEL_COLUMN)].width = self.settings.label_column_width
        for col in period_columns:
            ws.column_dimensions[get_column_letter(col)].width = self.settings.period_column_width

    def _column_widths(self, period_columns: List[int]) -> List[float]:
        return [self.settings.label_column_width] + [self.settings.period_column_width] * len(period_columns)

    def _render_banner(self, ws: Worksheet, row: int, text: str, font, column_count: int) -> None:
        """Centered line merged across all statement columns."""
        cell = ws.cell(row=row, column=self.LABEL_COLUMN, value=text)
        cell.font = font
        if self.applied_style.center_alignment:
            cell.alignment = self.applied_style.center_alignment
        if column_count > 1:
            ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=column_count)

    def _render_preamble(
        self,
        ws: Worksheet,
        layout: StatementLayout,
        period_columns: List[int],
        diagnostics: RenderDiagnostics,
    ) -> int:
        """Write everything above the data region; returns the header row."""
        style = self.applied_style
        column_count = len(period_columns) + 1
        row = 1

        if self.settings.include_logo:
            add_brand_row(
                ws,
                row,
                self._column_widths(period_columns),
                style,
                logo_path=self.settings.logo_path,
                brand_text=self.settings.brand_text,
                width_px=self.settings.logo_width_px,
                height_px=self.settings.logo_height_px,
                diagnostics=diagnostics,
            )
            row += 1

        self._render_banner(ws, row, layout.title or self.DEFAULT_TITLE, style.title_font, column_count)
        ws.row_dimensions[row].height = 22
        row += 1

        if layout.company_name:
            self._render_banner(ws, row, layout.company_name, style.company_font, column_count)
            row += 1

        if layout.subtitle:
            self._render_banner(ws, row, layout.subtitle, style.subtitle_font, column_count)
            row += 1

        if layout.tax_id:
            self._render_banner(ws, row, f"INN: {layout.tax_id}", style.subtitle_font, column_count)
            row += 1

        row += 1  # blank spacer

        header_row = row
        label_cell = ws.cell(row=header_row, column=self.LABEL_COLUMN, value=self.HEADER_LABEL)
        label_cell.font = style.header_font
        if style.header_fill:
            label_cell.fill = style.header_fill
        if style.label_alignment:
            label_cell.alignment = style.label_alignment

        for col, period in zip(period_columns, layout.periods):
            cell = ws.cell(row=header_row, column=col, value=period.label)
            cell.font = style.header_font
            if style.header_fill:
                cell.fill = style.header_fill
            if style.value_alignment:
                cell.alignment = style.value_alignment

        ws.row_dimensions[header_row].height = style.header_row_height
        return header_row

    def _render_watermark(self, ws: Worksheet, row: int, column_count: int) -> int:
        cell = ws.cell(row=row, column=self.LABEL_COLUMN, value=self.settings.watermark_text)
        cell.font = self.applied_style.watermark_font
        cell.alignment = Alignment(horizontal="right")
        if column_count > 1:
            ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=column_count)
        return row

    # -------------------------------------------------------------------------
    # Row renderers
    # -------------------------------------------------------------------------

    def _next_fill(self, state: _RenderState, kind: RowKind):
        """Advance the alternation counter for shaded kinds and pick the fill."""
        if not should_alternate(kind):
            return None
        state.alternation += 1
        if state.alternation % 2 == 0:
            return self.applied_style.alt_row_fill
        return self.applied_style.row_fill

    def _label_alignment(self, indent: int = 0) -> Optional[Alignment]:
        base = self.applied_style.label_alignment
        if base is None or not indent:
            return base
        return Alignment(horizontal=base.horizontal, vertical=base.vertical, indent=base.indent + indent)

    def _write_label(self, state: _RenderState, grid_row: int, label: str, font, fill, indent: int = 0):
        cell = state.ws.cell(row=grid_row, column=self.LABEL_COLUMN, value=label)
        cell.font = font
        if fill:
            cell.fill = fill
        alignment = self._label_alignment(indent)
        if alignment:
            cell.alignment = alignment
        return cell

    def _style_value_cell(self, cell, font, fill) -> None:
        cell.font = font
        if fill:
            cell.fill = fill
        if self.applied_style.value_alignment:
            cell.alignment = self.applied_style.value_alignment
        cell.number_format = self.applied_style.number_format

    def _render_blank(self, state: _RenderState, index: int, row: LayoutRow, grid_row: int) -> None:
        state.ws.row_dimensions[grid_row].height = self.applied_style.blank_row_height

    def _render_title(self, state: _RenderState, index: int, row: TitleRow, grid_row: int) -> None:
        style = self.applied_style
        self._write_label(state, grid_row, row.label, style.section_font, style.section_fill)
        if style.section_fill:
            for col in state.period_columns:
                state.ws.cell(row=grid_row, column=col).fill = style.section_fill
        state.ws.row_dimensions[grid_row].height = style.total_row_height

    def _render_subheader(self, state: _RenderState, index: int, row: SubheaderRow, grid_row: int) -> None:
        fill = self._next_fill(state, row.kind)
        self._write_label(state, grid_row, row.label, self.applied_style.subheader_font, fill)
        if fill:
            for col in state.period_columns:
                state.ws.cell(row=grid_row, column=col).fill = fill
        state.ws.row_dimensions[grid_row].height = self.applied_style.item_row_height

    def _render_item(self, state: _RenderState, index: int, row: ItemRow, grid_row: int) -> None:
        style = self.applied_style
        fill = self._next_fill(state, row.kind)
        self._write_label(state, grid_row, row.label, style.item_font, fill, indent=row.indent)

        for i, col in enumerate(state.period_columns):
            value = row.value_at(i)
            cell = state.ws.cell(row=grid_row, column=col)
            cell.value = None if is_blank_value(value) else value
            self._style_value_cell(cell, style.item_font, fill)

        state.ws.row_dimensions[grid_row].height = style.item_row_height

    def _render_total(self, state: _RenderState, index: int, row: TotalRow, grid_row: int) -> None:
        style = self.applied_style
        cells = [self._write_label(state, grid_row, row.label, style.total_font, style.total_fill)]

        if state.period_columns and not state.engine.item_rows(row.sum_range):
            logger.warning("Total has no item rows, writing zero", row_index=index, label=row.label)
            state.diagnostics.add(
                DiagnosticCode.INVALID_LAYOUT,
                f"Total '{row.label}' has no item rows",
                row_index=index,
                start=row.sum_range.start,
                stop=row.sum_range.stop,
            )

        for col in state.period_columns:
            cell = state.ws.cell(row=grid_row, column=col)
            cell.value = state.engine.build_range_sum(row.sum_range, col).to_formula()
            self._style_value_cell(cell, style.total_font, style.total_fill)
            cells.append(cell)
            state.formulas += 1

        if style.total_border:
            for cell in cells:
                cell.border = style.total_border
        state.ws.row_dimensions[grid_row].height = style.total_row_height

    def _render_calculated(self, state: _RenderState, index: int, row: CalculatedRow, grid_row: int) -> None:
        style = self.applied_style
        cells = [self._write_label(state, grid_row, row.label, style.total_font, style.total_fill)]

        if state.period_columns:
            unresolved = state.engine.unresolved_references(row.add_refs)
            for ref in unresolved:
                logger.warning("Dropping unresolved reference", row_index=index, label=row.label, ref=ref)
                state.diagnostics.add(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"Reference {ref!r} in '{row.label}' does not resolve",
                    row_index=index,
                    ref=ref,
                )
            if len(unresolved) == len(row.add_refs):
                logger.warning("Calculated row has no operands, writing zero", row_index=index, label=row.label)
                state.diagnostics.add(
                    DiagnosticCode.INVALID_LAYOUT,
                    f"Calculated row '{row.label}' has no resolvable operands",
                    row_index=index,
                )

        for col in state.period_columns:
            cell = state.ws.cell(row=grid_row, column=col)
            cell.value = state.engine.build_additive_sum(row.add_refs, col).to_formula()
            self._style_value_cell(cell, style.total_font, style.total_fill)
            cells.append(cell)
            state.formulas += 1

        if style.calculated_border:
            for cell in cells:
                cell.border = style.calculated_border
        state.ws.row_dimensions[grid_row].height = style.total_row_height


def get_excel_builder(
    style: Optional[str] = None,
    colorway: Optional[str] = None,
) -> ExcelBuilder:
    """Create a new ExcelBuilder instance."""
    return ExcelBuilder(style, colorway)
