"""
Statement processor.

Orchestrates the pipeline for one report:
read workbook -> extract -> transform to layout -> render.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import structlog
from openpyxl import Workbook

from atabai.config import Settings, get_settings
from atabai.exceptions import AtabaiError, StatementProcessingError
from atabai.logging_config import report_context
from atabai.mappings import MappingRegistry, get_cash_flow_registry
from atabai.services.excel_builder import (
    ExcelBuilder,
    RenderDiagnostics,
    RenderResult,
    RowKind,
    StatementLayout,
)
from atabai.services.excel_reader import SourceSheet, WorkbookSource, read_workbook
from atabai.services.extractors import extract_cash_flow, extract_profit_loss
from atabai.services.transformers import CashFlowTransformer, ProfitLossTransformer
from atabai.utils.performance import StageTimer

logger = structlog.get_logger(__name__)


@dataclass
class ProcessingResult:
    """Rendered workbook with its processing summary and diagnostics."""

    workbook: Workbook
    summary: Dict[str, Any]
    diagnostics: RenderDiagnostics
    render: RenderResult
    report_id: str
    timings_ms: Dict[str, float] = field(default_factory=dict)


@dataclass
class _Prepared:
    layout: StatementLayout
    diagnostics: RenderDiagnostics
    transformations: int
    original_rows: int


class StatementProcessor:
    """
    Runs the statement pipelines.

    Usage:
        processor = StatementProcessor()
        result = processor.process_cash_flow("nsbu_cash_flow.xlsx")
        processor.save(result, Path("output/ifrs_cash_flow.xlsx"))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[MappingRegistry] = None,
        style: Optional[str] = None,
        colorway: Optional[str] = None,
    ):
        """
        Initialize processor.

        Args:
            settings: Settings override; defaults to the cached settings.
            registry: Cash flow line-code registry.
            style: Output style name.
            colorway: Output colorway name.
        """
        self.settings = settings or get_settings()
        self.registry = registry or get_cash_flow_registry()
        self.builder = ExcelBuilder(style, colorway, settings=self.settings)

    def process_cash_flow(
        self,
        source: WorkbookSource,
        company_name: Optional[str] = None,
    ) -> ProcessingResult:
        """
        Convert an NSBU cash flow statement to IFRS.

        Args:
            source: Source file path or loaded Workbook.
            company_name: Overrides the company name found in the source.

        Returns:
            ProcessingResult for the first worksheet.

        Raises:
            StatementProcessingError: The source could not be read or extracted.
        """
        def prepare(sheet: SourceSheet) -> _Prepared:
            extracted = extract_cash_flow(sheet, self.registry)
            layout = CashFlowTransformer(self.registry).transform(extracted)
            return _Prepared(
                layout=layout,
                diagnostics=extracted.diagnostics,
                transformations=len(extracted.lines),
                original_rows=extracted.original_rows,
            )

        return self._run("cash_flow", "cash flow", source, prepare, company_name)

    def process_profit_loss(
        self,
        source: WorkbookSource,
        company_name: Optional[str] = None,
    ) -> ProcessingResult:
        """
        Convert an NSBU profit and loss report to IFRS.

        Args:
            source: Source file path or loaded Workbook.
            company_name: Overrides the company name found in the source.

        Returns:
            ProcessingResult for the first worksheet.

        Raises:
            StatementProcessingError: The source could not be read or extracted.
        """
        def prepare(sheet: SourceSheet) -> _Prepared:
            extracted = extract_profit_loss(sheet)
            layout = ProfitLossTransformer().transform(extracted)
            return _Prepared(
                layout=layout,
                diagnostics=RenderDiagnostics(),
                transformations=len(extracted.revenue_items) + len(extracted.cogs_items),
                original_rows=extracted.original_rows,
            )

        return self._run("profit_loss", "P&L", source, prepare, company_name)

    def save(self, result: ProcessingResult, output_path: Path) -> Path:
        """Write a processed report to an .xlsx file."""
        return self.builder.save(result.render, Path(output_path))

    def _run(
        self,
        statement: str,
        display_name: str,
        source: WorkbookSource,
        prepare: Callable[[SourceSheet], _Prepared],
        company_name: Optional[str],
    ) -> ProcessingResult:
        timings: Dict[str, float] = {}

        with report_context(statement) as report_id:
            source_name = "<workbook>" if isinstance(source, Workbook) else str(source)
            logger.info("Processing statement", source=source_name)

            try:
                with StageTimer("read", timings):
                    workbook = read_workbook(source)
                    sheet = workbook.first_sheet
                with StageTimer("extract_transform", timings):
                    prepared = prepare(sheet)
            except AtabaiError as e:
                logger.error("Statement processing failed", error_code=e.error_code, error=e.message)
                raise StatementProcessingError(display_name, e.message, cause=e) from e

            layout = prepared.layout
            if company_name:
                layout.company_name = company_name

            with StageTimer("render", timings):
                render = self.builder.build(layout)

            diagnostics = RenderDiagnostics()
            diagnostics.extend(prepared.diagnostics)
            diagnostics.extend(render.diagnostics)

            summary = {
                "report_id": report_id,
                "statement": statement,
                "transformations": prepared.transformations,
                "changes": layout.count(RowKind.ITEM),
                "original_rows": prepared.original_rows,
                "processed_rows": len(layout),
                "worksheets": [render.worksheet.title],
                "warnings": diagnostics.messages(),
                "diagnostics": diagnostics.counts(),
                "timings_ms": dict(timings),
            }

            logger.info(
                "Statement processed",
                processed_rows=summary["processed_rows"],
                warnings=len(summary["warnings"]),
            )

            return ProcessingResult(
                workbook=render.workbook,
                summary=summary,
                diagnostics=diagnostics,
                render=render,
                report_id=report_id,
                timings_ms=timings,
            )


def get_statement_processor() -> StatementProcessor:
    """Create a new StatementProcessor instance."""
    return StatementProcessor()
