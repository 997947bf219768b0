"""
Excel Builder module for ATABAI.

Turns statement layouts into formatted Excel worksheets with live SUM and
addition formulas, alternating row shading and a frozen header region.
"""

from atabai.services.excel_builder.builder import ExcelBuilder, RenderResult
from atabai.services.excel_builder.coordinates import CoordinateMap, resolve_coordinates
from atabai.services.excel_builder.diagnostics import DiagnosticCode, RenderDiagnostics
from atabai.services.excel_builder.formula_engine import FormulaEngine, FormulaExpression
from atabai.services.excel_builder.layout import LayoutBuilder, Period, RowKind, StatementLayout
from atabai.services.excel_builder.styles import STYLES, COLORWAYS

__all__ = [
    "ExcelBuilder",
    "RenderResult",
    "CoordinateMap",
    "resolve_coordinates",
    "DiagnosticCode",
    "RenderDiagnostics",
    "FormulaEngine",
    "FormulaExpression",
    "LayoutBuilder",
    "Period",
    "RowKind",
    "StatementLayout",
    "STYLES",
    "COLORWAYS",
]
