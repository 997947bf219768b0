"""
Line-item mapping tables from NSBU codes to IFRS classifications.
"""

from atabai.mappings.cash_flow import (
    CASH_FLOW_LINES,
    FlowDirection,
    LineMapping,
    MappingRegistry,
    Section,
    get_cash_flow_registry,
    normalize_code,
)

__all__ = [
    "CASH_FLOW_LINES",
    "FlowDirection",
    "LineMapping",
    "MappingRegistry",
    "Section",
    "get_cash_flow_registry",
    "normalize_code",
]
