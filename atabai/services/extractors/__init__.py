"""
Statement extractors.

Turn a normalized source sheet into the structured data a transformer
lays out: coded cash flow lines or sectioned P&L items.
"""

from atabai.services.extractors.cash_flow import CashFlowLine, CashFlowSource, extract_cash_flow
from atabai.services.extractors.profit_loss import ProfitLossItem, ProfitLossSource, extract_profit_loss

__all__ = [
    "CashFlowLine",
    "CashFlowSource",
    "extract_cash_flow",
    "ProfitLossItem",
    "ProfitLossSource",
    "extract_profit_loss",
]
