"""
Layout transformers.

Map extracted statement data to the IFRS row structure consumed by the
ExcelBuilder.
"""

from atabai.services.transformers.cash_flow import CashFlowTransformer, transform_cash_flow
from atabai.services.transformers.profit_loss import ProfitLossTransformer, transform_profit_loss

__all__ = [
    "CashFlowTransformer",
    "transform_cash_flow",
    "ProfitLossTransformer",
    "transform_profit_loss",
]
