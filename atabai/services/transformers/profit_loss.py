"""
Profit and loss transformer.

Maps extracted NSBU P&L data to the IFRS income statement sections
(I. Revenue to XI. Net profit). Costs carry their source sign, so every
calculated line is a plain addition of the rows above it.
"""

from typing import List, Sequence

import structlog

from atabai.services.excel_builder.layout import LayoutBuilder, StatementLayout
from atabai.services.extractors.profit_loss import ProfitLossItem, ProfitLossSource

logger = structlog.get_logger(__name__)

TITLE = "PROFIT & LOSS STATEMENT (IFRS)"
SHEET_NAME = "IFRS P&L Statement"


class ProfitLossTransformer:
    """Builds the P&L StatementLayout."""

    def transform(self, source: ProfitLossSource) -> StatementLayout:
        """
        Lay out a P&L statement.

        Args:
            source: Output of ``extract_profit_loss``.

        Returns:
            StatementLayout with named references ``total_revenue``,
            ``total_cogs``, ``gross_profit``, ``ebitda``, ``ebit``,
            ``profit_before_tax`` and ``net_profit``.
        """
        b = LayoutBuilder(source.period_count)

        # I. Revenue
        b.add_title("I. REVENUE")
        b.add_subheader("Contract revenue from construction services")
        start = b.next_index
        self._add_project_items(b, source.revenue_items)
        b.add_total("Total Revenue", start, b.next_index, name="total_revenue")
        b.add_blank()

        # II. Cost of sales
        b.add_title("II. COST OF SALES (COGS)")
        b.add_subheader("Direct contract costs - subcontractor work")
        start = b.next_index
        self._add_project_items(b, source.cogs_items)
        b.add_total("Total Cost of Sales", start, b.next_index, name="total_cogs")
        b.add_blank()

        # III. Gross profit
        b.add_calculated("III. GROSS PROFIT", ["total_revenue", "total_cogs"], name="gross_profit")
        b.add_blank()

        # IV. Operating expenses
        b.add_title("IV. OPERATING EXPENSES")
        b.add_subheader("Project overhead expenses")
        expense_refs = [
            b.add_item("Employee compensation", source.overhead.get("fot"), indent=1),
            b.add_item("Social security contributions (ЕСП)", source.overhead.get("esp"), indent=1),
            b.add_item("Other project costs", source.overhead.get("other"), indent=1),
        ]
        b.add_blank()
        b.add_subheader("Administrative and general expenses")
        expense_refs += [
            b.add_item("Salaries and wages (ФОТ)", source.admin.get("fot"), indent=1),
            b.add_item("Social security contributions (ЕСП)", source.admin.get("esp"), indent=1),
            b.add_item("Vehicle maintenance and fuel", source.admin.get("vehicles"), indent=1),
            b.add_item("Other operating expenses", source.admin.get("other"), indent=1),
        ]
        b.add_blank()
        operating_expenses = b.add_calculated("Total Operating Expenses", expense_refs)
        b.add_blank()
        gen_services = b.add_item("General contractor service fees", source.gen_services)
        b.add_blank()
        operating_and_admin = b.add_calculated(
            "Total Operating and Admin Expenses",
            [operating_expenses, gen_services],
        )
        b.add_blank()

        # V. EBITDA
        b.add_calculated(
            "V. EBITDA (Operating Profit before D&A)",
            ["gross_profit", operating_and_admin],
            name="ebitda",
        )
        b.add_blank()

        # VI. Depreciation and amortization
        b.add_title("VI. DEPRECIATION & AMORTIZATION")
        depreciation = b.add_item("Depreciation and amortization expense", source.depreciation)
        b.add_blank()

        # VII. Operating profit
        b.add_calculated("VII. OPERATING PROFIT (EBIT)", ["ebitda", depreciation], name="ebit")
        b.add_blank()

        # VIII. Finance income and costs
        b.add_title("VIII. FINANCE INCOME / (COSTS)")
        if source.finance_income_items:
            for item in source.finance_income_items:
                b.add_item(item.name, item.values, indent=1)
        else:
            b.add_item("Finance income")
        b.add_item("Finance costs")
        net_finance = b.add_item("Net finance result")
        b.add_blank()

        # IX. Profit before tax
        b.add_calculated("IX. PROFIT BEFORE TAX", ["ebit", net_finance], name="profit_before_tax")
        b.add_blank()

        # X. Income tax
        b.add_title("X. INCOME TAX")
        income_tax = b.add_item("Income tax expense", source.income_tax)
        b.add_blank()

        # XI. Net profit
        b.add_calculated("XI. NET PROFIT / (LOSS)", ["profit_before_tax", income_tax], name="net_profit")

        layout = b.build(
            source.periods,
            company_name=source.company_name,
            title=TITLE,
            sheet_name=SHEET_NAME,
        )

        logger.info("Profit and loss layout built", rows=len(layout))
        return layout

    @staticmethod
    def _add_project_items(b: LayoutBuilder, items: Sequence[ProfitLossItem]) -> List[int]:
        """Project lines inside a total's range; subheaders stay out of the sum."""
        indices = []
        for item in items:
            if item.is_subheader:
                indices.append(b.add_subheader(item.name))
            else:
                indices.append(b.add_item(item.name, item.values, indent=1))
        return indices


def transform_profit_loss(source: ProfitLossSource) -> StatementLayout:
    """Lay out a P&L statement with the default transformer."""
    return ProfitLossTransformer().transform(source)
