"""
Cash flow transformer.

Lays out extracted NSBU lines as an IAS 7 statement of cash flows. Section
totals, free cash flow, the net change in cash and closing cash are written
as live formulas; the NSBU subtotal lines are never copied.
"""

from typing import List, Optional

import structlog

from atabai.mappings import FlowDirection, MappingRegistry, Section, get_cash_flow_registry
from atabai.services.excel_builder.layout import LayoutBuilder, Reference, StatementLayout
from atabai.services.extractors.cash_flow import CashFlowLine, CashFlowSource
from atabai.services.extractors.common import Values

logger = structlog.get_logger(__name__)

TITLE = "STATEMENT OF CASH FLOWS (IFRS)"
SHEET_NAME = "IFRS Cash Flow"
DEFAULT_SUBTITLE = "For the period ended"

ACTIVITY_SECTIONS = (Section.OPERATING, Section.INVESTING, Section.FINANCING)

SECTION_TOTALS = {
    Section.OPERATING: ("Net cash from operating activities", "operating_total"),
    Section.INVESTING: ("Net cash used in investing activities", "investing_total"),
    Section.FINANCING: ("Net cash from financing activities", "financing_total"),
}

# Subheader per flow direction, in display order
FLOW_GROUPS = (
    (FlowDirection.INFLOW, "Cash receipts"),
    (FlowDirection.NET, "Net flows"),
    (FlowDirection.OUTFLOW, "Cash payments"),
)

FX_CODE = "221"
OPENING_CASH_CODE = "230"
NET_CHANGE_CODE = "220"
CLOSING_CASH_CODE = "240"


def signed_values(line: CashFlowLine, negate_outflows: bool = True) -> Values:
    """Outflows reported as positive amounts become negative."""
    if not negate_outflows or line.mapping.flow_direction != FlowDirection.OUTFLOW:
        return list(line.values)
    return [-v if v is not None and v > 0 else v for v in line.values]


class CashFlowTransformer:
    """
    Builds the cash flow StatementLayout.

    Sections without any source line are omitted; the calculated rows that
    reference their totals then degrade to the remaining operands.
    """

    def __init__(self, registry: Optional[MappingRegistry] = None, negate_outflows: bool = True):
        self.registry = registry or get_cash_flow_registry()
        self.negate_outflows = negate_outflows

    def transform(self, source: CashFlowSource) -> StatementLayout:
        """
        Lay out a cash flow statement.

        Args:
            source: Output of ``extract_cash_flow``.

        Returns:
            StatementLayout with named references ``operating_total``,
            ``investing_total``, ``financing_total``, ``free_cash_flow``,
            ``net_change`` and ``closing_cash``.
        """
        builder = LayoutBuilder(len(source.periods))

        for section in ACTIVITY_SECTIONS:
            self._add_section(builder, source, section)

        builder.add_calculated(
            "Free cash flow (operating + investing)",
            ["operating_total", "investing_total"],
            name="free_cash_flow",
        )
        builder.add_blank()
        self._add_reconciliation(builder, source)

        layout = builder.build(
            source.periods,
            company_name=source.company_name,
            title=TITLE,
            subtitle=source.period_line or DEFAULT_SUBTITLE,
            sheet_name=SHEET_NAME,
            tax_id=source.tax_id,
        )

        logger.info(
            "Cash flow layout built",
            rows=len(layout),
            named_refs=sorted(layout.named_refs),
        )
        return layout

    def _section_lines(self, source: CashFlowSource, section: Section) -> List[CashFlowLine]:
        """Coded lines in registry order, then label-based lines in source order."""
        lines = []
        for mapping in self.registry.list_by_section(section):
            line = source.lines.get(mapping.source_code)
            if line is not None and not mapping.is_computed:
                lines.append(line)
        return lines + source.labeled_lines(section)

    def _add_section(self, builder: LayoutBuilder, source: CashFlowSource, section: Section) -> None:
        lines = self._section_lines(source, section)
        if not lines:
            logger.info("Omitting empty section", section=section.value)
            return

        builder.add_title(section.value)
        start = builder.next_index

        for direction, subheader in FLOW_GROUPS:
            group = [line for line in lines if line.mapping.flow_direction == direction]
            if not group:
                continue
            builder.add_subheader(subheader)
            for line in group:
                builder.add_item(
                    line.mapping.target_classification,
                    signed_values(line, self.negate_outflows),
                    indent=1,
                )

        label, name = SECTION_TOTALS[section]
        builder.add_total(label, start, builder.next_index, name=name)
        builder.add_blank()

    def _label(self, code: str, default: str) -> str:
        mapping = self.registry.lookup(code)
        return mapping.target_classification if mapping else default

    def _add_reconciliation(self, builder: LayoutBuilder, source: CashFlowSource) -> None:
        builder.add_calculated(
            self._label(NET_CHANGE_CODE, "Net increase in cash and equivalents"),
            ["operating_total", "investing_total", "financing_total"],
            name="net_change",
        )

        refs: List[Reference] = ["net_change"]
        for code, default in (
            (FX_CODE, "Effect of exchange rate changes"),
            (OPENING_CASH_CODE, "Cash at beginning of period"),
        ):
            line = source.lines.get(code)
            values = list(line.values) if line else None
            refs.append(builder.add_item(self._label(code, default), values))

        builder.add_calculated(
            self._label(CLOSING_CASH_CODE, "Cash at end of period"),
            refs,
            name="closing_cash",
        )


def transform_cash_flow(
    source: CashFlowSource,
    registry: Optional[MappingRegistry] = None,
) -> StatementLayout:
    """Lay out a cash flow statement with the default transformer."""
    return CashFlowTransformer(registry).transform(source)
