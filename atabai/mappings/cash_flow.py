"""
NSBU to IFRS Cash Flow Statement mapping.

Maps NSBU Form 4 line codes to the IFRS (IAS 7) statement of cash flows.
The table is a literal, read-only registry built once per process.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import structlog

from atabai.exceptions import InvalidRegistryError

logger = structlog.get_logger(__name__)


CODE_WIDTH = 3


class Section(str, Enum):
    """Cash flow statement sections."""

    OPERATING = "OPERATING ACTIVITIES"
    INVESTING = "INVESTING ACTIVITIES"
    FINANCING = "FINANCING ACTIVITIES"
    RECONCILIATION = "RECONCILIATION"


class FlowDirection(str, Enum):
    """How a line contributes to its section."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"
    NET = "net"  # Can be positive or negative
    SUBTOTAL = "subtotal"
    TOTAL = "total"
    ADJUSTMENT = "adjustment"
    BALANCE = "balance"


# Directions allowed on sourced (non-computed) lines of an activity section
SOURCED_DIRECTIONS = frozenset({FlowDirection.INFLOW, FlowDirection.OUTFLOW, FlowDirection.NET})


@dataclass(frozen=True)
class LineMapping:
    """Mapping of one NSBU source line to its IFRS classification."""

    source_code: str
    target_classification: str
    section: Section
    flow_direction: FlowDirection
    description: str = ""
    is_computed: bool = False  # Derived by formula, never copied from source
    is_net_of_offsetting: bool = False  # Net of receipts and payments
    is_target_only: bool = False  # IFRS line with no NSBU equivalent
    direct_method: bool = False


CASH_FLOW_LINES: Tuple[LineMapping, ...] = (
    # Operating activities
    LineMapping(
        "010", "Cash receipts from customers", Section.OPERATING, FlowDirection.INFLOW,
        description="Cash receipts from customers / Денежные поступления от покупателей",
        direct_method=True,
    ),
    LineMapping(
        "020", "Cash paid to suppliers and employees", Section.OPERATING, FlowDirection.OUTFLOW,
        description="Cash paid to suppliers / Денежные выплаты поставщикам",
        direct_method=True,
    ),
    LineMapping(
        "030", "Other operating receipts", Section.OPERATING, FlowDirection.INFLOW,
        description="Other operating receipts / Прочие операционные поступления",
        direct_method=True,
    ),
    LineMapping(
        "040", "Income taxes paid", Section.OPERATING, FlowDirection.NET,
        description="Tax-related payments / Налоговые платежи",
        is_net_of_offsetting=True,
        direct_method=True,
    ),
    LineMapping(
        "050", "Operating cash before interest", Section.OPERATING, FlowDirection.SUBTOTAL,
        description="Net cash from operating (subtotal) / Итого операционная деятельность",
        is_computed=True,
    ),
    LineMapping(
        "190", "Interest received", Section.OPERATING, FlowDirection.INFLOW,
        description="Interest received / Полученные проценты",
        direct_method=True,
    ),
    LineMapping(
        "200", "Interest paid", Section.OPERATING, FlowDirection.OUTFLOW,
        description="Interest paid / Уплаченные проценты",
        direct_method=True,
    ),
    # Investing activities
    LineMapping(
        "060", "Proceeds from property disposals", Section.INVESTING, FlowDirection.INFLOW,
        description="Sale of property and equipment / Продажа основных средств",
    ),
    LineMapping(
        "070", "Purchase of property and equipment", Section.INVESTING, FlowDirection.OUTFLOW,
        description="Purchase of property/equipment / Покупка основных средств",
    ),
    LineMapping(
        "080", "Purchase of intangible assets", Section.INVESTING, FlowDirection.OUTFLOW,
        description="Purchase of intangible assets / Покупка нематериальных активов",
    ),
    LineMapping(
        "090", "Proceeds from investments", Section.INVESTING, FlowDirection.INFLOW,
        description="Proceeds from investments / Поступления от инвестиций",
    ),
    LineMapping(
        "100", "Purchase of investments", Section.INVESTING, FlowDirection.OUTFLOW,
        description="Purchase of investments / Покупка инвестиций",
    ),
    # Financing activities
    LineMapping(
        "110", "Proceeds from borrowings", Section.FINANCING, FlowDirection.INFLOW,
        description="Proceeds from borrowings / Поступления от займов",
    ),
    LineMapping(
        "120", "Repayment of borrowings", Section.FINANCING, FlowDirection.OUTFLOW,
        description="Repayment of borrowings / Погашение займов",
    ),
    LineMapping(
        "130", "Proceeds from share issuance", Section.FINANCING, FlowDirection.INFLOW,
        description="Proceeds from share issuance / Поступления от выпуска акций",
    ),
    LineMapping(
        "140", "Dividends paid", Section.FINANCING, FlowDirection.OUTFLOW,
        description="Dividends paid / Выплата дивидендов",
    ),
    LineMapping(
        "150", "Lease payments", Section.FINANCING, FlowDirection.NET,
        description="Lease payments / Лизинговые платежи",
        is_net_of_offsetting=True,
    ),
    LineMapping(
        "160", "Other financing receipts", Section.FINANCING, FlowDirection.INFLOW,
        description="Other financing receipts / Прочие финансовые поступления",
    ),
    LineMapping(
        "170", "Other financing payments", Section.FINANCING, FlowDirection.OUTFLOW,
        description="Other financing payments / Прочие финансовые платежи",
    ),
    LineMapping(
        "180", "Net cash from financing activities", Section.FINANCING, FlowDirection.SUBTOTAL,
        description="Net cash from financing / Итого финансовая деятельность",
        is_computed=True,
    ),
    # Reconciliation
    LineMapping(
        "220", "Net increase in cash and equivalents", Section.RECONCILIATION, FlowDirection.TOTAL,
        description="Net increase in cash / Чистое изменение денежных средств",
        is_computed=True,
    ),
    LineMapping(
        "221", "Effect of exchange rate changes", Section.RECONCILIATION, FlowDirection.ADJUSTMENT,
        description="Foreign exchange effects / Влияние валютных курсов",
        is_target_only=True,
    ),
    LineMapping(
        "230", "Cash at beginning of period", Section.RECONCILIATION, FlowDirection.BALANCE,
        description="Cash at beginning / Денежные средства на начало",
    ),
    LineMapping(
        "240", "Cash at end of period", Section.RECONCILIATION, FlowDirection.BALANCE,
        description="Cash at end / Денежные средства на конец",
        is_computed=True,
    ),
)


def normalize_code(code: Union[str, int, float, None]) -> Optional[str]:
    """
    Normalize a raw line code to the registry's key format.

    Accepts untrimmed or under-padded strings (``" 10"``, ``"0010"``),
    integers and integral floats (Excel stores ``10`` as ``10.0``).

    Returns:
        Zero-padded 3-character code, or None if the input is not a
        non-negative integral number written in ASCII digits.
    """
    if code is None or isinstance(code, bool):
        return None

    if isinstance(code, float):
        if not code.is_integer():
            return None
        code = int(code)

    text = str(code).strip()
    if text.endswith(".0"):
        text = text[:-2]
    if not (text.isascii() and text.isdigit()):
        return None

    return str(int(text)).zfill(CODE_WIDTH)


class MappingRegistry:
    """
    Read-only lookup of NSBU line codes.

    Built once from a literal table and passed to the components that need
    it. Construction enforces the registry invariants.
    """

    def __init__(self, mappings: Iterable[LineMapping]):
        by_code: Dict[str, LineMapping] = {}

        for mapping in mappings:
            if mapping.source_code in by_code:
                raise InvalidRegistryError(
                    f"Duplicate source code {mapping.source_code}",
                    source_code=mapping.source_code,
                )
            if (
                not mapping.is_computed
                and mapping.section != Section.RECONCILIATION
                and mapping.flow_direction not in SOURCED_DIRECTIONS
            ):
                raise InvalidRegistryError(
                    f"Sourced line {mapping.source_code} must be an inflow, outflow or net flow",
                    source_code=mapping.source_code,
                )
            by_code[mapping.source_code] = mapping

        self._by_code: Mapping[str, LineMapping] = MappingProxyType(by_code)

    def __len__(self) -> int:
        return len(self._by_code)

    def __iter__(self) -> Iterator[LineMapping]:
        return iter(self._by_code.values())

    def __contains__(self, code: object) -> bool:
        return self.lookup(code) is not None  # type: ignore[arg-type]

    def codes(self) -> List[str]:
        """All registered codes in table order."""
        return list(self._by_code)

    def lookup(self, code: Union[str, int, float, None]) -> Optional[LineMapping]:
        """
        Get the mapping for an NSBU line code.

        Args:
            code: Raw code as found in the source sheet.

        Returns:
            The LineMapping, or None when the code is unknown.
        """
        key = normalize_code(code)
        if key is None:
            return None
        return self._by_code.get(key)

    def list_by_section(self, section: Union[Section, str]) -> List[LineMapping]:
        """Get all mappings of a section, in table order."""
        target = Section(section)
        return [m for m in self._by_code.values() if m.section == target]

    def section_skeleton(self) -> Dict[str, list]:
        """Empty grouping containers keyed by section name."""
        return {section.value: [] for section in Section}


@lru_cache
def get_cash_flow_registry() -> MappingRegistry:
    """Get the process-wide cash flow registry."""
    registry = MappingRegistry(CASH_FLOW_LINES)
    logger.debug("Cash flow registry loaded", lines=len(registry))
    return registry
