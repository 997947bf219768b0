"""
Numeric parser for NSBU statement cells.

Handles the value formats found in Uzbek statement workbooks:
- Native numbers: 1234, 1234.5 (cached formula results included)
- Space or non-breaking space thousand separators: 1 234 567,89
- Negative notation: (123), -123
- Placeholders for empty lines: "-", "—", "x"
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)

Number = float


@dataclass
class ParsedNumber:
    """Result of parsing one cell."""

    value: Optional[Number]
    raw_value: Any
    is_negative: bool = False


class NumericParser:
    """
    Parser for statement cell values.

    Cells are parsed leniently: anything that is not recognisably a number
    yields None, which the layout renders as an empty cell.
    """

    # Cells that mean "no amount" rather than zero
    PLACEHOLDERS = {"-", "–", "—", "x", "х", "n/a", "н/д"}

    PARENTHESES_PATTERN = re.compile(r"^\s*\(([^)]+)\)\s*$")
    SPACES_PATTERN = re.compile(r"\s+")
    NUMBER_PATTERN = re.compile(r"^\d+(?:[.,]\d+)*$")

    def parse(self, value: Any) -> ParsedNumber:
        """
        Parse a raw cell value.

        Args:
            value: Value as read from the worksheet.

        Returns:
            ParsedNumber whose ``value`` is None for empty or non-numeric cells.
        """
        if value is None or isinstance(value, bool):
            return ParsedNumber(value=None, raw_value=value)

        if isinstance(value, (datetime, date)):
            return ParsedNumber(value=None, raw_value=value)

        if isinstance(value, (int, float)):
            if value != value:  # NaN
                return ParsedNumber(value=None, raw_value=value)
            return ParsedNumber(value=float(value), raw_value=value, is_negative=value < 0)

        text = str(value).strip()
        if not text or text.lower() in self.PLACEHOLDERS:
            return ParsedNumber(value=None, raw_value=value)

        is_negative = False
        paren_match = self.PARENTHESES_PATTERN.match(text)
        if paren_match:
            text = paren_match.group(1).strip()
            is_negative = True

        if text.startswith("-"):
            is_negative = not is_negative
            text = text[1:].strip()
        elif text.startswith("+"):
            text = text[1:].strip()

        parsed = self._parse_number(self.SPACES_PATTERN.sub("", text))
        if parsed is None:
            return ParsedNumber(value=None, raw_value=value)

        return ParsedNumber(
            value=-parsed if is_negative else parsed,
            raw_value=value,
            is_negative=is_negative,
        )

    def to_number(self, value: Any) -> Optional[Number]:
        """Shortcut for ``parse(value).value``."""
        return self.parse(value).value

    def _parse_number(self, text: str) -> Optional[Number]:
        """
        Parse a cleaned numeric string.

        Args:
            text: String with signs, brackets and spaces removed.

        Returns:
            The number, or None if the string is not numeric.
        """
        if not text or not self.NUMBER_PATTERN.match(text):
            return None

        comma_count = text.count(",")
        period_count = text.count(".")

        if comma_count and period_count:
            # Last separator is the decimal one
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        elif comma_count:
            if self._is_thousand_separator(text, ","):
                text = text.replace(",", "")
            elif comma_count == 1:
                # Decimal comma
                text = text.replace(",", ".")
            else:
                return None
        elif period_count > 1:
            if not self._is_thousand_separator(text, "."):
                return None
            text = text.replace(".", "")

        try:
            return float(text)
        except ValueError as e:
            logger.warning("Failed to parse number", value=text, error=str(e))
            return None

    def _is_thousand_separator(self, text: str, separator: str) -> bool:
        """True when every group after the first has exactly three digits."""
        parts = text.split(separator)
        if len(parts) < 2:
            return False
        return all(len(part) == 3 and part.isdigit() for part in parts[1:])


# Singleton instance
_parser_instance: Optional[NumericParser] = None


def get_numeric_parser() -> NumericParser:
    """Get singleton NumericParser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = NumericParser()
    return _parser_instance
