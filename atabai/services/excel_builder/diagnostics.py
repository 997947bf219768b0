"""
Diagnostics collected while building a statement.

Data problems never abort a report; they are recorded here and returned with
the rendered workbook so callers and monitoring can see degraded output.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DiagnosticCode(str, Enum):
    NOT_FOUND = "not_found"  # Source line code has no registry entry
    UNRESOLVED_REFERENCE = "unresolved_reference"  # Operand dropped from a calculated row
    DEGRADED_ASSET = "degraded_asset"  # Brand image replaced by text
    INVALID_LAYOUT = "invalid_layout"  # Total/calculated row degenerated to =0


@dataclass(frozen=True)
class Diagnostic:
    code: DiagnosticCode
    message: str
    row_index: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "row_index": self.row_index,
            "details": dict(self.details),
        }


@dataclass
class RenderDiagnostics:
    """Ordered collection of diagnostics for one report."""

    events: List[Diagnostic] = field(default_factory=list)

    def add(
        self,
        code: DiagnosticCode,
        message: str,
        /,
        row_index: Optional[int] = None,
        **details: Any,
    ) -> Diagnostic:
        event = Diagnostic(code, message, row_index, details)
        self.events.append(event)
        return event

    def extend(self, other: "RenderDiagnostics") -> None:
        self.events.extend(other.events)

    def count(self, code: DiagnosticCode) -> int:
        return sum(1 for event in self.events if event.code == code)

    @property
    def unresolved_references(self) -> int:
        return self.count(DiagnosticCode.UNRESOLVED_REFERENCE)

    @property
    def is_clean(self) -> bool:
        return not self.events

    def counts(self) -> Dict[str, int]:
        """Event count per code, including zero counts."""
        return {code.value: self.count(code) for code in DiagnosticCode}

    def messages(self) -> List[str]:
        return [event.message for event in self.events]
