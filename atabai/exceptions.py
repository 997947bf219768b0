"""
Custom exceptions for ATABAI.

Provides a hierarchy of exceptions with error codes for consistent error handling.
Rendering itself never raises for data problems (those become diagnostics);
these exceptions cover reading, extraction and programming errors.
"""
from typing import Any, Dict, Optional


class AtabaiError(Exception):
    """
    Base exception for all ATABAI errors.

    Attributes:
        error_code: Unique error code (e.g., ATB-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "ATB-000"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for summaries and CLI output."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Workbook Reading Errors (ATB-1XX)
class WorkbookReadError(AtabaiError):
    """Source workbook could not be opened or parsed."""
    error_code = "ATB-100"

    def __init__(self, message: str = "Failed to read Excel file", **kwargs):
        super().__init__(message, **kwargs)


class NoWorksheetsError(WorkbookReadError):
    """Source workbook contains no worksheets."""
    error_code = "ATB-101"

    def __init__(self, source: str = "", **kwargs):
        message = "No worksheets found in the file"
        super().__init__(message, details={"source": source}, **kwargs)


# Extraction Errors (ATB-2XX)
class ExtractionError(AtabaiError):
    """Statement data could not be extracted from a sheet."""
    error_code = "ATB-200"

    def __init__(self, message: str = "Failed to extract statement data", **kwargs):
        super().__init__(message, **kwargs)


# Mapping Errors (ATB-3XX)
class MappingError(AtabaiError):
    """Error in the line-item mapping tables."""
    error_code = "ATB-300"

    def __init__(self, message: str = "Invalid line mapping", **kwargs):
        super().__init__(message, **kwargs)


class InvalidRegistryError(MappingError):
    """Mapping table violates a registry invariant."""
    error_code = "ATB-301"

    def __init__(self, message: str, source_code: str = "", **kwargs):
        super().__init__(message, details={"source_code": source_code}, **kwargs)


# Layout Errors (ATB-4XX)
class LayoutError(AtabaiError):
    """Layout row cannot be rendered."""
    error_code = "ATB-400"

    def __init__(self, message: str = "Invalid statement layout", **kwargs):
        super().__init__(message, **kwargs)


# Processing Errors (ATB-5XX)
class StatementProcessingError(AtabaiError):
    """A statement pipeline failed before rendering."""
    error_code = "ATB-500"

    def __init__(self, statement: str, reason: str, cause: Optional[AtabaiError] = None, **kwargs):
        message = f"Failed to process {statement} statement: {reason}"
        details: Dict[str, Any] = {"statement": statement}
        if cause is not None:
            details["cause"] = cause.error_code
        super().__init__(message, details=details, **kwargs)
