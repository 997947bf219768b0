"""
Unit tests for custom exceptions.

Tests exception hierarchy and error formatting.
"""
import pytest

from atabai.exceptions import (
    AtabaiError,
    ExtractionError,
    InvalidRegistryError,
    LayoutError,
    MappingError,
    NoWorksheetsError,
    StatementProcessingError,
    WorkbookReadError,
)


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    def test_base_exception(self):
        """Test base AtabaiError."""
        exc = AtabaiError("Test error")

        assert exc.error_code == "ATB-000"
        assert exc.message == "Test error"
        assert str(exc) == "Test error"

    def test_workbook_read_error(self):
        """Test WorkbookReadError inherits correctly."""
        exc = WorkbookReadError()

        assert isinstance(exc, AtabaiError)
        assert exc.error_code == "ATB-100"
        assert exc.message == "Failed to read Excel file"

    def test_no_worksheets_error(self):
        """Test NoWorksheetsError is a read error."""
        exc = NoWorksheetsError("empty.xlsx")

        assert isinstance(exc, WorkbookReadError)
        assert exc.error_code == "ATB-101"
        assert exc.details == {"source": "empty.xlsx"}

    def test_extraction_error(self):
        """Test ExtractionError."""
        exc = ExtractionError("No codes")

        assert isinstance(exc, AtabaiError)
        assert exc.error_code == "ATB-200"

    def test_mapping_errors(self):
        """Test MappingError and InvalidRegistryError."""
        exc = InvalidRegistryError("Duplicate source code 010", source_code="010")

        assert isinstance(exc, MappingError)
        assert MappingError().error_code == "ATB-300"
        assert exc.error_code == "ATB-301"
        assert exc.details["source_code"] == "010"

    def test_layout_error(self):
        """Test LayoutError."""
        assert LayoutError().error_code == "ATB-400"


class TestStatementProcessingError:
    """Tests for the pipeline error wrapper."""

    def test_message(self):
        """Test the statement name and reason are in the message."""
        exc = StatementProcessingError("cash flow", "bad file")

        assert exc.error_code == "ATB-500"
        assert exc.message == "Failed to process cash flow statement: bad file"
        assert exc.details == {"statement": "cash flow"}

    def test_cause(self):
        """Test the wrapped error code is kept."""
        exc = StatementProcessingError("P&L", "missing", cause=WorkbookReadError())

        assert exc.details["cause"] == "ATB-100"


class TestExceptionDetails:
    """Tests for exception details handling."""

    def test_custom_details(self):
        """Test exceptions with custom details."""
        exc = ExtractionError(
            message="No codes",
            details={"sheet": "Sheet1", "rows": 5}
        )

        assert exc.details["sheet"] == "Sheet1"
        assert exc.details["rows"] == 5

    def test_error_code_override(self):
        """Test an instance can carry its own code."""
        exc = AtabaiError("Custom", error_code="ATB-999")

        assert exc.error_code == "ATB-999"
        assert AtabaiError.error_code == "ATB-000"

    def test_to_dict(self):
        """Test dictionary form used by the CLI."""
        exc = NoWorksheetsError("empty.xlsx")

        assert exc.to_dict() == {
            "error": True,
            "error_code": "ATB-101",
            "message": "No worksheets found in the file",
            "details": {"source": "empty.xlsx"},
        }

    def test_exception_can_be_raised(self):
        """Test that exceptions can be raised and caught."""
        with pytest.raises(AtabaiError) as exc_info:
            raise ExtractionError("Test error")

        assert exc_info.value.error_code == "ATB-200"
