"""
Tests for the statement processing pipeline.
"""
import uuid

import pytest
from openpyxl import Workbook, load_workbook

from atabai.config import get_settings
from atabai.exceptions import StatementProcessingError
from atabai.services.statement_processor import (
    ProcessingResult,
    StatementProcessor,
    get_statement_processor,
)


@pytest.fixture
def processor(settings) -> StatementProcessor:
    """Processor using the test settings."""
    return StatementProcessor(settings=settings)


class TestProcessCashFlow:
    """Tests for the cash flow pipeline."""

    def test_summary(self, processor: StatementProcessor, cash_flow_file):
        """Test the processing summary of the fixture workbook."""
        result = processor.process_cash_flow(cash_flow_file)
        summary = result.summary

        assert isinstance(result, ProcessingResult)
        assert summary["statement"] == "cash_flow"
        assert summary["transformations"] == 5
        assert summary["changes"] == 6
        assert summary["original_rows"] == 8
        assert summary["processed_rows"] == 20
        assert summary["worksheets"] == ["IFRS Cash Flow"]

    def test_diagnostics_merged(self, processor: StatementProcessor, cash_flow_file):
        """Test extraction and render diagnostics are reported together."""
        result = processor.process_cash_flow(cash_flow_file)

        assert result.summary["diagnostics"] == {
            "not_found": 1,
            "unresolved_reference": 1,
            "degraded_asset": 0,
            "invalid_layout": 0,
        }
        assert len(result.summary["warnings"]) == 2
        assert "999" in result.summary["warnings"][0]

    def test_report_id_and_timings(self, processor: StatementProcessor, cash_flow_file):
        """Test each run gets its own id and stage timings."""
        first = processor.process_cash_flow(cash_flow_file)
        second = processor.process_cash_flow(cash_flow_file)

        assert uuid.UUID(first.report_id)
        assert first.report_id != second.report_id
        assert first.summary["report_id"] == first.report_id
        assert set(first.timings_ms) == {"read", "extract_transform", "render"}

    def test_company_override(self, processor: StatementProcessor, cash_flow_file):
        """Test the company line can be replaced."""
        result = processor.process_cash_flow(cash_flow_file, company_name="Acme LLC")

        assert result.workbook.active["A2"].value == "Acme LLC"

    def test_save(self, processor: StatementProcessor, cash_flow_file, tmp_path):
        """Test the rendered workbook is written with live formulas."""
        result = processor.process_cash_flow(cash_flow_file)

        path = processor.save(result, tmp_path / "out" / "ifrs.xlsx")

        ws = load_workbook(path).active
        assert ws.title == "IFRS Cash Flow"
        assert ws["B25"].value == "=B22+B23+B24"

    def test_loaded_workbook(self, processor: StatementProcessor):
        """Test an in-memory workbook source."""
        wb = Workbook()
        wb.active.append(["Поступления", "010", 100])

        result = processor.process_cash_flow(wb)

        assert result.summary["transformations"] == 1

    def test_monthly_report(self, processor: StatementProcessor, labeled_cash_flow_file):
        """Test a report without line codes is processed by label."""
        result = processor.process_cash_flow(labeled_cash_flow_file)
        summary = result.summary

        assert summary["transformations"] == 7
        assert summary["changes"] == 8
        assert summary["original_rows"] == 8
        assert summary["warnings"] == []

    def test_missing_file(self, processor: StatementProcessor, tmp_path):
        """Test read failures are wrapped with their cause."""
        with pytest.raises(StatementProcessingError) as exc_info:
            processor.process_cash_flow(tmp_path / "missing.xlsx")

        error = exc_info.value
        assert error.error_code == "ATB-500"
        assert error.details == {"statement": "cash flow", "cause": "ATB-100"}
        assert error.message.startswith("Failed to process cash flow statement")

    def test_no_codes(self, processor: StatementProcessor, make_workbook):
        """Test extraction failures are wrapped with their cause."""
        path = make_workbook([["Revenue", 12.5]])

        with pytest.raises(StatementProcessingError) as exc_info:
            processor.process_cash_flow(path)

        assert exc_info.value.details["cause"] == "ATB-200"


class TestProcessProfitLoss:
    """Tests for the P&L pipeline."""

    def test_summary(self, processor: StatementProcessor, profit_loss_file):
        """Test the processing summary of the fixture workbook."""
        result = processor.process_profit_loss(profit_loss_file)
        summary = result.summary

        assert summary["statement"] == "profit_loss"
        assert summary["transformations"] == 5
        assert summary["changes"] == 17
        assert summary["original_rows"] == 5
        assert summary["processed_rows"] == 51
        assert summary["worksheets"] == ["IFRS P&L Statement"]
        assert summary["warnings"] == []

    def test_missing_file(self, processor: StatementProcessor, tmp_path):
        """Test errors name the P&L statement."""
        with pytest.raises(StatementProcessingError) as exc_info:
            processor.process_profit_loss(tmp_path / "missing.xlsx")

        assert exc_info.value.details["statement"] == "P&L"


class TestGetStatementProcessor:
    """Tests for the factory."""

    def test_new_instance(self):
        """Test each call returns a fresh processor on the cached settings."""
        first = get_statement_processor()

        assert first is not get_statement_processor()
        assert first.settings is get_settings()
