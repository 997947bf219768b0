"""
Tests for the cash flow and P&L extractors.
"""
import pytest

from atabai.exceptions import ExtractionError
from atabai.mappings import FlowDirection, Section
from atabai.services.excel_builder import DiagnosticCode
from atabai.services.excel_reader import SourceRow, SourceSheet, read_workbook
from atabai.services.extractors import extract_cash_flow, extract_profit_loss
from atabai.services.extractors.cash_flow import LABELED
from atabai.services.extractors.common import add_values, find_company_name
from atabai.services.extractors.profit_loss import (
    detect_periods,
    find_section_bounds,
    is_depreciation,
    is_payroll,
    is_social_tax,
    is_vehicle,
)


def _sheet(rows, bold_rows=()):
    """Build a SourceSheet from plain rows."""
    width = max((len(r) for r in rows), default=0)
    return SourceSheet(
        name="Sheet1",
        rows=[
            SourceRow(number=i, values=list(r), bold=i in bold_rows)
            for i, r in enumerate(rows, start=1)
        ],
        max_column=width,
    )


class TestCommonHelpers:
    """Tests for helpers shared by the extractors."""

    def test_add_values_keeps_empty(self):
        """Test None stays None only where both sides are empty."""
        total = [None, 1.0, None]

        add_values(total, [2.0, None, None])

        assert total == [2.0, 1.0, None]

    def test_company_name_skips_titles(self):
        """Test report titles and period lines are not company names."""
        sheet = _sheet([
            ["Отчет о финансовых результатах"],
            ["за 2024 год"],
            ["АО «Uzbek Steel»"],
        ])

        assert find_company_name(sheet) == "АО «Uzbek Steel»"

    def test_company_name_missing(self):
        """Test sheets without a text label above the data."""
        sheet = _sheet([[None], [1, 2]])

        assert find_company_name(sheet) is None


class TestExtractCashFlow:
    """Tests for extract_cash_flow."""

    @pytest.fixture
    def extracted(self, cash_flow_file, registry):
        """Extraction result of the fixture cash flow workbook."""
        return extract_cash_flow(read_workbook(cash_flow_file).first_sheet, registry)

    def test_layout_detection(self, extracted):
        """Test code column, periods and metadata."""
        assert extracted.code_column == 2
        assert [p.label for p in extracted.periods] == ["Q1 2024", "Q2 2024"]
        assert extracted.company_name == "ООО «Test Company»"
        assert extracted.period_line == "за 2024 год"

    def test_lines_by_code(self, extracted):
        """Test mapped lines keep their source values."""
        assert list(extracted.lines) == ["010", "020", "040", "070", "230"]
        assert extracted.line("020").values == [400.0, 500.0]
        assert extracted.line("040").values == [-50.0, -60.0]
        assert extracted.line("070").values == [200.0, None]
        assert extracted.line(230).values == [300.0, 850.0]
        assert extracted.line("020").label == "Выплаты поставщикам"

    def test_repeated_codes_aggregate(self, extracted):
        """Test a code given as the number 10 adds to line 010."""
        line = extracted.line("010")

        assert line.values == [1100.0, 1200.0]
        assert line.source_rows == [6, 12]

    def test_computed_lines_skipped(self, extracted):
        """Test NSBU subtotals are never copied."""
        assert extracted.line("050") is None

    def test_unmapped_codes(self, extracted):
        """Test unknown codes are reported, not dropped silently."""
        assert extracted.unmapped_codes == ["999"]
        assert extracted.diagnostics.count(DiagnosticCode.NOT_FOUND) == 1
        assert extracted.diagnostics.events[0].details["source_row"] == 11

    def test_numbering_row_excluded(self, extracted):
        """Test the column numbering row is not a coded row."""
        assert extracted.original_rows == 8

    def test_year_header(self, registry):
        """Test numeric year headers label the periods."""
        sheet = _sheet([
            ["Показатель", "Код", 2024, 2023],
            ["Поступления", "010", 10, 20],
        ])

        extracted = extract_cash_flow(sheet, registry)

        assert [p.label for p in extracted.periods] == ["2024", "2023"]

    def test_fallback_period_labels(self, registry):
        """Test period columns without a header get generic labels."""
        sheet = _sheet([["Поступления", "010", 10, 20]])

        extracted = extract_cash_flow(sheet, registry)

        assert [p.label for p in extracted.periods] == ["Period 1", "Period 2"]

    def test_code_in_first_column(self, registry):
        """Test forms that put the code before the label."""
        sheet = _sheet([
            ["010", "Поступления", 10],
            ["020", "Выплаты", 4],
        ])

        extracted = extract_cash_flow(sheet, registry)

        assert extracted.code_column == 1
        assert extracted.line("020").values == [4.0]

    def test_text_amounts(self, registry):
        """Test amounts stored as text are parsed."""
        sheet = _sheet([["Поступления", "010", "1 234,5", "(100)"]])

        extracted = extract_cash_flow(sheet, registry)

        assert extracted.line("010").values == [1234.5, -100.0]

    def test_no_codes(self, registry):
        """Test sheets without line codes raise ExtractionError."""
        sheet = _sheet([["Revenue", "abc", 12.5]])

        with pytest.raises(ExtractionError) as exc_info:
            extract_cash_flow(sheet, registry)

        assert exc_info.value.error_code == "ATB-200"

    def test_amounts_equal_to_codes(self, registry):
        """Test numeric amounts that match a code do not make a coded sheet."""
        sheet = _sheet([
            ["Финансовая деятельность"],
            ["Получение кредита", 100, 230],
        ])

        extracted = extract_cash_flow(sheet, registry)

        assert extracted.source_format == LABELED
        assert extracted.code_column == 0
        assert [p.label for p in extracted.periods] == ["Period 1", "Period 2"]

    def test_footnote_markers(self, registry):
        """Test superscript footnote markers beside the codes are ignored."""
        sheet = _sheet([
            ["Поступления²", "²", "010", 10],
            ["Выплаты", None, "020", 4],
        ])

        extracted = extract_cash_flow(sheet, registry)

        assert extracted.code_column == 3
        assert extracted.line("010").values == [10.0]


class TestExtractLabeledCashFlow:
    """Tests for label-based monthly cash flow reports."""

    @pytest.fixture
    def extracted(self, labeled_cash_flow_file, registry):
        """Extraction result of the monthly fixture workbook."""
        return extract_cash_flow(read_workbook(labeled_cash_flow_file).first_sheet, registry)

    def test_fallback_without_codes(self, extracted):
        """Test sheets without a code column are read by label."""
        assert extracted.source_format == LABELED
        assert [p.label for p in extracted.periods] == ["Янв 2024", "Фев 2024"]

    def test_metadata(self, extracted):
        """Test company, taxpayer id and the missing period line."""
        assert extracted.company_name == "ООО «Samarkand Build»"
        assert extracted.tax_id == "302345678"
        assert extracted.period_line is None

    def test_sections_and_directions(self, extracted):
        """Test lines are grouped by section header and subsection."""
        grouped = [
            (line.mapping.section, line.mapping.flow_direction, line.label)
            for line in extracted.labeled_lines()
        ]

        assert grouped == [
            (Section.OPERATING, FlowDirection.INFLOW, "Поступления от заказчиков"),
            (Section.OPERATING, FlowDirection.INFLOW, "Авансы полученные"),
            (Section.OPERATING, FlowDirection.OUTFLOW, "Оплата субподрядчикам"),
            (Section.OPERATING, FlowDirection.OUTFLOW, "Налоги"),
            (Section.INVESTING, FlowDirection.OUTFLOW, "Покупка техники"),
            (Section.FINANCING, FlowDirection.NET, "Получение кредита"),
        ]
        assert [line.label for line in extracted.labeled_lines(Section.INVESTING)] == ["Покупка техники"]

    def test_values(self, extracted):
        """Test amounts are read from the period columns."""
        lines = {line.label: line for line in extracted.labeled_lines()}

        assert lines["Оплата субподрядчикам"].values == [600.0, 700.0]
        assert lines["Авансы полученные"].values == [200.0, None]
        assert lines["Налоги"].source_rows == [10]

    def test_subtotals_skipped(self, extracted):
        """Test section totals are not read as lines."""
        labels = [line.label for line in extracted.lines.values()]

        assert "Итого по операционной деятельности" not in labels

    def test_reconciliation_by_label(self, extracted):
        """Test opening cash maps to its code and closing cash is recomputed."""
        assert extracted.line("230").values == [150.0, 350.0]
        assert extracted.line("230").labeled is False
        assert extracted.line("240") is None
        assert extracted.original_rows == 8

    def test_repeated_labels_aggregate(self, registry):
        """Test a label repeated in one subsection adds up."""
        sheet = _sheet([
            ["CF", "2024"],
            ["Операционная деятельность"],
            ["Приток"],
            ["Поступления", 10],
            ["Поступления", 5],
        ])

        extracted = extract_cash_flow(sheet, registry)

        assert [line.values for line in extracted.labeled_lines()] == [[15.0]]
        assert extracted.periods[0].label == "2024"

    def test_line_before_sections(self, registry):
        """Test amounts above the first section header are reported."""
        sheet = _sheet([
            ["CF", "2024"],
            ["Прочее", 7],
            ["Операционная деятельность"],
            ["Поступления", 10],
        ])

        extracted = extract_cash_flow(sheet, registry)

        assert extracted.diagnostics.count(DiagnosticCode.NOT_FOUND) == 1
        assert [line.mapping.flow_direction for line in extracted.labeled_lines()] == [FlowDirection.NET]


class TestClassifiers:
    """Tests for expense line classifiers."""

    def test_payroll(self):
        assert is_payroll("ФОТ АУП")
        assert is_payroll("Фонд оплаты труда")
        assert not is_payroll("Аренда офиса")

    def test_social_tax(self):
        assert is_social_tax("ЕСП прорабов")
        assert not is_social_tax("Начисленный ЕСП")

    def test_depreciation(self):
        assert is_depreciation("Амортизация техники")

    def test_vehicle(self):
        assert is_vehicle("ГСМ")
        assert is_vehicle("Аренда транспорта")
        assert not is_vehicle("Аренда офиса")


class TestExtractProfitLoss:
    """Tests for extract_profit_loss."""

    @pytest.fixture
    def sheet(self, profit_loss_file):
        return read_workbook(profit_loss_file).first_sheet

    @pytest.fixture
    def extracted(self, sheet):
        return extract_profit_loss(sheet)

    def test_periods(self, sheet):
        """Test month names mark the period columns."""
        assert detect_periods(sheet) == [("Янв", 2), ("Фев", 3), ("Мар", 4)]

    def test_default_period(self):
        """Test a single total column when no months are found."""
        assert detect_periods(_sheet([["Статья", "Итого"]])) == [("Total", 2)]

    def test_section_bounds(self, sheet):
        """Test section headers are found by label."""
        bounds = find_section_bounds(sheet)

        assert bounds.revenue == 2
        assert bounds.cogs == 7
        assert bounds.overhead == 10
        assert bounds.admin == 15
        assert bounds.other_income == 20
        assert bounds.income_tax == 22
        assert bounds.other_operating is None
        assert bounds.gen_services is None

    def test_revenue_items(self, extracted):
        """Test bold rows become subheaders and aggregates are skipped."""
        items = extracted.revenue_items

        assert [i.name for i in items] == ["Проекты 2024", "Проект Альфа", "Проект Бета"]
        assert items[0].is_subheader is True
        assert items[0].values == []
        assert items[1].values == [1000.0, 1100.0, 1200.0]

    def test_cogs_items(self, extracted):
        """Test cost lines keep their source sign."""
        assert [i.values for i in extracted.cogs_items] == [
            [-600.0, -650.0, -700.0],
            [-200.0, -150.0, -100.0],
        ]

    def test_overhead_buckets(self, extracted):
        """Test overhead lines are classified into buckets."""
        assert extracted.overhead == {
            "fot": [-100.0] * 3,
            "esp": [-12.0] * 3,
            "other": [-20.0] * 3,
        }

    def test_admin_buckets(self, extracted):
        """Test admin lines are classified into buckets."""
        assert extracted.admin == {
            "fot": [-80.0] * 3,
            "esp": [-10.0] * 3,
            "vehicles": [-15.0] * 3,
            "other": [-25.0] * 3,
        }

    def test_depreciation_merged(self, extracted):
        """Test depreciation is pulled out of the expense buckets."""
        assert extracted.depreciation == [-30.0] * 3

    def test_finance_and_tax(self, extracted):
        """Test other income lines and the income tax row."""
        assert [(i.name, i.values) for i in extracted.finance_income_items] == [
            ("Курсовая разница", [5.0, 0.0, 7.0]),
        ]
        assert extracted.income_tax == [-40.0] * 3

    def test_metadata(self, extracted):
        """Test company name and row counts."""
        assert extracted.company_name == "ООО «Builder Group»"
        assert extracted.period_count == 3
        assert extracted.original_rows == 5
        assert extracted.gen_services is None

    def test_helper_rows_skipped(self):
        """Test rows marked -1 in the first period column are ignored."""
        sheet = _sheet([
            ["Статья", "Янв", "Фев", "Мар"],
            ["ДОХОДЫ", 1, 1, 1],
            ["helper", -1, 0, 0],
            ["Проект", 1, 1, 1],
            ["РАСХОДЫ", 0, 0, 0],
        ])

        extracted = extract_profit_loss(sheet)

        assert [i.name for i in extracted.revenue_items] == ["Проект"]

    def test_other_operating_section(self):
        """Test a late other-operating header splits depreciation from other costs."""
        sheet = _sheet([
            ["Статья", "Янв", "Фев", "Мар"],
            ["ДОХОДЫ", 0, 0, 0],
            ["РАСХОДЫ", 0, 0, 0],
            ["Накладные проекта", 0, 0, 0],
            ["Административно-хозяйственные расходы", 0, 0, 0],
            ["Аренда офиса", -1.5, -1.5, -1.5],
            ["Связь", -2, -2, -2],
            ["Канцелярия", -3, -3, -3],
            ["Банк", -4, -4, -4],
            ["Охрана", -5, -5, -5],
            ["Прочие операционные расходы", 0, 0, 0],
            ["Амортизация ОС", -7, -7, -7],
            ["Штрафы", -8, -8, -8],
            ["Налог на прибыль", -9, -9, -9],
        ])

        extracted = extract_profit_loss(sheet)

        assert extracted.depreciation == [-7.0] * 3
        assert extracted.admin["other"] == [-23.5] * 3
