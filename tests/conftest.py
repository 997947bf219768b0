"""
Pytest configuration and fixtures.
"""
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest
from openpyxl import Workbook
from openpyxl.styles import Font
from PIL import Image as PILImage

from atabai.config import Settings
from atabai.mappings import MappingRegistry, get_cash_flow_registry
from atabai.services.excel_builder import ExcelBuilder


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings without a logo, so row 1 holds the title."""
    return Settings(
        include_logo=False,
        logo_path=tmp_path / "missing-logo.png",
        watermark_text="Processed by ATABAI",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def builder(settings: Settings) -> ExcelBuilder:
    """ExcelBuilder with the brand style and test settings."""
    return ExcelBuilder(settings=settings)


@pytest.fixture
def registry() -> MappingRegistry:
    """Process-wide cash flow registry."""
    return get_cash_flow_registry()


@pytest.fixture
def logo_png(tmp_path: Path) -> Path:
    """A real 188x50 PNG generated with Pillow."""
    path = tmp_path / "logo.png"
    PILImage.new("RGBA", (188, 50), (101, 57, 154, 255)).save(path)
    return path


SheetRows = Sequence[Sequence[object]]


@pytest.fixture
def make_workbook(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory writing rows to an .xlsx file.

    ``bold_rows`` are 1-based row numbers whose label cell is bold.
    """
    def _make(rows: SheetRows, name: str = "source.xlsx", bold_rows: Optional[List[int]] = None) -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = "Sheet1"
        for row in rows:
            ws.append(list(row))
        for number in bold_rows or []:
            ws.cell(row=number, column=1).font = Font(bold=True)
        path = tmp_path / name
        wb.save(path)
        return path

    return _make


# NSBU Form 4 excerpt: label, code, two quarters. No financing lines.
CASH_FLOW_ROWS = [
    ["ООО «Test Company»"],
    ["Отчет о движении денежных средств"],
    ["за 2024 год"],
    ["Наименование показателя", "Код стр.", "Q1 2024", "Q2 2024"],
    [1, 2, 3, 4],
    ["Поступления от покупателей", "010", 1000, 1200],
    ["Выплаты поставщикам", "020", 400, 500],
    ["Налоговые платежи", "040", -50, -60],
    ["Итого по операционной деятельности", "050", 550, 640],
    ["Приобретение основных средств", "070", 200, None],
    ["Прочие строки", "999", 5, 5],
    ["Поступления от покупателей (филиал)", 10, 100, 0],
    ["Денежные средства на начало периода", "230", 300, 850],
]


@pytest.fixture
def cash_flow_file(make_workbook) -> Path:
    """NSBU cash flow workbook on disk."""
    return make_workbook(CASH_FLOW_ROWS, name="cash_flow.xlsx")


# Monthly cash flow report without line codes
LABELED_CASH_FLOW_ROWS = [
    ["ООО «Samarkand Build»"],
    ["ИНН 302345678"],
    ["CF", "Янв 2024", "Фев 2024"],
    ["Операционная деятельность"],
    ["Приток"],
    ["Поступления от заказчиков", 1000, 1200],
    ["Авансы полученные", 200, None],
    ["Отток"],
    ["Оплата субподрядчикам", 600, 700],
    ["Налоги", -100, -120],
    ["Итого по операционной деятельности", 500, 380],
    ["Инвестиционная деятельность"],
    ["Отток"],
    ["Покупка техники", 300, None],
    ["Финансовая деятельность"],
    ["Получение кредита", 400, None],
    ["Остаток на начало периода", 150, 350],
    ["Остаток на конец периода", 350, 730],
]


@pytest.fixture
def labeled_cash_flow_file(make_workbook) -> Path:
    """Label-based monthly cash flow workbook on disk."""
    return make_workbook(LABELED_CASH_FLOW_ROWS, name="cash_flow_monthly.xlsx")


# Management P&L excerpt with three months
PROFIT_LOSS_ROWS = [
    ["ООО «Builder Group»"],
    ["Статья", "Янв", "Фев", "Мар"],
    ["ДОХОДЫ", 1500, 1500, 1500],
    ["Проекты 2024", None, None, None],
    ["Проект Альфа", 1000, 1100, 1200],
    ["Проект Бета", 500, 400, 300],
    ["Кранчи (ВГО)", 50, 50, 50],
    ["РАСХОДЫ", -800, -800, -800],
    ["Субподряд Альфа", -600, -650, -700],
    ["Субподряд Бета", -200, -150, -100],
    ["Накладные проекта", None, None, None],
    ["ФОТ прорабов", -100, -100, -100],
    ["ЕСП прорабов", -12, -12, -12],
    ["Амортизация техники", -30, -30, -30],
    ["Охрана объекта", -20, -20, -20],
    ["Административно-хозяйственные расходы", None, None, None],
    ["ФОТ АУП", -80, -80, -80],
    ["ЕСП АУП", -10, -10, -10],
    ["ГСМ", -15, -15, -15],
    ["Аренда офиса", -25, -25, -25],
    ["Прочие доходы", None, None, None],
    ["Курсовая разница", 5, 0, 7],
    ["Налог на прибыль", -40, -40, -40],
    ["Чистая прибыль", 373, 373, 373],
]


@pytest.fixture
def profit_loss_file(make_workbook) -> Path:
    """NSBU management P&L workbook on disk; "ДОХОДЫ" and "Проекты 2024" are bold."""
    return make_workbook(PROFIT_LOSS_ROWS, name="profit_loss.xlsx", bold_rows=[3, 4])
