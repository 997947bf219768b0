"""
Styles and Colorways for statement formatting.

Defines visual styling configurations with customizable color palettes.
The ``atabai`` style and colorway reproduce the brand look of the reports.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional

from openpyxl.styles import (
    Alignment,
    Border,
    Font,
    PatternFill,
    Side,
)

PRIMARY_FONT = "Calibri"

# Two decimals, negatives in brackets
NUMBER_FORMAT = "#,##0.00;(#,##0.00)"


@dataclass
class StyleConfig:
    """Configuration for a statement style."""

    name: str

    # Fonts
    brand_font: Font
    title_font: Font
    company_font: Font
    subtitle_font: Font
    header_font: Font
    section_font: Font
    subheader_font: Font
    item_font: Font
    total_font: Font
    watermark_font: Font

    # Fills (will be combined with colorway)
    header_fill: Optional[PatternFill] = None
    section_fill: Optional[PatternFill] = None
    row_fill: Optional[PatternFill] = None
    alt_row_fill: Optional[PatternFill] = None
    total_fill: Optional[PatternFill] = None

    # Borders
    total_border: Optional[Border] = None
    calculated_border: Optional[Border] = None

    # Alignment
    label_alignment: Optional[Alignment] = None
    value_alignment: Optional[Alignment] = None
    center_alignment: Optional[Alignment] = None

    number_format: str = NUMBER_FORMAT

    # Row heights
    blank_row_height: float = 6
    item_row_height: float = 15
    total_row_height: float = 16
    header_row_height: float = 18


@dataclass
class Colorway:
    """Color palette for styling (aRGB hex)."""

    name: str
    primary: str  # Brand mark and watermark
    header: str  # Column header background
    section: str  # Section title background
    alt_row_bg: str  # Alternating rows
    total_bg: str  # Totals and calculated rows
    text_on_header: str = "FFFFFFFF"
    border_color: str = "FF8EA9C1"
    divider_color: str = "FFBFBFBF"


def _solid(color: str) -> PatternFill:
    return PatternFill("solid", fgColor=color)


# =============================================================================
# STYLE DEFINITIONS
# =============================================================================

STYLES: Dict[str, StyleConfig] = {
    "atabai": StyleConfig(
        name="ATABAI",
        brand_font=Font(name=PRIMARY_FONT, size=16, bold=True),
        title_font=Font(name=PRIMARY_FONT, size=14, bold=True),
        company_font=Font(name=PRIMARY_FONT, size=11, bold=True),
        subtitle_font=Font(name=PRIMARY_FONT, size=10),
        header_font=Font(name=PRIMARY_FONT, size=10, bold=True),
        section_font=Font(name=PRIMARY_FONT, size=10, bold=True),
        subheader_font=Font(name=PRIMARY_FONT, size=10, italic=True),
        item_font=Font(name=PRIMARY_FONT, size=10),
        total_font=Font(name=PRIMARY_FONT, size=10, bold=True),
        watermark_font=Font(name=PRIMARY_FONT, size=9, italic=True),
        header_fill=_solid("FF4472C4"),
        section_fill=_solid("FFF2F2F2"),
        row_fill=_solid("FFFFFFFF"),
        alt_row_fill=_solid("FFD9E1F2"),
        total_fill=_solid("FFD9E1F2"),
        total_border=Border(bottom=Side(style="medium")),
        calculated_border=Border(
            top=Side(style="thin"),
            bottom=Side(style="double"),
        ),
        label_alignment=Alignment(horizontal="left", vertical="center"),
        value_alignment=Alignment(horizontal="right", vertical="center"),
        center_alignment=Alignment(horizontal="center", vertical="center"),
    ),

    "basic": StyleConfig(
        name="Basic",
        brand_font=Font(bold=True, size=14),
        title_font=Font(bold=True, size=14),
        company_font=Font(bold=True, size=11),
        subtitle_font=Font(size=10),
        header_font=Font(bold=True, size=11),
        section_font=Font(bold=True, size=10),
        subheader_font=Font(size=10, italic=True),
        item_font=Font(size=10),
        total_font=Font(bold=True, size=10),
        watermark_font=Font(size=9, italic=True),
        total_border=Border(
            bottom=Side(style="thin", color="FF000000"),
        ),
        calculated_border=Border(
            top=Side(style="thin", color="FF000000"),
            bottom=Side(style="double", color="FF000000"),
        ),
        label_alignment=Alignment(horizontal="left", vertical="center"),
        value_alignment=Alignment(horizontal="right", vertical="center"),
        center_alignment=Alignment(horizontal="center", vertical="center"),
    ),

    "professional": StyleConfig(
        name="Professional",
        brand_font=Font(bold=True, size=16),
        title_font=Font(bold=True, size=14),
        company_font=Font(bold=True, size=11),
        subtitle_font=Font(size=10, italic=True),
        header_font=Font(bold=True, size=11),
        section_font=Font(bold=True, size=10, italic=True),
        subheader_font=Font(size=10, italic=True),
        item_font=Font(size=10),
        total_font=Font(bold=True, size=10),
        watermark_font=Font(size=9, italic=True),
        alt_row_fill=_solid("FFF5F5F5"),
        total_border=Border(
            bottom=Side(style="medium"),
        ),
        calculated_border=Border(
            top=Side(style="thin"),
            bottom=Side(style="medium"),
        ),
        label_alignment=Alignment(horizontal="left", vertical="center", indent=1),
        value_alignment=Alignment(horizontal="right", vertical="center"),
        center_alignment=Alignment(horizontal="center", vertical="center"),
    ),
}


# =============================================================================
# COLORWAY DEFINITIONS
# =============================================================================

COLORWAYS: Dict[str, Colorway] = {
    "atabai": Colorway(
        name="ATABAI",
        primary="FF65399A",  # Brand purple
        header="FF4472C4",  # Table header blue
        section="FFF2F2F2",  # Light gray
        alt_row_bg="FFD9E1F2",  # Light blue
        total_bg="FFD9E1F2",
    ),

    "blue": Colorway(
        name="Blue",
        primary="FF1565C0",
        header="FF1E88E5",
        section="FFE3F2FD",
        alt_row_bg="FFE3F2FD",
        total_bg="FFBBDEFB",
    ),

    "slate": Colorway(
        name="Slate",
        primary="FF37474F",
        header="FF546E7A",
        section="FFECEFF1",
        alt_row_bg="FFECEFF1",
        total_bg="FFCFD8DC",
    ),
}


def _recolor(font: Font, color: str) -> Font:
    return Font(
        name=font.name,
        size=font.size,
        bold=font.bold,
        italic=font.italic,
        color=color,
    )


def apply_colorway_to_style(style: StyleConfig, colorway: Colorway) -> StyleConfig:
    """
    Apply a colorway to a style configuration.

    Creates a new StyleConfig; fills the style defines are recolored, fills
    it leaves out stay absent.
    """
    return replace(
        style,
        name=f"{style.name} - {colorway.name}",
        brand_font=_recolor(style.brand_font, colorway.primary),
        watermark_font=_recolor(style.watermark_font, colorway.primary),
        header_font=(
            _recolor(style.header_font, colorway.text_on_header)
            if style.header_fill else style.header_font
        ),
        header_fill=_solid(colorway.header) if style.header_fill else None,
        section_fill=_solid(colorway.section) if style.section_fill else None,
        alt_row_fill=_solid(colorway.alt_row_bg) if style.alt_row_fill else None,
        total_fill=_solid(colorway.total_bg) if style.total_fill else None,
    )


def get_style(style: str = "atabai", colorway: str = "atabai") -> StyleConfig:
    """Resolve a style and colorway by name, falling back to the brand defaults."""
    base = STYLES.get(style, STYLES["atabai"])
    palette = COLORWAYS.get(colorway, COLORWAYS["atabai"])
    return apply_colorway_to_style(base, palette)
