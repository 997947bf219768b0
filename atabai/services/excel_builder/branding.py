"""
Brand mark row shared by all statement renderers.

Places the logo image centered over the merged header band, or writes the
brand name as text when the image is missing or unreadable.
"""

from pathlib import Path
from typing import Optional, Sequence

import structlog
from openpyxl.drawing.image import Image
from openpyxl.drawing.spreadsheet_drawing import AnchorMarker, OneCellAnchor
from openpyxl.drawing.xdr import XDRPositiveSize2D
from openpyxl.utils.units import pixels_to_EMU, pixels_to_points
from openpyxl.worksheet.worksheet import Worksheet

from atabai.services.excel_builder.diagnostics import DiagnosticCode, RenderDiagnostics
from atabai.services.excel_builder.styles import StyleConfig

logger = structlog.get_logger(__name__)

# One character width unit of a column is about 7 pixels at 96 DPI
CHAR_WIDTH_PX = 7


def band_width_px(column_widths: Sequence[float]) -> float:
    """Pixel width of a run of columns given in character units."""
    return sum(width * CHAR_WIDTH_PX for width in column_widths)


def centered_anchor(
    column_widths: Sequence[float],
    row: int,
    width_px: int,
    height_px: int,
) -> OneCellAnchor:
    """
    Anchor an image horizontally centered within a band of columns.

    Args:
        column_widths: Widths (character units) of the band's columns, left to right.
        row: 1-based worksheet row of the band.
        width_px: Image width in pixels.
        height_px: Image height in pixels.

    Returns:
        OneCellAnchor at the column holding the centered left edge, with the
        remaining pixel offset converted to EMU.
    """
    offset_px = max(0.0, (band_width_px(column_widths) - width_px) / 2)

    col = 0
    for col, width in enumerate(column_widths):
        col_px = width * CHAR_WIDTH_PX
        if offset_px < col_px or col == len(column_widths) - 1:
            break
        offset_px -= col_px

    marker = AnchorMarker(col=col, colOff=pixels_to_EMU(offset_px), row=row - 1, rowOff=0)
    size = XDRPositiveSize2D(pixels_to_EMU(width_px), pixels_to_EMU(height_px))
    return OneCellAnchor(_from=marker, ext=size)


def _load_logo(path: Path) -> Optional[Image]:
    if not path.exists():
        logger.warning("Logo not found, using text fallback", path=str(path))
        return None
    try:
        return Image(str(path))
    except (OSError, ValueError) as e:
        logger.warning("Logo found but failed to load", path=str(path), error=str(e))
        return None


def add_brand_row(
    ws: Worksheet,
    row: int,
    column_widths: Sequence[float],
    style: StyleConfig,
    logo_path: Optional[Path],
    brand_text: str,
    width_px: int,
    height_px: int,
    diagnostics: RenderDiagnostics,
) -> bool:
    """
    Add the brand mark at ``row``, merged across all statement columns.

    Returns:
        True if the image was placed, False if the text fallback was used.
    """
    column_count = len(column_widths)
    image = _load_logo(logo_path) if logo_path is not None else None

    if image is not None:
        image.width = width_px
        image.height = height_px
        image.anchor = centered_anchor(column_widths, row, width_px, height_px)
        ws.add_image(image)
        logger.info("Logo placed", path=str(logo_path), row=row)
    else:
        diagnostics.add(
            DiagnosticCode.DEGRADED_ASSET,
            "Brand image unavailable, rendered as text",
            path=str(logo_path) if logo_path else None,
        )
        cell = ws.cell(row=row, column=1, value=brand_text)
        cell.font = style.brand_font
        if style.center_alignment:
            cell.alignment = style.center_alignment

    ws.row_dimensions[row].height = pixels_to_points(height_px)
    if column_count > 1:
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=column_count)

    return image is not None
