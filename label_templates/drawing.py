"""Draw computed label layouts onto a ReportLab canvas."""

from __future__ import annotations

import logging
from io import BytesIO

import fitz
from reportlab.graphics import renderPDF
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .base import LabelLayout, TextLine
from .utils import PT_PER_MM

logger = logging.getLogger(__name__)

RASTER_SCALE = 3.0


def draw_label(
    canvas_obj: canvas.Canvas,
    layout: LabelLayout,
    left: float,
    top: float,
) -> None:
    """Draw ``layout`` with its top-left corner at (``left``, ``top``) points."""

    def px(x_mm: float) -> float:
        return left + x_mm * PT_PER_MM

    def py(y_mm: float) -> float:
        return top - y_mm * PT_PER_MM

    canvas_obj.saveState()
    clip = canvas_obj.beginPath()
    clip.rect(left, py(layout.height), layout.width * PT_PER_MM, layout.height * PT_PER_MM)
    canvas_obj.clipPath(clip, stroke=0, fill=0)

    symbol = layout.symbol
    if symbol is not None and symbol.drawing.width > 0 and symbol.drawing.height > 0:
        canvas_obj.saveState()
        canvas_obj.translate(px(symbol.box.x), py(symbol.box.bottom))
        canvas_obj.scale(
            symbol.box.width * PT_PER_MM / symbol.drawing.width,
            symbol.box.height * PT_PER_MM / symbol.drawing.height,
        )
        renderPDF.draw(symbol.drawing, canvas_obj, 0, 0)
        canvas_obj.restoreState()

    logo = layout.logo
    if logo is not None:
        try:
            reader = ImageReader(logo.path)
        except (OSError, ValueError) as exc:
            logger.warning("Logo %s could not be loaded: %s", logo.path, exc)
        else:
            canvas_obj.drawImage(
                reader,
                px(logo.box.x),
                py(logo.box.bottom),
                width=logo.box.width * PT_PER_MM,
                height=logo.box.height * PT_PER_MM,
                preserveAspectRatio=True,
                anchor="c",
                mask="auto",
            )

    for line in layout.lines:
        _draw_line(canvas_obj, line, px, py)
    if layout.short_barcode is not None:
        for line in layout.short_barcode.lines:
            _draw_line(canvas_obj, line, px, py)

    marker = layout.marker
    if marker is not None:
        canvas_obj.setFillColor(colors.toColor(marker.color, colors.black))
        canvas_obj.circle(
            px(marker.center_x),
            py(marker.center_y),
            marker.radius * PT_PER_MM,
            stroke=0,
            fill=1,
        )

    canvas_obj.restoreState()


def _draw_line(canvas_obj: canvas.Canvas, line: TextLine, px, py) -> None:
    text = canvas_obj.beginText()
    text.setTextOrigin(px(line.x), py(line.baseline))
    text.setFont(line.font_name, line.font_size)
    text.setFillColor(colors.toColor(line.color, colors.black))
    if line.word_space:
        text.setWordSpace(line.word_space)
    text.textOut(line.text)
    canvas_obj.drawText(text)


def draw_outline(
    canvas_obj: canvas.Canvas,
    left: float,
    bottom: float,
    width: float,
    height: float,
) -> None:
    """Dashed slot border, as shown on screen previews."""

    canvas_obj.saveState()
    canvas_obj.setStrokeColor(colors.lightgrey)
    canvas_obj.setLineWidth(0.5)
    canvas_obj.setDash(2, 2)
    canvas_obj.rect(left, bottom, width, height, stroke=1, fill=0)
    canvas_obj.restoreState()


def rasterize(pdf_bytes: bytes, scale: float = RASTER_SCALE, page_index: int = 0) -> bytes:
    """Render one page of ``pdf_bytes`` to PNG at ``scale`` times 72 dpi."""

    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        page = doc.load_page(page_index)
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return pix.tobytes("png")


def render_label_pdf(layout: LabelLayout, outline: bool = False) -> bytes:
    """Standalone single-label PDF sized to the label."""

    width = layout.width * PT_PER_MM
    height = layout.height * PT_PER_MM
    buffer = BytesIO()
    canvas_obj = canvas.Canvas(buffer, pagesize=(width, height))
    draw_label(canvas_obj, layout, 0.0, height)
    if outline:
        draw_outline(canvas_obj, 0.0, 0.0, width, height)
    canvas_obj.showPage()
    canvas_obj.save()
    return buffer.getvalue()


def render_label_png(layout: LabelLayout, scale: float = RASTER_SCALE) -> bytes:
    return rasterize(render_label_pdf(layout, outline=True), scale)


__all__ = [
    "RASTER_SCALE",
    "draw_label",
    "draw_outline",
    "rasterize",
    "render_label_pdf",
    "render_label_png",
]
