"""Print grid composition and PDF export."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import IO, Sequence, Union

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from domain_types import Record
from errors import CollaboratorUnavailableError, ExportInProgressError
from label_templates.drawing import RASTER_SCALE, draw_label, draw_outline
from label_templates.drawing import rasterize as rasterize_page
from label_templates.label_types import Geometry, LabelGeometry, Style
from label_templates.layout import layout_label
from label_templates.symbols import SymbolRenderer

__all__ = [
    "DEFAULT_EXPORT_NAME",
    "PdfExporter",
    "Slot",
    "compose_page",
    "export_filename",
    "export_pdf",
    "overflow_count",
    "render_page_pdf",
    "render_page_png",
    "slot_geometry",
]

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "etiketler"

Output = Union[str, Path, IO[bytes]]


@dataclass(frozen=True)
class Slot:
    index: int
    row: int
    column: int
    box: LabelGeometry
    record: Record | None = None


def page_size(geometry: Geometry) -> tuple[float, float]:
    return geometry.page_width * mm, geometry.page_height * mm


def slot_geometry(geometry: Geometry, index: int) -> LabelGeometry:
    """Page-space box of slot ``index``, filling rows left to right."""

    row, column = divmod(index, geometry.num_cols)
    left = geometry.margin_left + column * (geometry.label_width + geometry.col_gap)
    top = geometry.margin_top + row * (geometry.label_height + geometry.row_gap)
    bottom = geometry.page_height - top - geometry.label_height
    return LabelGeometry(
        left=left * mm,
        bottom=bottom * mm,
        right=(left + geometry.label_width) * mm,
        top=(bottom + geometry.label_height) * mm,
    )


def compose_page(
    geometry: Geometry,
    labels: Sequence[Record],
    skip: int = 0,
) -> list[Slot]:
    """Bind ``labels`` to the slots of one page.

    The first ``skip`` slots stay empty so a partly used sheet can be reused.
    Labels beyond the page capacity are not placed.
    """

    if skip < 0:
        raise ValueError("skip must not be negative")
    slots: list[Slot] = []
    for index in range(geometry.capacity):
        row, column = divmod(index, geometry.num_cols)
        position = index - skip
        record = labels[position] if 0 <= position < len(labels) else None
        slots.append(Slot(index, row, column, slot_geometry(geometry, index), record))
    return slots


def overflow_count(geometry: Geometry, labels: Sequence[Record], skip: int = 0) -> int:
    return max(0, len(labels) + skip - geometry.capacity)


def render_page_pdf(
    geometry: Geometry,
    style: Style,
    slots: Sequence[Slot],
    symbols: SymbolRenderer | None = None,
    outline: bool = False,
) -> bytes:
    """Draw one composed page as a vector PDF."""

    buffer = BytesIO()
    canvas_obj = canvas.Canvas(buffer, pagesize=page_size(geometry))
    for slot in slots:
        box = slot.box
        if box.width <= 0 or box.height <= 0:
            raise ValueError("Label geometry produced a non-positive slot size.")
        if slot.record is not None:
            layout = layout_label(slot.record, geometry, style, symbols)
            draw_label(canvas_obj, layout, box.left, box.top)
        if outline:
            draw_outline(canvas_obj, box.left, box.bottom, box.width, box.height)
    canvas_obj.showPage()
    canvas_obj.save()
    return buffer.getvalue()


def render_page_png(
    geometry: Geometry,
    style: Style,
    slots: Sequence[Slot],
    symbols: SymbolRenderer | None = None,
    outline: bool = False,
    scale: float = RASTER_SCALE,
) -> bytes:
    pdf_bytes = render_page_pdf(geometry, style, slots, symbols, outline)
    try:
        return rasterize_page(pdf_bytes, scale)
    except RuntimeError as exc:
        raise CollaboratorUnavailableError(f"Page rasterization failed: {exc}") from exc


def export_pdf(
    output: Output,
    geometry: Geometry,
    style: Style,
    labels: Sequence[Record],
    skip: int = 0,
    rasterize: bool = True,
    outline: bool = False,
    symbols: SymbolRenderer | None = None,
    scale: float = RASTER_SCALE,
) -> str:
    """Write the print sheet for ``labels`` to ``output``.

    By default the page is rasterized and placed full-bleed, matching the
    on-screen preview; ``rasterize=False`` keeps the vector page.
    """

    overflow = overflow_count(geometry, labels, skip)
    if overflow:
        logger.warning(
            "%d selected labels do not fit on one %dx%d sheet",
            overflow,
            geometry.num_cols,
            geometry.num_rows,
        )

    slots = compose_page(geometry, labels, skip)
    if rasterize:
        png_bytes = render_page_png(geometry, style, slots, symbols, outline, scale)
        width, height = page_size(geometry)
        buffer = BytesIO()
        canvas_obj = canvas.Canvas(buffer, pagesize=(width, height))
        canvas_obj.drawImage(
            ImageReader(BytesIO(png_bytes)),
            0,
            0,
            width=width,
            height=height,
        )
        canvas_obj.showPage()
        canvas_obj.save()
        pdf_bytes = buffer.getvalue()
    else:
        pdf_bytes = render_page_pdf(geometry, style, slots, symbols, outline)

    if isinstance(output, (str, Path)):
        Path(output).write_bytes(pdf_bytes)
        target = str(output)
    else:
        output.write(pdf_bytes)
        target = getattr(output, "name", "stream")

    placed = sum(1 for slot in slots if slot.record is not None)
    logger.info("Exported %d labels to %s", placed, target)
    return f"Wrote {placed} labels to {target}"


def export_filename(base: str | None, now: datetime | None = None) -> str:
    """``{base}_{DD.MM.YYYY}_{HHmm}.pdf``"""

    base = (base or "").strip() or DEFAULT_EXPORT_NAME
    now = now or datetime.now()
    return f"{base}_{now:%d.%m.%Y}_{now:%H%M}.pdf"


class PdfExporter:
    """Serializes exports: a second export while one runs is rejected."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def export(self, output: Output, *args, **kwargs) -> str:
        if not self._lock.acquire(blocking=False):
            raise ExportInProgressError("An export is already in progress.")
        try:
            return export_pdf(output, *args, **kwargs)
        finally:
            self._lock.release()
