"""Barcode label layout: stacked field text, symbol, logo and location marker."""

from __future__ import annotations

import logging

from domain_types import Record
from fonts import font_name
from .base import (
    LABEL_PADDING,
    Box,
    LabelLayout,
    LabelLayoutEngine,
    LogoPlacement,
    MarkerPlacement,
    Paragraph,
    SymbolPlacement,
    stack_paragraphs,
)
from .label_types import CUSTOM_TEXT_FIELD, Geometry, Style
from .symbols import cap_linear_payload
from .types import Anchor, BarcodeFormat, BlockAlign, VerticalAlign
from .utils import align_offset, pt_to_mm, vertical_offset

logger = logging.getLogger(__name__)

# Gap kept between an edge-anchored logo and the text block.
LOGO_MARGIN = 2.0
MARKER_INSET = 1.0
QR_WIDTH_RATIO = 0.8
QR_HEIGHT_RATIO = 0.6


def field_lines(record: Record, style: Style) -> list[tuple[int, str]]:
    """Non-empty values of the configured label fields with their field index.

    The index is the position in ``style.label_fields``, so an empty first
    field leaves no line eligible for the bold first-line style.
    """

    values: list[tuple[int, str]] = []
    for index, key in enumerate(style.label_fields):
        if key == CUSTOM_TEXT_FIELD:
            value = style.custom_text
        else:
            value = record.field_value(key)
        if value.strip():
            values.append((index, value.strip()))
    return values


def anchor_box(anchor: Anchor, size: float, area: Box) -> Box:
    """Square of ``size`` placed at ``anchor`` inside ``area``."""

    x = area.x + align_offset(area.width, size, anchor.column)
    y = area.y + vertical_offset(area.height, size, anchor.row)
    return Box(x, y, size, size)


class BarcodeLabelLayout(LabelLayoutEngine):
    def layout(
        self,
        record: Record,
        geometry: Geometry,
        style: Style,
    ) -> LabelLayout:
        width = geometry.label_width
        height = geometry.label_height

        pad_top = 0.0 if style.vertical_align is VerticalAlign.TOP else LABEL_PADDING
        content = Box(
            LABEL_PADDING,
            pad_top,
            width - 2 * LABEL_PADDING,
            height - pad_top - LABEL_PADDING,
        )

        logo = self._logo(style, content)
        text_area = self._text_area(style, content) if logo else content

        paragraphs = [
            Paragraph(
                text=value,
                font_name=font_name(style.font_family, bold=index == 0 and style.first_line_bold),
                font_size=style.font_size,
                line_height=style.line_height,
                color=style.text_color,
            )
            for index, value in field_lines(record, style)
        ]
        block = stack_paragraphs(
            paragraphs,
            text_area,
            style.block_align,
            style.text_justify,
            style.vertical_align,
        )

        return LabelLayout(
            width=width,
            height=height,
            lines=tuple(line for _, line in block.lines),
            symbol=self._symbol(record, geometry, style),
            logo=logo,
            marker=self._marker(record, style, Box(0, 0, width, height)),
        )

    def _logo(self, style: Style, content: Box) -> LogoPlacement | None:
        if not style.show_logo or not style.logo_path or style.logo_size <= 0:
            return None
        return LogoPlacement(
            path=style.logo_path,
            box=anchor_box(style.logo_position, style.logo_size, content),
        )

    def _text_area(self, style: Style, content: Box) -> Box:
        """Shrink ``content`` on the edge the logo is anchored to."""

        clearance = style.logo_size + LOGO_MARGIN
        anchor = style.logo_position
        if anchor.column is BlockAlign.LEFT:
            return Box(content.x + clearance, content.y, content.width - clearance, content.height)
        if anchor.column is BlockAlign.RIGHT:
            return Box(content.x, content.y, content.width - clearance, content.height)
        if anchor.row is VerticalAlign.TOP:
            return Box(content.x, content.y + clearance, content.width, content.height - clearance)
        if anchor.row is VerticalAlign.BOTTOM:
            return Box(content.x, content.y, content.width, content.height - clearance)
        return content

    def _symbol(
        self,
        record: Record,
        geometry: Geometry,
        style: Style,
    ) -> SymbolPlacement | None:
        try:
            if style.barcode_format is BarcodeFormat.QR:
                payload = record.barcode
                size = min(
                    geometry.label_width * QR_WIDTH_RATIO,
                    geometry.label_height * QR_HEIGHT_RATIO,
                )
                drawing = self.symbols.matrix(payload, size, style.barcode_color)
            else:
                payload = cap_linear_payload(record.barcode)
                drawing = self.symbols.linear(payload, style.barcode_height, style.barcode_color)
        except Exception as exc:
            logger.warning(
                "Symbol for barcode %r could not be rendered: %s",
                record.barcode,
                exc,
            )
            return None

        natural_width = pt_to_mm(drawing.width)
        natural_height = pt_to_mm(drawing.height)
        scale = min(1.0, geometry.label_width / natural_width) if natural_width > 0 else 1.0
        box_width = natural_width * scale
        box_height = natural_height * scale

        x = align_offset(geometry.label_width, box_width, style.block_align)
        if style.vertical_align is VerticalAlign.BOTTOM:
            y = 0.0
        else:
            y = geometry.label_height - box_height
        return SymbolPlacement(
            format=style.barcode_format,
            payload=payload,
            box=Box(x, y, box_width, box_height),
            drawing=drawing,
        )

    def _marker(self, record: Record, style: Style, label: Box) -> MarkerPlacement | None:
        if not style.show_location_marker or style.location_marker_size <= 0:
            return None
        color = style.location_colors.get(record.location)
        if not color:
            return None
        inset = Box(
            label.x + MARKER_INSET,
            label.y + MARKER_INSET,
            label.width - 2 * MARKER_INSET,
            label.height - 2 * MARKER_INSET,
        )
        box = anchor_box(style.location_marker_position, style.location_marker_size, inset)
        radius = style.location_marker_size / 2.0
        return MarkerPlacement(
            center_x=box.x + radius,
            center_y=box.y + radius,
            radius=radius,
            color=color,
        )
