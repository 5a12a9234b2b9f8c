"""Spine label layout: call-number tokens stacked one per line."""

from __future__ import annotations

from dataclasses import replace

from domain_types import Record
from fonts import font_name
from .base import (
    LABEL_PADDING,
    Box,
    LabelLayout,
    LabelLayoutEngine,
    Paragraph,
    ShortBarcodePlacement,
    TextLine,
    stack_paragraphs,
)
from .label_types import Geometry, Style
from .types import FontFamily, SpineBarcodePosition, TextJustify, VerticalAlign

SPINE_PADDING_BOTTOM = 0.5
SHORT_BARCODE_SPACING = 0.5
SHORT_BARCODE_TAG = "short_barcode"

# Leading characters of a barcode that carry no shelf information.
BARCODE_PREFIX_LENGTH = 4


def short_barcode(barcode: str) -> str | None:
    """Bracketed tail of ``barcode`` for display on a spine.

    >>> short_barcode("111000000072")
    '[72]'
    """

    value = barcode or ""
    if len(value) > BARCODE_PREFIX_LENGTH:
        value = value[BARCODE_PREFIX_LENGTH:]
    value = value.lstrip("0")
    return f"[{value}]" if value else None


def call_number_tokens(call_number: str) -> list[str]:
    return [token for token in (call_number or "").split() if token]


class SpineLabelLayout(LabelLayoutEngine):
    def layout(
        self,
        record: Record,
        geometry: Geometry,
        style: Style,
    ) -> LabelLayout:
        width = geometry.label_width
        height = geometry.label_height
        content = Box(
            LABEL_PADDING,
            0.0,
            width - 2 * LABEL_PADDING,
            height - SPINE_PADDING_BOTTOM,
        )

        display = short_barcode(record.barcode) if style.show_spine_barcode else None
        position = style.spine_barcode_position
        barcode_para = None
        if display:
            barcode_para = Paragraph(
                text=display,
                font_name=font_name(FontFamily.MONOSPACE, bold=style.spine_barcode_bold),
                font_size=style.spine_barcode_font_size,
                line_height=1.0,
                color=style.text_color,
                space_after=SHORT_BARCODE_SPACING,
                tag=SHORT_BARCODE_TAG,
            )

        text_font = font_name(style.font_family, bold=style.spine_text_bold)
        paragraphs = [
            Paragraph(
                text=token,
                font_name=text_font,
                font_size=style.font_size,
                line_height=style.line_height,
                color=style.text_color,
            )
            for token in call_number_tokens(record.call_number)
        ]
        if barcode_para is not None and position is SpineBarcodePosition.TOP:
            paragraphs.insert(0, barcode_para)
        elif barcode_para is not None and position is SpineBarcodePosition.BOTTOM:
            if paragraphs:
                paragraphs[-1] = replace(paragraphs[-1], space_after=SHORT_BARCODE_SPACING)
            paragraphs.append(barcode_para)

        block = stack_paragraphs(
            paragraphs,
            content,
            style.block_align,
            style.text_justify,
            style.vertical_align,
        )
        lines = tuple(
            line.translated(0.0, style.spine_text_shift) for line in block.tagged("text")
        )
        barcode_lines = block.tagged(SHORT_BARCODE_TAG)

        if barcode_para is not None and position in (
            SpineBarcodePosition.ABSOLUTE_TOP,
            SpineBarcodePosition.ABSOLUTE_BOTTOM,
        ):
            pinned = stack_paragraphs(
                [barcode_para],
                Box(0.0, 0.0, width, height),
                style.block_align,
                TextJustify.LEFT,
                VerticalAlign.TOP
                if position is SpineBarcodePosition.ABSOLUTE_TOP
                else VerticalAlign.BOTTOM,
            )
            barcode_lines = pinned.tagged(SHORT_BARCODE_TAG)

        placement = None
        if display:
            placement = ShortBarcodePlacement(
                text=display,
                position=position,
                lines=self._shifted(barcode_lines, style),
            )
        return LabelLayout(
            width=width,
            height=height,
            lines=lines,
            short_barcode=placement,
        )

    def _shifted(self, lines: list[TextLine], style: Style) -> tuple[TextLine, ...]:
        return tuple(
            line.translated(style.spine_barcode_shift_x, style.spine_barcode_shift_y)
            for line in lines
        )
