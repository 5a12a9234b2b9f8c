"""Shared helpers for label layout."""

from __future__ import annotations

from typing import Iterable, List

from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import getAscentDescent, stringWidth

from .types import BlockAlign, VerticalAlign

PT_PER_MM = mm


def pt_to_mm(value_pt: float) -> float:
    return value_pt / PT_PER_MM


def text_width_mm(text: str, font_name: str, font_size: float) -> float:
    """Width of ``text`` in millimetres at ``font_size`` points."""

    return pt_to_mm(stringWidth(text, font_name, font_size))


def baseline_offset_mm(font_name: str, font_size: float, line_box_mm: float) -> float:
    """Distance from the top of a line box to the glyph baseline.

    Glyphs are centred in the line box the way CSS distributes leading.
    """

    ascent, descent = getAscentDescent(font_name, font_size)
    glyph_mm = pt_to_mm(ascent - descent)
    half_leading = (line_box_mm - glyph_mm) / 2.0
    return half_leading + pt_to_mm(ascent)


def align_offset(available: float, size: float, align: BlockAlign) -> float:
    """Offset that places ``size`` inside ``available`` per ``align``."""

    if align is BlockAlign.LEFT:
        return 0.0
    if align is BlockAlign.RIGHT:
        return available - size
    return (available - size) / 2.0


def vertical_offset(available: float, size: float, align: VerticalAlign) -> float:
    """Offset from the top that places ``size`` inside ``available``."""

    if align is VerticalAlign.TOP:
        return 0.0
    if align is VerticalAlign.BOTTOM:
        return available - size
    return (available - size) / 2.0


def wrap_text_to_width(
    text: str,
    font_name: str,
    font_size: float,
    max_width_pt: float,
) -> Iterable[str]:
    """Wrap text into lines that fit within the specified width."""

    if not text or max_width_pt <= 0:
        return []

    words = text.split()
    if not words:
        return []

    lines: List[str] = []
    current: List[str] = []
    for word in words:
        tentative = " ".join(current + [word]) if current else word
        if stringWidth(tentative, font_name, font_size) <= max_width_pt:
            current.append(word)
            continue

        if current:
            lines.append(" ".join(current))
            current = []
            if stringWidth(word, font_name, font_size) <= max_width_pt:
                current = [word]
                continue

        # single word exceeds width; perform character-level wrap
        partial = ""
        for ch in word:
            candidate = partial + ch
            if stringWidth(candidate, font_name, font_size) > max_width_pt:
                if partial:
                    lines.append(partial)
                partial = ch
            else:
                partial = candidate
        if partial:
            current = [partial]

    if current:
        lines.append(" ".join(current))
    return lines
