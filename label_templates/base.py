"""Layout primitives shared by the label layout engines.

All layout coordinates are millimetres measured from the top-left corner of
the label. Conversion to page space happens when drawing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Sequence

from reportlab.graphics.shapes import Drawing

from domain_types import Record
from .label_types import Geometry, Style
from .symbols import DefaultSymbolRenderer, SymbolRenderer
from .types import (
    BarcodeFormat,
    BlockAlign,
    SpineBarcodePosition,
    TextJustify,
    VerticalAlign,
)
from .utils import (
    PT_PER_MM,
    align_offset,
    baseline_offset_mm,
    pt_to_mm,
    text_width_mm,
    vertical_offset,
    wrap_text_to_width,
)

LABEL_PADDING = 1.0


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class TextLine:
    text: str
    x: float
    baseline: float
    width: float
    font_name: str
    font_size: float
    color: str
    # extra points between words, used for justified lines
    word_space: float = 0.0

    def translated(self, dx: float, dy: float) -> TextLine:
        if not dx and not dy:
            return self
        return replace(self, x=self.x + dx, baseline=self.baseline + dy)


@dataclass(frozen=True)
class SymbolPlacement:
    format: BarcodeFormat
    payload: str
    box: Box
    drawing: Drawing


@dataclass(frozen=True)
class LogoPlacement:
    path: str
    box: Box


@dataclass(frozen=True)
class MarkerPlacement:
    center_x: float
    center_y: float
    radius: float
    color: str


@dataclass(frozen=True)
class ShortBarcodePlacement:
    text: str
    position: SpineBarcodePosition
    lines: tuple[TextLine, ...] = ()


@dataclass(frozen=True)
class LabelLayout:
    """Positioned content of one label.

    Draw order is symbol, logo, text, short barcode, marker so the symbol
    stays beneath the text layer.
    """

    width: float
    height: float
    lines: tuple[TextLine, ...] = ()
    symbol: SymbolPlacement | None = None
    logo: LogoPlacement | None = None
    marker: MarkerPlacement | None = None
    short_barcode: ShortBarcodePlacement | None = None


@dataclass(frozen=True)
class Paragraph:
    text: str
    font_name: str
    font_size: float
    line_height: float
    color: str
    space_after: float = 0.0
    tag: str = "text"


@dataclass
class PlacedBlock:
    lines: list[tuple[str, TextLine]] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def tagged(self, tag: str) -> list[TextLine]:
        return [line for line_tag, line in self.lines if line_tag == tag]


def stack_paragraphs(
    paragraphs: Sequence[Paragraph],
    area: Box,
    block_align: BlockAlign,
    justify: TextJustify,
    vertical_align: VerticalAlign,
) -> PlacedBlock:
    """Wrap and stack ``paragraphs`` as one block anchored inside ``area``.

    The block is as wide as its widest line; each line is then aligned inside
    the block according to ``justify``.
    """

    wrapped: list[tuple[Paragraph, list[str], float]] = []
    block_width = 0.0
    for para in paragraphs:
        lines = list(
            wrap_text_to_width(
                para.text,
                para.font_name,
                para.font_size,
                area.width * PT_PER_MM,
            )
        )
        if not lines:
            continue
        line_box = pt_to_mm(para.font_size * para.line_height)
        for line in lines:
            block_width = max(block_width, text_width_mm(line, para.font_name, para.font_size))
        wrapped.append((para, lines, line_box))

    block_height = sum(line_box * len(lines) for _, lines, line_box in wrapped)
    block_height += sum(para.space_after for para, _, _ in wrapped[:-1])

    block = PlacedBlock(width=block_width, height=block_height)
    if not wrapped:
        return block

    block_x = area.x + align_offset(area.width, block_width, block_align)
    cursor = area.y + vertical_offset(area.height, block_height, vertical_align)
    for position, (para, lines, line_box) in enumerate(wrapped):
        offset = baseline_offset_mm(para.font_name, para.font_size, line_box)
        for line_index, text in enumerate(lines):
            text_width = text_width_mm(text, para.font_name, para.font_size)
            last_line = line_index == len(lines) - 1
            x, word_space = _justify_line(
                text, text_width, block_x, block_width, justify, last_line
            )
            block.lines.append((
                para.tag,
                TextLine(
                    text=text,
                    x=x,
                    baseline=cursor + offset,
                    width=text_width,
                    font_name=para.font_name,
                    font_size=para.font_size,
                    color=para.color,
                    word_space=word_space,
                ),
            ))
            cursor += line_box
        if position < len(wrapped) - 1:
            cursor += para.space_after
    return block


def _justify_line(
    text: str,
    text_width: float,
    block_x: float,
    block_width: float,
    justify: TextJustify,
    last_line: bool,
) -> tuple[float, float]:
    slack = block_width - text_width
    if justify is TextJustify.CENTER:
        return block_x + slack / 2.0, 0.0
    if justify is TextJustify.RIGHT:
        return block_x + slack, 0.0
    if justify is TextJustify.JUSTIFY and not last_line:
        gaps = text.count(" ")
        if gaps and slack > 0:
            return block_x, slack * PT_PER_MM / gaps
    return block_x, 0.0


class LabelLayoutEngine(ABC):
    """Computes the composition of a single label for one label mode."""

    def __init__(self, symbols: SymbolRenderer | None = None) -> None:
        self.symbols = symbols if symbols is not None else DefaultSymbolRenderer()

    @abstractmethod
    def layout(
        self,
        record: Record,
        geometry: Geometry,
        style: Style,
    ) -> LabelLayout:
        """Return the positioned content of ``record`` on one label."""
