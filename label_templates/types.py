"""Closed option sets used by templates and the layout engine."""

from __future__ import annotations

from enum import StrEnum


class LabelMode(StrEnum):
    BARCODE = "barcode"
    SPINE = "spine"


class BlockAlign(StrEnum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class TextJustify(StrEnum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


class VerticalAlign(StrEnum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class BarcodeFormat(StrEnum):
    CODE128 = "CODE128"
    QR = "QR"


class FontFamily(StrEnum):
    SANS_SERIF = "sans-serif"
    SERIF = "serif"
    MONOSPACE = "monospace"


class SpineBarcodePosition(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"
    ABSOLUTE_TOP = "absolute-top"
    ABSOLUTE_BOTTOM = "absolute-bottom"


class Anchor(StrEnum):
    """Nine positions on a 3x3 grid over the label."""

    TOP_LEFT = "top-left"
    TOP = "top"
    TOP_RIGHT = "top-right"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM = "bottom"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def column(self) -> BlockAlign:
        if self.value.endswith("left"):
            return BlockAlign.LEFT
        if self.value.endswith("right"):
            return BlockAlign.RIGHT
        return BlockAlign.CENTER

    @property
    def row(self) -> VerticalAlign:
        if self.value.startswith("top"):
            return VerticalAlign.TOP
        if self.value.startswith("bottom"):
            return VerticalAlign.BOTTOM
        return VerticalAlign.CENTER
