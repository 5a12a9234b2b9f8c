"""Barcode and QR symbol rendering.

Symbols are returned as vector ``Drawing`` objects sized in points so they can
be placed on any canvas at any scale.
"""

from __future__ import annotations

from typing import Protocol

import qrcode
from qrcode.constants import ERROR_CORRECT_L
from reportlab.graphics.barcode import createBarcodeDrawing
from reportlab.graphics.shapes import Drawing, Rect
from reportlab.lib import colors
from reportlab.lib.units import mm

# Linear payloads longer than this are truncated before encoding.
MAX_LINEAR_PAYLOAD = 16

LINEAR_BAR_WIDTH = 1.5 * 0.75  # 1.5 px modules at 96 dpi, in points
LINEAR_FONT_SIZE = 7.5


class SymbolRenderer(Protocol):
    def linear(self, payload: str, height_mm: float, color: str) -> Drawing: ...

    def matrix(self, payload: str, size_mm: float, color: str) -> Drawing: ...


def cap_linear_payload(payload: str) -> str:
    return str(payload)[:MAX_LINEAR_PAYLOAD]


class DefaultSymbolRenderer:
    """Code 128 through ReportLab, QR modules through ``qrcode``."""

    def linear(self, payload: str, height_mm: float, color: str) -> Drawing:
        value = cap_linear_payload(payload)
        if not value:
            raise ValueError("Cannot encode an empty barcode")
        fill = colors.toColor(color)
        return createBarcodeDrawing(
            "Code128",
            value=value,
            barHeight=height_mm * mm,
            barWidth=LINEAR_BAR_WIDTH,
            humanReadable=True,
            fontSize=LINEAR_FONT_SIZE,
            quiet=False,
            barFillColor=fill,
            barStrokeColor=fill,
            textColor=fill,
        )

    def matrix(self, payload: str, size_mm: float, color: str) -> Drawing:
        if not payload:
            raise ValueError("Cannot encode an empty QR payload")
        qr = qrcode.QRCode(border=0, error_correction=ERROR_CORRECT_L)
        qr.add_data(str(payload))
        qr.make(fit=True)
        matrix = qr.get_matrix()

        size = size_mm * mm
        count = len(matrix)
        cell = size / count
        fill = colors.toColor(color)
        drawing = Drawing(size, size)
        for row_index, row in enumerate(matrix):
            for col_index, dark in enumerate(row):
                if not dark:
                    continue
                drawing.add(
                    Rect(
                        col_index * cell,
                        size - (row_index + 1) * cell,
                        cell,
                        cell,
                        fillColor=fill,
                        strokeColor=None,
                        strokeWidth=0,
                    )
                )
        return drawing
