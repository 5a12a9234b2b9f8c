import unittest
from dataclasses import replace

from reportlab.graphics.shapes import Drawing
from reportlab.lib.units import mm

from domain_types import Record
from label_templates.barcode_label import (
    LOGO_MARGIN,
    BarcodeLabelLayout,
    field_lines,
)
from label_templates.base import LABEL_PADDING
from label_templates.label_types import Geometry, Style
from label_templates.layout import layout_engine, layout_label
from label_templates.spine_label import (
    SpineLabelLayout,
    call_number_tokens,
    short_barcode,
)
from label_templates.types import (
    Anchor,
    BarcodeFormat,
    BlockAlign,
    LabelMode,
    SpineBarcodePosition,
    VerticalAlign,
)

RECORD = Record(
    id="demo-1",
    barcode="111000000072",
    title="Suç ve Ceza",
    author="Dostoyevski, Fyodor",
    call_number="891.73 DOS 2020",
    location="Yetişkin Bölümü",
)


class _FailingSymbols:
    def linear(self, payload: str, height_mm: float, color: str) -> Drawing:
        raise ValueError("unencodable")

    def matrix(self, payload: str, size_mm: float, color: str) -> Drawing:
        raise ValueError("unencodable")


class _FixedSymbols:
    def __init__(self, width_mm: float, height_mm: float) -> None:
        self.size = (width_mm * mm, height_mm * mm)
        self.payloads: list[str] = []

    def linear(self, payload: str, height_mm: float, color: str) -> Drawing:
        self.payloads.append(payload)
        return Drawing(*self.size)

    def matrix(self, payload: str, size_mm: float, color: str) -> Drawing:
        self.payloads.append(payload)
        return Drawing(size_mm * mm, size_mm * mm)


class ShortBarcodeTests(unittest.TestCase):
    def test_prefix_and_leading_zeros_dropped(self) -> None:
        self.assertEqual(short_barcode("111000000072"), "[72]")

    def test_short_values_keep_their_digits(self) -> None:
        self.assertEqual(short_barcode("0001"), "[1]")
        self.assertEqual(short_barcode("12"), "[12]")

    def test_all_zero_tail_has_no_display(self) -> None:
        self.assertIsNone(short_barcode("0000"))
        self.assertIsNone(short_barcode("11110000"))
        self.assertIsNone(short_barcode(""))

    def test_call_number_tokens(self) -> None:
        self.assertEqual(call_number_tokens(" 891.73  DOS 2020 "), ["891.73", "DOS", "2020"])
        self.assertEqual(call_number_tokens(""), [])


class BarcodeLabelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = Geometry()
        self.style = Style()

    def test_field_lines_skip_empty_values(self) -> None:
        style = replace(self.style, label_fields=("isbn", "title", "custom_text"), custom_text="Kütüphane")
        self.assertEqual(field_lines(RECORD, style), [(1, "Suç ve Ceza"), (2, "Kütüphane")])

    def test_first_line_bold(self) -> None:
        layout = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(RECORD, self.geometry, self.style)
        self.assertEqual([line.text for line in layout.lines], ["891.73 DOS 2020", "Suç ve Ceza"])
        self.assertNotEqual(layout.lines[0].font_name, layout.lines[1].font_name)

    def test_bold_applies_only_to_first_configured_field(self) -> None:
        record = replace(RECORD, call_number="")
        layout = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(record, self.geometry, self.style)
        self.assertEqual([line.text for line in layout.lines], ["Suç ve Ceza"])
        regular = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(
            record, self.geometry, replace(self.style, first_line_bold=False)
        )
        self.assertEqual(layout.lines[0].font_name, regular.lines[0].font_name)

    def test_symbol_failure_keeps_text(self) -> None:
        with self.assertLogs("label_templates.barcode_label", level="WARNING"):
            layout = BarcodeLabelLayout(_FailingSymbols()).layout(RECORD, self.geometry, self.style)
        self.assertIsNone(layout.symbol)
        self.assertTrue(layout.lines)

    def test_linear_symbol_scaled_to_label_width(self) -> None:
        symbols = _FixedSymbols(92, 8)
        layout = BarcodeLabelLayout(symbols).layout(RECORD, self.geometry, self.style)
        assert layout.symbol is not None
        self.assertAlmostEqual(layout.symbol.box.width, self.geometry.label_width)
        self.assertAlmostEqual(layout.symbol.box.height, 4.0)
        self.assertAlmostEqual(layout.symbol.box.bottom, self.geometry.label_height)

    def test_linear_payload_is_capped(self) -> None:
        symbols = _FixedSymbols(30, 8)
        record = replace(RECORD, barcode="1234567890123456789")
        BarcodeLabelLayout(symbols).layout(record, self.geometry, self.style)
        self.assertEqual(symbols.payloads, ["1234567890123456"])

    def test_qr_symbol_keeps_full_payload(self) -> None:
        symbols = _FixedSymbols(30, 8)
        record = replace(RECORD, barcode="1234567890123456789")
        style = replace(self.style, barcode_format=BarcodeFormat.QR)
        layout = BarcodeLabelLayout(symbols).layout(record, self.geometry, style)
        self.assertEqual(symbols.payloads, ["1234567890123456789"])
        assert layout.symbol is not None
        self.assertAlmostEqual(layout.symbol.box.width, layout.symbol.box.height)

    def test_symbol_at_top_when_text_is_bottom_aligned(self) -> None:
        style = replace(self.style, vertical_align=VerticalAlign.BOTTOM, block_align=BlockAlign.LEFT)
        layout = BarcodeLabelLayout(_FixedSymbols(20, 8)).layout(RECORD, self.geometry, style)
        assert layout.symbol is not None
        self.assertEqual(layout.symbol.box.y, 0.0)
        self.assertEqual(layout.symbol.box.x, 0.0)

    def test_marker_requires_location_color(self) -> None:
        style = replace(self.style, show_location_marker=True)
        layout = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(RECORD, self.geometry, style)
        self.assertIsNone(layout.marker)

    def test_marker_position_and_size(self) -> None:
        style = replace(
            self.style,
            show_location_marker=True,
            location_marker_size=4.0,
            location_marker_position=Anchor.TOP_RIGHT,
            location_colors={"Yetişkin Bölümü": "#ff0000"},
        )
        layout = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(RECORD, self.geometry, style)
        marker = layout.marker
        assert marker is not None
        self.assertEqual(marker.color, "#ff0000")
        self.assertAlmostEqual(marker.radius, 2.0)
        self.assertAlmostEqual(marker.center_x, self.geometry.label_width - 1.0 - 2.0)
        self.assertAlmostEqual(marker.center_y, 1.0 + 2.0)

    def test_logo_pushes_text_aside(self) -> None:
        style = replace(
            self.style,
            show_logo=True,
            logo_path="logo.png",
            logo_size=6.0,
            logo_position=Anchor.LEFT,
            block_align=BlockAlign.LEFT,
        )
        layout = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(RECORD, self.geometry, style)
        assert layout.logo is not None
        self.assertEqual(layout.logo.box.x, LABEL_PADDING)
        for line in layout.lines:
            self.assertGreaterEqual(line.x, LABEL_PADDING + 6.0 + LOGO_MARGIN - 1e-9)

    def test_logo_needs_a_path(self) -> None:
        style = replace(self.style, show_logo=True, logo_path="")
        layout = BarcodeLabelLayout(_FixedSymbols(30, 8)).layout(RECORD, self.geometry, style)
        self.assertIsNone(layout.logo)


class SpineLabelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = Geometry(label_width=30, label_height=50)
        self.style = Style(label_mode=LabelMode.SPINE, font_size=12.0, vertical_align=VerticalAlign.CENTER)

    def _layout(self, **changes):
        return SpineLabelLayout().layout(RECORD, self.geometry, replace(self.style, **changes))

    def test_one_line_per_token(self) -> None:
        layout = self._layout()
        self.assertEqual([line.text for line in layout.lines], ["891.73", "DOS", "2020"])
        self.assertIsNone(layout.short_barcode)
        self.assertIsNone(layout.symbol)
        self.assertIsNone(layout.marker)

    def test_short_barcode_above_tokens(self) -> None:
        layout = self._layout(show_spine_barcode=True, spine_barcode_position=SpineBarcodePosition.TOP)
        placement = layout.short_barcode
        assert placement is not None
        self.assertEqual(placement.text, "[72]")
        self.assertLess(placement.lines[0].baseline, layout.lines[0].baseline)

    def test_short_barcode_below_tokens(self) -> None:
        layout = self._layout(show_spine_barcode=True, spine_barcode_position=SpineBarcodePosition.BOTTOM)
        placement = layout.short_barcode
        assert placement is not None
        self.assertGreater(placement.lines[0].baseline, layout.lines[-1].baseline)

    def test_absolute_positions_pin_to_label_edges(self) -> None:
        top = self._layout(show_spine_barcode=True, spine_barcode_position=SpineBarcodePosition.ABSOLUTE_TOP)
        bottom = self._layout(show_spine_barcode=True, spine_barcode_position=SpineBarcodePosition.ABSOLUTE_BOTTOM)
        assert top.short_barcode is not None and bottom.short_barcode is not None
        self.assertLess(top.short_barcode.lines[0].baseline, 5.0)
        self.assertGreater(bottom.short_barcode.lines[0].baseline, self.geometry.label_height - 5.0)
        self.assertEqual(
            [line.baseline for line in top.lines],
            [line.baseline for line in self._layout().lines],
        )

    def test_shifts(self) -> None:
        base = self._layout(show_spine_barcode=True)
        shifted = self._layout(
            show_spine_barcode=True,
            spine_text_shift=2.0,
            spine_barcode_shift_x=1.5,
            spine_barcode_shift_y=-1.0,
        )
        assert base.short_barcode is not None and shifted.short_barcode is not None
        self.assertAlmostEqual(shifted.lines[0].baseline, base.lines[0].baseline + 2.0)
        self.assertAlmostEqual(shifted.short_barcode.lines[0].x, base.short_barcode.lines[0].x + 1.5)
        self.assertAlmostEqual(
            shifted.short_barcode.lines[0].baseline,
            base.short_barcode.lines[0].baseline - 1.0,
        )

    def test_zero_barcode_is_not_shown(self) -> None:
        record = replace(RECORD, barcode="11110000")
        layout = SpineLabelLayout().layout(record, self.geometry, replace(self.style, show_spine_barcode=True))
        self.assertIsNone(layout.short_barcode)


class DispatchTests(unittest.TestCase):
    def test_engine_per_mode(self) -> None:
        self.assertIsInstance(layout_engine(LabelMode.BARCODE), BarcodeLabelLayout)
        self.assertIsInstance(layout_engine(LabelMode.SPINE), SpineLabelLayout)

    def test_layout_label_uses_style_mode(self) -> None:
        layout = layout_label(RECORD, Geometry(), Style(label_mode=LabelMode.SPINE))
        self.assertEqual(len(layout.lines), 3)
        self.assertIsNone(layout.symbol)


if __name__ == "__main__":
    unittest.main()
