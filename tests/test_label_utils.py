import unittest

from reportlab.pdfbase.pdfmetrics import stringWidth

from label_templates.types import BlockAlign, VerticalAlign
from label_templates.utils import (
    PT_PER_MM,
    align_offset,
    baseline_offset_mm,
    pt_to_mm,
    text_width_mm,
    vertical_offset,
    wrap_text_to_width,
)


class LabelUtilsTests(unittest.TestCase):
    def test_wrap_text_to_width_empty(self) -> None:
        self.assertEqual(list(wrap_text_to_width("", "Helvetica", 12, 100)), [])
        self.assertEqual(list(wrap_text_to_width("Hello", "Helvetica", 12, 0)), [])

    def test_wrap_text_to_width_single_line(self) -> None:
        lines = list(wrap_text_to_width("Hello world", "Helvetica", 12, 1000))
        self.assertEqual(lines, ["Hello world"])

    def test_wrap_text_to_width_enforces_width(self) -> None:
        max_width = 30
        lines = list(wrap_text_to_width("Hello world", "Helvetica", 12, max_width))
        self.assertGreater(len(lines), 1)
        for line in lines:
            self.assertLessEqual(stringWidth(line, "Helvetica", 12), max_width)

    def test_wrap_text_to_width_breaks_long_word(self) -> None:
        lines = list(wrap_text_to_width("891.73DOS2020", "Helvetica", 12, 20))
        self.assertGreater(len(lines), 1)
        self.assertEqual("".join(lines), "891.73DOS2020")

    def test_mm_conversion(self) -> None:
        self.assertAlmostEqual(pt_to_mm(PT_PER_MM * 25), 25.0)
        self.assertAlmostEqual(
            text_width_mm("Nutuk", "Helvetica", 10),
            stringWidth("Nutuk", "Helvetica", 10) / PT_PER_MM,
        )

    def test_align_offset(self) -> None:
        self.assertEqual(align_offset(40, 10, BlockAlign.LEFT), 0.0)
        self.assertEqual(align_offset(40, 10, BlockAlign.CENTER), 15.0)
        self.assertEqual(align_offset(40, 10, BlockAlign.RIGHT), 30.0)

    def test_vertical_offset(self) -> None:
        self.assertEqual(vertical_offset(20, 4, VerticalAlign.TOP), 0.0)
        self.assertEqual(vertical_offset(20, 4, VerticalAlign.CENTER), 8.0)
        self.assertEqual(vertical_offset(20, 4, VerticalAlign.BOTTOM), 16.0)

    def test_baseline_sits_inside_line_box(self) -> None:
        line_box = pt_to_mm(10 * 1.2)
        offset = baseline_offset_mm("Helvetica", 10, line_box)
        self.assertGreater(offset, 0)
        self.assertLess(offset, line_box)


if __name__ == "__main__":
    unittest.main()
