import unittest

from errors import TemplateError
from label_settings import (
    LabelSettings,
    delete_template,
    edit_geometry,
    load_template,
    save_template,
    set_label_mode,
    template_choices,
    update_style,
)
from label_templates import CUSTOM_KEY, DEFAULT_TEMPLATE, get_template, is_builtin, list_templates
from label_templates.types import BarcodeFormat, LabelMode, VerticalAlign


class BuiltinTemplateTests(unittest.TestCase):
    def test_builtins_registered(self) -> None:
        names = list(list_templates())
        self.assertIn(DEFAULT_TEMPLATE, names)
        self.assertIn("spine_system", names)
        self.assertEqual(get_template("SYSTEM4").geometry.capacity, 52)

    def test_unknown_template(self) -> None:
        with self.assertRaises(TemplateError):
            get_template("a5-sheet")

    def test_custom_key_is_reserved(self) -> None:
        self.assertTrue(is_builtin(CUSTOM_KEY))
        self.assertFalse(is_builtin("my sheet"))


class LabelSettingsTests(unittest.TestCase):
    def test_geometry_edit_switches_to_custom(self) -> None:
        settings = edit_geometry(LabelSettings(), label_width="50", num_cols="3")
        self.assertEqual(settings.template_key, CUSTOM_KEY)
        self.assertEqual(settings.geometry.label_width, 50.0)
        self.assertEqual(settings.geometry.num_cols, 3)
        self.assertEqual(settings.custom_geometry, settings.geometry)

    def test_invalid_geometry(self) -> None:
        with self.assertRaises(TemplateError):
            edit_geometry(LabelSettings(), num_rows="0")
        with self.assertRaises(TemplateError):
            edit_geometry(LabelSettings(), label_width="wide")

    def test_custom_entry_restores_scratch_geometry(self) -> None:
        settings = edit_geometry(LabelSettings(), label_width=60)
        settings = load_template(settings, "spine_system")
        self.assertEqual(settings.geometry.label_width, 52)
        settings = load_template(settings, CUSTOM_KEY)
        self.assertEqual(settings.geometry.label_width, 60)

    def test_update_style_validates_fields(self) -> None:
        settings = update_style(LabelSettings(), label_fields="title,author,isbn,note")
        self.assertEqual(settings.style.label_fields, ("title", "author", "isbn"))
        with self.assertRaises(TemplateError):
            update_style(LabelSettings(), label_fields=("shelf",))
        with self.assertRaises(TemplateError):
            update_style(LabelSettings(), barcode_format="EAN13")

    def test_update_style_coerces_strings(self) -> None:
        settings = update_style(
            LabelSettings(),
            barcode_format="QR",
            show_logo="true",
            font_size="9.5",
        )
        self.assertIs(settings.style.barcode_format, BarcodeFormat.QR)
        self.assertTrue(settings.style.show_logo)
        self.assertEqual(settings.style.font_size, 9.5)

    def test_mode_switch_resets_alignment_and_size(self) -> None:
        settings = update_style(LabelSettings(), font_size=20)
        settings = set_label_mode(settings, "spine")
        self.assertIs(settings.style.label_mode, LabelMode.SPINE)
        self.assertEqual(settings.style.font_size, 12.0)
        self.assertIs(settings.style.vertical_align, VerticalAlign.CENTER)
        settings = set_label_mode(settings, LabelMode.BARCODE)
        self.assertEqual(settings.style.font_size, 8.0)
        self.assertIs(settings.style.vertical_align, VerticalAlign.TOP)


class TemplateLibraryTests(unittest.TestCase):
    def test_save_and_load_round_trip(self) -> None:
        settings = edit_geometry(LabelSettings(), label_width=40, num_rows=12)
        settings = set_label_mode(settings, "spine")
        settings = update_style(settings, show_spine_barcode=True, spine_text_shift=1.5)
        library = save_template({}, settings, "  Şube rafı ")
        self.assertEqual(list(library), ["Şube rafı"])

        loaded = load_template(LabelSettings(), "Şube rafı", library)
        self.assertEqual(loaded.template_key, "Şube rafı")
        self.assertEqual(loaded.geometry, settings.geometry)
        self.assertEqual(loaded.style, settings.style)

    def test_builtin_load_keeps_style(self) -> None:
        settings = update_style(LabelSettings(), font_size=11)
        loaded = load_template(settings, "system3")
        self.assertEqual(loaded.style.font_size, 11)
        self.assertEqual(loaded.geometry.num_cols, 3)

    def test_partial_template_keeps_live_values(self) -> None:
        library = {"old": {"name": "old", "geometry": {"label_width": 35}, "style": {"font_size": 10}}}
        settings = update_style(LabelSettings(), text_color="#112233")
        loaded = load_template(settings, "old", library)
        self.assertEqual(loaded.geometry.label_width, 35)
        self.assertEqual(loaded.geometry.num_cols, settings.geometry.num_cols)
        self.assertEqual(loaded.style.text_color, "#112233")

    def test_save_rejects_blank_and_builtin_names(self) -> None:
        with self.assertRaises(TemplateError):
            save_template({}, LabelSettings(), "  ")
        with self.assertRaises(TemplateError):
            save_template({}, LabelSettings(), "System4")

    def test_delete_and_choices(self) -> None:
        library = save_template({}, LabelSettings(), "mine")
        choices = template_choices(library)
        self.assertEqual(choices[0][0], DEFAULT_TEMPLATE)
        self.assertIn((CUSTOM_KEY, "Custom"), choices)
        self.assertEqual(choices[-1], ("mine", "mine"))
        self.assertEqual(delete_template(library, "mine"), {})
        self.assertEqual(delete_template(library, "absent"), library)


if __name__ == "__main__":
    unittest.main()
