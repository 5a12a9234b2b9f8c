"""Built-in label sheet templates."""

from __future__ import annotations

from typing import Iterable

from errors import TemplateError
from .label_types import Geometry, Template

CUSTOM_KEY = "custom"

_BUILTIN_TEMPLATES: dict[str, Template] = {
    "system4": Template(
        name="Barcode A4, 4 columns (46x22 mm)",
        geometry=Geometry(
            label_width=46, label_height=22, margin_top=13, margin_left=7,
            num_cols=4, num_rows=13, col_gap=3, row_gap=0,
        ),
    ),
    "system3": Template(
        name="Barcode A4, 3 columns (69x25 mm)",
        geometry=Geometry(
            label_width=69, label_height=25, margin_top=10, margin_left=1.5,
            num_cols=3, num_rows=11, col_gap=0, row_gap=0,
        ),
    ),
    "spine_system": Template(
        name="Spine A4, 4 columns (52x30 mm)",
        geometry=Geometry(
            label_width=52, label_height=30, margin_top=0, margin_left=20,
            num_cols=4, num_rows=10, col_gap=0, row_gap=0,
        ),
    ),
    "spine_sample": Template(
        name="Spine A4, 6 columns (30x50 mm)",
        geometry=Geometry(
            label_width=30, label_height=50, margin_top=10, margin_left=10,
            num_cols=6, num_rows=5, col_gap=3, row_gap=3,
        ),
    ),
}

_TEMPLATE_NAMES = set(_BUILTIN_TEMPLATES)

DEFAULT_TEMPLATE = "system4"


def get_template(name: str) -> Template:
    """Return the built-in template registered as ``name``."""

    key = (name or "").lower()
    if key not in _TEMPLATE_NAMES:
        available = ", ".join(sorted(_TEMPLATE_NAMES))
        raise TemplateError(
            f"Unknown template '{name}'. Available templates: {available}"
        )
    return _BUILTIN_TEMPLATES[key]


def is_builtin(name: str) -> bool:
    key = (name or "").lower()
    return key in _TEMPLATE_NAMES or key == CUSTOM_KEY


def list_templates() -> Iterable[str]:
    """Return the built-in template identifiers in display order."""

    return list(_BUILTIN_TEMPLATES)
