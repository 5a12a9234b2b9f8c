"""Live label settings and the operator's template library."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from domain_types import FIELD_KEYS
from errors import TemplateError
from label_templates import (
    CUSTOM_KEY,
    DEFAULT_TEMPLATE,
    get_template,
    is_builtin,
    list_templates,
)
from label_templates.label_types import (
    CUSTOM_TEXT_FIELD,
    Geometry,
    Style,
    Template,
    apply_section,
)
from label_templates.types import BlockAlign, LabelMode, TextJustify, VerticalAlign

__all__ = [
    "LabelSettings",
    "MODE_DEFAULTS",
    "TemplateLibrary",
    "delete_template",
    "edit_geometry",
    "load_template",
    "save_template",
    "set_label_mode",
    "snapshot_template",
    "template_choices",
    "update_style",
]

# Custom templates keyed by name, in their serialized form.
TemplateLibrary = Mapping[str, Mapping[str, Any]]

MODE_DEFAULTS: dict[LabelMode, dict[str, Any]] = {
    LabelMode.BARCODE: {
        "block_align": BlockAlign.CENTER,
        "text_justify": TextJustify.CENTER,
        "vertical_align": VerticalAlign.TOP,
        "font_size": 8.0,
    },
    LabelMode.SPINE: {
        "block_align": BlockAlign.CENTER,
        "text_justify": TextJustify.CENTER,
        "vertical_align": VerticalAlign.CENTER,
        "font_size": 12.0,
    },
}

_LABEL_FIELD_CHOICES = set(FIELD_KEYS) | {CUSTOM_TEXT_FIELD}


def _default_geometry() -> Geometry:
    return get_template(DEFAULT_TEMPLATE).geometry


@dataclass(frozen=True)
class LabelSettings:
    template_key: str = DEFAULT_TEMPLATE
    geometry: Geometry = field(default_factory=_default_geometry)
    style: Style = field(default_factory=Style)
    # scratch geometry behind the "custom" template entry
    custom_geometry: Geometry = field(default_factory=_default_geometry)


def edit_geometry(settings: LabelSettings, **changes: Any) -> LabelSettings:
    """Apply geometry edits; any edit switches to the custom template."""

    try:
        geometry = apply_section(settings.geometry, changes)
    except (TypeError, ValueError) as exc:
        raise TemplateError(f"Invalid label geometry: {exc}") from exc
    return replace(
        settings,
        template_key=CUSTOM_KEY,
        geometry=geometry,
        custom_geometry=geometry,
    )


def update_style(settings: LabelSettings, **changes: Any) -> LabelSettings:
    try:
        style = apply_section(settings.style, changes)
    except (TypeError, ValueError) as exc:
        raise TemplateError(f"Invalid label style: {exc}") from exc
    unknown = [key for key in style.label_fields if key not in _LABEL_FIELD_CHOICES]
    if unknown:
        raise TemplateError(f"Unknown label field(s): {', '.join(unknown)}")
    return replace(settings, style=style)


def set_label_mode(settings: LabelSettings, mode: LabelMode | str) -> LabelSettings:
    """Switch label mode and reset alignment and font size to its defaults."""

    mode = LabelMode(mode)
    style = replace(settings.style, label_mode=mode, **MODE_DEFAULTS[mode])
    return replace(settings, style=style)


def load_template(
    settings: LabelSettings,
    name: str,
    custom_templates: TemplateLibrary | None = None,
) -> LabelSettings:
    """Apply the template called ``name`` over the live settings.

    Fields missing from a stored template keep their live values.
    """

    if name == CUSTOM_KEY:
        return replace(settings, template_key=CUSTOM_KEY, geometry=settings.custom_geometry)

    custom_templates = custom_templates or {}
    if name in custom_templates:
        data = custom_templates[name]
    else:
        data = get_template(name).to_dict()

    try:
        geometry = apply_section(settings.geometry, data.get("geometry"))
        style = apply_section(settings.style, data.get("style"))
    except (TypeError, ValueError) as exc:
        raise TemplateError(f"Template '{name}' is invalid: {exc}") from exc
    return replace(settings, template_key=name, geometry=geometry, style=style)


def snapshot_template(settings: LabelSettings, name: str) -> Template:
    return Template(name=name, geometry=settings.geometry, style=settings.style)


def save_template(
    library: TemplateLibrary,
    settings: LabelSettings,
    name: str,
) -> dict[str, Mapping[str, Any]]:
    """Return ``library`` with the live settings stored under ``name``."""

    name = (name or "").strip()
    if not name:
        raise TemplateError("Enter a name for the template.")
    if is_builtin(name):
        raise TemplateError(f"'{name}' is a built-in template name.")
    updated = dict(library)
    updated[name] = snapshot_template(settings, name).to_dict()
    return updated


def delete_template(library: TemplateLibrary, name: str) -> dict[str, Mapping[str, Any]]:
    updated = dict(library)
    updated.pop(name, None)
    return updated


def template_choices(library: TemplateLibrary) -> list[tuple[str, str]]:
    """``(key, display name)`` pairs: built-ins, custom entry, saved templates."""

    choices = [(key, get_template(key).name) for key in list_templates()]
    choices.append((CUSTOM_KEY, "Custom"))
    choices.extend((name, name) for name in sorted(library))
    return choices
