from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping, TypeVar

from .types import (
    Anchor,
    BarcodeFormat,
    BlockAlign,
    FontFamily,
    LabelMode,
    SpineBarcodePosition,
    TextJustify,
    VerticalAlign,
)

MAX_LABEL_FIELDS = 3
CUSTOM_TEXT_FIELD = "custom_text"

T = TypeVar("T", "Geometry", "Style")


@dataclass(frozen=True)
class Geometry:
    """Page and label dimensions plus the label grid, in ``unit``."""

    page_width: float = 210.0
    page_height: float = 297.0
    label_width: float = 46.0
    label_height: float = 22.0
    margin_top: float = 13.0
    margin_left: float = 7.0
    num_cols: int = 4
    num_rows: int = 13
    col_gap: float = 3.0
    row_gap: float = 0.0
    unit: str = "mm"

    def __post_init__(self) -> None:
        if int(self.num_cols) < 1 or int(self.num_rows) < 1:
            raise ValueError(
                f"Label grid must be at least 1x1 (got {self.num_cols}x{self.num_rows})."
            )
        object.__setattr__(self, "num_cols", int(self.num_cols))
        object.__setattr__(self, "num_rows", int(self.num_rows))

    @property
    def capacity(self) -> int:
        return self.num_cols * self.num_rows


@dataclass(frozen=True)
class Style:
    """Typographic, symbol, logo and mode-specific label settings."""

    label_mode: LabelMode = LabelMode.BARCODE
    label_fields: tuple[str, ...] = ("call_number", "title")
    custom_text: str = ""

    block_align: BlockAlign = BlockAlign.CENTER
    text_justify: TextJustify = TextJustify.CENTER
    vertical_align: VerticalAlign = VerticalAlign.TOP
    line_height: float = 1.1
    font_size: float = 8.0
    font_family: FontFamily = FontFamily.SANS_SERIF
    first_line_bold: bool = True
    text_color: str = "#000000"

    barcode_format: BarcodeFormat = BarcodeFormat.CODE128
    barcode_height: float = 6.6
    barcode_color: str = "#000000"

    show_logo: bool = False
    logo_path: str = ""
    logo_size: float = 7.0
    logo_position: Anchor = Anchor.TOP_LEFT

    show_location_marker: bool = False
    location_marker_size: float = 3.0
    location_marker_position: Anchor = Anchor.TOP_RIGHT
    location_colors: Mapping[str, str] = field(default_factory=dict)

    show_spine_barcode: bool = False
    spine_barcode_position: SpineBarcodePosition = SpineBarcodePosition.BOTTOM
    spine_barcode_font_size: float = 8.0
    spine_barcode_bold: bool = True
    spine_text_bold: bool = True
    spine_text_shift: float = 0.0
    spine_barcode_shift_x: float = 0.0
    spine_barcode_shift_y: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "label_fields",
            tuple(self.label_fields)[:MAX_LABEL_FIELDS],
        )
        object.__setattr__(self, "location_colors", dict(self.location_colors))

    def __hash__(self) -> int:
        return hash(tuple(
            tuple(sorted(v.items())) if isinstance(v, Mapping) else v
            for v in (getattr(self, f.name) for f in fields(self))
        ))


@dataclass(frozen=True)
class LabelGeometry:
    """Page-space box of one slot, in points, origin at the bottom left."""

    left: float
    bottom: float
    right: float
    top: float

    @property
    def width(self) -> float:
        return max(self.right - self.left, 0.0)

    @property
    def height(self) -> float:
        return max(self.top - self.bottom, 0.0)


def section_to_dict(section: Geometry | Style) -> dict[str, Any]:
    """Serialize a Geometry or Style into JSON-friendly values."""

    data = asdict(section)
    for key, value in data.items():
        if isinstance(value, Enum):
            data[key] = value.value
        elif isinstance(value, tuple):
            data[key] = list(value)
    return data


def apply_section(section: T, values: Mapping[str, Any] | None) -> T:
    """Return ``section`` with every known field present in ``values`` applied.

    Absent or unknown keys leave the current value untouched, so older
    templates with fewer fields still load.
    """

    if not values:
        return section
    changes: dict[str, Any] = {}
    for f in fields(section):
        if f.name not in values or values[f.name] is None:
            continue
        changes[f.name] = _coerce(str(f.type), getattr(section, f.name), values[f.name])
    return replace(section, **changes) if changes else section


def _coerce(type_name: str, current: Any, value: Any) -> Any:
    # Annotations are strings here (postponed evaluation).
    if isinstance(current, Enum):
        return type(current)(value)
    if type_name == "bool":
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if type_name == "int":
        return int(float(value))
    if type_name == "float":
        return float(value)
    if type_name.startswith("tuple"):
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        return tuple(str(v).strip() for v in value)
    if type_name.startswith("Mapping"):
        return {str(k): str(v) for k, v in dict(value).items()}
    return str(value)


@dataclass(frozen=True)
class Template:
    """Named Geometry plus optional Style.

    Built-in templates carry geometry only; applying one keeps the live style.
    """

    name: str
    geometry: Geometry
    style: Style | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "geometry": section_to_dict(self.geometry),
        }
        if self.style is not None:
            data["style"] = section_to_dict(self.style)
        return data
