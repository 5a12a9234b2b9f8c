"""Label mode dispatch."""

from __future__ import annotations

from domain_types import Record
from .barcode_label import BarcodeLabelLayout
from .base import LabelLayout, LabelLayoutEngine
from .label_types import Geometry, Style
from .spine_label import SpineLabelLayout
from .symbols import SymbolRenderer
from .types import LabelMode

_ENGINES: dict[LabelMode, type[LabelLayoutEngine]] = {
    LabelMode.BARCODE: BarcodeLabelLayout,
    LabelMode.SPINE: SpineLabelLayout,
}


def layout_engine(
    mode: LabelMode,
    symbols: SymbolRenderer | None = None,
) -> LabelLayoutEngine:
    return _ENGINES[LabelMode(mode)](symbols)


def layout_label(
    record: Record,
    geometry: Geometry,
    style: Style,
    symbols: SymbolRenderer | None = None,
) -> LabelLayout:
    """Compose ``record`` as one label of ``style.label_mode``."""

    return layout_engine(style.label_mode, symbols).layout(record, geometry, style)


__all__ = ["layout_engine", "layout_label"]
