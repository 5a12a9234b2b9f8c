# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false, reportAttributeAccessIssue=false
# pyright: reportMissingImports=false
# pyright: reportMissingTypeStubs=false

"""Font management for label text.

Each ``FontFamily`` maps to a TrueType source under ``FONTS_DIR`` so that
non-Latin-1 glyphs (Turkish catalogue data in particular) render. When the
files are not installed we fall back to the PDF standard fonts.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Union

from fontTools.ttLib import TTFont as VariableTTFont
from fontTools.varLib import instancer
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont as ReportLabTTFont

from label_templates.types import FontFamily

logger = logging.getLogger(__name__)

FONTS_DIR = Path(
    os.getenv(
        "LABEL_MAKER_FONTS_DIR",
        str(Path(__file__).resolve().parent / "fonts"),
    )
)

REGULAR_WEIGHT = 400
BOLD_WEIGHT = 700


@dataclass(frozen=True)
class LocalVariableFont:
    family_name: str
    filename: str


@dataclass(frozen=True)
class LocalStaticFont:
    family_name: str
    files: dict[int, str]


FontSource = Union[LocalVariableFont, LocalStaticFont]

FONT_SOURCES: dict[FontFamily, FontSource] = {
    FontFamily.SANS_SERIF: LocalVariableFont(
        family_name="Inter",
        filename="InterVariable.ttf",
    ),
    FontFamily.SERIF: LocalStaticFont(
        family_name="DejaVu Serif",
        files={REGULAR_WEIGHT: "DejaVuSerif.ttf", BOLD_WEIGHT: "DejaVuSerif-Bold.ttf"},
    ),
    FontFamily.MONOSPACE: LocalStaticFont(
        family_name="DejaVu Sans Mono",
        files={REGULAR_WEIGHT: "DejaVuSansMono.ttf", BOLD_WEIGHT: "DejaVuSansMono-Bold.ttf"},
    ),
}

# PDF base-14 faces used when no TrueType file is installed.
STANDARD_FONTS: dict[FontFamily, tuple[str, str]] = {
    FontFamily.SANS_SERIF: ("Helvetica", "Helvetica-Bold"),
    FontFamily.SERIF: ("Times-Roman", "Times-Bold"),
    FontFamily.MONOSPACE: ("Courier", "Courier-Bold"),
}


class VariableFontManager:
    """Instantiate static font variants from a variable font file."""

    def __init__(self, family: str, font_path: Path) -> None:
        self.family = family
        self.font_path = font_path
        self._font_bytes = font_path.read_bytes()
        self._weight_min, self._weight_max = self._discover_weight_axis()
        self._registered: dict[str, str] = {}

    def _discover_weight_axis(self) -> tuple[float, float]:
        font = VariableTTFont(BytesIO(self._font_bytes))
        try:
            axis = next(ax for ax in font["fvar"].axes if ax.axisTag == "wght")
        except (KeyError, StopIteration) as exc:
            raise RuntimeError(
                f"Variable font '{self.font_path}' does not expose a wght axis."
            ) from exc
        return float(axis.minValue), float(axis.maxValue)

    def font_name_for_weight(self, weight: float) -> str:
        weight = min(max(float(weight), self._weight_min), self._weight_max)
        key = f"{weight:.1f}"
        cached = self._registered.get(key)
        if cached:
            return cached

        font_name = f"{self.family}-w{int(round(weight))}"
        buffer = self._instantiate(weight)
        pdfmetrics.registerFont(ReportLabTTFont(font_name, buffer))
        self._registered[key] = font_name
        return font_name

    def _instantiate(self, weight: float) -> BytesIO:
        font = VariableTTFont(BytesIO(self._font_bytes))
        instancer.instantiateVariableFont(font, {"wght": weight}, inplace=True)
        self._ensure_unique_ps_name(font, weight)
        buffer = BytesIO()
        font.save(buffer)
        buffer.seek(0)
        return buffer

    def _ensure_unique_ps_name(self, font: VariableTTFont, weight: float) -> None:
        """Force a distinct PostScript name if instancer did not change it."""
        nm = font["name"]
        current_ps = nm.getName(6, 3, 1, 0x409) or nm.getName(6, 1, 0, 0)
        target_ps = self._safe_ps_name(
            f"{self.family.replace(' ', '')}-W{int(round(weight))}")
        if not current_ps or current_ps.toUnicode() == target_ps:
            return

        for plat, enc, lang in ((3, 1, 0x409), (1, 0, 0)):
            nm.setName(target_ps, 6, plat, enc, lang)
            nm.setName(f"{self.family} {int(round(weight))}", 4, plat, enc, lang)
            nm.setName(self.family, 1, plat, enc, lang)
            nm.setName(str(int(round(weight))), 2, plat, enc, lang)
            nm.setName(self.family, 16, plat, enc, lang)
            nm.setName(str(int(round(weight))), 17, plat, enc, lang)

    def _safe_ps_name(self, s: str) -> str:
        return re.sub(r"[^A-Za-z0-9-]", "", s)[:63]


class FontRegistry:
    def __init__(self, fonts_dir: Path = FONTS_DIR) -> None:
        self.fonts_dir = fonts_dir
        self._variable_managers: dict[str, VariableFontManager] = {}

        # map (family_name, weight) -> registered font name
        self._static_registry: dict[tuple[str, int], str] = {}
        self._resolved: dict[tuple[FontFamily, bool], str] = {}

    def font_name(self, family: FontFamily, bold: bool = False) -> str:
        """Return a registered ReportLab font name for ``family``."""

        key = (FontFamily(family), bool(bold))
        cached = self._resolved.get(key)
        if cached:
            return cached

        weight = BOLD_WEIGHT if bold else REGULAR_WEIGHT
        info = FONT_SOURCES[key[0]]
        try:
            if isinstance(info, LocalVariableFont):
                name = self._get_variable_font_name(info, weight)
            else:
                name = self._get_static_font_name(info, weight)
        except FileNotFoundError as exc:
            regular, heavy = STANDARD_FONTS[key[0]]
            name = heavy if bold else regular
            logger.warning(
                "%s; falling back to %s, which has no glyphs outside Latin-1 "
                "(Turkish ş ı İ ğ print as blanks). Install the font files or "
                "point LABEL_MAKER_FONTS_DIR at them.",
                exc,
                name,
            )

        self._resolved[key] = name
        return name

    def _get_variable_font_name(
        self, info: LocalVariableFont, weight: float
    ) -> str:
        key = info.family_name.lower()
        manager = self._variable_managers.get(key)
        if manager is None:
            destination = self.fonts_dir / info.filename
            if not destination.exists():
                raise FileNotFoundError(
                    f"Font file '{destination}' for family '{info.family_name}' is missing"
                )
            manager = VariableFontManager(info.family_name, destination)
            self._variable_managers[key] = manager
        return manager.font_name_for_weight(weight)

    def _get_static_font_name(self, info: LocalStaticFont, weight: float) -> str:
        weight_int = int(round(weight))
        filename = info.files.get(weight_int)
        if filename is None:
            # pick the closest available weight
            available_weights = sorted(info.files)
            closest = min(available_weights, key=lambda w: abs(w - weight_int))
            filename = info.files[closest]
            weight_int = closest

        key = (info.family_name, weight_int)
        cached = self._static_registry.get(key)
        if cached:
            return cached

        destination = self.fonts_dir / filename
        if not destination.exists():
            raise FileNotFoundError(
                f"Font file '{destination}' for family '{info.family_name}' is missing"
            )

        font_name = f"{info.family_name.replace(' ', '')}-w{weight_int}"
        pdfmetrics.registerFont(ReportLabTTFont(font_name, destination))
        self._static_registry[key] = font_name
        return font_name


_REGISTRY = FontRegistry()


def font_name(family: FontFamily, bold: bool = False) -> str:
    """Resolve ``family``/``bold`` to a font name usable on a canvas."""

    return _REGISTRY.font_name(family, bold)


__all__ = [
    "FONT_SOURCES",
    "FontRegistry",
    "STANDARD_FONTS",
    "font_name",
]
