"""Selection of records to print, keyed by barcode value."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from domain_types import Record
from errors import SelectionError

__all__ = [
    "DEWEY_CLASSES",
    "Selection",
    "labels_to_print",
    "select_call_number_prefix",
    "select_location",
    "select_range",
    "unique_locations",
]

DEWEY_CLASSES: dict[str, str] = {
    "0": "000 - General works",
    "1": "100 - Philosophy & psychology",
    "2": "200 - Religion",
    "3": "300 - Social sciences",
    "4": "400 - Language",
    "5": "500 - Science & mathematics",
    "6": "600 - Technology",
    "7": "700 - Arts",
    "8": "800 - Literature",
    "9": "900 - History & geography",
}


@dataclass(frozen=True)
class Selection:
    """Immutable set of selected barcodes."""

    barcodes: frozenset[str] = field(default_factory=frozenset)

    def toggle(self, barcodes: Iterable[str], select: bool) -> Selection:
        batch = {b for b in barcodes if b}
        if select:
            updated = self.barcodes | batch
        else:
            updated = self.barcodes - batch
        if updated == self.barcodes:
            return self
        return Selection(frozenset(updated))

    def clear(self) -> Selection:
        return Selection()

    def is_selected(self, barcode: str) -> bool:
        return barcode in self.barcodes

    @property
    def size(self) -> int:
        return len(self.barcodes)

    def __len__(self) -> int:
        return len(self.barcodes)

    def __contains__(self, barcode: object) -> bool:
        return barcode in self.barcodes


def select_range(
    selection: Selection,
    records: Sequence[Record],
    start: str,
    end: str,
) -> tuple[Selection, int]:
    """Select every record whose barcode falls in ``[start, end]``.

    Comparison is plain string comparison, so ``"010"`` to ``"020"`` covers
    eleven zero-padded barcodes. Returns the new selection and the number of
    matching records.
    """

    start = (start or "").strip()
    end = (end or "").strip()
    if not start or not end:
        raise SelectionError("Enter both a start and an end barcode.")

    matches = [r.barcode for r in records if start <= r.barcode <= end]
    return selection.toggle(matches, True), len(matches)


def select_location(
    selection: Selection,
    records: Sequence[Record],
    location: str,
) -> Selection:
    if not location:
        return selection
    return selection.toggle(
        (r.barcode for r in records if r.location == location),
        True,
    )


def select_call_number_prefix(
    selection: Selection,
    records: Sequence[Record],
    prefix: str,
) -> Selection:
    if not prefix:
        return selection
    return selection.toggle(
        (r.barcode for r in records if r.call_number and r.call_number.startswith(prefix)),
        True,
    )


def unique_locations(records: Iterable[Record]) -> list[str]:
    return sorted({r.location for r in records if r.location})


def labels_to_print(
    records: Iterable[Record],
    selection: Selection,
) -> list[Record]:
    """Return selected records ordered by barcode, ignoring table state."""

    return sorted(
        (r for r in records if r.barcode in selection),
        key=lambda r: r.barcode,
    )
