"""Search, sort and paginate the record table."""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Sequence

from domain_types import SORTABLE_KEYS, Record
from label_templates.label_types import Geometry

__all__ = [
    "PAGE_SIZE_CHOICES",
    "PageSize",
    "PageSizeMode",
    "SortDirection",
    "TableState",
    "TableView",
    "derive_view",
    "effective_page_size",
    "filter_records",
    "natural_key",
    "sort_records",
]

PAGE_SIZE_CHOICES = (10, 25, 50, 100)

_DIGITS = re.compile(r"(\d+)")


class SortDirection(StrEnum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class PageSizeMode(StrEnum):
    DEFAULT = "default"
    ALL = "all"
    COUNT = "count"


@dataclass(frozen=True)
class PageSize:
    """Rows per table page: the sheet capacity, everything, or a count."""

    mode: PageSizeMode = PageSizeMode.DEFAULT
    count: int = 0

    def __post_init__(self) -> None:
        if self.mode is PageSizeMode.COUNT and self.count < 1:
            raise ValueError(f"Page size must be positive (got {self.count}).")

    @classmethod
    def parse(cls, value: str | int | None) -> PageSize:
        text = str(value if value is not None else "").strip().lower()
        if text in ("", PageSizeMode.DEFAULT):
            return cls()
        if text == PageSizeMode.ALL:
            return cls(PageSizeMode.ALL)
        try:
            count = int(text)
        except ValueError:
            raise ValueError(f"Invalid page size '{value}'.") from None
        return cls(PageSizeMode.COUNT, count)

    def __str__(self) -> str:
        if self.mode is PageSizeMode.COUNT:
            return str(self.count)
        return self.mode.value


@dataclass(frozen=True)
class TableState:
    search: str = ""
    sort_key: str = "barcode"
    sort_direction: SortDirection = SortDirection.ASCENDING
    page: int = 1
    page_size: PageSize = field(default_factory=PageSize)

    def with_search(self, term: str) -> TableState:
        return replace(self, search=term or "", page=1)

    def request_sort(self, key: str) -> TableState:
        """Sort by ``key``; asking for the current key flips the direction."""

        if key not in SORTABLE_KEYS:
            raise ValueError(f"Cannot sort by '{key}'.")
        direction = SortDirection.ASCENDING
        if key == self.sort_key and self.sort_direction is SortDirection.ASCENDING:
            direction = SortDirection.DESCENDING
        return replace(self, sort_key=key, sort_direction=direction, page=1)

    def with_page(self, page: int) -> TableState:
        return replace(self, page=max(1, int(page)))

    def with_page_size(self, page_size: PageSize) -> TableState:
        return replace(self, page_size=page_size, page=1)


@dataclass(frozen=True)
class TableView:
    rows: list[Record]
    page: int
    page_count: int
    total: int
    page_size: int
    filtered: list[Record]

    @property
    def first_index(self) -> int:
        """1-based position of the first row on this page."""

        return (self.page - 1) * self.page_size + 1


def natural_key(value: Any) -> tuple:
    """Sort key that orders embedded numbers numerically, ignoring case."""

    text = unicodedata.normalize("NFKC", str(value)).casefold()
    parts = _DIGITS.split(text)
    # split() alternates text and digit runs starting with text, so positions
    # compare like with like
    return tuple(int(part) if index % 2 else part for index, part in enumerate(parts))


def filter_records(records: Sequence[Record], term: str) -> list[Record]:
    needle = (term or "").casefold()
    if not needle:
        return list(records)
    return [
        record
        for record in records
        if any(needle in value.casefold() for value in record.data_values())
    ]


def sort_records(
    records: Sequence[Record],
    key: str,
    direction: SortDirection = SortDirection.ASCENDING,
) -> list[Record]:
    def sort_value(record: Record) -> Any:
        value = getattr(record, key, "")
        if isinstance(value, str):
            return natural_key(value)
        return value

    return sorted(
        records,
        key=sort_value,
        reverse=direction is SortDirection.DESCENDING,
    )


def effective_page_size(page_size: PageSize, geometry: Geometry, total: int) -> int:
    if page_size.mode is PageSizeMode.ALL:
        return max(1, total)
    if page_size.mode is PageSizeMode.COUNT:
        return page_size.count
    return max(1, geometry.capacity)


def derive_view(
    records: Sequence[Record],
    state: TableState,
    geometry: Geometry,
) -> TableView:
    """Filter, sort and slice ``records`` for display."""

    filtered = sort_records(
        filter_records(records, state.search),
        state.sort_key,
        state.sort_direction,
    )
    total = len(filtered)
    size = effective_page_size(state.page_size, geometry, total)
    page_count = max(1, math.ceil(total / size))
    start = (state.page - 1) * size
    return TableView(
        rows=filtered[start:start + size],
        page=state.page,
        page_count=page_count,
        total=total,
        page_size=size,
        filtered=filtered,
    )
