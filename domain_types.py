from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class Record:
    """One physical item from an inventory export."""

    id: str
    barcode: str
    title: str = ""
    author: str = ""
    call_number: str = ""
    isbn: str = ""
    branch: str = ""
    location: str = ""
    note: str = ""
    item_type: str = ""

    def field_value(self, key: str) -> str:
        return str(getattr(self, key, "") or "")

    def data_values(self) -> list[str]:
        """Return every searchable value (everything except ``id``)."""

        return [
            self.field_value(f.name)
            for f in fields(self)
            if f.name != "id"
        ]


# Fields an operator can place on a barcode label, in display order.
FIELD_KEYS = (
    "call_number",
    "title",
    "isbn",
    "author",
    "branch",
    "location",
    "note",
)

# Columns the record table can sort by.
SORTABLE_KEYS = (
    "barcode",
    "title",
    "author",
    "call_number",
    "isbn",
    "location",
)
