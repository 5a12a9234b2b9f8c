"""The operator's working state: records, selection, table and templates.

Every field holds an immutable value; mutators build the replacement value
first and swap it in under the lock, so a failed operation changes nothing.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Sequence

from domain_types import Record
from errors import TemplatePersistenceError
from label_generation import (
    DEFAULT_EXPORT_NAME,
    PdfExporter,
    compose_page,
    export_filename,
    overflow_count,
    render_page_png,
)
from label_settings import (
    LabelSettings,
    TemplateLibrary,
    delete_template,
    edit_geometry,
    load_template,
    save_template,
    set_label_mode,
    update_style,
)
from label_templates.types import LabelMode
from record_import import (
    DEFAULT_ENCODING,
    DEMO_INITIAL_SELECTION,
    DEMO_NAME,
    ImportResult,
    Source,
    demo_records,
    import_file,
)
from record_table import PageSize, TableState, TableView, derive_view
from selection import (
    Selection,
    labels_to_print,
    select_call_number_prefix,
    select_location,
    select_range,
    unique_locations,
)
from template_store import (
    TemplateStore,
    TemplateSubscription,
    export_templates_json,
    merge_templates,
    parse_templates_json,
    replace_templates,
)

logger = logging.getLogger(__name__)


class Workspace:
    def __init__(
        self,
        store: TemplateStore | None = None,
        encoding: str = DEFAULT_ENCODING,
        pdf_name: str = DEFAULT_EXPORT_NAME,
        load_demo: bool = True,
    ) -> None:
        self._lock = threading.RLock()
        self.store = store
        self.encoding = encoding
        self.pdf_name = pdf_name
        self.exporter = PdfExporter()

        self._records: tuple[Record, ...] = ()
        self._source_name = ""
        self._selection = Selection()
        self._table = TableState()
        self._settings = LabelSettings()
        self._templates: dict[str, Any] = {}
        self._subscription: TemplateSubscription | None = None

        if load_demo:
            self.load_demo(select_all=False)
        if store is not None:
            self.reload_templates()

    # -- read access ---------------------------------------------------

    @property
    def records(self) -> tuple[Record, ...]:
        return self._records

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def table(self) -> TableState:
        return self._table

    @property
    def settings(self) -> LabelSettings:
        return self._settings

    @property
    def templates(self) -> TemplateLibrary:
        self.sync_templates()
        return self._templates

    def table_view(self) -> TableView:
        with self._lock:
            return derive_view(self._records, self._table, self._settings.geometry)

    def labels_to_print(self) -> list[Record]:
        with self._lock:
            return labels_to_print(self._records, self._selection)

    def locations(self) -> list[str]:
        return unique_locations(self._records)

    def overflow(self, skip: int = 0) -> int:
        with self._lock:
            return overflow_count(self._settings.geometry, self.labels_to_print(), skip)

    # -- records -------------------------------------------------------

    def import_file(
        self,
        source: Source,
        filename: str | None = None,
        encoding: str | None = None,
    ) -> ImportResult:
        """Replace the records with an imported file.

        On failure the previous records and selection are kept.
        """

        result = import_file(source, filename=filename, encoding=encoding or self.encoding)
        with self._lock:
            self._records = tuple(result.records)
            self._selection = Selection()
            self._table = self._table.with_page(1)
            self._source_name = filename or str(source)
        return result

    def load_demo(self, select_all: bool = True) -> None:
        records = demo_records()
        chosen = records if select_all else records[:DEMO_INITIAL_SELECTION]
        with self._lock:
            self._records = tuple(records)
            self._selection = Selection().toggle((r.barcode for r in chosen), True)
            self._table = self._table.with_page(1)
            self._source_name = DEMO_NAME

    # -- selection -----------------------------------------------------

    def toggle(self, barcodes: Iterable[str], select: bool) -> Selection:
        with self._lock:
            self._selection = self._selection.toggle(barcodes, select)
            return self._selection

    def select_page(self, select: bool) -> Selection:
        with self._lock:
            return self.toggle((r.barcode for r in self.table_view().rows), select)

    def select_filtered(self, select: bool) -> Selection:
        with self._lock:
            return self.toggle((r.barcode for r in self.table_view().filtered), select)

    def select_range(self, start: str, end: str) -> int:
        with self._lock:
            self._selection, count = select_range(self._selection, self._records, start, end)
            return count

    def select_location(self, location: str) -> Selection:
        with self._lock:
            self._selection = select_location(self._selection, self._records, location)
            return self._selection

    def select_call_number_prefix(self, prefix: str) -> Selection:
        with self._lock:
            self._selection = select_call_number_prefix(self._selection, self._records, prefix)
            return self._selection

    def clear_selection(self) -> None:
        with self._lock:
            self._selection = self._selection.clear()

    # -- table ---------------------------------------------------------

    def set_search(self, term: str) -> None:
        with self._lock:
            self._table = self._table.with_search(term)

    def request_sort(self, key: str) -> None:
        with self._lock:
            self._table = self._table.request_sort(key)

    def set_page(self, page: int) -> None:
        with self._lock:
            self._table = self._table.with_page(page)

    def set_page_size(self, page_size: PageSize) -> None:
        with self._lock:
            self._table = self._table.with_page_size(page_size)

    # -- settings and templates ----------------------------------------

    def edit_geometry(self, **changes: Any) -> LabelSettings:
        with self._lock:
            self._settings = edit_geometry(self._settings, **changes)
            return self._settings

    def update_style(self, **changes: Any) -> LabelSettings:
        with self._lock:
            self._settings = update_style(self._settings, **changes)
            return self._settings

    def set_label_mode(self, mode: LabelMode | str) -> LabelSettings:
        with self._lock:
            self._settings = set_label_mode(self._settings, mode)
            return self._settings

    def load_template(self, name: str) -> LabelSettings:
        with self._lock:
            self._settings = load_template(self._settings, name, self.templates)
            return self._settings

    def save_template(self, name: str) -> str | None:
        """Store the live settings as ``name``; returns a warning if not persisted."""

        with self._lock:
            self._templates = save_template(self.templates, self._settings, name)
            return self._persist()

    def delete_template(self, name: str) -> str | None:
        with self._lock:
            self._templates = delete_template(self.templates, name)
            return self._persist()

    def import_templates(self, text: str | bytes) -> str | None:
        incoming = parse_templates_json(text)
        with self._lock:
            self._templates = merge_templates(self.templates, incoming)
            logger.info("Merged %d imported templates", len(incoming))
            return self._persist()

    def export_templates(self) -> str:
        return export_templates_json(self.templates)

    def reload_templates(self) -> None:
        """Read the library from the store; a failed read keeps the current one."""

        if self.store is None:
            return
        try:
            loaded = self.store.load()
        except TemplatePersistenceError as exc:
            logger.warning("Could not load templates from %s: %s", self.store.description, exc)
            return
        with self._lock:
            self._templates = loaded

    def start_sync(self) -> None:
        if self.store is not None and self._subscription is None:
            self._subscription = self.store.subscribe()

    def sync_templates(self) -> bool:
        """Apply the newest pushed snapshot, if any. Snapshots overwrite."""

        if self._subscription is None:
            return False
        snapshot = self._subscription.drain()
        if snapshot is None:
            return False
        with self._lock:
            self._templates = replace_templates(self._templates, snapshot)
        logger.info("Applied remote template snapshot (%d templates)", len(snapshot))
        return True

    def _persist(self) -> str | None:
        if self.store is None:
            return None
        try:
            self.store.save(self._templates)
        except TemplatePersistenceError as exc:
            logger.warning("Could not save templates to %s: %s", self.store.description, exc)
            return f"Templates were not saved: {exc}"
        return None

    # -- output --------------------------------------------------------

    def export_filename(self, base: str | None = None) -> str:
        return export_filename(base if base is not None else self.pdf_name)

    def export_pdf(self, output: Any, skip: int = 0, rasterize: bool = True) -> str:
        with self._lock:
            settings = self._settings
            labels = self.labels_to_print()
        return self.exporter.export(
            output,
            settings.geometry,
            settings.style,
            labels,
            skip=skip,
            rasterize=rasterize,
        )

    def preview_png(self, skip: int = 0, scale: float = 1.5) -> bytes:
        with self._lock:
            settings = self._settings
            labels: Sequence[Record] = self.labels_to_print()
        slots = compose_page(settings.geometry, labels, skip)
        return render_page_png(settings.geometry, settings.style, slots, outline=True, scale=scale)

    def close(self) -> None:
        self._subscription = None
        if self.store is not None:
            self.store.close()
