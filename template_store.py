"""Persistence for the operator's custom template library.

Two stores share one interface: ``LocalTemplateStore`` keeps the library in a
JSON file for an anonymous operator, ``RemoteTemplateStore`` keeps it in a
per-owner document behind an HTTP API and can stream changes made elsewhere.
Callers never need to know which one they hold.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Mapping

import httpx

from app_config import AppConfig
from errors import TemplateError, TemplatePersistenceError
from label_templates import is_builtin

__all__ = [
    "LocalTemplateStore",
    "RemoteTemplateStore",
    "TemplateStore",
    "TemplateSubscription",
    "export_templates_json",
    "merge_templates",
    "normalize_templates",
    "open_template_store",
    "parse_templates_json",
    "replace_templates",
]

logger = logging.getLogger(__name__)

Templates = dict[str, dict[str, Any]]

DEFAULT_TIMEOUT = 30

# Flat camelCase keys written by older exports, mapped to (section, field).
_LEGACY_KEYS: dict[str, tuple[str, str]] = {
    "pageWidth": ("geometry", "page_width"),
    "pageHeight": ("geometry", "page_height"),
    "labelWidth": ("geometry", "label_width"),
    "labelHeight": ("geometry", "label_height"),
    "marginTop": ("geometry", "margin_top"),
    "marginLeft": ("geometry", "margin_left"),
    "numCols": ("geometry", "num_cols"),
    "numRows": ("geometry", "num_rows"),
    "colGap": ("geometry", "col_gap"),
    "rowGap": ("geometry", "row_gap"),
    "unit": ("geometry", "unit"),
    "fontSize": ("style", "font_size"),
    "fontFamily": ("style", "font_family"),
    "textAlign": ("style", "block_align"),
    "textJustify": ("style", "text_justify"),
    "verticalAlign": ("style", "vertical_align"),
    "lineHeight": ("style", "line_height"),
    "barcodeHeight": ("style", "barcode_height"),
    "isFirstLineBold": ("style", "first_line_bold"),
    "labelType": ("style", "label_mode"),
    "showSpineBarcode": ("style", "show_spine_barcode"),
    "spineBarcodePosition": ("style", "spine_barcode_position"),
    "spineBarcodeFontSize": ("style", "spine_barcode_font_size"),
    "spineBarcodeBold": ("style", "spine_barcode_bold"),
    "spineMainTextBold": ("style", "spine_text_bold"),
    "spineTextVerticalShift": ("style", "spine_text_shift"),
    "spineBarcodeVerticalShift": ("style", "spine_barcode_shift_y"),
}


def _normalize_entry(name: str, entry: Mapping[str, Any]) -> dict[str, Any]:
    if "geometry" in entry or "style" in entry:
        normalized: dict[str, Any] = {
            "name": str(entry.get("name") or name),
            "geometry": dict(entry.get("geometry") or {}),
        }
        if entry.get("style") is not None:
            normalized["style"] = dict(entry["style"])
        return normalized

    sections: dict[str, dict[str, Any]] = {"geometry": {}, "style": {}}
    for key, value in entry.items():
        target = _LEGACY_KEYS.get(key)
        if target is not None:
            sections[target[0]][target[1]] = value
    return {"name": name, **sections}


def normalize_templates(data: Any) -> Templates:
    """Validate a template mapping and bring entries into the current shape.

    Entries stored under a built-in name are dropped.
    """

    if not isinstance(data, Mapping):
        raise TemplateError("Template data must be an object keyed by template name.")
    templates: Templates = {}
    for name, entry in data.items():
        if not isinstance(entry, Mapping):
            raise TemplateError(f"Template '{name}' is not an object.")
        if is_builtin(str(name)):
            logger.warning("Ignoring stored template with built-in name '%s'", name)
            continue
        templates[str(name)] = _normalize_entry(str(name), entry)
    return templates


def replace_templates(current: Mapping[str, Any], snapshot: Mapping[str, Any]) -> Templates:
    """Remote snapshots overwrite the local library."""

    return normalize_templates(snapshot)


def merge_templates(current: Mapping[str, Any], incoming: Mapping[str, Any]) -> Templates:
    """File imports add to the library; incoming names win."""

    merged: Templates = {name: dict(entry) for name, entry in current.items()}
    merged.update(normalize_templates(incoming))
    return merged


def export_templates_json(templates: Mapping[str, Any]) -> str:
    return json.dumps(templates, ensure_ascii=False, indent=2, sort_keys=True)


def parse_templates_json(text: str | bytes) -> Templates:
    try:
        data = json.loads(text)
    except (ValueError, UnicodeDecodeError) as exc:
        raise TemplateError(f"Template file is not valid JSON: {exc}") from exc
    return normalize_templates(data)


class TemplateSubscription:
    """Background poller that queues full template snapshots.

    Only snapshots that differ from the last delivered one are queued.
    Consumers call ``drain`` and apply the newest snapshot, if any.
    """

    def __init__(
        self,
        fetch: Callable[[], Templates],
        interval: float,
        initial: Templates | None = None,
    ) -> None:
        self._fetch = fetch
        self._interval = interval
        self._last = initial
        self._queue: queue.Queue[Templates] = queue.Queue()
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="template-subscription",
            daemon=True,
        )

    def start(self) -> TemplateSubscription:
        self._thread.start()
        return self

    def poll_once(self) -> None:
        try:
            snapshot = self._fetch()
        except TemplatePersistenceError as exc:
            logger.warning("Template subscription poll failed: %s", exc)
            return
        if snapshot != self._last:
            self._last = snapshot
            self._queue.put(snapshot)

    def drain(self) -> Templates | None:
        latest: Templates | None = None
        while True:
            try:
                latest = self._queue.get_nowait()
            except queue.Empty:
                return latest

    def close(self) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=self._interval + 1)

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.poll_once()


class TemplateStore(ABC):
    @abstractmethod
    def load(self) -> Templates:
        """Return the persisted template library."""

    @abstractmethod
    def save(self, templates: Mapping[str, Any]) -> None:
        """Persist the whole template library."""

    def subscribe(self) -> TemplateSubscription | None:
        return None

    def close(self) -> None:
        pass

    @property
    def description(self) -> str:
        return type(self).__name__


class LocalTemplateStore(TemplateStore):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @property
    def description(self) -> str:
        return f"local file {self.path}"

    def load(self) -> Templates:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplatePersistenceError(
                f"Could not read templates from {self.path}: {exc}"
            ) from exc
        try:
            return parse_templates_json(text)
        except TemplateError as exc:
            raise TemplatePersistenceError(str(exc)) from exc

    def save(self, templates: Mapping[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(export_templates_json(templates), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise TemplatePersistenceError(
                f"Could not write templates to {self.path}: {exc}"
            ) from exc


class RemoteTemplateStore(TemplateStore):
    """Templates stored as one JSON document per owner."""

    def __init__(
        self,
        base_url: str,
        token: str,
        owner: str,
        poll_seconds: float = 15.0,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        base_clean = (base_url or "").rstrip("/")
        if not base_clean:
            raise RuntimeError("Remote template store URL is required.")
        if not token or not owner:
            raise RuntimeError("Remote template store token and owner are required.")

        self.base_url = base_clean
        self.owner = owner
        self.poll_seconds = poll_seconds
        self._client = client or httpx.Client(
            base_url=base_clean,
            headers={"Authorization": f"Bearer {token}"},
            timeout=httpx.Timeout(timeout),
        )
        self._subscription: TemplateSubscription | None = None

    @property
    def document_path(self) -> str:
        return f"/users/{self.owner}/templates"

    @property
    def description(self) -> str:
        return f"remote store {self.base_url} ({self.owner})"

    def load(self) -> Templates:
        try:
            response = self._client.get(self.document_path)
        except httpx.HTTPError as exc:
            raise TemplatePersistenceError(f"Could not reach template store: {exc}") from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            return {}
        self._raise_for_status(response, "load")
        try:
            return normalize_templates(response.json())
        except (ValueError, TemplateError) as exc:
            raise TemplatePersistenceError(f"Template store returned invalid data: {exc}") from exc

    def save(self, templates: Mapping[str, Any]) -> None:
        try:
            response = self._client.put(self.document_path, json=dict(templates))
        except httpx.HTTPError as exc:
            raise TemplatePersistenceError(f"Could not reach template store: {exc}") from exc
        self._raise_for_status(response, "save")

    def subscribe(self) -> TemplateSubscription:
        if self._subscription is None:
            self._subscription = TemplateSubscription(self.load, self.poll_seconds).start()
        return self._subscription

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._client.close()

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        content = response.content.decode("utf-8", errors="replace")
        raise TemplatePersistenceError(
            f"Template {action} failed ({response.status_code}): {content}"
        )


def open_template_store(
    config: AppConfig,
    client: httpx.Client | None = None,
) -> TemplateStore:
    """Remote store when the config names an owner and credentials, else local."""

    if config.remote_enabled:
        return RemoteTemplateStore(
            config.remote_url,
            config.remote_token,
            config.owner,
            poll_seconds=config.poll_seconds,
            client=client,
        )
    return LocalTemplateStore(config.templates_file)
