"""Web UI for building and exporting label sheets."""

from __future__ import annotations

import argparse
import logging
import os
import tempfile
from io import BytesIO
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from dotenv import load_dotenv
from PIL import Image
from flask import (
    Flask,
    after_this_request,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)
from werkzeug.datastructures import ImmutableMultiDict
from werkzeug.utils import secure_filename
from werkzeug.wrappers import Response

from app_config import AppConfig, configure_logging
from domain_types import FIELD_KEYS, SORTABLE_KEYS
from errors import LabelMakerError
from label_settings import template_choices
from label_templates.label_types import CUSTOM_TEXT_FIELD, section_to_dict
from label_templates.types import (
    Anchor,
    BarcodeFormat,
    BlockAlign,
    FontFamily,
    LabelMode,
    SpineBarcodePosition,
    TextJustify,
    VerticalAlign,
)
from record_import import ENCODINGS
from record_table import PAGE_SIZE_CHOICES, PageSize
from selection import DEWEY_CLASSES
from template_store import open_template_store
from workspace import Workspace

__all__ = ["create_app", "create_app_from_env", "run_web_app"]

logger = logging.getLogger(__name__)

GEOMETRY_FIELDS = (
    "page_width",
    "page_height",
    "label_width",
    "label_height",
    "margin_top",
    "margin_left",
    "num_cols",
    "num_rows",
    "col_gap",
    "row_gap",
)

BOOL_STYLE_FIELDS = (
    "first_line_bold",
    "show_logo",
    "show_location_marker",
    "show_spine_barcode",
    "spine_barcode_bold",
    "spine_text_bold",
)

VALUE_STYLE_FIELDS = (
    "custom_text",
    "block_align",
    "text_justify",
    "vertical_align",
    "line_height",
    "font_size",
    "font_family",
    "text_color",
    "barcode_format",
    "barcode_height",
    "barcode_color",
    "logo_size",
    "logo_position",
    "location_marker_size",
    "location_marker_position",
    "spine_barcode_position",
    "spine_barcode_font_size",
    "spine_text_shift",
    "spine_barcode_shift_x",
    "spine_barcode_shift_y",
)

LOGO_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif"}


def _parse_location_colors(text: str) -> dict[str, str]:
    """``Location = colour`` per line."""

    colors: dict[str, str] = {}
    for line in (text or "").splitlines():
        if "=" not in line:
            continue
        location, color = line.split("=", 1)
        location, color = location.strip(), color.strip()
        if location and color:
            colors[location] = color
    return colors


def _format_location_colors(colors: dict[str, str]) -> str:
    return "\n".join(f"{location} = {color}" for location, color in colors.items())


def _skip_value(raw: str | None) -> int:
    try:
        skip = int((raw or "0").strip() or "0")
    except ValueError:
        raise ValueError(f"Skip must be a whole number, got '{raw}'.") from None
    return max(skip, 0)


def _style_changes(form: ImmutableMultiDict[str, str]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for name in VALUE_STYLE_FIELDS:
        if name in form:
            changes[name] = form.get(name, "")
    for name in BOOL_STYLE_FIELDS:
        changes[name] = name in form
    if "label_fields_submitted" in form:
        changes["label_fields"] = tuple(f for f in form.getlist("label_fields") if f)
    if "location_colors" in form:
        changes["location_colors"] = _parse_location_colors(form.get("location_colors", ""))
    return changes


def create_app(workspace: Workspace, config: AppConfig | None = None) -> Flask:
    """Create the Flask app wired to the provided workspace."""

    config = config or AppConfig()
    template_dir = Path(__file__).resolve().parent / "templates"
    app = Flask(__name__, template_folder=str(template_dir))
    app.config["SECRET_KEY"] = config.secret_key
    upload_dir = Path(tempfile.mkdtemp(prefix="label-maker-"))

    def _back(error: str | None = None, notice: str | None = None) -> Response:
        params = {k: v for k, v in (("error", error), ("notice", notice)) if v}
        return redirect(url_for("index", **params))

    @app.route("/", methods=["GET"])
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        view = workspace.table_view()
        settings = workspace.settings
        selection = workspace.selection
        rows = [
            {
                "record": record,
                "position": view.first_index + offset,
                "selected": record.barcode in selection,
            }
            for offset, record in enumerate(view.rows)
        ]
        style = section_to_dict(settings.style)

        return render_template(
            "index.html",
            error=request.args.get("error"),
            notice=request.args.get("notice"),
            source_name=workspace.source_name,
            rows=rows,
            view=view,
            table=workspace.table,
            selection_size=selection.size,
            page_capacity=settings.geometry.capacity,
            overflow=workspace.overflow(),
            locations=workspace.locations(),
            dewey_classes=DEWEY_CLASSES,
            sortable_fields=SORTABLE_KEYS,
            page_size_choices=PAGE_SIZE_CHOICES,
            encodings=ENCODINGS,
            encoding=workspace.encoding,
            template_choices=template_choices(workspace.templates),
            custom_templates=sorted(workspace.templates),
            settings=settings,
            geometry=section_to_dict(settings.geometry),
            geometry_fields=GEOMETRY_FIELDS,
            style=style,
            location_colors=_format_location_colors(settings.style.location_colors),
            field_choices=FIELD_KEYS + (CUSTOM_TEXT_FIELD,),
            label_modes=list(LabelMode),
            block_aligns=list(BlockAlign),
            text_justifies=list(TextJustify),
            vertical_aligns=list(VerticalAlign),
            font_families=list(FontFamily),
            barcode_formats=list(BarcodeFormat),
            anchors=list(Anchor),
            spine_positions=list(SpineBarcodePosition),
            pdf_name=workspace.pdf_name,
        )

    @app.route("/table", methods=["GET"])
    def table() -> Response:  # pyright: ignore[reportUnusedFunction]
        try:
            if "search" in request.args:
                workspace.set_search(request.args.get("search", ""))
            if "sort" in request.args:
                workspace.request_sort(request.args["sort"])
            if "page_size" in request.args:
                workspace.set_page_size(PageSize.parse(request.args["page_size"]))
            if "page" in request.args:
                workspace.set_page(int(request.args["page"]))
        except ValueError as exc:
            return _back(error=str(exc))
        return _back()

    @app.route("/import", methods=["POST"])
    def import_records() -> Response:  # pyright: ignore[reportUnusedFunction]
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return _back(error="Choose a file to import.")
        encoding = request.form.get("encoding") or workspace.encoding
        try:
            result = workspace.import_file(
                BytesIO(upload.read()),
                filename=upload.filename,
                encoding=encoding,
            )
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back(
            notice=f"Imported {result.imported} records from {upload.filename}."
        )

    @app.route("/demo", methods=["POST"])
    def load_demo() -> Response:  # pyright: ignore[reportUnusedFunction]
        workspace.load_demo(select_all=True)
        return _back(notice="Loaded the demo data set.")

    @app.route("/select", methods=["POST"])
    def select() -> Response:  # pyright: ignore[reportUnusedFunction]
        action = request.form.get("action", "")
        try:
            if action == "toggle":
                shown = request.form.getlist("shown")
                checked = set(request.form.getlist("barcode"))
                workspace.toggle([b for b in shown if b in checked], True)
                workspace.toggle([b for b in shown if b not in checked], False)
            elif action in ("select_page", "deselect_page"):
                workspace.select_page(action == "select_page")
            elif action in ("select_filtered", "deselect_filtered"):
                workspace.select_filtered(action == "select_filtered")
            elif action == "range":
                count = workspace.select_range(
                    request.form.get("start", ""),
                    request.form.get("end", ""),
                )
                return _back(notice=f"Selected {count} records in range.")
            elif action == "location":
                workspace.select_location(request.form.get("location", ""))
            elif action == "dewey":
                workspace.select_call_number_prefix(request.form.get("prefix", ""))
            elif action == "clear":
                workspace.clear_selection()
            else:
                return _back(error=f"Unknown selection action '{action}'.")
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back()

    @app.route("/settings/geometry", methods=["POST"])
    def update_geometry() -> Response:  # pyright: ignore[reportUnusedFunction]
        changes = {
            name: request.form[name]
            for name in GEOMETRY_FIELDS
            if request.form.get(name, "").strip()
        }
        try:
            workspace.edit_geometry(**changes)
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back()

    @app.route("/settings/style", methods=["POST"])
    def update_style() -> Response:  # pyright: ignore[reportUnusedFunction]
        try:
            workspace.update_style(**_style_changes(request.form))
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back()

    @app.route("/settings/mode", methods=["POST"])
    def update_mode() -> Response:  # pyright: ignore[reportUnusedFunction]
        try:
            workspace.set_label_mode(request.form.get("label_mode", ""))
        except ValueError as exc:
            return _back(error=str(exc))
        return _back()

    @app.route("/settings/logo", methods=["POST"])
    def upload_logo() -> Response:  # pyright: ignore[reportUnusedFunction]
        upload = request.files.get("logo")
        if upload is None or not upload.filename:
            workspace.update_style(show_logo=False, logo_path="")
            return _back(notice="Logo removed.")
        filename = secure_filename(upload.filename) or "logo"
        if Path(filename).suffix.lower() not in LOGO_SUFFIXES:
            return _back(error="Upload a PNG, JPEG or GIF logo.")
        try:
            with Image.open(BytesIO(upload.read())) as img:
                destination = upload_dir / f"{Path(filename).stem}.png"
                img.convert("RGBA").save(destination, format="PNG")
        except OSError as exc:
            return _back(error=f"Could not read logo image: {exc}")
        workspace.update_style(show_logo=True, logo_path=str(destination))
        return _back(notice=f"Logo {filename} uploaded.")

    @app.route("/templates/load", methods=["POST"])
    def load_template() -> Response:  # pyright: ignore[reportUnusedFunction]
        try:
            workspace.load_template(request.form.get("template_name", ""))
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back()

    @app.route("/templates/save", methods=["POST"])
    def save_template() -> Response:  # pyright: ignore[reportUnusedFunction]
        name = request.form.get("template_name", "")
        try:
            warning = workspace.save_template(name)
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back(error=warning, notice=f"Saved template '{name.strip()}'.")

    @app.route("/templates/delete", methods=["POST"])
    def delete_template() -> Response:  # pyright: ignore[reportUnusedFunction]
        name = request.form.get("template_name", "")
        warning = workspace.delete_template(name)
        return _back(error=warning, notice=f"Deleted template '{name}'.")

    @app.route("/templates/import", methods=["POST"])
    def import_templates() -> Response:  # pyright: ignore[reportUnusedFunction]
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return _back(error="Choose a template file to import.")
        try:
            warning = workspace.import_templates(upload.read())
        except LabelMakerError as exc:
            return _back(error=str(exc))
        return _back(error=warning, notice="Templates imported.")

    @app.route("/templates/export", methods=["GET"])
    def export_templates() -> Response:  # pyright: ignore[reportUnusedFunction]
        payload = BytesIO(workspace.export_templates().encode("utf-8"))
        return send_file(
            payload,
            mimetype="application/json",
            as_attachment=True,
            download_name="label_templates.json",
        )

    @app.route("/preview.png", methods=["GET"])
    def preview() -> Response:  # pyright: ignore[reportUnusedFunction]
        try:
            skip = _skip_value(request.args.get("skip"))
        except ValueError as exc:
            return _back(error=str(exc))
        try:
            png_bytes = workspace.preview_png(skip=skip)
        except LabelMakerError as exc:
            return Response(str(exc), status=503)
        return send_file(BytesIO(png_bytes), mimetype="image/png")

    @app.route("/export", methods=["POST"])
    def export_pdf() -> Response:  # pyright: ignore[reportUnusedFunction]
        if not workspace.labels_to_print():
            return _back(error="Select at least one record before exporting.")
        try:
            skip = _skip_value(request.form.get("skip"))
        except ValueError as exc:
            return _back(error=str(exc))
        rasterize = request.form.get("vector") is None
        download_name = workspace.export_filename(request.form.get("pdf_name"))

        tmp_file = NamedTemporaryFile(delete=False, suffix=".pdf")
        tmp_file.close()
        try:
            workspace.export_pdf(tmp_file.name, skip=skip, rasterize=rasterize)
        except LabelMakerError as exc:
            os.remove(tmp_file.name)
            return _back(error=str(exc))

        @after_this_request
        def cleanup(response: Response):  # pyright: ignore[reportUnusedFunction]
            try:
                os.remove(tmp_file.name)
            except OSError:
                pass
            return response

        return send_file(
            tmp_file.name,
            mimetype="application/pdf",
            as_attachment=True,
            download_name=download_name,
        )

    return app


def create_app_from_env() -> Flask:
    load_dotenv()
    config = AppConfig.from_env()
    configure_logging(config)
    workspace = Workspace(
        open_template_store(config),
        encoding=config.encoding,
        pdf_name=config.pdf_name,
    )
    workspace.start_sync()
    return create_app(workspace, config)


def run_web_app(
    workspace: Workspace,
    config: AppConfig,
    host: str = "127.0.0.1",
    port: int = 5000,
) -> None:
    workspace.start_sync()
    app = create_app(workspace, config)
    logger.info("Serving label maker UI on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=False, use_reloader=config.use_reloader)


def main() -> None:
    parser = argparse.ArgumentParser(description="Label maker web UI")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args()

    load_dotenv()
    config = AppConfig.from_env()
    configure_logging(config)
    workspace = Workspace(
        open_template_store(config),
        encoding=config.encoding,
        pdf_name=config.pdf_name,
    )
    try:
        run_web_app(workspace, config, host=args.host, port=args.port)
    finally:
        workspace.close()


if __name__ == "__main__":
    main()
