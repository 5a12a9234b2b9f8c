#!/usr/bin/env python3
"""Generate a sheet of library labels from an inventory export."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from dotenv import load_dotenv

from app_config import AppConfig, configure_logging
from domain_types import FIELD_KEYS
from errors import LabelMakerError
from label_settings import template_choices
from label_templates.label_types import CUSTOM_TEXT_FIELD
from label_templates.types import BarcodeFormat, LabelMode
from record_import import ENCODINGS
from selection import DEWEY_CLASSES
from template_store import open_template_store
from workspace import Workspace

logger = logging.getLogger(__name__)


def _parse_style_options(option_pairs: Sequence[str]) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for pair in option_pairs:
        if "=" not in pair:
            raise SystemExit(
                f"Invalid --style '{pair}'. Expected format NAME=VALUE."
            )
        key, value = pair.split("=", 1)
        key = key.strip().lower().replace("-", "_")
        if not key:
            raise SystemExit("Style option name cannot be empty.")
        parsed[key] = value.strip()
    return parsed


def build_parser(config: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inventory export -> printable barcode or spine label sheet (PDF)"
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="CSV/TSV/TXT or XLSX/XLS export to read (omit with --demo).",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use the built-in demo records instead of an input file.",
    )
    parser.add_argument("-o", "--output", help="Output PDF path.")
    parser.add_argument(
        "-e", "--encoding",
        default=config.encoding,
        help=(
            "Text encoding of delimited files "
            f"(default: {config.encoding}; common: {', '.join(ENCODINGS)})."
        ),
    )
    parser.add_argument(
        "-t", "--template",
        help="Built-in or saved template to apply (default: system4).",
    )
    parser.add_argument(
        "-m", "--mode",
        choices=[mode.value for mode in LabelMode],
        help="Label mode; resets alignment and font size to the mode defaults.",
    )
    parser.add_argument(
        "--fields",
        help=(
            "Comma-separated label fields, up to three of: "
            f"{', '.join(FIELD_KEYS + (CUSTOM_TEXT_FIELD,))}."
        ),
    )
    parser.add_argument(
        "--barcode-format",
        choices=[fmt.value for fmt in BarcodeFormat],
    )
    parser.add_argument(
        "--style",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help=(
            "Set a style value (repeatable). For example: "
            "--style font_size=9 --style show_spine_barcode=true"
        ),
    )

    select = parser.add_argument_group("selection (default: every record)")
    select.add_argument(
        "-b", "--barcode",
        action="append",
        default=[],
        help="Select one barcode (repeatable).",
    )
    select.add_argument(
        "--range",
        nargs=2,
        metavar=("START", "END"),
        help="Select barcodes between START and END inclusive.",
    )
    select.add_argument("--location", help="Select every record at this location.")
    select.add_argument(
        "--dewey",
        choices=sorted(DEWEY_CLASSES),
        help="Select every record whose call number starts with this class.",
    )
    select.add_argument("--prefix", help="Select call numbers starting with this prefix.")
    select.add_argument("--search", help="Select every record matching this search term.")

    parser.add_argument(
        "-s", "--skip",
        type=int,
        default=0,
        help="Number of labels to skip at start of the sheet.",
    )
    parser.add_argument(
        "-d", "--draw-outline",
        action="store_true",
        help="Draw a dashed outline around every label slot.",
    )
    parser.add_argument(
        "--vector",
        action="store_true",
        help="Write a vector PDF instead of a rasterized page.",
    )

    library = parser.add_argument_group("template library")
    library.add_argument("--list-templates", action="store_true")
    library.add_argument("--save-template", metavar="NAME")
    library.add_argument("--delete-template", metavar="NAME")
    library.add_argument("--import-templates", metavar="FILE")
    library.add_argument("--export-templates", metavar="FILE")

    parser.add_argument(
        "--web",
        action="store_true",
        help="Start the local web UI instead of writing a PDF.",
    )
    parser.add_argument("--web-host", default="127.0.0.1")
    parser.add_argument("--web-port", type=int, default=5000)
    return parser


def _apply_settings(workspace: Workspace, args: argparse.Namespace) -> None:
    if args.template:
        workspace.load_template(args.template)
    if args.mode:
        workspace.set_label_mode(args.mode)

    changes: Dict[str, str] = {}
    if args.fields:
        changes["label_fields"] = args.fields
    if args.barcode_format:
        changes["barcode_format"] = args.barcode_format
    changes.update(_parse_style_options(args.style))
    if changes:
        workspace.update_style(**changes)


def _apply_selection(workspace: Workspace, args: argparse.Namespace) -> None:
    workspace.clear_selection()
    explicit = False
    if args.barcode:
        workspace.toggle(args.barcode, True)
        explicit = True
    if args.range:
        count = workspace.select_range(*args.range)
        logger.info("Range %s..%s matched %d records", args.range[0], args.range[1], count)
        explicit = True
    if args.location:
        workspace.select_location(args.location)
        explicit = True
    if args.dewey:
        workspace.select_call_number_prefix(args.dewey)
        explicit = True
    if args.prefix:
        workspace.select_call_number_prefix(args.prefix)
        explicit = True
    if args.search:
        workspace.set_search(args.search)
        workspace.select_filtered(True)
        explicit = True
    if not explicit:
        workspace.toggle((r.barcode for r in workspace.records), True)


def _run_library_commands(workspace: Workspace, args: argparse.Namespace) -> bool:
    """Handle template-library options; returns True when nothing else should run."""

    handled = False
    if args.import_templates:
        text = Path(args.import_templates).read_text(encoding="utf-8")
        _warn(workspace.import_templates(text))
        handled = True
    if args.save_template:
        _warn(workspace.save_template(args.save_template))
        print(f"Saved template '{args.save_template.strip()}'")
        handled = True
    if args.delete_template:
        _warn(workspace.delete_template(args.delete_template))
        print(f"Deleted template '{args.delete_template}'")
        handled = True
    if args.export_templates:
        Path(args.export_templates).write_text(workspace.export_templates(), encoding="utf-8")
        print(f"Wrote {args.export_templates}")
        handled = True
    if args.list_templates:
        for key, name in template_choices(workspace.templates):
            print(f"{key}\t{name}")
        handled = True
    return handled


def _warn(message: Optional[str]) -> None:
    if message:
        print(f"Warning: {message}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for generating a label sheet PDF."""

    load_dotenv()
    config = AppConfig.from_env()
    configure_logging(config)

    parser = build_parser(config)
    args = parser.parse_args(argv)
    if args.skip < 0:
        parser.error("--skip must not be negative")

    store = open_template_store(config)
    workspace = Workspace(store, encoding=config.encoding, pdf_name=config.pdf_name)
    try:
        if args.web:
            from label_maker_web import run_web_app

            run_web_app(workspace, config, host=args.web_host, port=args.web_port)
            return 0

        if args.demo:
            workspace.load_demo(select_all=True)
        elif args.input:
            result = workspace.import_file(
                args.input,
                filename=Path(args.input).name,
                encoding=args.encoding,
            )
            print(f"Imported {result.imported} records ({result.dropped} rows without a barcode skipped)")

        _apply_settings(workspace, args)
        if _run_library_commands(workspace, args):
            return 0

        if not args.input and not args.demo:
            parser.error("an input file or --demo is required")

        _apply_selection(workspace, args)
        labels = workspace.labels_to_print()
        if not labels:
            print("No labels matched the selection; no output generated.")
            return 1
        overflow = workspace.overflow(args.skip)
        if overflow:
            print(
                f"Warning: {overflow} selected labels do not fit on one sheet "
                "and were left out.",
                file=sys.stderr,
            )

        output = args.output or workspace.export_filename()
        geometry = workspace.settings.geometry
        style = workspace.settings.style
        message = workspace.exporter.export(
            output,
            geometry,
            style,
            labels,
            skip=args.skip,
            rasterize=not args.vector,
            outline=args.draw_outline,
        )
        print(message)
        return 0
    except LabelMakerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        workspace.close()


if __name__ == "__main__":
    raise SystemExit(main())
