"""Runtime configuration read from the environment (and ``.env``)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from record_import import DEFAULT_ENCODING

DEFAULT_TEMPLATES_FILE = Path("~/.label_maker/templates.json")
DEFAULT_POLL_SECONDS = 15.0
DEFAULT_PDF_NAME = "etiketler"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppConfig:
    templates_file: Path = DEFAULT_TEMPLATES_FILE
    remote_url: str = ""
    remote_token: str = ""
    owner: str = ""
    poll_seconds: float = DEFAULT_POLL_SECONDS
    encoding: str = DEFAULT_ENCODING
    pdf_name: str = DEFAULT_PDF_NAME
    log_level: str = "INFO"
    secret_key: str = "label-maker-ui"
    use_reloader: bool = False

    @property
    def remote_enabled(self) -> bool:
        """The remote store needs a URL, a token and an owner."""

        return bool(self.remote_url and self.remote_token and self.owner)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        env = os.environ if environ is None else environ

        poll_raw = env.get("LABEL_MAKER_POLL_SECONDS", "")
        try:
            poll_seconds = float(poll_raw) if poll_raw else DEFAULT_POLL_SECONDS
        except ValueError:
            raise SystemExit(
                f"LABEL_MAKER_POLL_SECONDS must be a number (got '{poll_raw}')."
            ) from None

        return cls(
            templates_file=Path(
                env.get("LABEL_MAKER_TEMPLATES_FILE") or DEFAULT_TEMPLATES_FILE
            ).expanduser(),
            remote_url=(env.get("LABEL_MAKER_REMOTE_URL") or "").rstrip("/"),
            remote_token=env.get("LABEL_MAKER_REMOTE_TOKEN") or "",
            owner=env.get("LABEL_MAKER_OWNER") or "",
            poll_seconds=max(poll_seconds, 1.0),
            encoding=env.get("LABEL_MAKER_ENCODING") or DEFAULT_ENCODING,
            pdf_name=env.get("LABEL_MAKER_PDF_NAME") or DEFAULT_PDF_NAME,
            log_level=(env.get("LABEL_MAKER_LOG_LEVEL") or "INFO").upper(),
            secret_key=env.get("FLASK_SECRET_KEY") or "label-maker-ui",
            use_reloader=(env.get("USE_RELOADER") or "").lower() in _TRUTHY,
        )


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
