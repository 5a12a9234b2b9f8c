"""Read inventory exports and normalize them into ``Record`` objects."""

from __future__ import annotations

import csv
import logging
import math
import secrets
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import IO, Any, Iterable, Mapping, Sequence, Union

import pandas as pd

from domain_types import Record
from errors import RecordImportError, UnsupportedFileError

__all__ = [
    "DEFAULT_ENCODING",
    "ENCODINGS",
    "FIELD_ALIASES",
    "ImportResult",
    "demo_records",
    "find_column",
    "import_file",
    "normalize_rows",
    "read_rows",
    "sniff_delimiter",
]

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "Windows-1254"
ENCODINGS = ("Windows-1254", "UTF-8", "ISO-8859-9")

DELIMITED_SUFFIXES = {".csv", ".tsv", ".txt"}
SPREADSHEET_SUFFIXES = {".xlsx", ".xls"}
DELIMITERS = ",;\t|"
SNIFF_SAMPLE = 64 * 1024

# Accepted column names per canonical field, tried in order.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "barcode": ("barkod", "barcode"),
    "title": ("eser adı", "title", "başlık", "kitap adı"),
    "author": ("yazar", "author"),
    "call_number": ("yer numarası", "itemcallnumber", "callnumber", "yer no"),
    "isbn": ("isbn/issn", "isbn", "issn"),
    "branch": ("ana kütüphane", "homebranch", "kütüphane"),
    "location": ("raf konumu", "location", "konum"),
    "note": ("raf kontrol notu", "note"),
    "item_type": ("materyal türü", "itemtype", "tür"),
}

Source = Union[str, Path, IO[bytes]]


@dataclass(frozen=True)
class ImportResult:
    records: list[Record]
    dropped: int = 0

    @property
    def imported(self) -> int:
        return len(self.records)


def find_column(columns: Iterable[str], aliases: Sequence[str]) -> str | None:
    """Return the first column matching ``aliases`` (alias order wins)."""

    keys = list(columns)
    for alias in aliases:
        wanted = alias.lower()
        for key in keys:
            if key.strip().lower() == wanted:
                return key
    return None


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def _new_id(index: int) -> str:
    return f"row-{index}-{secrets.token_hex(5)}"


def normalize_rows(rows: Iterable[Mapping[Any, Any]]) -> ImportResult:
    """Map heterogeneous rows onto ``Record`` objects.

    Rows without a barcode column or with an empty barcode are dropped. An
    import with no surviving rows raises ``RecordImportError``.
    """

    records: list[Record] = []
    dropped = 0
    for index, raw in enumerate(rows):
        row = {str(key).strip(): value for key, value in raw.items()}
        barcode_key = find_column(row, FIELD_ALIASES["barcode"])
        barcode = _as_str(row[barcode_key]).strip() if barcode_key else ""
        if not barcode:
            dropped += 1
            continue

        values: dict[str, str] = {}
        for field_name, aliases in FIELD_ALIASES.items():
            if field_name == "barcode":
                continue
            key = find_column(row, aliases)
            values[field_name] = _as_str(row[key]) if key else ""

        records.append(Record(id=_new_id(index), barcode=barcode, **values))

    if not records:
        raise RecordImportError(
            'No "barcode" column could be found or read. '
            "Check the file encoding and try again."
        )
    if dropped:
        logger.info("Dropped %d rows without a barcode", dropped)
    return ImportResult(records=records, dropped=dropped)


def sniff_delimiter(text: str) -> str:
    """Pick the column delimiter from a sample, defaulting to a comma.

    Only punctuation delimiters are considered so a single-column file is
    never split on a letter of its header.
    """

    try:
        dialect = csv.Sniffer().sniff(text[:SNIFF_SAMPLE], delimiters=DELIMITERS)
    except csv.Error:
        return ","
    return dialect.delimiter


def _read_text(source: Source) -> bytes:
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    return source.read()


def read_rows(
    source: Source,
    filename: str | None = None,
    encoding: str = DEFAULT_ENCODING,
) -> list[dict[str, Any]]:
    """Parse a delimited-text or spreadsheet file into raw row mappings."""

    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    suffix = Path(name).suffix.lower()

    if suffix in DELIMITED_SUFFIXES:
        try:
            text = _read_text(source).decode(encoding).lstrip("\ufeff")
        except (UnicodeDecodeError, LookupError) as exc:
            raise RecordImportError(
                f"Could not decode '{name}' as {encoding}: {exc}"
            ) from exc
        try:
            frame = pd.read_csv(
                StringIO(text),
                dtype=str,
                sep=sniff_delimiter(text),
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise RecordImportError(f"Could not parse '{name}': {exc}") from exc
    elif suffix in SPREADSHEET_SUFFIXES:
        try:
            frame = pd.read_excel(
                source,
                sheet_name=0,
                dtype=str,
                keep_default_na=False,
            )
        except ValueError as exc:
            raise RecordImportError(f"Could not read '{name}': {exc}") from exc
    else:
        raise UnsupportedFileError(
            "Unsupported file type. Upload a .csv or .xlsx file."
        )

    return frame.to_dict(orient="records")


def import_file(
    source: Source,
    filename: str | None = None,
    encoding: str = DEFAULT_ENCODING,
) -> ImportResult:
    """Read and normalize one import source."""

    rows = read_rows(source, filename=filename, encoding=encoding)
    result = normalize_rows(rows)
    logger.info(
        "Imported %d records from %s (%d dropped)",
        result.imported,
        filename or source,
        result.dropped,
    )
    return result


_DEMO_ROWS = (
    ("111000000001", "Suç ve Ceza", "Dostoyevski, Fyodor", "891.73 DOS 2020", "9789750738900", "Yetişkin Bölümü"),
    ("111000000002", "Sefiller", "Hugo, Victor", "843.8 HUG 2019", "9789750739901", "Yetişkin Bölümü"),
    ("111000000003", "Nutuk", "Atatürk, Mustafa Kemal", "956.1 ATA 2018", "9789750820038", "Atatürk Bölümü"),
    ("111000000004", "Küçük Prens", "Saint-Exupéry, Antoine de", "843.912 SAI 2021", "9789750723414", "Çocuk Bölümü"),
    ("111000000005", "Simyacı", "Coelho, Paulo", "869.3 COE 2017", "9789750726439", "Yetişkin Bölümü"),
    ("111000000006", "1984", "Orwell, George", "823.912 ORW 2016", "9789750718533", "Yetişkin Bölümü"),
    ("111000000007", "Harry Potter ve Felsefe Taşı", "Rowling, J.K.", "823.914 ROW 2015", "9789750802942", "Gençlik Bölümü"),
    ("111000000008", "Kürk Mantolu Madonna", "Ali, Sabahattin", "813.42 ALI 2022", "9789750806636", "Yetişkin Bölümü"),
    ("111000000009", "Beyaz Diş", "London, Jack", "813.52 LON 2014", "9789754587404", "Çocuk Bölümü"),
    ("111000000010", "Fareler ve İnsanlar", "Steinbeck, John", "813.52 STE 2013", "9789755705859", "Yetişkin Bölümü"),
)

DEMO_NAME = "Demo data set"
DEMO_INITIAL_SELECTION = 5


def demo_records() -> list[Record]:
    """Return the built-in demo collection."""

    return [
        Record(
            id=f"demo-{index}",
            barcode=barcode,
            title=title,
            author=author,
            call_number=call_number,
            isbn=isbn,
            location=location,
        )
        for index, (barcode, title, author, call_number, isbn, location)
        in enumerate(_DEMO_ROWS, start=1)
    ]
