"""
Source table loading.

Public API:
    table = load_source(Path("faq.xlsx"), "Principal")
    table.rows       -> header row followed by data rows, empty cells as ""
    table.workbook   -> openpyxl Workbook the category sheets are written into

Workbooks (.xlsx/.xlsm) are opened twice: once editable, so formulas survive
the save, and once data-only to read the cached cell values. Delimited text
(.csv/.tsv/.txt) is decoded with chardet's guess, parsed with pandas, and
copied into a fresh workbook under the source sheet name.
"""

from __future__ import annotations

import csv
import io
import re
import zipfile
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import chardet
import openpyxl
import pandas as pd
import requests
from openpyxl.utils.exceptions import InvalidFileException

from faq_splitter.materializer import find_sheet, worksheet_value

TEXT_FORMATS = {".csv", ".tsv", ".txt"}
WORKBOOK_FORMATS = {".xlsx", ".xlsm"}
ALL_FORMATS = TEXT_FORMATS | WORKBOOK_FORMATS
DELIMITER_CANDIDATES = [",", ";", "\t", "|"]

MAX_REMOTE_FILE_MB = 100
MAX_REMOTE_FILE_BYTES = MAX_REMOTE_FILE_MB * 1024 * 1024
CONTENT_TYPE_EXTENSIONS = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel.sheet.macroenabled.12": ".xlsm",
    "text/csv": ".csv",
    "text/tab-separated-values": ".tsv",
}


class SourceError(ValueError):
    pass


@dataclass
class SourceTable:
    workbook: Any
    sheet_name: str
    rows: list[list[Any]]
    detected_format: str
    encoding: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def headers(self) -> list[Any]:
        return self.rows[0]


def _cell(value: Any) -> Any:
    return "" if value is None else value


def clean_rows(rows: list[list[Any]]) -> tuple[list[list[Any]], int]:
    cleaned_rows: list[list[Any]] = []
    cleaned_cells = 0
    for row in rows:
        cleaned_row = []
        for value in row:
            value, cleaned = worksheet_value(value)
            cleaned_cells += cleaned
            cleaned_row.append(value)
        cleaned_rows.append(cleaned_row)
    return cleaned_rows, cleaned_cells


def _trim_trailing_empty_rows(rows: list[list[Any]]) -> list[list[Any]]:
    end = len(rows)
    while end and all(value == "" for value in rows[end - 1]):
        end -= 1
    return rows[:end]


# ── Delimited text ───────────────────────────────────────────────────────────

def detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    return result.get("encoding") or "utf-8"


def decode_text(raw: bytes, preferred_encoding: str) -> str:
    """Decode line by line: UTF-8, then the detected encoding, then latin-1."""
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for encoding in ("utf-8", preferred_encoding, "latin-1"):
            try:
                decoded = raw_line.decode(encoding)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    text = "\n".join(decoded_lines)
    return text[1:] if text.startswith("\ufeff") else text


def detect_delimiter(text: str) -> str:
    sample_lines = [line for line in text.splitlines() if line.strip()][:25]
    sample = "\n".join(sample_lines)
    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters="".join(DELIMITER_CANDIDATES)).delimiter
        except csv.Error:
            pass
    counts = Counter({delimiter: sample.count(delimiter) for delimiter in DELIMITER_CANDIDATES})
    best, hits = counts.most_common(1)[0]
    return best if hits else ","


def read_delimited_rows(path: Path) -> tuple[list[list[Any]], str, str]:
    raw = path.read_bytes()
    encoding = detect_encoding(raw)
    text = decode_text(raw, encoding)
    delimiter = "\t" if path.suffix.lower() == ".tsv" else detect_delimiter(text)
    if not text.strip():
        return [], encoding, delimiter
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
        )
    except pd.errors.ParserError as exc:
        raise SourceError(f"Could not parse {path.name}: {exc}") from exc
    frame = frame.fillna("")
    rows = [[_cell(value) for value in record] for record in frame.itertuples(index=False, name=None)]
    return rows, encoding, delimiter


# ── Workbooks ────────────────────────────────────────────────────────────────

def open_workbook(path: Path):
    try:
        return openpyxl.load_workbook(path, keep_vba=path.suffix.lower() == ".xlsm")
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError) as exc:
        raise SourceError(f"Could not read workbook {path.name}: {exc}") from exc


def read_sheet_values(path: Path, sheet_name: str) -> list[list[Any]]:
    values_book = openpyxl.load_workbook(path, data_only=True, read_only=True)
    try:
        sheet = values_book[sheet_name]
        rows = [[_cell(value) for value in row] for row in sheet.iter_rows(values_only=True)]
    finally:
        values_book.close()
    return _trim_trailing_empty_rows(rows)


def load_source(path: Path, sheet_name: str) -> SourceTable:
    suffix = path.suffix.lower()
    if suffix not in ALL_FORMATS:
        raise SourceError(
            f"Unsupported file type '{suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(ALL_FORMATS))}"
        )
    if not path.exists():
        raise SourceError(f"File not found: {path}")

    if suffix in WORKBOOK_FORMATS:
        workbook = open_workbook(path)
        source_sheet = find_sheet(workbook, sheet_name)
        if source_sheet is None:
            raise SourceError(
                f"Sheet '{sheet_name}' was not found. Available sheets: {', '.join(workbook.sheetnames)}"
            )
        table = SourceTable(
            workbook=workbook,
            sheet_name=source_sheet.title,
            rows=read_sheet_values(path, source_sheet.title),
            detected_format=suffix.lstrip("."),
        )
    else:
        rows, encoding, delimiter = read_delimited_rows(path)
        rows, cleaned_cells = clean_rows(rows)
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = sheet_name
        for row in rows:
            sheet.append(row)
        table = SourceTable(
            workbook=workbook,
            sheet_name=sheet_name,
            rows=rows,
            detected_format=suffix.lstrip("."),
            encoding=encoding,
        )
        if encoding.upper().replace("-", "") not in ("UTF8", "ASCII"):
            table.warnings.append(f"Decoded {path.name} as {encoding}.")
        if delimiter != "," and suffix == ".csv":
            table.warnings.append(f"Detected '{delimiter}' as the delimiter.")
        if cleaned_cells:
            table.warnings.append(f"Removed control characters from {cleaned_cells} cells in {path.name}.")

    if len(table.rows) < 2:
        raise SourceError(f"Sheet '{sheet_name}' is empty or only has headers.")
    return table


# ── Public links ─────────────────────────────────────────────────────────────

def normalize_public_url(raw_url: str) -> str:
    parsed = urlparse(raw_url.strip())
    if not parsed.scheme:
        raise SourceError("URL must start with http:// or https://")

    host = parsed.netloc.lower()
    path = parsed.path
    query = parse_qs(parsed.query, keep_blank_values=True)

    if host in {"drive.google.com", "docs.google.com"}:
        sheet_match = re.search(r"/spreadsheets/d/([^/]+)", path)
        if sheet_match:
            return f"https://docs.google.com/spreadsheets/d/{sheet_match.group(1)}/export?format=xlsx"
        match = re.search(r"/file/d/([^/]+)", path)
        if match:
            return f"https://drive.google.com/uc?export=download&id={match.group(1)}"
        if "id" in query:
            return f"https://drive.google.com/uc?export=download&id={query['id'][0]}"

    if "dropbox.com" in host:
        query["dl"] = ["1"]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    if host.endswith("1drv.ms") or "onedrive.live.com" in host:
        query["download"] = ["1"]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    return raw_url.strip()


def is_remote(value: str) -> bool:
    return urlparse(value).scheme in {"http", "https"}


def remote_filename(raw_url: str, response: requests.Response) -> str:
    content_disposition = response.headers.get("content-disposition", "")
    match = re.search(r"filename\*=UTF-8''([^;]+)|filename=\"([^\"]+)\"|filename=([^;]+)", content_disposition, re.I)
    if match:
        for group in match.groups():
            if group:
                return Path(group.strip().strip('"')).name
    redirected = response.url or raw_url
    return Path(urlparse(redirected).path).name or "downloaded_source"


def infer_extension(raw_url: str, response: requests.Response, filename: str, content: bytes) -> str:
    ext = Path(filename).suffix.lower()
    if ext in ALL_FORMATS:
        return ext
    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[content_type]
    if "/spreadsheets/" in urlparse(raw_url).path or content.startswith(b"PK"):
        return ".xlsx"
    return ".csv"


def fetch_remote_source(raw_url: str, folder: Path) -> Path:
    url = normalize_public_url(raw_url)
    try:
        response = requests.get(url, timeout=60, allow_redirects=True, stream=True)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SourceError(f"Could not download {raw_url}: {exc}") from exc
    try:
        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > MAX_REMOTE_FILE_BYTES:
            raise SourceError(f"Remote file is larger than {MAX_REMOTE_FILE_MB} MB.")

        chunks: list[bytes] = []
        downloaded = 0
        for chunk in response.iter_content(chunk_size=1024 * 1024):
            if not chunk:
                continue
            downloaded += len(chunk)
            if downloaded > MAX_REMOTE_FILE_BYTES:
                raise SourceError(f"Remote file is larger than {MAX_REMOTE_FILE_MB} MB.")
            chunks.append(chunk)
        content = b"".join(chunks)
        filename = remote_filename(raw_url, response)
    finally:
        response.close()

    ext = infer_extension(raw_url, response, filename, content)
    stem = Path(filename).stem or "downloaded_source"
    folder.mkdir(parents=True, exist_ok=True)
    target = folder / f"{stem}{ext}"
    target.write_bytes(content)
    return target
