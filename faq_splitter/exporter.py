"""
Per-category report documents.

Each produced category sheet becomes one document named
``<prefix><category>``: the category as a top-level heading followed by a
single table holding the sheet's header row (bold) and data rows. HTML is
rendered with pandas; PDF pages are drawn with matplotlib (``pdf`` extra).
"""

from __future__ import annotations

import html
import importlib.util
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pandas as pd

from faq_splitter.classifier import text
from faq_splitter.materializer import find_sheet, read_sheet_rows

FOLDER_PROMPT = (
    "Folder for the report documents (leave blank for the default location, "
    "Ctrl-D to skip documents): "
)
PDF_ROWS_PER_PAGE = 18
PDF_WRAP_WIDTH = 38
DOCUMENT_SUFFIXES = {"html": ".html", "pdf": ".pdf"}

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="es">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: Arial, Helvetica, sans-serif; margin: 2em; }}
table {{ border-collapse: collapse; width: 100%; }}
th, td {{ border: 1px solid #999; padding: 4px 8px; text-align: left; vertical-align: top; white-space: pre-wrap; }}
thead th {{ font-weight: bold; background: #f1f5f9; }}
</style>
</head>
<body>
<h1>{heading}</h1>
<p></p>
{table}
</body>
</html>
"""


@dataclass
class FolderChoice:
    cancelled: bool = False
    folder_id: str | None = None


@dataclass
class ExportResult:
    created: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    replaced: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


def prompt_folder_choice(ask: Callable[[str], str] = input) -> FolderChoice:
    try:
        answer = ask(FOLDER_PROMPT)
    except (EOFError, KeyboardInterrupt):
        return FolderChoice(cancelled=True)
    return FolderChoice(folder_id=answer.strip() or None)


def resolve_destination(folder_id: str | None, default_root: Path, warnings: list[str]) -> Path:
    if not folder_id or not folder_id.strip():
        return default_root
    candidate = Path(folder_id.strip()).expanduser()
    if candidate.is_dir():
        return candidate
    warnings.append(
        f"Could not find or access folder '{folder_id.strip()}'. Documents will be saved in {default_root}."
    )
    return default_root


def confined_folder(root: Path, folder_name: str, warnings: list[str]) -> Path:
    """Subfolder of ``root`` named by the user; anything resolving outside it gives ``root``."""
    if not folder_name.strip():
        return root
    candidate = (root / folder_name.strip()).resolve()
    if candidate.is_relative_to(root.resolve()):
        return candidate
    warnings.append(f"Folder '{folder_name.strip()}' is outside the documents area. Documents will be saved in {root}.")
    return root


def document_name(prefix: str, category: str) -> str:
    return f"{prefix}{category}"


def _frame(rows: list[list[Any]]) -> pd.DataFrame:
    headers = [text(value) for value in rows[0]]
    width = len(headers)
    body = [[text(value) for value in row[:width]] + [""] * max(0, width - len(row)) for row in rows[1:]]
    return pd.DataFrame(body, columns=headers)


def render_html_document(title: str, rows: list[list[Any]]) -> str:
    table = _frame(rows).to_html(index=False, escape=True, border=0)
    return HTML_TEMPLATE.format(title=html.escape(title), heading=html.escape(title), table=table)


def require_pdf_support() -> None:
    if importlib.util.find_spec("matplotlib") is None:
        raise ImportError("PDF documents need matplotlib. Install it with: pip install 'faq-splitter[pdf]'")


def _wrap(value: Any) -> str:
    return textwrap.fill(text(value), width=PDF_WRAP_WIDTH) if text(value) else ""


def write_pdf_document(path: Path, title: str, rows: list[list[Any]]) -> None:
    from matplotlib.backends.backend_pdf import PdfPages
    from matplotlib.figure import Figure

    headers = [_wrap(value) for value in rows[0]]
    body = [[_wrap(value) for value in row[: len(headers)]] + [""] * max(0, len(headers) - len(row)) for row in rows[1:]]
    pages = [body[start : start + PDF_ROWS_PER_PAGE] for start in range(0, len(body), PDF_ROWS_PER_PAGE)] or [[]]

    with PdfPages(path) as pdf:
        for page_number, page_rows in enumerate(pages):
            fig = Figure(figsize=(11.0, 8.5), dpi=120)
            fig.patch.set_facecolor("white")
            ax = fig.add_subplot(111)
            ax.axis("off")
            if page_number == 0:
                ax.set_title(title, loc="left", fontsize=16, fontweight="bold", pad=12)
            table = ax.table(cellText=page_rows or [[""] * len(headers)], colLabels=headers, cellLoc="left", loc="upper left")
            table.auto_set_font_size(False)
            table.set_fontsize(6)
            for (row_idx, _col), cell in table.get_celld().items():
                if row_idx == 0:
                    cell.set_text_props(weight="bold")
                    cell.set_facecolor("#f1f5f9")
            pdf.savefig(fig)


def write_document(path: Path, title: str, rows: list[list[Any]], doc_format: str) -> None:
    if doc_format == "pdf":
        write_pdf_document(path, title, rows)
    else:
        path.write_text(render_html_document(title, rows), encoding="utf-8")


def export_documents(
    workbook,
    sheet_names: list[str],
    destination: Path,
    *,
    prefix: str = "Reporte - ",
    doc_format: str = "html",
) -> ExportResult:
    result = ExportResult()
    if doc_format == "pdf":
        require_pdf_support()
    suffix = DOCUMENT_SUFFIXES[doc_format]
    destination.mkdir(parents=True, exist_ok=True)

    for name in sheet_names:
        ws = find_sheet(workbook, name)
        rows = read_sheet_rows(ws) if ws is not None else []
        if len(rows) <= 1:
            result.skipped.append(name)
            result.notes.append(f"Skipping the document for sheet '{name}' because it is empty or missing.")
            continue

        doc_name = document_name(prefix, name)
        path = destination / f"{doc_name}{suffix}"
        existed = path.exists()
        try:
            write_document(path, name, rows, doc_format)
        except Exception as exc:
            result.failed[name] = str(exc)
            result.warnings.append(f"Could not create the document for sheet '{name}': {exc}")
            continue
        result.created.append(path)
        if existed:
            result.replaced.append(path)
            result.warnings.append(f"Document '{doc_name}' already existed in {destination} and was replaced.")
        else:
            result.notes.append(f"Document '{doc_name}' created in {destination}.")
    return result
