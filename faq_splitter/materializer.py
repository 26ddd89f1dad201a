from __future__ import annotations

from typing import Any

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from faq_splitter.classifier import text


def find_sheet(workbook, name: str):
    """Sheet titles are unique ignoring case, so lookups ignore case too."""
    wanted = name.lower()
    for ws in workbook.worksheets:
        if ws.title.lower() == wanted:
            return ws
    return None


def retitle(ws, name: str) -> None:
    # openpyxl appends a counter when the new title matches any sheet ignoring
    # case, the sheet itself included, so step through a free title first
    if ws.title == name:
        return
    taken = {title.lower() for title in ws.parent.sheetnames}
    counter = 0
    while f"tmp{counter}" in taken:
        counter += 1
    ws.title = f"tmp{counter}"
    ws.title = name


def worksheet_value(value: Any) -> tuple[Any, bool]:
    """Return the value a cell can hold and whether control characters were removed."""
    if not isinstance(value, str):
        return value, False
    cleaned = ILLEGAL_CHARACTERS_RE.sub("", value)
    return cleaned, cleaned != value


def _infer_col_widths(rows: list[list[Any]], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    n_cols = max(len(row) for row in rows[: sample + 1])
    widths = [min_width] * n_cols
    for row in rows[: sample + 1]:
        for i, value in enumerate(row):
            longest_line = max((len(line) for line in text(value).splitlines()), default=0)
            widths[i] = max(widths[i], min(max_width, longest_line + 2))
    return widths


def _style_sheet(ws, col_widths: list[int]) -> None:
    """Bold header, frozen first row, and column widths sized to the content."""
    font = Font(bold=True)
    for cell in ws[1]:
        cell.font = font
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def clear_sheet(ws) -> None:
    if ws.max_row:
        ws.delete_rows(1, ws.max_row)
    ws.freeze_panes = None


def read_sheet_rows(ws) -> list[list[Any]]:
    rows = [["" if value is None else value for value in row] for row in ws.iter_rows(values_only=True)]
    while rows and all(value == "" for value in rows[-1]):
        rows.pop()
    return rows


def data_row_count(ws) -> int:
    return max(0, len(read_sheet_rows(ws)) - 1)


def write_category_sheet(
    workbook,
    name: str,
    headers: list[Any],
    rows: list[list[Any]],
    notes: list[str],
    warnings: list[str] | None = None,
) -> None:
    ws = find_sheet(workbook, name)
    if ws is not None:
        clear_sheet(ws)
        if ws.title != name:
            notes.append(f"Sheet '{ws.title}' renamed to '{name}'.")
            retitle(ws, name)
        notes.append(f"Sheet '{name}' cleared.")
    else:
        ws = workbook.create_sheet(name)
        notes.append(f"Sheet '{name}' created.")

    cleaned_cells = 0
    # explicit coordinates: a cleared sheet still reports its old max_row to append()
    for row_idx, row in enumerate([headers, *rows], start=1):
        for col_idx, value in enumerate(row, start=1):
            value, cleaned = worksheet_value(value)
            cleaned_cells += cleaned
            ws.cell(row=row_idx, column=col_idx, value=None if value == "" else value)
    if cleaned_cells and warnings is not None:
        warnings.append(f"Removed control characters from {cleaned_cells} cells in sheet '{name}'.")
    _style_sheet(ws, _infer_col_widths([list(headers), *rows]))


def materialize_categories(
    workbook,
    buckets: dict[str, list[list[Any]]],
    headers: list[Any],
    *,
    empty_policy: str = "clear",
    notes: list[str] | None = None,
    warnings: list[str] | None = None,
) -> list[str]:
    """Write one sheet per non-empty bucket and return the produced sheet names.

    Buckets without rows never create a sheet. A sheet left over from an
    earlier run for such a bucket is cleared, or removed when ``empty_policy``
    is ``"delete"``. Existing sheets are matched ignoring case and take the
    category's exact name.
    """
    if notes is None:
        notes = []
    produced: list[str] = []
    for name, rows in buckets.items():
        if rows:
            write_category_sheet(workbook, name, headers, rows, notes, warnings)
            produced.append(name)
            continue
        leftover = find_sheet(workbook, name)
        if leftover is None:
            continue
        if empty_policy == "delete":
            workbook.remove(leftover)
            notes.append(f"Sheet '{leftover.title}' deleted because no rows matched.")
        else:
            clear_sheet(leftover)
            retitle(leftover, name)
            notes.append(f"Sheet '{name}' cleared because no rows matched.")
    return produced
