from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from faq_splitter.classifier import build_header_index, classify_rows, require_columns
from faq_splitter.config import SplitConfig
from faq_splitter.contracts import build_contract, build_run_summary
from faq_splitter.exporter import ExportResult, FolderChoice, export_documents, resolve_destination
from faq_splitter.materializer import materialize_categories
from faq_splitter.source import SourceTable, load_source


@dataclass
class RunResult:
    input_path: Path
    output_path: Path
    bucket_sizes: dict[str, int]
    produced: list[str]
    stats: Counter
    documents: ExportResult | None = None
    documents_dir: Path | None = None
    documents_cancelled: bool = False
    warnings: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.documents and self.documents.failed)

    @property
    def message(self) -> str:
        return summary_message(self)


def summary_message(result: RunResult) -> str:
    if not result.produced:
        return "Done. No category sheets were produced (no rows met the criteria)."
    sheets = len(result.produced)
    if result.documents_cancelled:
        return f"Done. Created or updated {sheets} category sheets. Document creation was cancelled."
    created = len(result.documents.created) if result.documents else 0
    message = f"Done. Created or updated {sheets} category sheets and {created} documents."
    if result.partial:
        message += f" {len(result.documents.failed)} documents failed."
    return message


def load_and_classify(source_path: Path, config: SplitConfig) -> tuple[SourceTable, dict[str, list[list[Any]]], Counter]:
    table = load_source(source_path, config.source_sheet)
    header_index = build_header_index(table.headers)
    require_columns(header_index, config.columns.required(), table.sheet_name)
    stats: Counter = Counter()
    buckets = classify_rows(table.rows, header_index, config, stats)
    return table, buckets, stats


def run_split(
    source_path: Path,
    config: SplitConfig,
    *,
    output_path: Path,
    doc_root: Path,
    choose_folder: Callable[[], FolderChoice] = FolderChoice,
) -> RunResult:
    """Classify the source sheet, write the category sheets, then the documents.

    ``choose_folder`` is only called when at least one sheet was produced. A
    cancelled choice skips the documents but keeps the saved sheets.
    """
    table, buckets, stats = load_and_classify(source_path, config)
    result = RunResult(
        input_path=source_path,
        output_path=output_path,
        bucket_sizes={name: len(rows) for name, rows in buckets.items()},
        produced=[],
        stats=stats,
        warnings=list(table.warnings),
    )

    result.produced = materialize_categories(
        table.workbook,
        buckets,
        table.headers,
        empty_policy=config.empty_category_policy,
        notes=result.notes,
        warnings=result.warnings,
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    table.workbook.save(output_path)
    result.notes.append(f"Workbook saved: {output_path}")

    if not result.produced:
        return result

    choice = choose_folder()
    if choice.cancelled:
        result.documents_cancelled = True
        result.notes.append("Document creation cancelled.")
        return result

    destination = resolve_destination(choice.folder_id, doc_root, result.warnings)
    result.documents_dir = destination
    result.documents = export_documents(
        table.workbook,
        result.produced,
        destination,
        prefix=config.document_prefix,
        doc_format=config.document_format,
    )
    result.warnings.extend(result.documents.warnings)
    result.notes.extend(result.documents.notes)
    return result


def build_split_summary(result: RunResult) -> dict[str, Any]:
    documents = result.documents
    status = "partial" if result.partial else "ok"
    summary = build_run_summary(
        command="split",
        input_path=result.input_path,
        status=status,
        output_path=result.output_path,
        documents_dir=result.documents_dir,
        warnings=result.warnings,
        metrics={
            **{key: int(value) for key, value in sorted(result.stats.items())},
            "sheets_produced": len(result.produced),
            "documents_created": len(documents.created) if documents else 0,
            "documents_failed": len(documents.failed) if documents else 0,
        },
    )
    summary["contract"] = build_contract("faq_splitter.split_summary")
    summary["message"] = result.message
    summary["categories"] = result.bucket_sizes
    summary["produced"] = list(result.produced)
    summary["documents"] = [str(path) for path in documents.created] if documents else []
    summary["documents_skipped"] = list(documents.skipped) if documents else []
    summary["documents_failed"] = dict(documents.failed) if documents else {}
    summary["documents_replaced"] = [str(path) for path in documents.replaced] if documents else []
    summary["documents_cancelled"] = result.documents_cancelled
    return summary


def preview_split(source_path: Path, config: SplitConfig) -> dict[str, Any]:
    table, buckets, stats = load_and_classify(source_path, config)
    summary = build_run_summary(
        command="classify",
        input_path=source_path,
        warnings=table.warnings,
        metrics={key: int(value) for key, value in sorted(stats.items())},
    )
    summary["contract"] = build_contract("faq_splitter.classify_preview")
    summary["sheet_name"] = table.sheet_name
    summary["categories"] = {name: len(rows) for name, rows in buckets.items()}
    summary["would_produce"] = [name for name, rows in buckets.items() if rows]
    return summary
