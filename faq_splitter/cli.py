from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from faq_splitter import __version__ as TOOL_VERSION
from faq_splitter.classifier import MissingColumnError
from faq_splitter.config import (
    DOCUMENT_FORMATS,
    EMPTY_CATEGORY_POLICIES,
    ConfigError,
    SplitConfig,
    load_config,
    starter_config_text,
)
from faq_splitter.exporter import FolderChoice, prompt_folder_choice
from faq_splitter.pipeline import RunResult, build_split_summary, preview_split, run_split
from faq_splitter.source import SourceError, fetch_remote_source, is_remote

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_INPUT_INVALID = 2
EXIT_PARTIAL = 6


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class FaqSplitterArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("FAQ_SPLITTER_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(stem: str) -> Path:
    return Path.cwd() / "faq-splitter-output" / f"{stem}-{timestamp_token()}"


def determine_output_dir(args: argparse.Namespace, stem: str) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return default_output_dir(stem)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (SourceError, MissingColumnError, ConfigError)):
        return EXIT_INPUT_INVALID
    if isinstance(exc, (ImportError, UnicodeDecodeError)):
        return EXIT_INPUT_INVALID
    return EXIT_COMMAND_ERROR


def resolve_input(raw_input: str, download_dir: Callable[[], Path]) -> Path:
    if is_remote(raw_input):
        return fetch_remote_source(raw_input, download_dir())
    input_path = Path(raw_input)
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    return input_path


def build_config(args: argparse.Namespace) -> SplitConfig:
    config = load_config(Path(args.config) if args.config else None)
    return config.with_overrides(
        source_sheet=args.sheet_name,
        empty_category_policy=getattr(args, "empty_sheets", None),
        document_format=getattr(args, "doc_format", None),
    )


def split_output_path(args: argparse.Namespace, input_path: Path, out_dir: Path) -> Path:
    if args.in_place and args.output:
        raise CliError("Use either --in-place or --output, not both.", EXIT_COMMAND_ERROR)
    if args.in_place:
        if input_path.suffix.lower() not in {".xlsx", ".xlsm"}:
            raise CliError("--in-place is only supported for .xlsx/.xlsm inputs.", EXIT_COMMAND_ERROR)
        return input_path
    if args.output:
        output_path = Path(args.output)
    else:
        suffix = ".xlsm" if input_path.suffix.lower() == ".xlsm" else ".xlsx"
        output_path = out_dir / f"{input_path.stem}-split{suffix}"
    if output_path.exists():
        raise CliError(f"Refusing to overwrite existing output: {output_path}", EXIT_COMMAND_ERROR)
    return output_path


def folder_chooser(args: argparse.Namespace) -> Callable[[], FolderChoice]:
    if args.skip_docs:
        return lambda: FolderChoice(cancelled=True)
    if args.folder is not None:
        return lambda: FolderChoice(folder_id=args.folder)
    if args.no_prompt or args.json or not sys.stdin.isatty():
        return FolderChoice
    return prompt_folder_choice


def render_split_text(result: RunResult) -> str:
    lines = [
        "faq-splitter split",
        f"Input: {result.input_path}",
        f"Output: {result.output_path}",
        f"Rows read: {result.stats.get('rows_seen', 0)}",
        f"Not publishable: {result.stats.get('excluded_unpublished', 0)}",
        f"Excluded tag: {result.stats.get('excluded_tag', 0)}",
        f"Without tags: {result.stats.get('excluded_no_tags', 0)}",
        f"Without category: {result.stats.get('unmatched', 0)}",
        "Categories:",
    ]
    lines.extend(f"- {name}: {count}" for name, count in result.bucket_sizes.items())
    if result.documents_dir:
        lines.append(f"Documents: {result.documents_dir}")
    lines.append(result.message)
    return "\n".join(lines) + "\n"


def render_preview_text(payload: dict[str, Any]) -> str:
    metrics = payload.get("metrics", {})
    lines = [
        "faq-splitter classify",
        f"Input: {payload['input_file']}",
        f"Sheet: {payload['sheet_name']}",
        f"Rows read: {metrics.get('rows_seen', 0)}",
        "Categories:",
    ]
    lines.extend(f"- {name}: {count}" for name, count in payload["categories"].items())
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = FaqSplitterArgumentParser(
        prog="faq-splitter",
        description="Split a FAQ sheet into keyword categories with one report per category.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    split = subparsers.add_parser("split", help="Write one sheet and one document per category.")
    split.add_argument("input", help="Input workbook/CSV path or public link")
    split.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    split.add_argument("--output", help="Explicit output workbook path")
    split.add_argument("--in-place", action="store_true", help="Write the category sheets back into the input workbook")
    split.add_argument("--config", help="JSON config path")
    split.add_argument("--sheet", dest="sheet_name", help="Source sheet name (overrides the config)")
    docs = split.add_mutually_exclusive_group()
    docs.add_argument("--folder", help="Folder for the documents; falls back to the default location if unusable")
    docs.add_argument("--no-prompt", action="store_true", help="Save documents in the default location without asking")
    docs.add_argument("--skip-docs", action="store_true", help="Write the category sheets only")
    split.add_argument("--doc-format", choices=list(DOCUMENT_FORMATS), help="Document format (overrides the config)")
    split.add_argument("--empty-sheets", choices=list(EMPTY_CATEGORY_POLICIES), help="What to do with an old sheet whose category is now empty")
    split.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    split.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    split.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    classify = subparsers.add_parser("classify", help="Show how many rows each category would get.")
    classify.add_argument("input", help="Input workbook/CSV path or public link")
    classify.add_argument("--config", help="JSON config path")
    classify.add_argument("--sheet", dest="sheet_name", help="Source sheet name (overrides the config)")
    classify.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    classify.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="faq-splitter.json", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_split_command(args: argparse.Namespace) -> int:
    try:
        config = build_config(args)
        stem = "remote-source" if is_remote(args.input) else Path(args.input).stem
        out_dir = determine_output_dir(args, stem)
        input_path = resolve_input(args.input, lambda: out_dir / "source")
        output_path = split_output_path(args, input_path, out_dir)

        result = run_split(
            input_path,
            config,
            output_path=output_path,
            doc_root=out_dir / "docs",
            choose_folder=folder_chooser(args),
        )
        summary = build_split_summary(result)
        write_json(out_dir / "split-summary.json", summary)

        if args.json:
            print(json_dumps(summary))
        else:
            if args.verbose:
                for note in result.notes:
                    emit_human(note, quiet=args.quiet)
            for warning in result.warnings:
                emit_human(f"Warning: {warning}", quiet=args.quiet)
            emit_human(render_split_text(result).rstrip(), quiet=args.quiet)
            emit_human(f"Split summary: {out_dir / 'split-summary.json'}", quiet=args.quiet)
        return EXIT_PARTIAL if result.partial else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_classify_command(args: argparse.Namespace) -> int:
    try:
        config = build_config(args)
        input_path = resolve_input(args.input, lambda: default_output_dir("remote-source") / "source")
        payload = preview_split(input_path, config)
        if args.json:
            print(json_dumps(payload))
        else:
            for warning in payload["warnings"]:
                emit_human(f"Warning: {warning}", quiet=args.quiet)
            emit_human(render_preview_text(payload).rstrip(), quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, starter_config_text())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "split":
            return run_split_command(args)
        if args.command == "classify":
            return run_classify_command(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
