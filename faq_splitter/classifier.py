"""
Row classification for the FAQ split.

Takes the source rows (header row first), drops the rows that must not be
published, applies the updated answer / proposed tag overrides, and assigns
each remaining row to every category whose keywords appear inside one of its
tags. Categories overlap: one row can land in several buckets, but never twice
in the same one.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Sequence

from faq_splitter.config import SplitConfig

UNPUBLISHED_FLAG = "NO"


class MissingColumnError(ValueError):
    def __init__(self, column: str, sheet_name: str | None = None) -> None:
        where = f" in sheet '{sheet_name}'" if sheet_name else ""
        super().__init__(f"Required column '{column}' was not found{where}.")
        self.column = column
        self.sheet_name = sheet_name


def text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def build_header_index(headers: Sequence[Any]) -> dict[str, int]:
    return {text(header).strip(): index for index, header in enumerate(headers)}


def require_columns(header_index: dict[str, int], required: Sequence[str], sheet_name: str | None = None) -> None:
    for column in required:
        if column not in header_index:
            raise MissingColumnError(column, sheet_name)


def parse_tags(tag_string: str, separator: str) -> list[str]:
    tags = (piece.strip().lower() for piece in tag_string.split(separator))
    return [tag for tag in tags if tag]


def matches_any(tags: list[str], keywords: list[str]) -> bool:
    return any(keyword in tag for tag in tags for keyword in keywords)


def padded_copy(row: Sequence[Any], width: int) -> list[Any]:
    return list(row) + [""] * max(0, width - len(row))


def transform_row(copy: list[Any], header_index: dict[str, int], config: SplitConfig, stats: Counter) -> list[Any]:
    """Apply the updated answer and proposed tag overrides to a row copy."""
    columns = config.columns
    updated_answer = text(copy[header_index[columns.updated_answer]]).strip()
    if updated_answer:
        copy[header_index[columns.answer]] = updated_answer
        stats["answer_replaced"] += 1

    proposed_tag = text(copy[header_index[columns.proposed_tag]]).strip()
    if proposed_tag:
        copy[header_index[columns.original_tag]] = proposed_tag
        stats["tag_replaced"] += 1
    return copy


def classify_rows(
    rows: Sequence[Sequence[Any]],
    header_index: dict[str, int],
    config: SplitConfig,
    stats: Counter | None = None,
) -> dict[str, list[list[Any]]]:
    if stats is None:
        stats = Counter()
    columns = config.columns
    require_columns(header_index, columns.required())

    buckets: dict[str, list[list[Any]]] = {name: [] for name in config.grouping_rules}
    seen: dict[str, set[int]] = {name: set() for name in config.grouping_rules}
    keywords_by_category = {
        # blank keywords are rejected by validate_config and skipped here
        name: [text(keyword).lower() for keyword in keywords if text(keyword).strip()]
        for name, keywords in config.grouping_rules.items()
    }
    width = len(rows[0]) if rows else 0
    excluded_tag = config.excluded_tag.lower()

    for index in range(1, len(rows)):
        stats["rows_seen"] += 1
        row = padded_copy(rows[index], width)
        if text(row[header_index[columns.publishable]]).strip().upper() == UNPUBLISHED_FLAG:
            stats["excluded_unpublished"] += 1
            continue

        row = transform_row(row, header_index, config, stats)

        tag_string = text(row[header_index[columns.original_tag]]).strip()
        if tag_string.lower() == excluded_tag:
            stats["excluded_tag"] += 1
            continue

        tags = parse_tags(tag_string, config.tag_separator)
        if not tags:
            stats["excluded_no_tags"] += 1
            continue

        matched = False
        for name, keywords in keywords_by_category.items():
            if not matches_any(tags, keywords):
                continue
            matched = True
            if index in seen[name]:
                continue
            seen[name].add(index)
            buckets[name].append(row)
        if not matched:
            stats["unmatched"] += 1

    return buckets
