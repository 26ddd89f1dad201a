#!/usr/bin/env python3
from __future__ import annotations

import io
import sys
import tempfile
import zipfile
from pathlib import Path

import pandas as pd
import streamlit as st
from openpyxl import load_workbook

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from faq_splitter import __version__ as TOOL_VERSION
from faq_splitter.classifier import MissingColumnError
from faq_splitter.config import DOCUMENT_FORMATS, EMPTY_CATEGORY_POLICIES, ConfigError, load_config
from faq_splitter.exporter import FolderChoice, confined_folder
from faq_splitter.materializer import read_sheet_rows
from faq_splitter.pipeline import RunResult, run_split
from faq_splitter.source import SourceError, fetch_remote_source

SUPPORTED_UPLOAD_TYPES = ["xlsx", "xlsm", "csv", "tsv", "txt"]


def ensure_state() -> None:
    st.session_state.setdefault("result", None)
    st.session_state.setdefault("bundle", None)
    st.session_state.setdefault("error", None)


def stage_source(upload, public_url: str, folder: Path) -> Path:
    if upload is not None:
        path = folder / Path(upload.name).name
        path.write_bytes(upload.getvalue())
        return path
    return fetch_remote_source(public_url, folder / "source")


def bundle_outputs(result: RunResult) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.write(result.output_path, result.output_path.name)
        if result.documents:
            for path in result.documents.created:
                archive.write(path, f"docs/{path.name}")
    return buffer.getvalue()


def process(upload, public_url: str, folder_name: str, make_docs: bool, doc_format: str, empty_policy: str) -> None:
    st.session_state["error"] = None
    st.session_state["result"] = None
    st.session_state["bundle"] = None
    config = load_config(None).with_overrides(document_format=doc_format, empty_category_policy=empty_policy)
    with tempfile.TemporaryDirectory() as tmpdir:
        work = Path(tmpdir)
        source_path = stage_source(upload, public_url, work)
        doc_root = work / "docs"
        folder_warnings: list[str] = []
        target = confined_folder(doc_root, folder_name, folder_warnings)
        target.mkdir(parents=True, exist_ok=True)

        def choose_folder() -> FolderChoice:
            if not make_docs:
                return FolderChoice(cancelled=True)
            return FolderChoice(folder_id=str(target))

        output_path = work / f"{source_path.stem}-split.xlsx"
        result = run_split(source_path, config, output_path=output_path, doc_root=doc_root, choose_folder=choose_folder)
        st.session_state["bundle"] = bundle_outputs(result)
        split_book = load_workbook(output_path)
        st.session_state["previews"] = {name: read_sheet_rows(split_book[name]) for name in result.produced}
        st.session_state["result"] = {
            "message": result.message,
            "categories": result.bucket_sizes,
            "warnings": folder_warnings + result.warnings,
            "stem": source_path.stem,
        }


def render_result() -> None:
    if st.session_state.get("error"):
        st.error(st.session_state["error"])
    result = st.session_state.get("result")
    if not result:
        return
    st.success(result["message"])
    for warning in result["warnings"]:
        st.warning(warning)
    st.dataframe(
        pd.DataFrame(
            [{"Category": name, "Rows": count} for name, count in result["categories"].items()]
        ),
        hide_index=True,
    )
    for name, rows in st.session_state.get("previews", {}).items():
        with st.expander(f"{name} ({max(0, len(rows) - 1)} rows)"):
            if rows:
                st.dataframe(pd.DataFrame(rows[1:], columns=[str(value) for value in rows[0]]), hide_index=True)
    st.download_button(
        "Download sheets and documents",
        data=st.session_state["bundle"],
        file_name=f"{result['stem']}-split.zip",
        mime="application/zip",
    )


def main() -> None:
    st.set_page_config(page_title="faq-splitter", layout="wide")
    ensure_state()
    st.title("faq-splitter")
    st.caption(f"Version {TOOL_VERSION}. Splits the 'Principal' sheet into FAQ categories with one report each.")

    upload = st.file_uploader("Workbook or CSV", type=SUPPORTED_UPLOAD_TYPES)
    public_url = st.text_input("…or a public link (Google Sheets, Drive, Dropbox, OneDrive)")
    folder_name = st.text_input("Folder for the documents (optional)")
    make_docs = st.checkbox("Create documents", value=True)
    doc_format = st.selectbox("Document format", DOCUMENT_FORMATS)
    empty_policy = st.selectbox("Old sheets for empty categories", EMPTY_CATEGORY_POLICIES)

    if st.button("Split", type="primary", disabled=upload is None and not public_url.strip()):
        with st.spinner("Splitting…"):
            try:
                process(upload, public_url, folder_name, make_docs, doc_format, empty_policy)
            except (SourceError, MissingColumnError, ConfigError, ImportError) as exc:
                st.session_state["error"] = str(exc)
    render_result()


main()
