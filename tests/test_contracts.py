from __future__ import annotations

import re
import unittest
from pathlib import Path

from faq_splitter.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary, utc_now_iso


class ContractTests(unittest.TestCase):
    def test_every_contract_has_a_semantic_version(self):
        for name in CONTRACT_VERSIONS:
            with self.subTest(contract=name):
                contract = build_contract(name)
                self.assertEqual(contract["name"], name)
                self.assertRegex(contract["version"], r"^\d+\.\d+\.\d+$")

    def test_unknown_contract_is_rejected(self):
        with self.assertRaises(KeyError):
            build_contract("faq_splitter.unknown")

    def test_timestamp_is_utc_without_microseconds(self):
        self.assertTrue(re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", utc_now_iso()))

    def test_run_summary_counts_warnings_and_stringifies_paths(self):
        summary = build_run_summary(
            command="split",
            input_path=Path("faq.xlsx"),
            output_path=Path("out/faq-split.xlsx"),
            documents_dir=Path("out/docs"),
            warnings=["Detected ';' as the delimiter."],
            metrics={"rows_seen": 3},
        )
        self.assertEqual(summary["tool"], "faq-splitter")
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["input_file"], "faq.xlsx")
        self.assertEqual(summary["output_file"], str(Path("out/faq-split.xlsx")))
        self.assertEqual(summary["documents_dir"], str(Path("out/docs")))
        self.assertEqual(summary["warnings_count"], 1)
        self.assertEqual(summary["metrics"], {"rows_seen": 3})

    def test_run_summary_defaults(self):
        summary = build_run_summary(command="classify", input_path="faq.csv")
        self.assertIsNone(summary["output_file"])
        self.assertIsNone(summary["documents_dir"])
        self.assertEqual(summary["warnings"], [])
        self.assertEqual(summary["metrics"], {})


if __name__ == "__main__":
    unittest.main()
