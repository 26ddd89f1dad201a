from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from openpyxl import Workbook, load_workbook

from faq_splitter.materializer import data_row_count, materialize_categories, read_sheet_rows

HEADERS = ["Publicable", "Respuesta", "Respuesta Actualizada", "Etiqueta Original", "Etiqueta Propuesta"]
BECA_ROW = ["SI", "Hay becas", "", "Beca", ""]
EXAMEN_ROW = ["SI", "Mesas de examen en julio con inscripción previa", "", "Examen", ""]


def workbook_with_source() -> Workbook:
    workbook = Workbook()
    workbook.active.title = "Principal"
    workbook.active.append(HEADERS)
    return workbook


class MaterializeCategoriesTests(unittest.TestCase):
    def test_creates_sheets_for_non_empty_buckets_only(self):
        workbook = workbook_with_source()
        notes: list[str] = []
        produced = materialize_categories(
            workbook,
            {"FAQ_Ingresantes": [BECA_ROW], "FAQ_Alumnos_Examen": [], "FAQ_Otros": [EXAMEN_ROW]},
            HEADERS,
            notes=notes,
        )
        self.assertEqual(produced, ["FAQ_Ingresantes", "FAQ_Otros"])
        self.assertEqual(workbook.sheetnames, ["Principal", "FAQ_Ingresantes", "FAQ_Otros"])
        self.assertEqual(read_sheet_rows(workbook["FAQ_Ingresantes"]), [HEADERS, BECA_ROW])
        self.assertIn("Sheet 'FAQ_Ingresantes' created.", notes)

    def test_header_row_is_bold_and_columns_are_sized(self):
        workbook = workbook_with_source()
        materialize_categories(workbook, {"FAQ_Alumnos_Examen": [EXAMEN_ROW]}, HEADERS)
        ws = workbook["FAQ_Alumnos_Examen"]
        self.assertTrue(all(cell.font.bold for cell in ws[1]))
        self.assertFalse(ws["A2"].font.bold)
        self.assertEqual(ws.freeze_panes, "A2")
        self.assertGreater(ws.column_dimensions["B"].width, ws.column_dimensions["A"].width)
        self.assertLessEqual(ws.column_dimensions["B"].width, 60)

    def test_existing_sheet_is_cleared_before_writing(self):
        workbook = workbook_with_source()
        stale = workbook.create_sheet("FAQ_Ingresantes")
        for index in range(10):
            stale.append([f"old {index}", "x", "y"])
        notes: list[str] = []
        produced = materialize_categories(workbook, {"FAQ_Ingresantes": [BECA_ROW]}, HEADERS, notes=notes)
        self.assertEqual(produced, ["FAQ_Ingresantes"])
        self.assertEqual(read_sheet_rows(workbook["FAQ_Ingresantes"]), [HEADERS, BECA_ROW])
        self.assertIn("Sheet 'FAQ_Ingresantes' cleared.", notes)

    def test_empty_bucket_clears_leftover_sheet_by_default(self):
        workbook = workbook_with_source()
        leftover = workbook.create_sheet("FAQ_Alumnos_Examen")
        leftover.append(HEADERS)
        leftover.append(EXAMEN_ROW)
        produced = materialize_categories(workbook, {"FAQ_Alumnos_Examen": []}, HEADERS)
        self.assertEqual(produced, [])
        self.assertIn("FAQ_Alumnos_Examen", workbook.sheetnames)
        self.assertEqual(read_sheet_rows(workbook["FAQ_Alumnos_Examen"]), [])

    def test_empty_bucket_deletes_leftover_sheet_when_asked(self):
        workbook = workbook_with_source()
        workbook.create_sheet("FAQ_Alumnos_Examen").append(HEADERS)
        notes: list[str] = []
        produced = materialize_categories(workbook, {"FAQ_Alumnos_Examen": []}, HEADERS, empty_policy="delete", notes=notes)
        self.assertEqual(produced, [])
        self.assertNotIn("FAQ_Alumnos_Examen", workbook.sheetnames)
        self.assertIn("Sheet 'FAQ_Alumnos_Examen' deleted because no rows matched.", notes)

    def test_existing_sheet_differing_only_by_case_is_reused_and_renamed(self):
        workbook = workbook_with_source()
        workbook.create_sheet("faq_ingresantes").append(["viejo"])
        notes: list[str] = []
        produced = materialize_categories(workbook, {"FAQ_Ingresantes": [BECA_ROW]}, HEADERS, notes=notes)
        self.assertEqual(produced, ["FAQ_Ingresantes"])
        self.assertEqual(workbook.sheetnames, ["Principal", "FAQ_Ingresantes"])
        self.assertEqual(read_sheet_rows(workbook["FAQ_Ingresantes"]), [HEADERS, BECA_ROW])
        self.assertIn("Sheet 'faq_ingresantes' renamed to 'FAQ_Ingresantes'.", notes)

    def test_empty_bucket_matches_leftover_sheet_ignoring_case(self):
        for policy, expected in (("clear", ["Principal", "FAQ_Alumnos_Examen"]), ("delete", ["Principal"])):
            with self.subTest(policy=policy):
                workbook = workbook_with_source()
                workbook.create_sheet("FAQ_ALUMNOS_EXAMEN").append(HEADERS)
                materialize_categories(workbook, {"FAQ_Alumnos_Examen": []}, HEADERS, empty_policy=policy)
                self.assertEqual(workbook.sheetnames, expected)

    def test_control_characters_are_removed_with_a_warning(self):
        workbook = workbook_with_source()
        warnings: list[str] = []
        materialize_categories(
            workbook,
            {"FAQ_Ingresantes": [["SI", "a\x0bb", "", "Beca\x07", ""]]},
            HEADERS,
            warnings=warnings,
        )
        self.assertEqual(read_sheet_rows(workbook["FAQ_Ingresantes"])[1], ["SI", "ab", "", "Beca", ""])
        self.assertEqual(warnings, ["Removed control characters from 2 cells in sheet 'FAQ_Ingresantes'."])

    def test_saved_workbook_round_trips_blank_cells(self):
        workbook = workbook_with_source()
        materialize_categories(workbook, {"FAQ_Ingresantes": [BECA_ROW]}, HEADERS)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "split.xlsx"
            workbook.save(path)
            reloaded = load_workbook(path)
            self.assertEqual(read_sheet_rows(reloaded["FAQ_Ingresantes"]), [HEADERS, BECA_ROW])
            self.assertEqual(data_row_count(reloaded["FAQ_Ingresantes"]), 1)


if __name__ == "__main__":
    unittest.main()
