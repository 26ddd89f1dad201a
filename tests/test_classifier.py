from __future__ import annotations

import copy
import unittest
from collections import Counter

from faq_splitter.classifier import (
    MissingColumnError,
    build_header_index,
    classify_rows,
    parse_tags,
    require_columns,
)
from faq_splitter.config import ColumnNames, SplitConfig

HEADERS = ["Publicable", "Respuesta", "Respuesta Actualizada", "Etiqueta Original", "Etiqueta Propuesta"]


def row(publishable="SI", answer="a", updated="", tag="", proposed=""):
    return [publishable, answer, updated, tag, proposed]


def classify(*data_rows, config: SplitConfig | None = None, stats: Counter | None = None):
    rows = [HEADERS, *data_rows]
    return classify_rows(rows, build_header_index(rows[0]), config or SplitConfig(), stats)


class HeaderIndexTests(unittest.TestCase):
    def test_header_names_are_trimmed(self):
        index = build_header_index(["  Publicable ", "Respuesta", None])
        self.assertEqual(index, {"Publicable": 0, "Respuesta": 1, "": 2})

    def test_require_columns_names_the_missing_column(self):
        index = build_header_index(["Publicable", "Respuesta"])
        with self.assertRaises(MissingColumnError) as ctx:
            require_columns(index, ["Publicable", "Etiqueta Original"], "Principal")
        self.assertEqual(ctx.exception.column, "Etiqueta Original")
        self.assertIn("Etiqueta Original", str(ctx.exception))
        self.assertIn("Principal", str(ctx.exception))

    def test_classify_rows_rejects_missing_required_column(self):
        rows = [["Publicable", "Respuesta", "Etiqueta Original"], ["SI", "a", "Beca"]]
        with self.assertRaisesRegex(MissingColumnError, "Respuesta Actualizada"):
            classify_rows(rows, build_header_index(rows[0]), SplitConfig())


class ParseTagsTests(unittest.TestCase):
    def test_split_trim_lowercase_and_drop_empty(self):
        self.assertEqual(parse_tags(" Ingreso ;; Beca;  ;", ";"), ["ingreso", "beca"])

    def test_custom_separator(self):
        self.assertEqual(parse_tags("Alumno|Examen", "|"), ["alumno", "examen"])


class ClassifyRowsTests(unittest.TestCase):
    def test_every_configured_category_is_present(self):
        buckets = classify(row(tag="Beca"))
        self.assertEqual(list(buckets), list(SplitConfig().grouping_rules))

    def test_unpublished_rows_are_dropped_regardless_of_case_and_spaces(self):
        stats = Counter()
        buckets = classify(row(publishable=" no ", tag="Beca"), row(publishable="No", tag="Examen"), stats=stats)
        self.assertTrue(all(not rows for rows in buckets.values()))
        self.assertEqual(stats["excluded_unpublished"], 2)

    def test_other_publish_values_are_kept(self):
        buckets = classify(row(publishable="", tag="Beca"), row(publishable="NOPE", tag="Examen"))
        self.assertEqual(len(buckets["FAQ_Ingresantes"]), 1)
        self.assertEqual(len(buckets["FAQ_Alumnos_Examen"]), 1)

    def test_updated_answer_replaces_answer(self):
        buckets = classify(row(answer="old", updated="  new answer  ", tag="Beca"))
        self.assertEqual(buckets["FAQ_Ingresantes"][0][1], "new answer")

    def test_blank_updated_answer_keeps_original(self):
        buckets = classify(row(answer="old", updated="   ", tag="Beca"))
        self.assertEqual(buckets["FAQ_Ingresantes"][0][1], "old")

    def test_proposed_tag_drives_categorization(self):
        buckets = classify(row(tag="Examen", proposed="Beca"))
        self.assertEqual(len(buckets["FAQ_Ingresantes"]), 1)
        self.assertEqual(buckets["FAQ_Alumnos_Examen"], [])
        self.assertEqual(buckets["FAQ_Ingresantes"][0][3], "Beca")

    def test_excluded_tag_alone_drops_row(self):
        stats = Counter()
        buckets = classify(row(tag=" sedes "), row(tag="SEDES"), stats=stats)
        self.assertTrue(all(not rows for rows in buckets.values()))
        self.assertEqual(stats["excluded_tag"], 2)

    def test_proposed_excluded_tag_drops_row(self):
        buckets = classify(row(tag="Beca", proposed="Sedes"))
        self.assertTrue(all(not rows for rows in buckets.values()))

    def test_excluded_tag_among_others_is_not_a_global_exclusion(self):
        buckets = classify(row(tag="Ingreso;Sedes"))
        self.assertEqual(len(buckets["FAQ_Ingresantes"]), 1)

    def test_rows_without_tags_are_dropped(self):
        stats = Counter()
        buckets = classify(row(tag=""), row(tag=" ; ;"), stats=stats)
        self.assertTrue(all(not rows for rows in buckets.values()))
        self.assertEqual(stats["excluded_no_tags"], 2)

    def test_row_lands_in_each_matching_category_once(self):
        target = row(tag="Inscripción abierta; Varios temas")
        buckets = classify(target)
        self.assertEqual(len(buckets["FAQ_Ingresantes"]), 1)
        self.assertEqual(len(buckets["FAQ_Preguntas_frecuentes_generales"]), 1)
        self.assertEqual(buckets["FAQ_Alumnos_Examen"], [])
        self.assertEqual(buckets["FAQ_Tramites_Equivalencias_SAG"], [])

    def test_multiple_keyword_hits_in_one_category_add_row_once(self):
        buckets = classify(row(tag="ingreso;ingresantes"))
        self.assertEqual(len(buckets["FAQ_Ingresantes"]), 1)

    def test_keyword_match_is_substring_and_case_insensitive(self):
        buckets = classify(row(tag="CONSULTA SOBRE EXAMENES FINALES"))
        self.assertEqual(len(buckets["FAQ_Alumnos_Examen"]), 1)

    def test_bucket_order_follows_source_order(self):
        first = row(answer="first", tag="Beca")
        second = row(answer="second", tag="Examen")
        third = row(answer="third", tag="Ingreso")
        buckets = classify(first, second, third)
        self.assertEqual([item[1] for item in buckets["FAQ_Ingresantes"]], ["first", "third"])

    def test_identical_rows_are_kept_as_separate_entries(self):
        buckets = classify(row(tag="Beca"), row(tag="Beca"))
        self.assertEqual(len(buckets["FAQ_Ingresantes"]), 2)

    def test_source_rows_are_not_mutated(self):
        rows = [HEADERS, row(answer="old", updated="new", tag="Examen", proposed="Beca")]
        snapshot = copy.deepcopy(rows)
        classify_rows(rows, build_header_index(rows[0]), SplitConfig())
        self.assertEqual(rows, snapshot)

    def test_short_rows_are_padded_to_header_width(self):
        buckets = classify(["SI", "answer", "", "Beca"])
        self.assertEqual(buckets["FAQ_Ingresantes"][0], ["SI", "answer", "", "Beca", ""])

    def test_non_string_cells_are_compared_as_text(self):
        buckets = classify([None, 42, None, "Beca", None])
        self.assertEqual(buckets["FAQ_Ingresantes"][0][1], 42)

    def test_reference_row(self):
        buckets = classify(["SI", "old", "new answer", "Beca", ""])
        self.assertEqual(buckets["FAQ_Ingresantes"], [["SI", "new answer", "new answer", "Beca", ""]])

    def test_columns_can_be_reordered_and_renamed(self):
        config = SplitConfig().with_overrides(
            grouping_rules={"Becas": ["beca"]},
        )
        headers = ["Tags", "Proposed", "Flag", "Answer", "New"]
        config = config.with_overrides(
            columns=ColumnNames(
                publishable="Flag",
                answer="Answer",
                updated_answer="New",
                original_tag="Tags",
                proposed_tag="Proposed",
            )
        )
        rows = [headers, ["Beca", "", "si", "x", ""], ["Beca", "", "no", "y", ""]]
        buckets = classify_rows(rows, build_header_index(headers), config)
        self.assertEqual(buckets, {"Becas": [["Beca", "", "si", "x", ""]]})

    def test_stats_count_unmatched_and_overrides(self):
        stats = Counter()
        classify(row(updated="new", tag="Nada que ver"), row(tag="Beca", proposed="Examen"), stats=stats)
        self.assertEqual(stats["rows_seen"], 2)
        self.assertEqual(stats["unmatched"], 1)
        self.assertEqual(stats["answer_replaced"], 1)
        self.assertEqual(stats["tag_replaced"], 1)


if __name__ == "__main__":
    unittest.main()
