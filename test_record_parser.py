#!/usr/bin/env python3
"""
Tests for tabular import parsing.
"""

import unittest

from catalog.record_parser import RecordParser, parse_bool, parse_rating, parse_tabular
from catalog.schema import FieldSchema


class TestParseTabular(unittest.TestCase):

    def test_overflow_folds_into_tags_and_missing_name_is_row_error(self):
        result = parse_tabular("name,tags\nAcme,red,blue\n,orphan", FieldSchema(columns=["name", "tags"]))

        self.assertTrue(result.ok)
        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.records[0]["store_name"], "Acme")
        self.assertEqual(result.records[0]["tags"], ["red", "blue"])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].row, 2)
        self.assertEqual(result.errors[0].reason, "Missing store name")

    def test_headers_match_case_and_whitespace_insensitively(self):
        text = " Store Name ,WEBSITE,Price Range,On Sale,rating\nAcme,acme.com,$$$,yes,7\n"
        record = parse_tabular(text, FieldSchema()).records[0]

        self.assertEqual(record["store_name"], "Acme")
        self.assertEqual(record["website"], "acme.com")
        self.assertEqual(record["price_range"], "high")
        self.assertTrue(record["on_sale"])
        self.assertEqual(record["rating"], 5.0)

    def test_unclassified_price_is_empty(self):
        record = parse_tabular("name,price\nAcme,free", FieldSchema()).records[0]
        self.assertEqual(record["price_range"], "")

    def test_template_custom_fields(self):
        schema = FieldSchema(columns=["name"], custom_fields={"Vibe": ["Minimal", "Cozy"]})
        text = 'name,vibe,Material\nAcme,"minimal, COZY, minimal",Wood\n'
        record = parse_tabular(text, schema).records[0]

        self.assertEqual(record["custom_fields"], {"Vibe": ["Minimal", "Cozy"], "Material": ["Wood"]})

    def test_field_outside_schema_columns_is_kept_as_custom_field(self):
        result = parse_tabular("name,price\nAcme,$$", FieldSchema(columns=["name"]))
        record = result.records[0]
        self.assertNotIn("price_range", record)
        self.assertEqual(record["custom_fields"], {"price": ["$$"]})

    def test_short_rows_are_padded(self):
        record = parse_tabular("name,city,tags\nAcme", FieldSchema()).records[0]
        self.assertEqual(record["city"], "")
        self.assertEqual(record["tags"], [])

    def test_extra_cells_after_single_value_column_reject_row(self):
        result = parse_tabular("name,city\nAcme,Paris,extra\nBeta,Rome", FieldSchema())
        self.assertEqual([r["store_name"] for r in result.records], ["Beta"])
        self.assertEqual(result.errors[0].row, 1)
        self.assertIn("Expected 2 columns", result.errors[0].reason)

    def test_blank_lines_are_skipped(self):
        result = parse_tabular("\ufeffname\n\nAcme\n\n\nBeta\n", FieldSchema())
        self.assertEqual([r["store_name"] for r in result.records], ["Acme", "Beta"])
        self.assertEqual(result.errors, [])

    def test_empty_input_is_top_level_error(self):
        for text in ("", "   \n  ", None):
            result = parse_tabular(text, FieldSchema())
            self.assertFalse(result.ok)
            self.assertEqual(result.records, [])

    def test_duplicate_headers_are_top_level_error(self):
        result = parse_tabular("name,store\nAcme,Other", FieldSchema())
        self.assertFalse(result.ok)
        self.assertIn("Duplicate header", result.error)
        self.assertEqual(result.records, [])

    def test_row_cap_truncates(self):
        text = "name\nA\nB\nC\nD\n"
        result = parse_tabular(text, FieldSchema(), max_rows=2)
        self.assertEqual([r["store_name"] for r in result.records], ["A", "B"])
        self.assertTrue(result.truncated)
        self.assertEqual(result.truncated_rows, 2)

    def test_schema_must_be_field_schema(self):
        with self.assertRaises(TypeError):
            RecordParser("name\nAcme", {"columns": ["name"]})

    def test_unknown_schema_column(self):
        with self.assertRaises(ValueError):
            FieldSchema(columns=["name", "colour"])

    def test_to_dict(self):
        data = parse_tabular("name,city\n,Paris", FieldSchema()).to_dict()
        self.assertEqual(data["errors"], [{"row": 1, "reason": "Missing store name"}])
        self.assertFalse(data["truncated"])


class TestResumableParser(unittest.TestCase):

    def test_result_unavailable_until_done(self):
        parser = RecordParser("name\nA\nB\nC", FieldSchema())

        with self.assertRaises(RuntimeError):
            parser.result

        self.assertFalse(parser.parse_batch(1))
        self.assertFalse(parser.parse_batch(1))
        self.assertFalse(parser.done)
        with self.assertRaises(RuntimeError):
            parser.result

        self.assertFalse(parser.parse_batch(1))
        self.assertTrue(parser.parse_batch(1))
        self.assertEqual(len(parser.result.records), 3)

    def test_batched_matches_single_pass(self):
        text = "name,tags\n" + "\n".join(f"Store {i},t{i % 3}" for i in range(25))
        batched = RecordParser(text, FieldSchema()).run(batch_size=4)
        single = parse_tabular(text, FieldSchema())
        self.assertEqual(batched.records, single.records)


class TestCellParsers(unittest.TestCase):

    def test_parse_bool(self):
        self.assertTrue(parse_bool(" YES "))
        self.assertTrue(parse_bool("1"))
        self.assertFalse(parse_bool("no"))
        self.assertFalse(parse_bool(""))

    def test_parse_rating(self):
        self.assertEqual(parse_rating("4,5"), 4.5)
        self.assertEqual(parse_rating("-1"), 0.0)
        self.assertEqual(parse_rating("nan"), 0.0)
        self.assertEqual(parse_rating("great"), 0.0)


if __name__ == '__main__':
    unittest.main()
