from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from tabular_terms.ascii import (
    ASCIIFileDirectoryDataset,
    ASCIIFileTable,
    ASCIITableCell,
    ASCIITableRow,
    detect_encoding,
)
from tabular_terms.config import ReaderConfig
from tabular_terms.errors import InvalidFormatError
from tabular_terms.factory import create_from_ascii_dir
from tabular_terms.header import FieldMapHeader
from tabular_terms.terms import Term

PEOPLE_CSV = "id,name\n1,Alice\n2,Bob\n"


def write_file(directory: str, name: str, text: str, encoding: str = "utf-8") -> Path:
    path = Path(directory) / name
    path.write_text(text, encoding=encoding)
    return path


def index_header(*labels: str) -> FieldMapHeader:
    header = FieldMapHeader()
    for index, label in enumerate(labels):
        header.put(Term(label), index)
    return header


class ASCIITableCellTests(unittest.TestCase):
    def test_text_42_reads_as_every_numeric_type(self):
        cell = ASCIITableCell("42")
        self.assertEqual(cell.get_int_value(), 42)
        self.assertEqual(cell.get_float_value(), 42.0)
        self.assertEqual(cell.get_string_value(), "42")
        self.assertIsNone(cell.get_boolean_value())
        self.assertFalse(cell.is_empty())

    def test_boolean_vocabulary(self):
        for token in ("true", "YES", "T", "1"):
            self.assertIs(ASCIITableCell(token).get_boolean_value(), True)
        for token in ("false", "No", "f", "0"):
            self.assertIs(ASCIITableCell(token).get_boolean_value(), False)
        self.assertIsNone(ASCIITableCell("maybe").get_boolean_value())

    def test_unparseable_and_missing_values_never_raise(self):
        cell = ASCIITableCell("abc")
        self.assertIsNone(cell.get_int_value())
        self.assertIsNone(cell.get_float_value())

        missing = ASCIITableCell(None)
        self.assertTrue(missing.is_empty())
        self.assertIsNone(missing.get_string_value())
        self.assertIsNone(missing.get_int_value())
        self.assertIsNone(missing.get_boolean_value())

    def test_blank_cell_is_empty_but_present(self):
        cell = ASCIITableCell("")
        self.assertTrue(cell.is_empty())
        self.assertEqual(cell.get_string_value(), "")

    def test_numbers_are_trimmed_before_parsing(self):
        self.assertEqual(ASCIITableCell(" 7 ").get_int_value(), 7)
        self.assertEqual(ASCIITableCell(" 2.5").get_float_value(), 2.5)


class ASCIITableRowTests(unittest.TestCase):
    def test_duplicate_field_returns_first_non_empty_cell(self):
        row = ASCIITableRow(index_header("id", "name", "id"), ",Alice,7")

        self.assertEqual(row.get_cell(Term("id")).get_string_value(), "7")
        self.assertEqual([cell.get_string_value() for cell in row.get_cells(Term("id"))], ["", "7"])
        self.assertEqual(row.get_field_int_value(Term("id")), 7)
        self.assertEqual(row.get_field_string_value(Term("id")), "7")

    def test_all_empty_duplicates_fall_back_to_empty_cell(self):
        row = ASCIITableRow(index_header("id", "id"), ",")
        cell = row.get_cell(Term("id"))
        self.assertTrue(cell.is_empty())
        self.assertIsNone(cell.get_string_value())
        self.assertIsNone(row.get_field_string_value(Term("id")))

    def test_short_line_skips_unresolved_columns(self):
        row = ASCIITableRow(index_header("id", "name", "age"), "1,Alice")

        self.assertEqual(row.get_cells(Term("age")), [])
        self.assertTrue(row.get_cells_by_name("age").is_empty())
        self.assertIsNone(row.get_field_int_value(Term("age")))
        self.assertTrue(row.get_cell(Term("age")).is_empty())

    def test_blank_token_is_kept_as_empty_cell(self):
        row = ASCIITableRow(index_header("id", "name"), "1,")
        cells = row.get_cells_by_name("name")
        self.assertEqual(cells.keys(), [None])
        self.assertEqual(cells.get_all(None)[0].get_string_value(), "")

    def test_missing_field(self):
        row = ASCIITableRow(index_header("id"), "1")
        self.assertFalse(row.header.contains_field("missing"))
        self.assertTrue(row.get_cells_by_name("missing").is_empty())
        self.assertEqual(row.get_cells(Term("missing")), [])
        self.assertIsNone(row.get_cell(Term("missing")).get_int_value())

    def test_empty_line_has_no_cells(self):
        row = ASCIITableRow(index_header("id"), "")
        self.assertTrue(row.header.is_empty())
        self.assertIsNone(row.get_field_string_value(Term("id")))

    def test_values_are_trimmed_only_when_asked(self):
        header = index_header("name")
        self.assertEqual(ASCIITableRow(header, "  Alice ").get_field_string_value(Term("name")), "  Alice ")
        self.assertEqual(
            ASCIITableRow(header, "  Alice ", trim_values=True).get_field_string_value(Term("name")),
            "Alice",
        )

    def test_to_dict(self):
        row = ASCIITableRow(index_header("id", "name"), "1,Alice")
        self.assertEqual(row.to_dict(), {"id": "1", "name": "Alice"})


class ASCIIFileTableTests(unittest.TestCase):
    def test_people_file_reads_sequentially(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_file(tmpdir, "people.csv", PEOPLE_CSV)
            with create_from_ascii_dir(tmpdir, "csv") as dataset:
                table = dataset.get_table("people")
                name = Term("name")

                self.assertEqual(table.name, "people")
                self.assertEqual(table.number_of_records, 2)
                self.assertEqual(table.header.get_field_names(), ["id", "name"])
                self.assertEqual(table.get_next_row().get_field_string_value(name), "Alice")
                self.assertEqual(table.get_next_row().get_field_string_value(name), "Bob")
                self.assertIsNone(table.get_next_row())

    def test_cursor_stays_pinned_after_exhaustion(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "people.csv", PEOPLE_CSV)
            with ASCIIFileTable(path, "people") as table:
                for _ in range(table.number_of_records):
                    self.assertIsNotNone(table.get_next_row())
                for _ in range(3):
                    self.assertIsNone(table.get_next_row())
                self.assertEqual(table.position, table.number_of_records)

    def test_reset_replays_the_same_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "people.csv", "id,name\n1,Alice\n2,Bob\n3,Carol\n")
            with ASCIIFileTable(path, "people") as table:
                table.get_next_row()
                table.reset()
                self.assertEqual(table.position, 0)
                first_pass = [row.to_dict() for row in table]
                table.reset()
                second_pass = [row.to_dict() for row in table]

        self.assertEqual(len(first_pass), 3)
        self.assertEqual(first_pass, second_pass)
        self.assertEqual(first_pass[0], {"id": "1", "name": "Alice"})

    def test_blank_header_cells_keep_later_positions(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", "id, ,name\n1,x,Bob\n")
            with ASCIIFileTable(path) as table:
                self.assertEqual(table.header.get_field_names(), ["id", "name"])
                self.assertEqual(table.header.size, 2)
                row = table.get_next_row()
                self.assertEqual(row.get_field_string_value(Term("name")), "Bob")

    def test_header_labels_are_trimmed_by_default(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", " id , name \n1,Alice\n")
            with ASCIIFileTable(path) as table:
                self.assertEqual(table.header.get_field_names(), ["id", "name"])
            with ASCIIFileTable(path, config=ReaderConfig(trim_header=False)) as table:
                self.assertEqual(table.header.get_field_names(), [" id ", " name "])

    def test_duplicate_header_labels(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", "id,name,id\n,Alice,7\n")
            with ASCIIFileTable(path) as table:
                self.assertEqual(table.header.get_fields("id"), [Term("id"), Term("id")])
                row = table.get_next_row()
                self.assertEqual(row.get_cell(Term("id")).get_int_value(), 7)

    def test_empty_file_has_empty_header_and_no_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "empty.csv", "")
            with ASCIIFileTable(path) as table:
                self.assertTrue(table.header.is_empty())
                self.assertEqual(table.number_of_records, 0)
                self.assertIsNone(table.get_next_row())

    def test_missing_file_degrades_to_empty_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with ASCIIFileTable(Path(tmpdir) / "gone.csv") as table:
                self.assertTrue(table.header.is_empty())
                self.assertEqual(table.number_of_records, 0)
                self.assertIsNone(table.get_next_row())
                table.reset()
                self.assertIsNone(table.get_next_row())

    def test_blank_lines_count_as_empty_records(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", "id\n1\n\n2\n")
            with ASCIIFileTable(path) as table:
                self.assertEqual(table.number_of_records, 3)
                values = [row.get_field_int_value(Term("id")) for row in table]
        self.assertEqual(values, [1, None, 2])

    def test_windows_line_endings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "t.csv"
            path.write_bytes(b"id,name\r\n1,Alice\r\n")
            with ASCIIFileTable(path) as table:
                self.assertEqual(table.header.get_field_names(), ["id", "name"])
                self.assertEqual(table.get_next_row().get_field_string_value(Term("name")), "Alice")

    def test_regex_delimiter(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.txt", "id | name\n1 | Alice\n")
            config = ReaderConfig(delimiter=r"\s*\|\s*")
            with ASCIIFileTable(path, config=config) as table:
                self.assertEqual(table.header.get_field_names(), ["id", "name"])
                self.assertEqual(table.get_next_row().get_field_string_value(Term("name")), "Alice")

    def test_explicit_encoding(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", "id,name\n1,José\n", encoding="latin-1")
            with ASCIIFileTable(path, config=ReaderConfig(encoding="latin-1")) as table:
                self.assertEqual(table.get_next_row().get_field_string_value(Term("name")), "José")

    def test_utf8_bom_is_not_part_of_first_label(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", "id,name\n1,Zoë\n", encoding="utf-8-sig")
            with ASCIIFileTable(path) as table:
                self.assertEqual(table.header.get_field_names(), ["id", "name"])
                self.assertEqual(table.get_next_row().get_field_string_value(Term("name")), "Zoë")

    def test_unknown_encoding_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", PEOPLE_CSV)
            with self.assertRaises(InvalidFormatError):
                ASCIIFileTable(path, config=ReaderConfig(encoding="no-such-codec"))

    def test_ascii_sample_is_reported_as_utf8(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_file(tmpdir, "t.csv", PEOPLE_CSV)
            self.assertEqual(detect_encoding(path), "utf-8")
            self.assertEqual(detect_encoding(Path(tmpdir) / "missing.csv"), "utf-8")


class ASCIIFileDirectoryDatasetTests(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.directory = self._tmpdir.name
        write_file(self.directory, "b.csv", PEOPLE_CSV)
        write_file(self.directory, "a.csv", PEOPLE_CSV)
        write_file(self.directory, "notes.txt", "hello\n")
        (Path(self.directory) / "nested.csv").mkdir()

    def test_table_names_strip_extension(self):
        dataset = ASCIIFileDirectoryDataset(self.directory, ReaderConfig(file_extension="csv"))
        self.assertEqual(dataset.file_extension, ".csv")
        self.assertEqual(dataset.get_table_names(), ["a", "b"])

    def test_empty_extension_accepts_every_file(self):
        dataset = ASCIIFileDirectoryDataset(self.directory)
        self.assertEqual(dataset.get_table_names(), ["a.csv", "b.csv", "notes.txt"])
        with dataset:
            self.assertEqual(dataset.get_table("notes.txt").number_of_records, 0)

    def test_get_table_requires_exact_name(self):
        with ASCIIFileDirectoryDataset(self.directory, ReaderConfig(file_extension=".csv")) as dataset:
            self.assertIsNotNone(dataset.get_table("a"))
            self.assertIsNone(dataset.get_table("a.csv"))
            self.assertIsNone(dataset.get_table("notes"))
            self.assertIsNone(dataset.get_table("nested"))
            self.assertIsNone(dataset.get_table("missing"))
            self.assertIsNone(dataset.get_table(None))

    def test_get_table_stays_inside_directory(self):
        sub = Path(self.directory) / "sub"
        sub.mkdir()
        write_file(str(sub), "x.csv", PEOPLE_CSV)

        with ASCIIFileDirectoryDataset(self.directory, ReaderConfig(file_extension="csv")) as dataset:
            self.assertNotIn("sub/x", dataset.get_table_names())
            self.assertIsNone(dataset.get_table("sub/x"))
            self.assertIsNone(dataset.get_table(str(sub / "x")))
            self.assertIsNone(dataset.get_table(""))

        with ASCIIFileDirectoryDataset(sub, ReaderConfig(file_extension="csv")) as dataset:
            self.assertEqual(dataset.get_table_names(), ["x"])
            self.assertIsNone(dataset.get_table("../a"))
            self.assertIsNotNone(dataset.get_table("x"))

    def test_close_releases_opened_tables(self):
        dataset = ASCIIFileDirectoryDataset(self.directory, ReaderConfig(file_extension="csv"))
        table = dataset.get_table("a")
        self.assertFalse(table.closed)
        dataset.close()
        self.assertTrue(table.closed)
        self.assertIsNone(table.get_next_row())

    def test_tables_closed_by_caller_are_not_retained(self):
        with ASCIIFileDirectoryDataset(self.directory, ReaderConfig(file_extension="csv")) as dataset:
            for _ in range(5):
                dataset.get_table("a").close()
            kept = dataset.get_table("b")
            self.assertEqual(dataset._open_tables, [kept])

    def test_invalid_delimiter_pattern_is_rejected(self):
        with self.assertRaises(InvalidFormatError):
            ASCIIFileDirectoryDataset(self.directory, ReaderConfig(delimiter="("))


if __name__ == "__main__":
    unittest.main()
