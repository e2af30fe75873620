import tempfile
import unittest
from pathlib import Path
from unittest import mock

from openpyxl import Workbook

from late_adds.loader import NoSheetError, ReportLoadError, choose_sheet, load_grid
from late_adds.report import HeaderNotFoundError, read_report
from schedule_fixtures import HEADERS, appointment, write_schedule


class SheetChoiceTests(unittest.TestCase):
    def test_preferred_sheet_when_present(self):
        self.assertEqual(choose_sheet(["Summary", "Appts"], "Appts", "r.xlsx"), "Appts")

    def test_first_sheet_otherwise(self):
        self.assertEqual(choose_sheet(["Summary", "Appts"], "Missing", "r.xlsx"), "Summary")
        self.assertEqual(choose_sheet(["Summary"], None, "r.xlsx"), "Summary")

    def test_no_sheets_is_a_load_failure(self):
        with self.assertRaises(NoSheetError) as ctx:
            choose_sheet([], "Appts", "empty.xlsx")
        self.assertIsInstance(ctx.exception, ReportLoadError)
        self.assertEqual(str(ctx.exception), "No sheets found in empty.xlsx")


class WorkbookLoadTests(unittest.TestCase):
    def test_reads_preferred_sheet_even_when_not_first(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "reprint.xlsx"
            wb = Workbook()
            summary = wb.active
            summary.title = "Summary"
            summary.append(["Patient", "Chart #", "Time"])
            summary.append(["Wrong, Sheet", 9, "07:00 AM"])
            appts = wb.create_sheet("MasterAppointmentsWithInsurance")
            appts.append(HEADERS)
            appts.append(appointment("09:00 AM", "Smith, John", 1001))
            wb.save(path)

            result = load_grid(path)

        self.assertEqual(result["sheet_name"], "MasterAppointmentsWithInsurance")
        self.assertEqual(result["sheet_names"], ["Summary", "MasterAppointmentsWithInsurance"])
        self.assertEqual(result["detected_format"], "xlsx")
        self.assertIsNone(result["delimiter"])
        self.assertEqual(result["grid"][0][:3], ["Time", "Patient", "Chart #"])
        self.assertEqual(result["grid"][1][1], "Smith, John")
        self.assertEqual(len(result["warnings"]), 1)
        self.assertIn("Multiple sheets found (2 total)", result["warnings"][0])
        self.assertIn("Summary", result["warnings"][0])

    def test_falls_back_to_first_sheet_without_warning(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_schedule(Path(tmpdir) / "revised.xlsx", [appointment("09:00 AM", "Smith, John", 1001)], sheet_title="Sheet1")
            result = load_grid(path)

        self.assertEqual(result["sheet_name"], "Sheet1")
        self.assertEqual(result["warnings"], [])

    def test_empty_cells_are_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_schedule(Path(tmpdir) / "revised.xlsx", [appointment("09:00 AM", "Lee, Ann", None)])
            result = load_grid(path)

        data_row = result["grid"][-1]
        self.assertEqual(data_row[1], "Lee, Ann")
        self.assertIsNone(data_row[2])

    def test_unreadable_workbook_is_a_value_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.xlsx"
            path.write_bytes(b"this is not a zip archive")
            with self.assertRaisesRegex(ValueError, "Could not read workbook broken.xlsx"):
                load_grid(path)

    def test_missing_xlrd_raises_clear_importerror(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "legacy.xls"
            path.write_bytes(b"not-a-real-xls")

            original_import = __import__

            def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
                if name == "xlrd":
                    raise ImportError("simulated missing xlrd")
                return original_import(name, globals, locals, fromlist, level)

            with mock.patch("builtins.__import__", side_effect=fake_import):
                with self.assertRaisesRegex(ImportError, r"\.xls files require xlrd"):
                    load_grid(path)

    def test_missing_odfpy_raises_clear_importerror(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "schedule.ods"
            path.write_bytes(b"not-a-real-ods")

            original_import = __import__

            def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
                if name == "odf":
                    raise ImportError("simulated missing odf")
                return original_import(name, globals, locals, fromlist, level)

            with mock.patch("builtins.__import__", side_effect=fake_import):
                with self.assertRaisesRegex(ImportError, r"\.ods files require odfpy"):
                    load_grid(path)


class TextLoadTests(unittest.TestCase):
    def test_csv_blank_cells_are_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "revised.csv"
            path.write_text(
                "Time,Patient,Chart #\n"
                "09:00 AM,Smith John,1001\n"
                "09:30 AM,Lee Ann,\n"
                "10:00 AM,Doe Jane,1002\n",
                encoding="utf-8",
            )
            result = load_grid(path)

        self.assertEqual(result["delimiter"], ",")
        self.assertEqual(result["detected_format"], "csv")
        self.assertIsNone(result["sheet_name"])
        self.assertEqual(result["grid"][0], ["Time", "Patient", "Chart #"])
        self.assertEqual(result["grid"][2], ["09:30 AM", "Lee Ann", None])
        self.assertEqual(result["original_rows"], 4)

    def test_tsv_with_bom_and_preamble(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "reprint.tsv"
            path.write_bytes(
                "\ufeffMaster Appointments\n"
                "\n"
                "Time\tPatient\tChart #\n"
                "09:00 AM\t*Doe, Jane\t1002\n".encode("utf-8")
            )
            report = read_report(path)

        self.assertEqual(report.headers, ["Time", "Patient", "Chart #"])
        self.assertEqual(report.header_index, 2)
        self.assertEqual(report.rows, [["09:00 AM", "*Doe, Jane", "1002"]])
        self.assertIsNone(report.sheet_name)


class LoadErrorTests(unittest.TestCase):
    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_grid(Path("/definitely/not/here/revised.xlsx"))

    def test_unsupported_format(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "schedule.pdf"
            path.write_bytes(b"%PDF-1.4")
            with self.assertRaisesRegex(ValueError, "Unsupported format '.pdf'"):
                load_grid(path)

    def test_oversized_csv_field_names_the_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "big.csv"
            path.write_text(
                'Time,Patient,Chart #\n09:00 AM,"' + "A" * 200_000 + '",1001\n',
                encoding="utf-8",
            )
            with self.assertRaises(ReportLoadError) as ctx:
                load_grid(path)

        self.assertIsInstance(ctx.exception, ValueError)
        self.assertIn("Could not read big.csv", str(ctx.exception))
        self.assertEqual(ctx.exception.source_name, "big.csv")

    def test_unreadable_text_file_names_the_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "locked.csv"
            path.write_text("Time,Patient,Chart #\n", encoding="utf-8")
            denied = PermissionError(13, "Permission denied")
            with mock.patch.object(Path, "read_bytes", side_effect=denied):
                with self.assertRaisesRegex(ReportLoadError, "Could not read locked.csv: Permission denied"):
                    load_grid(path)


class ReadReportTests(unittest.TestCase):
    def test_workbook_to_report(self):
        rows = [
            appointment("09:00 AM", "Smith, John", 1001),
            appointment("09:30 AM", None, None),
            appointment("10:00 AM", "*Doe, Jane", 1002),
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_schedule(Path(tmpdir) / "reprint.xlsx", rows, extra_sheets=["Notes"])
            report = read_report(path)

        self.assertEqual(report.source_name, "reprint.xlsx")
        self.assertEqual(report.sheet_name, "MasterAppointmentsWithInsurance")
        self.assertEqual(report.headers, HEADERS)
        self.assertEqual(report.row_count, 2)
        self.assertEqual([report.cell(row, "chart") for row in report.rows], [1001, 1002])
        self.assertEqual(len(report.warnings), 1)

    def test_workbook_without_header(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "notes.xlsx"
            wb = Workbook()
            wb.active.append(["Nothing", "useful"])
            wb.save(path)
            with self.assertRaisesRegex(HeaderNotFoundError, "Could not detect header row in notes.xlsx"):
                read_report(path)


if __name__ == "__main__":
    unittest.main()
