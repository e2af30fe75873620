import unittest

from late_adds.projection import choose_headers, project_rows
from late_adds.report import build_report
from late_adds.schema import DISPLAY_COLUMNS
from schedule_fixtures import HEADERS, appointment, schedule_report


class ChooseHeadersTests(unittest.TestCase):
    def test_preferred_order_not_source_order(self):
        headers = ["Chart #", "Patient", "Notes", "Time"]
        self.assertEqual(choose_headers(headers, DISPLAY_COLUMNS), ["Time", "Patient", "Chart #"])

    def test_preferred_match_is_case_sensitive(self):
        headers = ["TIME", "PATIENT", "CHART #", ""]
        self.assertEqual(choose_headers(headers, DISPLAY_COLUMNS), ["TIME", "PATIENT", "CHART #"])

    def test_fallback_keeps_source_order_and_drops_blanks(self):
        headers = ["Patient", "", "Chart #", "  ", "Room"]
        self.assertEqual(choose_headers(headers, ["Pat Bal"]), ["Patient", "Chart #", "Room"])


class ProjectRowsTests(unittest.TestCase):
    def test_every_record_has_exactly_the_chosen_headers(self):
        report = schedule_report(
            [
                appointment("09:00 AM", "Smith, John", 1001),
                ["09:15 AM", "Doe, Jane"],
            ]
        )
        headers = choose_headers(report.headers, DISPLAY_COLUMNS)
        records = project_rows(report, report.rows, headers)

        self.assertEqual(headers, HEADERS)
        for record in records:
            self.assertEqual(list(record), headers)
        self.assertEqual(records[1]["Chart #"], "")
        self.assertEqual(records[1]["Pat Bal"], "")

    def test_missing_preferred_column_never_appears(self):
        source_headers = ["Time", "Patient", "Chart #", "Carrier"]
        report = schedule_report([["09:00 AM", "Smith, John", 1001, "Aetna"]], headers=source_headers)

        for preferred in (["Pat Bal"], DISPLAY_COLUMNS):
            headers = choose_headers(report.headers, preferred)
            records = project_rows(report, report.rows, headers)
            self.assertNotIn("Pat Bal", headers)
            self.assertTrue(all("Pat Bal" not in record for record in records))
        self.assertEqual(choose_headers(report.headers, ["Pat Bal"]), source_headers)

    def test_schema_columns_read_through_column_index(self):
        grid = [
            ["Appt Time", "Patient", "Chart Number"],
            ["09:00 AM", "Smith, John", 1001],
        ]
        report = build_report(grid, source_name="revised.csv")
        records = project_rows(report, report.rows, ["Time", "Chart #", "Patient"])

        self.assertEqual(records, [{"Time": "09:00 AM", "Chart #": 1001, "Patient": "Smith, John"}])

    def test_nan_cells_become_empty_strings(self):
        report = schedule_report([appointment("09:00 AM", "Smith, John", float("nan"))])
        records = project_rows(report, report.rows, ["Patient", "Chart #"])
        self.assertEqual(records, [{"Patient": "Smith, John", "Chart #": ""}])


if __name__ == "__main__":
    unittest.main()
