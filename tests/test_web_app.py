import importlib.util
import unittest
from pathlib import Path
from types import SimpleNamespace

from streamlit.testing.v1 import AppTest

from late_adds.reconcile import compare_reports
from schedule_fixtures import appointment, schedule_report


REPO_ROOT = Path(__file__).resolve().parents[1]
APP_PATH = REPO_ROOT / "web" / "app.py"

REVISED_CSV = b'Time,Patient,Chart #\n08:00 AM,"Smith, John",1001\n'
REPRINT_CSV = b'Time,Patient,Chart #\n08:00 AM,"Smith, John",1001\n09:30 AM,"*Doe, Jane",1002\n'


def load_app_module():
    spec = importlib.util.spec_from_file_location("late_adds_web_app", APP_PATH)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


def upload(name: str, data: bytes) -> SimpleNamespace:
    return SimpleNamespace(name=name, getvalue=lambda: data)


class BuildJobTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = load_app_module()

    def test_snapshots_uploads(self):
        job = self.app.build_job(
            upload("revised.csv", REVISED_CSV),
            upload("reprint.csv", REPRINT_CSV),
            None,
            strict_chart_only=True,
            include_reverse=True,
        )
        self.assertEqual(job["files"], {"revised": ("revised.csv", REVISED_CSV), "reprint": ("reprint.csv", REPRINT_CSV)})
        self.assertTrue(job["strict_chart_only"])
        self.assertTrue(job["include_reverse"])

    def test_reverse_dropped_with_second_baseline(self):
        job = self.app.build_job(
            upload("revised.csv", REVISED_CSV),
            upload("reprint.csv", REPRINT_CSV),
            upload("second.csv", REVISED_CSV),
            strict_chart_only=False,
            include_reverse=True,
        )
        self.assertIn("second", job["files"])
        self.assertFalse(job["include_reverse"])


class PageTests(unittest.TestCase):
    def make_app(self, job=None, comparison=None) -> AppTest:
        at = AppTest.from_file(str(APP_PATH), default_timeout=60)
        if job is not None:
            at.session_state["job"] = job
            at.session_state["processing"] = True
        if comparison is not None:
            at.session_state["comparison"] = comparison
        return at

    def test_initial_page_waits_for_uploads(self):
        at = self.make_app().run()

        self.assertFalse(at.exception)
        compare = next(button for button in at.button if button.label == "Compare")
        self.assertTrue(compare.disabled)
        self.assertFalse(at.session_state["processing"])

    def test_pending_job_runs_and_releases_controls(self):
        job = {
            "files": {"revised": ("revised.csv", REVISED_CSV), "reprint": ("reprint.csv", REPRINT_CSV)},
            "strict_chart_only": False,
            "include_reverse": True,
        }
        at = self.make_app(job=job).run()

        self.assertFalse(at.exception)
        self.assertFalse(at.session_state["processing"])
        self.assertIsNone(at.session_state["job"])
        comparison = at.session_state["comparison"]
        self.assertEqual([record["Patient"] for record in comparison.late_adds], ["*Doe, Jane"])
        self.assertEqual(comparison.reverse, [])
        self.assertEqual(at.success[0].value, "Done. Late adds found: 1")
        self.assertTrue(all(not checkbox.disabled for checkbox in at.checkbox))

    def test_failed_job_reports_file_and_drops_old_result(self):
        stale = compare_reports(
            schedule_report([appointment("08:00 AM", "Smith, John", 1001)]),
            schedule_report([appointment("09:00 AM", "Old, Result", 9009)]),
        )
        job = {
            "files": {"revised": ("revised.csv", REVISED_CSV), "reprint": ("reprint.csv", b"Nothing,useful\n1,2\n")},
            "strict_chart_only": False,
            "include_reverse": False,
        }
        at = self.make_app(job=job, comparison=stale).run()

        self.assertFalse(at.exception)
        self.assertFalse(at.session_state["processing"])
        self.assertIsNone(at.session_state["comparison"])
        self.assertIn("Could not detect header row in reprint.csv", at.error[0].value)


if __name__ == "__main__":
    unittest.main()
