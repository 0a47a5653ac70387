import os
import tempfile
import unittest

from models.job import CanonicalJobRecord
from tools.job_store import SQLiteJobStore


def make_job(external_id="abc123", source="Indeed", title="Instructional Designer", **fields):
    return CanonicalJobRecord(title=title, source=source, external_id=external_id, **fields)


class TestSQLiteJobStore(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = SQLiteJobStore(os.path.join(self.tmp.name, "nested", "jobs.db"))

    def tearDown(self):
        self.tmp.cleanup()

    def test_insert_ignores_duplicates(self):
        self.assertTrue(self.store.insert(make_job()))
        self.assertFalse(self.store.insert(make_job(title="Renamed")))
        self.assertEqual(self.store.count(), 1)

    def test_external_id_is_scoped_to_source(self):
        self.assertTrue(self.store.insert(make_job(source="Indeed")))
        self.assertTrue(self.store.insert(make_job(source="LinkedIn")))
        self.assertEqual(self.store.count(), 2)

        self.assertTrue(self.store.exists("abc123", "Indeed"))
        self.assertFalse(self.store.exists("abc123", "Glassdoor"))
        self.assertTrue(self.store.exists("abc123"))

    def test_upsert_is_idempotent(self):
        jobs = [make_job("a1"), make_job("a2")]
        self.assertEqual(self.store.upsert(jobs), 2)
        self.assertEqual(self.store.upsert(jobs), 2)
        self.assertEqual(self.store.count(), 2)
        self.assertEqual(self.store.upsert([]), 0)

    def test_upsert_refreshes_fields(self):
        self.store.insert(make_job(salary="$50,000"))
        self.store.upsert([make_job(salary="$60,000")])
        rows = self.store.recent_jobs()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["salary"], "$60,000")

    def test_recent_jobs_filters_sources(self):
        self.store.insert(make_job("a1", source="Indeed", apply_url="https://x.test/1"))
        self.store.insert(make_job("a2", source="JSearch"))
        self.store.insert(make_job("a3", source="LinkedIn"))

        rows = self.store.recent_jobs()
        self.assertEqual([row["external_id"] for row in rows], ["a3", "a1"])
        self.assertEqual(rows[1]["apply_url"], "https://x.test/1")
        self.assertEqual(rows[1]["location_type"], "On-site")

        self.assertEqual(len(self.store.recent_jobs(["JSearch"], limit=5)), 1)
        self.assertEqual(self.store.recent_jobs([]), [])
        self.assertEqual(len(self.store.recent_jobs(limit=1)), 1)


if __name__ == "__main__":
    unittest.main()
