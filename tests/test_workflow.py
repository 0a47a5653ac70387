import os
import sqlite3
import tempfile
import unittest
from unittest.mock import MagicMock

import httpx

from config.settings import ConfigurationError, Settings
from graph.context import build_context
from graph.workflow import advance_to_next_unit, run_batch, should_continue
from models.search import ScrapeRequest, SearchUnit
from tools.job_store import StorageError


JOB = {
    "job_id": "abc123",
    "job_title": "Instructional Designer",
    "employer_name": "Acme Learning",
    "job_apply_link": "https://x.test/1",
    "job_is_remote": True,
}


def jsearch_handler(jobs):
    def handler(request):
        return httpx.Response(200, json={"status": "OK", "data": jobs})
    return handler


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "jobs.db")

    def tearDown(self):
        self.tmp.cleanup()

    def make_settings(self, **overrides):
        values = {
            "extraction_strategy": "job_search",
            "rapidapi_key": "test-key",
            "storage_backend": "sqlite",
            "db_path": self.db_path,
            "request_delay": 0.4,
            "batch_size": 3,
            "search_config_path": "",
        }
        values.update(overrides)
        return Settings(**values)

    def make_context(self, handler, store=None, **overrides):
        return build_context(
            self.make_settings(**overrides),
            store=store,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            sleep=MagicMock(),
        )


class TestSingleSearch(WorkflowTestCase):
    request = ScrapeRequest.model_validate(
        {"searchTerms": ["Instructional Designer"], "locations": ["Remote"], "batchIndex": 0}
    )

    def test_new_job_is_inserted(self):
        context = self.make_context(jsearch_handler([JOB]))

        response = run_batch(self.request, context)

        self.assertEqual(
            response.to_payload(),
            {
                "success": True,
                "inserted": 1,
                "skipped": 0,
                "total_found": 1,
                "hasMore": False,
                "nextBatchIndex": None,
                "progress": response.progress,
            },
        )
        conn = sqlite3.connect(self.db_path)
        try:
            rows = conn.execute("SELECT external_id, apply_url, source FROM jobs").fetchall()
        finally:
            conn.close()
        self.assertEqual(rows, [("abc123", "https://x.test/1", "JSearch")])

    def test_replay_skips_the_stored_job(self):
        run_batch(self.request, self.make_context(jsearch_handler([JOB])))

        response = run_batch(self.request, self.make_context(jsearch_handler([JOB])))

        self.assertEqual((response.inserted, response.skipped, response.total_found), (0, 1, 1))
        self.assertEqual(context_count(self.db_path), 1)

    def test_upstream_error_is_not_fatal(self):
        context = self.make_context(lambda request: httpx.Response(500, text="Internal Server Error"))

        response = run_batch(self.request, context)

        self.assertTrue(response.success)
        self.assertEqual((response.inserted, response.skipped, response.total_found), (0, 0, 0))
        self.assertFalse(response.has_more)

    def test_non_dict_results_are_ignored(self):
        context = self.make_context(jsearch_handler([None, JOB]))

        response = run_batch(self.request, context)

        self.assertTrue(response.success)
        self.assertEqual((response.inserted, response.skipped, response.total_found), (1, 0, 1))

    def test_malformed_listing_keeps_the_rest(self):
        broken = dict(JOB, job_id="def456", job_city=123, job_min_salary="inf")
        context = self.make_context(jsearch_handler([JOB, broken]))

        response = run_batch(self.request, context)

        self.assertEqual((response.inserted, response.skipped, response.total_found), (2, 0, 2))

    def test_storage_failure_drops_the_record(self):
        store = MagicMock()
        store.exists.return_value = False
        store.insert.side_effect = StorageError("disk full")
        context = self.make_context(jsearch_handler([JOB, dict(JOB, job_id="def456")]), store=store)

        response = run_batch(self.request, context)

        self.assertTrue(response.success)
        self.assertEqual((response.inserted, response.skipped, response.total_found), (0, 0, 2))
        self.assertEqual(store.insert.call_count, 2)

    def test_stale_jobs_are_filtered(self):
        stale = dict(JOB, job_id="old1", job_posted_at="6 weeks ago")
        context = self.make_context(jsearch_handler([JOB, stale]))

        response = run_batch(self.request, context)

        self.assertEqual((response.inserted, response.skipped, response.total_found), (1, 0, 2))

    def test_duplicate_within_one_batch(self):
        context = self.make_context(jsearch_handler([JOB, dict(JOB)]))

        response = run_batch(self.request, context)

        self.assertEqual((response.inserted, response.skipped), (1, 1))

    def test_missing_credentials_abort(self):
        with self.assertRaises(ConfigurationError):
            build_context(self.make_settings(rapidapi_key=""))

        context = self.make_context(jsearch_handler([JOB]))
        context.settings = self.make_settings(rapidapi_key="")
        with self.assertRaises(ConfigurationError):
            run_batch(self.request, context)


def context_count(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]
    finally:
        conn.close()


class TestBatchSweep(WorkflowTestCase):
    def test_cursor_visits_every_search_once(self):
        queries = []

        def handler(request):
            query = request.url.params["query"]
            queries.append(query)
            return httpx.Response(200, json={"status": "OK", "data": [
                dict(JOB, job_id=f"id-{len(queries)}", job_title=f"Trainer for {query}"),
            ]})

        context = self.make_context(handler, batch_size=4)
        terms = ["Instructional Designer", "Corporate Trainer"]
        locations = ["Remote", "Tampa, FL", "Miami, FL"]

        responses = []
        batch_index = 0
        while batch_index is not None:
            response = run_batch(
                ScrapeRequest(search_terms=terms, locations=locations, batch_index=batch_index),
                context,
            )
            responses.append(response)
            batch_index = response.next_batch_index if response.has_more else None

        self.assertEqual(len(responses), 2)
        self.assertEqual([r.has_more for r in responses], [True, False])
        self.assertEqual(responses[0].next_batch_index, 1)
        self.assertEqual(sorted(queries), sorted(f"{t} in {l}" for l in locations for t in terms))
        self.assertEqual(len(set(queries)), 6)
        self.assertEqual(sum(r.inserted for r in responses), 6)
        # one delay before every call but the first
        self.assertEqual(context.sleep.call_count, 5)

    def test_batch_past_the_end(self):
        context = self.make_context(jsearch_handler([JOB]))

        response = run_batch(
            ScrapeRequest(search_terms=["Trainer"], locations=["Remote"], batch_index=3),
            context,
        )

        self.assertEqual((response.inserted, response.skipped, response.total_found), (0, 0, 0))
        self.assertFalse(response.has_more)
        self.assertIsNone(response.next_batch_index)


class TestLoopControl(unittest.TestCase):
    def test_should_continue(self):
        units = [SearchUnit(term="A", location="X"), SearchUnit(term="B", location="X")]
        self.assertEqual(should_continue({"batch_units": units, "current_unit_index": 0}), "advance")
        self.assertEqual(should_continue({"batch_units": units, "current_unit_index": 1}), "formatter")
        self.assertEqual(should_continue({"batch_units": [], "current_unit_index": 0}), "formatter")

    def test_advance_resets_unit_state(self):
        units = [SearchUnit(term="A", location="X"), SearchUnit(term="B", location="X")]
        result = advance_to_next_unit({"batch_units": units, "current_unit_index": 0, "payloads": ["x"]})

        self.assertEqual(result["current_unit_index"], 1)
        self.assertEqual(result["current_unit"], units[1])
        self.assertEqual(result["payloads"], [])
        self.assertEqual(result["parsed_jobs"], [])
        self.assertEqual(result["eligible_jobs"], [])


if __name__ == "__main__":
    unittest.main()
