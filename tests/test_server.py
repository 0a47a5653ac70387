import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import httpx
from fastapi.testclient import TestClient

from config.settings import Settings
from graph.context import build_context
from models.job import CanonicalJobRecord
from server import CORS_HEADERS, create_app, job_to_card


class TestScrapeEndpoint(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.settings = Settings(
            extraction_strategy="job_search",
            rapidapi_key="test-key",
            storage_backend="sqlite",
            db_path=os.path.join(self.tmp.name, "jobs.db"),
            request_delay=0,
            batch_size=3,
            search_config_path="",
        )

        def handler(request):
            return httpx.Response(200, json={"status": "OK", "data": [{
                "job_id": "abc123",
                "job_title": "Instructional Designer",
                "job_apply_link": "https://x.test/1",
                "job_publisher": "Indeed",
            }]})

        self.http_client = httpx.Client(transport=httpx.MockTransport(handler))
        self.client = TestClient(create_app(self.context_factory))

    def tearDown(self):
        self.tmp.cleanup()

    def context_factory(self):
        return build_context(self.settings, http_client=self.http_client, sleep=MagicMock())

    def test_preflight(self):
        response = self.client.options("/scrape-jobs")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"")
        self.assertEqual(response.headers["access-control-allow-origin"], "*")
        self.assertEqual(
            response.headers["access-control-allow-headers"],
            CORS_HEADERS["Access-Control-Allow-Headers"],
        )

    def test_scrape(self):
        body = {"searchTerms": ["Instructional Designer"], "locations": ["Remote"], "batchIndex": 0}

        first = self.client.post("/scrape-jobs", json=body)
        second = self.client.post("/scrape-jobs", json=body)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.headers["access-control-allow-origin"], "*")
        payload = first.json()
        self.assertEqual(
            {key: payload[key] for key in ("success", "inserted", "skipped", "total_found", "hasMore")},
            {"success": True, "inserted": 1, "skipped": 0, "total_found": 1, "hasMore": False},
        )
        self.assertEqual((second.json()["inserted"], second.json()["skipped"]), (0, 1))

    def test_non_json_body_uses_defaults(self):
        response = self.client.post("/scrape-jobs", content=b"not json", headers={"content-type": "text/plain"})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertTrue(payload["hasMore"])
        self.assertEqual(payload["nextBatchIndex"], 1)

    def test_invalid_batch_index(self):
        response = self.client.post("/scrape-jobs", json={"batchIndex": -1})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_missing_configuration(self):
        self.settings.rapidapi_key = ""

        response = self.client.post("/scrape-jobs", json={})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["success"], False)
        self.assertIn("RAPIDAPI_KEY", response.json()["error"])
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_malformed_search_config(self):
        self.settings.search_config_path = os.path.join(self.tmp.name, "search.yaml")
        with open(self.settings.search_config_path, "w") as f:
            f.write("search_terms: [Trainer\n")

        response = self.client.post("/scrape-jobs", json={})

        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.json()["success"])
        self.assertIn("Invalid search config", response.json()["error"])

    def test_unexpected_error(self):
        client = TestClient(create_app(MagicMock(side_effect=RuntimeError("store offline"))))

        response = client.post("/scrape-jobs", json={})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "error": "store offline"})

    def test_list_jobs(self):
        self.client.post("/scrape-jobs", json={"searchTerms": ["Instructional Designer"], "locations": ["Remote"]})

        response = self.client.get("/jobs", params={"limit": 10})

        self.assertEqual(response.status_code, 200)
        jobs = response.json()["jobs"]
        self.assertEqual(len(jobs), 1)
        self.assertEqual(jobs[0]["title"], "Instructional Designer")
        self.assertEqual(jobs[0]["applyUrl"], "https://x.test/1")
        self.assertEqual(jobs[0]["locationType"], "On-site")
        self.assertEqual(jobs[0]["postedAt"], "Today")


class TestJobCard(unittest.TestCase):
    def test_card_fields(self):
        job = CanonicalJobRecord(
            title="Corporate Trainer",
            source="LinkedIn",
            external_id="3812345678",
            posted_at=datetime.now(timezone.utc) - timedelta(days=3),
        )
        card = job_to_card(dict(job.to_row(), id=9))

        self.assertEqual(card["id"], 9)
        self.assertEqual(card["company"], "Unknown Company")
        self.assertEqual(card["employmentType"], "Full-time")
        self.assertEqual(card["postedAt"], "3 days ago")

    def test_bad_timestamp(self):
        self.assertEqual(job_to_card({"posted_at": "not a date"})["postedAt"], "")
        self.assertEqual(job_to_card({})["postedAt"], "")


if __name__ == "__main__":
    unittest.main()
