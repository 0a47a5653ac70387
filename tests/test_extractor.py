import json
import unittest
from unittest.mock import MagicMock

import httpx

from agents.extractor import (
    extract_job_search,
    extract_links_then_pages,
    extract_markdown,
    extract_schema,
    extractor_agent,
)
from config.settings import Settings
from graph.context import ScrapeContext
from models.search import SearchUnit


UNIT = SearchUnit(term="Instructional Designer", location="Remote")


def make_settings(**overrides):
    values = {
        "extraction_strategy": "job_search",
        "rapidapi_key": "test-key",
        "firecrawl_api_key": "fc-key",
        "storage_backend": "sqlite",
        "db_path": "jobs.db",
        "request_delay": 0.4,
        "max_links_per_search": 10,
        "fetch_link_details": True,
    }
    values.update(overrides)
    return Settings(**values)


def make_context(handler, **overrides):
    return ScrapeContext(
        settings=make_settings(**overrides),
        store=MagicMock(),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=MagicMock(),
    )


class TestJobSearchExtraction(unittest.TestCase):
    def test_request_shape(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"status": "OK", "data": [{"job_id": "abc123"}]})

        result = extract_job_search(UNIT, make_context(handler))

        self.assertTrue(result.success)
        self.assertEqual(result.payloads[0].kind, "job_search")
        self.assertEqual(result.payloads[0].jobs, [{"job_id": "abc123"}])

        request = requests[0]
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.host, "jsearch.p.rapidapi.com")
        self.assertEqual(request.url.path, "/search")
        self.assertEqual(request.url.params["query"], "Instructional Designer in Remote")
        self.assertEqual(request.url.params["date_posted"], "month")
        self.assertEqual(request.headers["X-RapidAPI-Key"], "test-key")
        self.assertEqual(request.headers["X-RapidAPI-Host"], "jsearch.p.rapidapi.com")

    def test_http_error_is_a_failed_result(self):
        result = extract_job_search(UNIT, make_context(lambda request: httpx.Response(500, text="boom")))

        self.assertFalse(result.success)
        self.assertEqual(result.payloads, [])
        self.assertIn("500", result.error)

    def test_provider_error_status(self):
        def handler(request):
            return httpx.Response(200, json={"status": "ERROR", "error": {"message": "quota exceeded"}})

        result = extract_job_search(UNIT, make_context(handler))

        self.assertFalse(result.success)
        self.assertIn("quota exceeded", result.error)

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = extract_job_search(UNIT, make_context(handler))

        self.assertFalse(result.success)


    def test_non_dict_items_are_dropped(self):
        def handler(request):
            return httpx.Response(200, json={"status": "OK", "data": [None, "junk", {"job_id": "abc123"}]})

        result = extract_job_search(UNIT, make_context(handler))

        self.assertTrue(result.success)
        self.assertEqual(result.payloads[0].jobs, [{"job_id": "abc123"}])


class TestFirecrawlExtraction(unittest.TestCase):
    def test_schema_extraction(self):
        bodies = []

        def handler(request):
            bodies.append((request, json.loads(request.content)))
            return httpx.Response(200, json={
                "success": True,
                "data": {"extract": {"jobs": [{"title": "Corporate Trainer", "apply_url": "/viewjob?jk=1111111111111111"}]}},
            })

        result = extract_schema(UNIT, make_context(handler))

        request, body = bodies[0]
        self.assertEqual(str(request.url), "https://api.firecrawl.dev/v1/scrape")
        self.assertEqual(request.headers["Authorization"], "Bearer fc-key")
        self.assertEqual(body["url"], "https://www.indeed.com/jobs?q=Instructional+Designer&l=Remote")
        self.assertEqual(body["formats"], ["extract"])
        self.assertIn("schema", body["extract"])

        payload = result.payloads[0]
        self.assertEqual(payload.kind, "json_extraction")
        self.assertEqual(len(payload.jobs), 1)
        self.assertEqual(payload.source_url, body["url"])

    def test_schema_extraction_drops_non_dict_items(self):
        def handler(request):
            return httpx.Response(
                200, json={"success": True, "data": {"extract": {"jobs": ["junk", {"title": "Corporate Trainer"}]}}}
            )

        result = extract_schema(UNIT, make_context(handler))

        self.assertTrue(result.success)
        self.assertEqual(result.payloads[0].jobs, [{"title": "Corporate Trainer"}])

    def test_markdown_envelope_failure(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "blocked"})

        result = extract_markdown(UNIT, make_context(handler))

        self.assertFalse(result.success)
        self.assertIn("blocked", result.error)

    def test_markdown(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "data": {"markdown": "# Jobs", "metadata": {"title": "Jobs"}}})

        result = extract_markdown(UNIT, make_context(handler))

        payload = result.payloads[0]
        self.assertEqual(payload.kind, "markdown")
        self.assertEqual(payload.markdown, "# Jobs")
        self.assertEqual(payload.metadata, {"title": "Jobs"})


class TestLinkExtraction(unittest.TestCase):
    def setUp(self):
        self.requested = []

        def handler(request):
            body = json.loads(request.content)
            self.requested.append(body)
            if body["url"].startswith("https://www.indeed.com/jobs"):
                return httpx.Response(200, json={"success": True, "data": {
                    "html": '<a href="/viewjob?jk=bbbbbbbbbbbbbbb2">Trainer</a><a href="/jobs?q=x&start=10">Next</a>',
                    "links": [
                        "https://www.indeed.com/viewjob?jk=aaaaaaaaaaaaaaa1",
                        "https://www.indeed.com/viewjob?jk=ccccccccccccccc3",
                    ],
                }})
            return httpx.Response(200, json={"success": True, "data": {
                "markdown": "Remote\nFull-time",
                "metadata": {"title": "Trainer - Acme - Remote | Indeed.com", "sourceURL": body["url"]},
            }})

        self.handler = handler

    def test_fetches_each_posting(self):
        context = make_context(self.handler, max_links_per_search=2)
        result = extract_links_then_pages(UNIT, context)

        self.assertEqual(self.requested[0]["formats"], ["links", "html"])
        self.assertEqual(
            [body["url"] for body in self.requested[1:]],
            [
                "https://www.indeed.com/viewjob?jk=bbbbbbbbbbbbbbb2",
                "https://www.indeed.com/viewjob?jk=aaaaaaaaaaaaaaa1",
            ],
        )
        self.assertTrue(all(body["formats"] == ["markdown", "html"] for body in self.requested[1:]))
        self.assertEqual([payload.kind for payload in result.payloads], ["markdown", "markdown"])
        self.assertEqual(result.payloads[0].source_url, "https://www.indeed.com/viewjob?jk=bbbbbbbbbbbbbbb2")

    def test_throttles_between_calls(self):
        context = make_context(self.handler, max_links_per_search=2)
        extract_links_then_pages(UNIT, context)

        self.assertEqual(context.sleep.call_count, 2)
        context.sleep.assert_called_with(0.4)

    def test_link_list_only(self):
        result = extract_links_then_pages(UNIT, make_context(self.handler, fetch_link_details=False))

        self.assertEqual(len(self.requested), 1)
        self.assertEqual(len(result.payloads), 1)
        self.assertEqual(result.payloads[0].kind, "link_list")
        self.assertEqual(len(result.payloads[0].links), 4)


class TestExtractorAgent(unittest.TestCase):
    def test_failure_yields_zero_payloads(self):
        context = make_context(lambda request: httpx.Response(500))
        result = extractor_agent({"current_unit": UNIT}, {"configurable": {"context": context}})

        self.assertEqual(result["payloads"], [])
        self.assertEqual(len(result["errors"]), 1)

    def test_unexpected_shape_yields_zero_payloads(self):
        context = make_context(lambda request: httpx.Response(200, json={"success": True, "data": {"markdown": 5}}),
                               extraction_strategy="markdown")
        result = extractor_agent({"current_unit": UNIT}, {"configurable": {"context": context}})

        self.assertEqual(result["payloads"], [])
        self.assertEqual(len(result["errors"]), 1)
        self.assertIn("Unexpected response shape", result["errors"][0])

    def test_dispatches_on_strategy(self):
        context = make_context(lambda request: httpx.Response(200, json={"success": True, "data": {"markdown": "x"}}),
                               extraction_strategy="markdown")
        result = extractor_agent({"current_unit": UNIT}, {"configurable": {"context": context}})

        self.assertEqual([payload.kind for payload in result["payloads"]], ["markdown"])
        self.assertEqual(result["errors"], [])

    def test_first_call_is_not_delayed(self):
        context = make_context(lambda request: httpx.Response(200, json={"data": []}))
        config = {"configurable": {"context": context}}

        extractor_agent({"current_unit": UNIT}, config)
        context.sleep.assert_not_called()

        extractor_agent({"current_unit": UNIT}, config)
        context.sleep.assert_called_once_with(0.4)


if __name__ == "__main__":
    unittest.main()
