import unittest

import httpx

from contracts.probe_outcome import ErrorType, OutcomeKind
from core.prober import Prober, RequestConstructionError
from core.retry_policy import RetryPolicy

URL = "https://hc.example/ping/abc"


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestProber(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests = []
        self.responses = []
        self.sleep = FakeSleep()
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handler))
        self.prober = Prober(self.client, retry_policy=RetryPolicy(), sleep=self.sleep)

    async def asyncTearDown(self):
        await self.client.aclose()

    def _handler(self, request):
        self.requests.append(request)
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, Exception):
            raise result
        return httpx.Response(result, text="ignored body")

    async def test_success(self):
        self.responses = [200]
        outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(outcome.attempts, 1)
        self.assertGreaterEqual(outcome.duration, 0.0)
        self.assertEqual(len(self.requests), 1)
        self.assertEqual(self.requests[0].method, "GET")
        self.assertEqual(str(self.requests[0].url), URL)
        self.assertEqual(self.sleep.delays, [])

    async def test_redirect_is_followed_to_final_target(self):
        hits = []

        def handler(request):
            hits.append(str(request.url))
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://hc.example/new"})
            return httpx.Response(200)

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True
        ) as client:
            outcome = await Prober(client, sleep=self.sleep).probe("http://hc.example/old")
        self.assertEqual(hits, ["http://hc.example/old", "https://hc.example/new"])
        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(outcome.attempts, 1)

    async def test_redirect_target_status_is_classified(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(302, headers={"Location": "/gone"})
            return httpx.Response(404)

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True
        ) as client:
            outcome = await Prober(client, sleep=self.sleep).probe("https://hc.example/old")
        self.assertEqual(outcome.kind, OutcomeKind.CLIENT_ERROR)
        self.assertEqual(outcome.status_code, 404)

    async def test_redirect_loop_is_request_failure(self):
        def handler(request):
            return httpx.Response(302, headers={"Location": str(request.url)})

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True, max_redirects=3
        ) as client:
            outcome = await Prober(client, sleep=self.sleep).probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.TRANSPORT_FAILURE)
        self.assertEqual(outcome.error_type, ErrorType.REQUEST_FAILED)
        self.assertIn("TooManyRedirects", outcome.error)
        self.assertEqual(self.sleep.delays, [])

    async def test_client_error_is_not_retried(self):
        self.responses = [404]
        with self.assertLogs("core.prober", level="WARNING"):
            outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.CLIENT_ERROR)
        self.assertEqual(outcome.status_code, 404)
        self.assertEqual(len(self.requests), 1)
        self.assertEqual(self.sleep.delays, [])

    async def test_server_error_retried_until_exhausted(self):
        self.responses = [503]
        outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.SERVER_ERROR)
        self.assertEqual(outcome.status_code, 503)
        self.assertEqual(outcome.attempts, 5)
        self.assertEqual(len(self.requests), 5)
        self.assertEqual(self.sleep.delays, [2.0, 4.0, 8.0, 10.0])

    async def test_transient_server_error_then_success(self):
        self.responses = [500, 502, 200]
        outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.attempts, 3)
        self.assertEqual(self.sleep.delays, [2.0, 4.0])

    async def test_transport_failure_on_every_attempt(self):
        self.responses = [httpx.ConnectError("connection refused")]
        with self.assertLogs("core.prober", level="ERROR"):
            outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.TRANSPORT_FAILURE)
        self.assertEqual(outcome.error_type, ErrorType.REQUEST_FAILED)
        self.assertIsNone(outcome.status_code)
        self.assertEqual(outcome.attempts, 5)
        self.assertIn("ConnectError", outcome.error)
        self.assertEqual(len(self.requests), 5)

    async def test_transport_failure_then_recovery(self):
        self.responses = [httpx.ReadTimeout("timed out"), 200]
        outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.attempts, 2)

    async def test_non_transport_http_error_is_not_retried(self):
        self.responses = [httpx.TooManyRedirects("redirect loop")]
        outcome = await self.prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.TRANSPORT_FAILURE)
        self.assertEqual(outcome.error_type, ErrorType.REQUEST_FAILED)
        self.assertEqual(outcome.attempts, 1)

    async def test_single_attempt_policy(self):
        prober = Prober(self.client, retry_policy=RetryPolicy(max_attempts=1), sleep=self.sleep)
        self.responses = [500]
        outcome = await prober.probe(URL)
        self.assertEqual(outcome.kind, OutcomeKind.SERVER_ERROR)
        self.assertEqual(len(self.requests), 1)
        self.assertEqual(self.sleep.delays, [])

    async def test_malformed_url_is_request_creation_failure(self):
        self.responses = [200]
        for url in ("not-a-url", "ftp://hc.example/ping", ""):
            outcome = await self.prober.probe(url)
            self.assertEqual(outcome.kind, OutcomeKind.TRANSPORT_FAILURE)
            self.assertEqual(outcome.error_type, ErrorType.REQUEST_CREATION)
            self.assertEqual(outcome.attempts, 0)
        self.assertEqual(self.requests, [])

    def test_build_request_raises_for_relative_url(self):
        with self.assertRaises(RequestConstructionError):
            self.prober.build_request("/ping/abc")


if __name__ == "__main__":
    unittest.main()
