import asyncio
import errno
import socket
import ssl
import time
import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx

from statuswatch.contracts.probe_result import ServiceStatus
from statuswatch.core.prober import Prober, classify_failure, normalize_url


def chained(exc, cause):
    exc.__cause__ = cause
    return exc


class TestNormalizeUrl(unittest.TestCase):
    def test_bare_host_gets_http_scheme(self):
        self.assertEqual(normalize_url("example.com"), "http://example.com")

    def test_bare_ip_with_port(self):
        self.assertEqual(normalize_url("10.0.0.5:8080"), "http://10.0.0.5:8080")

    def test_qualified_urls_unchanged(self):
        self.assertEqual(normalize_url("http://example.com"), "http://example.com")
        self.assertEqual(normalize_url("https://example.com/health"), "https://example.com/health")

    def test_whitespace_is_stripped(self):
        self.assertEqual(normalize_url("  example.com \n"), "http://example.com")

    def test_idempotent(self):
        once = normalize_url("example.com")
        self.assertEqual(normalize_url(once), once)
        self.assertEqual(normalize_url("example.com"), normalize_url("http://example.com"))


class TestClassifyFailure(unittest.TestCase):
    def test_timeouts(self):
        self.assertEqual(classify_failure(asyncio.TimeoutError()), "timeout")
        self.assertEqual(classify_failure(httpx.ReadTimeout("slow")), "timeout")

    def test_invalid_url(self):
        self.assertEqual(classify_failure(httpx.UnsupportedProtocol("ftp")), "invalid_url")
        self.assertEqual(classify_failure(httpx.InvalidURL("bad")), "invalid_url")

    def test_dns_failure(self):
        exc = chained(httpx.ConnectError("lookup"), socket.gaierror(-2, "Name or service not known"))
        self.assertEqual(classify_failure(exc), "dns")

    def test_tls_failure(self):
        exc = chained(httpx.ConnectError("handshake"), ssl.SSLCertVerificationError("bad cert"))
        self.assertEqual(classify_failure(exc), "tls")

    def test_connection_refused(self):
        exc = chained(httpx.ConnectError("refused"), OSError(errno.ECONNREFUSED, "Connection refused"))
        self.assertEqual(classify_failure(exc), "refused")

    def test_connection_refused_inside_exception_group(self):
        group = ExceptionGroup("attempts", [ConnectionRefusedError(errno.ECONNREFUSED, "refused")])
        inner = chained(OSError("All connection attempts failed"), group)
        exc = chained(httpx.ConnectError("All connection attempts failed"), inner)
        self.assertEqual(classify_failure(exc), "refused")

    def test_generic_connect_and_protocol(self):
        self.assertEqual(classify_failure(httpx.ConnectError("unreachable")), "connect")
        self.assertEqual(classify_failure(httpx.RemoteProtocolError("garbage")), "protocol")

    def test_unknown(self):
        self.assertEqual(classify_failure(ValueError("?")), "error")


class TestProber(unittest.IsolatedAsyncioTestCase):
    def make_prober(self, handler, **kwargs):
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Prober(self.client, clock=lambda: 1_700_000_000_000, **kwargs)

    async def asyncTearDown(self):
        if getattr(self, "client", None) is not None:
            await self.client.aclose()

    async def test_success_is_online_with_positive_latency(self):
        prober = self.make_prober(lambda request: httpx.Response(200, text="ok"))
        result = await prober.probe("http://example.com")
        self.assertEqual(result.status, ServiceStatus.ONLINE)
        self.assertGreaterEqual(result.latency_ms, 1)
        self.assertEqual(result.checked_at_ms, 1_700_000_000_000)

    async def test_non_2xx_still_counts_as_online(self):
        for code in (301, 403, 404, 500, 503):
            with self.subTest(code=code):
                prober = self.make_prober(lambda request, code=code: httpx.Response(code))
                result = await prober.probe("example.com")
                self.assertEqual(result.status, ServiceStatus.ONLINE)
                await self.client.aclose()

    async def test_bare_host_and_full_url_hit_same_address(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(204)

        prober = self.make_prober(handler)
        await prober.probe("example.com")
        await prober.probe("http://example.com")
        self.assertEqual(len(seen), 2)
        self.assertEqual(seen[0], seen[1])

    async def test_sends_browser_like_no_cache_headers(self):
        captured = {}

        def handler(request):
            captured.update(request.headers)
            return httpx.Response(200)

        prober = self.make_prober(handler, user_agent="Mozilla/5.0 test")
        await prober.probe("example.com")
        self.assertEqual(captured["user-agent"], "Mozilla/5.0 test")
        self.assertEqual(captured["cache-control"], "no-cache")
        self.assertEqual(captured["pragma"], "no-cache")

    async def test_transport_error_is_offline_with_zero_latency(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        prober = self.make_prober(handler)
        result = await prober.probe("http://down.internal")
        self.assertEqual(result.status, ServiceStatus.OFFLINE)
        self.assertEqual(result.latency_ms, 0)
        self.assertEqual(result.checked_at_ms, 1_700_000_000_000)

    async def test_slow_target_times_out_as_offline(self):
        async def handler(request):
            await asyncio.sleep(10)
            return httpx.Response(200)

        prober = self.make_prober(handler, timeout_ms=50)
        started = time.monotonic()
        result = await prober.probe("http://slow.internal")
        self.assertLess(time.monotonic() - started, 2.0)
        self.assertEqual(result.status, ServiceStatus.OFFLINE)
        self.assertEqual(result.latency_ms, 0)

    async def test_per_call_timeout_overrides_default(self):
        async def handler(request):
            await asyncio.sleep(10)
            return httpx.Response(200)

        prober = self.make_prober(handler, timeout_ms=60_000)
        result = await prober.probe("http://slow.internal", timeout_ms=50)
        self.assertEqual(result.status, ServiceStatus.OFFLINE)

    async def test_failure_reason_is_reported_to_metrics(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        metrics = MagicMock()
        prober = self.make_prober(handler, metrics_manager=metrics)
        await prober.probe("http://down.internal")
        metrics.record_probe_failure.assert_called_once_with("connect")

    async def test_latency_excludes_connection_close(self):
        async def slow_close():
            await asyncio.sleep(0.3)

        response = MagicMock(status_code=200)
        response.aclose = AsyncMock(side_effect=slow_close)
        client = MagicMock()
        client.send = AsyncMock(return_value=response)
        prober = Prober(client, timeout_ms=2000)
        result = await prober.probe("http://example.com")
        self.assertEqual(result.status, ServiceStatus.ONLINE)
        self.assertLess(result.latency_ms, 250)
        response.aclose.assert_awaited_once()

    async def test_nothing_listening_is_offline(self):
        self.client = httpx.AsyncClient()
        prober = Prober(self.client, timeout_ms=2000)
        before = int(time.time() * 1000)
        result = await prober.probe("http://127.0.0.1:1")
        self.assertEqual(result.status, ServiceStatus.OFFLINE)
        self.assertEqual(result.latency_ms, 0)
        self.assertGreaterEqual(result.checked_at_ms, before)


if __name__ == "__main__":
    unittest.main()
