import asyncio
import errno
import logging
import socket
import ssl
import time
from typing import Optional, Tuple

import httpx

from statuswatch.config.config import Config
from statuswatch.contracts.probe_result import ProbeResult
from statuswatch.core.clock import Clock, epoch_millis
from statuswatch.core.metrics_manager import MetricsManager

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """
    Turn dashboard input (bare host, bare IP or full URL) into a fetchable URL.
    Already-qualified URLs are returned unchanged apart from surrounding whitespace.
    """
    target_url = url.strip()
    if not target_url.lower().startswith(("http://", "https://")):
        target_url = f"http://{target_url}"
    return target_url


def _iter_causes(exc: BaseException):
    """Yield exc and everything chained behind it, including exception group members."""
    pending = [exc]
    seen = set()
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        pending.append(current.__cause__ or current.__context__)
        pending.extend(getattr(current, "exceptions", None) or ())


def classify_failure(exc: BaseException) -> str:
    """
    Map a probe exception to a coarse failure reason for logs and metrics.

    Returns one of: timeout, invalid_url, dns, tls, refused, connect, protocol, error.
    """
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return "timeout"
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return "invalid_url"
    for cause in _iter_causes(exc):
        if isinstance(cause, socket.gaierror):
            return "dns"
        if isinstance(cause, ssl.SSLError):
            return "tls"
        if isinstance(cause, ConnectionRefusedError) or (
            isinstance(cause, OSError) and cause.errno == errno.ECONNREFUSED
        ):
            return "refused"
    if isinstance(exc, httpx.ConnectError):
        return "connect"
    if isinstance(exc, httpx.ProtocolError):
        return "protocol"
    return "error"


class Prober:
    """
    Runs single reachability checks against target URLs.

    Any completed HTTP exchange counts as online, whatever its status code; every
    failure (timeout, DNS, refused connection, TLS, malformed URL) is reported as
    offline. probe() does not raise.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout_ms: int = Config.PROBE_TIMEOUT_MS,
        user_agent: str = Config.PROBE_USER_AGENT,
        follow_redirects: bool = Config.PROBE_FOLLOW_REDIRECTS,
        clock: Clock = epoch_millis,
        metrics_manager: Optional[MetricsManager] = None,
    ):
        self.client = client
        self.timeout_ms = timeout_ms
        self.follow_redirects = follow_redirects
        self.clock = clock
        self.metrics_manager = metrics_manager
        self.headers = {
            "User-Agent": user_agent,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }

    async def probe(self, url: str, timeout_ms: Optional[int] = None) -> ProbeResult:
        """
        Probe one target.

        Args:
            url (str): Target URL or bare host; normalized before the request.
            timeout_ms (Optional[int]): Hard budget for the whole exchange. Defaults
                to the prober's configured timeout.

        Returns:
            ProbeResult: Online with latency >= 1ms, or offline with latency 0.
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        timeout_s = timeout_ms / 1000.0
        target_url = normalize_url(url)
        start = time.perf_counter()
        try:
            # wait_for cancels the in-flight request once the budget runs out
            status_code, answered_at = await asyncio.wait_for(
                self._fetch(target_url, timeout_s), timeout=timeout_s
            )
        except Exception as e:
            reason = classify_failure(e)
            logger.warning(f"Probe failed for {target_url}: reason={reason} error={e!r}")
            if self.metrics_manager:
                self.metrics_manager.record_probe_failure(reason)
            return ProbeResult.offline(checked_at_ms=self.clock())

        latency_ms = int((answered_at - start) * 1000)
        logger.debug(f"Probe success for {target_url}: status={status_code} latency={latency_ms}ms")
        return ProbeResult.online(latency_ms=latency_ms, checked_at_ms=self.clock())

    async def _fetch(self, url: str, timeout_s: float) -> Tuple[int, float]:
        """Return the status code and the perf_counter reading taken when headers arrived."""
        request = self.client.build_request(
            "GET", url, headers=self.headers, timeout=httpx.Timeout(timeout_s)
        )
        # Only the status line and headers are needed; the body is never read
        response = await self.client.send(
            request, stream=True, follow_redirects=self.follow_redirects
        )
        answered_at = time.perf_counter()
        try:
            return response.status_code, answered_at
        finally:
            await response.aclose()
