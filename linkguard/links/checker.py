"""Probe one URL and classify it as working, warning, or broken.

Classification order
--------------------
- 2xx                         → working
- 3xx                         → warning (reachable only via redirect)
- 4xx, ordinary host          → broken
- 4xx, fragile host           → broken for 404/410, warning otherwise
- 5xx                         → warning (after retries, never broken)
- timeout                     → warning, code 408 (after retries)
- other transport error       → warning on a fragile host, else broken; code 0

Only fragile hosts are retried (5xx, timeout, transport error), with a fixed
pause between attempts.  An ordinary host's first answer is final.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.parse import urlsplit

import httpx

from linkguard.config import settings
from linkguard.errors import LinkProbeFailure, ScanCancelled
from linkguard.links.models import LinkProbeResult, LinkStatus
from linkguard.links.policy import FragileDomainPolicy, load_policy

logger = logging.getLogger(__name__)

# Default client signatures get blocked by some hosts; look like a browser.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
}

# Synthetic code recorded for a timed-out probe; no server sent it.
TIMEOUT_STATUS_CODE = 408


@dataclass(frozen=True)
class _Attempt:
    """Raw outcome of a single HTTP attempt."""

    status_code: int = 0
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.timed_out or self.error is not None or self.status_code >= 500


def _is_probeable(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


class LinkHealthChecker:
    """Stateless (apart from its HTTP connection pool) link prober.

    Args:
        policy: Fragile-domain policy; defaults to :func:`load_policy`.
        timeout: Per-attempt deadline in seconds.
        max_retries: Extra attempts granted to fragile hosts.
        retry_delay: Fixed pause between attempts.
        http_client: Optional pre-built ``httpx.Client`` (tests inject one).
        sleep: Injected for tests.
    """

    def __init__(
        self,
        policy: Optional[FragileDomainPolicy] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.policy = policy or load_policy()
        self._timeout = timeout if timeout is not None else settings.probe_timeout
        self._max_retries = max(0, max_retries if max_retries is not None else settings.probe_max_retries)
        self._retry_delay = retry_delay if retry_delay is not None else settings.probe_retry_delay
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            headers=BROWSER_HEADERS,
            timeout=self._timeout,
            follow_redirects=True,
        )
        self._sleep = sleep

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "LinkHealthChecker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Single probe
    # ------------------------------------------------------------------

    def probe(self, url: str) -> LinkProbeResult:
        """Probe *url* with the domain-aware retry policy.

        Raises:
            LinkProbeFailure: Only for failures outside the HTTP error
                hierarchy; callers record those as broken.
        """
        if not _is_probeable(url):
            return LinkProbeResult(url, LinkStatus.WARNING, 0, "Invalid URL format")

        fragile = self.policy.is_fragile(url)
        attempts = 1 + (self._max_retries if fragile else 0)

        outcome = _Attempt()
        for attempt in range(1, attempts + 1):
            outcome = self._attempt(url)
            if not outcome.retryable or attempt == attempts:
                break
            logger.info(
                "Retrying %s after %s (%d/%d)",
                url,
                outcome.error or ("timeout" if outcome.timed_out else outcome.status_code),
                attempt,
                self._max_retries,
            )
            self._sleep(self._retry_delay)

        result = self._classify(url, outcome, fragile)
        logger.debug("%s -> %s (%d)", url, result.status.value, result.http_status_code)
        return result

    def _attempt(self, url: str) -> _Attempt:
        try:
            # Stream so large bodies are never downloaded; only the status matters.
            with self._client.stream("GET", url) as response:
                return _Attempt(status_code=response.status_code)
        except httpx.TimeoutException:
            return _Attempt(timed_out=True)
        except httpx.HTTPError as exc:
            return _Attempt(error=str(exc) or type(exc).__name__)
        except httpx.InvalidURL as exc:
            return _Attempt(error=str(exc))
        except Exception as exc:
            raise LinkProbeFailure(url, repr(exc)) from exc

    def _classify(self, url: str, outcome: _Attempt, fragile: bool) -> LinkProbeResult:
        if outcome.timed_out:
            return LinkProbeResult(url, LinkStatus.WARNING, TIMEOUT_STATUS_CODE, "Timeout")

        if outcome.error is not None:
            status = LinkStatus.WARNING if fragile else LinkStatus.BROKEN
            return LinkProbeResult(url, status, 0, outcome.error)

        code = outcome.status_code
        if 200 <= code < 300:
            status = LinkStatus.WORKING
        elif 400 <= code < 500:
            if not fragile or code in self.policy.hard_client_errors:
                status = LinkStatus.BROKEN
            else:
                # Soft codes and any other 4xx on a fragile host: likely bot blocking.
                status = LinkStatus.WARNING
        else:
            # 1xx, 3xx, 5xx
            status = LinkStatus.WARNING
        return LinkProbeResult(url, status, code)

    # ------------------------------------------------------------------
    # Many probes
    # ------------------------------------------------------------------

    def safe_probe(self, url: str) -> LinkProbeResult:
        """:meth:`probe` that never raises; failures are recorded as broken/0."""
        try:
            return self.probe(url)
        except Exception as exc:
            logger.error("Probe of %s failed: %s", url, exc)
            return LinkProbeResult(url, LinkStatus.BROKEN, 0, str(exc))

    def probe_many(
        self,
        urls: Sequence[str],
        concurrency: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[LinkProbeResult]:
        """Probe *urls* and return results in input order.

        ``concurrency=1`` probes one link at a time.  Larger values use a
        bounded thread pool; keep it small, since bursts against the same
        fragile host look like abusive traffic and invite more blocking.

        Raises:
            ScanCancelled: If *cancel_event* is set between probes.
        """
        def _check_cancel() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelled("Link checking cancelled")

        if concurrency <= 1 or len(urls) <= 1:
            results: list[LinkProbeResult] = []
            for url in urls:
                _check_cancel()
                results.append(self.safe_probe(url))
            return results

        def _task(url: str) -> LinkProbeResult:
            _check_cancel()
            return self.safe_probe(url)

        with ThreadPoolExecutor(
            max_workers=min(concurrency, len(urls)), thread_name_prefix="probe"
        ) as pool:
            return list(pool.map(_task, urls))
