"""Quota-aware client for the YouTube Data API v3.

Every request reserves its quota cost on one credential from a
:class:`~linkguard.youtube.credentials.CredentialPool`.  When the API answers
with a quota signal the credential is flagged and the same request is
replayed with the next one, so callers never see a rotation happen; they
only see :class:`~linkguard.errors.QuotaExhausted` once the whole pool is
spent.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import httpx

from linkguard.config import settings
from linkguard.errors import TransientNetworkError, UpstreamAPIError
from linkguard.youtube.credentials import Credential, CredentialPool

logger = logging.getLogger(__name__)

# Quota units charged per call (YouTube Data API v3 cost table).
ENDPOINT_COSTS: dict[str, int] = {
    "channels": 1,
    "playlistItems": 1,
    "videos": 1,
    "search": 100,
}

_QUOTA_REASONS = {"quotaExceeded", "dailyLimitExceeded"}

# The API accepts at most 50 ids per ``videos`` call.
_MAX_IDS_PER_CALL = 50


def _error_reasons(response: httpx.Response) -> list[str]:
    """Return the ``error.errors[].reason`` values of an API error body."""
    try:
        body = response.json()
    except ValueError:
        return []
    errors = (body or {}).get("error", {}).get("errors", []) if isinstance(body, dict) else []
    return [e.get("reason", "") for e in errors if isinstance(e, dict)]


def is_quota_signal(response: httpx.Response) -> bool:
    """``True`` for a 403 carrying a quota reason, or a 403 with no reason at all."""
    if response.status_code != 403:
        return False
    reasons = _error_reasons(response)
    if not reasons:
        return True
    return any(r in _QUOTA_REASONS for r in reasons)


class QuotaManagedAPIClient:
    """Issue named API calls through a rotating credential pool.

    Args:
        pool: The shared credential pool (owned by the composition root).
        base_url: API root; defaults to ``settings.youtube_api_base``.
        http_client: Optional pre-built ``httpx.Client`` (tests inject one).
        max_attempts: Attempts per credential for transient failures.
        retry_delay: Fixed pause between transient-failure attempts.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        pool: CredentialPool,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._pool = pool
        self._base_url = (base_url or settings.youtube_api_base).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=settings.api_timeout)
        self._max_attempts = max(1, max_attempts if max_attempts is not None else settings.api_max_attempts)
        self._retry_delay = retry_delay if retry_delay is not None else settings.api_retry_delay
        self._sleep = sleep

    @property
    def pool(self) -> CredentialPool:
        return self._pool

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "QuotaManagedAPIClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Core request loop
    # ------------------------------------------------------------------

    def make_request(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Call ``GET {base}/{endpoint}`` and return the decoded JSON payload.

        Raises:
            QuotaExhausted: When no credential with remaining quota is left.
            TransientNetworkError: When the API stayed unreachable.
            UpstreamAPIError: For any other non-2xx answer.
        """
        cost = ENDPOINT_COSTS.get(endpoint, 1)
        params = dict(params or {})

        while True:
            credential = self._pool.acquire(cost)
            try:
                response = self._send(endpoint, params, credential)
            except TransientNetworkError:
                self._pool.release(credential, cost)
                raise

            if response.is_success:
                return response.json()

            if is_quota_signal(response):
                logger.warning(
                    "Quota exceeded for API key #%d on %s; rotating", credential.id, endpoint
                )
                self._pool.release(credential, cost)
                self._pool.mark_exhausted(credential)
                continue

            reasons = ", ".join(r for r in _error_reasons(response) if r)
            raise UpstreamAPIError(response.status_code, endpoint, reasons)

    def _send(self, endpoint: str, params: dict[str, Any], credential: Credential) -> httpx.Response:
        """Send one request with the bounded transient-failure retry."""
        url = f"{self._base_url}/{endpoint}"
        query = {**params, "key": credential.key}

        for attempt in range(1, self._max_attempts + 1):
            try:
                response = self._client.get(url, params=query)
            except httpx.TransportError as exc:
                if attempt >= self._max_attempts:
                    raise TransientNetworkError(
                        f"{endpoint} unreachable after {attempt} attempt(s): {exc}"
                    ) from exc
                logger.info("Transport error on %s (attempt %d): %s", endpoint, attempt, exc)
                self._sleep(self._retry_delay)
                continue

            if response.status_code >= 500:
                if attempt >= self._max_attempts:
                    raise TransientNetworkError(
                        f"{endpoint} returned {response.status_code} after {attempt} attempt(s)"
                    )
                logger.info("Server error %d on %s (attempt %d)", response.status_code, endpoint, attempt)
                self._sleep(self._retry_delay)
                continue

            return response

        raise TransientNetworkError(f"{endpoint} gave no usable response")  # pragma: no cover

    # ------------------------------------------------------------------
    # Convenience calls
    # ------------------------------------------------------------------

    def _first_item(self, endpoint: str, params: dict[str, Any]) -> Optional[dict[str, Any]]:
        items = self.make_request(endpoint, params).get("items") or []
        return items[0] if items else None

    def get_channel(self, channel_id: str) -> Optional[dict[str, Any]]:
        return self._first_item(
            "channels", {"part": "snippet,contentDetails", "id": channel_id}
        )

    def get_channel_by_handle(self, handle: str) -> Optional[dict[str, Any]]:
        return self._first_item(
            "channels", {"part": "snippet,contentDetails", "forHandle": handle}
        )

    def get_channel_by_username(self, username: str) -> Optional[dict[str, Any]]:
        return self._first_item(
            "channels", {"part": "snippet,contentDetails", "forUsername": username}
        )

    def get_playlist_items(
        self,
        playlist_id: str,
        max_results: int = 50,
        page_token: Optional[str] = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "part": "snippet",
            "playlistId": playlist_id,
            "maxResults": str(min(max_results, 50)),
        }
        if page_token:
            params["pageToken"] = page_token
        return self.make_request("playlistItems", params)

    def get_video_details(self, video_id: str) -> Optional[dict[str, Any]]:
        return self._first_item("videos", {"part": "snippet", "id": video_id})

    def get_videos_details(self, video_ids: list[str]) -> list[dict[str, Any]]:
        """Fetch many videos, 50 ids per call."""
        results: list[dict[str, Any]] = []
        for i in range(0, len(video_ids), _MAX_IDS_PER_CALL):
            chunk = video_ids[i : i + _MAX_IDS_PER_CALL]
            data = self.make_request("videos", {"part": "snippet", "id": ",".join(chunk)})
            results.extend(data.get("items") or [])
        return results
