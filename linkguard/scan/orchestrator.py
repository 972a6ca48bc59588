"""Three-phase scan pipeline: collect → extract → check.

``ScanOrchestrator.run`` is the single entry point.  It either returns a
complete :class:`~linkguard.scan.models.ScanResult` or raises one typed fatal
error; per-video and per-link failures are absorbed along the way:

- Phase 1 (collect) failures abort the scan.
- Phase 2 (extract) detail-fetch failures skip that video only.
- Phase 3 (check) probe failures are recorded as ``broken`` / code 0.

Progress percentages per phase:
collect ends at 10, extract spans 10-40, check spans 40-90, done is 100.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from linkguard.config import settings
from linkguard.errors import (
    PlanLimitExceeded,
    ScanCancelled,
    TransientNetworkError,
    UpstreamAPIError,
    VideoDetailUnavailable,
)
from linkguard.links.checker import LinkHealthChecker
from linkguard.links.extractor import extract_links
from linkguard.scan.models import (
    PendingVideo,
    ScanJob,
    ScanProgress,
    ScanRequest,
    ScanResult,
    ScanStatistics,
    VideoScanResult,
)
from linkguard.youtube.client import QuotaManagedAPIClient
from linkguard.youtube.credentials import CredentialPool
from linkguard.youtube.discovery import ChannelVideoDiscovery
from linkguard.youtube.models import VideoDetails, VideoRef
from linkguard.youtube.urls import extract_video_id

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ScanOrchestrator:
    """Compose discovery, extraction, and probing into one scan.

    Args:
        client: Metadata API client (carries the shared credential pool).
        checker: Link prober.
        discovery: Channel feed pager; built from *client* when omitted.
        probe_concurrency: Links probed in parallel per video (1 = sequential).
        extractor: Text → URLs function.
        clock: Returns the ``scannedAt`` timestamp.
    """

    def __init__(
        self,
        client: QuotaManagedAPIClient,
        checker: LinkHealthChecker,
        discovery: Optional[ChannelVideoDiscovery] = None,
        probe_concurrency: Optional[int] = None,
        extractor: Callable[[str], list[str]] = extract_links,
        clock: Callable[[], str] = _utc_now_iso,
    ) -> None:
        self._client = client
        self._checker = checker
        self._discovery = discovery or ChannelVideoDiscovery(client)
        self._probe_concurrency = max(
            1, probe_concurrency if probe_concurrency is not None else settings.probe_concurrency
        )
        self._extract = extractor
        self._clock = clock

    def close(self) -> None:
        """Release the HTTP connection pools of the client and the checker."""
        self._client.close()
        self._checker.close()

    def __enter__(self) -> "ScanOrchestrator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        request: ScanRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """Run the full pipeline for *request*.

        Raises:
            ValueError: If ``requested_count`` is below 1.
            PlanLimitExceeded: If the plan allows no scan at all.
            ChannelNotFound: If the channel or its feed cannot be resolved.
            QuotaExhausted: If every API credential is spent (any phase).
            ScanCancelled: If *cancel_event* is set mid-scan.
        """
        self._preflight(request)

        def _emit(phase: str, percent: int, message: str = "") -> None:
            if progress is not None:
                progress(ScanProgress(phase, percent, message))

        def _check_cancel() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelled("Scan cancelled")

        job = ScanJob(
            requested_count=request.requested_count,
            enforced_count=request.enforced_count,
        )
        if job.enforced_count < job.requested_count:
            logger.info(
                "Plan limit caps scan at %d of %d requested video(s)",
                job.enforced_count,
                job.requested_count,
            )

        # Phase 1 - collect
        _emit("collect", 0, "Collecting videos")
        job.videos = self._collect(request, job.enforced_count)
        logger.info("Phase 1: collected %d video(s)", len(job.videos))
        _emit("collect", 10, f"Collected {len(job.videos)} video(s)")

        # Phase 2 - extract
        total_videos = len(job.videos)
        for index, ref in enumerate(job.videos, start=1):
            _check_cancel()
            pending = self._extract_video(ref)
            if pending is not None:
                job.pending.append(pending)
            _emit("extract", 10 + (index * 30) // total_videos, f"Fetched details for {ref.external_id}")
        logger.info("Phase 2: %d video(s) with links", len(job.pending))
        _emit("extract", 40, f"{len(job.pending)} video(s) with links")

        # Phase 3 - check
        total_links = sum(len(p.links) for p in job.pending)
        checked = 0
        for pending in job.pending:
            _check_cancel()
            logger.info("Checking %d link(s) for %r", len(pending.links), pending.title)
            links = self._checker.probe_many(
                pending.links,
                concurrency=self._probe_concurrency,
                cancel_event=cancel_event,
            )
            job.results.append(
                VideoScanResult(
                    video_id=pending.ref.external_id,
                    video_title=pending.title,
                    video_url=pending.ref.url,
                    links=links,
                    published_at=pending.published_at,
                )
            )
            checked += len(links)
            _emit("check", 40 + (checked * 50) // total_links, f"Checked {checked}/{total_links} link(s)")

        job.statistics = ScanStatistics.from_links(
            link for video in job.results for link in video.links
        )
        logger.info(
            "Scan complete: %d video(s), %d with links, %d link(s) "
            "(broken=%d, warning=%d, working=%d)",
            total_videos,
            len(job.results),
            job.statistics.total_links,
            job.statistics.broken_links,
            job.statistics.warning_links,
            job.statistics.working_links,
        )
        _emit("done", 100, "Scan complete")

        return ScanResult(
            scanned_videos=total_videos,
            videos_with_links=len(job.results),
            statistics=job.statistics,
            results=job.results,
            scanned_at=self._clock(),
            requested_count=job.requested_count,
            enforced_count=job.enforced_count,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    @staticmethod
    def _preflight(request: ScanRequest) -> None:
        if request.requested_count < 1:
            raise ValueError("requested_count must be at least 1")
        if request.scans_remaining is not None and request.scans_remaining <= 0:
            raise PlanLimitExceeded("Scan limit reached for your plan")
        if request.plan_limit == 0:
            raise PlanLimitExceeded("Your plan does not allow scanning videos")

    def _collect(self, request: ScanRequest, limit: int) -> list[VideoRef]:
        if request.is_channel_scan:
            channel_id = self._discovery.resolve_channel(request.target_channel_id or "")
            feed_id = self._discovery.resolve_uploads_feed(channel_id)
            return self._discovery.list_videos(
                feed_id, limit, request.start_date, request.end_date
            )

        refs: list[VideoRef] = []
        for url in request.video_urls:
            if len(refs) >= limit:
                break
            video_id = extract_video_id(url)
            if video_id is None:
                logger.warning("Skipping invalid video URL: %s", url)
                continue
            refs.append(VideoRef.from_video_id(video_id))
        return refs

    def _fetch_details(self, ref: VideoRef) -> VideoDetails:
        try:
            item = self._client.get_video_details(ref.external_id)
        except (UpstreamAPIError, TransientNetworkError) as exc:
            raise VideoDetailUnavailable(ref.external_id, str(exc)) from exc
        if not item:
            raise VideoDetailUnavailable(ref.external_id, "not found")
        return VideoDetails.from_api(item)

    def _extract_video(self, ref: VideoRef) -> Optional[PendingVideo]:
        """Fetch details and extract links; ``None`` drops the video."""
        try:
            details = self._fetch_details(ref)
        except VideoDetailUnavailable as exc:
            logger.warning("%s - skipping", exc)
            return None

        links = self._extract(details.description)
        if not links:
            logger.debug("No links in %s - skipping", ref.external_id)
            return None
        return PendingVideo(
            ref=ref,
            title=details.title,
            published_at=details.published_at or ref.published_at,
            links=links,
        )


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------

def build_credential_pool() -> CredentialPool:
    """Create the credential pool from ``settings``."""
    return CredentialPool(settings.youtube_api_keys, quota_limit=settings.api_quota_limit)


def build_orchestrator(pool: CredentialPool) -> ScanOrchestrator:
    """Wire a ready-to-run orchestrator around an existing *pool*.

    Credentials exhausted longer than the configured rollover window are
    re-activated first, since the pool never resets itself.
    """
    pool.reset_expired(settings.api_quota_reset_hours * 3600)
    client = QuotaManagedAPIClient(pool)
    checker = LinkHealthChecker()
    return ScanOrchestrator(client, checker)
