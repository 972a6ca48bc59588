"""Exception taxonomy for the scanning engine.

Fatal errors (``ChannelNotFound``, ``QuotaExhausted``, ``PlanLimitExceeded``,
``ScanCancelled``) abort a scan.  Per-item errors (``VideoDetailUnavailable``,
``LinkProbeFailure``) are absorbed by the orchestrator.
"""

from __future__ import annotations

from typing import Optional


class LinkGuardError(Exception):
    """Base class for every error raised by the engine."""


class ChannelNotFound(LinkGuardError):
    """The channel (or its upload feed) could not be resolved."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"Channel not found: {channel!r}")
        self.channel = channel


class QuotaExhausted(LinkGuardError):
    """Every pooled credential has run out of quota."""

    def __init__(self, message: str = "All API credentials have exceeded their quota") -> None:
        super().__init__(message)


class TransientNetworkError(LinkGuardError):
    """The metadata API stayed unreachable after the bounded retry."""


class UpstreamAPIError(LinkGuardError):
    """The metadata API answered with a non-quota error status."""

    def __init__(self, status_code: int, endpoint: str, detail: str = "") -> None:
        msg = f"Metadata API error {status_code} on {endpoint!r}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.status_code = status_code
        self.endpoint = endpoint


class VideoDetailUnavailable(LinkGuardError):
    """Details for one video could not be fetched."""

    def __init__(self, video_id: str, reason: Optional[str] = None) -> None:
        msg = f"Video details unavailable: {video_id}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.video_id = video_id


class LinkProbeFailure(LinkGuardError):
    """A link probe failed in a way the classifier could not handle."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Probe failed for {url}: {reason}")
        self.url = url


class PlanLimitExceeded(LinkGuardError):
    """The caller's plan does not allow this scan."""


class ScanCancelled(LinkGuardError):
    """The scan was cancelled by the caller before it finished."""
