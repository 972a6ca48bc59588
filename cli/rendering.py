"""Plain-text rendering of scan results for the terminal."""

from __future__ import annotations

from typing import Any, Iterable

from linkguard.links.models import LinkProbeResult, LinkStatus
from linkguard.scan.models import ScanResult, ScanStatistics

_ICONS = {
    LinkStatus.WORKING: "✅",
    LinkStatus.WARNING: "⚠️ ",
    LinkStatus.BROKEN: "❌",
}


def render_link(link: LinkProbeResult) -> str:
    """One line per link: icon, status, HTTP code, URL, and any error."""
    code = link.http_status_code or "---"
    line = f"{_ICONS[link.status]} {link.status.value:<7} {code:>3}  {link.url}"
    if link.error:
        line += f"  ({link.error})"
    return line


def render_statistics(stats: ScanStatistics) -> str:
    return (
        f"{stats.total_links} link(s): "
        f"{stats.working_links} working, "
        f"{stats.warning_links} warning, "
        f"{stats.broken_links} broken"
    )


def render_summary(result: ScanResult, only_problems: bool = False) -> str:
    """Render a scan as a header followed by one block per video.

    Args:
        result: The finished scan.
        only_problems: Hide working links (and videos left with none).
    """
    lines = [
        f"Scanned videos : {result.scanned_videos}",
        f"With links     : {result.videos_with_links}",
        f"Links          : {render_statistics(result.statistics)}",
        f"Scanned at     : {result.scanned_at}",
    ]
    if result.enforced_count and result.enforced_count < result.requested_count:
        lines.append(
            f"Plan limit     : {result.enforced_count} of {result.requested_count} requested"
        )

    for video in result.results:
        links = video.links
        if only_problems:
            links = [link for link in links if link.status is not LinkStatus.WORKING]
            if not links:
                continue
        lines.append("")
        lines.append(f"▶ {video.video_title}  {video.video_url}")
        lines.extend(f"   {render_link(link)}" for link in links)
    return "\n".join(lines)


def render_scan_rows(rows: Iterable[dict[str, Any]]) -> str:
    """Tabular list of stored scan summaries (``StoredScan.summary()`` dicts)."""
    lines = []
    for row in rows:
        stats = row["statistics"]
        lines.append(
            f"  {row['id']}  {row['scannedAt']}  [{row['key']}]  {row['target']}  "
            f"videos={row['scannedVideos']} links={stats['totalLinks']} "
            f"broken={stats['brokenLinks']} warning={stats['warningLinks']}"
        )
    return "\n".join(lines)
