"""Channel → upload feed → bounded list of :class:`VideoRef`.

The uploads playlist is paged in fixed-size batches via the opaque
``nextPageToken``.  Date filtering happens client-side after each page is
fetched (the playlist endpoint has no date parameters), so a page can be
partially discarded and the last batch may come back under-full.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Iterator, Optional, Union

from linkguard.config import settings
from linkguard.errors import ChannelNotFound
from linkguard.youtube.client import QuotaManagedAPIClient
from linkguard.youtube.models import ChannelInfo, VideoRef, parse_timestamp
from linkguard.youtube.urls import parse_channel_identifier

logger = logging.getLogger(__name__)

DateBound = Union[datetime, date, str, None]


def _coerce_bound(value: DateBound, end: bool = False) -> Optional[datetime]:
    """Normalise a date-range bound to an aware UTC ``datetime``.

    A plain date (or ``YYYY-MM-DD`` string) covers the whole day, so an end
    bound snaps to 23:59:59.999999 of that day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            value = date.fromisoformat(text) if len(text) == 10 else None
        except ValueError:
            value = None
        if value is None:
            value = parse_timestamp(text)
        if value is None:
            raise ValueError(f"Invalid date bound: {text!r}")
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.max if end else time.min, tzinfo=timezone.utc)


class ChannelVideoDiscovery:
    """Resolve channels and page through their upload feeds."""

    def __init__(self, client: QuotaManagedAPIClient, page_size: Optional[int] = None) -> None:
        self._client = client
        self._page_size = max(1, min(50, page_size or settings.discovery_page_size))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_channel(self, identifier: str) -> str:
        """Turn an id, handle, or channel URL into a canonical channel id.

        Raises:
            ChannelNotFound: If the identifier is empty or matches no channel.
        """
        parsed = parse_channel_identifier(identifier)
        if parsed is None:
            raise ChannelNotFound(identifier)
        if parsed.kind == "id":
            return parsed.value

        if parsed.kind == "username":
            item = self._client.get_channel_by_username(parsed.value)
        else:
            item = self._client.get_channel_by_handle(parsed.value)
            if item is None and parsed.kind == "custom":
                item = self._client.get_channel_by_username(parsed.value)
        if not item:
            raise ChannelNotFound(identifier)
        return item["id"]

    def resolve_uploads_feed(self, channel_id: str) -> str:
        """Return the id of the channel's uploads playlist.

        Raises:
            ChannelNotFound: If the channel or its uploads playlist is missing.
        """
        item = self._client.get_channel(channel_id)
        if not item:
            raise ChannelNotFound(channel_id)
        info = ChannelInfo.from_api(item)
        if not info.uploads_playlist_id:
            raise ChannelNotFound(channel_id)
        logger.info("Channel %s uploads feed: %s", channel_id, info.uploads_playlist_id)
        return info.uploads_playlist_id

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------

    def iter_videos(
        self,
        feed_id: str,
        max_results: int,
        start_date: DateBound = None,
        end_date: DateBound = None,
    ) -> Iterator[VideoRef]:
        """Yield up to *max_results* videos from *feed_id*, newest first."""
        if max_results <= 0:
            return

        start = _coerce_bound(start_date)
        end = _coerce_bound(end_date, end=True)
        filtering = start is not None or end is not None

        collected = 0
        page_token: Optional[str] = None
        page = 0
        while collected < max_results:
            page += 1
            batch = min(self._page_size, max_results - collected)
            logger.debug("Fetching page %d of %s (%d items)", page, feed_id, batch)
            data = self._client.get_playlist_items(feed_id, batch, page_token)
            items = data.get("items") or []
            if not items:
                break

            kept = 0
            for item in items:
                ref = VideoRef.from_playlist_item(item)
                if not ref.external_id:
                    continue
                if filtering and not self._in_range(ref, start, end):
                    continue
                yield ref
                kept += 1
                collected += 1
                if collected >= max_results:
                    break
            logger.debug("Page %d: kept %d of %d item(s)", page, kept, len(items))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

    def list_videos(
        self,
        feed_id: str,
        max_results: int,
        start_date: DateBound = None,
        end_date: DateBound = None,
    ) -> list[VideoRef]:
        """Collect :meth:`iter_videos` into a list.

        Each call pages from the beginning of the feed again.
        """
        videos = list(self.iter_videos(feed_id, max_results, start_date, end_date))
        logger.info("Collected %d video(s) from %s", len(videos), feed_id)
        return videos

    @staticmethod
    def _in_range(ref: VideoRef, start: Optional[datetime], end: Optional[datetime]) -> bool:
        published = parse_timestamp(ref.published_at)
        if published is None:
            return False
        if start is not None and published < start:
            return False
        if end is not None and published > end:
            return False
        return True
