"""Parsing helpers for channel identifiers and video URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_CHANNEL_ID_RE = re.compile(r"^UC[\w-]{22}$")

_CHANNEL_URL_PATTERNS = [
    ("id", re.compile(r"youtube\.com/channel/(UC[\w-]{22})")),
    ("handle", re.compile(r"youtube\.com/@([\w.-]+)")),
    ("custom", re.compile(r"youtube\.com/c/([\w.-]+)")),
    ("username", re.compile(r"youtube\.com/user/([\w.-]+)")),
]

_VIDEO_ID_RE = re.compile(
    r"(?:v=|/videos/|embed/|youtu\.be/|/v/|/shorts/|/live/)([\w-]{11})(?![\w-])"
)
_BARE_VIDEO_ID_RE = re.compile(r"^[\w-]{11}$")


@dataclass(frozen=True)
class ChannelIdentifier:
    """A parsed channel reference.

    ``kind`` is one of ``id``, ``handle``, ``custom`` or ``username``; only
    ``id`` can be used without an API lookup.
    """

    kind: str
    value: str


def parse_channel_identifier(raw: str) -> Optional[ChannelIdentifier]:
    """Classify *raw* as a channel id, handle, custom name, or username.

    Returns ``None`` for empty input.  Unrecognised text is treated as a
    handle, which is what creators paste most often.
    """
    text = raw.strip()
    if not text:
        return None
    if _CHANNEL_ID_RE.match(text):
        return ChannelIdentifier("id", text)
    for kind, pattern in _CHANNEL_URL_PATTERNS:
        match = pattern.search(text)
        if match:
            return ChannelIdentifier(kind, match.group(1))
    if text.startswith("@"):
        return ChannelIdentifier("handle", text[1:])
    return ChannelIdentifier("handle", text)


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video id from a watch/short/embed URL.

    A bare id is accepted as-is.  Returns ``None`` when nothing matches.
    """
    text = url.strip()
    if _BARE_VIDEO_ID_RE.match(text):
        return text
    match = _VIDEO_ID_RE.search(text)
    return match.group(1) if match else None
