"""Pull URL-looking tokens out of free text.  Pure functions, no I/O."""

from __future__ import annotations

import re
from typing import List

from linkguard.links.models import ExtractedLink

_URL_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*://[^\s]+")

# Sentence punctuation that trails a URL in prose but is not part of it.
_TRAILING = ".,;!?)"


def extract_links(text: str) -> List[str]:
    """Return every ``scheme://...`` token in *text*, in order.

    Trailing sentence punctuation is stripped.  Duplicates are kept.
    """
    if not text:
        return []
    links: List[str] = []
    for match in _URL_RE.finditer(text):
        url = match.group(0).rstrip(_TRAILING)
        if url.partition("://")[2]:
            links.append(url)
    return links


def extract_video_links(video_id: str, text: str) -> List[ExtractedLink]:
    """Like :func:`extract_links` but tagged with the source video."""
    return [ExtractedLink(source_video_id=video_id, raw_url=url) for url in extract_links(text)]
