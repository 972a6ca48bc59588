"""Tests for link extraction from video descriptions.

Pure functions, no network.
"""

from __future__ import annotations

from linkguard.links.extractor import extract_links, extract_video_links
from linkguard.links.models import ExtractedLink


class TestExtractLinks:
    def test_finds_links_in_order(self) -> None:
        text = "Gear: https://a.example/x and http://b.example/y"
        assert extract_links(text) == ["https://a.example/x", "http://b.example/y"]

    def test_strips_trailing_punctuation(self) -> None:
        text = "See https://a.example/page. Also (https://b.example/q)! Or https://c.example?,"
        assert extract_links(text) == [
            "https://a.example/page",
            "https://b.example/q",
            "https://c.example",
        ]

    def test_keeps_query_and_inner_punctuation(self) -> None:
        text = "Buy https://shop.example/item?id=3&ref=yt."
        assert extract_links(text) == ["https://shop.example/item?id=3&ref=yt"]

    def test_keeps_duplicates(self) -> None:
        text = "https://a.example https://a.example"
        assert extract_links(text) == ["https://a.example", "https://a.example"]

    def test_any_alphabetic_scheme(self) -> None:
        assert extract_links("ftp://files.example/a.zip") == ["ftp://files.example/a.zip"]

    def test_bare_domains_are_ignored(self) -> None:
        assert extract_links("visit example.com or www.example.org") == []

    def test_scheme_without_rest_is_ignored(self) -> None:
        assert extract_links("broken https:// here") == []

    def test_empty_text(self) -> None:
        assert extract_links("") == []

    def test_multiline_description(self) -> None:
        text = "Line one\nhttps://a.example/1\n\nhttps://b.example/2\n"
        assert extract_links(text) == ["https://a.example/1", "https://b.example/2"]


class TestExtractVideoLinks:
    def test_tags_links_with_video_id(self) -> None:
        links = extract_video_links("abcdefghijk", "https://a.example https://b.example")
        assert links == [
            ExtractedLink("abcdefghijk", "https://a.example"),
            ExtractedLink("abcdefghijk", "https://b.example"),
        ]
