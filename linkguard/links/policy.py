"""Fragile-domain policy: which hosts get the benefit of the doubt.

Some hosts (social networks, URL shorteners, big e-commerce sites,
screenshot hosts) answer automated requests with misleading 4xx/5xx codes.
The checker consults this policy to decide whether such a code means
"broken" or only "warning", and whether a failure is worth retrying.

The defaults below can be replaced by a JSON file::

    {
      "fragileDomains": ["facebook.com", "bit.ly"],
      "softClientErrors": [400, 403, 405, 429],
      "hardClientErrors": [404, 410]
    }

pointed to by ``LINKGUARD_POLICY_FILE``.  Missing keys keep their defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional, Tuple
from urllib.parse import urlsplit

from linkguard.config import settings

logger = logging.getLogger(__name__)

DEFAULT_FRAGILE_DOMAINS: Tuple[str, ...] = (
    # Social media
    "facebook.com", "fb.com", "twitter.com", "x.com", "instagram.com",
    "linkedin.com", "youtube.com", "youtu.be", "tiktok.com", "snapchat.com",
    "pinterest.com", "reddit.com", "tumblr.com", "whatsapp.com",
    "t.me", "telegram.org", "telegram.me",
    # URL shorteners
    "goo.gl", "bit.ly", "t.co", "ow.ly", "tinyurl.com", "buff.ly",
    # E-commerce
    "amazon.com", "amzn.to", "flipkart.com", "ebay.com", "meesho.com",
    # Screenshot / image hosts
    "prntscr.com", "lightshot.com", "imgur.com", "gyazo.com",
)

# 4xx codes that fragile hosts commonly use for bot blocking.
DEFAULT_SOFT_CLIENT_ERRORS: FrozenSet[int] = frozenset({400, 403, 405, 429})
# 4xx codes that mean the resource is really gone, even on fragile hosts.
DEFAULT_HARD_CLIENT_ERRORS: FrozenSet[int] = frozenset({404, 410})

_STRIP_PREFIXES = ("www.", "app.")


def normalise_host(url: str) -> Optional[str]:
    """Lower-cased hostname with a leading ``www.``/``app.`` removed."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    for prefix in _STRIP_PREFIXES:
        if host.startswith(prefix):
            host = host[len(prefix):]
            break
    return host


@dataclass(frozen=True)
class FragileDomainPolicy:
    domains: Tuple[str, ...] = DEFAULT_FRAGILE_DOMAINS
    soft_client_errors: FrozenSet[int] = field(default=DEFAULT_SOFT_CLIENT_ERRORS)
    hard_client_errors: FrozenSet[int] = field(default=DEFAULT_HARD_CLIENT_ERRORS)

    def is_fragile(self, url: str) -> bool:
        """``True`` if the URL's host is, or is a subdomain of, a listed domain."""
        host = normalise_host(url)
        if host is None:
            return False
        return any(host == d or host.endswith("." + d) for d in self.domains)

    @classmethod
    def from_file(cls, path: Path) -> "FragileDomainPolicy":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Policy file {path} must contain a JSON object")
        return cls(
            domains=tuple(
                d.strip().lower() for d in data.get("fragileDomains", DEFAULT_FRAGILE_DOMAINS)
            ),
            soft_client_errors=frozenset(
                int(c) for c in data.get("softClientErrors", DEFAULT_SOFT_CLIENT_ERRORS)
            ),
            hard_client_errors=frozenset(
                int(c) for c in data.get("hardClientErrors", DEFAULT_HARD_CLIENT_ERRORS)
            ),
        )


def load_policy(path: Optional[Path] = None) -> FragileDomainPolicy:
    """Load the policy from *path* (or ``settings.policy_file``), else defaults."""
    path = path or settings.policy_file
    if path is None:
        return FragileDomainPolicy()
    policy = FragileDomainPolicy.from_file(path)
    logger.info("Loaded fragile-domain policy from %s (%d domains)", path, len(policy.domains))
    return policy
