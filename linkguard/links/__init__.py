"""Link side of the pipeline: extraction, fragile-domain policy, probing."""

from linkguard.links.checker import LinkHealthChecker
from linkguard.links.extractor import extract_links, extract_video_links
from linkguard.links.models import ExtractedLink, LinkProbeResult, LinkStatus
from linkguard.links.policy import FragileDomainPolicy, load_policy

__all__ = [
    "LinkHealthChecker",
    "extract_links",
    "extract_video_links",
    "ExtractedLink",
    "LinkProbeResult",
    "LinkStatus",
    "FragileDomainPolicy",
    "load_policy",
]
