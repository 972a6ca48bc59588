"""LinkGuard: find broken links in YouTube video descriptions."""

__version__ = "0.1.0"
