"""HTTP surface of LinkGuard: scan, link-check and credential endpoints.

Serve it with::

    uvicorn linkguard.api:app
"""

from linkguard.api.app import app

__all__ = ["app"]
