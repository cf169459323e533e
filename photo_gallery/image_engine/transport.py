"""HTTP client construction.

Both the catalog client and the fetcher take an ``httpx.Client`` in their
constructors; tests pass one built on ``httpx.MockTransport``.
"""

from __future__ import annotations

import httpx

USER_AGENT = "photo-gallery/0.1"


def make_http_client(
    timeout: float = 10.0,
    transport: httpx.BaseTransport | None = None,
    max_connections: int = 8,
) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        transport=transport,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        limits=httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_connections),
    )
