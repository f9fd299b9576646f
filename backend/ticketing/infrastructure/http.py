"""
Shared httpx client construction for outbound calls.
Every outbound request is bounded by settings.HTTP_TIMEOUT_SECONDS.
"""

from typing import Optional

import httpx

from ticketing.core.config import Settings


def build_client(
    settings: Settings,
    base_url: str = "",
    headers: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
        follow_redirects=True,
        transport=transport,
    )
