"""
Shared outbound HTTP helper.
One httpx.AsyncClient per process, created by the service container and
closed on shutdown. Responses are reduced to (status, body) so routers can
pass provider answers through verbatim.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from relay.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class UpstreamResponse:
    """Status code and decoded body of an upstream call."""
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def build_async_client(settings: Optional[Settings] = None, **kwargs) -> httpx.AsyncClient:
    """Create the process-wide httpx.AsyncClient with default timeout and headers."""
    settings = settings or Settings()
    kwargs.setdefault("timeout", httpx.Timeout(settings.http_timeout_seconds))
    kwargs.setdefault("headers", {"Accept": "application/json"})
    return httpx.AsyncClient(**kwargs)


def read_body(response: httpx.Response) -> Any:
    """Decode a JSON body, falling back to raw text (or None when empty)."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


async def fetch_json(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> UpstreamResponse:
    """Issue a request and return its status and decoded body. Network errors propagate."""
    response = await client.request(method, url, **kwargs)
    logger.debug(f"{method} {url} -> {response.status_code}")
    return UpstreamResponse(status_code=response.status_code, body=read_body(response))
