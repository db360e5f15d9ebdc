"""Test helpers for exercising the catalog without real network access."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import httpx

from .net import configure_http_client, reset_http_client

__all__ = ["use_mock_http_client"]


@contextmanager
def use_mock_http_client(transport: httpx.BaseTransport, **client_kwargs: Any) -> Iterator[httpx.Client]:
    """Temporarily install an HTTPX client backed by ``transport``."""

    client = httpx.Client(transport=transport, follow_redirects=False, **client_kwargs)
    configure_http_client(client)
    try:
        yield client
    finally:
        reset_http_client()
        client.close()
