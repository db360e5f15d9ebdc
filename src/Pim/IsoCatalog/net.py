# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.net",
#   "purpose": "Provide the shared HTTPX client used for ISO and manifest downloads",
#   "sections": [
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client used across ISO catalog networking.

The client verifies TLS peers against the :mod:`certifi` bundle, never follows
redirects on its own (the downloader audits every hop), and is built lazily on
first use.  Tests swap it out with :func:`configure_http_client` or the
:func:`Pim.IsoCatalog.testing.use_mock_http_client` context manager.
"""

from __future__ import annotations

import logging
import ssl
import threading
from typing import Optional

import certifi
import httpx

from .settings import HttpSettings

LOGGER = logging.getLogger(__name__)

_CLIENT_LOCK = threading.RLock()
_HTTP_CLIENT: Optional[httpx.Client] = None

__all__ = [
    "build_http_client",
    "configure_http_client",
    "get_http_client",
    "reset_http_client",
]

# --- Client construction helpers ----------------------------------------------


def _build_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context(cafile=certifi.where())
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def _build_timeout(settings: HttpSettings) -> httpx.Timeout:
    return httpx.Timeout(
        settings.read_timeout_sec,
        connect=settings.connect_timeout_sec,
    )


def build_http_client(settings: Optional[HttpSettings] = None) -> httpx.Client:
    """Create a new HTTPX client configured from ``settings``."""

    settings = settings or HttpSettings()
    return httpx.Client(
        verify=_build_ssl_context(),
        follow_redirects=False,
        timeout=_build_timeout(settings),
        headers={"User-Agent": settings.user_agent},
    )


# --- Public API ---------------------------------------------------------------


def get_http_client(settings: Optional[HttpSettings] = None) -> httpx.Client:
    """Return the process-wide client, creating it on first use."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        if _HTTP_CLIENT is None:
            _HTTP_CLIENT = build_http_client(settings)
            LOGGER.debug("http client created", extra={"stage": "network"})
        return _HTTP_CLIENT


def configure_http_client(client: httpx.Client) -> None:
    """Install ``client`` as the process-wide client."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        _HTTP_CLIENT = client


def reset_http_client() -> None:
    """Close and forget the process-wide client."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        client, _HTTP_CLIENT = _HTTP_CLIENT, None
    if client is not None:
        client.close()
