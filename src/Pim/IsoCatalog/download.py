# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.download",
#   "purpose": "Stream ISO images to disk with bounded redirect following and progress reporting",
#   "sections": [
#     {"id": "downloadprogress", "name": "DownloadProgress", "anchor": "class-downloadprogress", "kind": "class"},
#     {"id": "downloader", "name": "Downloader", "anchor": "class-downloader", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Streaming downloader for ISO images and checksum manifests.

Redirects are followed manually so each hop is counted and logged: a chain of
up to ``redirect_limit`` redirects is accepted, one more raises
:class:`~Pim.IsoCatalog.errors.TooManyRedirectsError`.  Successful bodies are
streamed chunk by chunk into the destination while a running byte count is
reported to an optional progress callback.

The destination is opened only after a successful status arrives.  A transfer
that fails midway leaves the partial file in place; there is no atomic rename.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import httpx

from .errors import ConnectionFailedError, HttpError, TooManyRedirectsError
from .net import get_http_client
from .settings import HttpSettings

LOGGER = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
DEFAULT_REDIRECT_LIMIT = 5

__all__ = ["DEFAULT_REDIRECT_LIMIT", "DownloadProgress", "Downloader", "ProgressCallback"]


@dataclass(frozen=True)
class DownloadProgress:
    """Progress snapshot emitted after each chunk is written.

    Attributes:
        downloaded: Bytes written so far.
        total: Declared ``Content-Length`` or ``None`` when unknown.
    """

    downloaded: int
    total: Optional[int] = None

    @property
    def percentage(self) -> Optional[float]:
        """Completion percentage rounded to one decimal, if the total is known."""

        if not self.total:
            return None
        return round(self.downloaded / self.total * 100, 1)


ProgressCallback = Callable[[DownloadProgress], None]


def _declared_length(response: httpx.Response) -> Optional[int]:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


class Downloader:
    """Fetch URLs over HTTP(S) using a shared :class:`httpx.Client`.

    Args:
        client: Client to use; defaults to :func:`~Pim.IsoCatalog.net.get_http_client`.
        redirect_limit: Maximum number of redirects followed per request.
        chunk_size: Bytes requested per streamed chunk.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        redirect_limit: int = DEFAULT_REDIRECT_LIMIT,
        chunk_size: int = 1 << 16,
    ) -> None:
        self._client = client
        self.redirect_limit = redirect_limit
        self.chunk_size = chunk_size

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> "Downloader":
        return cls(
            get_http_client(settings),
            redirect_limit=settings.redirect_limit,
            chunk_size=settings.chunk_size,
        )

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = get_http_client()
        return self._client

    @contextmanager
    def _open(self, url: str) -> Iterator[httpx.Response]:
        """Yield the terminal streamed response for ``url`` after following redirects."""

        hops: List[str] = []
        current = url
        while True:
            try:
                with self.client.stream("GET", current) as response:
                    location = response.headers.get("location")
                    if response.status_code in REDIRECT_STATUSES and location:
                        hops.append(current)
                        if len(hops) > self.redirect_limit:
                            raise TooManyRedirectsError(self.redirect_limit, hops)
                        target = str(response.url.join(location))
                        LOGGER.debug(
                            "following redirect",
                            extra={
                                "stage": "download",
                                "url": current,
                                "target": target,
                                "hop": len(hops),
                            },
                        )
                        current = target
                        continue
                    if not response.is_success:
                        raise HttpError(
                            response.status_code,
                            response.reason_phrase,
                            url=current,
                        )
                    yield response
                    return
            except httpx.TransportError as exc:
                raise ConnectionFailedError(f"Request to {current} failed: {exc}") from exc

    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        progress: Optional[ProgressCallback] = None,
    ) -> int:
        """Stream ``url`` into ``destination`` and return the bytes written.

        Raises:
            HttpError: On a non-success, non-redirect status.
            TooManyRedirectsError: When the redirect chain exceeds the limit.
            ConnectionFailedError: On transport failures, including mid-body.
        """

        LOGGER.info("download started", extra={"stage": "download", "url": url})
        with self._open(url) as response:
            total = _declared_length(response)
            downloaded = 0
            destination.parent.mkdir(parents=True, exist_ok=True)
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(self.chunk_size):
                    handle.write(chunk)
                    downloaded += len(chunk)
                    if progress is not None:
                        progress(DownloadProgress(downloaded, total))
        LOGGER.info(
            "download finished",
            extra={"stage": "download", "url": url, "bytes": downloaded},
        )
        return downloaded

    def fetch_text(self, url: str) -> str:
        """Return the full body of ``url`` decoded as text.

        Used for checksum manifests, which are small enough to hold in memory.
        """

        with self._open(url) as response:
            response.read()
            return response.text
