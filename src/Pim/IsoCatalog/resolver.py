"""Derive catalog metadata from an ISO URL and a user-supplied checksum token.

The ``add`` flow only asks the user for two strings.  Everything else, the
file name, display name, architecture, and the normalised checksum, is
derived here.  A checksum token that is itself a URL is treated as a remote
manifest and fetched through the caller-provided ``fetch_text`` callable so
this module never touches the network directly.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Pattern, Sequence, Tuple
from urllib.parse import urlparse

from .catalog import ISO_EXTENSION, UNKNOWN_ARCHITECTURE, CatalogEntry
from .checksums import find_manifest_digest, normalize_checksum
from .errors import InvalidFilenameError, InvalidURLError

LOGGER = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

# Evaluated in order, first match wins; "x86" must come after "x86_64".
ARCHITECTURE_RULES: Sequence[Tuple[str, Pattern[str]]] = (
    ("amd64", re.compile(r"amd64", re.IGNORECASE)),
    ("x86_64", re.compile(r"x86[-_]?64", re.IGNORECASE)),
    ("arm64", re.compile(r"arm64", re.IGNORECASE)),
    ("aarch64", re.compile(r"aarch64", re.IGNORECASE)),
    ("i386", re.compile(r"i386", re.IGNORECASE)),
    ("x86", re.compile(r"\bx86\b", re.IGNORECASE)),
    ("armhf", re.compile(r"armhf", re.IGNORECASE)),
)

FetchText = Callable[[str], str]

__all__ = [
    "ALLOWED_SCHEMES",
    "ARCHITECTURE_RULES",
    "catalog_key_for",
    "derive_attributes",
    "derive_display_name",
    "detect_architecture",
    "extract_filename",
    "is_http_url",
    "resolve_checksum",
]


def is_http_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def extract_filename(url: str) -> str:
    """Return the final path segment of ``url`` when it names an ``.iso`` file.

    Raises:
        InvalidFilenameError: If the path is empty or lacks the ``.iso`` suffix.
    """

    path = urlparse(url).path
    filename = path.rsplit("/", 1)[-1] if path else ""
    if not filename or not filename.endswith(ISO_EXTENSION):
        raise InvalidFilenameError(f"Filename must end with {ISO_EXTENSION}")
    return filename


def catalog_key_for(filename: str) -> str:
    """Strip the ``.iso`` suffix to form the catalog key."""

    return filename[: -len(ISO_EXTENSION)] if filename.endswith(ISO_EXTENSION) else filename


def derive_display_name(filename: str) -> str:
    """Turn ``debian-12.5_netinst.iso`` into ``Debian 12.5 Netinst``."""

    stem = catalog_key_for(filename)
    words = re.sub(r"[-_]", " ", stem).split()
    return " ".join(word.capitalize() for word in words)


def detect_architecture(filename: str) -> str:
    """Return the first architecture label whose pattern matches ``filename``."""

    for label, pattern in ARCHITECTURE_RULES:
        if pattern.search(filename):
            return label
    return UNKNOWN_ARCHITECTURE


def resolve_checksum(
    token: str,
    filename: str,
    *,
    fetch_text: Optional[FetchText] = None,
) -> Tuple[str, Optional[str]]:
    """Resolve ``token`` to ``(checksum, checksum_url)``.

    A URL token is fetched as a checksum manifest and scanned for
    ``filename``; otherwise the token must be a bare or ``sha256:``-prefixed
    digest.
    """

    token = token.strip()
    if is_http_url(token):
        if fetch_text is None:
            raise ValueError("fetch_text is required to resolve checksum manifests")
        LOGGER.info("downloading checksum file", extra={"stage": "add", "url": token})
        content = fetch_text(token)
        return find_manifest_digest(content, filename, manifest_url=token), token
    return normalize_checksum(token), None


def derive_attributes(
    url: str,
    checksum_token: str,
    *,
    fetch_text: Optional[FetchText] = None,
) -> CatalogEntry:
    """Build a complete, unsaved :class:`CatalogEntry` for ``url``.

    Args:
        url: ISO download URL; must use http or https.
        checksum_token: Hex digest, ``sha256:`` digest, or manifest URL.
        fetch_text: Callable returning the body of a manifest URL.

    Returns:
        Entry keyed by the file name without its extension.

    Raises:
        InvalidURLError: If ``url`` is not http(s).
        InvalidFilenameError: If ``url`` does not name an ``.iso`` file.
        InvalidChecksumFormatError: If the token has an unrecognised shape.
        ChecksumNotFoundError: If the manifest lacks the file.
        NetworkError: If fetching the manifest fails.
    """

    url = url.strip()
    if not is_http_url(url):
        raise InvalidURLError("URL must start with http:// or https://")
    filename = extract_filename(url)
    architecture = detect_architecture(filename)
    checksum, checksum_url = resolve_checksum(checksum_token, filename, fetch_text=fetch_text)
    key = catalog_key_for(filename)
    LOGGER.debug(
        "derived catalog attributes",
        extra={"stage": "add", "entry": key, "architecture": architecture},
    )
    return CatalogEntry(
        key=key,
        name=derive_display_name(filename),
        url=url,
        checksum=checksum,
        checksum_url=checksum_url,
        filename=filename,
        architecture=architecture,
    )
