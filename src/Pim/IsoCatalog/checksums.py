# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.checksums",
#   "purpose": "Checksum normalisation, manifest parsing, and file verification",
#   "sections": [
#     {"id": "normalise", "name": "normalize_checksum", "anchor": "function-normalize-checksum", "kind": "function"},
#     {"id": "manifest", "name": "find_manifest_digest", "anchor": "function-find-manifest-digest", "kind": "function"},
#     {"id": "verify", "name": "verify_file", "anchor": "function-verify-file", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Checksum parsing, normalisation, and verification helpers.

Users describe expected digests in several shapes: a bare 64-character hex
digest, a ``sha256:``-prefixed digest, or a remote checksum manifest in the
``SHA256SUMS`` style.  This module normalises the first two, parses the
third, and hashes local files so the engine can compare them against the
catalog.  Verification always re-reads the whole file; nothing is cached.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import Iterator, Optional, Tuple

from .errors import ChecksumMismatchError, ChecksumNotFoundError, InvalidChecksumFormatError

LOGGER = logging.getLogger(__name__)

SHA256_PREFIX = "sha256:"
_HEX_DIGEST_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
_ALGORITHM_PREFIX_PATTERN = re.compile(r"^sha\d+:", re.IGNORECASE)
_CHUNK_SIZE = 1 << 20

__all__ = [
    "SHA256_PREFIX",
    "abbreviate",
    "ensure_checksum",
    "find_manifest_digest",
    "iter_manifest_entries",
    "is_hex_digest",
    "normalize_checksum",
    "sha256_file",
    "strip_algorithm",
    "verify_file",
]


def is_hex_digest(value: str) -> bool:
    """Return ``True`` when ``value`` is exactly 64 hexadecimal characters."""

    return bool(_HEX_DIGEST_PATTERN.match(value))


def normalize_checksum(value: str) -> str:
    """Return ``value`` in ``sha256:<hex>`` form.

    Args:
        value: Bare 64-character hex digest or a ``sha256:``-prefixed digest.

    Returns:
        Bare digests are lowercased and prefixed; prefixed values are kept verbatim.

    Raises:
        InvalidChecksumFormatError: For any other shape.

    Examples:
        >>> normalize_checksum("AB" * 32) == "sha256:" + "ab" * 32
        True
    """

    token = value.strip()
    if is_hex_digest(token):
        return f"{SHA256_PREFIX}{token.lower()}"
    if token.startswith(SHA256_PREFIX):
        return token
    raise InvalidChecksumFormatError(
        "Checksum must be 64 hex characters or start with sha256:"
    )


def strip_algorithm(checksum: Optional[str]) -> str:
    """Drop any ``sha<nnn>:`` prefix and lowercase the remaining digest."""

    if not checksum:
        return ""
    return _ALGORITHM_PREFIX_PATTERN.sub("", checksum.strip()).lower()


def abbreviate(digest: str, length: int = 16) -> str:
    """Render ``digest`` as ``sha256:<first length chars>...`` for display."""

    return f"{SHA256_PREFIX}{strip_algorithm(digest)[:length]}..."


def iter_manifest_entries(content: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(digest, filename)`` pairs from a checksum manifest.

    Each line is split on whitespace; lines with fewer than two fields are
    skipped.  The digest is the first field and the filename the last one,
    with the binary-mode ``*`` marker removed.
    """

    for line in content.splitlines():
        parts = line.strip().split()
        if len(parts) < 2:
            continue
        yield parts[0], parts[-1].removeprefix("*")


def find_manifest_digest(content: str, filename: str, *, manifest_url: Optional[str] = None) -> str:
    """Return the normalised checksum for ``filename`` listed in ``content``.

    Raises:
        ChecksumNotFoundError: When no manifest line names ``filename``.
    """

    for digest, listed in iter_manifest_entries(content):
        if listed == filename:
            return f"{SHA256_PREFIX}{digest.lower()}"
    raise ChecksumNotFoundError(filename, manifest_url)


def sha256_file(path: Path) -> str:
    """Compute the SHA-256 digest for the provided file.

    Args:
        path: Path to the file whose digest should be calculated.

    Returns:
        Hexadecimal SHA-256 checksum string.
    """

    hasher = hashlib.sha256()
    with path.open("rb") as stream:
        for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def verify_file(path: Path, expected: Optional[str]) -> Tuple[bool, str]:
    """Hash ``path`` and compare it to ``expected``.

    Returns:
        ``(matches, actual_hex_digest)``.  An empty ``expected`` never matches.
    """

    actual = sha256_file(path)
    wanted = strip_algorithm(expected)
    matches = bool(wanted) and actual == wanted
    LOGGER.debug(
        "checksum compared",
        extra={"stage": "verify", "path": str(path), "matches": matches},
    )
    return matches, actual


def ensure_checksum(path: Path, expected: Optional[str]) -> str:
    """Return the digest of ``path`` after confirming it equals ``expected``.

    Raises:
        ChecksumMismatchError: If the digests differ.
    """

    matches, actual = verify_file(path, expected)
    if not matches:
        raise ChecksumMismatchError(strip_algorithm(expected), actual)
    return actual
