# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.errors",
#   "purpose": "Define the exception hierarchy used across catalog loading, download, and verification",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"},
#     {"id": "validation", "name": "Validation & Checksum Errors", "anchor": "VAL", "kind": "api"},
#     {"id": "network", "name": "Network Errors", "anchor": "NET", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across catalog loading, download, and verification.

The ISO catalog spans configuration parsing, HTTP retrieval, checksum
derivation, and on-disk verification.  This module groups the failure modes
into a small hierarchy so the engine can react to high-level categories (for
example, network failures inside a batch download) while tests and callers
still have access to the specialised subclasses.
"""

from __future__ import annotations

from typing import Optional, Sequence

__all__ = [
    "IsoCatalogError",
    "ConfigurationError",
    "ConfigParseError",
    "NotFoundError",
    "ValidationError",
    "InvalidURLError",
    "InvalidFilenameError",
    "InvalidChecksumFormatError",
    "ChecksumNotFoundError",
    "ChecksumMismatchError",
    "NetworkError",
    "HttpError",
    "TooManyRedirectsError",
    "ConnectionFailedError",
]


class IsoCatalogError(RuntimeError):
    """Base exception for catalog, download, or verification failures."""


class ConfigurationError(IsoCatalogError):
    """Raised when runtime settings contain values that fail validation."""


class ConfigParseError(IsoCatalogError):
    """Raised when a YAML document cannot be parsed into a mapping."""

    def __init__(self, path: object, message: str) -> None:
        super().__init__(f"Failed to parse {path}: {message}")
        self.path = path


class NotFoundError(IsoCatalogError):
    """Raised when a catalog key or an expected local file does not exist."""


class ValidationError(IsoCatalogError):
    """Raised when user-supplied catalog input has the wrong shape."""


class InvalidURLError(ValidationError):
    """Raised when an ISO URL does not use the http or https scheme."""


class InvalidFilenameError(ValidationError):
    """Raised when a URL does not end in a usable ``.iso`` filename."""


class InvalidChecksumFormatError(ValidationError):
    """Raised when a checksum token is neither a digest, a prefixed digest, nor a URL."""


class ChecksumNotFoundError(IsoCatalogError):
    """Raised when a checksum manifest has no line for the requested filename."""

    def __init__(self, filename: str, manifest_url: Optional[str] = None) -> None:
        location = f" in {manifest_url}" if manifest_url else " in checksum file"
        super().__init__(f"Could not find checksum for {filename}{location}")
        self.filename = filename
        self.manifest_url = manifest_url


class ChecksumMismatchError(IsoCatalogError):
    """Raised when a computed digest differs from the catalog's expected digest."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class NetworkError(IsoCatalogError):
    """Raised when an HTTP transfer cannot be completed."""


class HttpError(NetworkError):
    """Raised when a server answers with a non-success, non-redirect status."""

    def __init__(self, status_code: int, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP Error: {status_code} {message}".rstrip())
        self.status_code = status_code
        self.message = message
        self.url = url


class TooManyRedirectsError(NetworkError):
    """Raised when a redirect chain is longer than the configured bound."""

    def __init__(self, limit: int, hops: Sequence[str] = ()) -> None:
        super().__init__(f"Too many redirects (limit {limit})")
        self.limit = limit
        self.hops = tuple(hops)


class ConnectionFailedError(NetworkError):
    """Raised when the transport layer fails (DNS, TLS, connection reset)."""
