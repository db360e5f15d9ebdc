"""Local catalog of downloadable ISO images.

The package loads a layered catalog of ISO entries, streams images into a
local cache directory, and verifies them against SHA-256 checksums.  The
public surface mirrors the ``pim-iso`` commands:

>>> from Pim.IsoCatalog import CatalogEngine
>>> engine = CatalogEngine.from_environment()  # doctest: +SKIP
>>> engine.verify_all()  # doctest: +SKIP
"""

from __future__ import annotations

__version__ = "0.3.0"

from .catalog import CatalogEntry, CatalogStore
from .checksums import normalize_checksum, sha256_file, verify_file
from .download import Downloader, DownloadProgress
from .engine import CatalogEngine, CatalogListing, VerifySummary
from .errors import (
    ChecksumMismatchError,
    ChecksumNotFoundError,
    ConfigParseError,
    HttpError,
    InvalidChecksumFormatError,
    InvalidFilenameError,
    IsoCatalogError,
    NetworkError,
    NotFoundError,
    TooManyRedirectsError,
    ValidationError,
)
from .merge import deep_merge
from .resolver import derive_attributes, detect_architecture
from .settings import ConfigPaths, RuntimeSettings, load_settings

__all__ = [
    "__version__",
    "CatalogEngine",
    "CatalogEntry",
    "CatalogListing",
    "CatalogStore",
    "ChecksumMismatchError",
    "ChecksumNotFoundError",
    "ConfigParseError",
    "ConfigPaths",
    "DownloadProgress",
    "Downloader",
    "HttpError",
    "InvalidChecksumFormatError",
    "InvalidFilenameError",
    "IsoCatalogError",
    "NetworkError",
    "NotFoundError",
    "RuntimeSettings",
    "TooManyRedirectsError",
    "ValidationError",
    "VerifySummary",
    "deep_merge",
    "derive_attributes",
    "detect_architecture",
    "load_settings",
    "normalize_checksum",
    "sha256_file",
    "verify_file",
]
