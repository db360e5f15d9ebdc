# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.engine",
#   "purpose": "Orchestrate catalog listing, download, verification, and interactive additions",
#   "sections": [
#     {"id": "results", "name": "Result records", "anchor": "RES", "kind": "api"},
#     {"id": "catalogengine", "name": "CatalogEngine", "anchor": "class-catalogengine", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Catalog engine: the operations behind every ``pim-iso`` command.

:class:`CatalogEngine` ties the merged :class:`~Pim.IsoCatalog.catalog.CatalogStore`
to the :class:`~Pim.IsoCatalog.download.Downloader` and the checksum helpers.
Single-entry operations report failures as a printed line plus a ``False``
return value; bulk operations catch per-entry failures and keep going so the
final tally reflects every entry.  Everything is sequential and blocking.

Output goes through an injected :class:`rich.console.Console` and user input
through an injected ``prompt`` callable, so the engine never talks to a
terminal directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import httpx
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.text import Text

from .catalog import CatalogEntry, CatalogStore
from .checksums import abbreviate, ensure_checksum, verify_file
from .download import Downloader, DownloadProgress
from .errors import ChecksumMismatchError, IsoCatalogError, NetworkError, NotFoundError
from .formatters import format_bytes, format_progress, styled_status
from .resolver import derive_attributes, is_http_url
from .settings import ConfigPaths, RuntimeSettings, load_settings

LOGGER = logging.getLogger(__name__)

Prompt = Callable[[str], str]

STATUS_VERIFIED = "verified"
STATUS_DOWNLOADED = "downloaded"
STATUS_MISSING = "missing"

__all__ = [
    "CatalogEngine",
    "CatalogListing",
    "ListingRow",
    "Prompt",
    "VerifySummary",
]


@dataclass(frozen=True)
class ListingRow:
    key: str
    filename: str
    size: Optional[int] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class CatalogListing:
    """Rows printed by :meth:`CatalogEngine.list_entries` plus the on-disk total."""

    rows: Tuple[ListingRow, ...] = ()
    total_bytes: int = 0


@dataclass(frozen=True)
class VerifySummary:
    passed: int = 0
    failed: int = 0


class CatalogEngine:
    """Run catalog operations against the local ISO directory.

    Args:
        store: Merged catalog.
        settings: Runtime settings supplying the ISO directory.
        downloader: HTTP downloader; built from ``settings.http`` when omitted.
        console: Output sink; a default :class:`Console` when omitted.
        prompt: Line reader used for confirmations and the ``add`` flow.
    """

    def __init__(
        self,
        store: CatalogStore,
        settings: RuntimeSettings,
        *,
        downloader: Optional[Downloader] = None,
        console: Optional[Console] = None,
        prompt: Optional[Prompt] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.downloader = downloader or Downloader.from_settings(settings.http)
        self.console = console or Console()
        self.prompt: Prompt = prompt or self._console_prompt
        self.iso_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_environment(
        cls,
        project_dir: Optional[Union[str, Path]] = None,
        **kwargs: object,
    ) -> "CatalogEngine":
        """Load settings and catalog for ``project_dir`` and build an engine."""

        paths = ConfigPaths.from_environment(project_dir)
        settings = load_settings(paths)
        return cls(CatalogStore.load(paths), settings, **kwargs)  # type: ignore[arg-type]

    # --- helpers --------------------------------------------------------------

    @property
    def iso_dir(self) -> Path:
        return self.settings.iso_dir

    def local_path(self, entry: CatalogEntry) -> Path:
        return self.iso_dir / entry.local_filename

    def _console_prompt(self, message: str) -> str:
        return self.console.input(message, markup=False)

    def _say(self, message: Union[str, Text] = "", *, silent: bool = False) -> None:
        if silent:
            return
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)

    def _lookup(self, key: str, *, silent: bool) -> Optional[CatalogEntry]:
        try:
            return self.store.get(key)
        except NotFoundError as exc:
            self._say(f"Error: {exc}", silent=silent)
            return None

    def _fetch(self, entry: CatalogEntry, destination: Path) -> int:
        columns = (TextColumn("{task.description}", markup=False), BarColumn())
        with Progress(*columns, console=self.console, transient=True) as progress:
            task = progress.add_task(format_progress(0, None, None), total=None)

            def report(update: DownloadProgress) -> None:
                progress.update(
                    task,
                    completed=update.downloaded,
                    total=update.total,
                    description=format_progress(
                        update.downloaded, update.total, update.percentage
                    ),
                )

            return self.downloader.fetch(entry.url, destination, progress=report)

    def _status(self, entry: CatalogEntry, path: Path) -> str:
        if not path.exists():
            return STATUS_MISSING
        try:
            matches, _ = verify_file(path, entry.checksum)
        except OSError:
            return STATUS_DOWNLOADED
        return STATUS_VERIFIED if matches else STATUS_DOWNLOADED

    # --- operations -----------------------------------------------------------

    def show_config(self) -> Path:
        self._say(f"iso_dir: {self.iso_dir}")
        return self.iso_dir

    def list_entries(self, long: bool = False) -> CatalogListing:
        """Print catalog keys, or keys with size and status when ``long``.

        Long format re-hashes every present file to tell ``verified`` from
        ``downloaded``; absent files are ``missing`` and add nothing to the total.
        """

        entries = self.store.entries()
        if not entries:
            self._say('No ISOs in catalog. Use "pim-iso add" to add some.')
            return CatalogListing()

        keys = sorted(entries)
        if not long:
            for key in keys:
                self._say(key)
            return CatalogListing(
                rows=tuple(ListingRow(key, entries[key].local_filename) for key in keys)
            )

        rows: List[ListingRow] = []
        total = 0
        table = Table(box=None, show_header=False, pad_edge=False)
        table.add_column("key", no_wrap=True)
        table.add_column("size", justify="right", min_width=10, no_wrap=True)
        table.add_column("status", no_wrap=True)
        for key in keys:
            entry = entries[key]
            path = self.local_path(entry)
            status = self._status(entry, path)
            size: Optional[int] = None
            if status != STATUS_MISSING:
                size = path.stat().st_size
                total += size
            rows.append(ListingRow(key, entry.local_filename, size, status))
            table.add_row(
                Text(key),
                format_bytes(size) if size is not None else "-",
                styled_status(status),
            )
        self.console.print(table)
        self._say()
        self._say(f"Total: {format_bytes(total)}")
        return CatalogListing(rows=tuple(rows), total_bytes=total)

    def download(self, key: str, force: bool = False) -> bool:
        """Download ``key`` and verify it; the result is the verification outcome."""

        entry = self._lookup(key, silent=False)
        if entry is None:
            return False
        path = self.local_path(entry)

        if path.exists() and not force:
            answer = self.prompt("File exists. Re-download? (y/N) ")
            if answer.strip().lower() != "y":
                return False

        self._say(f"Downloading {entry.local_filename}...")
        try:
            self._fetch(entry, path)
        except (NetworkError, OSError) as exc:
            LOGGER.error(
                "download failed",
                extra={"stage": "download", "entry": key, "url": entry.url},
            )
            self._say(f"Error: {exc}")
            return False

        self._say("Verifying checksum...")
        return self.verify(key, silent=False)

    def download_all(self) -> int:
        """Download every entry whose file is absent; return the success count."""

        missing = [
            (key, entry)
            for key, entry in self.store.entries().items()
            if not self.local_path(entry).exists()
        ]
        if not missing:
            self._say("All ISOs are already downloaded.")
            return 0

        self._say("Downloading missing ISOs...\n")
        success_count = 0
        for index, (key, entry) in enumerate(missing, start=1):
            self._say(f"[{index}/{len(missing)}] Downloading {key}...")
            try:
                self._fetch(entry, self.local_path(entry))
            except (NetworkError, OSError, httpx.InvalidURL) as exc:
                LOGGER.warning(
                    "download failed; continuing with remaining entries",
                    extra={"stage": "download", "entry": key, "url": entry.url},
                )
                self._say(f"FAIL Download failed: {exc}\n")
                continue

            if self.verify(key, silent=True):
                self._say("OK Downloaded and verified\n")
                success_count += 1
            else:
                self._say("FAIL Checksum verification failed\n")

        self._say(f"Summary: {success_count} ISOs downloaded successfully")
        return success_count

    def verify(self, key: str, silent: bool = False) -> bool:
        """Re-hash the local file for ``key`` and compare it with the catalog."""

        entry = self._lookup(key, silent=silent)
        if entry is None:
            return False
        path = self.local_path(entry)
        filename = entry.local_filename

        if not path.exists():
            self._say(f"Error: File '{filename}' not found in {self.iso_dir}", silent=silent)
            return False
        if not entry.checksum:
            self._say(f"Error: ISO '{key}' has no checksum in catalog", silent=silent)
            return False

        self._say(f"Verifying {filename}...", silent=silent)
        try:
            actual = ensure_checksum(path, entry.checksum)
        except ChecksumMismatchError as exc:
            LOGGER.info("checksum mismatch", extra={"stage": "verify", "entry": key})
            self._say("FAIL Checksum mismatch!", silent=silent)
            self._say(f"  Expected: {abbreviate(exc.expected)}", silent=silent)
            self._say(f"  Got:      {abbreviate(exc.actual)}", silent=silent)
            return False
        except OSError as exc:
            self._say(f"Error: Could not read {path}: {exc}", silent=silent)
            return False

        self._say(f"OK Checksum matches: {abbreviate(actual)}", silent=silent)
        return True

    def verify_all(self) -> VerifySummary:
        """Verify every entry whose file exists; absent files are not counted."""

        present = [
            (key, entry)
            for key, entry in self.store.entries().items()
            if self.local_path(entry).exists()
        ]
        if not present:
            self._say("No downloaded ISOs to verify.")
            return VerifySummary()

        self._say("Verifying downloaded ISOs...\n")
        passed = failed = 0
        for key, entry in present:
            result = self.verify(key, silent=True)
            status = "OK" if result else "FAIL Checksum mismatch"
            self._say(f"{entry.local_filename.ljust(35)} {status}")
            if result:
                passed += 1
            else:
                failed += 1

        self._say()
        self._say(f"Summary: {passed} passed, {failed} failed")
        return VerifySummary(passed=passed, failed=failed)

    def add(self) -> bool:
        """Interactively add an entry derived from a URL and a checksum token."""

        self._say("Add New ISO to Catalog\n")
        url = self.prompt("ISO URL: ").strip()
        if not is_http_url(url):
            self._say("Error: URL must start with http:// or https://")
            return False

        checksum_token = self.prompt("Checksum (hash or URL): ").strip()
        self._say("\nProcessing...")
        try:
            entry = derive_attributes(
                url,
                checksum_token,
                fetch_text=self.downloader.fetch_text,
            )
        except IsoCatalogError as exc:
            LOGGER.info("add aborted", extra={"stage": "add", "url": url})
            self._say(f"Error: {exc}")
            return False

        self._say(f"  OK Extracted filename: {entry.filename}")
        self._say(f"  OK Detected architecture: {entry.architecture}")
        self._say(f"\nAdding to catalog as: {entry.key}\n")
        for field, value in entry.to_mapping().items():
            self._say(f"{field}: {value}")

        try:
            self.store.save(entry.key, entry)
        except OSError as exc:
            self._say(f"Error: Could not save catalog entry: {exc}")
            return False

        self._say("\nOK Added to catalog")
        return True
