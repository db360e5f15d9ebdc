# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.catalog",
#   "purpose": "Catalog entry model and the layered store that loads and persists entries",
#   "sections": [
#     {"id": "catalogentry", "name": "CatalogEntry", "anchor": "class-catalogentry", "kind": "class"},
#     {"id": "catalogstore", "name": "CatalogStore", "anchor": "class-catalogstore", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Catalog entries and the layered store that assembles them.

The catalog is a mapping of key to :class:`CatalogEntry`.  It is built from
every ``isos.d/*.yml`` fragment in file-name order, followed by the project's
``isos.yml`` as the highest-precedence layer.  Layers are combined with
:func:`~Pim.IsoCatalog.merge.deep_merge`, so a later layer replaces individual
fields of an entry without erasing fields it omits.

The store is read-mostly.  :meth:`CatalogStore.save` writes a single-entry
fragment and leaves the in-memory view untouched; a fresh :meth:`CatalogStore.load`
picks the new entry up.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import NotFoundError
from .io import FRAGMENT_SUFFIX, load_fragments, load_yaml, write_yaml
from .merge import deep_merge
from .settings import ConfigPaths

LOGGER = logging.getLogger(__name__)

ISO_EXTENSION = ".iso"
UNKNOWN_ARCHITECTURE = "unknown"

__all__ = ["CatalogEntry", "CatalogStore", "ISO_EXTENSION", "UNKNOWN_ARCHITECTURE"]


class CatalogEntry(BaseModel):
    """One downloadable image described by the catalog.

    Attributes:
        key: Catalog-wide identifier; not persisted inside the entry body.
        name: Display name.
        url: Source URL of the image.
        checksum: Expected digest in ``sha256:<hex>`` form.
        checksum_url: Manifest the checksum was taken from, when known.
        filename: Local file name; defaults to ``<key>.iso``.
        architecture: Detected CPU architecture label or ``unknown``.

    Examples:
        >>> entry = CatalogEntry.from_mapping("demo", {"url": "https://example.org/demo.iso"})
        >>> entry.local_filename
        'demo.iso'
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    name: Optional[str] = None
    url: str
    checksum: Optional[str] = None
    checksum_url: Optional[str] = None
    filename: Optional[str] = None
    architecture: Optional[str] = Field(default=None)

    @classmethod
    def from_mapping(cls, key: str, payload: Mapping[str, Any]) -> "CatalogEntry":
        """Build an entry from a YAML mapping stored under ``key``."""

        return cls.model_validate({**payload, "key": key})

    @property
    def local_filename(self) -> str:
        return self.filename or f"{self.key}{ISO_EXTENSION}"

    def to_mapping(self) -> Dict[str, Any]:
        """Return the persisted field mapping, omitting absent optional fields."""

        return self.model_dump(exclude={"key"}, exclude_none=True)


class CatalogStore:
    """Merged, read-mostly view over every catalog layer.

    Args:
        raw: Merged key to field-mapping tree.
        fragments_dir: Directory that :meth:`save` writes new fragments into.
    """

    def __init__(self, raw: Mapping[str, Any], fragments_dir: Path) -> None:
        self._raw: Dict[str, Any] = dict(raw)
        self.fragments_dir = fragments_dir
        self._entries = MappingProxyType(self._build_entries(self._raw))

    @classmethod
    def load(cls, paths: Optional[ConfigPaths] = None) -> "CatalogStore":
        """Assemble the catalog from fragments and the project-local file."""

        paths = paths or ConfigPaths.from_environment()
        merged: Dict[str, Any] = {}
        for fragment in load_fragments(paths.catalog_fragments_dir):
            merged = deep_merge(merged, fragment)
        merged = deep_merge(merged, load_yaml(paths.project_catalog_file))
        LOGGER.debug(
            "catalog loaded",
            extra={"stage": "catalog", "entries": len(merged)},
        )
        return cls(merged, paths.catalog_fragments_dir)

    @staticmethod
    def _build_entries(raw: Mapping[str, Any]) -> Dict[str, CatalogEntry]:
        entries: Dict[str, CatalogEntry] = {}
        for key, payload in raw.items():
            key = str(key)
            if not isinstance(payload, Mapping):
                LOGGER.warning(
                    "Warning: catalog entry '%s' is not a mapping; skipping",
                    key,
                    extra={"stage": "catalog", "entry": key},
                )
                continue
            try:
                entries[key] = CatalogEntry.from_mapping(key, payload)
            except PydanticValidationError as exc:
                LOGGER.warning(
                    "Warning: catalog entry '%s' is invalid; skipping (%s)",
                    key,
                    exc.errors()[0].get("msg", "invalid"),
                    extra={"stage": "catalog", "entry": key},
                )
        return entries

    def entries(self) -> Mapping[str, CatalogEntry]:
        """Read-only mapping of key to :class:`CatalogEntry`."""

        return self._entries

    def raw(self) -> Mapping[str, Any]:
        return MappingProxyType(self._raw)

    def get(self, key: str) -> CatalogEntry:
        try:
            return self._entries[key]
        except KeyError:
            raise NotFoundError(f"ISO '{key}' not found in catalog") from None

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def fragment_path(self, key: str) -> Path:
        return self.fragments_dir / f"{key}{FRAGMENT_SUFFIX}"

    def save(self, key: str, entry: CatalogEntry) -> Path:
        """Write ``{key: entry}`` as a new fragment named ``<key>.yml``.

        Existing fragments are not consulted; if another fragment defines the
        same key, the later file name wins on the next load.
        """

        path = write_yaml(self.fragment_path(key), {key: entry.to_mapping()})
        LOGGER.info("saved catalog entry", extra={"stage": "catalog", "entry": key})
        return path
