"""YAML document helpers shared by the catalog, settings, and profile stores."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from .errors import ConfigParseError

LOGGER = logging.getLogger(__name__)

FRAGMENT_SUFFIX = ".yml"

__all__ = ["FRAGMENT_SUFFIX", "load_yaml", "load_fragments", "read_yaml", "write_yaml"]


def read_yaml(path: Path) -> Dict[str, Any]:
    """Parse ``path`` and return its top-level mapping.

    Raises:
        ConfigParseError: If the document is not valid YAML or its top level
            is not a mapping.
    """

    try:
        with path.open("r", encoding="utf-8") as handle:
            document = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigParseError(path, str(exc)) from exc
    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ConfigParseError(path, f"expected a mapping, found {type(document).__name__}")
    return dict(document)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Return the mapping stored in ``path``, or ``{}`` when absent or malformed.

    A malformed document is logged as a warning and treated as empty so one
    broken fragment never prevents the rest of the catalog from loading.
    """

    if not path.is_file():
        return {}
    try:
        return read_yaml(path)
    except ConfigParseError as exc:
        LOGGER.warning("Warning: %s", exc, extra={"stage": "config", "path": str(path)})
        return {}


def load_fragments(directory: Path) -> List[Dict[str, Any]]:
    """Load every ``*.yml`` document in ``directory`` in file-name order."""

    if not directory.is_dir():
        return []
    files = sorted(directory.glob(f"*{FRAGMENT_SUFFIX}"), key=lambda item: item.name)
    return [load_yaml(path) for path in files]


def write_yaml(path: Path, payload: Mapping[str, Any]) -> Path:
    """Serialise ``payload`` to ``path``, creating parent directories first."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(payload), handle, sort_keys=False, default_flow_style=False)
    LOGGER.debug("wrote yaml document", extra={"stage": "config", "path": str(path)})
    return path
