"""Layered installation profiles that inherit from a ``default`` profile.

Profiles are loaded exactly like the ISO catalog: ``profiles.d/*.yml``
fragments in file-name order, then the project's ``profiles.yml``.  Every
named profile is resolved on top of ``default`` with the same layered merge,
so a profile only needs to list the fields it changes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from rich.console import Console

from .io import FRAGMENT_SUFFIX, load_fragments, load_yaml, write_yaml
from .merge import deep_merge
from .settings import ConfigPaths

LOGGER = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"

PROFILE_FIELDS: Sequence[str] = (
    "hostname",
    "username",
    "password",
    "timezone",
    "domain",
    "locale",
    "keyboard",
    "packages",
    "authorized_keys_url",
)

__all__ = ["DEFAULT_PROFILE", "PROFILE_FIELDS", "ProfileManager", "ProfileStore"]


class ProfileStore:
    """Merged view over every profile layer."""

    def __init__(self, raw: Mapping[str, Any], paths: ConfigPaths) -> None:
        self._profiles: Dict[str, Any] = {
            str(name): dict(data) if isinstance(data, Mapping) else {}
            for name, data in raw.items()
        }
        self.paths = paths

    @classmethod
    def load(cls, paths: Optional[ConfigPaths] = None) -> "ProfileStore":
        paths = paths or ConfigPaths.from_environment()
        merged: Dict[str, Any] = {}
        for fragment in load_fragments(paths.profile_fragments_dir):
            merged = deep_merge(merged, fragment)
        merged = deep_merge(merged, load_yaml(paths.project_profiles_file))
        return cls(merged, paths)

    def profiles(self) -> Mapping[str, Any]:
        return MappingProxyType(self._profiles)

    def names(self) -> List[str]:
        return sorted(self._profiles)

    def profile(self, name: str) -> Dict[str, Any]:
        """Return ``name`` resolved on top of the ``default`` profile.

        An empty name or ``default`` returns the default profile itself.
        """

        default = self._profiles.get(DEFAULT_PROFILE) or {}
        name = str(name or "")
        if not name or name == DEFAULT_PROFILE:
            return deep_merge(default, None)
        return deep_merge(default, self._profiles.get(name) or {})

    def save(self, name: str, data: Mapping[str, Any]) -> Path:
        path = self.paths.profile_fragments_dir / f"{name}{FRAGMENT_SUFFIX}"
        write_yaml(path, {name: dict(data)})
        LOGGER.info("saved profile", extra={"stage": "profile", "entry": name})
        return path

    def find_template(self, subdir: str, filename: str) -> Optional[Path]:
        """Look for ``subdir/filename`` in the project dir, then the global config dir."""

        for root in (self.paths.project_dir, self.paths.config_dir):
            candidate = root / subdir / filename
            if candidate.exists():
                return candidate
        return None


class ProfileManager:
    """Console operations over a :class:`ProfileStore`."""

    def __init__(
        self,
        store: ProfileStore,
        *,
        console: Optional[Console] = None,
        prompt: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.store = store
        self.console = console or Console()
        self.prompt = prompt or (lambda message: self.console.input(message, markup=False))

    def _say(self, message: str = "") -> None:
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)

    def list(self, long: bool = False) -> List[str]:
        names = self.store.names()
        if not names:
            self._say('No profiles configured. Use "pim-iso profile add" to add some.')
            return names
        if not long:
            for name in names:
                self._say(name)
            return names
        width = max(len(name) for name in names)
        for name in names:
            data = self.store.profile(name)
            hostname = data.get("hostname") or "-"
            username = data.get("username") or "-"
            self._say(f"{name.ljust(width)}  {hostname}  {username}")
        return names

    def _template(self, subdir: str, name: str, suffix: str) -> Optional[Path]:
        found = self.store.find_template(subdir, f"{name}{suffix}")
        if found is None and name != DEFAULT_PROFILE:
            found = self.store.find_template(subdir, f"{DEFAULT_PROFILE}{suffix}")
        return found

    def show(self, name: str) -> bool:
        data = self.store.profile(name)
        if not data and name != DEFAULT_PROFILE:
            self._say(f"Error: Profile '{name}' not found")
            return False

        self._say(f"Profile: {name}")
        self._say()
        self._say("Configuration:")
        if not data:
            self._say("  (no configuration)")
        for key, value in data.items():
            self._say(f"  {key}: {value}")

        self._say()
        self._say("Templates:")
        preseed = self._template("preseeds.d", name, ".cfg.erb")
        install = self._template("installs.d", name, ".sh")
        self._say(f"  Preseed: {preseed or '(not found)'}")
        self._say(f"  Install: {install or '(not found)'}")
        return True

    def add(self) -> bool:
        self._say("Add New Profile\n")
        name = self.prompt("Profile name: ").strip()
        if not name:
            self._say("Error: Profile name is required")
            return False

        if name in self.store.profiles():
            answer = self.prompt(f"Profile '{name}' already exists. Overwrite? (y/N) ")
            if answer.strip().lower() != "y":
                return False

        data: Dict[str, str] = {}
        for field in PROFILE_FIELDS:
            value = self.prompt(f"{field}: ").strip()
            if value:
                data[field] = value

        if not data:
            self._say("\nNo fields provided. Profile not created.")
            return False

        self._say(f"\nCreating profile: {name}\n")
        for key, value in data.items():
            self._say(f"  {key}: {value}")

        self.store.save(name, data)
        self._say(f"\nOK Profile saved to profiles.d/{name}{FRAGMENT_SUFFIX}")
        return True
