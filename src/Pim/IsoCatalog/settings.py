# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.settings",
#   "purpose": "Resolve configuration paths and layered runtime settings for the ISO catalog",
#   "sections": [
#     {"id": "paths", "name": "ConfigPaths", "anchor": "class-configpaths", "kind": "class"},
#     {"id": "models", "name": "Settings models", "anchor": "MOD", "kind": "api"},
#     {"id": "env", "name": "EnvironmentOverrides", "anchor": "class-environmentoverrides", "kind": "class"},
#     {"id": "load", "name": "load_settings", "anchor": "function-load-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration paths and runtime settings for the ISO catalog.

Runtime settings live in ``pim.yml`` documents: a global one inside the user's
configuration directory and an optional project-local one in the working
directory.  The two layers are merged with :func:`~Pim.IsoCatalog.merge.deep_merge`,
validated with Pydantic, and finally overridden by ``PIM_*`` environment
variables through :mod:`pydantic_settings`.

Directory locations come from :mod:`platformdirs`, which honours the XDG
variables on Linux.  Paths are resolved when :class:`ConfigPaths` is built so
tests can redirect them by patching the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import platformdirs
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .io import load_yaml
from .merge import merge_layers

APP_NAME = "pim"
SETTINGS_FILENAME = "pim.yml"
CATALOG_FILENAME = "isos.yml"
PROFILES_FILENAME = "profiles.yml"
CATALOG_FRAGMENT_DIR = "isos.d"
PROFILE_FRAGMENT_DIR = "profiles.d"

HOME_PLACEHOLDER = "$HOME"
CACHE_PLACEHOLDER = "$XDG_CACHE_HOME"

__all__ = [
    "APP_NAME",
    "ConfigPaths",
    "EnvironmentOverrides",
    "HttpSettings",
    "IsoSettings",
    "LoggingSettings",
    "RuntimeSettings",
    "expand_placeholders",
    "load_settings",
]


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem locations consulted while loading catalog configuration.

    Attributes:
        config_dir: Global configuration directory (``$XDG_CONFIG_HOME/pim``).
        cache_home: Base cache directory used for ``$XDG_CACHE_HOME`` expansion.
        project_dir: Directory holding project-local overrides.
    """

    config_dir: Path
    cache_home: Path
    project_dir: Path

    @classmethod
    def from_environment(cls, project_dir: Optional[Union[str, Path]] = None) -> "ConfigPaths":
        """Build paths from the current environment and working directory."""

        return cls(
            config_dir=platformdirs.user_config_path() / APP_NAME,
            cache_home=platformdirs.user_cache_path(),
            project_dir=Path(project_dir) if project_dir is not None else Path.cwd(),
        )

    @property
    def catalog_fragments_dir(self) -> Path:
        return self.config_dir / CATALOG_FRAGMENT_DIR

    @property
    def profile_fragments_dir(self) -> Path:
        return self.config_dir / PROFILE_FRAGMENT_DIR

    @property
    def global_settings_file(self) -> Path:
        return self.config_dir / SETTINGS_FILENAME

    @property
    def project_settings_file(self) -> Path:
        return self.project_dir / SETTINGS_FILENAME

    @property
    def project_catalog_file(self) -> Path:
        return self.project_dir / CATALOG_FILENAME

    @property
    def project_profiles_file(self) -> Path:
        return self.project_dir / PROFILES_FILENAME

    @property
    def default_iso_dir(self) -> Path:
        return self.cache_home / APP_NAME / "isos"


def expand_placeholders(value: str, *, cache_home: Path) -> Path:
    """Expand ``$HOME`` and ``$XDG_CACHE_HOME`` tokens and return an absolute path.

    Examples:
        >>> expand_placeholders("$XDG_CACHE_HOME/isos", cache_home=Path("/c")).as_posix()
        '/c/isos'
    """

    expanded = value.replace(HOME_PLACEHOLDER, str(Path.home()))
    expanded = expanded.replace(CACHE_PLACEHOLDER, str(cache_home))
    return Path(os.path.abspath(os.path.expanduser(expanded)))


class IsoSettings(BaseModel):
    iso_dir: Optional[str] = Field(default=None, description="Directory holding downloaded ISOs")

    model_config = {"extra": "ignore"}


class HttpSettings(BaseModel):
    connect_timeout_sec: float = Field(default=30.0, gt=0)
    read_timeout_sec: float = Field(default=300.0, gt=0)
    redirect_limit: int = Field(default=5, ge=0, le=50)
    chunk_size: int = Field(default=1 << 16, gt=0)
    user_agent: str = Field(default="pim-iso/0.3")

    model_config = {"extra": "ignore"}


class LoggingSettings(BaseModel):
    level: str = Field(default="WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=10, gt=0)
    retention_days: int = Field(default=30, ge=1)
    log_dir: Optional[Path] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}")
        return upper

    model_config = {"extra": "ignore", "validate_assignment": True}


class EnvironmentOverrides(BaseSettings):
    """``PIM_*`` environment variables that take precedence over YAML settings."""

    iso_dir: Optional[str] = None
    log_level: Optional[str] = None
    log_dir: Optional[Path] = None

    model_config = SettingsConfigDict(env_prefix="PIM_", extra="ignore")


class RuntimeSettings(BaseModel):
    """Validated runtime settings bound to the paths they were loaded from."""

    iso: IsoSettings = Field(default_factory=IsoSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    paths: ConfigPaths = Field(default_factory=ConfigPaths.from_environment, exclude=True)

    model_config = {"extra": "ignore", "arbitrary_types_allowed": True}

    @property
    def iso_dir(self) -> Path:
        """Resolved ISO storage directory, falling back to the cache default."""

        if not self.iso.iso_dir:
            return self.paths.default_iso_dir
        return expand_placeholders(self.iso.iso_dir, cache_home=self.paths.cache_home)

    @property
    def log_dir(self) -> Path:
        if self.logging.log_dir is not None:
            return self.logging.log_dir
        return platformdirs.user_log_path(APP_NAME)


def _environment_layer(overrides: EnvironmentOverrides) -> Dict[str, Dict[str, object]]:
    layer: Dict[str, Dict[str, object]] = {}
    if overrides.iso_dir:
        layer.setdefault("iso", {})["iso_dir"] = overrides.iso_dir
    if overrides.log_level:
        layer.setdefault("logging", {})["level"] = overrides.log_level
    if overrides.log_dir is not None:
        layer.setdefault("logging", {})["log_dir"] = overrides.log_dir
    return layer


def load_settings(paths: Optional[ConfigPaths] = None) -> RuntimeSettings:
    """Load global then project ``pim.yml`` and apply environment overrides.

    Args:
        paths: Locations to read from; defaults to :meth:`ConfigPaths.from_environment`.

    Returns:
        Validated :class:`RuntimeSettings`.

    Raises:
        ConfigurationError: If a merged value fails validation.
    """

    paths = paths or ConfigPaths.from_environment()
    raw = merge_layers(
        load_yaml(paths.global_settings_file),
        load_yaml(paths.project_settings_file),
    )

    raw = merge_layers(raw, _environment_layer(EnvironmentOverrides()))

    try:
        return RuntimeSettings.model_validate({**raw, "paths": paths})
    except PydanticValidationError as exc:
        sources = ", ".join(
            str(path) for path in (paths.global_settings_file, paths.project_settings_file)
        )
        raise ConfigurationError(f"Invalid settings in {sources}: {exc}") from exc
