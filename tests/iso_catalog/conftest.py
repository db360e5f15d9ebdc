"""Shared fixtures for the iso_catalog test suite."""

from __future__ import annotations

import hashlib
import io
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional

import httpx
import pytest
import yaml
from rich.console import Console

from Pim.IsoCatalog.catalog import CatalogStore
from Pim.IsoCatalog.download import Downloader
from Pim.IsoCatalog.engine import CatalogEngine
from Pim.IsoCatalog.logging_utils import LOGGER_NAME
from Pim.IsoCatalog.settings import ConfigPaths, IsoSettings, RuntimeSettings

_PIM_ENV = ("PIM_ISO_DIR", "PIM_LOG_LEVEL", "PIM_LOG_DIR", "PIM_PROJECT_DIR")


def sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


@pytest.fixture(autouse=True)
def _clean_pim_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _PIM_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_managed_handlers():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_pim_managed", False):
            logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def paths(tmp_path: Path) -> ConfigPaths:
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return ConfigPaths(
        config_dir=tmp_path / "config" / "pim",
        cache_home=tmp_path / "cache",
        project_dir=project_dir,
    )


@pytest.fixture
def iso_dir(tmp_path: Path) -> Path:
    return tmp_path / "isos"


@pytest.fixture
def settings(paths: ConfigPaths, iso_dir: Path) -> RuntimeSettings:
    return RuntimeSettings(iso=IsoSettings(iso_dir=str(iso_dir)), paths=paths)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


@pytest.fixture
def read_output(console: Console) -> Callable[[], str]:
    """Return everything printed to the test console so far."""

    return lambda: console.file.getvalue()  # type: ignore[attr-defined]


@pytest.fixture
def write_fragment(paths: ConfigPaths) -> Callable[[str, Mapping[str, object]], Path]:
    """Write ``payload`` as ``isos.d/<name>.yml``."""

    def _write(name: str, payload: Mapping[str, object]) -> Path:
        paths.catalog_fragments_dir.mkdir(parents=True, exist_ok=True)
        target = paths.catalog_fragments_dir / f"{name}.yml"
        target.write_text(yaml.safe_dump(dict(payload)), encoding="utf-8")
        return target

    return _write


def _scripted_prompt(answers: Iterable[str]) -> Callable[[str], str]:
    iterator = iter(answers)
    return lambda message: next(iterator)


@pytest.fixture
def make_engine(
    paths: ConfigPaths,
    settings: RuntimeSettings,
    console: Console,
) -> Callable[..., CatalogEngine]:
    """Build an engine over an in-memory catalog and a mocked transport."""

    def _make(
        catalog: Mapping[str, Mapping[str, object]],
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        *,
        answers: Iterable[str] = (),
        redirect_limit: int = 5,
    ) -> CatalogEngine:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise AssertionError(f"unexpected request to {request.url}")

        client = httpx.Client(transport=httpx.MockTransport(handler or _refuse))
        store = CatalogStore(dict(catalog), paths.catalog_fragments_dir)
        return CatalogEngine(
            store,
            settings,
            downloader=Downloader(client, redirect_limit=redirect_limit, chunk_size=8),
            console=console,
            prompt=_scripted_prompt(answers),
        )

    return _make


@pytest.fixture
def entry_payload() -> Callable[..., Dict[str, object]]:
    """Build a catalog entry mapping whose checksum matches ``payload``."""

    def _build(name: str, payload: bytes, *, checksum: Optional[str] = None) -> Dict[str, object]:
        return {
            "name": name.title(),
            "url": f"https://mirror.example.org/{name}.iso",
            "checksum": checksum or f"sha256:{sha256_hex(payload)}",
            "filename": f"{name}.iso",
            "architecture": "amd64",
        }

    return _build
