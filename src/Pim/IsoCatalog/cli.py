# === NAVMAP v1 ===
# {
#   "module": "Pim.IsoCatalog.cli",
#   "purpose": "Typer CLI exposing catalog and profile commands",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "catalog-commands", "name": "Catalog commands", "anchor": "CAT", "kind": "api"},
#     {"id": "profile-commands", "name": "Profile commands", "anchor": "PRO", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Typer CLI for the ISO catalog.

Commands:

    pim-iso list [--long]             (alias: ls)
    pim-iso download KEY | --all [--force]
    pim-iso verify KEY | --all
    pim-iso add
    pim-iso config
    pim-iso profile list|show|add

Only a missing required argument produces a non-zero exit status; download
and verification failures are reported in the command output.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .catalog import CatalogStore
from .engine import CatalogEngine
from .errors import ConfigurationError
from .logging_utils import setup_logging
from .profiles import ProfileManager, ProfileStore
from .settings import ConfigPaths, RuntimeSettings, load_settings

_console = Console()

app = typer.Typer(
    name="pim-iso",
    help="Manage a local catalog of downloadable ISO images",
    no_args_is_help=True,
)
profile_app = typer.Typer(
    name="profile",
    help="Manage installation profiles",
    no_args_is_help=True,
)
app.add_typer(profile_app, name="profile")


class CliContext:
    """Per-invocation state shared by all commands."""

    def __init__(self, paths: ConfigPaths, settings: RuntimeSettings, verbosity: int = 0) -> None:
        self.paths = paths
        self.settings = settings
        self.verbosity = verbosity
        self.console = _console
        self._engine: Optional[CatalogEngine] = None

    @property
    def engine(self) -> CatalogEngine:
        if self._engine is None:
            self._engine = CatalogEngine(
                CatalogStore.load(self.paths),
                self.settings,
                console=self.console,
            )
        return self._engine

    def profiles(self) -> ProfileManager:
        return ProfileManager(ProfileStore.load(self.paths), console=self.console)


_context: Optional[CliContext] = None


def get_context() -> CliContext:
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"pim-iso {__version__}")
        raise typer.Exit(0)


def _console_level(verbosity: int, configured: str) -> str:
    if verbosity >= 2:
        return "DEBUG"
    if verbosity == 1:
        return "INFO"
    return configured


@app.callback()
def main(
    project_dir: Optional[Path] = typer.Option(
        None,
        "--project-dir",
        "-C",
        envvar="PIM_PROJECT_DIR",
        help="Directory holding project-local isos.yml, profiles.yml and pim.yml",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Download, verify, and catalog ISO images."""

    global _context

    paths = ConfigPaths.from_environment(project_dir)
    try:
        settings = load_settings(paths)
    except ConfigurationError as exc:
        _console.print(f"Error: {exc}", markup=False)
        raise typer.Exit(1)

    setup_logging(
        level=_console_level(verbosity, settings.logging.level),
        log_dir=settings.log_dir,
        retention_days=settings.logging.retention_days,
        max_log_size_mb=settings.logging.max_log_size_mb,
    )
    _context = CliContext(paths, settings, verbosity)


# --- Catalog commands ---------------------------------------------------------


@app.command("list")
def list_command(
    long: bool = typer.Option(False, "--long", "-l", help="Long format with size and status"),
) -> None:
    """List ISOs in catalog."""

    get_context().engine.list_entries(long=long)


@app.command("ls", hidden=True)
def ls_command(
    long: bool = typer.Option(False, "--long", "-l", help="Long format with size and status"),
) -> None:
    """Alias for ``list``."""

    get_context().engine.list_entries(long=long)


@app.command()
def download(
    iso_key: Optional[str] = typer.Argument(None, help="Catalog key to download"),
    all_: bool = typer.Option(False, "--all", "-a", help="Download all missing ISOs"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite without asking"),
) -> None:
    """Download a specific ISO from catalog."""

    engine = get_context().engine
    if all_:
        engine.download_all()
    elif iso_key:
        engine.download(iso_key, force=force)
    else:
        typer.echo("Error: Provide an ISO key or use --all flag")
        raise typer.Exit(1)


@app.command()
def verify(
    iso_key: Optional[str] = typer.Argument(None, help="Catalog key to verify"),
    all_: bool = typer.Option(False, "--all", "-a", help="Verify all downloaded ISOs"),
) -> None:
    """Verify checksum of a downloaded ISO."""

    engine = get_context().engine
    if all_:
        engine.verify_all()
    elif iso_key:
        engine.verify(iso_key)
    else:
        typer.echo("Error: Provide an ISO key or use --all flag")
        raise typer.Exit(1)


@app.command()
def add() -> None:
    """Add a new ISO to the catalog interactively."""

    get_context().engine.add()


@app.command()
def config() -> None:
    """Show ISO configuration."""

    get_context().engine.show_config()


# --- Profile commands ---------------------------------------------------------


@profile_app.command("list")
def profile_list(
    long: bool = typer.Option(False, "--long", "-l", help="Long format with hostname and username"),
) -> None:
    """List profiles."""

    get_context().profiles().list(long=long)


@profile_app.command("show")
def profile_show(name: str = typer.Argument(..., help="Profile name")) -> None:
    """Show details of a profile."""

    get_context().profiles().show(name)


@profile_app.command("add")
def profile_add() -> None:
    """Add a new profile interactively."""

    get_context().profiles().add()


__all__ = ["app", "profile_app", "CliContext", "get_context", "main"]
