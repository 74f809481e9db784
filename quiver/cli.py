"""CLI interface for QUIVER.

This module provides the Typer-based command-line interface:

- ``quiver sync``: install and upgrade the agents selected for a profile
- ``quiver status``: show how installed agents compare to the catalog
- ``quiver catalog``: list the agents the catalog offers
- ``quiver configure``: persist a configuration value
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from quiver.catalog.client import CatalogClient
from quiver.config.manager import ConfigManager
from quiver.config.settings import Settings
from quiver.sync.engine import SyncOptions, plan_sync, run_sync
from quiver.sync.profile import ProjectProfile, load_profile
from quiver.sync.report import render_report
from quiver.sync.resolution import ResolutionMode
from quiver.ui.prompts import UpgradePrompter
from quiver.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_success,
    show_version,
)
from quiver.utils.errors import ExitCode, QuiverError, UserCancelledError
from quiver.utils.logging import log_message, setup_logging

# Create Typer app
app = typer.Typer(
    name="quiver",
    help="QUIVER - Select and synchronize AI agents from a curated catalog",
    add_completion=False,
    no_args_is_help=False,
)

# Shared option declarations
ProjectTypeOption = Annotated[
    str | None,
    typer.Option("--type", "-t", help="Project type (api, web, cli, library, ...)"),
]
LanguageOption = Annotated[
    list[str] | None,
    typer.Option("--language", "-l", help="Language used by the project (repeatable)"),
]
PainPointOption = Annotated[
    list[str] | None,
    typer.Option("--pain-point", "-p", help="Problem to get help with (repeatable)"),
]
ProfileFileOption = Annotated[
    Path | None,
    typer.Option("--profile", help="JSON file with type, languages and pain_points"),
]
CatalogOption = Annotated[
    str | None,
    typer.Option("--catalog", "-c", help="Catalog manifest URL or path (default: from config)"),
]
AgentsDirOption = Annotated[
    Path | None,
    typer.Option("--agents-dir", "-d", help="Local agents directory (default: from config)"),
]


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        show_version()
        raise typer.Exit()


def _load_settings() -> Settings:
    config = ConfigManager()
    return config.load()


def _build_profile(
    profile_file: Path | None,
    project_type: str | None,
    languages: list[str] | None,
    pain_points: list[str] | None,
) -> ProjectProfile:
    """Combine a profile file with command-line values."""
    base = load_profile(profile_file) if profile_file else ProjectProfile()
    return base.merged_with(
        project_type=project_type,
        languages=languages or (),
        pain_points=pain_points or (),
    )


def _validate_upgrade_policy(policy: str | None) -> str | None:
    """Validate the --upgrade option value.

    Raises:
        typer.BadParameter: If policy is not one of all, none, ask
    """
    if policy is None:
        return None
    try:
        return ResolutionMode.from_policy(policy).value
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Map QUIVER errors and Ctrl+C to a message and an exit code."""
    try:
        try:
            yield
        except KeyboardInterrupt as e:
            raise UserCancelledError("Operation cancelled by user") from e
    except UserCancelledError as e:
        print_info(f"\n{e}")
        raise typer.Exit(ExitCode.USER_CANCELLED) from e
    except QuiverError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from e


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    show_config: Annotated[
        bool,
        typer.Option(
            "--config",
            help="Show current configuration and exit",
        ),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
) -> None:
    """QUIVER - Select and synchronize AI agents from a curated catalog."""
    setup_logging()

    if show_config:
        config = ConfigManager()
        config.load()
        config.show()
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


@app.command()
def sync(
    project_type: ProjectTypeOption = None,
    language: LanguageOption = None,
    pain_point: PainPointOption = None,
    profile_file: ProfileFileOption = None,
    catalog: CatalogOption = None,
    agents_dir: AgentsDirOption = None,
    upgrade: Annotated[
        str | None,
        typer.Option(
            "--upgrade",
            "-u",
            callback=_validate_upgrade_policy,
            help="How to handle newer catalog versions: all, none or ask (default: from config)",
        ),
    ] = None,
    max_parallel: Annotated[
        int | None,
        typer.Option(
            "--max-parallel",
            help="Maximum parallel downloads (1-8, default: from config)",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show what would change without writing anything",
        ),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the report as JSON",
        ),
    ] = False,
) -> None:
    """Install and upgrade the agents selected for a project profile.

    Agents installed locally that are not selected, or that the catalog
    does not offer, are never modified.
    """
    with _handle_errors():
        settings = _load_settings()
        options = SyncOptions.from_settings(
            settings,
            catalog_url=catalog,
            agents_dir=agents_dir,
            upgrade_policy=upgrade,
            max_parallel=max_parallel,
            dry_run=dry_run,
        )
        profile = _build_profile(profile_file, project_type, language, pain_point)
        if not as_json:
            print_header("Agent Sync")
            print_info(f"Agents directory: {options.agents_dir}")

        with CatalogClient(timeout_seconds=options.fetch_timeout_seconds) as client:
            confirm = None
            if options.mode is ResolutionMode.PER_ITEM and not as_json:
                confirm = UpgradePrompter()
            report = run_sync(profile, options, confirm=confirm, client=client, quiet=as_json)

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report)

    log_message(f"Exiting with {report.exit_code.name}")
    raise typer.Exit(int(report.exit_code))


@app.command()
def status(
    project_type: ProjectTypeOption = None,
    language: LanguageOption = None,
    pain_point: PainPointOption = None,
    profile_file: ProfileFileOption = None,
    catalog: CatalogOption = None,
    agents_dir: AgentsDirOption = None,
    as_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the classification as JSON",
        ),
    ] = False,
) -> None:
    """Classify installed and selected agents without changing anything."""
    with _handle_errors():
        settings = _load_settings()
        options = SyncOptions.from_settings(settings, catalog_url=catalog, agents_dir=agents_dir)
        profile = _build_profile(profile_file, project_type, language, pain_point)
        with CatalogClient(timeout_seconds=options.fetch_timeout_seconds) as client:
            plan = plan_sync(profile, options, client)

    buckets = plan.buckets.as_dict()
    if as_json:
        typer.echo(json.dumps({"profile": profile.to_dict(), **buckets}, indent=2))
        return

    print_header("Agent Status")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Status")
    table.add_column("Count", justify="right")
    table.add_column("Agents")
    labels = {
        "new_install": "Not installed",
        "upgrade_candidate": "Update available",
        "up_to_date": "Up to date",
        "custom": "Custom",
        "unresolved": "Not in catalog",
    }
    for bucket, names in buckets.items():
        table.add_row(labels[bucket], str(len(names)), escape(", ".join(names)) or "-")
    console.print(table)


@app.command(name="catalog")
def list_catalog(
    catalog: CatalogOption = None,
) -> None:
    """List the agents offered by the catalog, grouped by category."""
    with _handle_errors():
        settings = _load_settings()
        options = SyncOptions.from_settings(settings, catalog_url=catalog)
        with CatalogClient(timeout_seconds=options.fetch_timeout_seconds) as client:
            manifest = client.fetch_manifest(options.catalog_url)

    print_header(f"Catalog ({len(manifest)} agents)")
    for category, entries in manifest.categories().items():
        console.print(f"  [bold]{escape(category)}[/bold]")
        for entry in entries:
            marker = " [yellow](update available)[/yellow]" if entry.update_available else ""
            description = f" [dim]- {escape(entry.description)}[/dim]" if entry.description else ""
            console.print(f"    {escape(entry.name)}{description}{marker}")
        console.print()


@app.command()
def configure(
    key: Annotated[str, typer.Argument(help="Configuration key, e.g. CATALOG_URL")],
    value: Annotated[str, typer.Argument(help="Value to store")],
    local: Annotated[
        bool,
        typer.Option(
            "--local",
            help="Write to the project's .quiver file instead of ~/.quiver-config",
        ),
    ] = False,
) -> None:
    """Persist a configuration value."""
    config = ConfigManager()
    config.load()
    try:
        path = config.save(key.upper(), value, scope="local" if local else "global")
    except (ValueError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e
    print_success(f"Saved {key.upper()} to {path}")


__all__ = [
    "app",
    "main",
]
