"""Sync engine: one run from profile to completion report.

The engine sequences the pure steps (selection, classification, resolution)
around the two effectful ones (catalog fetch, installation). A manifest that
cannot be fetched or parsed ends the run before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from quiver.catalog.client import CatalogClient
from quiver.catalog.exceptions import CatalogError, ManifestFetchError
from quiver.catalog.manifest import Manifest
from quiver.config.settings import (
    MAX_PARALLEL_DOWNLOADS,
    MIN_PARALLEL_DOWNLOADS,
    Settings,
)
from quiver.sync.backup import BackupRecord
from quiver.sync.classifier import ClassificationBuckets, classify
from quiver.sync.installer import TransactionalInstaller
from quiver.sync.inventory import scan_inventory
from quiver.sync.profile import ProjectProfile
from quiver.sync.report import (
    Diagnostic,
    DiagnosticKind,
    InstallResult,
    InstallStatus,
    SyncReport,
    verify_mandatory,
)
from quiver.sync.resolution import ConfirmUpgrade, ResolutionMode, resolve_upgrades
from quiver.sync.selection import DEFAULT_RULES, RuleSet, select
from quiver.utils.console import print_info, print_step
from quiver.utils.errors import ConfigError
from quiver.utils.logging import log_message
from quiver.utils.retry import RetryConfig


@dataclass(frozen=True)
class SyncOptions:
    """Validated run options.

    Attributes:
        catalog_url: Manifest location (URL or path)
        agents_dir: Local artifact directory
        extension: Artifact file extension
        mode: Resolution mode for upgrade candidates
        max_parallel: Worker bound for artifact transactions
        fetch_timeout_seconds: Per-request transport timeout
        retry_delay_seconds: Base delay before the single download retry
        dry_run: Plan and report without writing anything
    """

    catalog_url: str
    agents_dir: Path
    extension: str = ".md"
    mode: ResolutionMode = ResolutionMode.PER_ITEM
    max_parallel: int = 4
    fetch_timeout_seconds: float = 30.0
    retry_delay_seconds: float = 1.0
    dry_run: bool = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        catalog_url: str | None = None,
        agents_dir: Path | None = None,
        upgrade_policy: str | None = None,
        max_parallel: int | None = None,
        dry_run: bool = False,
    ) -> SyncOptions:
        """Combine configuration with command-line overrides.

        Raises:
            ConfigError: If a value is missing or out of range
        """
        url = (catalog_url or settings.catalog_url).strip()
        if not url:
            raise ConfigError(
                "No catalog configured. Pass --catalog or set CATALOG_URL "
                "in ~/.quiver-config or QUIVER_CATALOG_URL."
            )

        try:
            mode = ResolutionMode.from_policy(upgrade_policy or settings.upgrade_policy)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        workers = max_parallel if max_parallel is not None else settings.max_parallel_downloads
        if not MIN_PARALLEL_DOWNLOADS <= workers <= MAX_PARALLEL_DOWNLOADS:
            raise ConfigError(
                f"MAX_PARALLEL_DOWNLOADS must be between {MIN_PARALLEL_DOWNLOADS} "
                f"and {MAX_PARALLEL_DOWNLOADS}, got {workers}"
            )

        extension = settings.artifact_extension
        if not extension.startswith(".") or len(extension) < 2:
            raise ConfigError(f"ARTIFACT_EXTENSION must start with '.', got '{extension}'")

        if settings.fetch_timeout_seconds <= 0:
            raise ConfigError("FETCH_TIMEOUT_SECONDS must be positive")
        if settings.retry_delay_seconds < 0:
            raise ConfigError("RETRY_DELAY_SECONDS must not be negative")

        return cls(
            catalog_url=url,
            agents_dir=agents_dir or Path(settings.agents_dir),
            extension=extension,
            mode=mode,
            max_parallel=workers,
            fetch_timeout_seconds=float(settings.fetch_timeout_seconds),
            retry_delay_seconds=float(settings.retry_delay_seconds),
            dry_run=dry_run,
        )

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=1,
            base_delay_seconds=self.retry_delay_seconds,
            max_delay_seconds=max(RetryConfig.max_delay_seconds, self.retry_delay_seconds),
        )


@dataclass(frozen=True)
class SyncPlan:
    """Everything decided before the first write."""

    manifest: Manifest
    selected: frozenset[str]
    local: frozenset[str]
    buckets: ClassificationBuckets
    mandatory: frozenset[str]


def plan_sync(
    profile: ProjectProfile,
    options: SyncOptions,
    client: CatalogClient,
    rules: RuleSet = DEFAULT_RULES,
) -> SyncPlan:
    """Fetch the manifest, scan the inventory and classify. Read-only.

    Raises:
        ManifestFetchError: If the manifest cannot be retrieved
        ManifestParseError: If the manifest is structurally invalid
    """
    manifest = client.fetch_manifest(options.catalog_url)
    local = scan_inventory(options.agents_dir, options.extension)
    selected = select(profile, rules)
    buckets = classify(
        selected,
        local,
        manifest.resolve().keys(),
        manifest.has_newer_version,
    )
    return SyncPlan(
        manifest=manifest,
        selected=selected,
        local=local,
        buckets=buckets,
        mandatory=rules.mandatory(),
    )


def _fatal_report(error: CatalogError, dry_run: bool) -> SyncReport:
    kind = (
        DiagnosticKind.MANIFEST_FETCH_ERROR
        if isinstance(error, ManifestFetchError)
        else DiagnosticKind.MANIFEST_PARSE_ERROR
    )
    log_message(f"Sync aborted: {error}")
    return SyncReport(
        diagnostics=[Diagnostic(kind=kind, message=str(error), fatal=True)],
        dry_run=dry_run,
    )


def _unresolved_diagnostics(names: frozenset[str]) -> list[Diagnostic]:
    return [
        Diagnostic(
            kind=DiagnosticKind.UNRESOLVED_SELECTION,
            message=f"Selected agent '{name}' is not offered by the catalog",
            name=name,
        )
        for name in sorted(names)
    ]


def _plan_report(plan: SyncPlan, approved: frozenset[str]) -> SyncReport:
    """Report what a run would do, without doing it."""
    buckets = plan.buckets
    report = SyncReport(dry_run=True)
    report.add_results(
        [InstallResult(name, InstallStatus.INSTALLED) for name in buckets.new_install]
        + [InstallResult(name, InstallStatus.UPGRADED) for name in approved]
        + [
            InstallResult(name, InstallStatus.SKIPPED)
            for name in buckets.upgrade_candidate - approved
        ]
    )
    expected = plan.local | buckets.new_install
    report.diagnostics.extend(
        Diagnostic(
            kind=DiagnosticKind.MISSING_MANDATORY_ARTIFACT,
            message=f"Mandatory agent '{name}' would not be installed",
            name=name,
        )
        for name in sorted(plan.mandatory - expected)
    )
    return report


def run_sync(
    profile: ProjectProfile,
    options: SyncOptions,
    *,
    rules: RuleSet = DEFAULT_RULES,
    confirm: ConfirmUpgrade | None = None,
    client: CatalogClient | None = None,
    now: datetime | None = None,
    quiet: bool = False,
) -> SyncReport:
    """Synchronize the agents directory with the catalog for a profile.

    Steps:
        1. Fetch the manifest (fatal on failure, nothing written)
        2. Scan the local inventory and select artifacts for the profile
        3. Classify and submit new installs
        4. Resolve upgrade candidates, back them up, submit approved upgrades
        5. Wait for every transaction and verify mandatory artifacts

    Args:
        profile: Project profile
        options: Validated run options
        rules: Selection rules
        confirm: Per-item upgrade disposition (ask mode only)
        client: Catalog client; one is created and closed if omitted
        now: Clock override for the backup directory name
        quiet: Suppress progress output

    Returns:
        Completion report
    """
    owns_client = client is None
    catalog = client or CatalogClient(timeout_seconds=options.fetch_timeout_seconds)
    try:
        return _run(profile, options, rules, confirm, catalog, now, quiet)
    finally:
        if owns_client:
            catalog.close()


def _run(
    profile: ProjectProfile,
    options: SyncOptions,
    rules: RuleSet,
    confirm: ConfirmUpgrade | None,
    client: CatalogClient,
    now: datetime | None,
    quiet: bool,
) -> SyncReport:
    log_message(f"Sync started: profile={profile.to_dict()}, options={options}")
    if not quiet:
        print_step(f"Fetching catalog from {options.catalog_url}")
    try:
        plan = plan_sync(profile, options, client, rules)
    except CatalogError as e:
        return _fatal_report(e, options.dry_run)

    buckets = plan.buckets
    locations = plan.manifest.resolve()
    # Includes selected names kept as custom because the catalog dropped them
    diagnostics = _unresolved_diagnostics(plan.selected - frozenset(locations))

    if options.dry_run:
        approved = resolve_upgrades(buckets.upgrade_candidate, options.mode, confirm)
        report = _plan_report(plan, approved)
    else:
        report = SyncReport()
        backup = BackupRecord(options.agents_dir, now=now)
        results: list[InstallResult] = []
        if buckets.new_install or buckets.upgrade_candidate:
            if not quiet and buckets.new_install:
                print_step(f"Installing {len(buckets.new_install)} new agent(s)")
            with TransactionalInstaller(
                client,
                options.agents_dir,
                backup=backup,
                extension=options.extension,
                max_parallel=options.max_parallel,
                retry_config=options.retry_config(),
            ) as installer:
                installer.submit_installs({name: locations[name] for name in buckets.new_install})

                approved = resolve_upgrades(buckets.upgrade_candidate, options.mode, confirm)
                results.extend(
                    InstallResult(name, InstallStatus.SKIPPED)
                    for name in buckets.upgrade_candidate - approved
                )
                if approved and not quiet:
                    print_step(f"Upgrading {len(approved)} agent(s)")
                diagnostics.extend(
                    installer.submit_upgrades({name: locations[name] for name in approved})
                )
                results.extend(installer.results())

        report.add_results(results)
        report.backup_path = backup.path
        report.diagnostics.extend(
            verify_mandatory(options.agents_dir, plan.mandatory, options.extension)
        )

    report.up_to_date = sorted(buckets.up_to_date)
    report.custom_preserved = sorted(buckets.custom)
    report.unresolved = sorted(buckets.unresolved)
    report.diagnostics[:0] = diagnostics

    log_message(f"Sync finished: {report.to_dict()}")
    if not quiet and buckets.custom:
        print_info(f"Leaving {len(buckets.custom)} custom agent(s) untouched")
    return report


__all__ = [
    "SyncOptions",
    "SyncPlan",
    "plan_sync",
    "run_sync",
]
