"""Install results, diagnostics, verification and the completion report."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.table import Table

from quiver.sync.inventory import DEFAULT_EXTENSION, scan_inventory
from quiver.utils.console import console, print_error, print_header, print_warning
from quiver.utils.errors import ExitCode


class InstallStatus(Enum):
    """Terminal state of one artifact transaction."""

    INSTALLED = "installed"
    UPGRADED = "upgraded"
    SKIPPED = "skipped"
    FAILED = "failed"


class FailureReason(Enum):
    """Why an artifact transaction failed."""

    TRANSPORT_FAILURE = "TransportFailure"
    EMPTY_PAYLOAD = "EmptyPayload"
    MALFORMED_PAYLOAD = "MalformedPayload"
    BACKUP_FAILURE = "BackupFailure"
    COMMIT_FAILURE = "CommitFailure"


@dataclass(frozen=True)
class InstallResult:
    """Outcome of one artifact transaction."""

    name: str
    status: InstallStatus
    reason: FailureReason | None = None
    detail: str = ""

    @classmethod
    def failed(cls, name: str, reason: FailureReason, detail: str = "") -> InstallResult:
        return cls(name=name, status=InstallStatus.FAILED, reason=reason, detail=detail)

    def describe(self) -> str:
        if self.status is InstallStatus.FAILED and self.reason is not None:
            suffix = f": {self.detail}" if self.detail else ""
            return f"Failed({self.reason.value}){suffix}"
        return self.status.value.capitalize()


class DiagnosticKind(Enum):
    MANIFEST_FETCH_ERROR = "ManifestFetchError"
    MANIFEST_PARSE_ERROR = "ManifestParseError"
    UNRESOLVED_SELECTION = "UnresolvedSelection"
    BACKUP_FAILURE = "BackupFailure"
    MISSING_MANDATORY_ARTIFACT = "MissingMandatoryArtifact"


@dataclass(frozen=True)
class Diagnostic:
    """A run-level problem surfaced in the report."""

    kind: DiagnosticKind
    message: str
    name: str | None = None
    fatal: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "name": self.name,
            "fatal": self.fatal,
        }


def verify_mandatory(
    directory: Path,
    mandatory: Collection[str],
    extension: str = DEFAULT_EXTENSION,
) -> list[Diagnostic]:
    """Re-scan the agents directory and report missing mandatory artifacts.

    Args:
        directory: Local artifact directory
        mandatory: Names every run must leave installed
        extension: Artifact file extension

    Returns:
        One MissingMandatoryArtifact diagnostic per missing name
    """
    installed = scan_inventory(directory, extension)
    return [
        Diagnostic(
            kind=DiagnosticKind.MISSING_MANDATORY_ARTIFACT,
            message=f"Mandatory agent '{name}' is not installed",
            name=name,
        )
        for name in sorted(frozenset(mandatory) - installed)
    ]


@dataclass
class SyncReport:
    """Structured summary of a sync run.

    Every selected name appears in exactly one of installed, upgraded,
    kept_as_is, up_to_date, unresolved, failed or custom_preserved.
    """

    installed: list[str] = field(default_factory=list)
    upgraded: list[str] = field(default_factory=list)
    kept_as_is: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    custom_preserved: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    backup_path: Path | None = None
    dry_run: bool = False

    @property
    def fatal(self) -> bool:
        return any(diagnostic.fatal for diagnostic in self.diagnostics)

    @property
    def missing_mandatory(self) -> list[str]:
        return [
            d.name or ""
            for d in self.diagnostics
            if d.kind is DiagnosticKind.MISSING_MANDATORY_ARTIFACT
        ]

    @property
    def exit_code(self) -> ExitCode:
        if self.fatal:
            return ExitCode.MANIFEST_ERROR
        if self.failed or self.missing_mandatory:
            return ExitCode.INCOMPLETE
        return ExitCode.SUCCESS

    def add_results(self, results: Iterable[InstallResult]) -> None:
        """Sort transaction results into the report lists."""
        for result in results:
            if result.status is InstallStatus.INSTALLED:
                self.installed.append(result.name)
            elif result.status is InstallStatus.UPGRADED:
                self.upgraded.append(result.name)
            elif result.status is InstallStatus.SKIPPED:
                self.kept_as_is.append(result.name)
            else:
                self.failed[result.name] = result.describe()
        self.installed.sort()
        self.upgraded.sort()
        self.kept_as_is.sort()

    def to_dict(self) -> dict[str, Any]:
        return {
            "installed": self.installed,
            "upgraded": self.upgraded,
            "kept_as_is": self.kept_as_is,
            "up_to_date": self.up_to_date,
            "custom_preserved": self.custom_preserved,
            "unresolved": self.unresolved,
            "failed": dict(sorted(self.failed.items())),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "dry_run": self.dry_run,
            "fatal": self.fatal,
        }


def render_report(report: SyncReport) -> None:
    """Print the completion report to the console."""
    title = "Sync Plan (dry run)" if report.dry_run else "Sync Report"
    print_header(title)

    for diagnostic in report.diagnostics:
        if diagnostic.fatal:
            print_error(escape(diagnostic.message))
        elif (
            diagnostic.kind is not DiagnosticKind.UNRESOLVED_SELECTION
            or diagnostic.name not in report.unresolved
        ):
            print_warning(escape(diagnostic.message))

    if report.fatal:
        console.print("  Nothing was installed or upgraded.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Result")
    table.add_column("Count", justify="right")
    table.add_column("Agents")

    rows = [
        ("Installed", "green", report.installed),
        ("Upgraded", "green", report.upgraded),
        ("Kept as-is", "yellow", report.kept_as_is),
        ("Up to date", "cyan", report.up_to_date),
        ("Custom (preserved)", "magenta", report.custom_preserved),
        ("Unresolved", "yellow", report.unresolved),
    ]
    for label, style, names in rows:
        table.add_row(
            f"[{style}]{label}[/{style}]", str(len(names)), escape(", ".join(names)) or "-"
        )
    table.add_row(
        "[red]Failed[/red]",
        str(len(report.failed)),
        escape(", ".join(f"{name} ({reason})" for name, reason in sorted(report.failed.items())))
        or "-",
    )
    console.print(table)

    if report.backup_path is not None:
        backup = escape(str(report.backup_path))
        console.print(f"  Backup of replaced agents: [bold]{backup}[/bold]")


__all__ = [
    "InstallStatus",
    "FailureReason",
    "InstallResult",
    "DiagnosticKind",
    "Diagnostic",
    "SyncReport",
    "verify_mandatory",
    "render_report",
]
