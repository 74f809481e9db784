"""Agent synchronization for QUIVER.

This package contains:
- profile: Project profile input
- selection: Profile-to-selection rules
- inventory: Local inventory scanner
- classifier: Three-way classification
- resolution: Upgrade resolution policy
- backup: Backup of replaced artifacts
- installer: Transactional, parallel installer
- report: Results, verification and the completion report
- engine: Orchestration of a full run
"""

from quiver.sync.backup import BackupError, BackupRecord
from quiver.sync.classifier import ClassificationBuckets, classify
from quiver.sync.engine import SyncOptions, SyncPlan, plan_sync, run_sync
from quiver.sync.installer import (
    ArtifactTransaction,
    TransactionalInstaller,
    TransactionState,
    verify_payload,
)
from quiver.sync.inventory import artifact_path, scan_inventory
from quiver.sync.profile import ProfileError, ProjectProfile, load_profile
from quiver.sync.report import (
    Diagnostic,
    DiagnosticKind,
    FailureReason,
    InstallResult,
    InstallStatus,
    SyncReport,
    render_report,
    verify_mandatory,
)
from quiver.sync.resolution import ConfirmUpgrade, ResolutionMode, resolve_upgrades
from quiver.sync.selection import (
    DEFAULT_RULES,
    RuleSet,
    SelectionRule,
    always,
    select,
    when_language,
    when_pain_point,
    when_type,
)

__all__ = [
    # Profile and selection
    "ProfileError",
    "ProjectProfile",
    "load_profile",
    "SelectionRule",
    "RuleSet",
    "always",
    "when_type",
    "when_language",
    "when_pain_point",
    "select",
    "DEFAULT_RULES",
    # Inventory and classification
    "artifact_path",
    "scan_inventory",
    "ClassificationBuckets",
    "classify",
    # Resolution
    "ConfirmUpgrade",
    "ResolutionMode",
    "resolve_upgrades",
    # Installation
    "BackupError",
    "BackupRecord",
    "ArtifactTransaction",
    "TransactionalInstaller",
    "TransactionState",
    "verify_payload",
    # Reporting
    "Diagnostic",
    "DiagnosticKind",
    "FailureReason",
    "InstallResult",
    "InstallStatus",
    "SyncReport",
    "render_report",
    "verify_mandatory",
    # Engine
    "SyncOptions",
    "SyncPlan",
    "plan_sync",
    "run_sync",
]
