"""Tests for quiver.sync.engine module.

End-to-end runs against an on-disk catalog covering:
- Fresh installs, up-to-date and custom agents
- Upgrade resolution (all, none, per item) and backups
- Fatal manifest errors, per-artifact failures and idempotence
"""

import json
from datetime import datetime
from pathlib import Path

import pytest

from quiver.config.settings import Settings
from quiver.sync.engine import SyncOptions, plan_sync, run_sync
from quiver.sync.profile import ProjectProfile
from quiver.sync.report import DiagnosticKind
from quiver.sync.resolution import ResolutionMode
from quiver.sync.selection import DEFAULT_RULES, RuleSet, always, select
from quiver.utils.errors import ConfigError, ExitCode
from tests.fakes import FlakyCatalogClient
from tests.helpers import agent_content

API_PROFILE = ProjectProfile(type="api", languages={"python"}, pain_points={"testing"})
NOW = datetime(2026, 5, 1, 12, 0, 0)


def snapshot(directory: Path) -> dict[str, bytes]:
    """Every file under ``directory`` with its bytes."""
    if not directory.exists():
        return {}
    return {
        str(path.relative_to(directory)): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def full_catalog(make_catalog):
    """Catalog offering every agent the default rules can select."""

    def factory(**kwargs) -> Path:
        return make_catalog({"agents": sorted(DEFAULT_RULES.artifacts())}, **kwargs)

    return factory


class TestScenarios:
    """Reference scenarios."""

    def test_fresh_install(self, full_catalog, make_options, agents_dir):
        options = make_options(full_catalog())
        selected = select(API_PROFILE, DEFAULT_RULES)

        report = run_sync(API_PROFILE, options, client=FlakyCatalogClient())

        assert report.installed == sorted(selected)
        assert report.upgraded == []
        assert report.custom_preserved == []
        assert report.failed == {}
        assert report.exit_code == ExitCode.SUCCESS
        assert report.backup_path is None
        assert {p.stem for p in agents_dir.iterdir()} == selected

    def test_up_to_date_and_custom(self, full_catalog, make_options, agents_dir, install_local):
        install_local("sdlc-enforcer")
        install_local("my-custom-helper", content="hand written")
        options = make_options(full_catalog())

        report = run_sync(API_PROFILE, options, client=FlakyCatalogClient())

        assert "sdlc-enforcer" in report.up_to_date
        assert report.custom_preserved == ["my-custom-helper"]
        assert (agents_dir / "my-custom-helper.md").read_text() == "hand written"
        assert (agents_dir / "sdlc-enforcer.md").read_text() == agent_content("sdlc-enforcer")

    def test_declined_upgrade_is_kept(self, full_catalog, make_options, agents_dir, install_local):
        install_local("critical-goal-reviewer", content="my version")
        options = make_options(
            full_catalog(newer={"critical-goal-reviewer"}), mode=ResolutionMode.PER_ITEM
        )
        asked: list[str] = []

        def decline(name: str) -> bool:
            asked.append(name)
            return False

        report = run_sync(API_PROFILE, options, confirm=decline, client=FlakyCatalogClient())

        assert asked == ["critical-goal-reviewer"]
        assert report.kept_as_is == ["critical-goal-reviewer"]
        assert (agents_dir / "critical-goal-reviewer.md").read_text() == "my version"
        assert report.backup_path is None

    def test_manifest_transport_error_is_fatal(
        self, make_options, agents_dir, install_local, tmp_path
    ):
        install_local("sdlc-enforcer", content="keep me")
        before = snapshot(agents_dir.parent)
        options = make_options(tmp_path / "nowhere" / "manifest.json", mode=ResolutionMode.ALL)

        report = run_sync(API_PROFILE, options, client=FlakyCatalogClient())

        assert report.fatal
        assert report.installed == [] and report.upgraded == []
        assert [d.kind for d in report.diagnostics] == [DiagnosticKind.MANIFEST_FETCH_ERROR]
        assert report.exit_code == ExitCode.MANIFEST_ERROR
        assert snapshot(agents_dir.parent) == before

    def test_malformed_manifest_is_fatal(self, make_options, agents_dir, tmp_path):
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps({"categories": "nope"}))

        report = run_sync(API_PROFILE, make_options(manifest), client=FlakyCatalogClient())

        assert [d.kind for d in report.diagnostics] == [DiagnosticKind.MANIFEST_PARSE_ERROR]
        assert not agents_dir.exists()

    def test_empty_payload_fails_only_that_agent(self, full_catalog, make_options, agents_dir):
        options = make_options(full_catalog())
        client = FlakyCatalogClient(payload_overrides={"api-architect": b""})

        report = run_sync(API_PROFILE, options, client=client)

        assert report.failed == {"api-architect": "Failed(EmptyPayload): payload is empty"}
        assert "api-architect" not in report.installed
        assert "backend-engineer" in report.installed
        assert not (agents_dir / "api-architect.md").exists()
        assert report.exit_code == ExitCode.INCOMPLETE


class TestProperties:
    """Invariants that hold for every run."""

    def test_every_selected_name_reported_once(
        self, make_catalog, make_options, agents_dir, install_local
    ):
        selected = select(API_PROFILE, DEFAULT_RULES)
        offered = sorted(selected - {"ai-test-engineer"})
        manifest = make_catalog({"agents": offered}, newer={"sdlc-enforcer", "api-architect"})
        install_local("sdlc-enforcer", "api-architect", "unrelated")
        client = FlakyCatalogClient(payload_overrides={"backend-engineer": b""})
        options = make_options(manifest, mode=ResolutionMode.PER_ITEM)

        report = run_sync(
            API_PROFILE, options, confirm=lambda name: name == "api-architect", client=client
        )

        lists = [
            report.installed,
            report.upgraded,
            report.kept_as_is,
            report.up_to_date,
            report.custom_preserved,
            report.unresolved,
            list(report.failed),
        ]
        reported = [name for names in lists for name in names]
        assert len(reported) == len(set(reported))
        assert set(reported) == selected | {"unrelated"}
        assert report.unresolved == ["ai-test-engineer"]
        assert report.upgraded == ["api-architect"]
        assert report.kept_as_is == ["sdlc-enforcer"]
        kinds = {d.name: d.kind for d in report.diagnostics}
        assert kinds["ai-test-engineer"] is DiagnosticKind.UNRESOLVED_SELECTION

    def test_idempotent_with_none_policy(self, full_catalog, make_options, agents_dir):
        options = make_options(full_catalog(newer={"sdlc-enforcer"}), mode=ResolutionMode.NONE)
        client = FlakyCatalogClient()
        run_sync(API_PROFILE, options, client=client)
        first = snapshot(agents_dir.parent)
        first_plan = plan_sync(API_PROFILE, options, client)

        report = run_sync(API_PROFILE, options, client=client)

        assert report.installed == []
        assert snapshot(agents_dir.parent) == first
        assert plan_sync(API_PROFILE, options, client).buckets == first_plan.buckets

    def test_upgrade_all_backs_up_every_overwrite(
        self, full_catalog, make_options, agents_dir, install_local
    ):
        install_local("sdlc-enforcer", "devops-specialist", content="old")
        manifest = full_catalog(newer={"sdlc-enforcer", "devops-specialist"})
        options = make_options(manifest, mode=ResolutionMode.ALL)

        report = run_sync(API_PROFILE, options, client=FlakyCatalogClient(), now=NOW)

        assert report.upgraded == ["devops-specialist", "sdlc-enforcer"]
        assert report.backup_path == agents_dir.parent / "agents.backup.20260501_120000"
        for name in report.upgraded:
            assert (report.backup_path / f"{name}.md").read_text() == "old"
            assert (agents_dir / f"{name}.md").read_text() == agent_content(name, "2")

    def test_custom_agents_are_bit_identical(
        self, make_catalog, make_options, agents_dir, install_local
    ):
        """Offered but unselected agents are custom even when a newer version exists."""
        install_local("team-reviewer", content="\x00binary-ish\r\ncontent")
        before = (agents_dir / "team-reviewer.md").read_bytes()
        offered = sorted(DEFAULT_RULES.artifacts() | {"team-reviewer"})
        manifest = make_catalog({"agents": offered}, newer={"team-reviewer"})
        options = make_options(manifest, mode=ResolutionMode.ALL)

        run_sync(API_PROFILE, options, client=FlakyCatalogClient())

        assert (agents_dir / "team-reviewer.md").read_bytes() == before

    def test_missing_mandatory_is_reported(self, make_catalog, make_options):
        manifest = make_catalog({"core": ["sdlc-enforcer"]}, missing_payloads={"sdlc-enforcer"})
        rules = RuleSet([always("core", "sdlc-enforcer")])

        report = run_sync(
            ProjectProfile(), make_options(manifest), rules=rules, client=FlakyCatalogClient()
        )

        assert "sdlc-enforcer" in report.failed
        assert report.missing_mandatory == ["sdlc-enforcer"]
        assert report.exit_code == ExitCode.INCOMPLETE

    @pytest.mark.parametrize("dry_run", [False, True])
    def test_installed_selection_dropped_from_catalog_is_diagnosed(
        self, make_catalog, make_options, agents_dir, install_local, dry_run
    ):
        install_local("team-helper", content="kept")
        manifest = make_catalog({"core": ["sdlc-enforcer"]})
        rules = RuleSet([always("core", "sdlc-enforcer", "team-helper")])

        report = run_sync(
            ProjectProfile(),
            make_options(manifest, dry_run=dry_run),
            rules=rules,
            client=FlakyCatalogClient(),
        )

        assert report.custom_preserved == ["team-helper"]
        assert report.unresolved == []
        assert [(d.kind, d.name) for d in report.diagnostics] == [
            (DiagnosticKind.UNRESOLVED_SELECTION, "team-helper")
        ]
        assert (agents_dir / "team-helper.md").read_text() == "kept"
        assert report.exit_code == ExitCode.SUCCESS


class TestDryRun:
    def test_dry_run_writes_nothing(self, full_catalog, make_options, agents_dir, install_local):
        install_local("sdlc-enforcer", content="old")
        before = snapshot(agents_dir.parent)
        options = make_options(
            full_catalog(newer={"sdlc-enforcer"}), mode=ResolutionMode.ALL, dry_run=True
        )
        client = FlakyCatalogClient()

        report = run_sync(API_PROFILE, options, client=client)

        assert report.dry_run
        assert report.upgraded == ["sdlc-enforcer"]
        assert "api-architect" in report.installed
        assert client.payload_requests == []
        assert snapshot(agents_dir.parent) == before
        assert report.missing_mandatory == []


class TestSyncOptions:
    """Tests for SyncOptions.from_settings."""

    def test_uses_settings(self):
        settings = Settings(catalog_url="https://example.org/m.json", upgrade_policy="all")

        options = SyncOptions.from_settings(settings)

        assert options.catalog_url == "https://example.org/m.json"
        assert options.mode is ResolutionMode.ALL
        assert options.agents_dir == Path(".claude/agents")
        assert options.max_parallel == 4

    def test_overrides_win(self, tmp_path):
        settings = Settings(catalog_url="https://example.org/m.json")

        options = SyncOptions.from_settings(
            settings,
            catalog_url="other.json",
            agents_dir=tmp_path,
            upgrade_policy="none",
            max_parallel=8,
            dry_run=True,
        )

        assert options.catalog_url == "other.json"
        assert options.agents_dir == tmp_path
        assert options.mode is ResolutionMode.NONE
        assert options.max_parallel == 8
        assert options.dry_run

    @pytest.mark.parametrize(
        ("settings", "overrides", "message"),
        [
            (Settings(), {}, "No catalog configured"),
            (Settings(catalog_url="m.json", upgrade_policy="maybe"), {}, "Invalid upgrade policy"),
            (Settings(catalog_url="m.json"), {"max_parallel": 9}, "between 1 and 8"),
            (Settings(catalog_url="m.json", max_parallel_downloads=0), {}, "between 1 and 8"),
            (Settings(catalog_url="m.json", artifact_extension="md"), {}, "ARTIFACT_EXTENSION"),
            (Settings(catalog_url="m.json", fetch_timeout_seconds=0), {}, "FETCH_TIMEOUT"),
            (Settings(catalog_url="m.json", retry_delay_seconds=-1), {}, "RETRY_DELAY"),
        ],
    )
    def test_invalid_values(self, settings, overrides, message):
        with pytest.raises(ConfigError, match=message):
            SyncOptions.from_settings(settings, **overrides)

    def test_retry_config_uses_delay(self):
        options = SyncOptions(catalog_url="m.json", agents_dir=Path("a"), retry_delay_seconds=30)

        config = options.retry_config()

        assert config.max_retries == 1
        assert config.base_delay_seconds == 30
        assert config.max_delay_seconds >= 30
