"""Tests for quiver.sync.selection module."""

from quiver.sync.profile import ProjectProfile
from quiver.sync.selection import (
    CORE_RULES,
    DEFAULT_RULES,
    PIPELINE_RULES,
    RuleSet,
    always,
    mandatory_artifacts,
    select,
    when_language,
    when_pain_point,
    when_type,
)


class TestSelect:
    """Tests for select()."""

    def test_empty_profile_selects_only_mandatory(self):
        """An empty profile still yields every always-true rule."""
        selected = select(ProjectProfile(), DEFAULT_RULES)

        assert selected == mandatory_artifacts(DEFAULT_RULES)
        assert "sdlc-enforcer" in selected
        assert "github-integration-specialist" in selected

    def test_api_python_testing_profile(self):
        """Type, language and pain-point rules all contribute."""
        profile = ProjectProfile(type="api", languages={"python"}, pain_points={"testing"})

        selected = select(profile, DEFAULT_RULES)

        assert {
            "sdlc-enforcer",
            "critical-goal-reviewer",
            "solution-architect",
            "github-integration-specialist",
            "devops-specialist",
            "api-architect",
            "language-python-expert",
            "ai-test-engineer",
            "integration-orchestrator",
        } <= selected

    def test_duplicate_contributions_collapse(self):
        """Two rules selecting the same artifact produce one entry."""
        profile = ProjectProfile(type="api", pain_points={"testing"})

        selected = select(profile, DEFAULT_RULES)

        assert isinstance(selected, frozenset)
        assert "integration-orchestrator" in selected

    def test_unknown_values_add_nothing(self):
        profile = ProjectProfile(type="spaceship", languages={"cobol"})

        assert select(profile, DEFAULT_RULES) == mandatory_artifacts(DEFAULT_RULES)

    def test_profile_values_are_case_insensitive(self):
        profile = ProjectProfile(type=" API ", languages={"Python"})

        selected = select(profile, DEFAULT_RULES)

        assert "api-architect" in selected
        assert "language-python-expert" in selected

    def test_adding_rules_never_removes_artifacts(self):
        """Selection is monotone in the rule set."""
        profile = ProjectProfile(type="web", languages={"typescript"})
        base = select(profile, CORE_RULES)
        extended = select(profile, CORE_RULES + RuleSet([when_type("web", "frontend-architect")]))

        assert base <= extended
        assert "frontend-architect" in extended

    def test_rules_are_independent(self):
        """A non-matching rule does not suppress a matching one."""
        rules = RuleSet(
            [
                when_language("go", "language-go-expert"),
                when_pain_point("security", "security-architect"),
            ]
        )

        selected = select(ProjectProfile(pain_points={"security"}), rules)

        assert selected == frozenset({"security-architect"})


class TestRuleSet:
    """Tests for RuleSet composition."""

    def test_add_concatenates(self):
        combined = CORE_RULES + PIPELINE_RULES

        assert len(combined) == len(CORE_RULES) + len(PIPELINE_RULES)

    def test_mandatory_only_includes_always_rules(self):
        rules = RuleSet(
            [
                always("core", "a", "b"),
                when_type("cli", "c"),
            ]
        )

        assert rules.mandatory() == frozenset({"a", "b"})
        assert rules.artifacts() == frozenset({"a", "b", "c"})

    def test_when_type_accepts_several_types(self):
        rule = when_type(("data", "pipeline"), "data-architect")

        assert rule.matches(ProjectProfile(type="pipeline"))
        assert not rule.matches(ProjectProfile(type="web"))

    def test_repr_lists_rule_names(self):
        assert "core" in repr(CORE_RULES)
