"""Profile-to-selection rules.

Selection is a union over independent rules: every rule whose predicate
holds for the profile contributes its artifacts, and no rule can suppress
another. Rules marked ``always`` contribute unconditionally; their union
is the mandatory set that the verifier checks after a run.

Rule sets compose with ``+``:

    extra = RuleSet([when_pain_point("testing", "ai-test-engineer")])
    rules = CORE_RULES + PIPELINE_RULES + extra
    selected = select(profile, rules)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from quiver.sync.profile import ProjectProfile
from quiver.utils.logging import log_message

ProfilePredicate = Callable[[ProjectProfile], bool]


@dataclass(frozen=True)
class SelectionRule:
    """A predicate over the profile and the artifacts it selects."""

    name: str
    artifacts: frozenset[str]
    predicate: ProfilePredicate
    always: bool = False

    def matches(self, profile: ProjectProfile) -> bool:
        return self.always or self.predicate(profile)


class RuleSet:
    """An ordered, composable collection of selection rules.

    Order only affects logging; selection is a set union.
    """

    def __init__(self, rules: Iterable[SelectionRule] = ()) -> None:
        self._rules: tuple[SelectionRule, ...] = tuple(rules)

    def __add__(self, other: RuleSet) -> RuleSet:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return RuleSet(self._rules + other._rules)

    def __iter__(self) -> Iterator[SelectionRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({[rule.name for rule in self._rules]!r})"

    def mandatory(self) -> frozenset[str]:
        """Union of the artifacts of every always-true rule."""
        return frozenset().union(*(rule.artifacts for rule in self._rules if rule.always))

    def artifacts(self) -> frozenset[str]:
        """Every artifact any rule can select."""
        return frozenset().union(*(rule.artifacts for rule in self._rules))


def always(name: str, *artifacts: str) -> SelectionRule:
    """Rule that selects ``artifacts`` for every profile."""
    return SelectionRule(
        name=name, artifacts=frozenset(artifacts), predicate=lambda _: True, always=True
    )


def when_type(project_types: str | Iterable[str], *artifacts: str) -> SelectionRule:
    """Rule that fires when the profile type is one of ``project_types``."""
    types = _as_set(project_types)
    return SelectionRule(
        name=f"type:{'|'.join(sorted(types))}",
        artifacts=frozenset(artifacts),
        predicate=lambda profile: profile.type in types,
    )


def when_language(languages: str | Iterable[str], *artifacts: str) -> SelectionRule:
    """Rule that fires when the profile uses any of ``languages``."""
    wanted = _as_set(languages)
    return SelectionRule(
        name=f"language:{'|'.join(sorted(wanted))}",
        artifacts=frozenset(artifacts),
        predicate=lambda profile: bool(profile.languages & wanted),
    )


def when_pain_point(pain_points: str | Iterable[str], *artifacts: str) -> SelectionRule:
    """Rule that fires when the profile reports any of ``pain_points``."""
    wanted = _as_set(pain_points)
    return SelectionRule(
        name=f"pain_point:{'|'.join(sorted(wanted))}",
        artifacts=frozenset(artifacts),
        predicate=lambda profile: bool(profile.pain_points & wanted),
    )


def _as_set(values: str | Iterable[str]) -> frozenset[str]:
    if isinstance(values, str):
        values = (values,)
    return frozenset(value.strip().lower() for value in values)


def select(profile: ProjectProfile, rules: RuleSet) -> frozenset[str]:
    """Compute the selected artifact names for a profile.

    Every rule is evaluated; matching rules contribute via set union, so
    duplicate contributions collapse. An empty profile still yields the
    always-true rules.

    Args:
        profile: Project description
        rules: Rules to evaluate

    Returns:
        Selected artifact names
    """
    selected: set[str] = set()
    for rule in rules:
        if rule.matches(profile):
            log_message(f"Selection rule '{rule.name}' matched: {sorted(rule.artifacts)}")
            selected |= rule.artifacts
    return frozenset(selected)


def mandatory_artifacts(rules: RuleSet) -> frozenset[str]:
    """Artifacts every run must leave installed."""
    return rules.mandatory()


# --- Default rule sets ---

CORE_RULES = RuleSet(
    [
        always("core", "sdlc-enforcer", "critical-goal-reviewer", "solution-architect"),
    ]
)

PIPELINE_RULES = RuleSet(
    [
        always("pipeline", "github-integration-specialist", "devops-specialist"),
    ]
)

PROJECT_TYPE_RULES = RuleSet(
    [
        when_type(
            ("api", "backend"), "api-architect", "backend-engineer", "integration-orchestrator"
        ),
        when_type(("web", "frontend"), "frontend-architect", "ux-ui-architect"),
        when_type("fullstack", "api-architect", "frontend-architect", "database-architect"),
        when_type("mobile", "mobile-architect", "ux-ui-architect"),
        when_type(("data", "pipeline"), "data-architect", "database-architect"),
        when_type(("ml", "ai"), "ai-solution-architect", "mlops-specialist", "prompt-engineer"),
        when_type("cli", "cli-design-specialist"),
        when_type("library", "api-designer", "technical-writer"),
        when_type("microservices", "cloud-architect", "integration-orchestrator"),
    ]
)

LANGUAGE_RULES = RuleSet(
    [
        when_language("python", "language-python-expert"),
        when_language(("javascript", "typescript"), "language-javascript-expert"),
        when_language("go", "language-go-expert"),
        when_language(("java", "kotlin"), "language-java-expert"),
        when_language("rust", "language-rust-expert"),
    ]
)

PAIN_POINT_RULES = RuleSet(
    [
        when_pain_point("testing", "ai-test-engineer", "integration-orchestrator"),
        when_pain_point("documentation", "documentation-architect", "technical-writer"),
        when_pain_point("security", "security-architect"),
        when_pain_point("performance", "performance-engineer"),
        when_pain_point(("deployment", "reliability"), "sre-specialist"),
        when_pain_point(("planning", "delivery"), "agile-coach", "delivery-manager"),
        when_pain_point(("code-quality", "technical-debt"), "code-review-specialist"),
    ]
)

DEFAULT_RULES = CORE_RULES + PIPELINE_RULES + PROJECT_TYPE_RULES + LANGUAGE_RULES + PAIN_POINT_RULES


__all__ = [
    "SelectionRule",
    "RuleSet",
    "always",
    "when_type",
    "when_language",
    "when_pain_point",
    "select",
    "mandatory_artifacts",
    "CORE_RULES",
    "PIPELINE_RULES",
    "PROJECT_TYPE_RULES",
    "LANGUAGE_RULES",
    "PAIN_POINT_RULES",
    "DEFAULT_RULES",
]
