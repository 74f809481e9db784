"""Project profile input for agent selection.

The profile is produced by an external discovery step (a questionnaire, a
config file, or CLI flags) and is read-only from the engine's perspective.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quiver.utils.errors import QuiverError
from quiver.utils.logging import log_message


class ProfileError(QuiverError):
    """Profile file is missing or malformed."""


def _normalize(value: str) -> str:
    return value.strip().lower()


def _normalize_set(values: Iterable[str]) -> frozenset[str]:
    return frozenset(v for v in (_normalize(value) for value in values) if v)


@dataclass(frozen=True)
class ProjectProfile:
    """Description of the target project.

    Values are normalized to lower case with surrounding whitespace removed,
    so rules can compare them directly.

    Attributes:
        type: Project type (e.g. "api", "web", "cli")
        languages: Languages used by the project
        pain_points: Problems the team wants help with
    """

    type: str = ""
    languages: frozenset[str] = field(default_factory=frozenset)
    pain_points: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _normalize(self.type))
        object.__setattr__(self, "languages", _normalize_set(self.languages))
        object.__setattr__(self, "pain_points", _normalize_set(self.pain_points))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProjectProfile:
        """Build a profile from a decoded mapping.

        Accepts ``type`` (or ``project_type``), ``languages`` and
        ``pain_points`` keys. Lists may also be given as comma-separated
        strings.

        Raises:
            ProfileError: If a value has the wrong type
        """
        project_type = data.get("type", data.get("project_type", "")) or ""
        if not isinstance(project_type, str):
            raise ProfileError("Profile 'type' must be a string")
        return cls(
            type=project_type,
            languages=_coerce_list(data.get("languages"), "languages"),
            pain_points=_coerce_list(data.get("pain_points"), "pain_points"),
        )

    def merged_with(
        self,
        *,
        project_type: str | None = None,
        languages: Iterable[str] = (),
        pain_points: Iterable[str] = (),
    ) -> ProjectProfile:
        """Return a copy extended with extra values; ``project_type`` replaces if given."""
        return ProjectProfile(
            type=project_type if project_type else self.type,
            languages=self.languages | frozenset(languages),
            pain_points=self.pain_points | frozenset(pain_points),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "languages": sorted(self.languages),
            "pain_points": sorted(self.pain_points),
        }


def _coerce_list(value: Any, key: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(value.split(","))
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    raise ProfileError(f"Profile '{key}' must be a list of strings")


def load_profile(path: Path) -> ProjectProfile:
    """Load a profile from a JSON file.

    Raises:
        ProfileError: If the file cannot be read or is not a JSON object
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ProfileError(f"Cannot read profile file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ProfileError(f"Profile file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProfileError(f"Profile file {path} must contain a JSON object")

    profile = ProjectProfile.from_mapping(data)
    log_message(f"Loaded profile from {path}: {profile.to_dict()}")
    return profile


__all__ = [
    "ProfileError",
    "ProjectProfile",
    "load_profile",
]
