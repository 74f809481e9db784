"""Local inventory of installed artifacts."""

from __future__ import annotations

from pathlib import Path

from quiver.utils.logging import log_message

DEFAULT_EXTENSION = ".md"


def artifact_path(directory: Path, name: str, extension: str = DEFAULT_EXTENSION) -> Path:
    """Final on-disk path of an artifact."""
    return directory / f"{name}{extension}"


def scan_inventory(directory: Path, extension: str = DEFAULT_EXTENSION) -> frozenset[str]:
    """Enumerate installed artifact names.

    Lists direct children of ``directory`` that are regular files with the
    artifact extension; the name is the filename stem. Hidden files
    (including in-flight temporary files) and review copies such as
    ``name.md.new`` are ignored. Read-only.

    Args:
        directory: Local artifact directory
        extension: Artifact file extension, including the dot

    Returns:
        Installed names; empty if the directory is missing or empty
    """
    if not directory.is_dir():
        log_message(f"Agents directory {directory} does not exist, inventory is empty")
        return frozenset()

    names = frozenset(
        child.name[: -len(extension)]
        for child in directory.iterdir()
        if child.is_file()
        and child.name.endswith(extension)
        and len(child.name) > len(extension)
        and not child.name.startswith(".")
    )
    log_message(f"Scanned {directory}: {len(names)} installed agent(s)")
    return names


__all__ = [
    "DEFAULT_EXTENSION",
    "artifact_path",
    "scan_inventory",
]
