"""Backup of installed artifacts before they are replaced.

Backups go to a timestamped sibling of the agents directory, e.g.
``.claude/agents.backup.20260101_120000``. The directory is created on
the first snapshot, so a run that replaces nothing leaves no trace.
"""

from __future__ import annotations

import shutil
import threading
from datetime import datetime
from pathlib import Path

from quiver.utils.errors import QuiverError
from quiver.utils.logging import log_message

BACKUP_STAMP_FORMAT = "%Y%m%d_%H%M%S"


class BackupError(QuiverError):
    """An installed artifact could not be copied to the backup directory."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to back up '{name}': {reason}")
        self.name = name
        self.reason = reason


def backup_dir_for(agents_dir: Path, now: datetime | None = None) -> Path:
    """Pick a fresh backup directory path next to ``agents_dir``.

    A ``-N`` suffix is appended when a directory with the same timestamp
    already exists.
    """
    stamp = (now or datetime.now()).strftime(BACKUP_STAMP_FORMAT)
    base = agents_dir.parent / f"{agents_dir.name}.backup.{stamp}"
    candidate = base
    counter = 1
    while candidate.exists():
        candidate = base.with_name(f"{base.name}-{counter}")
        counter += 1
    return candidate


class BackupRecord:
    """Snapshots taken during one sync run.

    Thread-safe: installer workers consult :meth:`has` from their own
    threads while the engine snapshots from the main thread.
    """

    def __init__(self, agents_dir: Path, now: datetime | None = None) -> None:
        self.agents_dir = agents_dir
        self._now = now
        self._path: Path | None = None
        self._entries: dict[str, Path] = {}
        self._lock = threading.Lock()

    @property
    def path(self) -> Path | None:
        """Backup directory, or None if nothing has been backed up."""
        return self._path

    def _ensure_dir(self) -> Path:
        if self._path is None:
            path = backup_dir_for(self.agents_dir, self._now)
            path.mkdir(parents=True)
            log_message(f"Created backup directory {path}")
            self._path = path
        return self._path

    def snapshot(self, name: str, source: Path) -> Path:
        """Copy ``source`` into the backup directory.

        Args:
            name: Artifact name the file belongs to
            source: Installed file to preserve

        Returns:
            Path of the backup copy

        Raises:
            BackupError: If the directory or the copy cannot be written
        """
        with self._lock:
            try:
                target = self._ensure_dir() / source.name
                shutil.copy2(source, target)
            except OSError as e:
                log_message(f"Backup of {source} failed: {e}")
                raise BackupError(name, str(e)) from e
            self._entries[name] = target
        log_message(f"Backed up {source} -> {target}")
        return target

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def entries(self) -> dict[str, Path]:
        with self._lock:
            return dict(self._entries)


__all__ = [
    "BACKUP_STAMP_FORMAT",
    "BackupError",
    "BackupRecord",
    "backup_dir_for",
]
