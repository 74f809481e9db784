"""Transactional installation of artifacts.

Every artifact goes through its own transaction:

    PENDING -> STAGED -> VERIFIED -> COMMITTED   (or FAILED from any step)

- stage:  download the payload into a private staging directory that is
          never scanned as the agents directory (one retry on transport
          failure)
- verify: reject empty payloads and payloads that are not UTF-8 text
- commit: atomically move the staged file into place with ``os.replace``

A failed transaction never touches the final path. Transactions run on a
bounded ``ThreadPoolExecutor``; they share only the catalog client and the
backup record, and a failure in one never affects another.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import TracebackType

from quiver.catalog.client import CatalogClient
from quiver.sync.backup import BackupError, BackupRecord
from quiver.sync.inventory import DEFAULT_EXTENSION, artifact_path
from quiver.sync.report import (
    Diagnostic,
    DiagnosticKind,
    FailureReason,
    InstallResult,
    InstallStatus,
)
from quiver.utils.errors import TransportFailure
from quiver.utils.logging import log_message
from quiver.utils.retry import RetryConfig, with_transport_retry

DEFAULT_MAX_PARALLEL = 4


class TransactionState(Enum):
    PENDING = "pending"
    STAGED = "staged"
    VERIFIED = "verified"
    COMMITTED = "committed"
    FAILED = "failed"


class TransactionFailed(Exception):
    """Internal signal that moves a transaction to FAILED."""

    def __init__(self, reason: FailureReason, detail: str = "") -> None:
        super().__init__(detail or reason.value)
        self.reason = reason
        self.detail = detail


@dataclass
class ArtifactTransaction:
    """State of one artifact on its way to the agents directory."""

    name: str
    location: str
    target: Path
    upgrade: bool = False
    state: TransactionState = TransactionState.PENDING
    staged_path: Path | None = None
    history: list[TransactionState] = field(default_factory=list)

    def advance(self, state: TransactionState) -> None:
        self.history.append(self.state)
        self.state = state
        log_message(f"Transaction '{self.name}': {self.history[-1].value} -> {state.value}")


def verify_payload(payload: bytes) -> str:
    """Check that a payload is usable as an artifact.

    Returns:
        The decoded text

    Raises:
        TransactionFailed: EmptyPayload or MalformedPayload
    """
    if not payload:
        raise TransactionFailed(FailureReason.EMPTY_PAYLOAD, "payload is empty")
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TransactionFailed(FailureReason.MALFORMED_PAYLOAD, f"not UTF-8 text: {e}") from e


class TransactionalInstaller:
    """Run artifact transactions on a bounded worker pool.

    Usage:
        with TransactionalInstaller(client, agents_dir, backup=record) as installer:
            installer.submit_installs(new_locations)
            diagnostics = installer.submit_upgrades(approved_locations)
            results = installer.results()

    Installs can be submitted before upgrades are decided; workers only
    log, so they never interleave with interactive prompts.
    """

    def __init__(
        self,
        client: CatalogClient,
        agents_dir: Path,
        *,
        backup: BackupRecord | None = None,
        extension: str = DEFAULT_EXTENSION,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        retry_config: RetryConfig | None = None,
    ) -> None:
        if max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")
        self.client = client
        self.agents_dir = agents_dir
        self.backup = backup if backup is not None else BackupRecord(agents_dir)
        self.extension = extension
        self.max_parallel = max_parallel
        self.retry_config = retry_config or RetryConfig()
        self._executor: ThreadPoolExecutor | None = None
        self._staging_dir: Path | None = None
        self._futures: list[tuple[str, Future[InstallResult]]] = []
        self._results: list[InstallResult] = []

    def __enter__(self) -> TransactionalInstaller:
        self.agents_dir.mkdir(parents=True, exist_ok=True)
        self._staging_dir = Path(
            tempfile.mkdtemp(prefix=f".{self.agents_dir.name}.staging-", dir=self.agents_dir.parent)
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_parallel, thread_name_prefix="quiver-install"
        )
        log_message(
            f"Installer ready: staging={self._staging_dir}, max_parallel={self.max_parallel}"
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=exc_type is not None)
            self._executor = None
        if self._staging_dir is not None:
            shutil.rmtree(self._staging_dir, ignore_errors=True)
            self._staging_dir = None

    def _submit(self, transaction: ArtifactTransaction) -> None:
        if self._executor is None:
            raise RuntimeError("TransactionalInstaller must be used as a context manager")
        self._futures.append((transaction.name, self._executor.submit(self._run, transaction)))

    def _transaction(self, name: str, location: str, upgrade: bool) -> ArtifactTransaction:
        return ArtifactTransaction(
            name=name,
            location=location,
            target=artifact_path(self.agents_dir, name, self.extension),
            upgrade=upgrade,
        )

    def submit_installs(self, locations: Mapping[str, str]) -> None:
        """Submit new-install transactions (name -> payload location)."""
        for name in sorted(locations):
            self._submit(self._transaction(name, locations[name], upgrade=False))

    def submit_upgrades(self, locations: Mapping[str, str]) -> list[Diagnostic]:
        """Back up every approved upgrade, then submit their transactions.

        If any snapshot fails, no upgrade is submitted: every approved
        upgrade is reported as Failed(BackupFailure) and one diagnostic is
        returned. Already submitted installs are unaffected.
        """
        names = sorted(locations)
        try:
            for name in names:
                self.backup.snapshot(name, artifact_path(self.agents_dir, name, self.extension))
        except BackupError as e:
            log_message(f"Backup failed, cancelling {len(names)} upgrade(s): {e}")
            self._results.extend(
                InstallResult.failed(name, FailureReason.BACKUP_FAILURE, e.reason)
                for name in names
            )
            return [Diagnostic(kind=DiagnosticKind.BACKUP_FAILURE, message=str(e), name=e.name)]

        for name in names:
            self._submit(self._transaction(name, locations[name], upgrade=True))
        return []

    def results(self) -> list[InstallResult]:
        """Wait for every submitted transaction and return all results."""
        for name, future in self._futures:
            try:
                self._results.append(future.result())
            except Exception as e:
                log_message(f"Transaction '{name}' crashed: {e}")
                self._results.append(
                    InstallResult.failed(name, FailureReason.COMMIT_FAILURE, str(e))
                )
        self._futures.clear()
        return sorted(self._results, key=lambda result: result.name)

    def _run(self, transaction: ArtifactTransaction) -> InstallResult:
        """Drive one transaction to a terminal state (runs in a worker thread)."""
        try:
            self._stage(transaction)
            self._verify(transaction)
            self._commit(transaction)
        except TransactionFailed as e:
            transaction.advance(TransactionState.FAILED)
            self._discard(transaction)
            log_message(f"Transaction '{transaction.name}' failed: {e.reason.value} {e.detail}")
            return InstallResult.failed(transaction.name, e.reason, e.detail)

        status = InstallStatus.UPGRADED if transaction.upgrade else InstallStatus.INSTALLED
        return InstallResult(name=transaction.name, status=status)

    def _stage(self, transaction: ArtifactTransaction) -> None:
        def on_retry(attempt: int, delay: float, error: Exception) -> None:
            log_message(
                f"Retrying download of '{transaction.name}' "
                f"(attempt {attempt}) in {delay:.1f}s: {error}"
            )

        fetch = with_transport_retry(self.retry_config, on_retry=on_retry)(
            self.client.fetch_payload
        )
        try:
            payload = fetch(transaction.location)
        except TransportFailure as e:
            raise TransactionFailed(FailureReason.TRANSPORT_FAILURE, str(e)) from e

        assert self._staging_dir is not None
        staged = self._staging_dir / transaction.target.name
        try:
            staged.write_bytes(payload)
        except OSError as e:
            raise TransactionFailed(FailureReason.COMMIT_FAILURE, f"staging failed: {e}") from e
        transaction.staged_path = staged
        transaction.advance(TransactionState.STAGED)

    def _verify(self, transaction: ArtifactTransaction) -> None:
        assert transaction.staged_path is not None
        try:
            payload = transaction.staged_path.read_bytes()
        except OSError as e:
            raise TransactionFailed(FailureReason.COMMIT_FAILURE, f"staged file lost: {e}") from e
        verify_payload(payload)
        transaction.advance(TransactionState.VERIFIED)

    def _commit(self, transaction: ArtifactTransaction) -> None:
        assert transaction.staged_path is not None
        if transaction.target.exists() and not self.backup.has(transaction.name):
            raise TransactionFailed(
                FailureReason.BACKUP_FAILURE,
                f"refusing to overwrite {transaction.target} without a backup",
            )
        try:
            os.replace(transaction.staged_path, transaction.target)
        except OSError as e:
            raise TransactionFailed(FailureReason.COMMIT_FAILURE, str(e)) from e
        transaction.staged_path = None
        transaction.advance(TransactionState.COMMITTED)
        log_message(f"Committed {transaction.target}")

    def _discard(self, transaction: ArtifactTransaction) -> None:
        if transaction.staged_path is not None:
            transaction.staged_path.unlink(missing_ok=True)
            transaction.staged_path = None


__all__ = [
    "DEFAULT_MAX_PARALLEL",
    "TransactionState",
    "ArtifactTransaction",
    "TransactionalInstaller",
    "verify_payload",
]
