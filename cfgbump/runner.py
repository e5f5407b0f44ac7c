"""Phase sequencing with guaranteed adapter restoration."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from cfgbump.errors import SnapshotError, TargetNotFoundError
from cfgbump.journal import RunJournal
from cfgbump.manager import AdapterManager
from cfgbump.models import AdapterSnapshot, RestoreReport, VersionChange, VersionKey
from cfgbump.snapshot import SnapshotStore
from cfgbump.xml_version import VersionMutator

logger = logging.getLogger(__name__)

ConfirmGate = Callable[[VersionChange], None]


@dataclass(slots=True)
class RunOutcome:
    change: Optional[VersionChange] = None
    restore: Optional[RestoreReport] = None

    @property
    def restored(self) -> bool:
        return self.restore is not None and self.restore.ok


def check_target(path: Path) -> None:
    if not path.is_file():
        raise TargetNotFoundError(path)
    if not os.access(path, os.R_OK):
        raise TargetNotFoundError(path, "is not readable")


def run_session(
    target: Path,
    key: VersionKey,
    manager: AdapterManager,
    *,
    confirm: Optional[ConfirmGate] = None,
    journal: Optional[RunJournal] = None,
) -> RunOutcome:
    """Take adapters offline, bump the version, wait for the operator, restore.

    Restoration runs from ``finally`` whatever the earlier phases did. Errors
    from capture, disable, mutate or the confirmation gate are re-raised after
    restoration; restore and cleanup problems are only logged.
    """
    journal = journal or manager.journal
    target = Path(target)
    outcome = RunOutcome()

    with journal.phase("check_target", target=str(target)):
        check_target(target)

    snapshot: Optional[AdapterSnapshot] = None
    try:
        with journal.phase("capture"):
            snapshot = manager.capture()
        with journal.phase("disable", adapters=len(snapshot)):
            manager.disable_all(snapshot)
        with journal.phase("mutate", path=key.display_path()):
            outcome.change = VersionMutator(target, key).apply()
        if confirm is not None:
            with journal.phase("confirm"):
                confirm(outcome.change)
    finally:
        outcome.restore = restore_adapters(manager, snapshot, journal)
    return outcome


def restore_adapters(
    manager: AdapterManager,
    fallback: Optional[AdapterSnapshot],
    journal: RunJournal,
) -> Optional[RestoreReport]:
    """Replay the persisted snapshot, falling back to ``fallback`` if the file
    is unreadable. The file is removed once every adapter is back up and kept
    for ``cfgbump restore`` otherwise. Never raises."""
    store = manager.store
    snapshot = fallback
    try:
        snapshot = store.load()
    except SnapshotError as exc:
        if fallback is None:
            logger.warning("Nothing to restore: %s", exc)
        else:
            logger.warning("Restoring from memory, snapshot file unavailable: %s", exc)
        journal.record("snapshot_load", status="error", message=str(exc))

    report: Optional[RestoreReport] = None
    if snapshot is not None:
        try:
            with journal.phase("restore", adapters=len(snapshot)):
                report = manager.enable_all(snapshot)
        except Exception:
            logger.exception("Adapter restore failed")
        else:
            if report.ok:
                logger.info("Adapters restored: %s", report.summary())
            else:
                logger.error("Adapters restored with failures: %s", report.summary())

    if snapshot is not None and (report is None or not report.ok):
        _keep_for_recovery(store, snapshot, journal)
        return report

    try:
        store.remove()
    except SnapshotError as exc:
        logger.warning("%s", exc)
        journal.record("snapshot_remove", status="error", message=str(exc))
    return report


def _keep_for_recovery(store: SnapshotStore, snapshot: AdapterSnapshot, journal: RunJournal) -> None:
    if not store.exists():
        try:
            store.save(snapshot)
        except SnapshotError as exc:
            logger.error("Could not keep snapshot for recovery: %s", exc)
            journal.record("snapshot_keep", status="error", message=str(exc))
            return
    logger.error("Snapshot kept at %s; run 'cfgbump restore --snapshot %s' to retry", store.path, store.path)
    journal.record("snapshot_keep", status="ok", path=str(store.path))


def recover_snapshot(manager: AdapterManager) -> RestoreReport:
    """Re-enable adapters recorded in a snapshot file left by an earlier run.

    The file is removed only when every adapter came back.
    """
    snapshot = manager.store.load()
    logger.info("Recovering %d adapter(s) from %s", len(snapshot), manager.store.path)
    with manager.journal.phase("recover", adapters=len(snapshot), pid=snapshot.pid):
        report = manager.enable_all(snapshot)
    if report.ok:
        manager.store.remove()
    else:
        logger.error("Keeping %s, %s", manager.store.path, report.summary())
    return report


__all__ = ["RunOutcome", "run_session", "restore_adapters", "recover_snapshot", "check_target"]
