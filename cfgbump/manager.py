"""Capture, disable and restore network adapters."""
from __future__ import annotations

import logging
import os
import time
from typing import Callable, Iterable, List, Optional, Union

from cfgbump.adapters import AdapterProvider
from cfgbump.journal import RunJournal
from cfgbump.models import AdapterRecord, AdapterSnapshot, AdapterStatus, RestoreReport
from cfgbump.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

Records = Union[AdapterSnapshot, Iterable[AdapterRecord]]


class AdapterManager:
    """Best-effort batch operations over a captured adapter snapshot.

    Per-adapter failures are logged and journalled but never stop the loop.
    ``enable_all`` verifies each adapter came back up, retries once by name
    and then falls back to the interface index before giving up on it.
    """

    def __init__(
        self,
        provider: AdapterProvider,
        store: SnapshotStore,
        *,
        journal: Optional[RunJournal] = None,
        settle_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.store = store
        self.journal = journal or RunJournal()
        self.settle_delay = max(0.0, settle_delay)
        self._sleep = sleep

    def capture(self) -> AdapterSnapshot:
        """Snapshot every active adapter and persist it before returning."""
        active = [record for record in self.provider.list_adapters() if record.status.is_active]
        snapshot = AdapterSnapshot.of(active, pid=os.getpid())
        for record in snapshot:
            logger.info("Active adapter: %s", record.describe())
            self.journal.record("adapter_captured", adapter=record.name, mac=record.mac_address)
        if not snapshot:
            logger.warning("No active network adapters found")
        self.store.save(snapshot)
        return snapshot

    def disable_all(self, snapshot: Records) -> List[AdapterRecord]:
        failed: List[AdapterRecord] = []
        for record in snapshot:
            try:
                self.provider.disable(record)
            except Exception as exc:
                failed.append(record)
                logger.warning("Could not disable %s: %s", record.name, exc)
                self.journal.record("adapter_disable", status="error", adapter=record.name, message=str(exc))
                continue
            logger.info("Disabled %s", record.name)
            self.journal.record("adapter_disable", adapter=record.name)
        return failed

    def enable_all(self, snapshot: Records) -> RestoreReport:
        report = RestoreReport()
        restored: List[AdapterRecord] = []
        failed: List[AdapterRecord] = []
        for record in snapshot:
            method = self._restore(record)
            if method is None:
                failed.append(record)
                logger.error("Could not restore %s", record.describe())
                self.journal.record("adapter_enable", status="error", adapter=record.name)
            else:
                restored.append(record)
                report.methods[record.name] = method
                logger.info("Enabled %s", record.name)
                self.journal.record("adapter_enable", adapter=record.name, method=method)
        report.restored = tuple(restored)
        report.failed = tuple(failed)
        return report

    def _restore(self, record: AdapterRecord) -> Optional[str]:
        attempts = (
            ("name", self.provider.enable),
            ("retry", self.provider.enable),
            ("index", self.provider.enable_by_index),
        )
        for method, action in attempts:
            try:
                action(record)
            except Exception as exc:
                logger.warning("Enable of %s by %s failed: %s", record.name, method, exc)
                self.journal.record("adapter_enable_attempt", status="error", adapter=record.name, message=str(exc), method=method)
                continue
            if self._is_up(record):
                return method
            logger.warning("%s is still not up after enable by %s", record.name, method)
        return None

    def _is_up(self, record: AdapterRecord) -> bool:
        if self.settle_delay:
            self._sleep(self.settle_delay)
        try:
            return self.provider.status_of(record) is AdapterStatus.UP
        except Exception as exc:
            logger.warning("Status check for %s failed: %s", record.name, exc)
            return False


__all__ = ["AdapterManager"]
