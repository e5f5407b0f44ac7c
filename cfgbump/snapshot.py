"""Durable copy of the adapter snapshot.

The file outlives the in-memory snapshot so a restore can still find the
adapters a run disabled. It does not survive a reboot of the temp dir.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from cfgbump.errors import SnapshotError
from cfgbump.models import AdapterSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "cfgbump-adapters-"


def snapshot_filename(pid: int) -> str:
    return f"{SNAPSHOT_PREFIX}{pid}.json"


class SnapshotStore:
    """Read/write one snapshot file scoped to a process id."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @classmethod
    def for_pid(
        cls,
        pid: Optional[int] = None,
        directory: Union[str, Path, None] = None,
    ) -> "SnapshotStore":
        base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
        return cls(base / snapshot_filename(pid if pid is not None else os.getpid()))

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SnapshotStore":
        return cls(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, snapshot: AdapterSnapshot) -> Path:
        payload = json.dumps(snapshot.to_dict(), indent=2)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise SnapshotError(f"could not write snapshot {self.path}: {exc}") from exc
        logger.debug("Saved snapshot of %d adapter(s) to %s", len(snapshot), self.path)
        return self.path

    def load(self) -> AdapterSnapshot:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SnapshotError(f"could not read snapshot {self.path}: {exc}") from exc
        try:
            return AdapterSnapshot.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as exc:
            raise SnapshotError(f"snapshot {self.path} is corrupt: {exc}") from exc

    def remove(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise SnapshotError(f"could not remove snapshot {self.path}: {exc}") from exc
        logger.debug("Removed snapshot %s", self.path)
        return True


__all__ = ["SnapshotStore", "snapshot_filename", "SNAPSHOT_PREFIX"]
