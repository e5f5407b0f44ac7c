"""CSV journal of everything a run did to adapters and the target file."""
from __future__ import annotations

import contextlib
import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

JOURNAL_FIELDS: Sequence[str] = (
    "timestamp",
    "event",
    "status",
    "adapter",
    "message",
    "extra",
)


def _encode_extra(extra: Mapping[str, Any]) -> str:
    if not extra:
        return ""
    try:
        return json.dumps(extra, separators=(",", ":"), sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(extra)


@dataclass(slots=True)
class JournalEntry:
    timestamp: str
    event: str
    status: str = ""
    adapter: str = ""
    message: str = ""
    extra: str = ""

    def as_row(self) -> Dict[str, str]:
        return {
            "timestamp": self.timestamp,
            "event": self.event,
            "status": self.status,
            "adapter": self.adapter,
            "message": self.message,
            "extra": self.extra,
        }


class RunJournal:
    """Append-only CSV journal.

    Rows are written and flushed one at a time so that an interrupted run
    still leaves a record of which adapters were disabled. Passing ``None``
    as the path keeps entries in memory only.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.entries: List[JournalEntry] = []
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._scopes: List[Dict[str, Any]] = []
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists() or self.path.stat().st_size == 0:
                with self.path.open("w", newline="", encoding="utf-8") as handle:
                    csv.DictWriter(handle, fieldnames=JOURNAL_FIELDS).writeheader()

    def record(
        self,
        event: str,
        *,
        status: str = "ok",
        adapter: Optional[str] = None,
        message: Optional[str] = None,
        **extra: Any,
    ) -> JournalEntry:
        payload: Dict[str, Any] = {}
        for layer in self._scopes:
            payload.update(layer)
        payload.update(extra)
        entry = JournalEntry(
            timestamp=self._timestamp(),
            event=event,
            status=status,
            adapter=adapter or "",
            message=message or "",
            extra=_encode_extra(payload),
        )
        self.entries.append(entry)
        if self.path is not None:
            try:
                with self.path.open("a", newline="", encoding="utf-8") as handle:
                    csv.DictWriter(handle, fieldnames=JOURNAL_FIELDS).writerow(entry.as_row())
                    handle.flush()
            except OSError:
                logger.debug("Journal write failed for %s", event, exc_info=True)
        return entry

    @contextlib.contextmanager
    def scope(self, **extra: Any) -> Iterator[None]:
        self._scopes.append(dict(extra))
        try:
            yield
        finally:
            self._scopes.pop()

    @contextlib.contextmanager
    def phase(self, name: str, **extra: Any) -> Iterator[None]:
        """Journal ``name`` as started, then as ok or error with its duration."""
        start = perf_counter()
        self.record(name, status="start", **extra)
        try:
            with self.scope(phase=name):
                yield
        except Exception as exc:
            self.record(
                name,
                status="error",
                message=str(exc),
                exception=type(exc).__name__,
                duration=round(perf_counter() - start, 3),
                **extra,
            )
            raise
        else:
            self.record(name, status="ok", duration=round(perf_counter() - start, 3), **extra)

    def events(self, name: Optional[str] = None) -> List[JournalEntry]:
        if name is None:
            return list(self.entries)
        return [entry for entry in self.entries if entry.event == name]

    def _timestamp(self) -> str:
        dt = self._clock()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


__all__ = ["RunJournal", "JournalEntry", "JOURNAL_FIELDS"]
