from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class AdapterStatus(str, enum.Enum):
    """Operational status as reported by the OS adapter tooling."""

    UP = "Up"
    DOWN = "Down"
    DISABLED = "Disabled"
    DISCONNECTED = "Disconnected"
    NOT_PRESENT = "Not Present"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Any) -> "AdapterStatus":
        if isinstance(raw, AdapterStatus):
            return raw
        text = str(raw or "").strip()
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        logger.debug("Unrecognised adapter status %r", raw)
        return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        return self is AdapterStatus.UP


@dataclass(frozen=True, slots=True)
class AdapterRecord:
    """One network adapter as seen at capture time.

    ``name`` is the primary identifier; ``interface_index`` is only used when
    a lookup by name fails during restore.
    """

    name: str
    interface_index: int
    status: AdapterStatus = AdapterStatus.UNKNOWN
    mac_address: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AdapterRecord":
        name = payload.get("name")
        if not name:
            raise ValueError("adapter record requires a name")
        return cls(
            name=str(name),
            interface_index=int(payload.get("interface_index", -1)),
            status=AdapterStatus.parse(payload.get("status")),
            mac_address=str(payload.get("mac_address") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "interface_index": self.interface_index,
            "status": self.status.value,
            "mac_address": self.mac_address,
        }

    def describe(self) -> str:
        return f"{self.name} (index={self.interface_index}, mac={self.mac_address or '-'})"


@dataclass(frozen=True, slots=True)
class AdapterSnapshot:
    """Ordered set of adapters captured once per run."""

    records: Tuple[AdapterRecord, ...] = ()
    pid: Optional[int] = None
    captured_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @classmethod
    def of(cls, records: Iterable[AdapterRecord], *, pid: Optional[int] = None) -> "AdapterSnapshot":
        return cls(records=tuple(records), pid=pid)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AdapterSnapshot":
        raw_records = payload.get("adapters")
        if not isinstance(raw_records, list):
            raise ValueError("snapshot payload must contain an 'adapters' list")
        pid = payload.get("pid")
        return cls(
            records=tuple(AdapterRecord.from_dict(item) for item in raw_records),
            pid=int(pid) if pid is not None else None,
            captured_at=str(payload.get("captured_at") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pid": self.pid,
            "captured_at": self.captured_at,
            "adapters": [record.to_dict() for record in self.records],
        }

    def names(self) -> list[str]:
        return [record.name for record in self.records]

    def __iter__(self) -> Iterator[AdapterRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)


__all__ = ["AdapterStatus", "AdapterRecord", "AdapterSnapshot"]
