from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from .adapter_record import AdapterRecord


@dataclass(slots=True)
class RestoreReport:
    """Outcome of re-enabling a snapshot.

    ``methods`` maps adapter names to the step that brought them back:
    ``name``, ``retry`` or ``index``.
    """

    restored: Tuple[AdapterRecord, ...] = ()
    failed: Tuple[AdapterRecord, ...] = ()
    methods: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"{len(self.restored)} restored, {len(self.failed)} failed"
