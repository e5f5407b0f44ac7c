"""Value types shared by the adapter manager, the snapshot store and the
XML version mutator."""
from .adapter_record import AdapterRecord, AdapterSnapshot, AdapterStatus
from .restore_report import RestoreReport
from .version_key import VersionChange, VersionKey

__all__ = [
    "AdapterRecord",
    "AdapterSnapshot",
    "AdapterStatus",
    "RestoreReport",
    "VersionChange",
    "VersionKey",
]
