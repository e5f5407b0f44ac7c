"""cfgbump: bump a version node in an XML config with the network taken
offline for the duration of the edit."""
from cfgbump.errors import CfgBumpError
from cfgbump.manager import AdapterManager
from cfgbump.models import AdapterRecord, AdapterSnapshot, AdapterStatus, VersionKey
from cfgbump.runner import run_session
from cfgbump.snapshot import SnapshotStore
from cfgbump.xml_version import VersionMutator, bump_version

__version__ = "0.1.0"

__all__ = [
    "AdapterManager",
    "AdapterRecord",
    "AdapterSnapshot",
    "AdapterStatus",
    "CfgBumpError",
    "SnapshotStore",
    "VersionKey",
    "VersionMutator",
    "bump_version",
    "run_session",
]
