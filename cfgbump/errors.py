"""Exception hierarchy for cfgbump.

Adapter errors are non-fatal inside batch loops; everything else ends the run
(restoration still happens when adapters have already been touched).
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class CfgBumpError(Exception):
    """Base class for all cfgbump failures."""


class ElevationError(CfgBumpError):
    """Administrator rights are missing and could not be obtained."""


class TargetNotFoundError(CfgBumpError):
    def __init__(self, path: Union[str, Path], reason: str = "not found") -> None:
        self.path = Path(path)
        super().__init__(f"target file {self.path} {reason}")


class AdapterError(CfgBumpError):
    """A single adapter operation failed."""

    def __init__(self, message: str, *, adapter: Optional[str] = None, stderr: str = "") -> None:
        self.adapter = adapter
        self.stderr = stderr
        detail = f"{message}: {stderr.strip()}" if stderr.strip() else message
        super().__init__(detail)


class SnapshotError(CfgBumpError):
    """The persisted adapter snapshot could not be written, read or removed."""


class VersionError(CfgBumpError):
    """Base class for failures while bumping the version node."""


class DocumentError(VersionError):
    """The target file is not a usable XML document."""


class NodeNotFoundError(VersionError):
    pass


class AmbiguousNodeError(VersionError):
    def __init__(self, path: str, count: int) -> None:
        self.count = count
        super().__init__(f"{count} nodes match {path}; expected exactly one")


class VersionParseError(VersionError):
    pass


class SaveError(VersionError):
    pass


__all__ = [
    "CfgBumpError",
    "ElevationError",
    "TargetNotFoundError",
    "AdapterError",
    "SnapshotError",
    "VersionError",
    "DocumentError",
    "NodeNotFoundError",
    "AmbiguousNodeError",
    "VersionParseError",
    "SaveError",
]
