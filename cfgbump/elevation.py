"""Administrator checks and self-relaunch."""
from __future__ import annotations

import ctypes
import logging
import os
import shutil
import subprocess
import sys
from typing import List, Optional, Sequence

from cfgbump.errors import ElevationError

logger = logging.getLogger(__name__)


def is_elevated() -> bool:
    if sys.platform.startswith("win"):
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def _relaunch_argv(argv: Sequence[str]) -> List[str]:
    return [sys.executable, "-m", "cfgbump", *argv]


def relaunch_elevated(argv: Sequence[str]) -> None:
    """Start an elevated copy of this command.

    On Windows a UAC prompt is shown and the current process should exit once
    this returns; the elevated copy starts in the current working directory so
    relative paths resolve the same way. On POSIX the current process is replaced through ``sudo``
    and this only returns by raising.
    """
    if sys.platform.startswith("win"):
        params = subprocess.list2cmdline(_relaunch_argv(argv)[1:])
        logger.info("Requesting administrator rights")
        try:
            code = ctypes.windll.shell32.ShellExecuteW(None, "runas", sys.executable, params, os.getcwd(), 1)  # type: ignore[attr-defined]
        except (AttributeError, OSError) as exc:
            raise ElevationError(f"could not request elevation: {exc}") from exc
        # ShellExecuteW reports success with any value above 32
        if code <= 32:
            raise ElevationError(f"elevation was refused or failed (code {code})")
        return
    sudo = shutil.which("sudo")
    if sudo is None:
        raise ElevationError("root privileges required and sudo is not available")
    logger.info("Re-running under sudo")
    try:
        os.execv(sudo, [sudo, *_relaunch_argv(argv)])
    except OSError as exc:
        raise ElevationError(f"could not re-run under sudo: {exc}") from exc


def ensure_elevated(argv: Optional[Sequence[str]] = None) -> bool:
    """Return ``True`` if already elevated, ``False`` after handing off to an
    elevated copy (the caller should then exit)."""
    if is_elevated():
        return True
    relaunch_elevated(list(sys.argv[1:] if argv is None else argv))
    return False


__all__ = ["is_elevated", "relaunch_elevated", "ensure_elevated"]
