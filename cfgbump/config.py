"""Run configuration, layered as CLI flag > environment > default."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from cfgbump.models import VersionKey
from cfgbump.models.version_key import DEFAULT_CODE_ATTRIBUTE, DEFAULT_KEY_ATTRIBUTE

ENV_PREFIX = "CFGBUMP_"

DEFAULT_TARGET = "config.xml"
DEFAULT_LOG = "cfgbump-journal.csv"
DEFAULT_SETTLE_DELAY = 2.0


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(ENV_PREFIX + name)
    return value if value else None


@dataclass(slots=True)
class RunConfig:
    target: Path
    key: VersionKey
    log_path: Optional[Path] = None
    snapshot_dir: Optional[Path] = None
    settle_delay: float = DEFAULT_SETTLE_DELAY
    elevate: bool = True
    confirm: bool = True

    @classmethod
    def resolve(
        cls,
        *,
        target: Optional[str] = None,
        code: Optional[str] = None,
        key: Optional[str] = None,
        code_attribute: Optional[str] = None,
        key_attribute: Optional[str] = None,
        log_path: Optional[str] = None,
        snapshot_dir: Optional[str] = None,
        settle_delay: Optional[float] = None,
        elevate: bool = True,
        confirm: bool = True,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RunConfig":
        env = os.environ if environ is None else environ
        code_value = code or _env(env, "CODE")
        key_value = key or _env(env, "KEY")
        if not code_value:
            raise ValueError(f"a code value is required (--code or {ENV_PREFIX}CODE)")
        if not key_value:
            raise ValueError(f"a key value is required (--key or {ENV_PREFIX}KEY)")

        if settle_delay is None:
            raw_delay = _env(env, "SETTLE_DELAY")
            try:
                settle_delay = float(raw_delay) if raw_delay else DEFAULT_SETTLE_DELAY
            except ValueError as exc:
                raise ValueError(f"invalid {ENV_PREFIX}SETTLE_DELAY: {raw_delay!r}") from exc
        if settle_delay < 0:
            raise ValueError("settle delay must not be negative")

        log_value = log_path or _env(env, "LOG") or DEFAULT_LOG
        snapshot_value = snapshot_dir or _env(env, "SNAPSHOT_DIR")
        return cls(
            target=Path(target or _env(env, "TARGET") or DEFAULT_TARGET),
            key=VersionKey(
                code_value=code_value,
                key_value=key_value,
                code_attribute=code_attribute or _env(env, "CODE_ATTR") or DEFAULT_CODE_ATTRIBUTE,
                key_attribute=key_attribute or _env(env, "KEY_ATTR") or DEFAULT_KEY_ATTRIBUTE,
            ),
            log_path=Path(log_value),
            snapshot_dir=Path(snapshot_value) if snapshot_value else None,
            settle_delay=settle_delay,
            elevate=elevate,
            confirm=confirm,
        )


__all__ = ["RunConfig", "ENV_PREFIX", "DEFAULT_TARGET", "DEFAULT_LOG", "DEFAULT_SETTLE_DELAY"]
