from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_CODE_ATTRIBUTE = "Code"
DEFAULT_KEY_ATTRIBUTE = "Key"
ROOT_TAG = "Configuration"


def _quote(value: str) -> str:
    # ElementTree predicates have no escape syntax, only a choice of quote
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    raise ValueError(f"value cannot contain both quote characters: {value!r}")


@dataclass(frozen=True, slots=True)
class VersionKey:
    """Compound key addressing the ``Data`` node that holds the version."""

    code_value: str
    key_value: str
    code_attribute: str = DEFAULT_CODE_ATTRIBUTE
    key_attribute: str = DEFAULT_KEY_ATTRIBUTE

    def __post_init__(self) -> None:
        for label in ("code_attribute", "key_attribute"):
            attribute = getattr(self, label)
            if not attribute or not attribute.replace("-", "").replace("_", "").isalnum():
                raise ValueError(f"{label} must be a plain XML attribute name, got {attribute!r}")
        # validates quoting eagerly so a bad key fails before adapters are touched
        self.element_path()

    def element_path(self) -> str:
        """Path relative to the ``Configuration`` root element."""
        return (
            f"./Other[@{self.code_attribute}={_quote(self.code_value)}]"
            f"/Data[@{self.key_attribute}={_quote(self.key_value)}]"
        )

    def display_path(self) -> str:
        return f"{ROOT_TAG}/{self.element_path()[2:]}"


@dataclass(frozen=True, slots=True)
class VersionChange:
    path: Path
    key: VersionKey
    old: str
    new: str


__all__ = [
    "VersionKey",
    "VersionChange",
    "DEFAULT_CODE_ATTRIBUTE",
    "DEFAULT_KEY_ATTRIBUTE",
    "ROOT_TAG",
]
