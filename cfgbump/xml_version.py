"""Locate the version node in the target XML and bump it by one."""
from __future__ import annotations

import contextlib
import logging
import os
import re
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Union

from cfgbump.errors import (
    AmbiguousNodeError,
    DocumentError,
    NodeNotFoundError,
    SaveError,
    VersionError,
    VersionParseError,
)
from cfgbump.models import VersionChange, VersionKey
from cfgbump.models.version_key import ROOT_TAG

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")
_ENCODING_DECL = re.compile(rb"""^<\?xml[^>]*encoding=["']([A-Za-z0-9._-]+)["']""")


def _declared_encoding(raw: bytes) -> str:
    match = _ENCODING_DECL.match(raw.lstrip(b"\xef\xbb\xbf"))
    return match.group(1).decode("ascii") if match else "utf-8"


def parse_version(text: str | None) -> str:
    """Validate node text as a non-negative decimal integer.

    The canonical digit string is returned rather than an ``int`` so that
    values of any length survive, including those past the interpreter's
    int/str conversion limit.
    """
    value = (text or "").strip()
    if not _DIGITS.fullmatch(value):
        raise VersionParseError(f"node text {value!r} is not a non-negative integer")
    return value.lstrip("0") or "0"


def increment(digits: str) -> str:
    """Add one to a canonical decimal digit string."""
    kept = digits.rstrip("9")
    carried = len(digits) - len(kept)
    if not kept:
        return "1" + "0" * carried
    return kept[:-1] + str(int(kept[-1]) + 1) + "0" * carried


class VersionMutator:
    """Read or increment the ``Data`` node addressed by a :class:`VersionKey`.

    The document is only written after the node has been found and its text
    parsed, so every failure before :class:`SaveError` leaves the file
    untouched. Saving goes through a sibling temp file and ``os.replace``;
    the file mode is carried over and a read-only target is refused.
    """

    def __init__(self, path: Union[str, Path], key: VersionKey) -> None:
        self.path = Path(path)
        self.key = key

    def read(self) -> str:
        _, node = self._locate()
        return parse_version(node.text)

    def apply(self) -> VersionChange:
        tree, node = self._locate()
        old = parse_version(node.text)
        new = increment(old)
        node.text = new
        self._save(tree)
        logger.info("Version at %s changed %s -> %s", self.key.display_path(), old, new)
        return VersionChange(path=self.path, key=self.key, old=old, new=new)

    def _load(self) -> ET.ElementTree:
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
        try:
            tree = ET.parse(self.path, parser=parser)
        except ET.ParseError as exc:
            raise DocumentError(f"{self.path} is not well-formed XML: {exc}") from exc
        except OSError as exc:
            raise DocumentError(f"could not read {self.path}: {exc}") from exc
        root = tree.getroot()
        if root.tag != ROOT_TAG:
            raise NodeNotFoundError(f"root element is <{root.tag}>, expected <{ROOT_TAG}>")
        return tree

    def _locate(self) -> tuple[ET.ElementTree, ET.Element]:
        tree = self._load()
        matches: List[ET.Element] = tree.getroot().findall(self.key.element_path())
        if not matches:
            raise NodeNotFoundError(f"no node matches {self.key.display_path()} in {self.path}")
        if len(matches) > 1:
            raise AmbiguousNodeError(self.key.display_path(), len(matches))
        return tree, matches[0]

    def _save(self, tree: ET.ElementTree) -> None:
        try:
            encoding = _declared_encoding(self.path.read_bytes()[:200])
        except OSError as exc:
            raise SaveError(f"could not re-read {self.path}: {exc}") from exc
        if not os.access(self.path, os.W_OK):
            raise SaveError(f"{self.path} is not writable")
        tmp_path = self.path.with_name(f".{self.path.name}.cfgbump-tmp")
        try:
            tree.write(tmp_path, encoding=encoding, xml_declaration=True)
            shutil.copymode(self.path, tmp_path)
            os.replace(tmp_path, self.path)
        except (OSError, LookupError) as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise SaveError(f"could not save {self.path}: {exc}") from exc


def bump_version(path: Union[str, Path], key: VersionKey) -> bool:
    """Increment the version node; ``False`` and a logged error on failure."""
    try:
        VersionMutator(path, key).apply()
    except VersionError as exc:
        logger.error("Version bump failed: %s", exc)
        return False
    return True


__all__ = ["VersionMutator", "bump_version", "parse_version", "increment"]
