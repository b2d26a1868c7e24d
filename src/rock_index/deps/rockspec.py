"""Rockspec reader: package identity and dependency list."""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

from rock_index.core.errors import InvalidVersionError, RockspecError
from rock_index.core.versions import Dependency, parse_dependency

logger = logging.getLogger(__name__)

_BLOCK_COMMENT = re.compile(r"--\[(=*)\[.*?\]\1\]", re.DOTALL)
_LINE_COMMENT = re.compile(r"--[^\n]*")
_DEPENDENCIES = re.compile(r"^\s*dependencies\s*=\s*\{(.*?)\}", re.DOTALL | re.MULTILINE)
_STRING = re.compile(r"([\"'])(.*?)\1")


def _string_field(source: str, field: str) -> str:
    match = re.search(rf"^\s*{field}\s*=\s*([\"'])(.*?)\1", source, re.MULTILINE)
    return match.group(2) if match else ""


@dataclass(frozen=True)
class RockSpec:
    package: str
    version: str
    dependencies: Tuple[Dependency, ...] = ()


def parse_rockspec(source: str, origin: str = "<string>") -> RockSpec:
    """Extract package, version and dependencies from rockspec source.

    Only the top-level string fields and the string entries of the
    ``dependencies`` table are read; the rest of the file is ignored.
    """
    source = _BLOCK_COMMENT.sub("", source)
    source = _LINE_COMMENT.sub("", source)

    package = _string_field(source, "package")
    version = _string_field(source, "version")
    if not package or not version:
        raise RockspecError(f"Rockspec {origin} lacks package or version", code="load")

    dependencies = []
    match = _DEPENDENCIES.search(source)
    if match:
        for _, text in _STRING.findall(match.group(1)):
            try:
                dependencies.append(parse_dependency(text))
            except InvalidVersionError as e:
                raise RockspecError(f"Rockspec {origin}: {e}", code="load")

    return RockSpec(package=package.lower(), version=version, dependencies=tuple(dependencies))


def load_local_rockspec(path: Union[str, Path]) -> RockSpec:
    """Load a rockspec file from disk.

    Raises:
        RockspecError: code "open" if the file cannot be read, "load" if
            it is not a valid rockspec
    """
    path = Path(path)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RockspecError(f"Could not open {path}: {e}", code="open")
    return parse_rockspec(source, origin=str(path))
