"""Version parsing, ordering and dependency constraint matching.

Versions follow the rocks conventions: dotted numeric components, an
optional ``-N`` revision suffix, and a few well-known words (``scm``,
``dev``, ``rc``, ``beta``...) that sort above or below plain numbers.
"""
import functools
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from rock_index.core.errors import InvalidVersionError

_DELTAS = {
    "dev": 120000000,
    "scm": 110000000,
    "cvs": 100000000,
    "rc": -1000,
    "pre": -10000,
    "beta": -100000,
    "alpha": -1000000,
}

_REVISION = re.compile(r"^(.*)-(\d+)$", re.DOTALL)
_NUMBER = re.compile(r"^(\d+)[.\-_]*(.*)$", re.DOTALL)
_WORD = re.compile(r"^([a-z]+)[.\-_]*(.*)$", re.DOTALL)
_CONSTRAINT = re.compile(r"^(==|~=|>=|<=|~>|!=|=|>|<)?\s*(\S+)$")
_DEPENDENCY = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._\-]*)\s*(.*)$", re.DOTALL)
_OP_ALIASES = {"=": "==", "!=": "~="}


@functools.total_ordering
class Version:
    """A parsed version. Compare with the usual operators."""

    __slots__ = ("string", "components", "revision")

    def __init__(self, string: str, components: Tuple[float, ...], revision: Optional[int] = None):
        self.string = string
        self.components = components
        self.revision = revision

    def _padded(self, other: "Version") -> Tuple[Tuple[float, ...], Tuple[float, ...]]:
        n = max(len(self.components), len(other.components))
        a = self.components + (0,) * (n - len(self.components))
        b = other.components + (0,) * (n - len(other.components))
        return a, b

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        a, b = self._padded(other)
        if a != b:
            return False
        if self.revision is not None and other.revision is not None:
            return self.revision == other.revision
        return True

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        a, b = self._padded(other)
        if a != b:
            return a < b
        if self.revision is None or other.revision is None:
            return False
        return self.revision < other.revision

    __hash__ = None

    def __repr__(self) -> str:
        return f"Version({self.string!r})"

    def __str__(self) -> str:
        return self.string


def parse_version(vstring: Union[str, Version]) -> Version:
    """Parse a version string.

    Examples:
        "1.2.3-1"  -> components (1, 2, 3), revision 1
        "scm-1"    -> components (110000000,), revision 1
        "2.0rc1"   -> components (2, 0, -1000, 1)

    Raises:
        InvalidVersionError: If the string is empty or contains
            characters that are not part of a version
    """
    if isinstance(vstring, Version):
        return vstring
    if not isinstance(vstring, str) or not vstring.strip():
        raise InvalidVersionError(f"Invalid version: {vstring!r}")

    text = vstring.strip()
    revision = None
    match = _REVISION.match(text)
    if match:
        text, revision = match.group(1), int(match.group(2))

    components: List[float] = []
    rest = text.lower()
    while rest:
        match = _NUMBER.match(rest)
        if match:
            components.append(int(match.group(1)))
            rest = match.group(2)
            continue
        match = _WORD.match(rest)
        if not match:
            raise InvalidVersionError(f"Invalid version: {vstring!r}")
        word = match.group(1)
        if word in _DELTAS:
            components.append(_DELTAS[word])
        else:
            last = components[-1] if components else 0
            components.append(last + ord(word[0]) / 1000)
        rest = match.group(2)

    return Version(vstring.strip(), tuple(components), revision)


def compare_versions(a: str, b: str) -> bool:
    """Return True if version a is strictly newer than version b."""
    return parse_version(a) > parse_version(b)


@dataclass(frozen=True)
class Constraint:
    op: str
    version: Version

    def __str__(self) -> str:
        return f"{self.op} {self.version.string}"


@dataclass(frozen=True)
class Dependency:
    name: str
    constraints: Tuple[Constraint, ...] = ()

    def __str__(self) -> str:
        if not self.constraints:
            return self.name
        return f"{self.name} " + ", ".join(str(c) for c in self.constraints)


def parse_constraints(text: str) -> Tuple[Constraint, ...]:
    """Parse a comma-separated list such as ">= 5.1, < 5.4"."""
    constraints = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        match = _CONSTRAINT.match(part)
        if not match:
            raise InvalidVersionError(f"Invalid constraint: {part!r}")
        op = match.group(1) or "=="
        constraints.append(Constraint(_OP_ALIASES.get(op, op), parse_version(match.group(2))))
    return tuple(constraints)


def parse_dependency(text: str) -> Dependency:
    """Parse a dependency string such as "luasocket >= 2.0, < 3"."""
    match = _DEPENDENCY.match(text.strip())
    if not match:
        raise InvalidVersionError(f"Invalid dependency: {text!r}")
    return Dependency(match.group(1).lower(), parse_constraints(match.group(2)))


def _partial_match(version: Version, requested: Version) -> bool:
    for i, component in enumerate(requested.components):
        current = version.components[i] if i < len(version.components) else 0
        if current != component:
            return False
    if requested.revision is not None:
        return requested.revision == version.revision
    return True


def match_constraints(version: Union[str, Version], constraints: Tuple[Constraint, ...]) -> bool:
    """Check whether version satisfies every constraint."""
    version = parse_version(version)
    for constraint in constraints:
        op, wanted = constraint.op, constraint.version
        if op == "==":
            ok = version == wanted
        elif op == "~=":
            ok = version != wanted
        elif op == ">=":
            ok = version >= wanted
        elif op == "<=":
            ok = version <= wanted
        elif op == ">":
            ok = version > wanted
        elif op == "<":
            ok = version < wanted
        elif op == "~>":
            ok = _partial_match(version, wanted)
        else:
            raise InvalidVersionError(f"Unknown constraint operator: {op!r}")
        if not ok:
            return False
    return True
