"""Manifest, rock manifest and search result schemas."""
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

INSTALLED = "installed"
ROCKSPEC = "rockspec"
SRC = "src"


class Provider(BaseModel):
    """A (name, version) pair supplying a module or command.

    Persisted as the string "name/version"; the split is on the last "/".
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    @model_validator(mode="before")
    @classmethod
    def parse_identifier(cls, data: Any) -> Any:
        """Accept the "name/version" string form."""
        if isinstance(data, str):
            name, sep, version = data.rpartition("/")
            if not sep or not name or not version:
                raise ValueError(f"provider must be 'name/version', got: {data!r}")
            return {"name": name, "version": version}
        return data

    @model_serializer
    def serialize(self) -> str:
        return str(self)

    @classmethod
    def parse(cls, identifier: str) -> "Provider":
        return cls.model_validate(identifier)

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"


ProviderTable = Dict[str, List[Provider]]


class EntryRecord(BaseModel):
    """One way a repository provides a package version.

    ``arch`` is "installed", "rockspec", "src" or a binary architecture tag.
    Installed entries also carry the modules and commands they deploy and,
    once resolved, their dependencies.
    """

    arch: str
    modules: Optional[Dict[str, str]] = None
    commands: Optional[Dict[str, str]] = None
    dependencies: Optional[Dict[str, str]] = None

    @property
    def is_installed(self) -> bool:
        return self.arch == INSTALLED


class Manifest(BaseModel):
    """Index of a repository's packages, modules and commands.

    ``modules`` and ``commands`` are derived from ``repository``: each item
    maps to its providers sorted by name ascending, then version descending,
    so the first provider is the active one.
    """

    repository: Dict[str, Dict[str, List[EntryRecord]]] = Field(default_factory=dict)
    modules: ProviderTable = Field(default_factory=dict)
    commands: ProviderTable = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "repository": {
                    "luasocket": {
                        "3.0-1": [
                            {
                                "arch": "installed",
                                "modules": {"socket": "socket.lua"},
                                "commands": {},
                                "dependencies": {},
                            }
                        ]
                    }
                },
                "modules": {"socket": ["luasocket/3.0-1"]},
                "commands": {},
            }
        }
    )

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)

    def entries(self) -> Iterator[Tuple[str, str, EntryRecord]]:
        """Yield (name, version, entry) for every entry in the repository."""
        for name, versions in self.repository.items():
            for version, entries in versions.items():
                for entry in entries:
                    yield name, version, entry

    def table(self, key: str) -> ProviderTable:
        """Return the "modules" or "commands" provider table."""
        if key == "modules":
            return self.modules
        if key == "commands":
            return self.commands
        raise KeyError(key)


RockTree = Dict[str, Union[str, Dict[str, Any]]]


class RockManifest(BaseModel):
    """Files installed by one package, as a nested path -> checksum tree.

    Directories map to nested dicts, files map to their MD5 hex digest.
    """

    rock_manifest: RockTree = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    def subtree(self, key: str) -> Optional[RockTree]:
        """Return the tree under a top-level directory ("lua", "lib", "bin")."""
        node = self.rock_manifest.get(key)
        return node if isinstance(node, dict) else None

    def files(self) -> Iterator[Tuple[str, str]]:
        """Yield (relative POSIX path, checksum) for every file in the tree."""
        yield from iter_tree(self.rock_manifest)


def iter_tree(tree: RockTree, prefix: str = "") -> Iterator[Tuple[str, str]]:
    for name in sorted(tree):
        node = tree[name]
        path = f"{prefix}{name}"
        if isinstance(node, dict):
            yield from iter_tree(node, f"{path}/")
        else:
            yield path, node


class SearchEntry(BaseModel):
    """A package version found while scanning a repository."""

    arch: str
    repo: str


class SearchResults(BaseModel):
    """Packages found in a repository: name -> version -> entries."""

    packages: Dict[str, Dict[str, List[SearchEntry]]] = Field(default_factory=dict)

    def add(self, name: str, version: str, entry: SearchEntry) -> None:
        self.packages.setdefault(name, {}).setdefault(version, []).append(entry)

    def items(self) -> Iterator[Tuple[str, Dict[str, List[SearchEntry]]]]:
        return iter(self.packages.items())

    def __len__(self) -> int:
        return len(self.packages)
