"""Process-scoped caches for loaded manifests and rock manifests."""
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from rock_index.manifest.schemas import Manifest, Provider, RockManifest


class RockManifestCache:
    """Rock manifests keyed by "name/version".

    Entries are added on first load or build and never evicted; a package's
    file listing is authoritative until it is reinstalled in a new process.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, RockManifest] = {}

    @staticmethod
    def key(name: str, version: str) -> str:
        return str(Provider(name=name, version=version))

    def get(self, name: str, version: str) -> Optional[RockManifest]:
        return self._entries.get(self.key(name, version))

    def put(self, name: str, version: str, rock_manifest: RockManifest) -> None:
        self._entries[self.key(name, version)] = rock_manifest

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ManifestCache:
    """Loaded manifests keyed by (repository location, Lua version)."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], Manifest] = {}

    @staticmethod
    def key(location: Union[str, Path], lua_version: str) -> Tuple[str, str]:
        location = str(location)
        if location.startswith("file://"):
            location = location[len("file://"):]
        if "://" not in location:
            location = str(Path(location))
        return location, lua_version

    def get(self, location: Union[str, Path], lua_version: str) -> Optional[Manifest]:
        return self._entries.get(self.key(location, lua_version))

    def put(self, location: Union[str, Path], lua_version: str, manifest: Manifest) -> None:
        self._entries[self.key(location, lua_version)] = manifest

    def discard(self, location: Union[str, Path], lua_version: str) -> None:
        self._entries.pop(self.key(location, lua_version), None)

    def __len__(self) -> int:
        return len(self._entries)
