"""Modules and commands deployed by an installed package."""
from pathlib import Path
from typing import Dict, Union

from rock_index.core.config import RocksConfig
from rock_index.core.errors import RockManifestNotFoundError
from rock_index.core.paths import path_to_module
from rock_index.manifest.rock_manifest import RockManifestStore
from rock_index.manifest.schemas import RockManifest, iter_tree


class PackageInspector:
    """Reads module and command listings out of rock manifests."""

    def __init__(self, store: RockManifestStore, config: RocksConfig) -> None:
        self.store = store
        self.config = config

    def _rock_manifest(self, name: str, version: str, rocks_dir: Union[str, Path]) -> RockManifest:
        rock_manifest = self.store.load(name, version, rocks_dir)
        if rock_manifest is None:
            raise RockManifestNotFoundError(
                f"rock_manifest file not found for {name} {version} - "
                "not compatible with this tool version"
            )
        return rock_manifest

    def modules(self, name: str, version: str, rocks_dir: Union[str, Path]) -> Dict[str, str]:
        """Map module names to paths relative to the deploy lib/lua dirs.

        Lua sources override native libraries with the same module name.
        """
        rock_manifest = self._rock_manifest(name, version, rocks_dir)
        result = {}
        for key in ("lib", "lua"):
            subtree = rock_manifest.subtree(key)
            if not subtree:
                continue
            for pathname, _ in iter_tree(subtree):
                module = path_to_module(pathname, self.config.lua_extension, self.config.lib_extension)
                result[module] = pathname
        return result

    def commands(self, name: str, version: str, rocks_dir: Union[str, Path]) -> Dict[str, str]:
        """Map command names to paths relative to the deploy bin dir."""
        rock_manifest = self._rock_manifest(name, version, rocks_dir)
        subtree = rock_manifest.subtree("bin") or {}
        return {command: command for command in subtree}
