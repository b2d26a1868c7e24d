"""Pytest fixtures for rock-index tests."""
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pytest

from rock_index.core.config import RocksConfig
from rock_index.core.paths import RocksTree
from rock_index.manifest.rock_manifest import RockManifestStore

_DEPLOY_DIRS = {
    "lua": "deploy_lua_dir",
    "lib": "deploy_lib_dir",
    "bin": "deploy_bin_dir",
}


def rockspec_source(name: str, version: str, dependencies: Iterable[str] = ()) -> str:
    """Render a minimal rockspec."""
    deps = ",\n".join(f'   "{dep}"' for dep in dependencies)
    return (
        f'-- rockspec for {name}\n'
        f'package = "{name}"\n'
        f'version = "{version}"\n'
        f'source = {{\n   url = "http://example.com/{name}-{version}.tar.gz"\n}}\n'
        f'dependencies = {{\n{deps}\n}}\n'
        f'build = {{\n   type = "builtin"\n}}\n'
    )


def install_rock(
    root: Path,
    name: str,
    version: str,
    files: Dict[str, str],
    dependencies: Iterable[str] = ("lua >= 5.1",),
    lua_version: str = "5.1",
    store: Optional[RockManifestStore] = None,
) -> RocksTree:
    """Lay out an installed package the way an install would.

    files maps paths inside the install dir ("lua/foo.lua", "lib/bar.so",
    "bin/tool", "doc/README") to content. lua/, lib/ and bin/ files are also
    deployed into the tree. The rockspec and rock_manifest are written.
    """
    tree = RocksTree(root, lua_version)
    install_dir = tree.install_dir(name, version)
    install_dir.mkdir(parents=True, exist_ok=True)

    for relative, content in files.items():
        target = install_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

        top, _, rest = relative.partition("/")
        if top in _DEPLOY_DIRS and rest:
            deployed = getattr(tree, _DEPLOY_DIRS[top]) / rest
            deployed.parent.mkdir(parents=True, exist_ok=True)
            deployed.write_text(content)

    tree.rockspec_file(name, version).write_text(rockspec_source(name, version, dependencies))
    (store or RockManifestStore()).make(name, version, tree.rocks_dir)
    return tree


@pytest.fixture
def tree_root(tmp_path: Path) -> Path:
    root = tmp_path / "tree"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, tree_root: Path) -> RocksConfig:
    """Configuration rooted at a temporary tree."""
    return RocksConfig(
        root_dir=tree_root,
        local_cache=tmp_path / "cache",
        lua_version="5.1",
        lua_versions=["5.1", "5.2", "5.3"],
    )


@pytest.fixture
def populated_tree(tree_root: Path) -> Dict[str, Any]:
    """Create a tree with three installed packages.

    Returns dict with:
        - tree: RocksTree
        - packages: {"luasocket": "3.0-1", "copas": "2.0-1", "broken": "1.0-1"}

    copas depends on luasocket; broken depends on a package that is not
    installed. luasocket 2.0-1 is installed as an older provider of socket.
    """
    tree = install_rock(
        tree_root,
        "luasocket",
        "3.0-1",
        {
            "lua/socket.lua": "return require('socket.core')",
            "lua/socket/http.lua": "return {}",
            "lib/socket/core.so": "\x7fELF",
            "doc/README": "LuaSocket",
        },
    )
    install_rock(
        tree_root,
        "luasocket",
        "2.0-1",
        {
            "lua/socket.lua": "return {} -- old",
            "lib/socket/core.so": "\x7fELF old",
        },
    )
    install_rock(
        tree_root,
        "copas",
        "2.0-1",
        {
            "lua/copas.lua": "return {}",
            "bin/coxpcall": "#!/bin/sh\n",
        },
        dependencies=("lua >= 5.1", "luasocket >= 2.0"),
    )
    install_rock(
        tree_root,
        "broken",
        "1.0-1",
        {"lua/broken/init.lua": "return {}"},
        dependencies=("lua >= 5.1", "nowhere >= 1.0"),
    )
    return {
        "tree": tree,
        "packages": {"luasocket": "3.0-1", "copas": "2.0-1", "broken": "1.0-1"},
    }
