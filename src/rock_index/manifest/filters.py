"""Per-Lua-version filtering of server manifests."""
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from rock_index.core.errors import RockspecError
from rock_index.core.versions import match_constraints, parse_version
from rock_index.deps.rockspec import RockSpec, load_local_rockspec
from rock_index.manifest.schemas import ROCKSPEC, Manifest

logger = logging.getLogger(__name__)


def filter_by_lua_version(
    manifest: Manifest,
    lua_version: str,
    repodir: Union[str, Path],
    cache: Optional[Dict[Path, RockSpec]] = None,
) -> None:
    """Remove rockspec entries whose "lua" dependency excludes lua_version.

    Only "rockspec" entries are checked. An incompatible version loses all
    of its entries except installed ones, and disappears when none remain;
    a package left with no versions is dropped from the repository. A
    rockspec that fails to load is logged and kept.

    Args:
        manifest: Manifest to filter in place
        lua_version: Target Lua version, e.g. "5.1"
        repodir: Directory holding <name>-<version>.rockspec files
        cache: Rockspecs already loaded, keyed by path; shared across passes
    """
    cache = cache if cache is not None else {}
    target = parse_version(lua_version)
    repodir = Path(repodir)

    for name in list(manifest.repository):
        versions = manifest.repository[name]
        to_remove = []
        for version, entries in versions.items():
            for entry in entries:
                if entry.arch != ROCKSPEC:
                    continue
                pathname = repodir / f"{name}-{version}.rockspec"
                rockspec = cache.get(pathname)
                if rockspec is None:
                    try:
                        rockspec = load_local_rockspec(pathname)
                    except RockspecError as e:
                        logger.warning(f"Error loading rockspec for {name} {version}: {e}")
                        continue
                    cache[pathname] = rockspec
                for dep in rockspec.dependencies:
                    if dep.name == "lua":
                        if not match_constraints(target, dep.constraints) and version not in to_remove:
                            to_remove.append(version)
                        break

        for incompatible in to_remove:
            kept = [entry for entry in versions[incompatible] if entry.is_installed]
            if kept:
                versions[incompatible] = kept
            else:
                del versions[incompatible]
        if to_remove and not versions:
            del manifest.repository[name]
