"""Repository discovery: list every package version in a directory."""
import logging
import re
from pathlib import Path
from typing import Optional, Tuple, Union

from rock_index.core.errors import RepositoryAccessError
from rock_index.manifest.schemas import INSTALLED, ROCKSPEC, SearchEntry, SearchResults

logger = logging.getLogger(__name__)

_ROCKSPEC_NAME = re.compile(r"^(.+)-([^-]+-\d+)\.rockspec$")
_ROCK_NAME = re.compile(r"^(.+)-([^-]+-\d+)\.([^.]+)\.rock$")
_INSTALLED_VERSION = re.compile(r"-\d+$")


def parse_name(filename: str) -> Optional[Tuple[str, str, str]]:
    """Split a rock or rockspec file name into (name, version, arch).

    Examples:
        luasocket-3.0-1.rockspec            -> (luasocket, 3.0-1, rockspec)
        luasocket-3.0-1.linux-x86_64.rock   -> (luasocket, 3.0-1, linux-x86_64)
        luasocket-3.0-1.src.rock            -> (luasocket, 3.0-1, src)
    """
    match = _ROCKSPEC_NAME.match(filename)
    if match:
        return match.group(1), match.group(2), ROCKSPEC
    match = _ROCK_NAME.match(filename)
    if match:
        return match.group(1), match.group(2), match.group(3)
    return None


def disk_search(repo_dir: Union[str, Path]) -> SearchResults:
    """Find all packages in a server directory or a tree's rocks directory.

    Rockspec and rock files at the top level are reported with their
    architecture; <name>/<version>/ directories are reported as installed.
    Sorted for deterministic order.
    """
    repo_dir = Path(repo_dir)
    if not repo_dir.is_dir():
        raise RepositoryAccessError(f"Cannot access repository at {repo_dir}")

    results = SearchResults()
    repo = str(repo_dir)
    for pathname in sorted(repo_dir.iterdir()):
        parsed = parse_name(pathname.name)
        if parsed and pathname.is_file():
            name, version, arch = parsed
            results.add(name, version, SearchEntry(arch=arch, repo=repo))
        elif pathname.is_dir():
            for version_dir in sorted(pathname.iterdir()):
                if version_dir.is_dir() and _INSTALLED_VERSION.search(version_dir.name):
                    results.add(pathname.name, version_dir.name, SearchEntry(arch=INSTALLED, repo=repo))

    logger.info(f"Found {len(results)} packages in {repo_dir}")
    return results
