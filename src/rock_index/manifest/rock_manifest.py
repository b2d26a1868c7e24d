"""Per-package file index: build, persist and load rock manifests."""
import logging
from pathlib import Path
from typing import Optional, Union

from rock_index.core import fs
from rock_index.core.errors import ChecksumError, PersistError, RepositoryAccessError
from rock_index.core.paths import ROCK_MANIFEST_FILENAME
from rock_index.manifest.cache import RockManifestCache
from rock_index.manifest.persist import load_table, save_table
from rock_index.manifest.schemas import RockManifest

logger = logging.getLogger(__name__)


def _is_rock_manifest_file(file: str) -> bool:
    """The rock_manifest itself, or a temporary file left by saving it."""
    if file == ROCK_MANIFEST_FILENAME:
        return True
    return file.startswith(f"{ROCK_MANIFEST_FILENAME}.") and file.endswith(".tmp") and "/" not in file


class RockManifestStore:
    """Loads and builds rock manifests, memoizing them in a RockManifestCache.

    ``rocks_dir`` arguments name the directory holding <name>/<version>
    install directories (for a tree, RocksTree.rocks_dir).
    """

    def __init__(self, cache: Optional[RockManifestCache] = None) -> None:
        self.cache = cache if cache is not None else RockManifestCache()

    def load(self, name: str, version: str, rocks_dir: Union[str, Path]) -> Optional[RockManifest]:
        """Return the rock manifest of an installed package, or None if absent."""
        cached = self.cache.get(name, version)
        if cached is not None:
            return cached
        pathname = Path(rocks_dir) / name / version / ROCK_MANIFEST_FILENAME
        try:
            rock_manifest = load_table(pathname, RockManifest)
        except PersistError as e:
            logger.debug(f"No rock manifest for {name} {version}: {e}")
            return None
        self.cache.put(name, version, rock_manifest)
        return rock_manifest

    def make(self, name: str, version: str, rocks_dir: Union[str, Path]) -> RockManifest:
        """Checksum every file installed by a package and persist the tree.

        The result is cached and written to <install_dir>/rock_manifest only
        if every checksum succeeds.

        Raises:
            RepositoryAccessError: If the install directory does not exist
            ChecksumError: If any file cannot be read
        """
        install_dir = Path(rocks_dir) / name / version
        if not install_dir.is_dir():
            raise RepositoryAccessError(f"Cannot access install directory {install_dir}")

        tree = {}
        for file in fs.find_files(install_dir):
            if _is_rock_manifest_file(file):
                continue
            parts = file.split("/")
            walk = tree
            for part in parts[:-1]:
                walk = walk.setdefault(part, {})
            full_path = install_dir / file
            if full_path.is_file():
                try:
                    walk[parts[-1]] = fs.md5_file(full_path)
                except OSError as e:
                    raise ChecksumError(f"Failed producing checksum: {e}", full_path)
            else:
                walk.setdefault(parts[-1], {})

        rock_manifest = RockManifest(rock_manifest=tree)
        save_table(install_dir, ROCK_MANIFEST_FILENAME, rock_manifest)
        self.cache.put(name, version, rock_manifest)
        logger.info(f"Rock manifest for {name} {version}: {sum(1 for _ in rock_manifest.files())} files")
        return rock_manifest
