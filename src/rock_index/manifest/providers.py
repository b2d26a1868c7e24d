"""Which package owns a deployed file, and which would own it next."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from rock_index.core.config import RocksConfig
from rock_index.core.errors import ManifestLoadError, UntrackedFileError
from rock_index.core.paths import RocksTree, path_to_module
from rock_index.manifest.loader import ManifestLoader
from rock_index.manifest.schemas import Provider

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _relative_to(file: Path, directory: Path) -> Optional[str]:
    """Path of file inside directory, or None when file is not below it."""
    try:
        relative = file.relative_to(directory).as_posix()
    except ValueError:
        return None
    return None if relative == "." else relative


def file_manifest_coordinates(file: PathLike, tree: RocksTree, config: RocksConfig) -> Tuple[str, str, Path]:
    """Locate a deployed file in the manifest.

    Returns:
        (table key, item key, deploy dir): "modules" with a module name for
        files under the deploy lua or lib dirs, "commands" with the command
        name for files under the deploy bin dir

    Raises:
        AssertionError: If file is not under any deploy dir; callers must
            only pass deployed files
    """
    file = Path(file)
    for deploy_dir in (tree.deploy_lua_dir, tree.deploy_lib_dir):
        relative = _relative_to(file, deploy_dir)
        if relative:
            return "modules", path_to_module(relative, config.lua_extension, config.lib_extension), deploy_dir
    relative = _relative_to(file, tree.deploy_bin_dir)
    if relative:
        return "commands", relative, tree.deploy_bin_dir
    raise AssertionError(f"Assertion failed: '{file}' is not a deployed file.")


def _find_providers(loader: ManifestLoader, file: PathLike, root: Optional[PathLike]) -> List[Provider]:
    tree = loader.config.tree(root)
    try:
        manifest = loader.load_local_manifest(tree.rocks_dir)
    except ManifestLoadError as e:
        logger.debug(f"No manifest for {tree.root}: {e}")
        raise UntrackedFileError()

    table_key, key, _ = file_manifest_coordinates(file, tree, loader.config)
    providers = manifest.table(table_key).get(key)
    if not providers:
        raise UntrackedFileError()
    return providers


def find_current_provider(loader: ManifestLoader, file: PathLike, root: Optional[PathLike] = None) -> Provider:
    """Return the package that currently provides a deployed file.

    Raises:
        UntrackedFileError: If the tree has no manifest or no package
            provides the file
    """
    return _find_providers(loader, file, root)[0]


def find_next_provider(loader: ManifestLoader, file: PathLike, root: Optional[PathLike] = None) -> Optional[Provider]:
    """Return the package that would provide a file if the current one went away.

    Returns:
        The second-ranked provider, or None if there is only one

    Raises:
        UntrackedFileError: If the file is untracked
    """
    providers = _find_providers(loader, file, root)
    if len(providers) > 1:
        return providers[1]
    return None


def find_conflicting_file(
    loader: ManifestLoader,
    name: str,
    version: str,
    file: PathLike,
    root: Optional[PathLike] = None,
) -> Optional[Path]:
    """Return name/version's own deployed path for the item file conflicts with.

    Args:
        name: Package with the conflicting module or command
        version: Version of that package
        file: Full, unversioned path of a deployed file

    Returns:
        Full path of the corresponding deployed file of name/version, or
        None if the tree has no manifest
    """
    tree = loader.config.tree(root)
    try:
        manifest = loader.load_local_manifest(tree.rocks_dir)
    except ManifestLoadError:
        return None

    entry = manifest.repository[name][version][0]
    table_key, key, deploy_dir = file_manifest_coordinates(file, tree, loader.config)
    items = entry.modules if table_key == "modules" else entry.commands
    return deploy_dir / items[key]
