"""rock-index CLI - build, update and query rocks manifests."""
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from rock_index.core.config import DEPS_MODES, RocksConfig
from rock_index.core.errors import ConfigError, RockIndexError, UntrackedFileError
from rock_index.manifest.builder import ManifestBuilder
from rock_index.manifest.loader import ManifestLoader
from rock_index.manifest.providers import find_current_provider, find_next_provider
from rock_index.manifest.rock_manifest import RockManifestStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(name)s: %(message)s",
)
logger = logging.getLogger("rock_index")

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON configuration file",
)
tree_option = click.option(
    "--tree",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Rocks tree root (default: configured root_dir)",
)
deps_mode_option = click.option(
    "--deps-mode",
    type=click.Choice(DEPS_MODES),
    default=None,
    help="Dependency mode (default: configured deps_mode)",
)


def _load_config(config_path: Optional[Path], tree: Optional[Path] = None) -> RocksConfig:
    """Load the configuration, making --tree the current tree when given."""
    if config_path is None:
        config = RocksConfig()
    else:
        try:
            config = RocksConfig.load(config_path)
        except ConfigError as e:
            logger.error(str(e))
            sys.exit(7)
    if tree is not None:
        config = config.model_copy(update={"root_dir": tree.absolute()})
    return config


@click.group()
def main():
    """rock-index - manifests for Lua rocks trees and servers."""
    pass


@main.command("make-manifest")
@click.argument("repo", type=click.Path(file_okay=False, path_type=Path))
@deps_mode_option
@click.option("--remote", is_flag=True, help="Also write per-Lua-version server manifests")
@config_option
def make_manifest(repo: Path, deps_mode: Optional[str], remote: bool, config_path: Optional[Path]):
    """Scan REPO and write its manifest.

    Examples:
        rock-index make-manifest ~/.luarocks/lib/luarocks/rocks
        rock-index make-manifest ./server --remote

    Exit codes:
        0: Success
        1: Generic runtime failure
        7: Configuration file error
    """
    config = _load_config(config_path)
    try:
        manifest = ManifestBuilder(config).make_manifest(repo, deps_mode=deps_mode, remote=remote)
    except RockIndexError as e:
        logger.error(f"Manifest build failed: {e}")
        sys.exit(1)

    click.echo(f"[OK] Manifest written: {repo / 'manifest'}")
    click.echo(f"  Packages: {len(manifest.repository)}")
    click.echo(f"  Modules: {len(manifest.modules)}")
    click.echo(f"  Commands: {len(manifest.commands)}")
    sys.exit(0)


@main.command("update-manifest")
@click.argument("name")
@click.argument("version")
@tree_option
@deps_mode_option
@config_option
def update_manifest(name: str, version: str, tree: Optional[Path], deps_mode: Optional[str], config_path: Optional[Path]):
    """Add installed package NAME VERSION to its tree's manifest."""
    config = _load_config(config_path, tree)
    try:
        ManifestBuilder(config).update_manifest(name, version, deps_mode=deps_mode)
    except RockIndexError as e:
        logger.error(f"Manifest update failed: {e}")
        sys.exit(1)

    click.echo(f"[OK] Manifest updated: {name} {version}")
    sys.exit(0)


@main.command("rock-manifest")
@click.argument("name")
@click.argument("version")
@tree_option
@config_option
def rock_manifest(name: str, version: str, tree: Optional[Path], config_path: Optional[Path]):
    """Checksum the files of installed package NAME VERSION."""
    config = _load_config(config_path, tree)
    rocks_dir = config.tree().rocks_dir
    try:
        result = RockManifestStore().make(name, version, rocks_dir)
    except RockIndexError as e:
        logger.error(f"Rock manifest failed: {e}")
        sys.exit(1)

    click.echo(f"[OK] Rock manifest written: {rocks_dir / name / version / 'rock_manifest'}")
    click.echo(f"  Files: {sum(1 for _ in result.files())}")
    sys.exit(0)


@main.command()
@click.argument("file", type=click.Path(path_type=Path))
@tree_option
@config_option
def which(file: Path, tree: Optional[Path], config_path: Optional[Path]):
    """Show which package provides deployed FILE.

    Exit codes:
        0: Success
        1: FILE is not under a deploy directory
        3: File is not tracked by any manifest
        7: Configuration file error
    """
    config = _load_config(config_path, tree)
    loader = ManifestLoader(config)
    try:
        current = find_current_provider(loader, file.absolute())
        following = find_next_provider(loader, file.absolute())
    except UntrackedFileError:
        logger.error(f"{file} is untracked")
        sys.exit(3)
    except AssertionError as e:
        logger.error(str(e))
        sys.exit(1)

    click.echo(f"{file}: {current.name} {current.version}")
    if following is not None:
        click.echo(f"  Next provider: {following.name} {following.version}")
    sys.exit(0)


@main.command("zip-manifests")
@click.argument("where", type=click.Path(exists=True, file_okay=False, path_type=Path))
@config_option
def zip_manifests(where: Path, config_path: Optional[Path]):
    """Zip the per-Lua-version manifests in WHERE."""
    config = _load_config(config_path)
    archives = ManifestBuilder(config).zip_manifests(where)
    for archive in archives:
        click.echo(f"[OK] {archive}")
    sys.exit(0)


if __name__ == "__main__":
    main()
