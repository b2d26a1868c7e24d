"""Manifest builder: merge search results into manifests and persist them."""
import functools
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from rock_index.core import fs
from rock_index.core.config import RocksConfig
from rock_index.core.errors import ManifestLoadError, RepositoryAccessError
from rock_index.core.paths import MANIFEST_FILENAME
from rock_index.core.versions import compare_versions
from rock_index.deps.resolver import DependencyResolver
from rock_index.manifest.dependencies import update_dependencies
from rock_index.manifest.filters import filter_by_lua_version
from rock_index.manifest.inspector import PackageInspector
from rock_index.manifest.loader import ManifestLoader
from rock_index.manifest.persist import save_table
from rock_index.manifest.rock_manifest import RockManifestStore
from rock_index.manifest.schemas import (
    INSTALLED,
    EntryRecord,
    Manifest,
    Provider,
    ProviderTable,
    SearchEntry,
    SearchResults,
)
from rock_index.repo.search import disk_search

logger = logging.getLogger(__name__)


def store_package_items(storage: ProviderTable, provider: Provider, items: Dict[str, str]) -> None:
    """Record provider as a supplier of every item in items.

    Providers are appended; ordering is fixed later by
    sort_package_matching_table.
    """
    for item_name in items:
        storage.setdefault(item_name, []).append(provider)


def _compare_providers(a: Provider, b: Provider) -> int:
    """Name ascending, then version descending."""
    if a.name == b.name:
        if compare_versions(a.version, b.version):
            return -1
        if compare_versions(b.version, a.version):
            return 1
        return 0
    return -1 if a.name < b.name else 1


def sort_package_matching_table(table: ProviderTable) -> None:
    """Sort every provider list and drop adjacent duplicates.

    Duplicates are identical "name/version" strings; versions that merely
    compare equal (e.g. "1.0" and "1.0.0") are both kept.
    """
    for providers in table.values():
        if len(providers) < 2:
            continue
        providers.sort(key=functools.cmp_to_key(_compare_providers))
        deduped: List[Provider] = []
        for provider in providers:
            if not deduped or str(provider) != str(deduped[-1]):
                deduped.append(provider)
        providers[:] = deduped


class ManifestBuilder:
    """Builds and updates manifests for local trees and rock servers."""

    def __init__(
        self,
        config: RocksConfig,
        loader: Optional[ManifestLoader] = None,
        store: Optional[RockManifestStore] = None,
        inspector: Optional[PackageInspector] = None,
        resolver: Optional[DependencyResolver] = None,
    ) -> None:
        self.config = config
        self.loader = loader or ManifestLoader(config)
        self.store = store or RockManifestStore()
        self.inspector = inspector or PackageInspector(self.store, config)
        self.resolver = resolver or DependencyResolver(config, self.loader)

    def store_results(self, results: SearchResults, manifest: Manifest) -> None:
        """Merge search results into manifest.

        Each version found replaces that version's entries. Installed entries
        get their modules and commands from their rock manifest, and are
        registered as providers in manifest.modules / manifest.commands.

        The merge runs on a copy: if any installed package lacks a rock
        manifest, RockManifestNotFoundError propagates and manifest is left
        untouched.
        """
        working = manifest.model_copy(deep=True)
        for name, versions in results.items():
            pkgtable = working.repository.get(name, {})
            for version, entries in versions.items():
                versiontable = []
                for entry in entries:
                    record = EntryRecord(arch=entry.arch)
                    if entry.arch == INSTALLED:
                        provider = Provider(name=name, version=version)
                        record.modules = self.inspector.modules(name, version, entry.repo)
                        store_package_items(working.modules, provider, record.modules)
                        record.commands = self.inspector.commands(name, version, entry.repo)
                        store_package_items(working.commands, provider, record.commands)
                    versiontable.append(record)
                pkgtable[version] = versiontable
            working.repository[name] = pkgtable
        sort_package_matching_table(working.modules)
        sort_package_matching_table(working.commands)

        manifest.repository = working.repository
        manifest.modules = working.modules
        manifest.commands = working.commands

    def make_manifest(
        self,
        repo: Union[str, Path],
        deps_mode: Optional[str] = None,
        remote: bool = False,
    ) -> Manifest:
        """Scan a repository and write its manifest.

        For a rocks server (remote=True) one filtered manifest-<ver> is
        also written per configured Lua version; for a local tree the
        dependencies of installed packages are resolved instead.

        Args:
            repo: Local repository directory
            deps_mode: Dependency mode, defaults to the configured one
            remote: Whether repo is the directory of a rocks server

        Returns:
            The manifest written to <repo>/manifest

        Raises:
            RepositoryAccessError: If repo is not a directory
            RockManifestNotFoundError: If an installed package lacks its rock manifest
        """
        deps_mode = deps_mode or self.config.deps_mode
        repo = Path(repo)
        if not repo.is_dir():
            raise RepositoryAccessError(f"Cannot access repository at {repo}")

        results = disk_search(repo)
        manifest = Manifest()
        self.loader.cache_manifest(repo, None, manifest)
        try:
            self.store_results(results, manifest)

            if remote:
                cache = {}
                for lua_version in self.config.lua_versions:
                    vmanifest = Manifest()
                    self.store_results(results, vmanifest)
                    filter_by_lua_version(vmanifest, lua_version, repo, cache)
                    save_table(repo, f"{MANIFEST_FILENAME}-{lua_version}", vmanifest)
            else:
                update_dependencies(manifest, deps_mode, self.resolver)

            save_table(repo, MANIFEST_FILENAME, manifest)
        except Exception:
            # the in-progress manifest must not outlive a failed build
            self.loader.discard_manifest(repo, None)
            raise
        logger.info(f"Manifest written for {repo}: {len(manifest.repository)} packages")
        return manifest

    def update_manifest(
        self,
        name: str,
        version: str,
        root: Optional[Union[str, Path]] = None,
        deps_mode: Optional[str] = None,
    ) -> Manifest:
        """Add one installed package to a tree's manifest.

        If the tree has no manifest yet, the whole manifest is rebuilt,
        which already includes name/version.
        """
        deps_mode = deps_mode or self.config.deps_mode
        rocks_dir = self.config.tree(root).rocks_dir

        try:
            manifest = self.loader.load_local_manifest(rocks_dir)
        except ManifestLoadError:
            logger.warning("No existing manifest. Attempting to rebuild...")
            return self.make_manifest(rocks_dir, deps_mode)

        results = SearchResults()
        results.add(name, version, SearchEntry(arch=INSTALLED, repo=str(rocks_dir)))
        self.store_results(results, manifest)

        update_dependencies(manifest, deps_mode, self.resolver)
        save_table(rocks_dir, MANIFEST_FILENAME, manifest)
        return manifest

    def zip_manifests(self, where: Union[str, Path]) -> List[Path]:
        """Zip each manifest-<ver> in where into manifest-<ver>.zip."""
        where = Path(where)
        archives = []
        for lua_version in self.config.lua_versions:
            file = where / f"{MANIFEST_FILENAME}-{lua_version}"
            if not file.exists():
                logger.warning(f"No {file.name} in {where}, skipping")
                continue
            archive = where / f"{file.name}.zip"
            fs.delete(archive)
            fs.zip_file(archive, file)
            archives.append(archive)
        return archives
