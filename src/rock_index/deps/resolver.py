"""Dependency resolver: installed dependency closure of a package."""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rock_index.core.config import RocksConfig
from rock_index.core.errors import ManifestLoadError, RockspecError
from rock_index.core.versions import Dependency, compare_versions, match_constraints
from rock_index.deps.rockspec import load_local_rockspec
from rock_index.manifest.loader import ManifestLoader
from rock_index.manifest.schemas import Manifest

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Resolves dependencies against installed packages.

    Candidates come from the manifest being indexed plus the manifests of
    the trees selected by the dependency mode. Dependency lists read from
    rockspecs are memoized per (name, version) for the resolver's lifetime.
    """

    def __init__(self, config: RocksConfig, loader: ManifestLoader) -> None:
        self.config = config
        self.loader = loader
        self._deplists: Dict[Tuple[str, str], Tuple[Dependency, ...]] = {}

    def scan(
        self,
        manifest: Manifest,
        name: str,
        version: str,
        deps_mode: str,
        results: Optional[Dict[str, str]] = None,
        missing: Optional[Dict[str, str]] = None,
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        """Collect the dependency closure of name/version.

        Returns:
            (results, missing): results maps each package in the closure,
            including name itself, to its resolved version; missing maps
            "<name> <version>" (no rockspec) or "<name> <constraints>"
            (no installed match) to a reason
        """
        results = {} if results is None else results
        missing = {} if missing is None else missing
        if name in results:
            return results, missing

        try:
            deplist = self._deplist(name, version)
        except RockspecError as e:
            missing[f"{name} {version}"] = str(e)
            return results, missing

        results[name] = version
        matched, failures = self._match_deps(deplist, manifest, deps_mode)
        for dep, found in matched:
            self.scan(manifest, dep.name, found, deps_mode, results, missing)
        for failure in failures:
            missing[str(failure)] = "failed"
        return results, missing

    def _deplist(self, name: str, version: str) -> Tuple[Dependency, ...]:
        key = (name, version)
        if key not in self._deplists:
            candidates = [self.config.tree(root).rockspec_file(name, version) for root in self._roots()]
            pathname = next((p for p in candidates if p.exists()), candidates[0])
            self._deplists[key] = load_local_rockspec(pathname).dependencies
        return self._deplists[key]

    def _roots(self) -> List[Path]:
        roots = [Path(self.config.root_dir)]
        roots.extend(Path(root) for root in self.config.trees if Path(root) not in roots)
        return roots

    def _installed_versions(self, name: str, manifest: Manifest, deps_mode: str) -> List[str]:
        if deps_mode == "none":
            return []
        manifests = [manifest]
        for tree in self.config.trees_for_mode(deps_mode):
            try:
                manifests.append(self.loader.load_local_manifest(tree.rocks_dir))
            except ManifestLoadError as e:
                logger.debug(f"Skipping tree {tree.root}: {e}")
        versions = []
        for source in manifests:
            for version, entries in source.repository.get(name, {}).items():
                if version not in versions and any(entry.is_installed for entry in entries):
                    versions.append(version)
        return versions

    def _match_dep(self, dep: Dependency, manifest: Manifest, deps_mode: str) -> Optional[str]:
        if dep.name == "lua":
            candidates = [self.config.lua_version]
        else:
            candidates = self._installed_versions(dep.name, manifest, deps_mode)
        best = None
        for candidate in candidates:
            if match_constraints(candidate, dep.constraints):
                if best is None or compare_versions(candidate, best):
                    best = candidate
        return best

    def _match_deps(
        self, deplist: Tuple[Dependency, ...], manifest: Manifest, deps_mode: str
    ) -> Tuple[List[Tuple[Dependency, str]], List[Dependency]]:
        matched, failures = [], []
        for dep in deplist:
            found = self._match_dep(dep, manifest, deps_mode)
            if found is None:
                failures.append(dep)
            elif dep.name != "lua":
                matched.append((dep, found))
        return matched, failures
