"""Manifest loader: resolve a local or remote repository to a Manifest."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import httpx

from rock_index.core import fs
from rock_index.core.config import RocksConfig
from rock_index.core.errors import ExtractionError, FetchError, ManifestLoadError, PersistError
from rock_index.core.paths import MANIFEST_FILENAME
from rock_index.manifest.cache import ManifestCache
from rock_index.manifest.persist import load_table
from rock_index.manifest.schemas import Manifest
from rock_index.repo.fetcher import cache_dir_name, fetch_url

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".zip",)


def split_url(location: str) -> Tuple[str, str]:
    """Split a repository location into (protocol, path).

    Plain paths and file:// URLs are reported with protocol "file".
    """
    if "://" in location:
        protocol, rest = location.split("://", 1)
        if protocol == "file":
            return "file", rest
        return protocol, location
    return "file", location


def manifest_filenames(lua_version: str) -> List[str]:
    """Candidate manifest file names, most specific first."""
    return [
        f"{MANIFEST_FILENAME}-{lua_version}.zip",
        f"{MANIFEST_FILENAME}-{lua_version}",
        MANIFEST_FILENAME,
    ]


class ManifestLoader:
    """Resolves repositories to manifests through a ManifestCache.

    Lookup order: in-process cache, then local disk (or, for remote
    repositories, a fetch into the local cache directory).
    """

    def __init__(
        self,
        config: RocksConfig,
        cache: Optional[ManifestCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else ManifestCache()
        self.transport = transport

    def cache_manifest(self, location: Union[str, Path], lua_version: Optional[str], manifest: Manifest) -> None:
        self.cache.put(location, lua_version or self.config.lua_version, manifest)

    def discard_manifest(self, location: Union[str, Path], lua_version: Optional[str]) -> None:
        self.cache.discard(location, lua_version or self.config.lua_version)

    def load_local_manifest(self, rocks_dir: Union[str, Path]) -> Manifest:
        """Load the manifest of a local rocks directory."""
        return self.load_manifest(str(rocks_dir))

    def load_manifest(self, location: Union[str, Path], lua_version: Optional[str] = None) -> Manifest:
        """Load a local or remote manifest describing a repository.

        Args:
            location: URL or pathname of the repository
            lua_version: Lua version in "5.x" format, defaults to the configured one

        Returns:
            The repository's Manifest

        Raises:
            ManifestLoadError: With ``code`` set to the reason, e.g.
                "not_found", "network", "open", "load" or "extract"
        """
        location = str(location)
        lua_version = lua_version or self.config.lua_version

        cached = self.cache.get(location, lua_version)
        if cached is not None:
            return cached

        filenames = manifest_filenames(lua_version)
        protocol, repodir = split_url(location)
        if protocol == "file":
            candidates = [Path(repodir) / filename for filename in filenames]
            pathname = next((p for p in candidates if p.exists()), None)
            if pathname is None:
                raise ManifestLoadError(f"No manifest found in {repodir}", code="not_found")
        else:
            pathname, error = None, None
            for filename in filenames:
                try:
                    pathname = self._fetch_manifest_from(location, filename)
                    break
                except FetchError as e:
                    error = e
            if pathname is None:
                raise ManifestLoadError(str(error), code=error.code)

        if pathname.name.endswith(ARCHIVE_SUFFIXES):
            pathname = self._extract(pathname)

        return self._read(pathname, location, lua_version)

    def _fetch_manifest_from(self, repo_url: str, filename: str) -> Path:
        url = f"{repo_url.rstrip('/')}/{filename}"
        cache_dir = Path(self.config.local_cache) / cache_dir_name(repo_url)
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"Failed creating temporary cache directory {cache_dir}: {e}", code="cache")
        try:
            return fetch_url(url, cache_dir / filename, timeout=self.config.fetch_timeout, transport=self.transport)
        except FetchError as e:
            raise FetchError(f"Failed fetching manifest for {repo_url} - {e}", code=e.code)

    def _extract(self, pathname: Path) -> Path:
        """Unpack <name>.zip next to itself and return the path of <name>."""
        pathname = pathname.absolute()
        suffix = next(s for s in ARCHIVE_SUFFIXES if pathname.name.endswith(s))
        unpacked = pathname.with_name(pathname.name[: -len(suffix)])
        with fs.pushd(pathname.parent):
            fs.delete(unpacked)
            ok = fs.unzip(pathname)
        if not ok:
            fs.delete(pathname)
            fs.delete(unpacked)
            raise ExtractionError("Failed extracting manifest file", code="extract")
        return unpacked

    def _read(self, pathname: Path, location: str, lua_version: str) -> Manifest:
        try:
            manifest = load_table(pathname, Manifest)
        except PersistError as e:
            raise ManifestLoadError(f"Failed loading manifest for {location}: {e}", code=e.code)
        self.cache.put(location, lua_version, manifest)
        logger.debug(f"Loaded manifest {pathname}")
        return manifest
