"""Manifest data model and caches."""
from rock_index.manifest.cache import ManifestCache, RockManifestCache
from rock_index.manifest.schemas import (
    EntryRecord,
    Manifest,
    Provider,
    RockManifest,
    SearchEntry,
    SearchResults,
)

__all__ = [
    "EntryRecord",
    "Manifest",
    "ManifestCache",
    "Provider",
    "RockManifest",
    "RockManifestCache",
    "SearchEntry",
    "SearchResults",
]
