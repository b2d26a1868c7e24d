"""Repository access: remote fetching and directory scanning."""
from rock_index.repo.fetcher import cache_dir_name, fetch_url
from rock_index.repo.search import disk_search, parse_name
from rock_index.core.errors import FetchError

__all__ = [
    "FetchError",
    "cache_dir_name",
    "disk_search",
    "fetch_url",
    "parse_name",
]
