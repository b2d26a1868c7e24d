"""Remote file fetcher and fetch-cache directory naming."""
import hashlib
import logging
import re
from pathlib import Path
from typing import Optional

import httpx

from rock_index.core import fs
from rock_index.core.errors import FetchError

logger = logging.getLogger(__name__)

_RESERVED = re.compile(r"[/\\:*?\"<>|]")


def cache_dir_name(location: str) -> str:
    """Map a repository location to a filesystem-safe directory name.

    Reserved characters become "_"; a short digest of the raw location is
    appended so that locations differing only in reserved characters do not
    share a directory.

    Examples:
        https://rocks.example.org/repo -> https___rocks.example.org_repo-<digest8>
    """
    digest = hashlib.sha256(location.encode()).hexdigest()[:8]
    return f"{_RESERVED.sub('_', location)}-{digest}"


def fetch_url(
    url: str,
    destination: Path,
    timeout: float = 30.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> Path:
    """Download url to destination.

    The body is written to <destination>.part and moved into place once
    complete. No retries.

    Returns:
        destination

    Raises:
        FetchError: code "not_found" for HTTP 404, "http" for other HTTP
            errors, "network" for transport failures
    """
    destination = Path(destination)
    part = destination.with_name(destination.name + ".part")
    logger.info(f"Fetching {url}")
    try:
        with httpx.Client(timeout=timeout, transport=transport, follow_redirects=True) as client:
            response = client.get(url)
    except httpx.HTTPError as e:
        raise FetchError(f"Failed downloading {url}: {e}", code="network")

    if response.status_code == 404:
        raise FetchError(f"File not found: {url}", code="not_found")
    if response.status_code >= 400:
        raise FetchError(f"Failed downloading {url}: HTTP {response.status_code}", code="http")

    try:
        part.write_bytes(response.content)
        fs.replace_file(destination, part)
    except OSError as e:
        fs.delete(part)
        raise FetchError(f"Failed writing {destination}: {e}", code="network")
    return destination
