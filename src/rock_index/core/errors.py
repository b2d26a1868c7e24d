"""Core exception types for rock-index."""
from pathlib import Path
from typing import Optional, Union


class RockIndexError(Exception):
    """Base exception for all rock-index errors.

    ``code`` is an optional machine-readable reason (for example
    ``"not_found"``) that callers may branch on instead of the message.
    """

    def __init__(self, message: str = "", code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class ConfigError(RockIndexError):
    """Raised when a configuration file is missing or invalid."""
    pass


class InvalidVersionError(RockIndexError, ValueError):
    """Raised when a version string cannot be parsed."""
    pass


class RockspecError(RockIndexError):
    """Raised when a rockspec cannot be read or parsed."""
    pass


class PersistError(RockIndexError):
    """Raised when a table cannot be loaded from or saved to disk."""
    pass


class ChecksumError(RockIndexError):
    """Raised when a file checksum cannot be computed."""

    def __init__(self, message: str, path: Union[str, Path]) -> None:
        super().__init__(message, code="checksum")
        self.path = Path(path)


class RockManifestNotFoundError(RockIndexError):
    """Raised when an installed package has no loadable rock_manifest."""
    pass


class RepositoryAccessError(RockIndexError):
    """Raised when a repository directory cannot be accessed."""
    pass


class FetchError(RockIndexError):
    """Raised when a remote file cannot be fetched."""
    pass


class ManifestLoadError(RockIndexError):
    """Raised when a manifest cannot be resolved or loaded."""
    pass


class ExtractionError(ManifestLoadError):
    """Raised when a manifest archive cannot be extracted."""
    pass


class UntrackedFileError(RockIndexError):
    """Raised when no manifest tracks a deployed file."""

    def __init__(self, message: str = "untracked") -> None:
        super().__init__(message, code="untracked")
