"""Filesystem helpers: checksums, tree listing, atomic replace, archives."""
import contextlib
import hashlib
import logging
import os
import shutil
import zipfile
from pathlib import Path
from typing import Iterator, List, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def md5_file(path: PathLike) -> str:
    """Return the hex MD5 digest of a file's content.

    Raises:
        OSError: If the file cannot be read
    """
    h = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def find_files(root: PathLike) -> List[str]:
    """List every file and directory under root.

    Returns:
        Sorted list of POSIX paths relative to root
    """
    root = Path(root)
    return sorted(path.relative_to(root).as_posix() for path in root.rglob("*"))


def replace_file(target: PathLike, source: PathLike) -> None:
    """Atomically move source over target (same directory)."""
    os.replace(source, target)


def delete(path: PathLike) -> None:
    """Remove a file or a directory tree; missing paths are ignored."""
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


@contextlib.contextmanager
def pushd(directory: PathLike) -> Iterator[Path]:
    """Change into directory and restore the previous working directory."""
    previous = os.getcwd()
    os.chdir(directory)
    try:
        yield Path(directory)
    finally:
        os.chdir(previous)


def unzip(archive: PathLike) -> bool:
    """Extract archive into the current directory.

    Returns:
        True on success, False if the archive is unreadable
    """
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(".")
        return True
    except (zipfile.BadZipFile, OSError) as e:
        logger.warning(f"Failed to extract {archive}: {e}")
        return False


def zip_file(archive: PathLike, *files: PathLike) -> None:
    """Create archive containing files, stored under their base names."""
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for file in files:
            zf.write(file, arcname=Path(file).name)
