"""Load and atomically save manifest tables as JSON."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from rock_index.core import fs
from rock_index.core.errors import PersistError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def save_table(where: Union[str, Path], name: str, table: BaseModel) -> Path:
    """Commit a table to <where>/<name>.

    The table is written to a uniquely named <name>.*.tmp file in the same
    directory and then moved over the target, so readers see either the old
    or the new file, never a partial one. Concurrent writers never share a
    temporary file; the last one to replace the target wins.

    Returns:
        Path of the written file

    Raises:
        PersistError: If the file cannot be written
    """
    where = Path(where)
    filename = where / name
    if hasattr(table, "to_json"):
        payload = table.to_json()
    else:
        payload = table.model_dump_json(indent=2)
    tmp_filename = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=where, prefix=f"{name}.", suffix=".tmp", delete=False
        ) as f:
            tmp_filename = Path(f.name)
            f.write(payload)
        os.chmod(tmp_filename, 0o644)
        fs.replace_file(filename, tmp_filename)
    except OSError as e:
        if tmp_filename is not None:
            fs.delete(tmp_filename)
        raise PersistError(f"Failed saving {filename}: {e}", code="save")
    logger.debug(f"Saved {filename}")
    return filename


def load_table(path: Union[str, Path], model: Type[ModelT]) -> ModelT:
    """Load a table previously written by save_table.

    Raises:
        PersistError: code "open" if the file cannot be read,
            code "load" if its content is not a valid table
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PersistError(f"Failed opening {path}: {e}", code="open")
    try:
        return model.model_validate_json(content)
    except ValidationError as e:
        raise PersistError(f"Failed loading {path}: {e}", code="load")
