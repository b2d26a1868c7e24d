"""Configuration model for rocks trees, Lua targets and dependency modes."""
import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rock_index.core.errors import ConfigError
from rock_index.core.paths import RocksTree

logger = logging.getLogger(__name__)

DEPS_MODES = ("one", "all", "order", "none")


class RocksConfig(BaseModel):
    """Settings shared by the loader, the builder and the resolver.

    ``rocks_trees`` is ordered by priority, highest first. When empty, the
    only tree considered is ``root_dir``.
    """

    root_dir: Path = Field(default=Path("/usr/local"), description="Root of the current rocks tree")
    rocks_trees: List[Path] = Field(default_factory=list, description="All configured tree roots")
    lua_version: str = Field(default="5.1", description="Lua version of the running interpreter")
    lua_versions: List[str] = Field(
        default_factory=lambda: ["5.1", "5.2", "5.3"],
        description="Lua versions for per-version server manifests",
    )
    deps_mode: str = Field(default="one", description="Default dependency mode")
    local_cache: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "rock-index",
        description="Directory where remote manifests are cached",
    )
    lua_extension: str = Field(default="lua")
    lib_extension: str = Field(default="so")
    fetch_timeout: float = Field(default=30.0, gt=0)

    @field_validator("deps_mode")
    @classmethod
    def validate_deps_mode(cls, v: str) -> str:
        """Ensure deps_mode is one of the known modes."""
        if v not in DEPS_MODES:
            raise ValueError(f"deps_mode must be one of {DEPS_MODES}, got: {v}")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "root_dir": "/home/user/.luarocks",
                "rocks_trees": ["/home/user/.luarocks", "/usr/local"],
                "lua_version": "5.1",
                "lua_versions": ["5.1", "5.2", "5.3"],
                "deps_mode": "one",
                "local_cache": "/home/user/.cache/rock-index",
            }
        }
    )

    @classmethod
    def load(cls, path: Path) -> "RocksConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            data = json.loads(path.read_text())
            return cls.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file {path}: {e}")

    @property
    def trees(self) -> List[Path]:
        return list(self.rocks_trees) or [self.root_dir]

    def tree(self, root: Optional[Path] = None) -> RocksTree:
        return RocksTree(Path(root) if root else self.root_dir, self.lua_version)

    def trees_for_mode(self, deps_mode: str) -> List[RocksTree]:
        """Return the trees a dependency lookup may use under deps_mode.

        "one" is the current tree, "all" every configured tree and "order"
        the current tree plus every tree listed after it.
        """
        if deps_mode == "none":
            return []
        if deps_mode == "all":
            roots = self.trees
        elif deps_mode == "order":
            roots = self.trees
            current = Path(self.root_dir)
            if current in roots:
                roots = roots[roots.index(current):]
            else:
                roots = [current]
        else:
            roots = [self.root_dir]
        return [RocksTree(Path(root), self.lua_version) for root in roots]
