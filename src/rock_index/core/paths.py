"""Rocks tree layout: where packages are installed and deployed."""
from dataclasses import dataclass
from pathlib import Path

ROCK_MANIFEST_FILENAME = "rock_manifest"
MANIFEST_FILENAME = "manifest"


@dataclass(frozen=True)
class RocksTree:
    """Directory layout of one rocks tree.

    Examples (root=/usr/local, lua_version=5.1):
        rocks_dir      -> /usr/local/lib/luarocks/rocks
        deploy_lua_dir -> /usr/local/share/lua/5.1
        deploy_lib_dir -> /usr/local/lib/lua/5.1
        deploy_bin_dir -> /usr/local/bin
    """

    root: Path
    lua_version: str = "5.1"

    @property
    def rocks_dir(self) -> Path:
        return Path(self.root) / "lib" / "luarocks" / "rocks"

    @property
    def deploy_lua_dir(self) -> Path:
        return Path(self.root) / "share" / "lua" / self.lua_version

    @property
    def deploy_lib_dir(self) -> Path:
        return Path(self.root) / "lib" / "lua" / self.lua_version

    @property
    def deploy_bin_dir(self) -> Path:
        return Path(self.root) / "bin"

    @property
    def manifest_file(self) -> Path:
        return self.rocks_dir / MANIFEST_FILENAME

    def install_dir(self, name: str, version: str) -> Path:
        return self.rocks_dir / name / version

    def rock_manifest_file(self, name: str, version: str) -> Path:
        return self.install_dir(name, version) / ROCK_MANIFEST_FILENAME

    def rockspec_file(self, name: str, version: str) -> Path:
        return self.install_dir(name, version) / f"{name}-{version}.rockspec"


def path_to_module(file: str, lua_extension: str = "lua", lib_extension: str = "so") -> str:
    """Convert a deploy-relative POSIX path into a module name.

    Examples:
        socket/http.lua -> socket.http
        foo/init.lua    -> foo
        socket/core.so  -> socket.core
    """
    lua_suffix = f".{lua_extension}"
    lib_suffix = f".{lib_extension}"
    if file.endswith(lua_suffix) and len(file) > len(lua_suffix):
        name = file[: -len(lua_suffix)].replace("/", ".")
        if name.endswith(".init"):
            name = name[: -len(".init")]
    elif file.endswith(lib_suffix) and len(file) > len(lib_suffix):
        name = file[: -len(lib_suffix)].replace("/", ".")
    else:
        name = file
    return name.strip(".")
