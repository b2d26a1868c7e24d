"""Tests for rockspec reading and deploy path conversion."""
import pytest

from rock_index.core.errors import RockspecError
from rock_index.core.paths import path_to_module
from rock_index.deps.rockspec import load_local_rockspec, parse_rockspec

ROCKSPEC = """
package = "LuaSocket"
version = "3.0-1"
-- dependencies = { "commented >= 1" }
--[[
dependencies = { "also-commented" }
]]
source = {
   url = "git://github.com/lunarmodules/luasocket.git",
}
dependencies = {
   "lua >= 5.1",
   'copas ~> 2.0',
}
build = {
   type = "builtin",
}
"""


def test_parse_rockspec():
    rockspec = parse_rockspec(ROCKSPEC)

    assert rockspec.package == "luasocket"
    assert rockspec.version == "3.0-1"
    assert [str(dep) for dep in rockspec.dependencies] == ["lua >= 5.1", "copas ~> 2.0"]


def test_parse_rockspec_without_dependencies():
    rockspec = parse_rockspec('package = "x"\nversion = "1.0-1"\n')
    assert rockspec.dependencies == ()


def test_parse_rockspec_requires_identity():
    with pytest.raises(RockspecError) as excinfo:
        parse_rockspec('version = "1.0-1"\n')
    assert excinfo.value.code == "load"


def test_invalid_dependency(tmp_path):
    with pytest.raises(RockspecError):
        parse_rockspec('package = "x"\nversion = "1.0-1"\ndependencies = { "lua >= ??" }\n')


def test_load_missing_rockspec(tmp_path):
    with pytest.raises(RockspecError) as excinfo:
        load_local_rockspec(tmp_path / "x-1.0-1.rockspec")
    assert excinfo.value.code == "open"


@pytest.mark.parametrize(
    "path,module",
    [
        ("socket.lua", "socket"),
        ("socket/http.lua", "socket.http"),
        ("foo/init.lua", "foo"),
        ("socket/core.so", "socket.core"),
        ("README", "README"),
    ],
)
def test_path_to_module(path, module):
    assert path_to_module(path) == module


def test_path_to_module_custom_lib_extension():
    assert path_to_module("socket/core.dll", lib_extension="dll") == "socket.core"
