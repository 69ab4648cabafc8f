"""Python <-> Lua value converters."""

from luabridge.convert.from_lua import FromLua
from luabridge.convert.to_lua import ToLua

__all__ = ['FromLua', 'ToLua']
