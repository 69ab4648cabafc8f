"""
Lua side of the bridge.

Provides the runtime-facing pieces of the conversion engine:
- LuaBridge, owning one lupa runtime and the converters bound to it
- Proxy handles and LuaObject for values that stay opaque
- The helper table installed by LuaBridge.open()
"""

from luabridge.lua.api import HelpersAPI
from luabridge.lua.engine import LuaBridge, new_state
from luabridge.lua.proxy import Capability, LuaObject, SequenceProxy, is_proxy, make_proxy, unwrap_proxy
from luabridge.lua.vm import LuaKind, LuaVM, create_runtime, lua_kind

__all__ = [
    'LuaBridge', 'new_state', 'HelpersAPI',
    'Capability', 'LuaObject', 'SequenceProxy', 'is_proxy', 'make_proxy', 'unwrap_proxy',
    'LuaKind', 'LuaVM', 'create_runtime', 'lua_kind',
]
