"""
luabridge - typed value conversion between Python and Lua (lupa).

    from luabridge import LuaBridge, Ref

    bridge = LuaBridge.open()
    bridge.register('', {'scale': lambda v, k: [x * k for x in v]})
    dest = Ref(hint=list[int])
    bridge.lua_to_py(bridge.eval('{1, 2, 3}'), dest)
"""

from luabridge.bridge import FunctionBridge, raw_function
from luabridge.config import BridgeConfig, load_config
from luabridge.errors import BridgeError, ConversionDepthError, LuaToPyError, NotADestinationError
from luabridge.fields import lua_field
from luabridge.lua.engine import LuaBridge, new_state
from luabridge.lua.proxy import LuaObject
from luabridge.register import register
from luabridge.types import Null, Ref

__all__ = [
    'LuaBridge', 'new_state', 'register', 'FunctionBridge', 'raw_function',
    'BridgeConfig', 'load_config',
    'BridgeError', 'LuaToPyError', 'NotADestinationError', 'ConversionDepthError',
    'lua_field', 'LuaObject', 'Null', 'Ref',
]
