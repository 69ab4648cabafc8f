"""
Lua VM primitives used by the conversion engine.

Wraps a lupa LuaRuntime and a small Lua helper chunk providing what lupa
does not expose directly:
- table identity (the address-like key used for cycle tracking)
- table emptiness
- the fallible-call trampoline that turns a failed bridged call into a
  Lua error raised at the caller's source position
"""

import enum
from typing import Any, Optional, Union

import lupa
from lupa import LuaRuntime

from luabridge.config import BridgeConfig
from luabridge.tracker import CycleTracker


_HELPERS_LUA = """
local rawget, rawset, next, error = rawget, rawset, next, error
local unpack = table.unpack or unpack
local counter = 0

local function identity(ids, t)
    local id = rawget(ids, t)
    if id == nil then
        counter = counter + 1
        id = counter
        rawset(ids, t, id)
    end
    return id
end

local function is_empty(t)
    return next(t) == nil
end

-- call returns {true, n = count, ...results} or {false, message}
local function fallible(call)
    return function(...)
        local res = call(...)
        if not res[1] then
            error(res[2], 2)
        end
        return unpack(res, 2, res.n + 1)
    end
end

return identity, is_empty, fallible
"""


class LuaKind(enum.Enum):
    """Dynamic kind of a value received from Lua.

    Values are Lua type names; PROXY is a Python object that lupa
    unwrapped from its userdata.
    """
    NIL = 'nil'
    BOOLEAN = 'boolean'
    NUMBER = 'number'
    STRING = 'string'
    TABLE = 'table'
    FUNCTION = 'function'
    USERDATA = 'userdata'
    THREAD = 'thread'
    PROXY = 'proxy'


_LUA_TYPES = {
    'table': LuaKind.TABLE,
    'function': LuaKind.FUNCTION,
    'userdata': LuaKind.USERDATA,
    'thread': LuaKind.THREAD,
}


def lua_kind(value: Any) -> LuaKind:
    """Classify a value as lupa hands it to Python."""
    if value is None:
        return LuaKind.NIL
    tp = type(value)
    if tp is bool:
        return LuaKind.BOOLEAN
    if tp is int or tp is float:
        return LuaKind.NUMBER
    if tp is str or tp is bytes:
        return LuaKind.STRING
    kind = _LUA_TYPES.get(lupa.lua_type(value))
    if kind is not None:
        return kind
    return LuaKind.PROXY


def lua_type_name(value: Any, kind: Optional[LuaKind] = None) -> str:
    """Name of a Lua value's type for error messages.

    Proxies are named after the Python type they wrap.
    """
    kind = kind or lua_kind(value)
    if kind is LuaKind.PROXY:
        return type(value).__qualname__
    return kind.value


def _lua_attribute_filter(obj, attr_name, is_setting):
    """Attribute filter for proxied Python objects.

    Blocks access to dunder attributes (__class__, __dict__, ...) and
    private attributes (_internal, _cache, ...). Methods stay reachable:
    proxies exist to keep them callable from Lua.
    """
    if attr_name.startswith('__'):
        raise AttributeError(f'Access to {attr_name} is blocked')
    if attr_name.startswith('_'):
        raise AttributeError(f'Access to private attribute {attr_name} is blocked')
    return attr_name


def create_runtime(config: BridgeConfig) -> LuaRuntime:
    """Create a LuaRuntime configured for the bridge."""
    kwargs = dict(
        encoding=config.encoding,
        register_eval=config.register_eval,
        register_builtins=config.register_builtins,
        unpack_returned_tuples=True,
    )
    if config.filter_private_attributes:
        kwargs['attribute_filter'] = _lua_attribute_filter
    return LuaRuntime(**kwargs)


class LuaVM:
    """The Lua runtime plus the helper functions the converters need."""

    def __init__(self, runtime: LuaRuntime, encoding: Optional[str] = 'UTF-8'):
        self.runtime = runtime
        self.encoding = encoding
        self._identity, self._is_empty, self._fallible = runtime.execute(_HELPERS_LUA)

    def table(self) -> Any:
        """Create an empty Lua table."""
        return self.runtime.table()

    def globals(self) -> Any:
        return self.runtime.globals()

    def string(self, text: str) -> Union[str, bytes]:
        """`text` in the form the runtime pushes as a Lua string.

        A runtime without an encoding pushes str as a Python object, so
        text is handed to it as UTF-8 bytes.
        """
        if self.encoding is None:
            return text.encode('utf-8')
        return text

    def is_empty(self, table: Any) -> bool:
        """True if the table has no entries at all (array or hash part)."""
        return bool(self._is_empty(table))

    def length(self, table: Any) -> int:
        """Raw length of the table's sequence part (#t)."""
        return len(table)

    def table_tracker(self) -> CycleTracker:
        """Open a tracker keyed by Lua table identity.

        The identity table is anchored by the tracker and released when
        it is closed.
        """
        ids = self.runtime.table()
        identity = self._identity
        return CycleTracker(identity=lambda t: identity(ids, t), anchor=ids)

    def fallible(self, call) -> Any:
        """Wrap a Python result-record function as a Lua function.

        `call` must return a Lua table {true, n=count, ...} on success or
        {false, message} on failure; failures are raised as Lua errors
        positioned at the calling script line.
        """
        return self._fallible(call)

    def result_record(self, values) -> Any:
        """Build the success record for fallible(); `values` are Lua-ready."""
        record = self.runtime.table()
        record[1] = True
        for i, value in enumerate(values, start=2):
            record[i] = value
        record[self.string('n')] = len(values)
        return record

    def error_record(self, message: str) -> Any:
        """Build the failure record for fallible()."""
        record = self.runtime.table()
        record[1] = False
        record[2] = self.string(message)
        return record
