"""
Helper table installed into Lua by LuaBridge.open().

Gives scripts access to the parts of the bridge they cannot express in
plain Lua:

    local t = luabridge.unproxify(point)     -- copy a proxied value into tables
    print(luabridge.type(point))             -- "geometry.Point"
    local q = luabridge.chan(4)              -- queue.Queue(4)
    local m = luabridge.map()                -- empty dict proxy
    local get = luabridge.method(m, 'get')   -- method shadowed by item access
    local s = luabridge.slice(3)             -- [None, None, None] proxy
    local z = luabridge.complex(1, 2)        -- (1+2j)
    t[1] = luabridge.null                    -- Null: a hole that survives in tables

The global pairs and ipairs are replaced so loops work over proxies and
strings as well as tables:

    for i, v in ipairs(values) do ... end    -- 1-based, like a table
    for k, v in pairs(player) do ... end     -- struct fields by Lua name
"""

import queue
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Tuple

from luabridge.bridge import raw_function
from luabridge.fields import field_mapping
from luabridge.logging import get_logger
from luabridge.lua.proxy import unwrap_proxy
from luabridge.lua.vm import LuaKind, lua_kind
from luabridge.register import register
from luabridge.types import Kind, Null, classify, type_name

if TYPE_CHECKING:
    from luabridge.lua.engine import LuaBridge

log = get_logger('lua')

# Values the replacement pairs/ipairs iterate themselves; tables and raw
# userdata go to the native functions
_ITERABLE = (LuaKind.PROXY, LuaKind.STRING)


class HelpersAPI:
    """
    Functions exposed to Lua under the helper table.

    Most helpers go through the function bridge like any registered
    callable; unproxify, type, pairs and ipairs are raw so that they see
    the value exactly as Lua passed it.
    """

    def __init__(self, bridge: 'LuaBridge'):
        self._bridge = bridge
        self._native_pairs = None
        self._native_ipairs = None

    def register_api(self, namespace: str) -> Any:
        """Install the helpers under the global table `namespace`.

        Also replaces the global pairs and ipairs.
        """
        lua_globals = self._bridge.globals()
        self._native_pairs = lua_globals.pairs
        self._native_ipairs = lua_globals.ipairs
        register(self._bridge, '', {
            'pairs': self.pairs,
            'ipairs': self.ipairs,
        })
        return register(self._bridge, namespace, {
            'null': Null,
            'unproxify': self.unproxify,
            'type': self.proxy_type,
            'method': self.method,
            'chan': self.chan,
            'complex': self.complex,
            'map': self.map,
            'slice': self.slice,
            'log': self.log,
        })

    # =========================================================================
    # Proxies
    # =========================================================================

    @raw_function
    def unproxify(self, value: Any) -> Any:
        """Copy a proxied value into Lua tables; other values pass through."""
        if lua_kind(value) is not LuaKind.PROXY:
            return value
        return self._bridge.to_lua(unwrap_proxy(value)[0])

    @raw_function
    def proxy_type(self, value: Any) -> Any:
        """Qualified Python type name of a proxy, or the Lua type name."""
        kind = lua_kind(value)
        if kind is not LuaKind.PROXY:
            return self._bridge.vm.string(kind.value)
        tp = unwrap_proxy(value)[1]
        if tp.__module__ == 'builtins':
            return self._bridge.vm.string(tp.__qualname__)
        return self._bridge.vm.string(f"{tp.__module__}.{tp.__qualname__}")

    def method(self, value: Any, name: str) -> Any:
        """The method `name` of a proxied value.

        Reaches methods that indexing cannot, such as those of mapping and
        sequence proxies, where `m.get` reads the item 'get'.
        """
        if name.startswith('_') and self._bridge.config.filter_private_attributes:
            raise AttributeError(f"Access to private attribute {name} is blocked")
        bound = getattr(value, name, None)
        if not callable(bound):
            raise AttributeError(f"{type_name(type(value))} has no method {name!r}")
        return bound

    # =========================================================================
    # Iteration
    # =========================================================================

    @raw_function
    def pairs(self, value: Any) -> Any:
        """pairs() that also walks proxies and strings.

        Sequences and strings give 1-based indices, mappings their keys,
        structs their fields by Lua name.
        """
        if lua_kind(value) not in _ITERABLE:
            return self._native_pairs(value)
        return self._iterator(self._items(value, ordered=False))

    @raw_function
    def ipairs(self, value: Any) -> Any:
        """ipairs() that also walks sequence proxies and strings, from 1."""
        if lua_kind(value) not in _ITERABLE:
            return self._native_ipairs(value)
        return self._iterator(self._items(value, ordered=True))

    def _items(self, value: Any, ordered: bool) -> Iterator[Tuple[Any, Any]]:
        obj, tp = unwrap_proxy(value)
        kind = classify(obj)
        if kind in (Kind.STRING, Kind.BYTES):
            return enumerate((obj[i:i + 1] for i in range(len(obj))), start=1)
        if kind in (Kind.ARRAY, Kind.SEQUENCE):
            return enumerate(obj, start=1)
        if ordered:
            raise TypeError(f"cannot ipairs over {type_name(tp)}")
        if kind is Kind.MAPPING:
            return iter(list(obj.items()))
        if kind is Kind.STRUCT:
            return ((spec.lua_name, getattr(obj, spec.attr)) for spec in field_mapping(tp))
        raise TypeError(f"cannot pairs over {type_name(tp)}")

    def _iterator(self, items: Iterator[Tuple[Any, Any]]) -> Tuple[Any, None, None]:
        """Generic-for triple stepping through `items`."""
        to_lua = self._bridge.to_lua_proxy

        def step(*_):
            pair = next(items, None)
            if pair is None:
                return None
            key, item = pair
            return to_lua(key), to_lua(item)

        return step, None, None

    # =========================================================================
    # Constructors
    # =========================================================================

    def chan(self, capacity: int = 0) -> queue.Queue:
        return queue.Queue(capacity)

    def complex(self, real: float = 0.0, imag: float = 0.0) -> complex:
        return complex(real, imag)

    def map(self) -> Dict[Any, Any]:
        return {}

    def slice(self, size: int = 0) -> List[Any]:
        if size < 0:
            raise ValueError(f"negative slice size {size}")
        return [None] * size

    # =========================================================================
    # Debug
    # =========================================================================

    def log(self, message: str) -> None:
        """Log a message from a script."""
        log.info("%s", message)
