"""
Python -> Lua conversion.

Every Python value is either copied into a Lua-native value (numbers,
strings, tables) or wrapped in a proxy. In copy mode composites are always
copied; in proxy mode composites with identity are proxied, and scalars are
proxied only when their type is a named variant of a primitive (plain
primitives have no methods worth preserving).
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Sequence

from luabridge.errors import ConversionDepthError
from luabridge.fields import field_mapping
from luabridge.logging import get_logger
from luabridge.lua.proxy import Capability, LuaObject, SequenceProxy, make_proxy
from luabridge.tracker import MISSING, CycleTracker
from luabridge.types import Kind, Null, Ref, classify, is_named, is_value_struct

if TYPE_CHECKING:
    from luabridge.lua.engine import LuaBridge

log = get_logger('to_lua')


class ToLua:
    """Host -> script converter bound to one LuaBridge."""

    def __init__(self, bridge: 'LuaBridge'):
        self._bridge = bridge
        self._vm = bridge.vm
        self._max_depth = bridge.config.max_depth
        self._handlers: Dict[Kind, Callable] = {
            Kind.BOOL: self._bool,
            Kind.INT: self._number,
            Kind.FLOAT: self._number,
            Kind.STRING: self._string,
            Kind.BYTES: self._string,
            Kind.COMPLEX: self._complex,
            Kind.ARRAY: self._array,
            Kind.SEQUENCE: self._sequence,
            Kind.MAPPING: self._mapping,
            Kind.STRUCT: self._struct,
            Kind.CHANNEL: self._channel,
            Kind.CALLABLE: self._callable,
            Kind.LUA: self._lua,
            Kind.OTHER: self._other,
        }

    def convert(self, value: Any, proxy: bool = False) -> Any:
        """Convert a value for Lua, with a tracker scoped to this call.

        Returns something lupa pushes as the intended Lua value: a primitive,
        a Lua table/function, or a proxy wrapper.
        """
        with CycleTracker() as visited:
            return self._convert(value, proxy, visited, 0)

    def _convert(self, value: Any, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        if value is None:
            return None
        if depth > self._max_depth:
            raise ConversionDepthError(self._max_depth, 'Python to Lua')

        # Follow references, remembering that the value was addressable
        by_ref = False
        while isinstance(value, Ref):
            by_ref = True
            value = value.value
            if value is None:
                return None

        # A sequence view read back from Lua stands for its sequence
        if isinstance(value, SequenceProxy):
            value = value.target

        # Null only has meaning as an identity
        if value is Null:
            return make_proxy(Null, Capability.INTERFACE)

        kind = classify(value)
        log.trace("%s %s (proxy=%s, by_ref=%s)", kind.value, type(value).__qualname__, proxy, by_ref)
        return self._handlers[kind](value, by_ref, proxy, visited, depth)

    # =========================================================================
    # Scalars
    # =========================================================================

    def _bool(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        return bool(value)

    def _number(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        if proxy and is_named(value):
            return make_proxy(value, Capability.NUMBER)
        return int(value) if isinstance(value, int) else float(value)

    def _string(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        if proxy and is_named(value):
            return make_proxy(value, Capability.STRING)
        if isinstance(value, str):
            return self._vm.string(str.__str__(value))
        return bytes(value)

    def _complex(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        # Lua has no complex numbers
        return make_proxy(value, Capability.COMPLEX)

    # =========================================================================
    # Composites
    # =========================================================================

    def _array(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        # Tuples are values: only proxied when addressed through a Ref
        if by_ref and proxy:
            return make_proxy(value, Capability.SEQUENCE)
        if by_ref:
            seen = visited.lookup(value)
            if seen is not MISSING:
                return seen
        return self._copy_sequence(value, value if by_ref else None, visited, depth)

    def _sequence(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        seen = visited.lookup(value)
        if seen is not MISSING:
            return seen
        if proxy:
            return make_proxy(value, Capability.SEQUENCE)
        return self._copy_sequence(value, value, visited, depth)

    def _copy_sequence(self, items: Sequence, identity: Optional[Any], visited: CycleTracker, depth: int) -> Any:
        table = self._vm.table()
        # Mark before recursing so self-references resolve to this table.
        # Empty composites are never recorded.
        if identity is not None and len(items):
            visited.mark(identity, table)
        for i, item in enumerate(items, start=1):
            if item is None:
                item = Null
            table[i] = self._convert(item, False, visited, depth + 1)
        return table

    def _mapping(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        seen = visited.lookup(value)
        if seen is not MISSING:
            return seen
        if proxy:
            return make_proxy(value, Capability.MAPPING)

        table = self._vm.table()
        if len(value):
            visited.mark(value, table)
        for key, item in value.items():
            # Keys are always proxied so named keys keep their identity
            lua_key = self._convert(Null if key is None else key, True, visited, depth + 1)
            table[lua_key] = self._convert(Null if item is None else item, proxy, visited, depth + 1)
        return table

    def _struct(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        addressable = by_ref or not is_value_struct(value)
        if proxy and addressable:
            if isinstance(value, BaseException):
                return self._vm.string(str(value))
            return make_proxy(value, Capability.STRUCT)

        if addressable:
            seen = visited.lookup(value)
            if seen is not MISSING:
                return seen

        fields = field_mapping(type(value))
        table = self._vm.table()
        if addressable and len(fields):
            visited.mark(value, table)
        for spec in fields:
            # None fields keep their key, so they do not read back as defaults
            item = getattr(value, spec.attr)
            if item is None:
                item = Null
            table[self._vm.string(spec.lua_name)] = self._convert(item, False, visited, depth + 1)
        return table

    # =========================================================================
    # Everything else
    # =========================================================================

    def _channel(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        return make_proxy(value, Capability.CHANNEL)

    def _callable(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        return self._bridge.functions.wrap(value)

    def _lua(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        if isinstance(value, LuaObject):
            return value.handle
        return value

    def _other(self, value: Any, by_ref: bool, proxy: bool, visited: CycleTracker, depth: int) -> Any:
        if isinstance(value, BaseException):
            return self._vm.string(str(value))
        return make_proxy(value, Capability.INTERFACE)
