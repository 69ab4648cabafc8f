"""
Proxy handles over lupa's Python-object userdata.

A proxy is an opaque Lua value wrapping a Python object by identity. Its
capability selects how Lua indexing dispatches on it: item access for
sequences and mappings, attribute access for everything else. Sequences
are indexed from 1 like Lua tables, through a SequenceProxy view; when a
proxy comes back to Python, unwrap_proxy() returns the wrapped object.
"""

import enum
from typing import Any, Optional, Tuple

import lupa


class Capability(enum.Enum):
    """Method-dispatch behavior attached to a proxy."""
    NUMBER = 'number'
    STRING = 'string'
    COMPLEX = 'complex'
    SEQUENCE = 'sequence'
    MAPPING = 'mapping'
    STRUCT = 'struct'
    CHANNEL = 'channel'
    INTERFACE = 'interface'


class SequenceProxy:
    """1-based item access over a Python sequence.

    Reads outside the sequence give nil, as they do on a Lua table.
    Writing one past the end appends.
    """

    __slots__ = ('target',)

    def __init__(self, target: Any):
        self.target = target

    @staticmethod
    def _position(key: Any) -> Optional[int]:
        if isinstance(key, float) and key.is_integer():
            key = int(key)
        if isinstance(key, int) and not isinstance(key, bool) and key >= 1:
            return key - 1
        return None

    def __getitem__(self, key: Any) -> Any:
        pos = self._position(key)
        if pos is None or pos >= len(self.target):
            return None
        return self.target[pos]

    def __setitem__(self, key: Any, value: Any) -> None:
        pos = self._position(key)
        if pos is not None and pos == len(self.target):
            self.target.append(value)
        elif pos is not None and pos < len(self.target):
            self.target[pos] = value
        else:
            raise IndexError(f"index {key!r} out of range for sequence of length {len(self.target)}")

    def __repr__(self) -> str:
        return f"SequenceProxy({self.target!r})"


def make_proxy(value: Any, capability: Capability) -> Any:
    """Wrap `value` so it reaches Lua as userdata rather than a native value."""
    if capability is Capability.SEQUENCE:
        return lupa.as_itemgetter(SequenceProxy(value))
    if capability is Capability.MAPPING:
        return lupa.as_itemgetter(value)
    return lupa.as_attrgetter(value)


def is_proxy(value: Any) -> bool:
    """True if a value received from Lua is a proxied Python object."""
    from luabridge.lua.vm import LuaKind, lua_kind
    return lua_kind(value) is LuaKind.PROXY


def unwrap_proxy(value: Any) -> Tuple[Any, type]:
    """The wrapped Python object and its type."""
    if isinstance(value, SequenceProxy):
        value = value.target
    return value, type(value)


class LuaObject:
    """An opaque Lua value held on the Python side.

    Raw Lua userdata (anything not created from a Python object) converts
    to a LuaObject; sending a LuaObject back to Lua pushes the original
    value.
    """

    __slots__ = ('handle',)

    def __init__(self, handle: Any):
        self.handle = handle

    @property
    def lua_type(self) -> str:
        return lupa.lua_type(self.handle) or 'userdata'

    def __repr__(self) -> str:
        return f"LuaObject({self.lua_type})"
