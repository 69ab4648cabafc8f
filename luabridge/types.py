"""
Value kinds, runtime type descriptors and the Null sentinel.

Both converters dispatch on a closed set of kinds:
- classify(value) gives the kind of a Python value being sent to Lua
- describe(hint) turns a type hint into a TypeDescriptor, the destination
  of a conversion coming back from Lua

Python objects are references; Ref plays the part of an explicit pointer
for values that would otherwise be copied (tuples, NamedTuples) and is the
settable destination of lua_to_py().
"""

import asyncio
import dataclasses
import enum
import queue
import typing
from collections.abc import Callable as AbcCallable
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from functools import lru_cache
from types import UnionType
from typing import Any, Generic, Optional, Tuple, TypeVar, Union

import lupa
from pydantic import BaseModel

T = TypeVar('T')


class Kind(enum.Enum):
    """Closed set of value kinds understood by the converters."""
    NIL = 'nil'
    BOOL = 'bool'
    INT = 'int'
    FLOAT = 'float'
    COMPLEX = 'complex'
    STRING = 'string'
    BYTES = 'bytes'
    ARRAY = 'array'            # tuple
    SEQUENCE = 'sequence'      # list
    MAPPING = 'mapping'        # dict
    STRUCT = 'struct'          # dataclass, pydantic model, NamedTuple
    CHANNEL = 'channel'        # queue
    CALLABLE = 'callable'
    LUA = 'lua'                # value already living in Lua
    REF = 'ref'
    OPTIONAL = 'optional'      # destination only
    DYNAMIC = 'dynamic'        # destination only (Any)
    OTHER = 'other'


class _NullType:
    """Type of Null. There is exactly one instance."""

    _instance: Optional['_NullType'] = None

    def __new__(cls) -> '_NullType':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return 'Null'

    def __reduce__(self):
        return (_NullType, ())


# Stands in for None inside copied containers, where a Lua nil would
# leave a hole. Always proxied; converts back to the zero value.
Null = _NullType()


class Ref(Generic[T]):
    """A mutable reference to a value.

    Sending Ref(x) to Lua treats x as addressable: tuples and NamedTuples
    behind a Ref are proxied instead of copied in proxy mode. As a
    destination, `hint` declares the type lua_to_py() converts into.
    """

    __slots__ = ('value', 'hint')

    def __init__(self, value: Optional[T] = None, hint: Any = None):
        self.value = value
        if hint is None:
            hint = Any if value is None else type(value)
        self.hint = hint

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"


BARE_PRIMITIVES = (bool, int, float, complex, str, bytes)

CHANNEL_TYPES: Tuple[type, ...] = (queue.Queue, queue.SimpleQueue, asyncio.Queue)


def is_named(value: Any) -> bool:
    """True if value's type is a subclass of a primitive, not the primitive itself."""
    return type(value) not in BARE_PRIMITIVES


def is_namedtuple_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, tuple) and hasattr(tp, '_fields')


def is_struct_type(tp: Any) -> bool:
    if not isinstance(tp, type):
        return False
    return (
        dataclasses.is_dataclass(tp)
        or issubclass(tp, BaseModel)
        or is_namedtuple_type(tp)
    )


def is_value_struct(value: Any) -> bool:
    """Struct-like values with value semantics (copied unless behind a Ref)."""
    return is_namedtuple_type(type(value))


def is_lua_object(value: Any) -> bool:
    """True for lupa wrappers of Lua tables, functions, userdata and threads."""
    from luabridge.lua.proxy import LuaObject
    return isinstance(value, LuaObject) or lupa.lua_type(value) is not None


def classify(value: Any) -> Kind:
    """Kind of a Python value about to be sent to Lua."""
    if value is None:
        return Kind.NIL
    if isinstance(value, Ref):
        return Kind.REF
    if isinstance(value, bool):
        return Kind.BOOL
    if isinstance(value, int):
        return Kind.INT
    if isinstance(value, float):
        return Kind.FLOAT
    if isinstance(value, complex):
        return Kind.COMPLEX
    if isinstance(value, str):
        return Kind.STRING
    if isinstance(value, (bytes, bytearray)):
        return Kind.BYTES
    if is_lua_object(value):
        return Kind.LUA
    if is_struct_type(type(value)):
        return Kind.STRUCT
    if isinstance(value, tuple):
        return Kind.ARRAY
    if isinstance(value, (list, MutableSequence)):
        return Kind.SEQUENCE
    if isinstance(value, (dict, Mapping)):
        return Kind.MAPPING
    if isinstance(value, CHANNEL_TYPES):
        return Kind.CHANNEL
    if callable(value) and not isinstance(value, type):
        return Kind.CALLABLE
    return Kind.OTHER


# =============================================================================
# Type descriptors
# =============================================================================

@dataclass(frozen=True)
class TypeDescriptor:
    """Runtime description of a conversion destination.

    kind selects the handler; elem/key/value describe container members
    (elem is also the target of OPTIONAL and REF); items holds the slot
    types of a fixed-length tuple. Struct fields are looked up lazily
    through luabridge.fields so recursive types describe cleanly.
    """
    kind: Kind
    name: str
    py_type: Any = None
    elem: Optional['TypeDescriptor'] = None
    key: Optional['TypeDescriptor'] = None
    value: Optional['TypeDescriptor'] = None
    items: Optional[Tuple['TypeDescriptor', ...]] = None

    def __str__(self) -> str:
        return self.name

    @property
    def fields(self):
        """Field mapping of a STRUCT destination."""
        from luabridge.fields import field_mapping
        return field_mapping(self.py_type)

    def zero(self) -> Any:
        """The value written for nil / Null."""
        kind = self.kind
        if kind in _SCALAR_ZEROS:
            zero = _SCALAR_ZEROS[kind]
            if self.py_type is None or self.py_type is type(zero):
                return zero
            try:
                return self.py_type(zero)
            except (TypeError, ValueError):
                # Enums without a zero member
                return zero
        if kind is Kind.SEQUENCE:
            return []
        if kind is Kind.MAPPING:
            return {}
        if kind is Kind.ARRAY:
            if self.items is not None:
                return tuple(item.zero() for item in self.items)
            return ()
        return None


_SCALAR_ZEROS = {
    Kind.BOOL: False,
    Kind.INT: 0,
    Kind.FLOAT: 0.0,
    Kind.COMPLEX: 0j,
    Kind.STRING: '',
    Kind.BYTES: b'',
}


def type_name(hint: Any) -> str:
    """Readable name of a type hint for error messages."""
    if hint is Any:
        return 'Any'
    if isinstance(hint, type) and not typing.get_args(hint):
        return hint.__qualname__
    return repr(hint).replace('typing.', '')


def describe(hint: Any) -> TypeDescriptor:
    """Build (or fetch the cached) descriptor for a type hint."""
    if isinstance(hint, TypeDescriptor):
        return hint
    try:
        return _describe_cached(hint)
    except TypeError:
        # Unhashable hint (e.g. Annotated metadata); build uncached
        return _describe(hint)


@lru_cache(maxsize=512)
def _describe_cached(hint: Any) -> TypeDescriptor:
    return _describe(hint)


DYNAMIC = TypeDescriptor(Kind.DYNAMIC, 'Any')


def _describe(hint: Any) -> TypeDescriptor:
    from luabridge.lua.proxy import LuaObject

    name = type_name(hint)

    if hint is Any or hint is object or isinstance(hint, (TypeVar, str, typing.ForwardRef)):
        return DYNAMIC
    if hint is None or hint is type(None):
        return TypeDescriptor(Kind.NIL, 'None')

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin is typing.Annotated:
        return describe(args[0])

    if _is_union(origin):
        members = [a for a in args if a is not type(None)]
        if len(members) == len(args):
            # Plain unions carry no single destination type
            return TypeDescriptor(Kind.DYNAMIC, name)
        inner = describe(members[0]) if len(members) == 1 else DYNAMIC
        return TypeDescriptor(Kind.OPTIONAL, name, elem=inner)

    if origin is not None:
        return _describe_generic(hint, origin, args, name)

    if not isinstance(hint, type):
        return DYNAMIC

    if issubclass(hint, Ref):
        return TypeDescriptor(Kind.REF, name, py_type=Ref, elem=DYNAMIC)
    if issubclass(hint, LuaObject):
        return TypeDescriptor(Kind.LUA, name, py_type=LuaObject)
    if issubclass(hint, bool):
        return TypeDescriptor(Kind.BOOL, name, py_type=hint)
    if issubclass(hint, int):
        return TypeDescriptor(Kind.INT, name, py_type=hint)
    if issubclass(hint, float):
        return TypeDescriptor(Kind.FLOAT, name, py_type=hint)
    if issubclass(hint, complex):
        return TypeDescriptor(Kind.COMPLEX, name, py_type=hint)
    if issubclass(hint, str):
        return TypeDescriptor(Kind.STRING, name, py_type=hint)
    if issubclass(hint, (bytes, bytearray)):
        return TypeDescriptor(Kind.BYTES, name, py_type=hint)
    if is_struct_type(hint):
        return TypeDescriptor(Kind.STRUCT, name, py_type=hint)
    if issubclass(hint, tuple):
        return TypeDescriptor(Kind.ARRAY, name, py_type=tuple, elem=DYNAMIC)
    if issubclass(hint, (list, MutableSequence)):
        return TypeDescriptor(Kind.SEQUENCE, name, py_type=list, elem=DYNAMIC)
    if issubclass(hint, (dict, Mapping)):
        return TypeDescriptor(Kind.MAPPING, name, py_type=dict, key=DYNAMIC, value=DYNAMIC)
    if issubclass(hint, CHANNEL_TYPES):
        return TypeDescriptor(Kind.CHANNEL, name, py_type=hint)
    return TypeDescriptor(Kind.OTHER, name, py_type=hint)


def _is_union(origin: Any) -> bool:
    return origin is Union or origin is UnionType


def _describe_generic(hint: Any, origin: Any, args: tuple, name: str) -> TypeDescriptor:
    if origin is Ref:
        elem = describe(args[0]) if args else DYNAMIC
        return TypeDescriptor(Kind.REF, name, py_type=Ref, elem=elem)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return TypeDescriptor(Kind.ARRAY, name, py_type=tuple, elem=describe(args[0]))
        if args == ((),):
            return TypeDescriptor(Kind.ARRAY, name, py_type=tuple, items=())
        return TypeDescriptor(
            Kind.ARRAY, name, py_type=tuple, items=tuple(describe(a) for a in args)
        )
    if isinstance(origin, type) and issubclass(origin, (list, MutableSequence, Sequence)):
        elem = describe(args[0]) if args else DYNAMIC
        return TypeDescriptor(Kind.SEQUENCE, name, py_type=list, elem=elem)
    if isinstance(origin, type) and issubclass(origin, (dict, Mapping, MutableMapping)):
        key = describe(args[0]) if args else DYNAMIC
        value = describe(args[1]) if len(args) > 1 else DYNAMIC
        return TypeDescriptor(Kind.MAPPING, name, py_type=dict, key=key, value=value)
    if origin is AbcCallable:
        return TypeDescriptor(Kind.CALLABLE, name)
    if isinstance(origin, type) and issubclass(origin, CHANNEL_TYPES):
        return TypeDescriptor(Kind.CHANNEL, name, py_type=origin)
    return describe(origin)
