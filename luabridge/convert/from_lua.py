"""
Lua -> Python conversion.

Values arrive as lupa hands them over (primitives, Lua object wrappers, or
the Python objects behind proxies) and are coerced into a destination
described by a TypeDescriptor. Tables are tracked by Lua identity so
shared and cyclic tables come back shared and cyclic.

Failure policy: a field of a struct that cannot be converted is skipped,
while a failing sequence element or mapping entry aborts the whole
conversion.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Tuple

from luabridge.errors import ConversionDepthError, LuaToPyError, NotADestinationError
from luabridge.fields import FieldMapping, FieldSpec, build_struct, new_struct, set_field
from luabridge.logging import get_logger
from luabridge.lua.proxy import LuaObject, unwrap_proxy
from luabridge.lua.vm import LuaKind, lua_kind, lua_type_name
from luabridge.tracker import MISSING, CycleTracker
from luabridge.types import (
    Kind,
    Null,
    Ref,
    TypeDescriptor,
    describe,
    is_namedtuple_type,
    type_name,
)

if TYPE_CHECKING:
    from luabridge.lua.engine import LuaBridge

log = get_logger('from_lua')

# Destinations used for tables converted into Any
_DYNAMIC_SEQUENCE = describe(list)
_DYNAMIC_MAPPING = describe(Dict[str, Any])


class FromLua:
    """Script -> host converter bound to one LuaBridge."""

    def __init__(self, bridge: 'LuaBridge'):
        self._vm = bridge.vm
        self._max_depth = bridge.config.max_depth
        self._encoding = bridge.config.encoding or 'utf-8'
        self._by_lua_kind: Dict[LuaKind, Callable] = {
            LuaKind.BOOLEAN: self._boolean,
            LuaKind.NUMBER: self._number,
            LuaKind.STRING: self._string,
            LuaKind.TABLE: self._table,
            LuaKind.PROXY: self._proxy,
            LuaKind.USERDATA: self._userdata,
        }
        self._by_destination: Dict[Kind, Callable] = {
            Kind.ARRAY: self._table_to_array,
            Kind.SEQUENCE: self._table_to_sequence,
            Kind.MAPPING: self._table_to_mapping,
            Kind.STRUCT: self._table_to_struct,
            Kind.DYNAMIC: self._table_to_dynamic,
        }

    def convert(self, value: Any, hint: Any = Any) -> Any:
        """Convert a Lua value into `hint`, with a tracker scoped to this call.

        Raises:
            LuaToPyError: The value does not fit the destination type
            ConversionDepthError: The table graph is nested too deeply
        """
        desc = describe(hint)
        with self._vm.table_tracker() as visited:
            return self._convert(value, desc, visited, 0)

    def lua_to_py(self, value: Any, dest: Ref) -> None:
        """Convert a Lua value and store it in dest.value.

        dest.hint declares the destination type. Nothing is converted
        unless dest is a Ref.
        """
        if not isinstance(dest, Ref):
            raise NotADestinationError(dest)
        dest.value = self.convert(value, dest.hint)

    def _convert(self, value: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        if depth > self._max_depth:
            raise ConversionDepthError(self._max_depth, 'Lua to Python')
        if isinstance(value, LuaObject):
            value = value.handle

        kind = lua_kind(value)
        if kind is LuaKind.NIL:
            return desc.zero()

        if desc.kind is Kind.OPTIONAL:
            if value is Null:
                return None
            return self._convert(value, desc.elem, visited, depth)
        if desc.kind is Kind.REF and not isinstance(value, Ref):
            return Ref(self._convert(value, desc.elem, visited, depth), desc.elem)

        handler = self._by_lua_kind.get(kind)
        if handler is None:
            raise LuaToPyError(lua_type_name(value, kind), desc.name)
        return handler(value, desc, visited, depth)

    # =========================================================================
    # Scalars
    # =========================================================================

    def _boolean(self, value: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        if desc.kind in (Kind.BOOL, Kind.DYNAMIC):
            return value
        raise LuaToPyError('boolean', desc.name)

    def _string(self, value: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        if desc.kind is Kind.DYNAMIC:
            return value
        try:
            if desc.kind is Kind.STRING:
                text = value.decode(self._encoding) if isinstance(value, bytes) else value
                return self._construct(desc, text, 'string')
            if desc.kind is Kind.BYTES:
                data = value.encode(self._encoding) if isinstance(value, str) else value
                return self._construct(desc, data, 'string')
        except UnicodeError as exc:
            raise LuaToPyError('string', desc.name, str(exc)) from exc
        raise LuaToPyError('string', desc.name)

    def _number(self, value: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        kind = desc.kind
        if kind is Kind.INT:
            try:
                # Truncates toward zero
                number = int(value)
            except (ValueError, OverflowError) as exc:
                raise LuaToPyError('number', desc.name, str(exc)) from exc
            return self._construct(desc, number, 'number')
        if kind is Kind.FLOAT:
            return self._construct(desc, float(value), 'number')
        if kind is Kind.DYNAMIC:
            return float(value)
        if kind is Kind.COMPLEX:
            return self._construct(desc, complex(float(value), 0.0), 'number')
        raise LuaToPyError('number', desc.name)

    def _construct(self, desc: TypeDescriptor, value: Any, lua_name: str) -> Any:
        """Build a named destination type (IntEnum, str subclass...) from a primitive."""
        py_type = desc.py_type
        if py_type is None or type(value) is py_type:
            return value
        try:
            return py_type(value)
        except (TypeError, ValueError) as exc:
            raise LuaToPyError(lua_name, desc.name, str(exc)) from exc

    # =========================================================================
    # Userdata
    # =========================================================================

    def _proxy(self, value: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        wrapped, wrapped_type = unwrap_proxy(value)
        if wrapped is Null:
            return desc.zero()
        while isinstance(wrapped, Ref) and desc.kind is not Kind.REF:
            wrapped = wrapped.value
            wrapped_type = type(wrapped)
        converted = self._coerce(wrapped, desc)
        if converted is MISSING:
            raise LuaToPyError(type_name(wrapped_type), desc.name)
        return converted

    def _coerce(self, obj: Any, desc: TypeDescriptor) -> Any:
        """Convert a proxied object to the destination type, or MISSING."""
        kind = desc.kind
        if kind is Kind.DYNAMIC:
            return obj
        if kind is Kind.REF:
            return obj if isinstance(obj, Ref) else MISSING
        if kind is Kind.CALLABLE:
            return obj if callable(obj) else MISSING
        if kind is Kind.NIL:
            return MISSING

        if kind is Kind.BOOL:
            accepted = isinstance(obj, bool)
        elif kind in (Kind.INT, Kind.FLOAT):
            accepted = isinstance(obj, (int, float)) and not isinstance(obj, bool)
        elif kind is Kind.COMPLEX:
            accepted = isinstance(obj, complex)
        elif kind is Kind.STRING:
            if isinstance(obj, (bytes, bytearray)):
                try:
                    obj = bytes(obj).decode(self._encoding)
                except UnicodeError:
                    return MISSING
            accepted = isinstance(obj, str)
        elif kind is Kind.BYTES:
            if isinstance(obj, str):
                try:
                    obj = obj.encode(self._encoding)
                except UnicodeError:
                    return MISSING
            accepted = isinstance(obj, (bytes, bytearray))
        else:
            # Composites and other classes keep their identity
            return obj if isinstance(obj, desc.py_type) else MISSING

        if not accepted:
            return MISSING
        if isinstance(obj, desc.py_type):
            return obj
        try:
            return desc.py_type(obj)
        except (TypeError, ValueError, OverflowError):
            return MISSING

    def _userdata(self, value: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        # Raw Lua userdata, not created from a Python object
        if desc.kind is Kind.LUA:
            return LuaObject(value)
        raise LuaToPyError('userdata', desc.name)

    # =========================================================================
    # Tables
    # =========================================================================

    def _table(self, table: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        seen = visited.lookup(table)
        if seen is not MISSING:
            return seen
        handler = self._by_destination.get(desc.kind)
        if handler is None:
            raise LuaToPyError('table', desc.name)
        return handler(table, desc, visited, depth)

    def _table_to_array(self, table: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        # Tuples are immutable values: never recorded, so never shared
        if desc.items is not None:
            return tuple(
                self._convert(table[i], slot, visited, depth + 1)
                for i, slot in enumerate(desc.items, start=1)
            )
        n = self._vm.length(table)
        return tuple(
            self._convert(table[i], desc.elem, visited, depth + 1)
            for i in range(1, n + 1)
        )

    def _table_to_sequence(self, table: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        n = self._vm.length(table)
        result = []
        # Empty tables are never recorded
        if n > 0:
            visited.mark(table, result)
        for i in range(1, n + 1):
            result.append(self._convert(table[i], desc.elem, visited, depth + 1))
        return result

    def _table_to_mapping(self, table: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        result = {}
        if not self._vm.is_empty(table):
            visited.mark(table, result)
        for lua_key, lua_value in table.items():
            key = self._convert(lua_key, desc.key, visited, depth + 1)
            value = self._convert(lua_value, desc.value, visited, depth + 1)
            try:
                result[key] = value
            except TypeError as exc:
                raise LuaToPyError(lua_type_name(lua_key), desc.name, f"unhashable key: {exc}") from exc
        return result

    def _table_to_struct(self, table: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        cls = desc.py_type
        fields = desc.fields
        empty = self._vm.is_empty(table)

        if is_namedtuple_type(cls):
            values = {}
            for spec, lua_value in self._mapped_fields(table, fields):
                try:
                    values[spec.attr] = self._convert(lua_value, spec.descriptor, visited, depth + 1)
                except LuaToPyError as exc:
                    log.debug("Skipping field %s.%s: %s", desc.name, spec.attr, exc)
            result = build_struct(cls, values)
            if not empty:
                visited.mark(table, result)
            return result

        result = new_struct(cls)
        if not empty:
            visited.mark(table, result)
        for spec, lua_value in self._mapped_fields(table, fields):
            try:
                set_field(result, spec, self._convert(lua_value, spec.descriptor, visited, depth + 1))
            except LuaToPyError as exc:
                log.debug("Skipping field %s.%s: %s", desc.name, spec.attr, exc)
        return result

    def _mapped_fields(self, table: Any, fields: FieldMapping) -> Iterator[Tuple[FieldSpec, Any]]:
        """(field spec, Lua value) pairs for table keys naming a field."""
        for lua_key, lua_value in table.items():
            name = lua_key
            if isinstance(name, bytes):
                # Runtimes without an encoding hand keys over as bytes
                try:
                    name = name.decode(self._encoding)
                except UnicodeError:
                    name = None
            spec = fields.get(name) if isinstance(name, str) else None
            if spec is None:
                log.trace("Ignoring unmapped key %r", lua_key)
                continue
            yield spec, lua_value

    def _table_to_dynamic(self, table: Any, desc: TypeDescriptor, visited: CycleTracker, depth: int) -> Any:
        # Heuristic: a table with a sequence part is a list, anything else a dict
        if self._vm.length(table) > 0:
            return self._table_to_sequence(table, _DYNAMIC_SEQUENCE, visited, depth)
        return self._table_to_mapping(table, _DYNAMIC_MAPPING, visited, depth)

