"""
Field mapping for struct-like types.

A struct's fields are visible from Lua under their declared name, unless
the field carries an explicit Lua name:

    @dataclass
    class Player:
        name: str
        hit_points: int = lua_field('hp', default=100)

    class Settings(BaseModel):
        volume: float = Field(0.5, json_schema_extra={'lua': 'vol'})

Pydantic aliases are used when no Lua name is given. Underscore-prefixed
fields are private and never mapped.
"""

import dataclasses
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel

from luabridge.types import TypeDescriptor, describe, is_namedtuple_type

# Metadata key holding a field's Lua name
FIELD_TAG = 'lua'

_NO_DEFAULT = object()


def lua_field(name: str, **kwargs) -> Any:
    """dataclasses.field() with a Lua-visible name."""
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[FIELD_TAG] = name
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class FieldSpec:
    """One struct field as seen from Lua."""
    lua_name: str
    attr: str
    hint: Any
    default: Any = _NO_DEFAULT
    default_factory: Optional[Callable[[], Any]] = None

    @property
    def descriptor(self) -> TypeDescriptor:
        return describe(self.hint)

    def initial(self) -> Any:
        """Value used for a field the Lua table does not set."""
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is not _NO_DEFAULT:
            return self.default
        return self.descriptor.zero()


@dataclass(frozen=True)
class FieldMapping:
    """Fields of a struct type in declaration order, indexed by Lua name.

    all_fields also holds the private fields, which are initialized but
    never read from or written to Lua.
    """
    fields: Tuple[FieldSpec, ...]
    by_lua_name: Dict[str, FieldSpec]
    all_fields: Tuple[FieldSpec, ...]

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, lua_name: str) -> Optional[FieldSpec]:
        return self.by_lua_name.get(lua_name)


@lru_cache(maxsize=256)
def field_mapping(cls: type) -> FieldMapping:
    """Build the Lua name -> field mapping of a struct type (cached per type)."""
    if dataclasses.is_dataclass(cls):
        specs = _dataclass_fields(cls)
    elif issubclass(cls, BaseModel):
        specs = _model_fields(cls)
    elif is_namedtuple_type(cls):
        specs = _namedtuple_fields(cls)
    else:
        raise TypeError(f"{cls.__qualname__} is not a struct-like type")

    all_specs = tuple(specs)
    public = tuple(spec for spec in all_specs if not spec.attr.startswith('_'))
    # Colliding Lua names: the last declared field wins
    return FieldMapping(public, {spec.lua_name: spec for spec in public}, all_specs)


def _type_hints(cls: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        # Unresolvable forward references are treated as Any
        return {}


def _dataclass_fields(cls: type):
    hints = _type_hints(cls)
    for f in dataclasses.fields(cls):
        default = f.default if f.default is not dataclasses.MISSING else _NO_DEFAULT
        factory = f.default_factory if f.default_factory is not dataclasses.MISSING else None
        yield FieldSpec(
            lua_name=f.metadata.get(FIELD_TAG) or f.name,
            attr=f.name,
            hint=hints.get(f.name, Any),
            default=default,
            default_factory=factory,
        )


def _model_fields(cls: type):
    for name, info in cls.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        lua_name = extra.get(FIELD_TAG) or info.alias or name
        if info.default_factory is not None:
            default, factory = _NO_DEFAULT, info.default_factory
        elif info.is_required():
            default, factory = _NO_DEFAULT, None
        else:
            default, factory = info.default, None
        yield FieldSpec(
            lua_name=lua_name,
            attr=name,
            hint=info.annotation if info.annotation is not None else Any,
            default=default,
            default_factory=factory,
        )


def _namedtuple_fields(cls: type):
    hints = _type_hints(cls)
    defaults = getattr(cls, '_field_defaults', {})
    for name in cls._fields:
        yield FieldSpec(
            lua_name=name,
            attr=name,
            hint=hints.get(name, Any),
            default=defaults.get(name, _NO_DEFAULT),
        )


def new_struct(cls: type) -> Any:
    """Allocate a struct with every mapped field at its initial value.

    Used for mutable structs so the instance exists (and can be recorded
    as visited) before its fields are converted. NamedTuples are built in
    one go by build_struct() instead.
    """
    if issubclass(cls, BaseModel):
        obj = cls.model_construct()
    else:
        obj = cls.__new__(cls)
    for spec in field_mapping(cls).all_fields:
        object.__setattr__(obj, spec.attr, spec.initial())
    return obj


def set_field(obj: Any, spec: FieldSpec, value: Any) -> None:
    # object.__setattr__ also writes frozen dataclasses and models
    object.__setattr__(obj, spec.attr, value)


def build_struct(cls: type, values: Dict[str, Any]) -> Any:
    """Construct a NamedTuple from converted field values."""
    kwargs = {}
    for spec in field_mapping(cls):
        kwargs[spec.attr] = values[spec.attr] if spec.attr in values else spec.initial()
    return cls(**kwargs)
