"""
Value kinds and type descriptors.

Run with: pytest tests/test_types.py -v
"""

import enum
import queue
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

import pytest
from pydantic import BaseModel

from luabridge.lua.proxy import LuaObject
from luabridge.types import Kind, Null, Ref, classify, describe, is_named


class Color(enum.IntEnum):
    RED = 1
    GREEN = 2


class Name(str):
    pass


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0


class Pair(NamedTuple):
    a: int
    b: int


class Settings(BaseModel):
    volume: float = 0.5


class TestNull:
    """Null is a falsy singleton."""

    def test_single_instance(self):
        assert type(Null)() is Null

    def test_falsy(self):
        assert not Null
        assert repr(Null) == 'Null'


class TestRef:
    def test_hint_from_value(self):
        assert Ref(3).hint is int

    def test_hint_defaults_to_any(self):
        assert Ref().hint is Any

    def test_explicit_hint(self):
        ref = Ref(hint=List[int])
        assert ref.value is None
        assert ref.hint == List[int]


class TestClassify:
    """classify() picks the kind a Python value is sent as."""

    @pytest.mark.parametrize("value,kind", [
        (None, Kind.NIL),
        (True, Kind.BOOL),
        (3, Kind.INT),
        (Color.RED, Kind.INT),
        (1.5, Kind.FLOAT),
        (1j, Kind.COMPLEX),
        ('s', Kind.STRING),
        (b's', Kind.BYTES),
        ((1, 2), Kind.ARRAY),
        ([1], Kind.SEQUENCE),
        ({'a': 1}, Kind.MAPPING),
        (Point(), Kind.STRUCT),
        (Pair(1, 2), Kind.STRUCT),
        (Settings(), Kind.STRUCT),
        (queue.Queue(), Kind.CHANNEL),
        (len, Kind.CALLABLE),
        (Ref(1), Kind.REF),
        (Point, Kind.OTHER),
        (object(), Kind.OTHER),
    ])
    def test_kinds(self, value, kind):
        assert classify(value) is kind

    def test_lua_values(self, bridge):
        assert classify(bridge.eval('{}')) is Kind.LUA
        assert classify(bridge.eval('print')) is Kind.LUA

    def test_named(self):
        assert is_named(Color.RED)
        assert is_named(Name('x'))
        assert not is_named(1)
        assert not is_named('x')


class TestDescribe:
    """describe() turns type hints into conversion destinations."""

    def test_dynamic(self):
        assert describe(Any).kind is Kind.DYNAMIC
        assert describe(object).kind is Kind.DYNAMIC
        assert describe(Union[int, str]).kind is Kind.DYNAMIC

    def test_scalars(self):
        assert describe(bool).kind is Kind.BOOL
        assert describe(int).kind is Kind.INT
        assert describe(Color).kind is Kind.INT
        assert describe(Color).py_type is Color
        assert describe(float).kind is Kind.FLOAT
        assert describe(str).kind is Kind.STRING
        assert describe(bytes).kind is Kind.BYTES

    def test_optional(self):
        desc = describe(Optional[int])
        assert desc.kind is Kind.OPTIONAL
        assert desc.elem.kind is Kind.INT
        assert describe(int | None).kind is Kind.OPTIONAL

    def test_containers(self):
        seq = describe(List[int])
        assert seq.kind is Kind.SEQUENCE
        assert seq.elem.kind is Kind.INT

        mapping = describe(Dict[str, float])
        assert mapping.kind is Kind.MAPPING
        assert mapping.key.kind is Kind.STRING
        assert mapping.value.kind is Kind.FLOAT

        assert describe(list[str]).elem.kind is Kind.STRING

    def test_tuples(self):
        fixed = describe(Tuple[int, str])
        assert fixed.kind is Kind.ARRAY
        assert [item.kind for item in fixed.items] == [Kind.INT, Kind.STRING]

        homogeneous = describe(Tuple[int, ...])
        assert homogeneous.items is None
        assert homogeneous.elem.kind is Kind.INT

    def test_structs(self):
        assert describe(Point).kind is Kind.STRUCT
        assert describe(Pair).kind is Kind.STRUCT
        assert describe(Settings).kind is Kind.STRUCT

    def test_ref(self):
        desc = describe(Ref[int])
        assert desc.kind is Kind.REF
        assert desc.elem.kind is Kind.INT

    def test_lua_object(self):
        assert describe(LuaObject).kind is Kind.LUA

    def test_descriptor_passes_through(self):
        desc = describe(int)
        assert describe(desc) is desc

    def test_name(self):
        assert str(describe(Point)) == 'Point'
        assert str(describe(int)) == 'int'


class TestZeroValues:
    """zero() is what nil and Null convert to."""

    @pytest.mark.parametrize("hint,zero", [
        (bool, False),
        (int, 0),
        (float, 0.0),
        (complex, 0j),
        (str, ''),
        (bytes, b''),
        (List[int], []),
        (Dict[str, int], {}),
        (Tuple[int, str], (0, '')),
        (Optional[int], None),
        (Point, None),
        (Any, None),
    ])
    def test_zero(self, hint, zero):
        assert describe(hint).zero() == zero

    def test_named_zero(self):
        assert type(describe(Name).zero()) is Name

    def test_enum_without_zero_member(self):
        assert describe(Color).zero() == 0
