"""
Python -> Lua -> Python round trips.

Run with: pytest tests/test_roundtrip.py -v
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import pytest
from pydantic import BaseModel, Field

from luabridge import Null, lua_field


@dataclass
class Item:
    name: str = ''
    weight: float = 0.0


@dataclass
class Inventory:
    owner: str = ''
    gold: int = lua_field('coins', default=0)
    items: List[Item] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    position: Tuple[int, int] = (0, 0)


class Settings(BaseModel):
    volume: float = Field(0.5, json_schema_extra={'lua': 'vol'})
    title: str = Field('untitled', alias='caption')


class Pair(NamedTuple):
    a: int
    b: str


@dataclass
class Slot:
    count: Optional[int] = 5


@dataclass
class Tree:
    value: int = 0
    children: List['Tree'] = field(default_factory=list)
    parent: Optional['Tree'] = None


@pytest.fixture
def roundtrip(bridge):
    def convert(value, hint):
        lua_globals = bridge.globals()
        lua_globals.tmp = bridge.to_lua(value)
        return bridge.from_lua(lua_globals.tmp, hint)
    return convert


class TestCopyRoundTrip:
    """Copying to Lua and back gives an equal value."""

    @pytest.mark.parametrize("value,hint", [
        (True, bool),
        (42, int),
        (-2.5, float),
        ('text', str),
        (b'bytes', bytes),
        ([1, 2, 3], List[int]),
        ({'a': 1, 'b': 2}, Dict[str, int]),
        ((1, 'x'), Tuple[int, str]),
        (Pair(1, 'x'), Pair),
    ])
    def test_values(self, roundtrip, value, hint):
        assert roundtrip(value, hint) == value

    def test_nested_struct(self, roundtrip):
        inventory = Inventory(
            owner='ann',
            gold=12,
            items=[Item('rope', 1.5), Item('lamp', 2.0)],
            counts={'rope': 1, 'lamp': 3},
            position=(4, 5),
        )
        result = roundtrip(inventory, Inventory)
        assert result == inventory
        assert result is not inventory

    def test_model(self, roundtrip):
        settings = Settings(volume=0.8, caption='loud')
        result = roundtrip(settings, Settings)
        assert result.volume == 0.8
        assert result.title == 'loud'

    def test_lua_names_used(self, bridge):
        table = bridge.to_lua(Inventory(gold=3))
        assert table['coins'] == 3
        assert table['gold'] is None


class TestCycleRoundTrip:
    def test_cyclic_tree(self, roundtrip):
        root = Tree(1)
        child = Tree(2, parent=root)
        root.children.append(child)

        result = roundtrip(root, Tree)
        assert result.children[0].value == 2
        assert result.children[0].parent is result

    def test_shared_list(self, roundtrip):
        shared = [1, 2]
        result = roundtrip([shared, shared], List[List[int]])
        assert result == [[1, 2], [1, 2]]
        assert result[0] is result[1]

    def test_self_containing_list(self, roundtrip):
        values = [1]
        values.append(values)
        result = roundtrip(values, List[Any])
        assert result[0] == 1
        assert result[1] is result

    def test_empty_lists_not_shared(self, roundtrip):
        empty = []
        result = roundtrip([empty, empty], List[List[int]])
        assert result[0] is not result[1]


class TestNullRoundTrip:
    def test_none_elements(self, roundtrip):
        assert roundtrip([1, None, 3], List[Optional[int]]) == [1, None, 3]

    def test_none_values(self, roundtrip):
        assert roundtrip({'a': None}, Dict[str, Optional[str]]) == {'a': None}

    def test_none_into_non_optional(self, roundtrip):
        assert roundtrip([None, 'x'], List[str]) == ['', 'x']

    def test_none_field_with_other_default(self, roundtrip):
        assert roundtrip(Slot(count=None), Slot) == Slot(count=None)
        assert roundtrip(Slot(count=3), Slot) == Slot(count=3)

    def test_null_itself(self, roundtrip):
        assert roundtrip(Null, Optional[int]) is None


class TestProxyRoundTrip:
    """Proxies come back as the very same object."""

    def test_identity(self, bridge):
        inventory = Inventory()
        bridge.globals().inv = bridge.to_lua_proxy(inventory)
        assert bridge.from_lua(bridge.globals().inv, Inventory) is inventory

    def test_mutation_visible(self, bridge):
        inventory = Inventory()
        bridge.globals().inv = bridge.to_lua_proxy(inventory)
        bridge.execute("inv.owner = 'bob'")
        assert inventory.owner == 'bob'

    def test_proxy_inside_copied_table(self, bridge):
        item = Item('rope')
        bridge.register('', {'item': item})
        table = bridge.execute('return {item, item}')
        result = bridge.from_lua(table, List[Item])
        assert result[0] is item
        assert result[1] is item


class TestBridgedRoundTrip:
    def test_struct_through_function(self, bridge):
        def heaviest(items: List[Item]) -> Item:
            return max(items, key=lambda item: item.weight)

        bridge.register('', {'heaviest': heaviest})
        result = bridge.execute("""
            local best = heaviest({{name = 'a', weight = 1}, {name = 'b', weight = 3}})
            return best.name
        """)
        assert result == 'b'

    def test_variadic_structs(self, bridge):
        def names(*items: Item) -> str:
            return ','.join(item.name for item in items)

        bridge.register('', {'names': names})
        assert bridge.eval("names({name = 'a'}, {name = 'b'})") == 'a,b'
