"""
Registration targets and the helper table.

Run with: pytest tests/test_register.py -v
"""

import queue
from dataclasses import dataclass

import pytest

from lupa import LuaError

from luabridge import BridgeConfig, LuaBridge, Null, new_state, register


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0


class TestRegisterTargets:
    def test_globals(self, bridge):
        register(bridge, '', {'answer': 42})
        assert bridge.eval('answer') == 42

    def test_none_is_globals(self, bridge):
        bridge.register(None, {'answer': 42})
        assert bridge.eval('answer') == 42

    def test_named_table_created(self, bridge):
        bridge.register('geo', {'origin': Point()})
        assert bridge.eval('type(geo)') == 'table'
        assert bridge.eval('geo.origin.x') == 0.0

    def test_named_table_reused(self, bridge):
        bridge.execute('geo = {a = 1}')
        bridge.register('geo', {'b': 2})
        assert bridge.eval('geo.a + geo.b') == 3

    def test_named_non_table(self, bridge):
        bridge.execute('geo = 5')
        with pytest.raises(TypeError, match='not a table'):
            bridge.register('geo', {'b': 2})

    def test_lua_table(self, bridge):
        table = bridge.eval('{}')
        returned = bridge.register(table, {'x': 1})
        assert returned is table
        assert table['x'] == 1

    def test_invalid_target(self, bridge):
        with pytest.raises(TypeError):
            bridge.register(42, {'x': 1})


class TestRegisterValues:
    """Registered values are converted in proxy mode."""

    def test_list_proxied(self, bridge):
        values = [1, 2]
        bridge.register('', {'values': values})
        assert bridge.eval('type(values)') == 'userdata'
        bridge.execute('values[1] = 5')
        assert values == [1, 5]

    def test_struct_proxied(self, bridge):
        point = Point(1, 2)
        bridge.register('', {'p': point})
        bridge.execute('p.y = 10')
        assert point.y == 10

    def test_function_bridged(self, bridge):
        bridge.register('', {'double': lambda n: n * 2})
        assert bridge.eval('double(4)') == 8.0

    def test_scalars_copied(self, bridge):
        bridge.register('', {'name': 'lua', 'flag': True})
        assert bridge.eval('type(name)') == 'string'
        assert bridge.eval('flag') is True


class TestHelperTable:
    def test_installed(self, bridge):
        assert bridge.eval('type(luabridge)') == 'table'

    def test_not_installed_without_open(self):
        assert LuaBridge().eval('luabridge') is None

    def test_custom_name(self):
        bridge = LuaBridge.open(BridgeConfig(helpers_table='lb'))
        assert bridge.eval('type(lb)') == 'table'
        assert bridge.eval('luabridge') is None

    def test_new_state(self):
        assert new_state().eval('type(luabridge)') == 'table'

    def test_null(self, bridge):
        assert bridge.eval('luabridge.null') is Null

    def test_unproxify(self, bridge):
        bridge.register('', {'values': [1, 2, 3]})
        assert bridge.execute('local t = luabridge.unproxify(values); return type(t), #t') == ('table', 3)

    def test_unproxify_struct(self, bridge):
        bridge.register('', {'p': Point(1, 2)})
        assert bridge.execute('local t = luabridge.unproxify(p); return type(t), t.y') == ('table', 2)

    def test_unproxify_passes_plain_values(self, bridge):
        assert bridge.eval('luabridge.unproxify(5)') == 5

    def test_type(self, bridge):
        bridge.register('', {'p': Point()})
        assert bridge.eval('luabridge.type(p)').endswith('Point')
        assert bridge.eval('luabridge.type({})') == 'table'

    def test_builtin_type_name(self, bridge):
        bridge.register('', {'values': []})
        assert bridge.eval('luabridge.type(values)') == 'list'

    def test_chan(self, bridge):
        channel = bridge.eval('luabridge.chan(2)')
        assert isinstance(channel, queue.Queue)
        assert channel.maxsize == 2

    def test_chan_usable_from_lua(self, bridge):
        channel = bridge.execute('local c = luabridge.chan(); c.put(7); return c')
        assert channel.get_nowait() == 7

    def test_complex(self, bridge):
        assert bridge.eval('luabridge.complex(1, 2)') == 1 + 2j

    def test_map(self, bridge):
        mapping = bridge.execute('local m = luabridge.map(); m.a = 1; return m')
        assert mapping == {'a': 1}

    def test_slice(self, bridge):
        assert bridge.from_lua(bridge.eval('luabridge.slice(3)'), list) == [None, None, None]

    def test_slice_indexed_from_one(self, bridge):
        values = bridge.from_lua(bridge.execute("local s = luabridge.slice(2); s[1] = 'a'; s[3] = 'c'; return s"), list)
        assert values == ['a', None, 'c']

    def test_slice_negative(self, bridge):
        with pytest.raises(Exception, match='negative slice size'):
            bridge.eval('luabridge.slice(-1)')

    def test_log(self, bridge):
        assert bridge.eval("luabridge.log('hello')") is None

    def test_method(self, bridge):
        result = bridge.execute("local m = luabridge.map(); m.a = 1; return luabridge.method(m, 'get')('a')")
        assert result == 1

    def test_method_on_sequence(self, bridge):
        values = [1, 2]
        bridge.register('', {'values': values})
        bridge.execute("luabridge.method(values, 'append')(3)")
        assert values == [1, 2, 3]

    def test_method_missing(self, bridge):
        bridge.register('', {'values': []})
        with pytest.raises(LuaError, match="has no method 'nope'"):
            bridge.execute("luabridge.method(values, 'nope')")

    def test_method_private_blocked(self, bridge):
        bridge.register('', {'values': []})
        with pytest.raises(LuaError, match='blocked'):
            bridge.execute("luabridge.method(values, '__len__')")


class TestIteration:
    """pairs and ipairs over proxies, strings and tables."""

    def test_ipairs_sequence(self, bridge):
        bridge.register('', {'values': [10, 20, 30]})
        result = bridge.execute("""
            local out = {}
            for i, v in ipairs(values) do out[#out + 1] = i * 100 + v end
            return table.concat(out, ',')
        """)
        assert result == '110,220,330'

    def test_ipairs_yields_proxies(self, bridge):
        bridge.register('', {'points': [Point(1, 2)]})
        assert bridge.execute('for _, p in ipairs(points) do return p.y end') == 2

    def test_ipairs_string(self, bridge):
        result = bridge.execute("""
            local out = {}
            for i, c in ipairs('hey') do out[i] = c end
            return table.concat(out, ',')
        """)
        assert result == 'h,e,y'

    def test_ipairs_mapping_rejected(self, bridge):
        bridge.register('', {'data': {'a': 1}})
        with pytest.raises(Exception, match='cannot ipairs over dict'):
            bridge.execute('for _ in ipairs(data) do end')

    def test_pairs_mapping(self, bridge):
        bridge.register('', {'data': {'a': 1, 'b': 2}})
        result = bridge.execute("""
            local keys, total = {}, 0
            for k, v in pairs(data) do keys[#keys + 1] = k; total = total + v end
            table.sort(keys)
            return table.concat(keys, ','), total
        """)
        assert result == ('a,b', 3)

    def test_pairs_struct_fields(self, bridge):
        bridge.register('', {'p': Point(1, 2)})
        result = bridge.execute("""
            local out = {}
            for k, v in pairs(p) do out[#out + 1] = k .. '=' .. v end
            table.sort(out)
            return table.concat(out, ',')
        """)
        assert result == 'x=1,y=2'

    def test_pairs_sequence_from_one(self, bridge):
        bridge.register('', {'values': ['a', 'b']})
        assert bridge.execute('for i, v in pairs(values) do return i, v end') == (1, 'a')

    def test_tables_use_native_iteration(self, bridge):
        assert bridge.execute('local n = 0; for _, v in pairs({a = 1, b = 2}) do n = n + v end; return n') == 3
        assert bridge.execute('local n = 0; for i, v in ipairs({5, 6}) do n = n + i * v end; return n') == 17

    def test_native_errors_kept(self, bridge):
        with pytest.raises(LuaError):
            bridge.execute('for _ in pairs(nil) do end')
