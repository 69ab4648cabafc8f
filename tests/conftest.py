import pytest

from luabridge import LuaBridge


@pytest.fixture
def bridge():
    """Create a fresh LuaBridge (helper table installed) for each test."""
    return LuaBridge.open()


@pytest.fixture
def lua_type(bridge):
    """Lua's type() of a converted value."""
    return bridge.eval('function(v) return type(v) end')


@pytest.fixture
def through_lua(bridge):
    """Store a value in a Lua global and read it back."""
    def roundtrip(value):
        lua_globals = bridge.globals()
        lua_globals.tmp = value
        return lua_globals.tmp
    return roundtrip
