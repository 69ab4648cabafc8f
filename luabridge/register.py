"""
Installing named Python values into Lua.

    register(bridge, '', {'Point': Point, 'origin': origin})    # globals
    register(bridge, 'geo', {'distance': distance})             # geo.distance
    register(bridge, lua_table, {'x': 1})                       # existing table

Values are converted in proxy mode, so objects keep their identity and
methods on the Lua side.
"""

from typing import TYPE_CHECKING, Any, Mapping, Union

import lupa

from luabridge.logging import get_logger

if TYPE_CHECKING:
    from luabridge.lua.engine import LuaBridge

log = get_logger('register')


def resolve_table(bridge: 'LuaBridge', table: Union[str, Any, None]) -> Any:
    """The Lua table a registration targets.

    '' or None selects the globals table. A name selects the global table
    of that name, created if absent. A Lua table is used as given.

    Raises:
        TypeError: The name is bound to a non-table value, or `table` is
            neither a name nor a Lua table
    """
    if table is None or table == '':
        return bridge.vm.globals()

    if isinstance(table, str):
        lua_globals = bridge.vm.globals()
        key = bridge.vm.string(table)
        target = lua_globals[key]
        if target is None:
            target = bridge.vm.table()
            lua_globals[key] = target
            log.debug("Created global table %s", table)
        elif lupa.lua_type(target) != 'table':
            raise TypeError(f"global {table!r} is a {lupa.lua_type(target) or type(target).__name__}, not a table")
        return target

    if lupa.lua_type(table) == 'table':
        return table
    raise TypeError(f"cannot register into {type(table).__name__}: expected a table name or Lua table")


def register(bridge: 'LuaBridge', table: Union[str, Any, None], values: Mapping[str, Any]) -> Any:
    """Install each value under its name in the target table.

    Returns:
        The Lua table the values were installed into
    """
    target = resolve_table(bridge, table)
    for name, value in values.items():
        target[bridge.vm.string(name)] = bridge.to_lua_proxy(value)
        log.trace("Registered %s.%s", table or '_G', name)
    return target
