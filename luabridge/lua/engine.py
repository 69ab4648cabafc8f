"""
LuaBridge - one Lua runtime plus the conversion engine bound to it.

The bridge:
1. Creates (or adopts) a lupa LuaRuntime configured from BridgeConfig
2. Converts Python values for Lua, by copy or by proxy
3. Converts Lua values back into typed Python destinations
4. Exposes Python callables to Lua through the function bridge
5. Registers named values into Lua tables

Usage:
    bridge = LuaBridge.open()

    @dataclass
    class Point:
        x: float
        y: float

    bridge.register('', {'Point': Point, 'origin': Point(0, 0)})
    table = bridge.execute('return {x = 3, y = 4}')
    point = bridge.from_lua(table, Point)        # Point(x=3.0, y=4.0)
"""

from typing import Any, Mapping, Optional, Union

from lupa import LuaRuntime

from luabridge.bridge import FunctionBridge
from luabridge.config import BridgeConfig
from luabridge.convert.from_lua import FromLua
from luabridge.convert.to_lua import ToLua
from luabridge.logging import get_logger
from luabridge.lua.api import HelpersAPI
from luabridge.lua.vm import LuaVM, create_runtime
from luabridge.register import register
from luabridge.types import Ref

log = get_logger('engine')


class LuaBridge:
    """
    Conversion engine for a single Lua runtime.

    Not thread-safe: a bridge and its runtime belong to one thread, like
    the LuaRuntime itself. Each top-level conversion owns its own cycle
    tracker, so unrelated conversions never share state.
    """

    def __init__(self, config: Optional[BridgeConfig] = None, runtime: Optional[LuaRuntime] = None):
        self.config = config or BridgeConfig()
        if runtime is None:
            runtime = create_runtime(self.config)
        self.vm = LuaVM(runtime, self.config.encoding)
        self.functions = FunctionBridge(self)
        self._to_lua = ToLua(self)
        self._from_lua = FromLua(self)
        log.debug("Bridge created (max_depth=%d, encoding=%s)", self.config.max_depth, self.config.encoding)

    @classmethod
    def open(cls, config: Optional[BridgeConfig] = None, runtime: Optional[LuaRuntime] = None) -> 'LuaBridge':
        """Create a bridge with the helper table installed."""
        bridge = cls(config, runtime)
        HelpersAPI(bridge).register_api(bridge.config.helpers_table)
        log.debug("Installed helper table %s", bridge.config.helpers_table)
        return bridge

    @property
    def lua(self) -> LuaRuntime:
        """The underlying lupa runtime."""
        return self.vm.runtime

    # =========================================================================
    # Conversion
    # =========================================================================

    def to_lua(self, value: Any, proxy: bool = False) -> Any:
        """Convert a Python value for Lua.

        Args:
            value: Any Python value
            proxy: Proxy composites with identity (lists, dicts, objects,
                Ref-addressed tuples) and named scalars instead of copying them

        Returns:
            A value lupa pushes as the intended Lua value
        """
        return self._to_lua.convert(value, proxy)

    def to_lua_proxy(self, value: Any) -> Any:
        """Convert a Python value for Lua in proxy mode."""
        return self._to_lua.convert(value, True)

    def from_lua(self, value: Any, hint: Any = Any) -> Any:
        """Convert a Lua value into the type described by `hint`."""
        return self._from_lua.convert(value, hint)

    def lua_to_py(self, value: Any, dest: Ref) -> None:
        """Convert a Lua value into dest.value, typed by dest.hint."""
        self._from_lua.lua_to_py(value, dest)

    # =========================================================================
    # Registration and execution
    # =========================================================================

    def register(self, table: Union[str, Any, None], values: Mapping[str, Any]) -> Any:
        """Install named values into globals ('' or None), a named global table, or a Lua table."""
        return register(self, table, values)

    def globals(self) -> Any:
        return self.vm.globals()

    def execute(self, code: str, *args) -> Any:
        """Run a Lua chunk; extra arguments are available to it as `...`."""
        return self.lua.execute(code, *args)

    def eval(self, expression: str, *args) -> Any:
        """Evaluate a Lua expression."""
        return self.lua.eval(expression, *args)


def new_state(config: Optional[BridgeConfig] = None) -> LuaBridge:
    """Create a fresh runtime with the helper table installed."""
    return LuaBridge.open(config)
