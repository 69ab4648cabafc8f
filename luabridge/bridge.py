"""
Function bridge: Python callables exposed as Lua functions.

A wrapped callable converts its Lua arguments to the declared parameter
types, runs, and converts its results back in proxy mode:

    def move(x: int, y: int, *tags: str) -> tuple[int, int]:
        ...

    bridge.globals().move = bridge.to_lua(move)
    -- Lua
    local x, y = move(1.9, 2, "fast", "quiet")   -- move(1, 2, "fast", "quiet")

Any failure (argument conversion or an exception raised by the callable)
is turned into a Lua error raised at the calling script line; it never
escapes into the Python code that started the Lua call as anything other
than a LuaError.
"""

import inspect
import typing
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Tuple

from luabridge.logging import get_logger
from luabridge.types import DYNAMIC, Ref, TypeDescriptor, describe, is_value_struct

if TYPE_CHECKING:
    from luabridge.lua.engine import LuaBridge

log = get_logger('bridge')

_EMPTY = inspect.Parameter.empty
_UNDECLARED = object()


def raw_function(fn: Callable) -> Callable:
    """Mark a callable to be handed to Lua without the bridge.

    Raw functions receive arguments exactly as lupa converts them (Lua
    tables stay lupa tables) and lupa pushes their return values.
    """
    fn.__lua_raw__ = True
    return fn


@dataclass(frozen=True)
class Param:
    """A positional parameter of a bridged callable."""
    name: str
    descriptor: TypeDescriptor
    default: Any = _EMPTY


@dataclass(frozen=True)
class CallSignature:
    """What the bridge needs to know about a callable's parameters and result."""
    params: Tuple[Param, ...]
    variadic: Optional[TypeDescriptor]
    returns: Any = _UNDECLARED


def signature_of(fn: Callable) -> CallSignature:
    """Read parameter types from a callable's signature and annotations.

    Callables without an inspectable signature take any number of
    dynamically typed arguments.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return CallSignature(params=(), variadic=DYNAMIC)

    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        hints = {}

    params: List[Param] = []
    variadic = None
    for p in sig.parameters.values():
        hint = hints.get(p.name, Any)
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
            params.append(Param(p.name, describe(hint), p.default))
        elif p.kind is p.VAR_POSITIONAL:
            variadic = describe(hint)

    returns = _UNDECLARED
    if sig.return_annotation is not _EMPTY:
        returns = hints.get('return', sig.return_annotation)
    return CallSignature(tuple(params), variadic, returns)


def _callable_name(fn: Callable) -> str:
    return getattr(fn, '__qualname__', None) or getattr(fn, '__name__', None) or repr(fn)


class FunctionBridge:
    """Wraps Python callables as Lua functions for one LuaBridge."""

    def __init__(self, bridge: 'LuaBridge'):
        self._bridge = bridge
        self._vm = bridge.vm

    def wrap(self, fn: Callable) -> Any:
        """Return a Lua function calling `fn` through the bridge."""
        if getattr(fn, '__lua_raw__', False):
            return fn

        sig = signature_of(fn)
        name = _callable_name(fn)
        log.debug("Wrapping %s (%d params, variadic=%s)", name, len(sig.params), sig.variadic)

        def call(*args):
            log.lua_call(name, *args)
            try:
                call_args = self._arguments(sig, args)
            except Exception as exc:
                log.log_traceback(exc)
                return self._vm.error_record(f"cannot convert function arguments: {exc}")
            try:
                result = fn(*call_args)
                values = self._results(sig, result)
            except Exception as exc:
                log.log_traceback(exc)
                return self._vm.error_record(f"error {type(exc).__name__}: {exc}")
            log.lua_result(name, result)
            return self._vm.result_record(values)

        return self._vm.fallible(call)

    def _arguments(self, sig: CallSignature, args: Sequence[Any]) -> List[Any]:
        """Convert Lua arguments to the callable's parameter types.

        A missing or nil argument takes the parameter's default if it has
        one, and the parameter type's zero value otherwise. Extra arguments
        go to the variadic parameter, or are dropped without one.
        """
        call_args = []
        for i, param in enumerate(sig.params):
            value = args[i] if i < len(args) else None
            if value is None and param.default is not _EMPTY:
                call_args.append(param.default)
            else:
                call_args.append(self._bridge.from_lua(value, param.descriptor))

        if sig.variadic is not None:
            for value in args[len(sig.params):]:
                call_args.append(self._bridge.from_lua(value, sig.variadic))
        return call_args

    def _results(self, sig: CallSignature, result: Any) -> List[Any]:
        """Convert a return value into the list of Lua results."""
        if result is None and sig.returns in (_UNDECLARED, type(None), None):
            return []
        if isinstance(result, tuple) and not is_value_struct(result):
            values = list(result)
        else:
            values = [result]

        converted = []
        for value in values:
            # A struct returned by value would otherwise be copied into a
            # table and lose its methods
            if is_value_struct(value):
                value = Ref(value)
            converted.append(self._bridge.to_lua(value, proxy=True))
        return converted
