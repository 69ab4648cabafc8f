"""Exceptions raised by the conversion engine."""

from typing import Optional


class BridgeError(Exception):
    """Base class for luabridge errors."""


class LuaToPyError(BridgeError, TypeError):
    """Raised when a Lua value cannot be converted to the destination type.

    Attributes:
        lua: Name of the offending Lua type (or of the proxied Python type)
        destination: Description of the destination type
    """

    def __init__(self, lua: str, destination: str, reason: Optional[str] = None):
        self.lua = lua
        self.destination = destination
        self.reason = reason
        message = f"cannot convert {lua} to {destination}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotADestinationError(BridgeError, TypeError):
    """Raised when lua_to_py() is not given a settable Ref destination."""

    def __init__(self, dest: object):
        self.dest = dest
        super().__init__(f"not a destination reference: {type(dest).__name__}")


class ConversionDepthError(BridgeError, RecursionError):
    """Raised when a value graph is nested deeper than the configured limit."""

    def __init__(self, max_depth: int, direction: str):
        self.max_depth = max_depth
        self.direction = direction
        super().__init__(f"{direction} conversion exceeded max depth {max_depth}")
