"""
luabridge logging

Per-module log levels plus special tracing for calls crossing the
Python/Lua boundary.

Usage:
    from luabridge.logging import get_logger

    log = get_logger('bridge')
    log.debug("Wrapping %s", fn)
    log.lua_call("greet", "world")     # Only when Lua call tracing is on
    log.lua_result("greet", "hello")

Configuration:
    Environment variables:
        LUABRIDGE_LOG_LEVEL=DEBUG          # Global default level
        LUABRIDGE_LOG_FROM_LUA=TRACE       # Module-specific level
        LUABRIDGE_LOG_LUA_CALLS=1          # Trace bridged calls

    Or programmatically:
        from luabridge.logging import configure_logging
        configure_logging(level='DEBUG', modules={'to_lua': 'TRACE'})
"""

import os
import sys
import traceback
from enum import IntEnum
from functools import lru_cache
from typing import Any, Dict, Optional


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""
    TRACE = 5      # Even more verbose than DEBUG
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
    OFF = 100      # Disable logging


ENV_PREFIX = 'LUABRIDGE_LOG_'

_config: Dict[str, Any] = {
    'default_level': LogLevel.WARNING,
    'module_levels': {},
    'lua_calls': False,      # Trace bridged calls from Lua
}


def _format_message(module: str, level: str, msg: str) -> str:
    """Format a log message."""
    return f"[{module}] {level}: {msg}"


def _level_from_string(level_str: str) -> LogLevel:
    """Convert string to LogLevel."""
    mapping = {
        'TRACE': LogLevel.TRACE,
        'DEBUG': LogLevel.DEBUG,
        'INFO': LogLevel.INFO,
        'WARNING': LogLevel.WARNING,
        'WARN': LogLevel.WARNING,
        'ERROR': LogLevel.ERROR,
        'CRITICAL': LogLevel.CRITICAL,
        'OFF': LogLevel.OFF,
    }
    return mapping.get(level_str.upper(), LogLevel.INFO)


def _is_truthy(value: str) -> bool:
    return value.lower() in ('1', 'true', 'yes', 'on')


def configure_logging(
    level: str = 'WARNING',
    modules: Optional[Dict[str, str]] = None,
    lua_calls: bool = False,
) -> None:
    """
    Configure the logging system.

    Args:
        level: Default log level for all modules
        modules: Dict of module_name -> level for per-module configuration
        lua_calls: Enable tracing of bridged calls made from Lua
    """
    _config['default_level'] = _level_from_string(level)

    if modules:
        for mod, mod_level in modules.items():
            _config['module_levels'][mod.lower()] = _level_from_string(mod_level)

    _config['lua_calls'] = lua_calls


def _load_env_config() -> None:
    """Load configuration from environment variables.

    LUABRIDGE_LOG_LEVEL sets the default level, LUABRIDGE_LOG_LUA_CALLS
    toggles call tracing, and any other LUABRIDGE_LOG_<MODULE> sets the
    level of that module (LUABRIDGE_LOG_TO_LUA=TRACE -> to_lua: TRACE).
    """
    level_key = ENV_PREFIX + 'LEVEL'
    calls_key = ENV_PREFIX + 'LUA_CALLS'

    if level_key in os.environ:
        _config['default_level'] = _level_from_string(os.environ[level_key])

    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX) and key not in (level_key, calls_key):
            module_name = key[len(ENV_PREFIX):].lower()
            _config['module_levels'][module_name] = _level_from_string(value)

    _config['lua_calls'] = _is_truthy(os.environ.get(calls_key, ''))


# Load env config on import
_load_env_config()


class BridgeLogger:
    """
    Logger for a specific module.

    Provides standard log levels plus special methods for tracing calls
    that cross the Lua boundary.
    """

    def __init__(self, module: str):
        self.module = module
        self._module_key = module.lower().replace('.', '_').replace('/', '_')

    @property
    def level(self) -> LogLevel:
        """Get effective log level for this module."""
        if self._module_key in _config['module_levels']:
            return _config['module_levels'][self._module_key]
        return _config['default_level']

    def is_enabled_for(self, level: LogLevel) -> bool:
        """Check if message at given level should be logged."""
        return level >= self.level

    def _log(self, level: LogLevel, level_name: str, msg: str, *args) -> None:
        """Internal log method."""
        if not self.is_enabled_for(level):
            return

        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"

        print(_format_message(self.module, level_name, msg), file=sys.stderr)

    def trace(self, msg: str, *args) -> None:
        """Log at TRACE level (very verbose)."""
        self._log(LogLevel.TRACE, 'TRACE', msg, *args)

    def debug(self, msg: str, *args) -> None:
        """Log at DEBUG level."""
        self._log(LogLevel.DEBUG, 'DEBUG', msg, *args)

    def info(self, msg: str, *args) -> None:
        """Log at INFO level."""
        self._log(LogLevel.INFO, 'INFO', msg, *args)

    def warning(self, msg: str, *args) -> None:
        """Log at WARNING level."""
        self._log(LogLevel.WARNING, 'WARN', msg, *args)

    def error(self, msg: str, *args) -> None:
        """Log at ERROR level."""
        self._log(LogLevel.ERROR, 'ERROR', msg, *args)

    def log_traceback(self, exc: BaseException, level: LogLevel = LogLevel.DEBUG) -> None:
        """
        Log the traceback of an exception, one line per record.

        Args:
            exc: Exception to log
            level: Level to log the traceback lines at
        """
        if not self.is_enabled_for(level):
            return
        for chunk in traceback.format_exception(type(exc), exc, exc.__traceback__):
            for line in chunk.rstrip().split('\n'):
                self._log(level, 'TRACE', line)

    # Special Lua tracing methods

    def lua_call(self, fn_name: str, *args) -> None:
        """
        Log a bridged call made from Lua.

        Only logs if lua_calls tracing is enabled.
        """
        if not _config['lua_calls']:
            return

        args_str = ', '.join(repr(a) for a in args)
        self._log(LogLevel.DEBUG, 'LUA→', f"{fn_name}({args_str})")

    def lua_result(self, fn_name: str, result: Any) -> None:
        """
        Log the result of a bridged call.

        Only logs if lua_calls tracing is enabled.
        """
        if not _config['lua_calls']:
            return

        self._log(LogLevel.DEBUG, 'LUA←', f"{fn_name} = {result!r}")


@lru_cache(maxsize=64)
def get_logger(module: str) -> BridgeLogger:
    """
    Get a logger for the specified module.

    Loggers are cached, so calling get_logger('foo') multiple times
    returns the same logger instance.
    """
    return BridgeLogger(module)


def disable_logging() -> None:
    """Disable all logging."""
    _config['default_level'] = LogLevel.OFF
    _config['module_levels'].clear()
    _config['lua_calls'] = False
