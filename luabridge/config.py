"""
Bridge configuration.

Settings can be given explicitly, read from LUABRIDGE_* environment
variables, or loaded from a YAML file:

    # luabridge.yaml
    max_depth: 64
    helpers_table: bridge
    filter_private_attributes: false
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = 'LUABRIDGE_'


class BridgeConfig(BaseModel):
    """Settings for a LuaBridge and its converters."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    # Nesting limit for both conversion directions
    max_depth: int = Field(100, gt=0)

    # Encoding used by lupa for Lua strings (None = pass bytes through)
    encoding: Optional[str] = 'UTF-8'

    # lupa runtime options
    register_eval: bool = False
    register_builtins: bool = False

    # Block __dunder__ and _private attribute access on proxies
    filter_private_attributes: bool = True

    # Name of the global helper table installed by LuaBridge.open()
    helpers_table: str = Field('luabridge', min_length=1)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'BridgeConfig':
        """Build a config from LUABRIDGE_<FIELD> environment variables.

        Unset variables keep their defaults. LUABRIDGE_LOG_* variables
        belong to luabridge.logging and are ignored here.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in environ:
                values[name] = _parse_env_value(environ[key])
        return cls(**values)


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type."""
    lower = value.lower()
    if lower in ('true', 'yes', 'on'):
        return True
    if lower in ('false', 'no', 'off'):
        return False
    if lower in ('none', 'null'):
        return None
    try:
        return int(value)
    except ValueError:
        pass
    return value


def load_config(path: Union[str, Path]) -> BridgeConfig:
    """Load a BridgeConfig from a YAML mapping file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the document is not a mapping
        pydantic.ValidationError: If a setting is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        return BridgeConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping, got {type(data).__name__}: {path}")
    return BridgeConfig(**data)
