"""Interpreter settings with YAML file and environment variable overrides.

Settings are resolved in this order, later sources winning:
- Built-in defaults
- A YAML mapping, from an explicit path or the file named by FACTCONF_SETTINGS
- FACTCONF_DEBUG for the debug level

Example settings file:
    debug: 1
    max_import_depth: 16
    widen_int_to_double: true
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

__all__ = [
    "FACTCONF_SETTINGS",
    "FACTCONF_DEBUG",
    "InterpreterSettings",
    "load_settings",
]

# Environment variable naming a YAML settings file
FACTCONF_SETTINGS = "FACTCONF_SETTINGS"

# Environment variable overriding the debug level
FACTCONF_DEBUG = "FACTCONF_DEBUG"


@dataclass(frozen=True)
class InterpreterSettings:
    """Tunable interpreter behaviour."""
    debug: int = 0
    max_import_depth: int = 32
    max_nesting_depth: int = 64
    widen_int_to_double: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "InterpreterSettings":
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"unknown setting(s): {', '.join(unknown)}")
        values: Dict[str, Any] = {}
        for name, value in data.items():
            default = getattr(cls, name)
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ValueError(f"setting '{name}' must be true or false, got {value!r}")
            elif isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"setting '{name}' must be an integer, got {value!r}")
            elif value < 0:
                raise ValueError(f"setting '{name}' must not be negative, got {value}")
            values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_settings(path: Optional[Path | str] = None) -> InterpreterSettings:
    """Load settings from `path`, or from $FACTCONF_SETTINGS if set.

    Raises:
        FileNotFoundError: if the settings file does not exist
        ValueError: if the file is not a mapping of known settings
    """
    if path is None:
        path = os.environ.get(FACTCONF_SETTINGS) or None

    settings = InterpreterSettings()
    if path is not None:
        settings_path = Path(path)
        if not settings_path.exists():
            raise FileNotFoundError(f"settings file not found: {settings_path}")
        with settings_path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ValueError(f"settings file {settings_path} must contain a mapping")
        settings = InterpreterSettings.from_mapping(data)

    debug = os.environ.get(FACTCONF_DEBUG)
    if debug:
        try:
            settings = replace(settings, debug=int(debug))
        except ValueError:
            raise ValueError(f"{FACTCONF_DEBUG} must be an integer, got {debug!r}")
    return settings
