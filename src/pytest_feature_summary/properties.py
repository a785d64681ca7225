"""Process-wide property registry.

Plays the role of JVM-style system properties: anything in the process can
set a ``feature.summary.<key>`` property at any time, and the config
resolver reads it live on every lookup.
"""

from __future__ import annotations

import threading

PROPERTY_PREFIX = "feature.summary."

_lock = threading.Lock()
_properties: dict[str, str] = {}


def set_property(name: str, value: str) -> None:
    with _lock:
        _properties[name] = value


def get_property(name: str) -> str | None:
    with _lock:
        return _properties.get(name)


def clear_property(name: str) -> None:
    with _lock:
        _properties.pop(name, None)


def snapshot_properties() -> dict[str, str]:
    """Copy of every property currently set."""
    with _lock:
        return dict(_properties)


def parse_property_option(option: str) -> tuple[str, str] | None:
    """Split a ``KEY=VALUE`` command line option; ``None`` if malformed."""
    if "=" not in option:
        return None
    key, value = option.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip()
