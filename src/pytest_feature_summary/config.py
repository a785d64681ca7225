"""Layered configuration for the summary report.

Override precedence, highest to lowest:

1. the argument string (``env.url=https://stg;show.env=true``)
2. live properties (``feature.summary.env.url``), re-read on every lookup
3. environment variables (``FEATURE_SUMMARY_ENV_URL``)
4. a ``feature-summary.properties`` file

Lookups that miss every layer return the caller's fallback.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path

from pytest_feature_summary import properties

log = logging.getLogger(__name__)

ENV_PREFIX = "FEATURE_SUMMARY_"
DEFAULT_PROPERTIES_FILE = "feature-summary.properties"

_ARG_SEPARATORS = re.compile(r"[;&]")
_KEY_SEPARATOR = re.compile(r"[=:]")


def parse_args(arg_string: str | None) -> dict[str, str]:
    """Parse ``key=value`` entries joined by ``;`` or ``&``.

    Entries without ``=`` are dropped one at a time; the rest still apply.
    """
    parsed: dict[str, str] = {}
    if arg_string is None or not arg_string.strip():
        return parsed
    for entry in _ARG_SEPARATORS.split(arg_string):
        if "=" not in entry:
            if entry.strip():
                log.debug("Ignoring malformed argument entry %r", entry)
            continue
        key, value = entry.split("=", 1)
        parsed[key.strip()] = value.strip()
    return parsed


def env_key(name: str) -> str:
    """``FEATURE_SUMMARY_ENV_URL`` -> ``env.url``."""
    return name[len(ENV_PREFIX):].lower().replace("_", ".")


def parse_properties(text: str) -> dict[str, str]:
    """Parse a flat ``key=value`` properties document."""
    parsed: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", "!")):
            continue
        # The first separator wins, whichever it is.
        parts = _KEY_SEPARATOR.split(line, maxsplit=1)
        if len(parts) != 2:
            log.debug("Ignoring properties line without separator: %r", line)
            continue
        key, value = parts
        parsed[key.strip()] = value.strip()
    return parsed


def parse_bool(value: str | None) -> bool:
    """Only a case-insensitive ``true`` is true."""
    return value is not None and value.strip().lower() == "true"


class SnapshotProvider:
    """A layer whose values are captured once, at construction."""

    def __init__(self, name: str, values: Mapping[str, str]) -> None:
        self.name = name
        self._values = dict(values)

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(self._values.items())


class ArgumentProvider(SnapshotProvider):
    def __init__(self, arg_string: str | None) -> None:
        super().__init__("arguments", parse_args(arg_string))


class EnvironmentProvider(SnapshotProvider):
    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        if environ is None:
            environ = os.environ
        super().__init__(
            "environment",
            {env_key(k): v for k, v in environ.items() if k.startswith(ENV_PREFIX)},
        )


class FileProvider(SnapshotProvider):
    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else Path(DEFAULT_PROPERTIES_FILE)
        super().__init__("file", self._load(self.path))

    @staticmethod
    def _load(path: Path) -> dict[str, str]:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.debug("No properties file at %s", path)
            return {}
        except OSError as exc:
            log.warning("Could not read properties file %s: %s", path, exc)
            return {}
        values = parse_properties(text)
        log.debug("Loaded %d value(s) from %s", len(values), path)
        return values


class PropertyProvider:
    """The live layer. Nothing is cached: every ``get`` re-reads the store."""

    name = "properties"

    def __init__(
        self,
        lookup: Callable[[str], str | None] = properties.get_property,
        listing: Callable[[], Mapping[str, str]] = properties.snapshot_properties,
        prefix: str = properties.PROPERTY_PREFIX,
    ) -> None:
        self._lookup = lookup
        self._listing = listing
        self.prefix = prefix

    def get(self, key: str) -> str | None:
        return self._lookup(self.prefix + key)

    def items(self) -> Iterator[tuple[str, str]]:
        for name, value in self._listing().items():
            if name.startswith(self.prefix):
                yield name[len(self.prefix):], value


class ConfigResolver:
    """Chain of providers consulted in fixed precedence order per lookup."""

    def __init__(
        self,
        arg_string: str | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        property_provider: PropertyProvider | None = None,
        properties_file: Path | str | None = None,
    ) -> None:
        if property_provider is None:
            property_provider = PropertyProvider()
        self._property_provider = property_provider
        self._environment = EnvironmentProvider(environ)
        self._file = FileProvider(properties_file)
        self.providers: list[SnapshotProvider | PropertyProvider] = []
        self._chain(ArgumentProvider(arg_string))

    def _chain(self, arguments: ArgumentProvider) -> None:
        self.providers = [arguments, self._property_provider, self._environment, self._file]

    def resolve(self, arg_string: str | None) -> dict[str, str]:
        """Replace the argument layer and return the merged configuration."""
        self._chain(ArgumentProvider(arg_string))
        merged: dict[str, str] = {}
        for provider in reversed(self.providers):
            merged.update(provider.items())
        return merged

    def get(self, key: str) -> str | None:
        for provider in self.providers:
            value = provider.get(key)
            if value is not None:
                return value
        return None

    def get_or_default(self, key: str, fallback: str) -> str:
        value = self.get(key)
        return fallback if value is None else value

    def get_bool(self, key: str, fallback: bool) -> bool:
        value = self.get(key)
        if value is None:
            return fallback
        return parse_bool(value)
