"""Thread-safe store of scenario outcomes collected during a run."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from pytest_feature_summary.models import (
    MISSING_FEATURE_NAME,
    CredentialPair,
    FeatureRecord,
    Status,
)

OUTLINE_KEYWORDS = frozenset({"Scenario Outline", "Scenario Template"})

ResultMap = Mapping[str, Mapping[str, Status]]


def scenario_key(name: str, keyword: str, line: int) -> str:
    """Key a scenario so every outline example gets its own row."""
    if keyword in OUTLINE_KEYWORDS:
        return f"{name} #{line}"
    return name


def grouping_name(path_segments: list[str] | tuple[str, ...]) -> str:
    """Name of the folder holding the feature, minus generic feature folders."""
    if len(path_segments) < 2:
        return ""
    folder = path_segments[-2]
    if ":" in folder:
        folder = folder.split(":", 1)[1]
    if folder.lower() in ("feature", "features"):
        return ""
    return folder


def file_stem(path_segments: list[str] | tuple[str, ...]) -> str:
    if not path_segments:
        return ""
    return path_segments[-1].split(".")[0]


def declared_name(names: Iterable[str | None]) -> str:
    for name in names:
        if name:
            return name
    return MISSING_FEATURE_NAME


def feature_record(
    uri: str,
    path_segments: list[str] | tuple[str, ...],
    declared_names: Iterable[str | None] = (),
) -> FeatureRecord:
    return FeatureRecord(
        uri=uri,
        grouping_name=grouping_name(path_segments),
        file_stem_name=file_stem(path_segments),
        declared_name=declared_name(declared_names),
    )


class ResultAggregator:
    """Collects feature metadata, scenario outcomes and display credentials.

    One instance lives for one run. Writers may call in from several
    threads; a single lock guards every map so first-touch creation of a
    feature's scenario map cannot lose an update and ``snapshot`` never
    sees a half-written feature.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: dict[str, dict[str, Status]] = {}
        self._features: dict[str, FeatureRecord] = {}
        self._credentials: dict[str, CredentialPair] = {}

    def record_feature_metadata(
        self,
        uri: str,
        path_segments: list[str] | tuple[str, ...],
        declared_names: Iterable[str | None] = (),
    ) -> FeatureRecord:
        record = feature_record(uri, path_segments, declared_names)
        with self._lock:
            self._features[uri] = record
        return record

    def record_scenario_outcome(self, uri: str, key: str, status: Status) -> None:
        with self._lock:
            scenarios = self._results.get(uri)
            if scenarios is None:
                scenarios = self._results[uri] = {}
            scenarios[key] = status

    def register_credential(self, uri: str, username: str, password: str) -> None:
        with self._lock:
            self._credentials[uri] = CredentialPair(username, password)

    def snapshot(self) -> ResultMap:
        """Deep, read-only copy of the results as of now."""
        with self._lock:
            copy = {uri: MappingProxyType(dict(sc)) for uri, sc in self._results.items()}
        return MappingProxyType(copy)

    def feature(self, uri: str) -> FeatureRecord | None:
        with self._lock:
            return self._features.get(uri)

    def credential(self, uri: str) -> CredentialPair | None:
        with self._lock:
            return self._credentials.get(uri)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
