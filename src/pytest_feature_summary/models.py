"""Data models for feature summary reporting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_CREDENTIAL = "---"
MISSING_FEATURE_NAME = "Feature name missing"


class Status(str, Enum):
    """Terminal outcome of a scenario."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"
    UNDEFINED = "undefined"
    AMBIGUOUS = "ambiguous"
    UNUSED = "unused"

    @property
    def is_pass(self) -> bool:
        return self is Status.PASSED


@dataclass(frozen=True)
class FeatureRecord:
    """Static metadata about one feature source."""

    uri: str
    grouping_name: str
    file_stem_name: str
    declared_name: str


@dataclass(frozen=True)
class CredentialPair:
    """Display-only login shown next to a feature."""

    username: str
    password: str


# Signals emitted by the host test runner.


@dataclass(frozen=True)
class SourceParsed:
    uri: str
    path_segments: tuple[str, ...]
    declared_names: tuple[str | None, ...] = ()


@dataclass(frozen=True)
class CaseStarted:
    uri: str
    name: str


@dataclass(frozen=True)
class CaseFinished:
    uri: str
    name: str
    keyword: str
    line: int
    status: Status


@dataclass(frozen=True)
class RunFinished:
    pass


def format_percent(passed: int, total: int) -> str:
    """Pass percentage with two decimals, ``0.00%`` when nothing ran."""
    if total == 0:
        return "0.00%"
    return f"{passed / total * 100:.2f}%"


@dataclass(frozen=True)
class FeatureSummary:
    """Tallies for a single feature."""

    number: int
    name: str
    passed: int
    failed: int

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def pass_percent(self) -> str:
        return format_percent(self.passed, self.total)

    @property
    def status_color(self) -> str:
        return "pass-color" if self.total > 0 and self.failed == 0 else "fail-color"


@dataclass(frozen=True)
class RunSummary:
    """Run-wide tallies, the sum over every feature."""

    passed: int
    failed: int

    @classmethod
    def from_features(cls, features: list[FeatureSummary]) -> RunSummary:
        return cls(
            passed=sum(f.passed for f in features),
            failed=sum(f.failed for f in features),
        )

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def pass_percent(self) -> str:
        return format_percent(self.passed, self.total)

    @property
    def status_color(self) -> str:
        return "pass-color" if self.total > 0 and self.failed == 0 else "fail-color"
