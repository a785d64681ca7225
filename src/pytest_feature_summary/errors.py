"""Exceptions raised inside the report pipeline.

None of these escape into the host test session: the builder catches them,
logs a diagnostic and skips the report.
"""

from __future__ import annotations


class FeatureSummaryError(Exception):
    """Base class for report generation failures."""


class TemplateAssetMissing(FeatureSummaryError):
    """A skeleton, stylesheet or script asset could not be loaded."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Template asset {name} missing")
        self.name = name


class MalformedTemplate(FeatureSummaryError):
    """Fragment markers in the skeleton are missing or unbalanced."""


class ReportWriteFailure(FeatureSummaryError):
    """The report could not be written to its destination."""

    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(f"Could not write report to {path}: {cause}")
        self.path = path
        self.cause = cause
