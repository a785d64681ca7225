"""Nested-fragment templating for the summary skeleton.

The skeleton holds three repeatable regions, each delimited by a pair of
marker comments::

    <!--FeatureDetailsStart-->
      ... feature row ...
      <!--TcDetailsStart--> ... scenario row ... <!--TcDetailsEnd-->
    <!--FeatureDetailsEnd-->
    <!--SubTotalDetailsStart--> ... subtotal row ... <!--SubTotalDetailsEnd-->

``TemplateEngine.extract`` lifts the regions out and leaves slot tokens in
their place; ``TemplateEngine.instantiate`` fills a fragment by literal
token replacement.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from pytest_feature_summary.errors import MalformedTemplate

FEATURE_SLOT = "$insertFeat"
TESTCASE_SLOT = "$insertTc"
SUBTOTAL_SLOT = "$insertSub"


@dataclass(frozen=True)
class Region:
    name: str
    start: str
    end: str


FEATURE = Region("feature", "<!--FeatureDetailsStart-->", "<!--FeatureDetailsEnd-->")
TESTCASE = Region("testcase", "<!--TcDetailsStart-->", "<!--TcDetailsEnd-->")
SUBTOTAL = Region("subtotal", "<!--SubTotalDetailsStart-->", "<!--SubTotalDetailsEnd-->")


@dataclass(frozen=True)
class ConditionalRow:
    """An optional skeleton row: a CSS class token plus its value token."""

    row_token: str
    value_token: str


ENVIRONMENT_ROW = ConditionalRow("environmentRow", "$enterUrl")
OS_BROWSER_ROW = ConditionalRow("OsBrowserRow", "$enterOsBrowserName")
EXECUTED_BY_ROW = ConditionalRow("executedByRow", "$executedBy")
TIMESTAMP_ROW = ConditionalRow("TimeStampRow", "$enterTimeStamp")
DURATION_ROW = ConditionalRow("DurationRow", "$testDuration")


@dataclass(frozen=True)
class TemplateFragments:
    outer: str
    feature: str
    testcase: str
    subtotal: str


@dataclass(frozen=True)
class _Span:
    """Offsets of one region: ``outer`` includes the markers, ``inner`` not."""

    outer_start: int
    outer_end: int
    inner_start: int
    inner_end: int

    def contains(self, other: _Span) -> bool:
        return self.inner_start <= other.outer_start and other.outer_end <= self.inner_end


class TemplateEngine:
    def __init__(
        self,
        feature: Region = FEATURE,
        testcase: Region = TESTCASE,
        subtotal: Region = SUBTOTAL,
    ) -> None:
        self.feature = feature
        self.testcase = testcase
        self.subtotal = subtotal
        self._markers: dict[str, tuple[Region, bool]] = {}
        for region in (feature, testcase, subtotal):
            self._markers[region.start] = (region, True)
            self._markers[region.end] = (region, False)
        self._marker_pattern = _alternation(self._markers)

    def _scan(self, document: str) -> dict[str, _Span]:
        """Walk every marker in document order, tracking open regions on a stack.

        Inner regions close before the regions around them, so each span is
        recorded from real marker offsets and an outer region can never
        swallow part of an inner one. Only the first occurrence of each
        region is kept.
        """
        stack: list[tuple[Region, re.Match[str]]] = []
        spans: dict[str, _Span] = {}
        for match in self._marker_pattern.finditer(document):
            region, is_start = self._markers[match.group(0)]
            if is_start:
                stack.append((region, match))
                continue
            if not stack or stack[-1][0] != region:
                raise MalformedTemplate(
                    f"Unexpected {region.end} at offset {match.start()}"
                )
            _, opened = stack.pop()
            if region.name not in spans:
                spans[region.name] = _Span(
                    outer_start=opened.start(),
                    outer_end=match.end(),
                    inner_start=opened.end(),
                    inner_end=match.start(),
                )
        if stack:
            region, opened = stack[-1]
            raise MalformedTemplate(f"Unclosed {region.start} at offset {opened.start()}")
        for region in (self.feature, self.testcase, self.subtotal):
            if region.name not in spans:
                raise MalformedTemplate(f"Skeleton has no {region.name} region")
        return spans

    def extract(self, document: str) -> TemplateFragments:
        spans = self._scan(document)
        feature = spans[self.feature.name]
        testcase = spans[self.testcase.name]
        subtotal = spans[self.subtotal.name]
        if not feature.contains(testcase):
            raise MalformedTemplate("Testcase region must sit inside the feature region")
        if feature.contains(subtotal) or subtotal.contains(feature):
            raise MalformedTemplate("Subtotal and feature regions must not nest")

        testcase_fragment = document[testcase.inner_start:testcase.inner_end]
        feature_fragment = (
            document[feature.inner_start:testcase.outer_start]
            + TESTCASE_SLOT
            + document[testcase.outer_end:feature.inner_end]
        )
        subtotal_fragment = document[subtotal.inner_start:subtotal.inner_end]

        # Splice the later region first so earlier offsets stay valid.
        outer = document
        for span, slot in sorted(
            ((feature, FEATURE_SLOT), (subtotal, SUBTOTAL_SLOT)),
            key=lambda pair: pair[0].outer_start,
            reverse=True,
        ):
            outer = outer[:span.outer_start] + slot + outer[span.outer_end:]

        return TemplateFragments(
            outer=outer,
            feature=feature_fragment,
            testcase=testcase_fragment,
            subtotal=subtotal_fragment,
        )

    @staticmethod
    def instantiate(fragment: str, values: Mapping[str, str]) -> str:
        """Replace each supplied token in one pass; unknown tokens stay as-is.

        Substituted values are not rescanned within the pass, but a value
        carrying token text will be replaced if the result is instantiated
        again.
        """
        if not values:
            return fragment
        pattern = _alternation(values)
        return pattern.sub(lambda m: values[m.group(0)], fragment)

    @staticmethod
    def toggle_row(document: str, row: ConditionalRow, value: str | None, shown: bool) -> str:
        """Fill an optional row, or mark it ``hidden`` for the stylesheet."""
        if shown and value is not None:
            return document.replace(row.value_token, value)
        return document.replace(row.row_token, f"{row.row_token} hidden")


def _alternation(tokens: Mapping[str, object]) -> re.Pattern[str]:
    ordered = sorted(tokens, key=len, reverse=True)
    return re.compile("|".join(re.escape(token) for token in ordered))
