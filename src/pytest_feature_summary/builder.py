"""HTML summary generation from aggregated feature results."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pytest_feature_summary.aggregator import ResultAggregator, ResultMap, feature_record
from pytest_feature_summary.config import ConfigResolver
from pytest_feature_summary.errors import FeatureSummaryError, ReportWriteFailure
from pytest_feature_summary.models import (
    DEFAULT_CREDENTIAL,
    CredentialPair,
    FeatureRecord,
    FeatureSummary,
    RunSummary,
    Status,
)
from pytest_feature_summary.output import write_report
from pytest_feature_summary.resources import (
    ReportAssets,
    ResourceLoader,
    load_assets,
    load_resource,
)
from pytest_feature_summary.template import (
    DURATION_ROW,
    ENVIRONMENT_ROW,
    EXECUTED_BY_ROW,
    FEATURE_SLOT,
    OS_BROWSER_ROW,
    SUBTOTAL_SLOT,
    TESTCASE_SLOT,
    TIMESTAMP_ROW,
    TemplateEngine,
    TemplateFragments,
)
from pytest_feature_summary.timing import NO_DURATION, RunClock

log = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = "testReports/FeatureTestSummary.html"
DEFAULT_REPORT_TITLE = "Feature Test Summary"
DEFAULT_TIMESTAMP_FORMAT = "%A, %d-%b-%Y %H:%M:%S %Z"
DEFAULT_TIME_ZONE = "Asia/Kolkata"

# Skeleton placeholder -> (config key, default)
_STYLE_SETTINGS: dict[str, tuple[str, str]] = {
    "$defaultHeadingBgColor": ("heading.background.color", "#23436a"),
    "$defaultHeadingColor": ("heading.color", "#ffffff"),
    "$defaultSubTotalBgColor": ("subtotal.background.color", "#cbcbcb"),
    "$defaultSubTotalColor": ("subtotal.color", "#090909"),
    "$defaultScenarioTableHeadingBgColor": (
        "scenario.table.heading.background.color",
        "#efefef",
    ),
    "$defaultScenarioTableHeadingColor": ("scenario.table.heading.color", "#090909"),
    "$defaultMaxWidth": ("desktop.view.max.width", "1280"),
}

Sink = Callable[[str, str], object]


class BuildStage(Enum):
    IDLE = "idle"
    SKELETON_LOADED = "skeleton-loaded"
    EXTRACTED = "extracted"
    PER_FEATURE_ASSEMBLED = "per-feature-assembled"
    FINALIZED = "finalized"
    WRITTEN = "written"


def scenario_color(status: Status) -> str:
    if status is Status.PASSED:
        return "pass-color"
    if status is Status.SKIPPED:
        return "skip-color"
    return "fail-color"


class ReportBuilder:
    """Turns one aggregator snapshot into the summary document.

    Generation runs at most once per builder; the stages advance linearly
    and any failure leaves the pass without output.
    """

    def __init__(
        self,
        aggregator: ResultAggregator,
        config: ConfigResolver,
        *,
        clock: RunClock | None = None,
        engine: TemplateEngine | None = None,
        loader: ResourceLoader = load_resource,
        sink: Sink = write_report,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.config = config
        self.clock = clock
        self.engine = engine if engine is not None else TemplateEngine()
        self.loader = loader
        self.sink = sink
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.stage = BuildStage.IDLE
        self.features: list[FeatureSummary] = []
        self.run: RunSummary | None = None
        self.report_path: str | None = None

    def generate(self) -> str | None:
        """Build and write the report. Returns the path written, if any."""
        if self.stage is not BuildStage.IDLE:
            log.warning("Report already generated in this run; ignoring")
            return None

        snapshot = self.aggregator.snapshot()
        if not snapshot:
            log.info("No results - skip report")
            return None

        try:
            document = self.build_document(snapshot)
        except FeatureSummaryError as exc:
            log.error("Report generation stopped: %s", exc)
            return None

        path = self.config.get_or_default("report.file.path", DEFAULT_REPORT_PATH)
        try:
            self.sink(path, document)
        except (ReportWriteFailure, OSError) as exc:
            log.error("Write report fail: %s", exc)
            return None
        self.stage = BuildStage.WRITTEN
        self.report_path = path
        log.info("Summary report written to %s", path)
        return path

    def build_document(self, snapshot: ResultMap) -> str:
        assets = load_assets(self.loader)
        skeleton = self.skeleton(assets)
        self.stage = BuildStage.SKELETON_LOADED

        fragments = self.engine.extract(skeleton)
        self.stage = BuildStage.EXTRACTED

        feature_blocks: list[str] = []
        self.features = []
        for number, (uri, scenarios) in enumerate(snapshot.items(), start=1):
            summary, block = self._assemble_feature(fragments, number, uri, scenarios)
            self.features.append(summary)
            feature_blocks.append(block)
        self.stage = BuildStage.PER_FEATURE_ASSEMBLED

        self.run = RunSummary.from_features(self.features)
        subtotal = self.engine.instantiate(fragments.subtotal, _run_values(self.run))
        document = self.engine.instantiate(
            fragments.outer,
            {
                FEATURE_SLOT: "".join(feature_blocks),
                SUBTOTAL_SLOT: subtotal,
                "$overallPassCount": str(self.run.passed),
                "$overallFailCount": str(self.run.failed),
                "$overallCount": str(self.run.total),
                "$overallPassPercent": self.run.pass_percent,
            },
        )
        self.stage = BuildStage.FINALIZED
        return document

    def _assemble_feature(
        self,
        fragments: TemplateFragments,
        number: int,
        uri: str,
        scenarios: Mapping[str, Status],
    ) -> tuple[FeatureSummary, str]:
        rows: list[str] = []
        passed = failed = 0
        for index, (name, status) in enumerate(scenarios.items(), start=1):
            if status.is_pass:
                passed += 1
            else:
                failed += 1
            rows.append(
                self.engine.instantiate(
                    fragments.testcase,
                    {
                        "$tcKey": f"SC-{index:03d}",
                        "$tcName": name,
                        "$tcStatus": scenario_color(status),
                    },
                )
            )

        summary = FeatureSummary(
            number=number,
            name=self.display_name(self._record(uri)),
            passed=passed,
            failed=failed,
        )
        credential = self.credential(uri)
        block = self.engine.instantiate(
            fragments.feature,
            {
                TESTCASE_SLOT: "".join(rows),
                "$featureName": summary.name,
                "$username": credential.username,
                "$password": credential.password,
                "$passCount": str(summary.passed),
                "$failCount": str(summary.failed),
                "$totalCount": str(summary.total),
                "$featureStatus": summary.status_color,
                "$featurePassPercent": summary.pass_percent,
                "$featureNo": str(summary.number),
            },
        )
        return summary, block

    def _record(self, uri: str) -> FeatureRecord:
        record = self.aggregator.feature(uri)
        if record is None:
            log.debug("No source metadata for %s; deriving from uri", uri)
            record = feature_record(uri, uri.split("/"))
        return record

    def display_name(self, record: FeatureRecord) -> str:
        if self.config.get_bool("use.declared.name", False):
            return record.declared_name
        if self.config.get_bool("use.grouping.name", True) and record.grouping_name:
            return f"{record.grouping_name} - {record.file_stem_name}"
        return record.file_stem_name

    def credential(self, uri: str) -> CredentialPair:
        registered = self.aggregator.credential(uri)
        if registered is not None:
            return registered
        return CredentialPair(
            self.config.get_or_default("test.user", DEFAULT_CREDENTIAL),
            self.config.get_or_default("test.password", DEFAULT_CREDENTIAL),
        )

    def skeleton(self, assets: ReportAssets) -> str:
        """Inline styles and scripts, then apply title, colours and optional rows."""
        cfg = self.config
        document = self.engine.instantiate(
            assets.skeleton,
            {"$styleGoesHere": assets.styles, "$scriptGoesHere": assets.scripts},
        )
        values = {
            token: cfg.get_or_default(key, default)
            for token, (key, default) in _STYLE_SETTINGS.items()
        }
        values["$reportTitle"] = cfg.get_or_default("report.title", DEFAULT_REPORT_TITLE)
        document = self.engine.instantiate(document, values)

        toggle = self.engine.toggle_row
        document = toggle(
            document, ENVIRONMENT_ROW, cfg.get("env.url"), cfg.get_bool("show.env", False)
        )
        document = toggle(
            document,
            OS_BROWSER_ROW,
            cfg.get("os.browser"),
            cfg.get_bool("show.os.browser", False),
        )
        document = toggle(
            document,
            EXECUTED_BY_ROW,
            cfg.get("executed.by"),
            cfg.get_bool("show.executed.by", False),
        )
        show_timestamp = cfg.get_bool("show.execution.timestamp", True)
        document = toggle(
            document,
            TIMESTAMP_ROW,
            self.timestamp() if show_timestamp else None,
            show_timestamp,
        )
        duration = self.clock.duration() if self.clock is not None else NO_DURATION
        document = toggle(
            document,
            DURATION_ROW,
            duration if duration != NO_DURATION else None,
            cfg.get_bool("show.duration", True),
        )
        return document

    def timestamp(self) -> str:
        zone_name = self.config.get_or_default("time.zone", DEFAULT_TIME_ZONE)
        zone: tzinfo
        try:
            zone = ZoneInfo(zone_name)
        except (ZoneInfoNotFoundError, ValueError):
            log.warning("Unknown time zone %r; using UTC", zone_name)
            zone = timezone.utc
        fmt = self.config.get_or_default("time.stamp.format", DEFAULT_TIMESTAMP_FORMAT)
        return self._now().astimezone(zone).strftime(fmt)

    @property
    def generated(self) -> bool:
        return self.stage is BuildStage.WRITTEN


def _run_values(run: RunSummary) -> dict[str, str]:
    return {
        "$overallPassCount": str(run.passed),
        "$overallFailCount": str(run.failed),
        "$overallCount": str(run.total),
        "$overallStatus": run.status_color,
        "$overallPassPercent": run.pass_percent,
    }
