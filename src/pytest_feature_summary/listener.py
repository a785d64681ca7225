"""Host-neutral event handlers feeding the summary report."""

from __future__ import annotations

import logging
from pathlib import Path

from pytest_feature_summary.aggregator import ResultAggregator, scenario_key
from pytest_feature_summary.builder import ReportBuilder
from pytest_feature_summary.config import ConfigResolver
from pytest_feature_summary.models import (
    CaseFinished,
    CaseStarted,
    RunFinished,
    SourceParsed,
)
from pytest_feature_summary.timing import RunClock

log = logging.getLogger(__name__)


class SummaryReporter:
    """Receives runner signals and writes the report once the run finishes.

    Any runner able to emit ``SourceParsed``, ``CaseFinished`` and
    ``RunFinished`` can drive it; the pytest plugin is one such runner.
    """

    def __init__(
        self,
        arg_string: str | None = None,
        *,
        properties_file: Path | str | None = None,
        aggregator: ResultAggregator | None = None,
        config: ConfigResolver | None = None,
        builder: ReportBuilder | None = None,
    ) -> None:
        self.aggregator = aggregator if aggregator is not None else ResultAggregator()
        if config is None:
            config = ConfigResolver(arg_string, properties_file=properties_file)
        self.config = config
        clock = RunClock()
        if builder is None:
            builder = ReportBuilder(self.aggregator, self.config, clock=clock)
        elif builder.clock is None:
            builder.clock = clock
        else:
            clock = builder.clock
        self.builder = builder
        self.clock = clock

    def on_run_started(self) -> None:
        self.clock.mark_start()

    def on_source_parsed(self, event: SourceParsed) -> None:
        self.aggregator.record_feature_metadata(
            event.uri, event.path_segments, event.declared_names
        )

    def on_case_started(self, event: CaseStarted) -> None:
        log.debug("Started: %s", event.name)

    def on_case_finished(self, event: CaseFinished) -> None:
        key = scenario_key(event.name, event.keyword, event.line)
        self.aggregator.record_scenario_outcome(event.uri, key, event.status)

    def on_run_finished(self, event: RunFinished | None = None) -> str | None:
        self.clock.mark_end()
        try:
            return self.builder.generate()
        except Exception:
            # The host run must never fail because of the summary report.
            log.exception("Unexpected error while generating the summary report")
            return None
