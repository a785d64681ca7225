"""pytest plugin entry point for the feature summary report."""

from __future__ import annotations

import logging

import pytest

from pytest_feature_summary import properties
from pytest_feature_summary.aggregator import ResultAggregator
from pytest_feature_summary.config import DEFAULT_PROPERTIES_FILE
from pytest_feature_summary.listener import SummaryReporter
from pytest_feature_summary.models import (
    CaseFinished,
    CaseStarted,
    RunFinished,
    SourceParsed,
    Status,
)
from pytest_feature_summary.output import format_terminal_report

log = logging.getLogger(__name__)

PLUGIN_NAME = "feature-summary-plugin"
SCENARIO_KEYWORD = "Scenario"


def pytest_addoption(parser):  # type: ignore[no-untyped-def]
    group = parser.getgroup("feature-summary", "feature summary report")
    group.addoption(
        "--feature-summary",
        action="store_true",
        default=False,
        help="Write an HTML feature summary report at the end of the run",
    )
    group.addoption(
        "--feature-summary-args",
        default=None,
        help="Report settings as key=value pairs joined by ';' or '&'",
    )
    group.addoption(
        "--feature-summary-property",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set a feature.summary.* property (repeatable)",
    )
    group.addoption(
        "--feature-summary-config",
        default=None,
        help=f"Properties file to read (default: <rootdir>/{DEFAULT_PROPERTIES_FILE})",
    )


def pytest_configure(config):  # type: ignore[no-untyped-def]
    for option in config.getoption("feature_summary_property", default=[]) or []:
        parsed = properties.parse_property_option(option)
        if parsed is None:
            log.warning("Ignoring malformed --feature-summary-property %r", option)
            continue
        properties.set_property(*parsed)
    if config.getoption("feature_summary", default=False):
        config.pluginmanager.register(FeatureSummaryPlugin(config), PLUGIN_NAME)


def _split_nodeid(nodeid: str) -> tuple[str, str]:
    """``tests/login.py::TestX::test_ok`` -> (``tests/login.py``, ``TestX::test_ok``)."""
    uri, _, name = nodeid.partition("::")
    return uri, name or uri


def _docstring_title(item) -> str | None:  # type: ignore[no-untyped-def]
    """First line of the test module's docstring, if it has one."""
    module = getattr(item, "module", None)
    doc = getattr(module, "__doc__", None)
    if not doc:
        return None
    for line in doc.strip().splitlines():
        if line.strip():
            return line.strip()
    return None


def _status_for(report) -> Status | None:  # type: ignore[no-untyped-def]
    """Map one phase report to a scenario status, or None if it decides nothing."""
    if report.when == "setup":
        if report.failed:
            return Status.FAILED
        if report.skipped:
            return Status.SKIPPED
        return None
    if report.when == "call":
        if report.passed:
            return Status.PASSED
        if report.skipped:
            return Status.SKIPPED
        return Status.FAILED
    if report.when == "teardown" and report.failed:
        return Status.FAILED
    return None


class FeatureSummaryPlugin:
    """Translates pytest hooks into summary reporter signals.

    Each test module is a feature; each test in it is a scenario.
    """

    def __init__(self, config):  # type: ignore[no-untyped-def]
        self.config = config
        properties_file = config.getoption("feature_summary_config", default=None)
        if properties_file is None:
            properties_file = config.rootpath / DEFAULT_PROPERTIES_FILE
        self.reporter = SummaryReporter(
            config.getoption("feature_summary_args", default=None),
            properties_file=properties_file,
        )
        self._parsed: set[str] = set()

    @property
    def aggregator(self) -> ResultAggregator:
        return self.reporter.aggregator

    def pytest_sessionstart(self, session):  # type: ignore[no-untyped-def]
        self.reporter.on_run_started()

    def pytest_collection_modifyitems(self, session, config, items):  # type: ignore[no-untyped-def]
        for item in items:
            uri, _ = _split_nodeid(item.nodeid)
            if uri in self._parsed:
                continue
            self._parsed.add(uri)
            self.reporter.on_source_parsed(
                SourceParsed(
                    uri=uri,
                    path_segments=tuple(uri.split("/")),
                    declared_names=(_docstring_title(item),),
                )
            )

    def pytest_runtest_logstart(self, nodeid, location):  # type: ignore[no-untyped-def]
        uri, name = _split_nodeid(nodeid)
        self.reporter.on_case_started(CaseStarted(uri=uri, name=name))

    def pytest_runtest_logreport(self, report):  # type: ignore[no-untyped-def]
        status = _status_for(report)
        if status is None:
            return
        uri, name = _split_nodeid(report.nodeid)
        line = report.location[1] + 1 if report.location[1] is not None else 0
        self.reporter.on_case_finished(
            CaseFinished(
                uri=uri, name=name, keyword=SCENARIO_KEYWORD, line=line, status=status
            )
        )

    def pytest_sessionfinish(self, session, exitstatus):  # type: ignore[no-untyped-def]
        self.reporter.on_run_finished(RunFinished())

    def pytest_terminal_summary(self, terminalreporter):  # type: ignore[no-untyped-def]
        builder = self.reporter.builder
        if not builder.generated or builder.run is None:
            return
        terminalreporter.write(
            format_terminal_report(builder.features, builder.run, builder.report_path)
        )


@pytest.fixture(scope="session")
def feature_summary(request) -> ResultAggregator:  # type: ignore[no-untyped-def]
    """Aggregator of the active summary report.

    Lets tests register display credentials for their module::

        feature_summary.register_credential("tests/login.py", "alice", "s3cret")

    Without ``--feature-summary`` a detached aggregator is returned.
    """
    plugin = request.config.pluginmanager.get_plugin(PLUGIN_NAME)
    if plugin is None:
        return ResultAggregator()
    return plugin.aggregator
