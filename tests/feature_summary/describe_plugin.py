"""Tests for pytest_feature_summary.plugin — pytest hook translation."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

from pytest_feature_summary import properties
from pytest_feature_summary.aggregator import ResultAggregator
from pytest_feature_summary.models import Status
from pytest_feature_summary.plugin import (
    PLUGIN_NAME,
    FeatureSummaryPlugin,
    _docstring_title,
    _split_nodeid,
    _status_for,
    pytest_addoption,
    pytest_configure,
)


def _config(tmp_path, **options):
    defaults = {
        "feature_summary": True,
        "feature_summary_args": f"report.file.path={tmp_path / 'summary.html'}",
        "feature_summary_property": [],
        "feature_summary_config": None,
    }
    defaults.update(options)
    config = MagicMock()
    config.getoption.side_effect = lambda name, default=None: defaults.get(name, default)
    config.rootpath = tmp_path
    return config


def _report(nodeid, when, outcome, lineno=4):
    return SimpleNamespace(
        nodeid=nodeid,
        when=when,
        passed=outcome == "passed",
        failed=outcome == "failed",
        skipped=outcome == "skipped",
        location=(nodeid.split("::")[0], lineno, nodeid),
    )


def _item(nodeid, doc=None):
    return SimpleNamespace(nodeid=nodeid, module=SimpleNamespace(__doc__=doc))


def describe_pytest_addoption():
    def it_registers_options_in_a_group():
        parser = MagicMock()
        group = parser.getgroup.return_value
        pytest_addoption(parser)
        parser.getgroup.assert_called_once_with("feature-summary", "feature summary report")
        flags = [c.args[0] for c in group.addoption.call_args_list]
        assert flags == [
            "--feature-summary",
            "--feature-summary-args",
            "--feature-summary-property",
            "--feature-summary-config",
        ]


def describe_pytest_configure():
    def it_registers_the_plugin_when_enabled(tmp_path):
        config = _config(tmp_path)
        pytest_configure(config)
        plugin, name = config.pluginmanager.register.call_args.args
        assert isinstance(plugin, FeatureSummaryPlugin)
        assert name == PLUGIN_NAME

    def it_stays_inactive_by_default(tmp_path):
        config = _config(tmp_path, feature_summary=False)
        pytest_configure(config)
        config.pluginmanager.register.assert_not_called()

    def it_seeds_properties_from_options(tmp_path):
        config = _config(
            tmp_path,
            feature_summary=False,
            feature_summary_property=["feature.summary.env.url=https://stg", "broken"],
        )
        pytest_configure(config)
        assert properties.get_property("feature.summary.env.url") == "https://stg"
        assert properties.snapshot_properties() == {"feature.summary.env.url": "https://stg"}


def describe_split_nodeid():
    def it_separates_file_and_test():
        assert _split_nodeid("tests/shop/test_cart.py::TestCart::test_add[1]") == (
            "tests/shop/test_cart.py",
            "TestCart::test_add[1]",
        )

    def it_uses_the_file_when_there_is_no_test_part():
        assert _split_nodeid("tests/test_cart.py") == ("tests/test_cart.py", "tests/test_cart.py")


def describe_docstring_title():
    def it_takes_the_first_non_blank_line():
        assert _docstring_title(_item("x", "\n  Shopping cart.\n\nDetails")) == "Shopping cart."

    def it_returns_none_without_a_docstring():
        assert _docstring_title(_item("x")) is None
        assert _docstring_title(SimpleNamespace(nodeid="x")) is None


def describe_status_for():
    def it_maps_call_outcomes():
        assert _status_for(_report("t", "call", "passed")) is Status.PASSED
        assert _status_for(_report("t", "call", "failed")) is Status.FAILED
        assert _status_for(_report("t", "call", "skipped")) is Status.SKIPPED

    def it_only_reports_setup_problems():
        assert _status_for(_report("t", "setup", "passed")) is None
        assert _status_for(_report("t", "setup", "failed")) is Status.FAILED
        assert _status_for(_report("t", "setup", "skipped")) is Status.SKIPPED

    def it_only_reports_teardown_failures():
        assert _status_for(_report("t", "teardown", "passed")) is None
        assert _status_for(_report("t", "teardown", "failed")) is Status.FAILED


def describe_feature_summary_plugin():
    def _run_session(plugin):
        plugin.pytest_sessionstart(session=None)
        plugin.pytest_collection_modifyitems(
            session=None,
            config=None,
            items=[
                _item("tests/checkout/test_cart.py::test_add", "Shopping cart."),
                _item("tests/checkout/test_cart.py::test_remove", "Shopping cart."),
                _item("tests/features/test_login.py::test_sign_in"),
            ],
        )
        for nodeid, outcome in (
            ("tests/checkout/test_cart.py::test_add", "passed"),
            ("tests/checkout/test_cart.py::test_remove", "failed"),
            ("tests/features/test_login.py::test_sign_in", "passed"),
        ):
            plugin.pytest_runtest_logstart(nodeid=nodeid, location=None)
            plugin.pytest_runtest_logreport(_report(nodeid, "setup", "passed"))
            plugin.pytest_runtest_logreport(_report(nodeid, "call", outcome))
            plugin.pytest_runtest_logreport(_report(nodeid, "teardown", "passed"))

    def it_parses_each_module_once(tmp_path):
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        _run_session(plugin)
        cart = plugin.aggregator.feature("tests/checkout/test_cart.py")
        assert cart.grouping_name == "checkout"
        assert cart.file_stem_name == "test_cart"
        assert cart.declared_name == "Shopping cart."
        assert plugin.aggregator.feature("tests/features/test_login.py").grouping_name == ""

    def it_records_final_outcomes_in_order(tmp_path):
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        _run_session(plugin)
        snap = plugin.aggregator.snapshot()
        assert list(snap) == ["tests/checkout/test_cart.py", "tests/features/test_login.py"]
        assert dict(snap["tests/checkout/test_cart.py"]) == {
            "test_add": Status.PASSED,
            "test_remove": Status.FAILED,
        }

    def it_fails_a_passed_test_whose_teardown_fails(tmp_path):
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        nodeid = "tests/test_db.py::test_write"
        plugin.pytest_runtest_logreport(_report(nodeid, "call", "passed"))
        plugin.pytest_runtest_logreport(_report(nodeid, "teardown", "failed"))
        assert plugin.aggregator.snapshot()["tests/test_db.py"]["test_write"] is Status.FAILED

    def it_writes_the_report_at_session_finish(tmp_path):
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        _run_session(plugin)
        plugin.pytest_sessionfinish(session=None, exitstatus=1)
        html = (tmp_path / "summary.html").read_text(encoding="utf-8")
        assert "checkout - test_cart" in html
        assert "test_login" in html
        assert '<span class="span2 pass-percent">66.67%</span>' in html

    def it_prints_a_terminal_summary(tmp_path):
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        _run_session(plugin)
        plugin.pytest_sessionfinish(session=None, exitstatus=1)
        terminal = MagicMock()
        plugin.pytest_terminal_summary(terminalreporter=terminal)
        written = terminal.write.call_args.args[0]
        assert "Overall: 2/3 passed, 1 not passed (66.67%)" in written
        assert "summary.html" in written

    def it_prints_nothing_when_no_report_was_written(tmp_path):
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        plugin.pytest_sessionfinish(session=None, exitstatus=5)
        terminal = MagicMock()
        plugin.pytest_terminal_summary(terminalreporter=terminal)
        terminal.write.assert_not_called()
        assert not (tmp_path / "summary.html").exists()

    def it_reads_the_properties_file_from_rootdir(tmp_path):
        (tmp_path / "feature-summary.properties").write_text("report.title=From File\n")
        plugin = FeatureSummaryPlugin(_config(tmp_path))
        assert plugin.reporter.config.get("report.title") == "From File"

    def it_reads_an_explicit_properties_file(tmp_path):
        custom = tmp_path / "custom.properties"
        custom.write_text("report.title=Custom\n")
        plugin = FeatureSummaryPlugin(_config(tmp_path, feature_summary_config=str(custom)))
        assert plugin.reporter.config.get("report.title") == "Custom"


def describe_feature_summary_fixture():
    def it_returns_a_detached_aggregator_when_inactive(feature_summary):
        assert isinstance(feature_summary, ResultAggregator)


def describe_plugin_in_a_pytest_run():
    def it_writes_a_report_for_a_real_session(pytester):
        pytester.makepyfile(
            test_orders='''
                """Order handling."""
                import pytest

                def test_create():
                    pass

                def test_cancel():
                    assert False

                @pytest.mark.parametrize("n", [1, 2])
                def test_bulk(n):
                    pass

                @pytest.mark.skip(reason="later")
                def test_refund():
                    pass
            '''
        )
        target = pytester.path / "out" / "report.html"
        result = pytester.runpytest(
            "--feature-summary",
            f"--feature-summary-args=report.file.path={target};use.declared.name=true",
            "-p",
            "no:cacheprovider",
        )
        result.assert_outcomes(passed=3, failed=1, skipped=1)
        html = target.read_text(encoding="utf-8")
        assert "Order handling." in html
        for name in ("test_create", "test_cancel", "test_bulk[1]", "test_bulk[2]", "test_refund"):
            assert f"<td>{name}</td>" in html
        assert '<span class="span2 pass-percent">60.00%</span>' in html
        result.stdout.fnmatch_lines(["*Overall: 3/5 passed, 2 not passed (60.00%)*"])

    def it_registers_credentials_through_the_fixture(pytester):
        pytester.makepyfile(
            test_login='''
                def test_sign_in(feature_summary):
                    feature_summary.register_credential("test_login.py", "alice", "s3cret")
            '''
        )
        target = pytester.path / "report.html"
        result = pytester.runpytest(
            "--feature-summary", f"--feature-summary-args=report.file.path={target}"
        )
        result.assert_outcomes(passed=1)
        html = target.read_text(encoding="utf-8")
        assert 'credential-feat credential-value">alice</span>' in html
