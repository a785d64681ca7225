"""Report sink and terminal summary for feature summary results."""

from __future__ import annotations

import logging
from pathlib import Path

from pytest_feature_summary.errors import ReportWriteFailure
from pytest_feature_summary.models import FeatureSummary, RunSummary

log = logging.getLogger(__name__)


def write_report(path: str | Path, content: str) -> Path:
    """Write the report, creating parent directories as needed."""
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ReportWriteFailure(str(target), exc) from exc
    log.debug("Wrote %d characters to %s", len(content), target)
    return target


def format_terminal_report(
    features: list[FeatureSummary], run: RunSummary, report_path: str | Path | None
) -> str:
    """Format a terminal-friendly summary of the report that was written."""
    lines: list[str] = []

    lines.append("")
    lines.append("=" * 70)
    lines.append("feature summary")
    lines.append("=" * 70)

    n_features = len(features)
    label = "feature" if n_features == 1 else "features"
    lines.append(f"Features: {n_features} {label}")
    lines.append("")

    for feature in features:
        lines.append(
            f"  {feature.number:>3d}. {feature.name:<40s} "
            f"{feature.passed}/{feature.total} passed ({feature.pass_percent})"
        )

    lines.append("")
    lines.append(
        f"Overall: {run.passed}/{run.total} passed, {run.failed} not passed "
        f"({run.pass_percent})"
    )
    if report_path is not None:
        lines.append(f"Report: {report_path}")
    lines.append("")

    return "\n".join(lines)
