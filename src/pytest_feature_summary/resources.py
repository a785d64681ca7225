"""Static report assets shipped with the package."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pytest_feature_summary.errors import TemplateAssetMissing

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

SKELETON = "report.html"
STYLES = "styles.css"
SCRIPTS = "scripts.js"

ResourceLoader = Callable[[str], "str | None"]


def load_resource(name: str, directory: Path = TEMPLATE_DIR) -> str | None:
    """Read a UTF-8 asset, or return None when it does not exist."""
    path = directory / name
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log.debug("Template %s not found in %s", name, directory)
        return None


@dataclass(frozen=True)
class ReportAssets:
    skeleton: str
    styles: str
    scripts: str


def load_assets(loader: ResourceLoader = load_resource) -> ReportAssets:
    """Load every asset the report needs; any absence is fatal."""
    loaded: dict[str, str] = {}
    for name in (SKELETON, STYLES, SCRIPTS):
        content = loader(name)
        if content is None:
            raise TemplateAssetMissing(name)
        loaded[name] = content
    return ReportAssets(
        skeleton=loaded[SKELETON],
        styles=loaded[STYLES],
        scripts=loaded[SCRIPTS],
    )
