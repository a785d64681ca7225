import pytest

from pytest_feature_summary import properties

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True)
def _isolated_properties(monkeypatch):
    """Give each test its own empty property store."""
    monkeypatch.setattr(properties, "_properties", {})
