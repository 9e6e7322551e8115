from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest  # noqa: E402

from maptest import settings as runner_settings  # noqa: E402
from maptest.renderers.registry import refresh_renderers  # noqa: E402


def pytest_collection_modifyitems(config, items) -> None:
    """Skip integration tests unless explicitly selected via -m integration."""
    markexpr = config.option.markexpr or ""
    if "integration" in markexpr:
        return
    skip_integration = pytest.mark.skip(reason="integration tests run only with -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch, tmp_path) -> None:
    """Prevent local maptest.json files from bleeding into tests."""
    monkeypatch.setenv(runner_settings.ENV_SETTINGS_PATH, str(tmp_path / "missing_settings.json"))


@pytest.fixture(autouse=True)
def _fresh_renderer_registry():
    refresh_renderers()
    yield
    refresh_renderers()
