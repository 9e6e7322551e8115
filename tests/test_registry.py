from __future__ import annotations

from pathlib import Path

import pytest

from maptest.renderers import GridRenderer, RasterRenderer
from maptest.renderers.base import ImageRenderer
from maptest.renderers.registry import (
    available_renderers,
    create_renderer,
    create_renderers,
    refresh_renderers,
)


class DummyRenderer(ImageRenderer):
    name = "dummy"


class FakeEntryPoint:
    def __init__(self, name: str, target: object = None, error: Exception | None = None) -> None:
        self.name = name
        self._target = target
        self._error = error

    def load(self):
        if self._error is not None:
            raise self._error
        return self._target


@pytest.fixture
def install_plugins(monkeypatch):
    def install(*entry_points: FakeEntryPoint) -> None:
        monkeypatch.setattr(
            "maptest.renderers.registry.metadata.entry_points",
            lambda group: list(entry_points),
        )
        refresh_renderers()

    yield install
    refresh_renderers()


def test_builtin_renderers() -> None:
    assert available_renderers()[:2] == ["raster", "grid"]


def test_plugin_renderer_is_registered(install_plugins) -> None:
    install_plugins(FakeEntryPoint("dummy", DummyRenderer))

    assert available_renderers() == ["raster", "grid", "dummy"]
    renderer = create_renderer("dummy", output_dir=Path("out"), reference_dir=Path("ref"))
    assert isinstance(renderer, DummyRenderer)


def test_plugin_cannot_replace_builtin(install_plugins, caplog) -> None:
    install_plugins(FakeEntryPoint("raster", DummyRenderer))

    with caplog.at_level("WARNING", logger="maptest.renderers.registry"):
        renderer = create_renderer("raster", output_dir=Path("out"), reference_dir=Path("ref"))

    assert isinstance(renderer, RasterRenderer)
    assert "name already in use" in caplog.text


def test_plugin_import_failure_is_logged(install_plugins, caplog) -> None:
    install_plugins(
        FakeEntryPoint("broken", error=ImportError("missing module")),
        FakeEntryPoint("dummy", DummyRenderer),
    )

    with caplog.at_level("WARNING", logger="maptest.renderers.registry"):
        names = available_renderers()

    assert "broken" not in names
    assert "dummy" in names
    assert "missing module" in caplog.text


def test_plugin_without_factory_is_skipped(install_plugins, caplog) -> None:
    install_plugins(FakeEntryPoint("constant", "not a renderer"))

    with caplog.at_level("WARNING", logger="maptest.renderers.registry"):
        names = available_renderers()

    assert "constant" not in names
    assert "exposes str" in caplog.text


def test_create_renderer_unknown() -> None:
    with pytest.raises(KeyError, match="Unknown renderer"):
        create_renderer("svg", output_dir=Path("out"), reference_dir=Path("ref"))


def test_create_renderers_passes_settings(tmp_path: Path) -> None:
    renderers = create_renderers(
        ["grid", "raster", "grid"],
        output_dir=tmp_path / "out",
        reference_dir=tmp_path / "ref",
        overwrite=True,
        limit=4,
    )

    assert [type(renderer) for renderer in renderers] == [GridRenderer, RasterRenderer]
    assert all(renderer.overwrite and renderer.limit == 4 for renderer in renderers)
    assert renderers[0].output_dir == tmp_path / "out"
