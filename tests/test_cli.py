from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest

from maptest import __version__
from maptest.cli import main
from tests.utils import (
    box_polygon,
    feature_collection,
    geojson_layer,
    style_xml,
    with_src_env,
    write_style,
)


def _write_styles(tmp_path: Path) -> Path:
    styles = tmp_path / "styles"
    data = feature_collection(box_polygon(0, 0, 10, 5))
    xml = style_xml([geojson_layer("boxes", data)], parameters={"sizes": "40x20"})
    write_style(styles, "boxes", xml)
    return styles


def _args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "--styles-dir",
        str(tmp_path / "styles"),
        "--output-dir",
        str(tmp_path / "out"),
        "--reference-dir",
        str(tmp_path / "ref"),
        *extra,
    ]


def test_cli_help() -> None:
    result = subprocess.run(
        [sys.executable, "-m", "maptest", "--help"],
        check=False,
        capture_output=True,
        text=True,
        env=with_src_env(),
    )
    assert result.returncode == 0
    assert "reference images" in result.stdout
    assert "--jobs" in result.stdout


def test_cli_version(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_cli_overwrite_then_compare(tmp_path: Path, capsys) -> None:
    _write_styles(tmp_path)

    assert main(_args(tmp_path, "--overwrite", "--renderer", "raster", "-s", "1")) == 0
    assert (tmp_path / "ref" / "boxes-40-20-1.0-raster-reference.png").exists()
    capsys.readouterr()

    report_path = tmp_path / "report.json"
    extra = ["--renderer", "raster", "-s", "1", "-j", "2", "--json-report", str(report_path)]
    exit_code = main(_args(tmp_path, *extra))

    assert exit_code == 0
    output = capsys.readouterr().out
    assert '"boxes-40-20-1.0" with raster... OK' in output
    assert "0 failed / 1 passed" in output
    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["summary"]["ok"] == 1


def test_cli_missing_reference_is_not_failure(tmp_path: Path, capsys) -> None:
    _write_styles(tmp_path)

    assert main(_args(tmp_path, "--report", "short", "boxes")) == 0
    output = capsys.readouterr().out
    assert output.startswith("ssss")
    assert "4 skipped" in output


def test_cli_failed_comparison_exit_code(tmp_path: Path, capsys) -> None:
    _write_styles(tmp_path)
    assert main(_args(tmp_path, "--overwrite", "--renderer", "raster", "-s", "1")) == 0
    write_style(
        tmp_path / "styles",
        "boxes",
        style_xml(
            [geojson_layer("boxes", feature_collection(box_polygon(0, 0, 10, 5)))],
            parameters={"sizes": "40x20"},
            background="black",
        ),
    )
    capsys.readouterr()

    assert main(_args(tmp_path, "--renderer", "raster", "-s", "1")) == 1
    assert "FAILED" in capsys.readouterr().out


def test_cli_style_error_exit_code(tmp_path: Path) -> None:
    write_style(tmp_path / "styles", "broken", "<Map><Layer")

    assert main(_args(tmp_path)) == 1


def test_cli_missing_styles_dir(tmp_path: Path) -> None:
    assert main(_args(tmp_path)) == 1


def test_cli_unknown_renderer(tmp_path: Path) -> None:
    _write_styles(tmp_path)

    assert main(_args(tmp_path, "--renderer", "svg")) == 1


def test_cli_settings_file(tmp_path: Path, capsys) -> None:
    _write_styles(tmp_path)
    config_path = tmp_path / "maptest.json"
    config_path.write_text(
        json.dumps(
            {
                "styles_dir": "styles",
                "output_dir": "out",
                "reference_dir": "ref",
                "overwrite": True,
                "scales": [1.0],
                "renderers": ["grid"],
            }
        ),
        encoding="utf-8",
    )

    assert main(["--config", str(config_path)]) == 0
    assert (tmp_path / "ref" / "boxes-40-20-1.0-grid-reference.png").exists()
    assert "1 overwritten" in capsys.readouterr().out


def test_cli_invalid_settings_file(tmp_path: Path) -> None:
    config_path = tmp_path / "maptest.json"
    config_path.write_text(json.dumps({"jobs": "many"}), encoding="utf-8")

    assert main(["--config", str(config_path)]) == 1


@pytest.mark.parametrize("scale", ["0", "-1"])
def test_cli_rejects_non_positive_scale(tmp_path: Path, scale: str, capsys) -> None:
    _write_styles(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(_args(tmp_path, "-s", scale))

    assert excinfo.value.code == 2
    assert "--scale-factor must be positive" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


def test_cli_json_report_follows_result_order(tmp_path: Path) -> None:
    _write_styles(tmp_path)
    write_style(
        tmp_path / "styles",
        "another",
        style_xml(
            [geojson_layer("boxes", feature_collection(box_polygon(0, 0, 10, 5)))],
            parameters={"sizes": "40x20,20x20"},
        ),
    )
    report_path = tmp_path / "report.json"

    extra = ["--overwrite", "-j", "2", "--renderer", "raster", "--json-report", str(report_path)]
    assert main(_args(tmp_path, *extra)) == 0

    payload = json.loads(report_path.read_text(encoding="utf-8"))
    labels = [(entry["name"], entry["size"], entry["scale_factor"]) for entry in payload["results"]]
    assert labels == [
        ("another", [40, 20], 1.0),
        ("another", [40, 20], 2.0),
        ("another", [20, 20], 1.0),
        ("another", [20, 20], 2.0),
        ("boxes", [40, 20], 1.0),
        ("boxes", [40, 20], 2.0),
    ]
    assert payload["summary"]["overwrite"] == 6
