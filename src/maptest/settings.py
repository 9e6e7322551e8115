"""Runner settings discovery from JSON config files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from maptest.contracts import validate_settings

ENV_SETTINGS_PATH = "MAPTEST_CONFIG"
DEFAULT_SETTINGS_NAME = "maptest.json"

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerSettings:
    """Constructor-level runner settings; CLI flags take precedence."""

    styles_dir: Path = Path("styles")
    output_dir: Path = Path("output")
    reference_dir: Path = Path("images")
    overwrite: bool = False
    jobs: int = 1
    limit: int = 0
    scales: tuple[float, ...] | None = None
    renderers: tuple[str, ...] | None = None

    @classmethod
    def from_mapping(
        cls, payload: Mapping[str, Any], *, base_dir: Path | None = None
    ) -> RunnerSettings:
        """Build settings from a validated payload, resolving paths against base_dir."""

        def _path(key: str, default: Path) -> Path:
            value = payload.get(key)
            if value is None:
                return default
            path = Path(value)
            if base_dir is not None and not path.is_absolute():
                return base_dir / path
            return path

        defaults = cls()
        scales = payload.get("scales")
        renderers = payload.get("renderers")
        return cls(
            styles_dir=_path("styles_dir", defaults.styles_dir),
            output_dir=_path("output_dir", defaults.output_dir),
            reference_dir=_path("reference_dir", defaults.reference_dir),
            overwrite=bool(payload.get("overwrite", defaults.overwrite)),
            jobs=int(payload.get("jobs", defaults.jobs)),
            limit=int(payload.get("limit", defaults.limit)),
            scales=tuple(float(scale) for scale in scales) if scales else None,
            renderers=tuple(str(name) for name in renderers) if renderers else None,
        )


def _load_candidate(candidate: Path) -> dict[str, Any] | None:
    """Load one settings file; None when absent, {} when unreadable."""
    if not candidate.exists():
        return None
    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable settings file %s: %s", candidate, exc)
        return {}
    if not isinstance(data, dict):
        LOGGER.warning("Ignoring settings file %s: expected a JSON object.", candidate)
        return {}
    return data


def _candidates(path: Path | None) -> list[Path]:
    if path:
        return [path]
    env_path = os.environ.get(ENV_SETTINGS_PATH)
    if env_path:
        return [Path(env_path)]
    return [Path.cwd() / DEFAULT_SETTINGS_NAME]


def load_settings(path: Path | None = None) -> RunnerSettings:
    """Load runner settings from an explicit path, $MAPTEST_CONFIG, or ./maptest.json.

    Raises jsonschema.ValidationError when the file exists but does not match
    the settings schema.
    """
    for candidate in _candidates(path):
        payload = _load_candidate(candidate)
        if payload is None:
            continue
        validate_settings(payload)
        LOGGER.debug("Loaded settings from %s", candidate)
        return RunnerSettings.from_mapping(payload, base_dir=candidate.parent)
    return RunnerSettings()
