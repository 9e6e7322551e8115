"""Schema validation for maptest settings files and JSON reports."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Mapping

import jsonschema

REPORT_SCHEMA_VERSION = "1.0"


@lru_cache(maxsize=None)
def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    schema_path = resources.files("maptest").joinpath("schemas").joinpath(name)
    with schema_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_report(payload: Mapping[str, Any]) -> None:
    """Validate a JSON run report against the schema."""
    jsonschema.validate(payload, _load_schema("report.schema.json"))


def validate_settings(payload: Mapping[str, Any]) -> None:
    """Validate a runner settings payload against the schema."""
    jsonschema.validate(payload, _load_schema("settings.schema.json"))
