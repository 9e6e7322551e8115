"""Report sinks notified of every render result.

Sinks are shared by all worker threads of a run, so each one serializes its
own state and stream writes behind a lock.
"""

from __future__ import annotations

import json
import sys
import threading
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol, TextIO

from maptest.contracts import REPORT_SCHEMA_VERSION, validate_report
from maptest.models import Result, ResultState

_STATE_KEYS = {state: state.value for state in ResultState}


class Report(Protocol):
    """Accepts one notification per result; must tolerate concurrent calls."""

    def report(self, result: Result) -> None:
        ...


def summarize(results: Iterable[Result]) -> dict[str, int]:
    """Count results by state."""
    counts = Counter(result.state for result in results)
    summary = {key: counts.get(state, 0) for state, key in _STATE_KEYS.items()}
    summary["total"] = sum(counts.values())
    return summary


def has_failures(results: Iterable[Result]) -> bool:
    return any(result.state in (ResultState.FAIL, ResultState.ERROR) for result in results)


def format_result(result: Result) -> str:
    """Return the one-line console description of a result."""
    if result.renderer_name is None:
        subject = f'"{result.name}"'
    else:
        subject = f'"{result.label()}" with {result.renderer_name}'
    if result.state is ResultState.OK:
        outcome = "OK"
    elif result.state is ResultState.FAIL:
        outcome = f"FAILED ({result.diff} different pixels)"
    elif result.state is ResultState.OVERWRITE:
        outcome = f"OVERWRITTEN ({result.diff} different pixels)"
    elif result.state is ResultState.SKIPPED:
        outcome = f"SKIPPED ({result.error_message})"
    else:
        outcome = f"ERROR ({result.error_message})"
    return f"{subject}... {outcome}"


def format_summary(summary: dict[str, int]) -> str:
    return (
        f"Visual rendering: {summary['fail']} failed / {summary['ok']} passed / "
        f"{summary['overwrite']} overwritten / {summary['skipped']} skipped / "
        f"{summary['error']} errors"
    )


class ConsoleReport:
    """Print one line per result."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout
        self._lock = threading.Lock()

    def report(self, result: Result) -> None:
        line = format_result(result)
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()

    def summary(self, results: Iterable[Result]) -> None:
        with self._lock:
            self._stream.write(format_summary(summarize(results)) + "\n")
            self._stream.flush()


class ConsoleShortReport(ConsoleReport):
    """Print one character per result and list problems in the summary."""

    SYMBOLS = {
        ResultState.OK: ".",
        ResultState.FAIL: "F",
        ResultState.ERROR: "E",
        ResultState.SKIPPED: "s",
        ResultState.OVERWRITE: "o",
    }

    def report(self, result: Result) -> None:
        with self._lock:
            self._stream.write(self.SYMBOLS[result.state])
            self._stream.flush()

    def summary(self, results: Iterable[Result]) -> None:
        results = list(results)
        with self._lock:
            self._stream.write("\n")
            for result in results:
                if result.state in (ResultState.FAIL, ResultState.ERROR):
                    self._stream.write(format_result(result) + "\n")
            self._stream.write(format_summary(summarize(results)) + "\n")
            self._stream.flush()


class JsonReport:
    """Collect results and write them as a schema-validated JSON document."""

    def __init__(self) -> None:
        self._results: list[Result] = []
        self._lock = threading.Lock()

    def report(self, result: Result) -> None:
        with self._lock:
            self._results.append(result)

    @property
    def results(self) -> list[Result]:
        with self._lock:
            return list(self._results)

    def payload(self, results: Iterable[Result] | None = None) -> dict[str, Any]:
        """Build the report document; ``results`` orders it when given."""
        ordered = list(results) if results is not None else self.results
        payload = {
            "schema_version": REPORT_SCHEMA_VERSION,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "summary": summarize(ordered),
            "results": [result.as_dict() for result in ordered],
        }
        validate_report(payload)
        return payload

    def write(self, path: Path, results: Iterable[Result] | None = None) -> None:
        payload = self.payload(results)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class MultiReport:
    """Fan a notification out to several sinks."""

    def __init__(self, *reports: Report) -> None:
        self._reports = reports

    def report(self, result: Result) -> None:
        for report in self._reports:
            report.report(result)
