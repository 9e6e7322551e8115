"""Command-line interface for the visual test runner."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from jsonschema import ValidationError

from maptest import __version__
from maptest.config import Config
from maptest.errors import MaptestError
from maptest.logging_utils import LogOptions, configure_logging
from maptest.renderers.registry import available_renderers
from maptest.report import ConsoleReport, ConsoleShortReport, JsonReport, has_failures
from maptest.runner import Runner
from maptest.settings import RunnerSettings, load_settings

LOGGER = logging.getLogger("maptest.cli")

REPORT_CHOICES = ("console", "short")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maptest",
        description="Render map styles and compare them with reference images.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "styles",
        nargs="*",
        help="Style names to run (default: every style in --styles-dir).",
    )
    parser.add_argument("--styles-dir", help="Directory containing style XML documents.")
    parser.add_argument("--output-dir", help="Directory for rendered images.")
    parser.add_argument("--reference-dir", help="Directory holding reference images.")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        default=None,
        help="Write missing or differing reference images.",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        help="Number of worker threads (default: 1).",
    )
    parser.add_argument(
        "-s",
        "--scale-factor",
        action="append",
        type=float,
        dest="scales",
        help="Scale factor to render at (repeatable).",
    )
    parser.add_argument(
        "--renderer",
        action="append",
        dest="renderers",
        help=f"Renderer backend to use (repeatable; known: {', '.join(available_renderers())}).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Number of differing pixels tolerated before a test fails.",
    )
    parser.add_argument(
        "--report",
        choices=REPORT_CHOICES,
        default="console",
        help="Console report style.",
    )
    parser.add_argument("--json-report", help="Optional path for a JSON results report.")
    parser.add_argument("--config", help="Path to a maptest.json settings file.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument("--log-file", help="Optional path for JSON log output.")
    return parser


def _merge_settings(settings: RunnerSettings, args: argparse.Namespace) -> RunnerSettings:
    """Apply command-line overrides on top of file settings."""
    overrides = {
        "styles_dir": Path(args.styles_dir) if args.styles_dir else None,
        "output_dir": Path(args.output_dir) if args.output_dir else None,
        "reference_dir": Path(args.reference_dir) if args.reference_dir else None,
        "overwrite": args.overwrite,
        "jobs": args.jobs,
        "limit": args.limit,
        "scales": tuple(args.scales) if args.scales else None,
        "renderers": tuple(args.renderers) if args.renderers else None,
    }
    values = {key: value for key, value in overrides.items() if value is not None}
    return replace(settings, **values) if values else settings


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        LogOptions(
            verbose=args.verbose,
            quiet=args.quiet,
            log_file=Path(args.log_file) if args.log_file else None,
            json_console=args.log_json,
        )
    )

    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except ValidationError as exc:
        LOGGER.error("Invalid settings: %s", exc.message)
        return 1
    settings = _merge_settings(settings, args)
    if settings.jobs < 0:
        parser.error("--jobs must be non-negative")
    if any(scale <= 0 for scale in settings.scales or ()):
        parser.error("--scale-factor must be positive")

    config = Config()
    if settings.scales:
        config = config.with_scales(settings.scales)

    console = ConsoleShortReport() if args.report == "short" else ConsoleReport()
    try:
        runner = Runner(
            settings.styles_dir,
            settings.output_dir,
            settings.reference_dir,
            settings.overwrite,
            settings.jobs,
            renderers=settings.renderers,
            config=config,
            limit=settings.limit,
        )
        if args.styles:
            results = runner.run_named(args.styles, console)
        else:
            results = runner.run_all(console)
    except (MaptestError, OSError, KeyError) as exc:
        LOGGER.error("Visual test run failed: %s", exc)
        return 1

    console.summary(results)
    if args.json_report:
        JsonReport().write(Path(args.json_report), results)
        LOGGER.info("JSON report written to %s", args.json_report)
    return 1 if has_failures(results) else 0
