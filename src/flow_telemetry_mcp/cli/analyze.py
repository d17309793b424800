"""Command line entry point: collect one window, print the report."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from flow_telemetry_mcp import __version__
from flow_telemetry_mcp.core.analyzer import FlowAnalyzer
from flow_telemetry_mcp.core.config import load_settings
from flow_telemetry_mcp.core.errors import CollectionFailed
from flow_telemetry_mcp.core.pipeline import run_analysis
from flow_telemetry_mcp.core.registry import CapabilityRegistry
from flow_telemetry_mcp.logging_config import setup_logging

MIN_DURATION = 10
MAX_DURATION = 3600

EXIT_OK = 0
EXIT_COLLECTION_FAILED = 1
EXIT_CANCELLED = 130


def _duration(value: str) -> int:
    try:
        seconds = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"duration must be an integer number of seconds, got {value!r}")
    if not MIN_DURATION <= seconds <= MAX_DURATION:
        raise argparse.ArgumentTypeError(
            f"duration must be between {MIN_DURATION} and {MAX_DURATION} seconds, got {seconds}"
        )
    return seconds


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="flow-telemetry-analyze",
        description="Collect network flows for a window and print a security/operability report",
    )
    p.add_argument("-n", "--namespace", help="Only analyze flows to or from this namespace")
    p.add_argument(
        "-d", "--duration", type=_duration, default=30, metavar="SECONDS",
        help=f"Collection window in seconds ({MIN_DURATION}-{MAX_DURATION}, default: 30)",
    )
    p.add_argument("--capability", default="hubble_cli", help="Collector capability to use (default: hubble_cli)")
    p.add_argument("--source-file", metavar="FILE", help="Replay a saved `hubble observe -o json` dump (implies --capability json_file)")
    p.add_argument("-o", "--output", metavar="FILE", help="Also write the report to FILE")
    p.add_argument("--json", action="store_true", help="Print the structured result as JSON instead of the text report")
    p.add_argument("--log-level", default=None, help="Log level (default: FLOW_LOG_LEVEL or INFO)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    setup_logging(args.log_level or settings.log_level)
    log = logging.getLogger("flow_telemetry_mcp.cli")

    analyzer = FlowAnalyzer()
    registry = CapabilityRegistry()
    try:
        if settings.thresholds:
            analyzer.set_thresholds(**settings.thresholds)
        registry.load_from_import_paths(settings.capabilities)
    except (TypeError, ValueError, ImportError, AttributeError) as e:
        print(f"error: bad configuration: {e}", file=sys.stderr)
        return 2

    capability = "json_file" if args.source_file else args.capability
    try:
        collector = registry.get(capability)
    except KeyError as e:
        print(f"error: {e.args[0]}", file=sys.stderr)
        return 2
    if args.source_file:
        collector.configure(path=args.source_file)

    log.info("collecting from %s for %ss", capability, args.duration)
    try:
        run = run_analysis(collector, analyzer, namespace=args.namespace, duration_seconds=args.duration)
    except CollectionFailed as e:
        print(f"error: flow collection failed: {e}", file=sys.stderr)
        return EXIT_COLLECTION_FAILED

    text = json.dumps(run.to_dict(), indent=2) if args.json else run.report
    sys.stdout.write(text if text.endswith("\n") else text + "\n")

    if args.output:
        Path(args.output).write_text(run.report, encoding="utf-8")
        log.info("report written to %s", args.output)

    if run.partial:
        print("warning: collection was cancelled, report covers a partial window", file=sys.stderr)
        return EXIT_CANCELLED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
