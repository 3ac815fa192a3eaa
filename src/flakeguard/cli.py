#!/usr/bin/env python3
"""Unified CLI for flakeguard -- flaky Go test detector."""

import argparse
import logging
import os
import sys

from flakeguard import __version__
from flakeguard.errors import (
    CODE_GO_FAILING_TEST,
    CODE_SUCCESS,
    FlakeguardError,
    UnreadableSource,
    exit_code,
)


def _resolve_paths(values: list[str]) -> list[str]:
    """Expand @file arguments into the paths listed in that file, in order."""
    paths = []
    for value in values:
        if value.startswith("@"):
            try:
                with open(value[1:], encoding="utf-8") as f:
                    paths.extend(line.strip() for line in f if line.strip())
            except OSError as e:
                raise UnreadableSource(value[1:], e.strerror or str(e)) from e
        else:
            paths.append(value)
    return paths


def _setup_logging(debug: bool, log_path: str | None = None) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=(
            "%(message)s" if level == logging.INFO
            else "%(asctime)s %(name)s %(levelname)s %(message)s"
        ),
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    if log_path:
        handler = logging.FileHandler(log_path)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
        ))
        logging.getLogger().addHandler(handler)


def cmd_analyze(args):
    from flakeguard.analyze import analyze_files
    from flakeguard.report import ReportOptions, build_sinks, send_reports

    logger = logging.getLogger(__name__)
    try:
        paths = _resolve_paths(args.files)
        logger.info("Analyzing %d run(s) of test output", len(paths))
        summary, results = analyze_files(paths)
    except FlakeguardError as e:
        logger.error("%s", e)
        return exit_code(e)

    options = ReportOptions(
        output_dir=args.output_dir,
        to_console=not args.no_console,
        text_file=args.text_file or None,
        json_file=args.json_file or None,
        dry_run=args.dry_run,
        splunk_url=args.splunk_url,
        splunk_token=args.splunk_token,
        splunk_index=args.splunk_index,
        splunk_source_type=args.splunk_source_type,
    )
    try:
        send_reports(summary, results, build_sinks(options))
    except FlakeguardError as e:
        logger.error("%s", e)
        return exit_code(e)

    failing = [r for r in results if r.has_failing_runs]
    logger.info("")
    logger.info("=== Flaky Test Analysis Summary ===")
    logger.info("")
    logger.info("  %s", summary)
    logger.info("  Tests with failing runs: %d / %d", len(failing), len(results))
    for result in failing:
        logger.info("    %-60s  pass=%6.2f%%  runs=%2d",
                    f"{result.package}.{result.name}",
                    result.pass_ratio * 100, result.runs)

    return CODE_GO_FAILING_TEST if failing else CODE_SUCCESS


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="flakeguard",
        description="Flaky test detector -- analyzes repeated go test -json runs",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable debug logging (verbose output)",
    )
    parser.add_argument(
        "--log-file", default="",
        help="Also write logs to this file inside --output-dir (default: none)",
    )
    parser.add_argument(
        "--output-dir", default="./flakeguard-output",
        help="Directory for reports and logs (default: ./flakeguard-output)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze",
        help="Analyze go test -json output files, one file per run",
    )
    p_analyze.add_argument(
        "files", nargs="+",
        help="go test -json output files in run order, or @file listing them",
    )
    p_analyze.add_argument(
        "--no-console", action="store_true",
        help="Do not print the report to stdout",
    )
    p_analyze.add_argument(
        "--text-file", default="flakeguard-report.txt",
        help="Text report file name, empty to disable (default: flakeguard-report.txt)",
    )
    p_analyze.add_argument(
        "--json-file", default="flakeguard-report.json",
        help="JSON report file name, empty to disable (default: flakeguard-report.json)",
    )
    p_analyze.add_argument(
        "--dry-run", action="store_true",
        help="Write Splunk batches to a file in --output-dir instead of sending them",
    )
    p_analyze.add_argument(
        "--splunk-url", default="",
        help="Splunk HTTP Event Collector URL (default: Splunk reporting off)",
    )
    p_analyze.add_argument(
        "--splunk-token", default="",
        help="Splunk HTTP Event Collector token (default: $SPLUNK_TOKEN)",
    )
    p_analyze.add_argument(
        "--splunk-index", default="flakeguard_json",
        help="Splunk index to send events to (default: flakeguard_json)",
    )
    p_analyze.add_argument(
        "--splunk-source-type", default="flakeguard_json",
        help="Splunk source type to send events to (default: flakeguard_json)",
    )
    p_analyze.set_defaults(func=cmd_analyze)

    args = parser.parse_args(argv)

    os.makedirs(args.output_dir, exist_ok=True)
    log_path = os.path.join(args.output_dir, args.log_file) if args.log_file else None
    _setup_logging(args.debug, log_path)

    logging.getLogger(__name__).debug(
        "flakeguard %s, python %s, args %s",
        __version__, sys.version.split()[0],
        {k: v for k, v in vars(args).items() if k not in ("func", "splunk_token")},
    )

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
