"""Write analysis results to the console, report files, and Splunk.

Every sink is a callable taking (summary, results). Sinks only read the
results, so send_reports runs them side by side; one failing sink does
not stop the others, and all failures are raised together at the end.
"""

import json
import logging
import os
import sys
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from functools import partial

from flakeguard.analyze import RunSummary, TestResult
from flakeguard.errors import ReportError

logger = logging.getLogger(__name__)

Sink = Callable[[RunSummary, Sequence[TestResult]], None]

RULE = "-" * 32


@dataclass
class ReportOptions:
    output_dir: str = "./flakeguard-output"
    to_console: bool = True
    text_file: str | None = "flakeguard-report.txt"
    json_file: str | None = "flakeguard-report.json"
    dry_run: bool = False

    splunk_url: str = ""
    splunk_token: str = ""
    splunk_index: str = "flakeguard_json"
    splunk_source_type: str = "flakeguard_json"

    @property
    def to_splunk(self) -> bool:
        return bool(self.splunk_url or self.splunk_token)


def write_to_console(summary: RunSummary, results: Sequence[TestResult],
                     stream=None) -> None:
    """Print the summary and every test that had a failing run."""
    out = stream or sys.stdout
    summary_str = str(summary)
    print("-" * len(summary_str), file=out)
    print(summary_str, file=out)
    print("-" * len(summary_str), file=out)

    for result in results:
        if result.has_failing_runs:
            print(str(result), file=out)


def write_text_report(summary: RunSummary, results: Sequence[TestResult],
                      path: str) -> None:
    """Write a human-readable report with the output of every failing run."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{summary}\n")
        f.write("=" * 20 + "\n")

        for result in results:
            if not result.has_failing_runs:
                continue
            f.write(f"{RULE}\n{result}\n{RULE}\n")
            for run in result.failing_run_numbers:
                f.write(f"\nFailing run {run}\n{RULE}\n")
                f.write("".join(result.outputs.get(run, ())))

    logger.info("Wrote %s", path)


def write_json_report(summary: RunSummary, results: Sequence[TestResult],
                      path: str) -> None:
    report_json = {
        "summary": summary.to_dict(),
        "results": [result.to_dict() for result in results],
    }
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report_json, f, indent=2)

    logger.info("Wrote %s", path)


def build_sinks(options: ReportOptions) -> dict[str, Sink]:
    """Turn report options into named sinks ready for send_reports."""
    sinks: dict[str, Sink] = {}
    if options.to_console:
        sinks["console"] = write_to_console
    if options.text_file:
        sinks["text"] = partial(
            write_text_report,
            path=os.path.join(options.output_dir, options.text_file),
        )
    if options.json_file:
        sinks["json"] = partial(
            write_json_report,
            path=os.path.join(options.output_dir, options.json_file),
        )
    if options.to_splunk:
        from flakeguard.splunk import send_to_splunk
        sinks["splunk"] = partial(
            send_to_splunk,
            url=options.splunk_url,
            token=options.splunk_token,
            index=options.splunk_index,
            source_type=options.splunk_source_type,
            dry_run=options.dry_run,
            report_dir=options.output_dir,
        )
    elif options.dry_run:
        logger.warning("Splunk dry run requested without a Splunk URL or token; skipping Splunk")
    return sinks


def send_reports(summary: RunSummary, results: Sequence[TestResult],
                 sinks: dict[str, Sink]) -> None:
    """Run every sink concurrently. Raises ReportError if any sink failed."""
    if not sinks:
        logger.debug("No report sinks configured")
        return

    results = tuple(results)
    failures: dict[str, BaseException] = {}
    with ThreadPoolExecutor(max_workers=len(sinks)) as executor:
        futures = {
            executor.submit(sink, summary, results): name
            for name, sink in sinks.items()
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                future.result()
            except Exception as e:
                logger.error("Report sink %s failed: %s", name, e)
                failures[name] = e
            else:
                logger.debug("Report sink %s done", name)

    if failures:
        raise ReportError(failures)
