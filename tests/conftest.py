"""Shared fixtures and helpers for flakeguard tests."""

import json

from flakeguard.events import decode_event


def make_line(action, test="", package="pkg/a", output=None, elapsed=None,
              time="2025-01-15T10:00:00.123456789Z"):
    """Build one go test -json event dict, leaving out unset fields like go does."""
    line = {"Time": time, "Action": action, "Package": package}
    if test:
        line["Test"] = test
    if output is not None:
        line["Output"] = output
    if elapsed is not None:
        line["Elapsed"] = elapsed
    return line


def make_events(lines):
    """Decode a list of event dicts into Events."""
    return [decode_event(line) for line in lines]


def make_jsonl(lines):
    """Render event dicts as go test -json file content."""
    return "".join(json.dumps(line) + "\n" for line in lines)


def write_run(tmp_path, name, lines):
    """Write one run's worth of events to tmp_path/name and return the path."""
    path = tmp_path / name
    path.write_text(make_jsonl(lines))
    return str(path)


def passing_test(test, package="pkg/a", elapsed=0.01):
    """Events go test emits for one passing test."""
    return [
        make_line("run", test, package),
        make_line("output", test, package, output=f"=== RUN   {test}\n"),
        make_line("output", test, package, output=f"--- PASS: {test} ({elapsed:.2f}s)\n"),
        make_line("pass", test, package, elapsed=elapsed),
    ]


def failing_test(test, package="pkg/a", elapsed=0.01, message="boom"):
    """Events go test emits for one failing test."""
    return [
        make_line("run", test, package),
        make_line("output", test, package, output=f"=== RUN   {test}\n"),
        make_line("output", test, package, output=f"    {test.lower()}_test.go:12: {message}\n"),
        make_line("output", test, package, output=f"--- FAIL: {test} ({elapsed:.2f}s)\n"),
        make_line("fail", test, package, elapsed=elapsed),
    ]


def package_pass(package="pkg/a", elapsed=0.02):
    return [
        make_line("output", package=package, output=f"ok  \t{package}\t{elapsed:.3f}s\n"),
        make_line("pass", package=package, elapsed=elapsed),
    ]


# Sample data constants

SAMPLE_PANIC_OUTPUT = "panic: runtime error: index out of range [5] with length 3\n"
SAMPLE_TIMEOUT_OUTPUT = "panic: test timed out after 10m0s\n"
SAMPLE_RACE_OUTPUT = "WARNING: DATA RACE\n"
