"""Fold go test -json events from repeated runs into per-test results.

The fold is a single pass over the events in file order. Every test
(package + full test name, subtests included) gets an accumulator and a
run counter that starts at 1 and advances each time the test finishes a
run: pass, fail, skip, or an anomaly (panic, timeout, data race) seen in
its output. `runs` counts those advances.

Panics and timeouts can kill the whole test binary, and go test pins the
crash output on whichever test it thinks is running at that moment, which
is often not the test at fault. So once the pass is done, every test in a
package that saw a panic or timeout is flagged with `package_panicked`.
A data race alone does not crash the binary and is not propagated.
"""

import logging
import time
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from types import MappingProxyType

from flakeguard.anomaly import Anomaly, classify_output
from flakeguard.errors import BuildFailure, NoTestsExecuted
from flakeguard.events import Action, Event
from flakeguard.reader import read_test_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    """Totals across every test and every run."""

    unique_tests_run: int = 0
    total_test_runs: int = 0
    successes: int = 0
    failures: int = 0
    panics: int = 0
    races: int = 0
    timeouts: int = 0
    skips: int = 0

    def __str__(self) -> str:
        return (
            f"Unique Tests: {self.unique_tests_run} | "
            f"Total Test Runs: {self.total_test_runs} | "
            f"Successes: {self.successes} | "
            f"Failures: {self.failures} | "
            f"Panics: {self.panics} | "
            f"Races: {self.races} | "
            f"Timeouts: {self.timeouts} | "
            f"Skips: {self.skips}"
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TestResult:
    """Immutable outcome of one test across all analyzed runs.

    This is what report sinks consume. `outputs` maps a 1-based run number
    to the lines captured for the test during that run.
    """

    __test__ = False  # not a pytest test class

    package: str
    name: str
    time_run: datetime | None = None
    runs: int = 0
    successes: int = 0
    failures: int = 0
    skips: int = 0
    panics: int = 0
    races: int = 0
    timeouts: int = 0
    panicked: bool = False
    timed_out: bool = False
    raced: bool = False
    package_panicked: bool = False
    failing_run_numbers: tuple[int, ...] = ()
    durations: tuple[float, ...] = ()
    outputs: Mapping[int, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    @property
    def pass_ratio(self) -> float:
        if self.runs == 0:
            return 0.0
        return self.successes / self.runs

    @property
    def has_failing_runs(self) -> bool:
        return bool(self.failing_run_numbers)

    def __str__(self) -> str:
        flags = [
            label for label, on in (
                ("panic", self.panicked),
                ("timeout", self.timed_out),
                ("race", self.raced),
                ("package panic", self.package_panicked),
            ) if on
        ]
        text = (
            f"{self.package}.{self.name}: "
            f"{self.pass_ratio:.2%} pass ratio, "
            f"{self.runs} runs, {self.successes} successes, "
            f"{self.failures} failures, {self.skips} skips"
        )
        if flags:
            text += f" [{', '.join(flags)}]"
        return text

    def to_dict(self, include_outputs: bool = True) -> dict:
        data = {
            "test_name": self.name,
            "test_package": self.package,
            "time_run": self.time_run.isoformat() if self.time_run else None,
            "package_panic": self.package_panicked,
            "panic": self.panicked,
            "timeout": self.timed_out,
            "race": self.raced,
            "pass_ratio": self.pass_ratio,
            "runs": self.runs,
            "successes": self.successes,
            "failures": self.failures,
            "skips": self.skips,
            "panics": self.panics,
            "races": self.races,
            "timeouts": self.timeouts,
            "failing_run_numbers": list(self.failing_run_numbers),
            "durations": list(self.durations),
        }
        if include_outputs:
            data["outputs"] = {
                str(run): list(lines) for run, lines in self.outputs.items()
            }
        return data


@dataclass
class TestAccumulator:
    """Mutable per-test state built up during the fold."""

    __test__ = False

    package: str
    name: str
    time_run: datetime | None = None
    runs: int = 0
    successes: int = 0
    failures: int = 0
    skips: int = 0
    panics: int = 0
    races: int = 0
    timeouts: int = 0
    # sticky: never cleared once set
    panicked: bool = False
    timed_out: bool = False
    raced: bool = False
    package_panicked: bool = False
    failing_run_numbers: list[int] = field(default_factory=list)
    durations: list[float] = field(default_factory=list)
    outputs: dict[int, list[str]] = field(default_factory=dict)

    def freeze(self) -> TestResult:
        return TestResult(
            package=self.package,
            name=self.name,
            time_run=self.time_run,
            runs=self.runs,
            successes=self.successes,
            failures=self.failures,
            skips=self.skips,
            panics=self.panics,
            races=self.races,
            timeouts=self.timeouts,
            panicked=self.panicked,
            timed_out=self.timed_out,
            raced=self.raced,
            package_panicked=self.package_panicked,
            failing_run_numbers=tuple(self.failing_run_numbers),
            durations=tuple(self.durations),
            outputs=MappingProxyType({
                run: tuple(lines) for run, lines in self.outputs.items()
            }),
        )


def _record_anomaly(acc: TestAccumulator, anomaly: Anomaly,
                    counts: Counter) -> None:
    if anomaly is Anomaly.TIMEOUT:
        acc.timed_out = True
        acc.timeouts += 1
        counts["timeouts"] += 1
    elif anomaly is Anomaly.PANIC:
        acc.panicked = True
        acc.panics += 1
        counts["panics"] += 1
    elif anomaly is Anomaly.RACE:
        acc.raced = True
        acc.races += 1
        counts["races"] += 1


def _sort_key(result: TestResult) -> tuple[str, str]:
    return result.package, result.name


def analyze_test_output(
    events: Iterable[Event],
) -> tuple[RunSummary, list[TestResult]]:
    """Fold events into a summary and a list of results sorted by (package, name).

    Raises BuildFailure on the first build-fail event, discarding anything
    gathered so far, and NoTestsExecuted if no event named a test.
    """
    start = time.monotonic()

    counts: Counter = Counter()
    accumulators: dict[tuple[str, str], TestAccumulator] = {}
    run_numbers: dict[tuple[str, str], int] = {}
    panicked_packages: set[str] = set()
    n_events = 0

    for event in events:
        n_events += 1
        if event.action is Action.BUILD_FAIL:
            raise BuildFailure(event.package)
        if event.is_package_line:
            continue

        key = (event.package, event.test)
        acc = accumulators.get(key)
        if acc is None:
            acc = TestAccumulator(
                package=event.package, name=event.test, time_run=event.time,
            )
            accumulators[key] = acc
            run_numbers[key] = 1
            counts["unique_tests_run"] += 1

        run = run_numbers[key]
        acc.outputs.setdefault(run, []).append(event.output)
        if event.elapsed > 0:
            acc.durations.append(event.elapsed)

        # The anomaly takes the run slot; a terminal action on the same
        # line is not counted again.
        anomaly = classify_output(event.output)
        if anomaly is not Anomaly.NONE:
            _record_anomaly(acc, anomaly, counts)
            acc.runs += 1
            counts["total_test_runs"] += 1
            acc.failing_run_numbers.append(run)
            if anomaly.crashes_package:
                panicked_packages.add(event.package)
            run_numbers[key] += 1
            continue

        if event.action is Action.PASS:
            acc.successes += 1
            counts["successes"] += 1
            acc.runs += 1
            counts["total_test_runs"] += 1
            run_numbers[key] += 1
        elif event.action is Action.FAIL:
            acc.failures += 1
            counts["failures"] += 1
            acc.runs += 1
            counts["total_test_runs"] += 1
            acc.failing_run_numbers.append(run)
            run_numbers[key] += 1
        elif event.action is Action.SKIP:
            # scheduled, so it uses up a run, but it never counts as a pass
            acc.skips += 1
            counts["skips"] += 1
            acc.runs += 1
            counts["total_test_runs"] += 1
            run_numbers[key] += 1

    for acc in accumulators.values():
        if acc.package in panicked_packages:
            acc.package_panicked = True

    if counts["unique_tests_run"] == 0:
        raise NoTestsExecuted()

    summary = RunSummary(**{f.name: counts[f.name] for f in fields(RunSummary)})
    results = sorted((acc.freeze() for acc in accumulators.values()), key=_sort_key)

    logger.debug("Analyzed %d events into %d tests in %.3fs",
                 n_events, len(results), time.monotonic() - start)
    if panicked_packages:
        logger.debug("Packages with a panic or timeout: %s",
                     sorted(panicked_packages))
    return summary, results


def analyze_files(paths: list[str]) -> tuple[RunSummary, list[TestResult]]:
    """Read go test -json files (one per run, in run order) and analyze them."""
    return analyze_test_output(read_test_output(paths))
