"""Spot panics, timeouts and data races in test output text.

go test attributes crash output to whatever test it considers current,
so these signals are read from the Output text of every line rather than
from the Action field.
"""

import re
from enum import Enum

# A timeout is a panic with a fixed preamble, so it must be tried first.
TIMEOUT_RE = re.compile(r"^panic: test timed out after ")
PANIC_RE = re.compile(r"^panic:")
RACE_RE = re.compile(r"^WARNING: DATA RACE")


class Anomaly(Enum):
    NONE = "none"
    TIMEOUT = "timeout"
    PANIC = "panic"
    RACE = "race"

    @property
    def crashes_package(self) -> bool:
        """True if the whole test binary may have died with this anomaly."""
        return self in (Anomaly.TIMEOUT, Anomaly.PANIC)


_PATTERNS = (
    (TIMEOUT_RE, Anomaly.TIMEOUT),
    (PANIC_RE, Anomaly.PANIC),
    (RACE_RE, Anomaly.RACE),
)


def classify_output(text: str) -> Anomaly:
    for pattern, anomaly in _PATTERNS:
        if pattern.match(text):
            return anomaly
    return Anomaly.NONE
