"""Structured form of one line of `go test -json` output."""

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class Action(str, Enum):
    RUN = "run"
    OUTPUT = "output"
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    BUILD_FAIL = "build-fail"
    # pause, cont, start, bench and anything a future go release adds
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "Action":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


# must be JSON strings when present
_STRING_FIELDS = ("Action", "Test", "Package", "Output")


@dataclass(frozen=True)
class Event:
    """One decoded go test -json line.

    `test` is empty for package-level lines. `elapsed` is in seconds and is
    only set by go test on terminal actions.
    """

    action: Action
    package: str = ""
    test: str = ""
    output: str = ""
    elapsed: float = 0.0
    time: datetime | None = None
    raw_action: str = ""

    @property
    def is_package_line(self) -> bool:
        return self.test == ""


def _parse_time(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as emitted by go (nanosecond precision)."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def decode_event(obj) -> Event:
    """Build an Event from a decoded JSON value.

    Raises ValueError describing the first field that does not match the
    go test -json schema.
    """
    if not isinstance(obj, dict):
        raise ValueError(f"expected a JSON object, got {type(obj).__name__}")

    for field in _STRING_FIELDS:
        value = obj.get(field)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"field {field!r} must be a string")

    elapsed = obj.get("Elapsed")
    if elapsed is None:
        elapsed = 0.0
    # bool is an int subclass; go never emits one here
    elif isinstance(elapsed, bool) or not isinstance(elapsed, (int, float)):
        raise ValueError("field 'Elapsed' must be a number")
    elif not math.isfinite(elapsed) or elapsed < 0:
        raise ValueError(f"field 'Elapsed' must be >= 0, got {elapsed}")

    ts = obj.get("Time")
    if ts is not None:
        if not isinstance(ts, str):
            raise ValueError("field 'Time' must be a string")
        try:
            ts = _parse_time(ts)
        except ValueError as e:
            raise ValueError(f"field 'Time' is not a timestamp: {e}") from e

    raw_action = obj.get("Action") or ""
    return Event(
        action=Action.parse(raw_action),
        package=obj.get("Package") or "",
        test=obj.get("Test") or "",
        output=obj.get("Output") or "",
        elapsed=float(elapsed),
        time=ts,
        raw_action=raw_action,
    )
