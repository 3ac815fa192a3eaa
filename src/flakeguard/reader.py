"""Read `go test -json` output files into Events.

Each file holds one full execution of the test suite (one "run"). Files
are read in the order given, each one completely before the next, because
per-test run numbers depend on the order events are seen.
"""

import json
import logging
import time

from flakeguard.errors import MalformedStream, UnreadableSource
from flakeguard.events import Event, decode_event

logger = logging.getLogger(__name__)


def read_events(path: str) -> list[Event]:
    """Decode every event in one go test -json file.

    Blank lines are skipped. Any other line that is not a valid event
    fails the whole file.
    """
    events = []
    line_number = 0
    try:
        with open(path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    events.append(decode_event(json.loads(line)))
                except ValueError as e:
                    # json.JSONDecodeError is a ValueError too
                    raise MalformedStream(path, line_number, str(e)) from e
    except UnicodeDecodeError as e:
        raise MalformedStream(path, line_number + 1, str(e)) from e
    except OSError as e:
        raise UnreadableSource(path, e.strerror or str(e)) from e
    return events


def read_test_output(paths: list[str]) -> list[Event]:
    """Read several go test -json files into one ordered event list."""
    logger.debug("Reading test output from %d file(s): %s", len(paths), paths)
    start = time.monotonic()

    events: list[Event] = []
    for path in paths:
        file_events = read_events(path)
        logger.debug("  %s: %d events", path, len(file_events))
        events.extend(file_events)

    logger.debug("Read %d events in %.3fs", len(events), time.monotonic() - start)
    return events
