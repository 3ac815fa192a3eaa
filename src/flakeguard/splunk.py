"""Send test results to Splunk through the HTTP Event Collector.

Splunk wants one JSON object per line, not a JSON array:
https://docs.splunk.com/Documentation/Splunk/latest/RESTREF/RESTinput#Bulk_Data_Input

Captured test output is never sent; it can be huge and the report files
already hold it.
"""

import json
import logging
import os
import time
from collections.abc import Iterator, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from flakeguard.analyze import RunSummary, TestResult

logger = logging.getLogger(__name__)

SPLUNK_EVENT_NAME = "flakeguard_test_result"
# Splunk accepts far more per request, but huge bodies hit proxy limits and timeouts
SPLUNK_SIZE_LIMIT_BYTES = 100_000_000
DRY_RUN_FILE = "splunk_test_results.json"

_RETRY_STATUSES = frozenset({500, 502, 503, 504})


def get_token(token: str = "") -> str:
    """Return the given token, falling back to the SPLUNK_TOKEN env var."""
    return token or os.environ.get("SPLUNK_TOKEN", "")


def splunk_event(result: TestResult, source_type: str, index: str) -> str:
    """Serialize one result as a single-line HEC event."""
    return json.dumps({
        "event": {
            "event": SPLUNK_EVENT_NAME,
            "data": result.to_dict(include_outputs=False),
        },
        "sourcetype": source_type,
        "index": index,
    })


def build_batches(
    results: Sequence[TestResult],
    source_type: str,
    index: str,
    limit_bytes: int = SPLUNK_SIZE_LIMIT_BYTES,
) -> Iterator[str]:
    """Yield newline-delimited request bodies no larger than limit_bytes.

    A single event bigger than the limit still goes out, alone.
    """
    lines: list[str] = []
    size = 0
    for result in results:
        line = splunk_event(result, source_type, index) + "\n"
        line_size = len(line.encode("utf-8"))
        if lines and size + line_size > limit_bytes:
            yield "".join(lines)
            lines, size = [], 0
        lines.append(line)
        size += line_size
    if lines:
        yield "".join(lines)


def make_session(
    token: str,
    max_retries: int = 3,
    backoff_factor: float = 0.1,
) -> requests.Session:
    """Return a session that authenticates to HEC and retries 5xx and connection errors."""
    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        backoff_max=1.0,
        status_forcelist=_RETRY_STATUSES,
        allowed_methods=None,
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({
        "Authorization": f"Splunk {token}",
        "Content-Type": "application/json",
    })
    return session


def _post_batch(session: requests.Session, url: str, body: str) -> None:
    resp = session.post(url, data=body.encode("utf-8"), timeout=30)
    resp.raise_for_status()


def _write_dry_run_batch(report_dir: str, body: str) -> str:
    os.makedirs(report_dir, exist_ok=True)
    path = os.path.join(report_dir, DRY_RUN_FILE)
    with open(path, "a", encoding="utf-8") as f:
        f.write("Batch:\n")
        f.write(body)
        f.write("\n")
    return path


def send_to_splunk(
    summary: RunSummary,
    results: Sequence[TestResult],
    url: str = "",
    token: str = "",
    index: str = "",
    source_type: str = "",
    dry_run: bool = False,
    report_dir: str = ".",
    session: requests.Session | None = None,
) -> None:
    """Report every result to Splunk, or append the batches to a file on dry run."""
    token = get_token(token)
    if not url or not token or not index:
        raise ValueError(
            "Splunk URL, token, and index must be set to use Splunk reporting"
        )

    logger.debug("Reporting %d results to Splunk", len(results))
    start = time.monotonic()

    if dry_run:
        for body in build_batches(results, source_type, index):
            path = _write_dry_run_batch(report_dir, body)
            logger.debug("Dry run: wrote Splunk batch of %d KB to %s",
                         len(body) // 1024, path)
        return

    if session is not None:
        session.headers.update({
            "Authorization": f"Splunk {token}",
            "Content-Type": "application/json",
        })
        _send_batches(session, url, results, source_type, index)
    else:
        with make_session(token) as session:
            _send_batches(session, url, results, source_type, index)

    logger.info("Sent %d test results to Splunk in %.1fs (%s)",
                len(results), time.monotonic() - start, summary)


def _send_batches(session, url, results, source_type, index):
    for body in build_batches(results, source_type, index):
        _post_batch(session, url, body)
        logger.debug("Sent batch of %d KB to Splunk", len(body) // 1024)
