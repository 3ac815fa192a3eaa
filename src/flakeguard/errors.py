"""Error types and process exit codes.

A build failure is reported with a different exit code than a flakeguard
error so callers can tell "the code does not compile" apart from "the
analysis could not run". Failing tests are not errors at all: they are
data in the report, and only the CLI turns them into exit code 1.
"""

CODE_SUCCESS = 0
# go test exits 1 when a test fails
CODE_GO_FAILING_TEST = 1
CODE_GO_BUILD_ERROR = 2
CODE_FLAKEGUARD_ERROR = 3


class FlakeguardError(Exception):
    """Base class for every error that aborts an analysis."""

    exit_code = CODE_FLAKEGUARD_ERROR


class UnreadableSource(FlakeguardError):
    """A test output file could not be opened or read."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        msg = f"failed to read test output file {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MalformedStream(FlakeguardError):
    """A line of test output is not a valid go test -json event."""

    def __init__(self, path: str, line_number: int, reason: str):
        self.path = path
        self.line_number = line_number
        super().__init__(
            f"malformed go test -json output at {path}:{line_number}: {reason}"
        )


class BuildFailure(FlakeguardError):
    exit_code = CODE_GO_BUILD_ERROR

    def __init__(self, package: str = ""):
        self.package = package
        msg = "go test build failed"
        if package:
            msg += f" for package {package}"
        super().__init__(msg)


class NoTestsExecuted(FlakeguardError):
    def __init__(self):
        super().__init__("no tests run")


class ReportError(FlakeguardError):
    """One or more report sinks failed.

    `failures` maps sink name to the exception it raised.
    """

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = failures
        details = "; ".join(
            f"{name}: {err}" for name, err in sorted(failures.items())
        )
        super().__init__(f"{len(failures)} report sink(s) failed: {details}")


def exit_code(err: BaseException | None) -> int:
    """Return the process exit code for an error, CODE_SUCCESS for None."""
    if err is None:
        return CODE_SUCCESS
    if isinstance(err, FlakeguardError):
        return err.exit_code
    return CODE_FLAKEGUARD_ERROR
