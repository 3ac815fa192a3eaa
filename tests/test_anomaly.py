"""Tests for flakeguard.anomaly -- crash and race detection in output text."""

from conftest import SAMPLE_PANIC_OUTPUT, SAMPLE_RACE_OUTPUT, SAMPLE_TIMEOUT_OUTPUT

from flakeguard.anomaly import Anomaly, classify_output


class TestClassifyOutput:
    def test_plain_output(self):
        assert classify_output("=== RUN   TestFoo\n") is Anomaly.NONE

    def test_empty(self):
        assert classify_output("") is Anomaly.NONE

    def test_panic(self):
        assert classify_output(SAMPLE_PANIC_OUTPUT) is Anomaly.PANIC

    def test_bare_panic_prefix(self):
        assert classify_output("panic:") is Anomaly.PANIC

    def test_timeout_wins_over_panic(self):
        assert classify_output(SAMPLE_TIMEOUT_OUTPUT) is Anomaly.TIMEOUT

    def test_race(self):
        assert classify_output(SAMPLE_RACE_OUTPUT) is Anomaly.RACE

    def test_must_be_at_line_start(self):
        assert classify_output("    panic: nested in log\n") is Anomaly.NONE
        assert classify_output("got WARNING: DATA RACE\n") is Anomaly.NONE

    def test_case_sensitive(self):
        assert classify_output("Panic: something\n") is Anomaly.NONE
        assert classify_output("warning: data race\n") is Anomaly.NONE

    def test_recovered_panic_text_is_not_a_panic(self):
        assert classify_output("--- FAIL: TestFoo (0.00s)\n") is Anomaly.NONE


class TestCrashesPackage:
    def test_panic_and_timeout_crash(self):
        assert Anomaly.PANIC.crashes_package
        assert Anomaly.TIMEOUT.crashes_package

    def test_race_and_none_do_not(self):
        assert not Anomaly.RACE.crashes_package
        assert not Anomaly.NONE.crashes_package
