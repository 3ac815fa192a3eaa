"""flakeguard -- find flaky Go tests by analyzing repeated `go test -json` runs."""

__version__ = "0.1.0"
