"""Exception types shared across lazylog.

Helpers map these to process exit codes at the CLI boundary.
Everything recoverable is reported through return values instead.
"""

from __future__ import annotations

EXIT_UNKNOWN_MODE = 2
EXIT_INVARIANT_VIOLATION = 255


class LazylogError(Exception):
    """Base class for lazylog failures."""

    exit_code = 1


class UnknownHelperModeError(LazylogError):
    """Raised when ``LAZYLOG_MODE`` names no known helper mode."""

    exit_code = EXIT_UNKNOWN_MODE

    def __init__(self, flag: str) -> None:
        super().__init__(f"unknown helper mode: {flag!r}")
        self.flag = flag


class InvariantViolation(LazylogError):
    """Raised when a helper-only entry point runs outside its picker."""

    exit_code = EXIT_INVARIANT_VIOLATION


class ConfigError(LazylogError):
    """Raised for invalid command-line configuration values."""
