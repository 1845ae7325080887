"""Message formatting for the interpreter's output and error streams."""

from __future__ import annotations

import signal

ERROR_PREFIX = "error: "
WARNING_PREFIX = "warning: "


def format_error(message: str) -> str:
    """Format a one-line error message for the error stream."""
    return f"{ERROR_PREFIX}{message}\n"


def format_warning(message: str) -> str:
    return f"{WARNING_PREFIX}{message}\n"


def format_history_entry(index: int, text: str) -> str:
    """Format one line of ``history`` output."""
    return f"{index} {text}\n"


def normalize_returncode(returncode: int) -> int:
    """Map subprocess return codes to shell exit statuses (signal N -> 128 + N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def describe_exit_code(code: int) -> str:
    """Human-readable description of a shell exit status."""
    if code == 0:
        return "OK"
    if code > 128:
        try:
            return f"killed by {signal.Signals(code - 128).name}"
        except ValueError:
            pass
    return f"ERR({code})"
