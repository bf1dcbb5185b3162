"""Custom exceptions for restic-exporter.

Every failure surfaced by the adapter is a subclass of ``ResticError`` so
callers can catch one type. Unknown message types are deliberately not a
``DecodeError``: they signal that the tool's output format changed.
"""

from typing import List, Optional, Sequence


class ResticError(RuntimeError):
    """Base class for all restic-exporter errors."""
    pass


class LaunchError(ResticError):
    """The restic executable could not be started."""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(
            f"Could not launch '{executable}': {reason}. "
            f"Check that restic is installed and on PATH."
        )


class ProcessFailedError(ResticError):
    """restic started but exited with a non-zero code."""

    def __init__(
        self,
        argv: Sequence[str],
        exit_code: int,
        stderr: str,
        stdout: bytes = b"",
        events: Optional[List] = None,
    ):
        self.argv = list(argv)
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        # Events decoded before the failure (backup only)
        self.events = events if events is not None else []
        detail = stderr.strip() or "(no output on stderr)"
        super().__init__(
            f"restic exited with code {exit_code}: {' '.join(self.argv)}\n{detail}"
        )


class DecodeError(ResticError):
    """Output did not parse as JSON or did not match the expected shape."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
        events: Optional[List] = None,
    ):
        self.line_number = line_number
        self.line = line
        self.events = events if events is not None else []
        if line_number is not None:
            message = f"line {line_number}: {message}"
        if line is not None:
            message = f"{message}\n  {line[:200]}"
        super().__init__(message)


class UnknownMessageTypeError(ResticError):
    """An event carried a message_type this adapter does not know about."""

    def __init__(
        self,
        message_type: Optional[str],
        line_number: Optional[int] = None,
        events: Optional[List] = None,
    ):
        self.message_type = message_type
        self.line_number = line_number
        self.events = events if events is not None else []
        where = f" on line {line_number}" if line_number is not None else ""
        shown = repr(message_type) if message_type is not None else "(missing)"
        super().__init__(
            f"Unknown message_type {shown}{where}. "
            f"The installed restic may be newer than this exporter supports."
        )


class ConfigError(ResticError):
    """Invalid or missing exporter configuration."""
    pass
