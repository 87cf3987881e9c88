"""
Backend error taxonomy.

Each error carries a machine-readable `kind` and the HTTP status the routes
answer with. Routes turn them into `{error, details, kind}` JSON bodies.
"""

from typing import Optional


class BackendError(Exception):
    """Base class for failures surfaced to API callers."""
    kind = "BackendError"
    status_code = 500


class ValidationError(BackendError):
    """Missing or malformed client input. Raised before any side effect."""
    kind = "ValidationError"
    status_code = 400


class StoreError(BackendError):
    """Document store read/write failure."""
    kind = "StoreError"


class UploadIOError(BackendError):
    """Directory creation or file write failure while saving uploads."""
    kind = "IOError"


class PipelineStepError(BackendError):
    """An external pipeline step failed, timed out or could not be started.

    Attributes:
        step: Name of the failing step
        returncode: Process exit code (None when the process never finished)
        stdout: Captured standard output (partial when the step timed out)
        stderr: Captured diagnostic output of the step
    """
    kind = "PipelineStepError"

    def __init__(
        self,
        step: str,
        reason: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        stdout: str = "",
    ):
        self.step = step
        self.reason = reason
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"Step '{step}' failed: {reason}"
        if self.stderr.strip():
            message += f"\n{_tail(self.stderr)}"
        super().__init__(message)


def _tail(text: str, max_lines: int = 20) -> str:
    lines = text.strip().splitlines()
    return "\n".join(lines[-max_lines:])
