"""
Failures - the fatal outcomes of a compile run.

Only five conditions stop a build. Everything else (a cache entry that
cannot be restored, a checked-in virtualenv) is logged and the build goes on.
The diagnostic text of the failing tool is carried as-is, never rewritten.
"""
from enum import Enum, unique


@unique
class FailureReason(str, Enum):
    CONFIG_CONFLICT = "CONFIG_CONFLICT"
    ENVIRONMENT_FAILED = "ENVIRONMENT_FAILED"
    RELOCATE_FAILED = "RELOCATE_FAILED"
    INSTALL_FAILED = "INSTALL_FAILED"
    HOOK_FAILED = "HOOK_FAILED"


class BuildFailed(Exception):
    """Raised by any pipeline step that must abort the whole build."""

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        diagnostic: str | None = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.diagnostic = diagnostic
        self.receipt = None

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"
