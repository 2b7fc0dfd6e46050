"""
Build log - the text the platform shows while a compile runs.

Three line shapes, all produced through stdlib logging:

    -----> Installing dependencies using pip      (INFO, step header)
     !     Virtualenv corrupt, rebuilding.        (WARNING and above)
           Successfully installed flask-3.0.0     (tool output, indented)

Tool output is routed through the ``python_buildpack.output`` logger.
``clean_line`` drops installer noise before it reaches the log.
"""
from __future__ import annotations

import logging
import re
import sys
from typing import TextIO

OUTPUT_LOGGER = "python_buildpack.output"

STEP_PREFIX = "-----> "
WARN_PREFIX = " !     "
INDENT = "       "

_ELLIPSIS_RE = re.compile(r"\.\.\.+")
_NOISE_RE = re.compile(
    r"already satisfied|overwriting|python executable|no previously-included files",
    re.IGNORECASE,
)

output_logger = logging.getLogger(OUTPUT_LOGGER)


class BuildLogFormatter(logging.Formatter):
    """Render records in the platform's build-log dialect."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.name == OUTPUT_LOGGER:
            return INDENT + message
        if record.levelno >= logging.WARNING:
            return WARN_PREFIX + message
        if record.levelno == logging.INFO:
            return STEP_PREFIX + message
        return INDENT + f"[{record.name}] {message}"


def configure_logging(verbose: bool = False, stream: TextIO | None = None) -> None:
    """Install the build-log handler on the root logger."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(BuildLogFormatter())
    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def clean_line(line: str) -> str | None:
    """Collapse dot runs and drop noise lines; None means drop."""
    if _NOISE_RE.search(line):
        return None
    return _ELLIPSIS_RE.sub("...", line)


def emit_output(line: str, cleanup: bool = True) -> None:
    """Send one line of tool output to the build log."""
    line = line.rstrip("\n")
    if cleanup:
        cleaned = clean_line(line)
        if cleaned is None:
            return
        line = cleaned
    output_logger.info(line)


def emit_block(text: str, cleanup: bool = True) -> None:
    """Send captured multi-line tool output to the build log."""
    for line in text.splitlines():
        emit_output(line, cleanup=cleanup)
