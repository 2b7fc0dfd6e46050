"""
Process execution - every external tool call goes through CommandRunner.

A call never raises on a non-zero exit; it returns a ToolResult and the
caller decides whether the step is fatal. Output is merged (stdout + stderr),
kept whole in the result, and optionally streamed line by line.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Sequence, Tuple

logger = logging.getLogger(__name__)

LineSink = Callable[[str], None]


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external invocation. ``output`` is opaque diagnostic text."""

    argv: Tuple[str, ...]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)

    @classmethod
    def success(cls, argv: Sequence[str] = (), output: str = "") -> ToolResult:
        return cls(argv=tuple(argv), returncode=0, output=output)

    @classmethod
    def failure(cls, argv: Sequence[str], output: str, returncode: int = 1) -> ToolResult:
        return cls(argv=tuple(argv), returncode=returncode, output=output)


class CommandRunner:
    """Blocking subprocess execution with merged, optionally streamed output."""

    def run(
        self,
        argv: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        on_line: LineSink | None = None,
    ) -> ToolResult:
        argv = [str(a) for a in argv]
        logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd)
        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            # Missing executable or permission problem: same shape as a tool failure
            return ToolResult.failure(argv, f"{argv[0]}: {e}", returncode=127)

        lines = []
        assert proc.stdout is not None
        with proc.stdout:
            for line in proc.stdout:
                lines.append(line)
                if on_line is not None:
                    on_line(line)
        returncode = proc.wait()
        logger.debug("exit %d: %s", returncode, argv[0])
        return ToolResult(argv=tuple(argv), returncode=returncode, output="".join(lines))
