"""
Environment lifecycle - create, repair and finalize the build's virtualenv.

``ensure`` creates the virtualenv in place; creating over a healthy one is a
no-op for the tool. A failed creation (or a forced rebuild) wipes the
layout's rebuild dirs and creates once more; a second failure ends the
build. ``finalize`` makes the result relocatable so it can be cached and
deployed at a different path.
"""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Protocol

from python_buildpack.core.procs import CommandRunner, ToolResult
from python_buildpack.core.relocate import make_relocatable
from python_buildpack.io.buildlog import emit_block
from python_buildpack.policy.failures import BuildFailed, FailureReason
from python_buildpack.policy.profile import LayoutScheme

logger = logging.getLogger(__name__)

PYVENV_CFG = "pyvenv.cfg"


def read_pyvenv_cfg(root: Path) -> Dict[str, str]:
    """``key = value`` pairs from the environment's pyvenv.cfg; empty if there is none."""
    path = Path(root) / PYVENV_CFG
    if not path.is_file():
        return {}
    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip()
    return values


@dataclass
class Environment:
    root: Path
    interpreter: str
    valid: bool = False
    relocatable: bool = False
    rebuilt: bool = False

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    def executable(self, name: str) -> Path:
        return self.bin_dir / name

    @property
    def python_home(self) -> str | None:
        """
        Prefix of the base interpreter, the one holding the standard library.

        A pyvenv.cfg environment only carries site-packages; ``home`` names
        the base interpreter's bin dir, so the prefix is its parent. None for
        an environment without pyvenv.cfg.
        """
        home = read_pyvenv_cfg(self.root).get("home")
        if not home:
            return None
        return str(Path(home).parent).rstrip("/") + "/"

    def activate(self, base: Mapping[str, str]) -> Dict[str, str]:
        """Return ``base`` with this environment's binaries first on PATH."""
        env = dict(base)
        path = env.get("PATH", "")
        env["PATH"] = f"{self.bin_dir}:{path}" if path else str(self.bin_dir)
        env["VIRTUAL_ENV"] = str(self.root)
        env.pop("PYTHONHOME", None)
        return env


class EnvironmentTool(Protocol):
    """The isolation tool. Implementations report, they never raise."""

    def describe(self) -> str: ...

    def create(self, root: Path, interpreter: str, env: Mapping[str, str]) -> ToolResult: ...

    def make_relocatable(self, root: Path, interpreter: str, anchor: Path) -> ToolResult: ...


class VirtualenvTool:
    """``virtualenv`` on the command line, relocation done in-process."""

    def __init__(self, runner: CommandRunner | None = None, command: str = "virtualenv"):
        self.runner = runner or CommandRunner()
        self.command = command

    def describe(self) -> str:
        result = self.runner.run([self.command, "--version"])
        words = result.output.split()
        if not result.ok or not words:
            return self.command
        # "virtualenv 20.25.0 from /usr/lib/..." -> "20.25.0"
        return words[1] if len(words) > 1 else words[0]

    def create(self, root: Path, interpreter: str, env: Mapping[str, str]) -> ToolResult:
        return self.runner.run(
            [self.command, "--python", interpreter, "--prompt", "(venv) ", str(root)],
            cwd=root.parent if root.parent.is_dir() else None,
            env=env,
        )

    def make_relocatable(self, root: Path, interpreter: str, anchor: Path) -> ToolResult:
        return make_relocatable(root, interpreter, anchor=anchor)


class EnvironmentManager:
    """Owns the virtualenv for one build."""

    def __init__(
        self,
        tool: EnvironmentTool,
        build_dir: Path,
        layout: LayoutScheme,
        env: Mapping[str, str],
        force_rebuild: bool = False,
    ):
        self.tool = tool
        self.build_dir = Path(build_dir)
        self.layout = layout
        self.env = env
        self.force_rebuild = force_rebuild

    def _wipe(self) -> None:
        for rel in self.layout.rebuild_dirs:
            target = self.build_dir / rel
            try:
                if target.is_symlink() or target.is_file():
                    target.unlink()
                elif target.exists():
                    shutil.rmtree(target)
            except OSError as e:
                raise BuildFailed(
                    FailureReason.ENVIRONMENT_FAILED,
                    f"could not remove {target} before rebuilding the virtualenv",
                    diagnostic=str(e),
                ) from e

    def ensure(self, root: Path, interpreter: str) -> Environment:
        logger.info("Creating Virtualenv (%s)", self.tool.describe())
        environment = Environment(root=Path(root), interpreter=interpreter)

        result = self.tool.create(environment.root, interpreter, self.env)
        if not result.ok or self.force_rebuild:
            if self.force_rebuild:
                logger.warning("Forced rebuild requested, recreating virtualenv.")
            else:
                logger.warning("Virtualenv corrupt, rebuilding.")
            self._wipe()
            environment.rebuilt = True
            result = self.tool.create(environment.root, interpreter, self.env)
            if not result.ok:
                emit_block(result.output, cleanup=False)
                raise BuildFailed(
                    FailureReason.ENVIRONMENT_FAILED,
                    f"virtualenv creation failed twice ({result.command} exited {result.returncode})",
                    diagnostic=result.output,
                )

        emit_block(result.output)
        environment.valid = True
        return environment

    def finalize(self, environment: Environment) -> Environment:
        result = self.tool.make_relocatable(
            environment.root, environment.interpreter, self.build_dir
        )
        if not result.ok:
            logger.warning("Error making virtualenv relocatable")
            emit_block(result.output, cleanup=False)
            raise BuildFailed(
                FailureReason.RELOCATE_FAILED,
                f"could not make {environment.root} relocatable",
                diagnostic=result.output,
            )
        environment.relocatable = True
        return environment
