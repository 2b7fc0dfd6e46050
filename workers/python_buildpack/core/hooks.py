"""
Hook dispatcher - the pipeline's extension points.

Three points exist: ``pre_compile`` and ``post_compile`` always run, the
framework hook runs only for the detected framework kind. Each point is an
``ExtensionPoint``; a script that is not there resolves to a no-op, so the
dispatcher never special-cases a missing hook. A hook that fails fails the
build.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from python_buildpack.core.context import BuildContext
from python_buildpack.core.procs import CommandRunner, ToolResult
from python_buildpack.io.buildlog import emit_block, emit_output
from python_buildpack.policy.failures import BuildFailed, FailureReason

logger = logging.getLogger(__name__)

PRE_COMPILE = "pre_compile"
POST_COMPILE = "post_compile"
FRAMEWORK = "django"


class ExtensionPoint(Protocol):
    name: str

    def run(self, context: BuildContext) -> ToolResult: ...


class NoopExtension:
    def __init__(self, name: str):
        self.name = name

    def run(self, context: BuildContext) -> ToolResult:
        return ToolResult.success((self.name,))


class ScriptExtension:
    """An executable run from the build dir with the build environment."""

    def __init__(self, name: str, path: Path, runner: CommandRunner):
        self.name = name
        self.path = Path(path)
        self.runner = runner

    def run(self, context: BuildContext) -> ToolResult:
        argv = [str(self.path)]
        if not os.access(self.path, os.X_OK):
            argv = ["/bin/sh", str(self.path)]
        return self.runner.run(
            argv, cwd=context.build_dir, env=context.env, on_line=emit_output
        )


def load_extension(hooks_dir: Path, name: str, runner: CommandRunner) -> ExtensionPoint:
    path = Path(hooks_dir) / name
    if path.is_file():
        return ScriptExtension(name, path, runner)
    return NoopExtension(name)


class HookDispatcher:
    def __init__(
        self,
        pre_compile: ExtensionPoint,
        post_compile: ExtensionPoint,
        framework: ExtensionPoint,
    ):
        self.pre_compile = pre_compile
        self.post_compile = post_compile
        self.framework = framework

    @classmethod
    def from_directory(cls, hooks_dir: Path, runner: CommandRunner | None = None) -> HookDispatcher:
        runner = runner or CommandRunner()
        return cls(
            pre_compile=load_extension(hooks_dir, PRE_COMPILE, runner),
            post_compile=load_extension(hooks_dir, POST_COMPILE, runner),
            framework=load_extension(hooks_dir, FRAMEWORK, runner),
        )

    def _dispatch(self, hook: ExtensionPoint, context: BuildContext) -> None:
        logger.debug("hook %s", hook.name)
        result = hook.run(context)
        if not result.ok:
            logger.warning("%s hook failed", hook.name)
            emit_block(result.output, cleanup=False)
            raise BuildFailed(
                FailureReason.HOOK_FAILED,
                f"{hook.name} hook exited {result.returncode}",
                diagnostic=result.output,
            )

    def run_pre_compile(self, context: BuildContext) -> None:
        self._dispatch(self.pre_compile, context)

    def run_post_compile(self, context: BuildContext) -> None:
        self._dispatch(self.post_compile, context)

    def run_framework(self, context: BuildContext) -> bool:
        """Run the framework hook when the app is that framework; True if it ran."""
        if context.app_kind != context.profile.framework_kind:
            return False
        self._dispatch(self.framework, context)
        return True
