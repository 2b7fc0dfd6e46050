"""
Dependency installer - pip inside the activated virtualenv.

Steps run in order and each must succeed before the next:

  1. synthesize ``requirements.txt`` (``-e .``) when the app has none;
  2. install the VCS client any ``<scheme>+`` requirement needs;
  3. install the pinned pip release;
  4. install the requirements, checkouts going to ``.heroku/src``.

Any installer failure is fatal: packages are part of the runtime, not a
nice-to-have.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Sequence

from python_buildpack.core.environment import Environment
from python_buildpack.core.procs import CommandRunner, ToolResult
from python_buildpack.io.buildlog import emit_block, emit_output
from python_buildpack.policy.failures import BuildFailed, FailureReason
from python_buildpack.policy.profile import BuildProfile

logger = logging.getLogger(__name__)


def ensure_requirements(build_dir: Path, profile: BuildProfile) -> Path:
    """Return the requirements file, writing the self-install default if absent."""
    path = build_dir / profile.requirements_file
    if not path.exists():
        logger.info("No %s provided; assuming dist package.", profile.requirements_file)
        path.write_text(profile.default_requirement + "\n", encoding="utf-8")
    return path


def required_vcs_clients(requirements: str, profile: BuildProfile) -> List[str]:
    """Client packages needed for the VCS URLs referenced in ``requirements``."""
    lowered = requirements.lower()
    return [
        package
        for fragment, package in profile.vcs_clients.items()
        if fragment.lower() in lowered
    ]


class DependencyInstaller:
    """Runs pip from the activated environment."""

    def __init__(
        self,
        runner: CommandRunner,
        build_dir: Path,
        profile: BuildProfile,
        download_cache: Path | None = None,
    ):
        self.runner = runner
        self.build_dir = Path(build_dir)
        self.profile = profile
        self.download_cache = download_cache
        self.vcs_clients: List[str] = []

    def _pip(
        self,
        environment: Environment,
        env: Mapping[str, str],
        args: Sequence[str],
    ) -> ToolResult:
        argv = [str(environment.executable("pip")), "install", *args]
        if self.download_cache is not None:
            argv.append(f"--cache-dir={self.download_cache}")
        result = self.runner.run(argv, cwd=self.build_dir, env=env, on_line=emit_output)
        if not result.ok:
            logger.warning("pip install failed, full output follows")
            emit_block(result.output, cleanup=False)
            raise BuildFailed(
                FailureReason.INSTALL_FAILED,
                f"{result.command} exited {result.returncode}",
                diagnostic=result.output,
            )
        return result

    def install(self, environment: Environment, env: Mapping[str, str]) -> None:
        requirements = ensure_requirements(self.build_dir, self.profile)
        text = requirements.read_text(encoding="utf-8")

        self.vcs_clients = required_vcs_clients(text, self.profile)
        for package in self.vcs_clients:
            logger.info("Installing %s for version-controlled requirements", package)
            self._pip(environment, env, [package])

        logger.info("Installing pip %s", self.profile.pip_version)
        self._pip(environment, env, [f"pip=={self.profile.pip_version}"])

        logger.info("Installing dependencies using pip")
        src_dir = self.build_dir / self.profile.src_dir
        self._pip(
            environment,
            env,
            [
                "-r", str(requirements),
                "--exists-action=w",
                f"--src={src_dir}",
            ],
        )
