"""
Shared pytest fixtures for python_buildpack tests.

All fixtures are pure-Python: no real virtualenv, no pip, no network. The
fake environment tool lays down a minimal virtualenv tree on ``create`` and
the fake runner records every command it is asked to run.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Mapping, Sequence

import pytest

from python_buildpack.config import BuildSettings
from python_buildpack.core.context import BuildContext
from python_buildpack.core.hooks import HookDispatcher, NoopExtension
from python_buildpack.core.procs import ToolResult
from python_buildpack.policy.profile import BuildProfile, LayoutScheme

FAKE_BASE_HOME = "/usr/local/bin"

SETTINGS_ENV = (
    "PIP_DOWNLOAD_CACHE",
    "BUILDPACK_FORCE_REBUILD",
    "DISABLE_INJECTION",
    "VIRTUALENV_COMMAND",
    "BUILDPACK_HOOKS_DIR",
)


# ═══════════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════════

class RecordedCall:
    def __init__(self, argv: Sequence[str], cwd: Path | None, env: Mapping[str, str] | None):
        self.argv = [str(a) for a in argv]
        self.cwd = cwd
        self.env = dict(env) if env is not None else None


class FakeRunner:
    """Records commands; ``fail_when`` picks which ones exit non-zero."""

    def __init__(self, fail_when: Callable[[List[str]], bool] | None = None, output: str = ""):
        self.calls: List[RecordedCall] = []
        self.fail_when = fail_when
        self.output = output

    def run(self, argv, cwd=None, env=None, on_line=None) -> ToolResult:
        call = RecordedCall(argv, cwd, env)
        self.calls.append(call)
        if on_line is not None:
            for line in self.output.splitlines(keepends=True):
                on_line(line)
        if self.fail_when is not None and self.fail_when(call.argv):
            return ToolResult.failure(call.argv, self.output or "ERROR: simulated failure\n")
        return ToolResult.success(call.argv, self.output)

    @property
    def pip_calls(self) -> List[List[str]]:
        return [c.argv for c in self.calls if c.argv and c.argv[0].endswith("pip")]


class FakeEnvTool:
    """
    Stand-in for virtualenv.

    ``create_results`` is consumed one per ``create`` call (True = success);
    once exhausted every call succeeds. A successful create writes
    ``bin/python``, ``bin/pip`` and ``pyvenv.cfg`` under the root.
    """

    def __init__(self, create_results: Sequence[bool] = (), relocate_ok: bool = True):
        self.create_results = list(create_results)
        self.relocate_ok = relocate_ok
        self.create_calls: List[Path] = []
        self.relocate_calls: List[Path] = []

    def describe(self) -> str:
        return "fake-20.0"

    def create(self, root: Path, interpreter: str, env: Mapping[str, str]) -> ToolResult:
        self.create_calls.append(Path(root))
        ok = self.create_results.pop(0) if self.create_results else True
        argv = ("virtualenv", "--python", interpreter, str(root))
        if not ok:
            return ToolResult.failure(argv, "virtualenv: corrupt environment\n")
        bin_dir = Path(root) / "bin"
        bin_dir.mkdir(parents=True, exist_ok=True)
        (bin_dir / "python").write_text("")
        (bin_dir / "pip").write_text(f"#!{bin_dir / 'python'}\nimport pip\n")
        (Path(root) / "pyvenv.cfg").write_text(f"home = {FAKE_BASE_HOME}\nversion_info = 3.12.1\n")
        return ToolResult.success(argv, "created virtual environment...... in 10ms\n")

    def make_relocatable(self, root: Path, interpreter: str, anchor: Path) -> ToolResult:
        self.relocate_calls.append(Path(root))
        argv = ("relocate", str(root))
        if not self.relocate_ok:
            return ToolResult.failure(argv, "Cannot make relocatable: permission denied\n")
        return ToolResult.success(argv)


class RecordingExtension(NoopExtension):
    def __init__(self, name: str, returncode: int = 0):
        super().__init__(name)
        self.returncode = returncode
        self.contexts: List[BuildContext] = []

    def run(self, context: BuildContext) -> ToolResult:
        self.contexts.append(context)
        return ToolResult((self.name,), self.returncode, "")


# ═══════════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def profile() -> BuildProfile:
    return BuildProfile.v1()


@pytest.fixture
def settings() -> BuildSettings:
    return BuildSettings()


@pytest.fixture
def build_dir(tmp_path) -> Path:
    d = tmp_path / "build"
    d.mkdir()
    (d / "app.py").write_text("print('hello')\n")
    (d / "requirements.txt").write_text("flask==3.0.0\n")
    return d


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    d = tmp_path / "cache"
    d.mkdir()
    return d


@pytest.fixture
def legacy_cache_dir(cache_dir, profile) -> Path:
    """A cache written by the old app-root virtualenv layout."""
    (cache_dir / profile.legacy_marker / "site-packages").mkdir(parents=True)
    (cache_dir / "bin").mkdir()
    (cache_dir / "bin" / "python").write_text("")
    (cache_dir / "include").mkdir()
    return cache_dir


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_tool() -> FakeEnvTool:
    return FakeEnvTool()


@pytest.fixture
def recording_hooks() -> HookDispatcher:
    return HookDispatcher(
        pre_compile=RecordingExtension("pre_compile"),
        post_compile=RecordingExtension("post_compile"),
        framework=RecordingExtension("django"),
    )


@pytest.fixture
def make_context(build_dir, cache_dir, settings, profile):
    def _make(**overrides) -> BuildContext:
        values = dict(
            build_dir=build_dir,
            cache_dir=cache_dir,
            settings=settings,
            profile=profile,
            env={"PATH": "/usr/bin"},
            layout=LayoutScheme.modern(),
        )
        values.update(overrides)
        return BuildContext(**values)

    return _make
