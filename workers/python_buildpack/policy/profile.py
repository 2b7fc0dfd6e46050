"""
Profile - every constant the pipeline has an opinion about.

Layout names, the pinned pip release, the interpreter, the runtime profile
values and the VCS client map all live here so that core/ carries no
opinions. Changing a pin or a path is a profile change, not a code change.
"""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Dict, Tuple


@unique
class LayoutKind(str, Enum):
    MODERN = "modern"
    LEGACY = "legacy"


@dataclass(frozen=True)
class LayoutScheme:
    """
    One virtualenv layout.

    ``cache_names`` are the top-level build-dir paths copied to and from the
    cache. ``env_root`` is where the virtualenv lives, relative to the build
    dir. ``rebuild_dirs`` are wiped when the virtualenv has to be recreated.
    """

    kind: LayoutKind
    cache_names: Tuple[str, ...]
    env_root: str
    rebuild_dirs: Tuple[str, ...]

    @property
    def is_legacy(self) -> bool:
        return self.kind == LayoutKind.LEGACY

    @classmethod
    def modern(cls) -> LayoutScheme:
        return cls(
            kind=LayoutKind.MODERN,
            cache_names=(".heroku",),
            env_root=".heroku/venv",
            rebuild_dirs=(".heroku/venv",),
        )

    @classmethod
    def legacy(cls) -> LayoutScheme:
        return cls(
            kind=LayoutKind.LEGACY,
            cache_names=("bin", "include", "lib"),
            env_root=".",
            rebuild_dirs=("bin", "include", "lib"),
        )


@dataclass(frozen=True)
class BuildProfile:
    """Tunable knobs for one compile run."""

    profile_id: str
    interpreter: str = "python3"
    pip_version: str = "23.3.2"

    # Layout detection
    legacy_marker: str = "lib/python2.7"
    checked_in_env_dirs: Tuple[str, ...] = ("bin", "lib")

    # Build-dir paths
    requirements_file: str = "requirements.txt"
    default_requirement: str = "-e ."
    scratch_dir: str = ".heroku"
    src_dir: str = ".heroku/src"
    profile_path: str = ".profile.d/python.sh"

    # URL fragment -> client package installed before dependencies
    vcs_clients: Dict[str, str] = field(
        default_factory=lambda: {"hg+": "mercurial"}
    )

    # Detected app kind that triggers the framework hook
    framework_kind: str = "Python/Django"

    # Runtime values written to the profile script
    app_dir: str = "/app"
    vendor_lib_dir: str = "/app/.heroku/vendor/lib"
    locale: str = "en_US.UTF-8"
    hash_seed: str = "random"

    # Variables removed from the build environment before any step
    sanitized_env: Tuple[str, ...] = (
        "GIT_DIR",
        "PYTHONHOME",
        "PYTHONPATH",
        "LD_LIBRARY_PATH",
        "LIBRARY_PATH",
    )

    def runtime_env_root(self, layout: LayoutScheme) -> str:
        """Absolute location of the virtualenv once the slug is deployed."""
        path = posixpath.normpath(posixpath.join(self.app_dir, layout.env_root))
        return path.rstrip("/") + "/"

    @classmethod
    def v1(cls) -> BuildProfile:
        """The default profile: CPython 3 virtualenv, pinned pip."""
        return cls(profile_id="heroku-python-virtualenv")
