"""
BuildContext - the single object threaded through every pipeline step.

Child processes get ``context.env``, never ``os.environ``. The layout is
fixed once by the layout migrator and read everywhere else.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping

from python_buildpack.config import BuildSettings
from python_buildpack.policy.profile import BuildProfile, LayoutScheme


@dataclass
class BuildContext:
    build_dir: Path
    cache_dir: Path
    settings: BuildSettings
    profile: BuildProfile
    env: Dict[str, str] = field(default_factory=dict)
    app_kind: str | None = None
    layout: LayoutScheme | None = None
    fresh_cache: bool = False

    @property
    def scheme(self) -> LayoutScheme:
        if self.layout is None:
            raise RuntimeError("layout has not been decided yet")
        return self.layout

    @property
    def env_root(self) -> Path:
        return (self.build_dir / self.scheme.env_root).resolve()

    @property
    def profile_script_path(self) -> Path:
        return self.build_dir / self.profile.profile_path


def sanitized_env(base: Mapping[str, str], profile: BuildProfile) -> Dict[str, str]:
    """Copy ``base`` without the variables that would leak into the build."""
    env = {k: v for k, v in base.items() if k not in profile.sanitized_env}
    env["PYTHONUNBUFFERED"] = "1"
    env["LANG"] = profile.locale
    return env
