"""
Profile script - runtime environment written for the deployed app.

Two statement forms, one per line:

    export KEY=VALUE              (set)
    export KEY=${KEY:-VALUE}      (set unless already set at app start)

``write_runtime_profile`` emits the fixed seven-statement sequence; a key is
never written twice.
"""
from __future__ import annotations

from pathlib import Path
from typing import List

from python_buildpack.policy.profile import BuildProfile, LayoutScheme


class ProfileScript:
    """Append-only writer for one profile script."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._keys: List[str] = []

    def reset(self) -> None:
        """Start an empty script for this build."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")
        self._keys = []

    def _append(self, key: str, statement: str) -> None:
        if key in self._keys:
            raise ValueError(f"{key} already assigned in {self.path}")
        self._keys.append(key)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(statement + "\n")

    def set_env(self, key: str, value: str) -> None:
        self._append(key, f"export {key}={value}")

    def set_default_env(self, key: str, value: str) -> None:
        self._append(key, f"export {key}=${{{key}:-{value}}}")

    @property
    def keys(self) -> List[str]:
        return list(self._keys)


def write_runtime_profile(
    script: ProfileScript,
    layout: LayoutScheme,
    profile: BuildProfile,
    python_home: str | None = None,
) -> ProfileScript:
    """
    Write the runtime profile.

    ``python_home`` is the base interpreter prefix of a pyvenv.cfg
    environment. Without it PYTHONHOME defaults to the environment root,
    which only works for an environment that carries its own stdlib.
    """
    env_home = python_home or profile.runtime_env_root(layout)
    bin_path = "$HOME/bin" if layout.env_root == "." else f"$HOME/{layout.env_root}/bin"

    script.reset()
    script.set_env("PATH", f"{bin_path}:$PATH")
    script.set_default_env("PYTHONUNBUFFERED", "true")
    script.set_default_env("LD_LIBRARY_PATH", profile.vendor_lib_dir)
    script.set_default_env("LANG", profile.locale)
    script.set_default_env("PYTHONHASHSEED", profile.hash_seed)
    script.set_default_env("PYTHONHOME", env_home)
    script.set_default_env("PYTHONPATH", profile.app_dir.rstrip("/") + "/")
    return script
