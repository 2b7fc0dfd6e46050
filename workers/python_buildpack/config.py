"""
Build settings read from the platform environment
"""
from pathlib import Path

from pydantic_settings import BaseSettings


class BuildSettings(BaseSettings):
    """Environment overrides honored by a compile run"""

    # Package download cache handed to pip (--cache-dir)
    PIP_DOWNLOAD_CACHE: str | None = None

    # Any non-empty value wipes and recreates the virtualenv
    BUILDPACK_FORCE_REBUILD: str | None = None

    # Read by the framework hook, passed through untouched
    DISABLE_INJECTION: str | None = None

    # Environment tool used to create virtualenvs
    VIRTUALENV_COMMAND: str = "virtualenv"

    # Directory holding the pre_compile / post_compile / django hooks
    BUILDPACK_HOOKS_DIR: str | None = None

    @property
    def force_rebuild(self) -> bool:
        return bool(self.BUILDPACK_FORCE_REBUILD)

    @property
    def download_cache(self) -> Path | None:
        if not self.PIP_DOWNLOAD_CACHE:
            return None
        return Path(self.PIP_DOWNLOAD_CACHE)

    @property
    def hooks_dir(self) -> Path:
        if self.BUILDPACK_HOOKS_DIR:
            return Path(self.BUILDPACK_HOOKS_DIR)
        return Path(__file__).resolve().parent / "hooks"

    class Config:
        case_sensitive = True


def load_settings() -> BuildSettings:
    """Read settings from the current process environment."""
    return BuildSettings()
