"""
Cache store - named top-level directories carried between builds.

``restore`` is advisory: a cache entry that fails to copy is skipped and
the build continues. ``persist`` replaces the cached copy wholesale and is
only ever called after the environment has been finalized.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def _copy_entry(src: Path, dest: Path) -> None:
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)
    else:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest, follow_symlinks=False)


def _remove_entry(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


class CacheStore:
    """Copies named entries between ``cache_dir`` and ``build_dir``."""

    def __init__(self, cache_dir: Path, build_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.build_dir = Path(build_dir)

    def is_empty(self) -> bool:
        """True when nothing has been cached yet (a fresh build)."""
        if not self.cache_dir.is_dir():
            return True
        return not any(self.cache_dir.iterdir())

    def restore(self, names: Iterable[str]) -> List[str]:
        """Copy each cached name into the build dir; return the names restored."""
        restored: List[str] = []
        for name in names:
            src = self.cache_dir / name
            if not src.exists():
                continue
            try:
                _copy_entry(src, self.build_dir / name)
            except (OSError, shutil.Error) as e:
                logger.debug("cache restore skipped %s: %s", name, e)
                continue
            restored.append(name)
        return restored

    def persist(self, names: Iterable[str]) -> List[str]:
        """Replace each cached name with the build dir's copy; return names stored."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        stored: List[str] = []
        for name in names:
            dest = self.cache_dir / name
            _remove_entry(dest)
            src = self.build_dir / name
            if not src.exists():
                logger.debug("cache persist: %s absent from build dir", name)
                continue
            _copy_entry(src, dest)
            stored.append(name)
        return stored
