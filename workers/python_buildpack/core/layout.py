"""
Layout migrator - picks the modern or legacy virtualenv layout for this build.

A legacy marker in the cache means a previous build used the old
``bin/ include/ lib/`` virtualenv at the app root; that layout is kept for
this build so the cached virtualenv stays usable. The decision is made once,
before anything is restored.
"""
from __future__ import annotations

import logging
from pathlib import Path

from python_buildpack.policy.failures import BuildFailed, FailureReason
from python_buildpack.policy.profile import BuildProfile, LayoutScheme

logger = logging.getLogger(__name__)

CHECKED_IN_WARNING = (
    "You have a virtualenv checked in. You should ignore the appropriate "
    "paths in your repo. See http://devcenter.heroku.com/articles/gitignore "
    "for more info."
)


def decide_layout(build_dir: Path, cache_dir: Path, profile: BuildProfile) -> LayoutScheme:
    """
    Return the layout scheme for this build.

    Raises BuildFailed(CONFIG_CONFLICT) when the legacy layout is selected
    but the build dir holds a plain file where the legacy marker directory
    has to go.
    """
    if not (cache_dir / profile.legacy_marker).exists():
        return LayoutScheme.modern()

    logger.debug("legacy marker %s found in cache", profile.legacy_marker)

    if any((build_dir / d).is_dir() for d in profile.checked_in_env_dirs):
        logger.warning(CHECKED_IN_WARNING)

    if (build_dir / profile.legacy_marker).is_file():
        logger.warning("Checked-in virtualenv conflict.")
        raise BuildFailed(
            FailureReason.CONFIG_CONFLICT,
            f"{profile.legacy_marker} is a file in the build directory; "
            "the cached virtualenv needs it to be a directory",
        )

    return LayoutScheme.legacy()
