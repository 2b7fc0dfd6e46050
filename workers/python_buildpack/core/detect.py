"""
Application detection.

Returns the app kind string the platform displays, or None when the
source tree is not a Python app.
"""
from pathlib import Path

PYTHON = "Python"
DJANGO = "Python/Django"

_PYTHON_MARKERS = ("requirements.txt", "setup.py")


def detect(build_dir: Path) -> str | None:
    build_dir = Path(build_dir)
    if (build_dir / "manage.py").is_file() and any(build_dir.glob("*/settings.py")):
        return DJANGO
    if any((build_dir / marker).is_file() for marker in _PYTHON_MARKERS):
        return PYTHON
    return None
