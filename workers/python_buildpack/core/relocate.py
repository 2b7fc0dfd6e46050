"""
Relocation - strip absolute build paths out of a virtualenv.

The build runs at a temporary path but the slug is deployed elsewhere, and
the cached copy is restored into yet another build dir. Two kinds of
references are rewritten:

  * script shebangs pointing into the virtualenv become
    ``#!/usr/bin/env <interpreter>``;
  * absolute entries in ``.pth`` and ``.egg-link`` files that point inside
    the anchor directory become paths relative to the file holding them.

Binary files and paths outside the anchor are left untouched. Paths are
compared lexically: ``bin/python`` is a symlink to the system interpreter
and must not be resolved.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List

from python_buildpack.core.procs import ToolResult

logger = logging.getLogger(__name__)

# pip's long-shebang prelude: #!/bin/sh + '''exec' "/abs/python" "$0" "$@"
_EXEC_PRELUDE_RE = re.compile(r"""^'''exec' "([^"]+)" (.*)$""")

ENV_DIRS = ("lib", "bin")


def _spellings(path: Path) -> List[str]:
    """The given and the fully resolved spelling of a directory."""
    given = os.path.normpath(os.path.abspath(str(path)))
    resolved = str(Path(path).resolve())
    return [given] if given == resolved else [given, resolved]


def _rebase(path: str, bases: Iterable[str], target: str) -> str | None:
    """Re-express ``path`` under ``target`` if it lies inside one of ``bases``."""
    norm = os.path.normpath(path)
    for base in bases:
        if norm == base:
            return target
        if norm.startswith(base + os.sep):
            return target + norm[len(base):]
    return None


def _fix_script(script: Path, root_bases: List[str], interpreter: str) -> bool:
    try:
        text = script.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return False
    lines = text.splitlines(keepends=True)
    if not lines or not lines[0].startswith("#!"):
        return False

    target = lines[0][2:].strip().split(" ", 1)[0]
    if target != "/bin/sh":
        if _rebase(target, root_bases, "") is None:
            return False
        lines[0] = f"#!/usr/bin/env {interpreter}\n"
    else:
        if len(lines) < 2:
            return False
        match = _EXEC_PRELUDE_RE.match(lines[1].rstrip("\n"))
        if not match or _rebase(match.group(1), root_bases, "") is None:
            return False
        lines[1] = f"'''exec' {interpreter} {match.group(2)}\n"

    script.write_text("".join(lines), encoding="utf-8")
    return True


def _fix_path_file(path_file: Path, anchor_bases: List[str]) -> bool:
    try:
        lines = path_file.read_text(encoding="utf-8").splitlines()
    except UnicodeDecodeError:
        return False

    anchor = anchor_bases[-1]
    here = str(path_file.parent.resolve())
    changed = False
    out: List[str] = []
    for line in lines:
        entry = line.strip()
        if entry and os.path.isabs(entry):
            rebased = _rebase(entry, anchor_bases, anchor)
            if rebased is not None:
                line = os.path.relpath(rebased, here)
                changed = True
        out.append(line)

    if changed:
        path_file.write_text("\n".join(out) + "\n", encoding="utf-8")
    return changed


def _path_files(root: Path) -> List[Path]:
    # Only the environment's own dirs: with the app-root layout ``root`` is
    # the whole application tree.
    found: List[Path] = []
    for sub in ENV_DIRS:
        base = root / sub
        if base.is_dir() and not base.is_symlink():
            found += sorted(base.rglob("*.pth")) + sorted(base.rglob("*.egg-link"))
    return found


def make_relocatable(root: Path, interpreter: str, anchor: Path | None = None) -> ToolResult:
    """
    Rewrite absolute references inside the virtualenv at ``root``.

    ``anchor`` bounds which absolute paths count as internal for path files
    (defaults to ``root``). Returns a failed ToolResult when the tree is not
    a virtualenv or cannot be rewritten.
    """
    root = Path(root)
    argv = ("relocate", str(root))
    root_bases = _spellings(root)
    anchor_bases = _spellings(anchor if anchor is not None else root)
    bin_dir = root / "bin"
    notes: List[str] = []

    if not bin_dir.is_dir():
        return ToolResult.failure(argv, f"{bin_dir} not found; {root} is not a virtualenv\n")

    try:
        for script in sorted(bin_dir.iterdir()):
            if script.is_symlink() or not script.is_file():
                continue
            if _fix_script(script, root_bases, interpreter):
                notes.append(f"Making script {script} relative\n")

        for path_file in _path_files(root):
            if path_file.is_file() and _fix_path_file(path_file, anchor_bases):
                notes.append(f"Making paths in {path_file} relative\n")
    except OSError as e:
        notes.append(f"Cannot make {root} relocatable: {e}\n")
        return ToolResult.failure(argv, "".join(notes))

    logger.debug("relocated %d files under %s", len(notes), root)
    return ToolResult.success(argv, "".join(notes))
