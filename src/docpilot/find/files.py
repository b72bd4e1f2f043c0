"""Source file discovery."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from docpilot.config.defaults import DEFAULT_EXCLUDE

logger = logging.getLogger(__name__)


def match_glob(pattern: str, path: str) -> bool:
    """fnmatch against a POSIX relative path; a leading ``**/`` may match nothing."""
    if fnmatch.fnmatchcase(path, pattern):
        return True
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        if fnmatch.fnmatchcase(path, pattern):
            return True
    return False


def _matches_any(patterns: Iterable[str], path: str) -> bool:
    return any(match_glob(p, path) for p in patterns)


def find_files(
    root: Path,
    *,
    extensions: Sequence[str],
    include: Sequence[str] = (),
    exclude: Optional[Sequence[str]] = None,
) -> List[str]:
    """List source files under root, relative and sorted.

    Args:
        root: Repository root.
        extensions: File suffixes to keep, e.g. (".go", ".py").
        include: If given, a file must match at least one of these globs.
        exclude: Globs of files and directories to skip. Defaults to
            DEFAULT_EXCLUDE; pass () to disable.
    """
    root = Path(root)
    exclude = DEFAULT_EXCLUDE if exclude is None else tuple(exclude)
    exts = tuple(extensions)
    found: List[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"

        # prune in place so os.walk never descends into excluded directories
        dirnames[:] = sorted(
            d for d in dirnames if not _matches_any(exclude, f"{rel_dir}{d}/_")
        )

        for name in filenames:
            if not name.endswith(exts):
                continue
            rel = f"{rel_dir}{name}"
            if _matches_any(exclude, rel):
                continue
            if include and not _matches_any(include, rel):
                continue
            found.append(rel)

    logger.debug("discovered %d files under %s", len(found), root)
    return sorted(found)
