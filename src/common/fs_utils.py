"""Filesystem helpers for moving packages in and out of the install directory."""
from __future__ import annotations

import logging
import os
import shutil
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def copy_directory(source: str, target: str, override: bool = False) -> None:
    """Copy every file under ``source`` into ``target``.

    Existing target files are kept unless ``override`` is set.
    """
    for dirpath, _, filenames in os.walk(source):
        rel = os.path.relpath(dirpath, source)
        target_dir = target if rel == "." else os.path.join(target, rel)
        os.makedirs(target_dir, exist_ok=True)
        for filename in filenames:
            dest = os.path.join(target_dir, filename)
            if os.path.exists(dest) and not override:
                continue
            shutil.copyfile(os.path.join(dirpath, filename), dest)


def remove_dir(path: Optional[str]) -> None:
    """Remove a directory tree, ignoring a missing path."""
    if path and os.path.exists(path):
        shutil.rmtree(path)


def is_empty_dir(path: str, include: Optional[Callable[[str], bool]] = None) -> bool:
    """Return True if ``path`` is a directory with no (filtered) entries."""
    if not os.path.isdir(path):
        return False
    try:
        entries = os.listdir(path)
    except OSError as exc:
        logger.debug("list %s failed: %s", path, exc)
        return False
    if include is not None:
        entries = [name for name in entries if include(name)]
    return not entries


def to_posix(path: str) -> str:
    return path.replace("\\", "/")
