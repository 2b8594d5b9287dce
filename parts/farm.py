# parts/farm.py
"""
Symlink farm: expose files of isolated prefixes in the shared namespaces.

merge_tree() mirrors the directory structure of a prefix subtree under a
shared directory and links every leaf back to its absolute source path.
unmerge_tree() walks the same source tree and removes what merge_tree()
created, pruning directories that end up empty.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Union

from parts.layout import FARM_NAMESPACES, Layout
from parts.logging import get_logger

logger = get_logger("farm")

PathLike = Union[str, Path]


def _is_real_dir(p: Path) -> bool:
    return p.is_dir() and not p.is_symlink()


def _remove_entry(p: Path) -> None:
    if _is_real_dir(p):
        shutil.rmtree(p)
    else:
        p.unlink()


def merge_tree(src: PathLike, dest: PathLike, executables_only: bool = False) -> None:
    """Link the contents of `src` into `dest`. Existing entries are replaced."""
    src, dest = Path(src), Path(dest)
    if not (_is_real_dir(src) and os.access(src, os.X_OK)):
        return
    if os.path.lexists(dest) and not _is_real_dir(dest):
        dest.unlink()
    dest.mkdir(parents=True, exist_ok=True)

    for entry in sorted(src.iterdir()):
        target = dest / entry.name
        if _is_real_dir(entry):
            merge_tree(entry, target, executables_only)
            continue
        if executables_only and not entry.is_symlink() and not os.access(entry, os.X_OK):
            continue
        if os.path.lexists(target):
            if target.is_symlink() and os.readlink(target) != str(entry):
                logger.debug("farm: %s now points at %s (was %s)", target, entry, os.readlink(target))
            _remove_entry(target)
        os.symlink(str(entry), target)


def unmerge_tree(src: PathLike, dest: PathLike) -> None:
    """Remove from `dest` every entry mirroring `src`; drop directories left empty."""
    src, dest = Path(src), Path(dest)
    if not (_is_real_dir(src) and _is_real_dir(dest)):
        return
    for entry in sorted(src.iterdir()):
        target = dest / entry.name
        if _is_real_dir(entry):
            unmerge_tree(entry, target)
        elif os.path.lexists(target) and not _is_real_dir(target):
            target.unlink()
    if not any(dest.iterdir()):
        dest.rmdir()


def merge_prefix(prefix: PathLike, layout: Layout) -> None:
    prefix = Path(prefix)
    for name, executables_only in FARM_NAMESPACES:
        merge_tree(prefix / name, layout.namespace(name), executables_only)


def unmerge_prefix(prefix: PathLike, layout: Layout) -> None:
    prefix = Path(prefix)
    for name, _ in FARM_NAMESPACES:
        unmerge_tree(prefix / name, layout.namespace(name))
