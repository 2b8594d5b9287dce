# parts/extractor.py
"""
Unpack a fetched archive into a fresh scratch directory.

Source archives are dispatched on the definition's filetype (tar family, zip,
or a raw file that is simply copied); binary archives are always gzip'd tars.
"""

from __future__ import annotations

import os
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import Union

from parts.errors import ArchiveError
from parts.logging import get_logger
from parts.package import TAR_FILETYPES

logger = get_logger("extractor")


def _reset_dir(dest: Path) -> None:
    if dest.is_symlink() or dest.is_file():
        dest.unlink()
    elif dest.exists():
        shutil.rmtree(dest)
    dest.mkdir(parents=True)


def _extract_tar(archive: Path, dest: Path) -> None:
    with tarfile.open(archive, "r:*") as tf:
        if hasattr(tarfile, "tar_filter"):
            tf.extractall(dest, filter="tar")
        else:
            tf.extractall(dest)


def _extract_zip(archive: Path, dest: Path) -> None:
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            out = Path(zf.extract(info, dest))
            mode = (info.external_attr >> 16) & 0o7777
            if mode and not info.is_dir():
                os.chmod(out, mode)


def extract(archive_path: Union[str, Path], kind, filetype: str, dest: Union[str, Path]) -> Path:
    """Extract `archive_path` into `dest` (wiped first) and return `dest`."""
    archive = Path(archive_path)
    dest = Path(dest)
    kind = getattr(kind, "value", kind)
    _reset_dir(dest)
    logger.debug("Extracting %s (%s, %s) -> %s", archive.name, kind, filetype, dest)
    try:
        if kind == "binary" or filetype in TAR_FILETYPES:
            _extract_tar(archive, dest)
        elif filetype == "zip":
            _extract_zip(archive, dest)
        else:
            shutil.copy2(archive, dest / archive.name)
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"failed to extract {archive}: {e}") from e
    return dest
