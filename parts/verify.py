# parts/verify.py
"""SHA1 content digests for downloaded and locally produced archives."""

from __future__ import annotations

import hashlib
import os
from typing import Optional, Union

PathLike = Union[str, "os.PathLike[str]"]


def sha1_file(path: PathLike, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def normalize_digest(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def verify(path: PathLike, expected: Optional[str]) -> bool:
    """True when the file digest equals `expected`. An empty expectation never verifies."""
    want = normalize_digest(expected)
    if not want:
        return False
    return sha1_file(path) == want
