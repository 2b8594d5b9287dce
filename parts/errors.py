# parts/errors.py
"""Exception hierarchy shared by every parts module."""

from __future__ import annotations

from typing import Optional, Sequence


class PartsError(Exception):
    """Base class for all parts errors."""


class ConfigError(PartsError):
    pass


class PackageNotFoundError(PartsError):
    def __init__(self, name: str):
        super().__init__(f"package not found: {name}")
        self.name = name


class BinaryNotPresentError(PartsError):
    def __init__(self, name: str):
        super().__init__(f"no binary published for {name}")
        self.name = name


class VerificationFailedError(PartsError):
    def __init__(self, path: str, expected: Optional[str] = None, actual: Optional[str] = None):
        super().__init__(f"checksum mismatch for {path}: expected {expected}, got {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual


class ExecutionFailedError(PartsError):
    def __init__(self, argv: Sequence[str], returncode: Optional[int] = None):
        cmd = " ".join(argv)
        super().__init__(f"command failed (exit {returncode}): {cmd}")
        self.argv = list(argv)
        self.returncode = returncode


class DownloadFailedError(PartsError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"download failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class ArchiveError(PartsError):
    """Archive could not be extracted or produced."""


class PublishError(PartsError):
    pass
