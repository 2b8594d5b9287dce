# parts/execute.py
"""
Subprocess helpers for build hooks and archive tools.

Commands are always argument vectors; nothing goes through a shell.
"""

from __future__ import annotations

import contextlib
import os
import subprocess
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from parts.errors import ExecutionFailedError
from parts.logging import get_logger

logger = get_logger("execute")


def execute(*args: Union[str, "os.PathLike[str]"], cwd: Optional[Union[str, Path]] = None,
            env: Optional[Dict[str, str]] = None, timeout: Optional[int] = None) -> None:
    """Run argv and raise ExecutionFailedError on a non-zero exit or a missing executable."""
    argv = [os.fspath(a) for a in args]
    logger.debug("RUN: %s (cwd=%s)", " ".join(argv), str(cwd) if cwd else os.getcwd())
    try:
        proc = subprocess.run(argv, cwd=str(cwd) if cwd else None, env=env, timeout=timeout)
    except FileNotFoundError as e:
        raise ExecutionFailedError(argv, 127) from e
    except subprocess.TimeoutExpired as e:
        raise ExecutionFailedError(argv, None) from e
    if proc.returncode != 0:
        raise ExecutionFailedError(argv, proc.returncode)


@contextlib.contextmanager
def pushd(path: Union[str, Path]) -> Iterator[Path]:
    """Temporarily change the process working directory."""
    prev = os.getcwd()
    os.chdir(path)
    try:
        yield Path(path)
    finally:
        os.chdir(prev)
