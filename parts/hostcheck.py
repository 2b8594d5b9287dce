# parts/hostcheck.py
"""Host compatibility probe for precompiled binary archives."""

from __future__ import annotations

import functools
import platform

from parts.logging import get_logger

logger = get_logger("hostcheck")

# binaries are built for x86-64 linux (see build.env CHOST)
_COMPATIBLE_MACHINES = ("x86_64", "amd64")


@functools.lru_cache(maxsize=None)
def binary_package_compatible() -> bool:
    system = platform.system()
    machine = platform.machine().lower()
    ok = system == "Linux" and machine in _COMPATIBLE_MACHINES
    logger.debug("hostcheck: system=%s machine=%s compatible=%s", system, machine, ok)
    return ok
