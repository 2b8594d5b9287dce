# parts/layout.py
"""
On-disk layout under the configured root:

  <root>/packages/<name>/<version>/{bin,sbin,include,lib,libexec,share}
  <root>/archives/          downloaded and locally built archives
  <root>/tmp/               scratch extraction roots and partial downloads
  <root>/{bin,sbin,lib,include,share}   shared namespaces (symlink farm)
  <root>/{etc,var}          shared configuration and state
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from parts.config import Config, get_config

# shared namespaces in publish order, with their executable-only flag
FARM_NAMESPACES = (
    ("bin", True),
    ("sbin", True),
    ("lib", False),
    ("include", False),
    ("share", False),
)


@dataclass(frozen=True)
class Layout:
    root: Path

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "Layout":
        cfg = cfg or get_config()
        return cls(Path(cfg.get("paths.root")))

    @classmethod
    def at(cls, root: Union[str, Path]) -> "Layout":
        return cls(Path(root))

    def _dir(self, name: str) -> Path:
        return self.root / name

    @property
    def packages(self) -> Path:
        return self._dir("packages")

    @property
    def archives(self) -> Path:
        return self._dir("archives")

    @property
    def tmp(self) -> Path:
        return self._dir("tmp")

    @property
    def bin(self) -> Path:
        return self._dir("bin")

    @property
    def sbin(self) -> Path:
        return self._dir("sbin")

    @property
    def lib(self) -> Path:
        return self._dir("lib")

    @property
    def include(self) -> Path:
        return self._dir("include")

    @property
    def share(self) -> Path:
        return self._dir("share")

    @property
    def etc(self) -> Path:
        return self._dir("etc")

    @property
    def var(self) -> Path:
        return self._dir("var")

    def namespace(self, name: str) -> Path:
        return self._dir(name)

    def ensure(self, *names: str) -> None:
        """Create the named top-level directories (all bookkeeping dirs when none given)."""
        for name in names or ("packages", "archives", "tmp", "etc", "var"):
            self._dir(name).mkdir(parents=True, exist_ok=True)
