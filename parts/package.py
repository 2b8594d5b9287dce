# parts/package.py
"""
Package definitions.

A definition is a subclass of `Package` carrying an immutable `PackageMeta`
record and overriding the build hooks it needs:

    class Jq(Package):
        meta = PackageMeta(
            name="jq",
            version="1.7.1",
            description="Command-line JSON processor",
            source_url="https://github.com/jqlang/jq/releases/download/jq-1.7.1/jq-1.7.1.tar.gz",
            source_sha1="<sha1 of the tarball>",
            source_filetype="tar.gz",
        )

        def compile(self):
            with pushd("jq-1.7.1"):
                self.execute("./configure", f"--prefix={self.prefix_path}")
                self.execute("make")

        def install(self):
            with pushd("jq-1.7.1"):
                self.execute("make", "install")

Hooks run with the working directory set by the lifecycle orchestrator:
compile/install inside the extracted source tree, post_install inside the
installed prefix.
"""

from __future__ import annotations

import abc
import enum
import getpass
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Dict, FrozenSet, Optional

from parts.config import Config, get_build_env, get_config
from parts.errors import PackageNotFoundError
from parts.execute import execute
from parts.layout import Layout

if TYPE_CHECKING:
    from parts.fetcher import ArchiveFetcher
    from parts.registry import Registry

TAR_FILETYPES = ("tar", "tar.gz", "tar.bz2", "tar.bz", "tgz", "tbz2", "tbz", "tar.xz", "txz")


class Kind(str, enum.Enum):
    BINARY = "binary"
    SOURCE = "source"


@dataclass(frozen=True)
class PackageMeta:
    name: str
    version: str
    description: str = ""
    source_url: Optional[str] = None
    source_sha1: Optional[str] = None
    source_filetype: str = "tar.gz"
    dependencies: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if not self.name or not self.version:
            raise ValueError("package metadata needs a name and a version")
        if not isinstance(self.dependencies, frozenset):
            object.__setattr__(self, "dependencies", frozenset(self.dependencies))

    @property
    def name_with_version(self) -> str:
        return f"{self.name}-{self.version}"


class Controllable(abc.ABC):
    """Capability for packages that run a service (databases, web servers...)."""

    @abc.abstractmethod
    def start(self) -> None: ...

    @abc.abstractmethod
    def stop(self) -> None: ...

    @abc.abstractmethod
    def is_running(self) -> bool: ...


class Package:
    meta: ClassVar[Optional[PackageMeta]] = None

    def __init__(self, layout: Layout, registry: Optional["Registry"] = None,
                 fetcher: Optional["ArchiveFetcher"] = None, cfg: Optional[Config] = None):
        if self.meta is None:
            raise TypeError(f"{type(self).__name__} has no package metadata")
        self.layout = layout
        self.registry = registry
        self.fetcher = fetcher
        self._cfg = cfg
        self._binary_present: Optional[bool] = None
        self._dependencies: Dict[str, "Package"] = {}

    def __repr__(self):
        return f"<{type(self).__name__} {self.name_with_version}>"

    # -----------------------------
    # metadata
    # -----------------------------
    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def version(self) -> str:
        return self.meta.version

    @property
    def description(self) -> str:
        return self.meta.description

    @property
    def source_url(self) -> Optional[str]:
        return self.meta.source_url

    @property
    def source_sha1(self) -> Optional[str]:
        return self.meta.source_sha1

    @property
    def source_filetype(self) -> str:
        return self.meta.source_filetype

    @property
    def dependencies(self) -> FrozenSet[str]:
        return self.meta.dependencies

    @property
    def name_with_version(self) -> str:
        return self.meta.name_with_version

    @property
    def user(self) -> str:
        return getpass.getuser()

    @property
    def config(self) -> Config:
        return self._cfg or get_config()

    # -----------------------------
    # install prefix paths
    # -----------------------------
    @property
    def prefix_path(self) -> Path:
        return self.layout.packages / self.name / self.version

    @property
    def bin_path(self) -> Path:
        return self.prefix_path / "bin"

    @property
    def sbin_path(self) -> Path:
        return self.prefix_path / "sbin"

    @property
    def include_path(self) -> Path:
        return self.prefix_path / "include"

    @property
    def lib_path(self) -> Path:
        return self.prefix_path / "lib"

    @property
    def libexec_path(self) -> Path:
        return self.prefix_path / "libexec"

    @property
    def share_path(self) -> Path:
        return self.prefix_path / "share"

    @property
    def info_path(self) -> Path:
        return self.share_path / "info"

    @property
    def man_path(self) -> Path:
        return self.share_path / "man"

    def man_path_for(self, section: int) -> Path:
        if not 1 <= int(section) <= 8:
            raise ValueError(f"man section out of range: {section}")
        return self.man_path / f"man{int(section)}"

    @property
    def doc_path(self) -> Path:
        return self.share_path / "doc" / self.name

    # -----------------------------
    # archives
    # -----------------------------
    def archive_filename(self, kind: Kind) -> str:
        if Kind(kind) is Kind.SOURCE:
            return f"{self.name_with_version}.{self.source_filetype}"
        return f"{self.name_with_version}-binary.tar.gz"

    @property
    def binary_sha1_filename(self) -> str:
        return f"{self.name_with_version}-binary.sha1"

    def archive_path(self, kind: Kind) -> Path:
        return self.layout.archives / self.archive_filename(kind)

    @property
    def extracted_archive_path(self) -> Path:
        return self.layout.tmp / self.name_with_version

    def binary_present(self) -> bool:
        """Whether a binary archive and its checksum are published. Probed once per instance."""
        if self._binary_present is None:
            self._binary_present = bool(self.fetcher and self.fetcher.binary_available(self))
        return self._binary_present

    # -----------------------------
    # helpers for build hooks
    # -----------------------------
    def build_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(get_build_env(self.config))
        return env

    def execute(self, *args, cwd=None) -> None:
        execute(*args, cwd=cwd, env=self.build_env())

    def get_dependency(self, name: str) -> "Package":
        if name not in self.dependencies:
            raise PackageNotFoundError(name)
        if name not in self._dependencies:
            if self.registry is None:
                raise PackageNotFoundError(name)
            self._dependencies[name] = self.registry.create(name)
        return self._dependencies[name]

    # -- implement these methods --
    def compile(self) -> None:
        """Compile source code; runs in the extracted source directory."""

    def install(self) -> None:
        """Install compiled code into prefix_path; runs in the extracted source directory."""

    def post_install(self) -> None:
        """Runs in the installed prefix directory."""

    def post_uninstall(self) -> None:
        pass

    def purge(self) -> None:
        """Remove leftover config/data files."""

    def tips(self) -> str:
        return ""

    def information(self) -> str:
        return self.tips()
