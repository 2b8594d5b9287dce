# parts/lifecycle.py
"""
Lifecycle orchestrator: install / uninstall / purge.

install:
  policy (binary unless forced/incompatible/unpublished) -> acquire archive
  (cache or fetch) -> extract into tmp/<name>-<version> -> build hooks (source)
  or move into prefix (binary) -> post_install in prefix -> farm merge -> webhook

Any failure between acquisition and the farm merge rolls back: the bad
archive (verification failures only), farm links, prefix, scratch root and
partial download are removed and the original exception propagates.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, Optional, Union

from parts.config import Config, get_config
from parts.errors import VerificationFailedError
from parts.execute import pushd
from parts.extractor import extract
from parts.farm import merge_prefix, unmerge_prefix
from parts.fetcher import ArchiveFetcher
from parts.hostcheck import binary_package_compatible
from parts.logging import get_logger
from parts.notifier import INSTALLED, UNINSTALLED, WebhookNotifier
from parts.package import Controllable, Kind, Package
from parts.registry import Registry

logger = get_logger("lifecycle")

PackageRef = Union[str, Package]


class Lifecycle:
    def __init__(self, registry: Registry, fetcher: Optional[ArchiveFetcher] = None,
                 notifier: Optional[WebhookNotifier] = None, cfg: Optional[Config] = None,
                 host_compatible: Callable[[], bool] = binary_package_compatible):
        self.registry = registry
        self.layout = registry.layout
        self.cfg = cfg or registry.cfg or get_config()
        self.fetcher = fetcher or registry.fetcher or ArchiveFetcher(self.layout, self.cfg)
        self.notifier = notifier or WebhookNotifier(self.cfg)
        self._host_compatible = host_compatible

    def _package(self, ref: PackageRef) -> Package:
        return self.registry.create(ref) if isinstance(ref, str) else ref

    def _fetcher_for(self, package: Package) -> ArchiveFetcher:
        return package.fetcher or self.fetcher

    # -------------------------
    # install
    # -------------------------
    def choose_kind(self, package: Package, force_source: bool = False) -> Kind:
        if force_source:
            return Kind.SOURCE
        if not self._host_compatible():
            logger.warning("Host is not compatible with binary packages; building %s from source", package.name)
            return Kind.SOURCE
        if package.fetcher is None:
            package.fetcher = self.fetcher
        if package.binary_present():
            return Kind.BINARY
        logger.info("No binary published for %s; building from source", package.name_with_version)
        return Kind.SOURCE

    def install(self, ref: PackageRef, force_source: bool = False) -> Package:
        package = self._package(ref)
        kind = self.choose_kind(package, force_source)
        layout = self.layout
        layout.ensure()
        prefix = package.prefix_path
        scratch = package.extracted_archive_path
        logger.info("Installing %s (%s)", package.name_with_version, kind.value)

        merged = False
        try:
            archive = package.archive_path(kind)
            if archive.is_file():
                logger.info("Using cached archive %s", archive.name)
            else:
                archive = self._fetcher_for(package).fetch(kind, package)

            extract(archive, kind, package.source_filetype, scratch)

            if kind is Kind.SOURCE:
                with pushd(scratch):
                    package.compile()
                    package.install()
                prefix.mkdir(parents=True, exist_ok=True)
            else:
                _remove_tree(prefix)
                prefix.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(scratch), str(prefix))
            _remove_tree(scratch)

            with pushd(prefix):
                package.post_install()

            merged = True
            merge_prefix(prefix, layout)
        except Exception as e:
            self._rollback(package, kind, e, merged)
            raise

        logger.info("Installed %s", package.name_with_version)
        self.notifier.notify(INSTALLED, package)
        tips = package.tips()
        if tips:
            logger.info("%s", tips)
        return package

    def _rollback(self, package: Package, kind: Kind, exc: BaseException, merged: bool) -> None:
        logger.error("Install of %s failed: %s; rolling back", package.name_with_version, exc)
        archive = package.archive_path(kind)
        prefix = package.prefix_path
        steps = []
        if isinstance(exc, VerificationFailedError):
            steps.append(("delete cached archive", lambda: _remove_file(archive)))
        # links of other installed versions stay untouched unless this attempt published
        if merged:
            steps.append(("unmerge farm links", lambda: unmerge_prefix(prefix, self.layout)))
        steps += [
            ("remove prefix", lambda: _remove_tree(prefix)),
            ("prune package dir", lambda: _prune_empty(prefix.parent)),
            ("remove scratch root", lambda: _remove_tree(package.extracted_archive_path)),
            ("remove partial download", lambda: _remove_file(self._fetcher_for(package).partial_path(archive))),
        ]
        for what, step in steps:
            try:
                step()
            except OSError as e:
                logger.warning("Rollback of %s: could not %s: %s", package.name, what, e)

    # -------------------------
    # uninstall / purge
    # -------------------------
    def uninstall(self, ref: PackageRef) -> Package:
        package = self._package(ref)
        prefix = package.prefix_path
        logger.info("Uninstalling %s", package.name_with_version)

        if isinstance(package, Controllable):
            try:
                if package.is_running():
                    package.stop()
            except Exception as e:
                logger.warning("Failed to stop %s: %s", package.name, e)

        unmerge_prefix(prefix, self.layout)
        _remove_tree(prefix)
        _prune_empty(prefix.parent)
        package.post_uninstall()

        logger.info("Uninstalled %s", package.name_with_version)
        self.notifier.notify(UNINSTALLED, package)
        return package

    def purge(self, ref: PackageRef) -> Package:
        package = self._package(ref)
        logger.info("Purging %s", package.name)
        package.purge()
        return package


def _remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def _remove_file(path: Path) -> None:
    if os.path.lexists(path):
        path.unlink()


def _prune_empty(path: Path) -> None:
    if path.is_dir() and not any(path.iterdir()):
        path.rmdir()
