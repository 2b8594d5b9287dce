#!/usr/bin/env python3
# parts/cli.py
"""
parts CLI - thin front-end over the lifecycle engine

Subcommands:
  install [--source] NAME   fetch binary (or build from source) and link into the farm
  uninstall NAME            unlink and remove the installed prefix
  purge NAME                remove leftover config/data files of a package
  list                      installed packages and versions
  info NAME                 definition metadata and install state
  archive NAME              pack the installed prefix as a binary archive
  upload NAME               publish the binary archive and its checksum
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from parts import config as config_mod
from parts import logging as parts_logging
from parts.archiver import archive_installed, upload_archive
from parts.errors import PartsError
from parts.fetcher import ArchiveFetcher
from parts.layout import Layout
from parts.lifecycle import Lifecycle
from parts.registry import Registry

logger = parts_logging.get_logger("cli")

console = Console()
err_console = Console(stderr=True)


def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {msg}")


def print_err(msg: str):
    err_console.print(f"[bold red]✖[/] {msg}")


class PartsCLI:
    def __init__(self, cfg: config_mod.Config):
        self.cfg = cfg
        self.layout = Layout.from_config(cfg)
        self.fetcher = ArchiveFetcher(self.layout, cfg)
        self.registry = Registry(self.layout, fetcher=self.fetcher, cfg=cfg)
        self.lifecycle = Lifecycle(self.registry, fetcher=self.fetcher, cfg=cfg)

    def install(self, name: str, source: bool = False):
        pkg = self.lifecycle.install(name, force_source=source)
        print_ok(f"installed {pkg.name_with_version}")

    def uninstall(self, name: str):
        if not self.registry.is_installed(name):
            raise PartsError(f"{name} is not installed")
        pkg = self.lifecycle.uninstall(name)
        print_ok(f"uninstalled {pkg.name_with_version}")

    def purge(self, name: str):
        pkg = self.lifecycle.purge(name)
        print_ok(f"purged {pkg.name}")

    def list_installed(self):
        installed = self.registry.installed()
        if not installed:
            console.print("No packages installed.")
            return
        table = Table(title="Installed packages")
        table.add_column("name")
        table.add_column("versions")
        for name, versions in installed.items():
            table.add_row(name, ", ".join(versions))
        console.print(table)

    def info(self, name: str):
        pkg = self.registry.create(name)
        table = Table(show_header=False, title=pkg.name)
        table.add_column("field", style="bold")
        table.add_column("value")
        table.add_row("version", pkg.version)
        table.add_row("description", pkg.description or "")
        table.add_row("source", pkg.source_url or "")
        table.add_row("dependencies", ", ".join(sorted(pkg.dependencies)) or "-")
        table.add_row("installed", ", ".join(self.registry.installed_versions(name)) or "no")
        table.add_row("prefix", str(pkg.prefix_path))
        console.print(table)
        information = pkg.information()
        if information:
            console.print(information)

    def archive(self, name: str):
        pkg = self.registry.create(name)
        path, digest = archive_installed(pkg)
        print_ok(f"archived {path.name} (sha1 {digest})")

    def upload(self, name: str):
        pkg = self.registry.create(name)
        for path in upload_archive(pkg):
            print_ok(f"uploaded {path.name}")


# -----------------------
# Argparse wiring
# -----------------------
def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="parts", description="parts package lifecycle manager")
    ap.add_argument("--config", help="path to a YAML/JSON config file")
    sub = ap.add_subparsers(dest="cmd")

    p_install = sub.add_parser("install", help="install a package")
    p_install.add_argument("package")
    p_install.add_argument("--source", action="store_true", help="build from source even if a binary exists")

    for cmd, help_text in (("uninstall", "uninstall a package"),
                           ("purge", "remove leftover package data"),
                           ("info", "show package details"),
                           ("archive", "create a binary archive of an installed package"),
                           ("upload", "publish a binary archive")):
        p = sub.add_parser(cmd, help=help_text)
        p.add_argument("package")

    sub.add_parser("list", help="list installed packages")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return 0

    try:
        cfg = config_mod.load(args.config)
        parts_logging.setup(cfg)
        cli = PartsCLI(cfg)
        if args.cmd == "install":
            cli.install(args.package, source=args.source)
        elif args.cmd == "uninstall":
            cli.uninstall(args.package)
        elif args.cmd == "purge":
            cli.purge(args.package)
        elif args.cmd == "list":
            cli.list_installed()
        elif args.cmd == "info":
            cli.info(args.package)
        elif args.cmd == "archive":
            cli.archive(args.package)
        elif args.cmd == "upload":
            cli.upload(args.package)
    except PartsError as e:
        logger.debug("command %s failed", args.cmd, exc_info=True)
        print_err(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
