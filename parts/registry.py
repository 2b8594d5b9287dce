# parts/registry.py
"""
Package registry.

Maps package names to definition classes. Definitions live as modules inside
the definition packages (default `parts.packages`, one module per package,
module name = package name with '-' replaced by '_') or are contributed by
third-party distributions through the `parts.packages` entry-point group.

Also answers "what is installed" by scanning <root>/packages.
"""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from importlib.metadata import entry_points
from types import ModuleType
from typing import Dict, Iterable, List, Optional, Type

from parts.config import Config, get_config
from parts.errors import PackageNotFoundError
from parts.layout import Layout
from parts.logging import get_logger
from parts.package import Package

logger = get_logger("registry")

ENTRY_POINT_GROUP = "parts.packages"
DEFAULT_DEFINITION_PACKAGES = ("parts.packages",)


def _module_name(name: str) -> str:
    return name.replace("-", "_")


class Registry:
    def __init__(self, layout: Layout, fetcher=None, cfg: Optional[Config] = None,
                 definition_packages: Iterable[str] = DEFAULT_DEFINITION_PACKAGES):
        self.layout = layout
        self.fetcher = fetcher
        self.cfg = cfg or get_config()
        self.definition_packages = tuple(definition_packages)
        self._classes: Dict[str, Type[Package]] = {}

    # -------------------------
    # registration
    # -------------------------
    def register(self, cls: Type[Package]) -> Type[Package]:
        if not (inspect.isclass(cls) and issubclass(cls, Package)) or cls.meta is None:
            raise TypeError(f"{cls!r} is not a package definition")
        name = cls.meta.name
        previous = self._classes.get(name)
        if previous is not None and previous is not cls:
            logger.warning("Definition of %s from %s replaces %s", name, cls.__module__, previous.__module__)
        self._classes[name] = cls
        return cls

    def _register_module(self, module: ModuleType) -> int:
        count = 0
        for obj in vars(module).values():
            if (inspect.isclass(obj) and issubclass(obj, Package) and obj is not Package
                    and obj.__module__ == module.__name__ and obj.meta is not None):
                self.register(obj)
                count += 1
        return count

    def discover(self) -> List[str]:
        """Import every definition module and entry point; returns the known names."""
        for pkg_name in self.definition_packages:
            pkg = importlib.import_module(pkg_name)
            for info in pkgutil.iter_modules(getattr(pkg, "__path__", []), pkg_name + "."):
                self._register_module(importlib.import_module(info.name))

        for ep in entry_points().select(group=ENTRY_POINT_GROUP):
            try:
                obj = ep.load()
            except Exception as e:
                logger.warning("Package entry point %s failed to load: %s", ep.name, e)
                continue
            if inspect.ismodule(obj):
                self._register_module(obj)
            else:
                self.register(obj)
        return self.names()

    def names(self) -> List[str]:
        return sorted(self._classes)

    # -------------------------
    # lookup
    # -------------------------
    def _try_import(self, name: str) -> None:
        for pkg_name in self.definition_packages:
            mod_name = f"{pkg_name}.{_module_name(name)}"
            try:
                module = importlib.import_module(mod_name)
            except ModuleNotFoundError as e:
                # only a missing definition module is "not found"; broken imports inside it propagate
                if e.name in (mod_name, pkg_name):
                    continue
                raise
            self._register_module(module)
            if name in self._classes:
                return

    def resolve(self, name: str) -> Type[Package]:
        if name not in self._classes and _module_name(name).isidentifier():
            self._try_import(name)
        try:
            return self._classes[name]
        except KeyError:
            raise PackageNotFoundError(name) from None

    def create(self, name: str) -> Package:
        cls = self.resolve(name)
        return cls(self.layout, registry=self, fetcher=self.fetcher, cfg=self.cfg)

    # -------------------------
    # installed state
    # -------------------------
    def installed_versions(self, name: str) -> List[str]:
        pkg_dir = self.layout.packages / name
        if not pkg_dir.is_dir():
            return []
        return sorted(v.name for v in pkg_dir.iterdir() if v.is_dir() and any(v.iterdir()))

    def is_installed(self, name: str) -> bool:
        return bool(self.installed_versions(name))

    def installed(self) -> Dict[str, List[str]]:
        packages = self.layout.packages
        if not packages.is_dir():
            return {}
        result: Dict[str, List[str]] = {}
        for entry in sorted(packages.iterdir()):
            if not entry.is_dir():
                continue
            versions = self.installed_versions(entry.name)
            if versions:
                result[entry.name] = versions
        return result
