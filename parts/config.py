# parts/config.py
# -*- coding: utf-8 -*-
"""
parts central configuration loader

Features:
- Read YAML/JSON config from multiple locations (explicit, env override, cwd, user, system)
- Merge with authoritative DEFAULTS, normalize paths (~ and $VARS)
- Validate structure with pydantic (warn, or raise when fatal=True)
- Dotted access via Config.get("section.key")
- Reload with watcher callbacks (logging re-applies its handlers)
"""

from __future__ import annotations
import os
import json
import logging
import threading
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple, Callable

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from parts.errors import ConfigError

logger = logging.getLogger("parts.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "paths": {
        "root": "~/.parts",
    },
    "binary": {
        "enabled": True,
        "host": None,  # e.g. https://binaries.example.org
    },
    "fetcher": {
        "timeout": 300,
        "probe_timeout": 15,
        "chunk_size": 65536,
    },
    "build": {
        "env": {
            "CPPFLAGS": "-D_FORTIFY_SOURCE=2",
            "CHOST": "x86_64-pc-linux-gnu",
            "CFLAGS": "-march=x86-64 -mtune=generic -O2 -pipe -fstack-protector --param=ssp-buffer-size=4",
            "CXXFLAGS": "-march=x86-64 -mtune=generic -O2 -pipe -fstack-protector --param=ssp-buffer-size=4",
            "LDFLAGS": "-Wl,-O1,--sort-common,--as-needed,-z,relro",
            "MAKEFLAGS": "-j2",
        },
    },
    "webhook": {
        "enabled": False,
        "url": None,
        "timeout": 10,
    },
    "publish": {
        "bucket": None,
        "acl_public": True,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "color": True,
        "max_size": "10M",
        "backups": 5,
    },
}

# ----------------------------
# Schema (pydantic)
# ----------------------------
class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PathsSettings(_Section):
    root: str


class BinarySettings(_Section):
    enabled: bool = True
    host: Optional[str] = None


class FetcherSettings(_Section):
    timeout: int = 300
    probe_timeout: int = 15
    chunk_size: int = 65536


class BuildSettings(_Section):
    env: Dict[str, str] = {}


class WebhookSettings(_Section):
    enabled: bool = False
    url: Optional[str] = None
    timeout: float = 10


class PublishSettings(_Section):
    bucket: Optional[str] = None
    acl_public: bool = True


class LoggingSettings(BaseModel):
    # handler options (jsonl, module_levels, format...) are open-ended
    model_config = ConfigDict(extra="allow")

    level: str = "INFO"
    file: Optional[str] = None
    color: bool = True
    max_size: Any = "10M"
    backups: int = 5


class Settings(_Section):
    paths: PathsSettings
    binary: BinarySettings
    fetcher: FetcherSettings
    build: BuildSettings
    webhook: WebhookSettings
    publish: PublishSettings
    logging: LoggingSettings

# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    path: Optional[Path] = None

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()
_WATCH_CALLBACKS: List[Callable[[Config], None]] = []

# ----------------------------
# Utilities
# ----------------------------
def _expand_path(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    return os.path.abspath(os.path.expanduser(os.path.expandvars(val)))

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get("PARTS_CONFIG")
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "parts.yaml",
        Path.cwd() / "parts.yml",
        Path.cwd() / "parts.json",
        Path.home() / ".config" / "parts" / "config.yaml",
        Path("/etc") / "parts" / "config.yaml",
    ])
    return candidates

def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    if explicit and not Path(explicit).is_file():
        raise ConfigError(f"config file not found: {explicit}")
    for p in _find_candidates(explicit):
        if p.is_file():
            return p
    return None

def _load_file(path: Path) -> Dict[str, Any]:
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(txt)
        else:
            data = yaml.safe_load(txt)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data

def _normalize(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Expand path-like entries."""
    out = deepcopy(cfg)
    for section, key in (("paths", "root"), ("logging", "file")):
        ref = out.get(section)
        if isinstance(ref, dict) and isinstance(ref.get(key), str) and ref[key]:
            ref[key] = _expand_path(ref[key])
    jsonl = out.get("logging", {}).get("jsonl")
    if isinstance(jsonl, dict) and isinstance(jsonl.get("path"), str):
        jsonl["path"] = _expand_path(jsonl["path"])
    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list)."""
    try:
        Settings.model_validate(cfg)
    except ValidationError as e:
        issues = []
        for err in e.errors():
            loc = ".".join(str(x) for x in err.get("loc", ()))
            issues.append(f"{loc}: {err.get('msg')}")
        return False, issues
    return True, []

# ----------------------------
# Loading / reloading
# ----------------------------
def load(explicit_path: Optional[str] = None, fatal: bool = False,
         overrides: Optional[Dict[str, Any]] = None) -> Config:
    """
    Load and merge config. If fatal=True then validation failures raise ConfigError.
    `overrides` is merged last (handy for tests and CLI flags).
    """
    global _CONFIG
    with _CONFIG_LOCK:
        cfg_path = _find_path(explicit_path)
        raw: Dict[str, Any] = _load_file(cfg_path) if cfg_path else {}
        merged = _deep_merge(DEFAULTS, raw)
        if overrides:
            merged = _deep_merge(merged, overrides)
        normalized = _normalize(merged)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                logger.error(msg)
                raise ConfigError(msg)
            logger.warning(msg)
        cfg_obj = Config(raw=raw, merged=normalized, path=cfg_path)
        _CONFIG = cfg_obj
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return cfg_obj

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def set_config(cfg: Optional[Config]) -> None:
    """Replace the process default config (None forces a lazy reload)."""
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = cfg
    if cfg is not None:
        _notify_watchers(cfg)

def reload(explicit_path: Optional[str] = None) -> Config:
    cfg = load(explicit_path)
    _notify_watchers(cfg)
    return cfg

# ----------------------------
# Watcher API
# ----------------------------
def register_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb not in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.append(cb)

def unregister_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.remove(cb)

def _notify_watchers(cfg: Config) -> None:
    with _CONFIG_LOCK:
        cbs = list(_WATCH_CALLBACKS)
    for cb in cbs:
        try:
            cb(cfg)
        except Exception:
            logger.exception("config: watcher callback error")

# ----------------------------
# Convenience helpers for modules
# ----------------------------
def get_build_env(cfg: Optional[Config] = None) -> Dict[str, str]:
    cfg = cfg or get_config()
    return {str(k): str(v) for k, v in (cfg.get("build.env") or {}).items()}

def validate_config(cfg: Optional[Config] = None) -> Tuple[bool, List[str]]:
    return _validate_structure((cfg or get_config()).merged)
