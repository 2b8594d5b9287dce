# parts/logging.py
# -*- coding: utf-8 -*-
"""
parts logging

Features:
 - Integration with parts.config (re-applied on reload)
 - Console color formatter
 - Rotating file handler
 - JSON-lines log with optional fsync
 - Module-level configurable log levels (module_levels)
 - Per-level counters
"""

from __future__ import annotations
import os
import sys
import json
import time
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Dict, Any, Optional, List

from parts.config import Config, get_config, register_watch_callback

_logger = logging.getLogger("parts.logging")

ROOT_NAME = "parts"

# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = None, datefmt: str = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg

# ----------------------
# JSONL formatter
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        obj = {
            "timestamp": time.time(),
            "level": record.levelname,
            "module": getattr(record, "parts_module", record.name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)


class _FsyncFileHandler(logging.FileHandler):
    def emit(self, record):
        super().emit(record)
        if self.stream:
            os.fsync(self.stream.fileno())

# ----------------------
# Filters
# ----------------------
class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Dict[str, str]):
        super().__init__()
        self.module_levels = {m: getattr(logging, lvl.upper(), logging.INFO) for m, lvl in (module_levels or {}).items()}

    def filter(self, record):
        mod = getattr(record, "parts_module", None)
        if mod and mod in self.module_levels:
            return record.levelno >= self.module_levels[mod]
        return True


class _ModuleNameFilter(logging.Filter):
    # records from plain loggers (parts.config, ...) carry no parts_module
    def filter(self, record):
        if not hasattr(record, "parts_module"):
            name = record.name
            record.parts_module = name[len(ROOT_NAME) + 1:] if name.startswith(ROOT_NAME + ".") else name
        return True


class _CountingHandler(logging.Handler):
    def __init__(self, metrics: Dict[str, int]):
        super().__init__(level=logging.DEBUG)
        self._metrics = metrics

    def emit(self, record):
        if record.levelname in self._metrics:
            self._metrics[record.levelname] += 1

# ----------------------
# PartsLogger
# ----------------------
class PartsLogger:
    def __init__(self, cfg: Optional[Config] = None):
        self._lock = threading.RLock()
        self._root = logging.getLogger(ROOT_NAME)
        self._handlers: List[logging.Handler] = []
        self._metrics: Dict[str, int] = {lvl: 0 for lvl in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")}
        self._module_filter = ModuleLevelFilter({})
        self._configured = False
        self._cfg = cfg

    def ensure_configured(self):
        with self._lock:
            if self._configured:
                return
            cfg = self._cfg or get_config()
            self.apply_config(cfg.merged.get("logging", {}))
            register_watch_callback(self._on_reload)

    def _on_reload(self, cfg: Config):
        self.apply_config(cfg.merged.get("logging", {}))

    # ----------------------
    # Configuration (apply/reload)
    # ----------------------
    def apply_config(self, cfg: Dict[str, Any]):
        with self._lock:
            for h in self._handlers:
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()
            self._module_filter = ModuleLevelFilter(cfg.get("module_levels", {}) or {})
            self._add_handler(_CountingHandler(self._metrics))

            level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
            fmt = cfg.get("format") or "[%(levelname)s] [%(parts_module)s] %(message)s"
            datefmt = cfg.get("datefmt", "%H:%M:%S")

            console_cfg = cfg.get("console", {"enabled": True})
            if console_cfg.get("enabled", True):
                ch = logging.StreamHandler(sys.stderr)
                ch.setLevel(level)
                color = bool(cfg.get("color", True)) and sys.stderr.isatty()
                ch.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=color))
                self._add_handler(ch)

            if cfg.get("file"):
                file_path = Path(cfg["file"]).expanduser()
                file_path.parent.mkdir(parents=True, exist_ok=True)
                max_bytes = _parse_size(cfg.get("max_size", "10M"))
                backups = int(cfg.get("backups", 5))
                fh = logging.handlers.RotatingFileHandler(str(file_path), maxBytes=max_bytes or 10 * 1024 * 1024, backupCount=backups, encoding="utf-8")
                fh.setLevel(getattr(logging, str(cfg.get("file_level", "DEBUG")).upper(), logging.DEBUG))
                fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(parts_module)s] %(message)s"))
                self._add_handler(fh)

            jsonl_cfg = cfg.get("jsonl") or {}
            if jsonl_cfg.get("enabled"):
                path = Path(jsonl_cfg.get("path") or "~/.parts/log/parts.jsonl").expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                cls = _FsyncFileHandler if jsonl_cfg.get("fsync") else logging.FileHandler
                jh = cls(str(path), encoding="utf-8")
                jh.setLevel(getattr(logging, str(jsonl_cfg.get("level", "INFO")).upper(), logging.INFO))
                jh.setFormatter(JSONLineFormatter())
                self._add_handler(jh)

            # capture everything; handlers filter
            self._root.setLevel(logging.DEBUG)
            self._configured = True
            _logger.debug("logging: configuration applied")

    def _add_handler(self, handler: logging.Handler):
        # handler filters also see records propagated from child loggers
        handler.addFilter(_ModuleNameFilter())
        handler.addFilter(self._module_filter)
        self._root.addHandler(handler)
        self._handlers.append(handler)

    # ----------------------
    # Public API
    # ----------------------
    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'parts_module' into records."""
        base = logging.getLogger(f"{ROOT_NAME}.{module_name}")
        return logging.LoggerAdapter(base, {"parts_module": module_name})

    def get_metrics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._metrics)

# ----------------------
# Helper parse size (public)
# ----------------------
def _parse_size(s: Any) -> Optional[int]:
    if s is None:
        return None
    if isinstance(s, int):
        return s
    ss = str(s).strip().upper()
    try:
        for suffix, mul in (("KB", 1024), ("K", 1024), ("MB", 1024**2), ("M", 1024**2), ("GB", 1024**3), ("G", 1024**3)):
            if ss.endswith(suffix):
                return int(float(ss[: -len(suffix)]) * mul)
        return int(float(ss))
    except ValueError:
        _logger.debug("logging: parse size failed for %s", s)
        return None

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = PartsLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def setup(cfg: Optional[Config] = None):
    """Attach handlers according to the `logging` config section."""
    if cfg is not None:
        _GLOBAL_LOGGER.apply_config(cfg.merged.get("logging", {}))
        register_watch_callback(_GLOBAL_LOGGER._on_reload)
    else:
        _GLOBAL_LOGGER.ensure_configured()

def get_metrics() -> Dict[str, int]:
    return _GLOBAL_LOGGER.get_metrics()
