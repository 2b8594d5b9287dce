# parts/notifier.py
"""Best-effort webhook notification of install/uninstall events."""

from __future__ import annotations

import socket
from typing import Optional

import requests

from parts.config import Config, get_config
from parts.logging import get_logger

logger = get_logger("notifier")

INSTALLED = "installed"
UNINSTALLED = "uninstalled"


class WebhookNotifier:
    def __init__(self, cfg: Optional[Config] = None, session: Optional[requests.Session] = None):
        cfg = cfg or get_config()
        self.url: Optional[str] = cfg.get("webhook.url")
        self.enabled = bool(cfg.get("webhook.enabled", False)) and bool(self.url)
        self.timeout = float(cfg.get("webhook.timeout", 10))
        self.session = session or requests.Session()

    @staticmethod
    def container() -> str:
        return socket.gethostname()

    def notify(self, event: str, package) -> bool:
        """POST the event; never raises. Returns True when the hook answered 2xx."""
        if not self.enabled:
            return False
        data = {
            "type": event,
            "name": package.name,
            "version": package.version,
            "container": self.container(),
        }
        try:
            resp = self.session.post(self.url, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Webhook %s for %s failed: %s", event, package.name, e)
            return False
        if not 200 <= resp.status_code < 300:
            logger.warning("Webhook %s for %s answered HTTP %s", event, package.name, resp.status_code)
            return False
        logger.debug("Webhook %s sent for %s", event, package.name_with_version)
        return True
