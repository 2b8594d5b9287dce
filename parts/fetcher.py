# parts/fetcher.py
"""
ArchiveFetcher - download and verify package archives

- Binary archives come from the configured binary host:
    <host>/<name>-<version>-binary.tar.gz   (+ .sha1 with the expected digest)
- Source archives come from the package definition (source_url/source_sha1)
- Downloads stream into tmp/<basename>.partsdownload, are SHA1-verified and
  only then moved (os.replace) to archives/<basename>
- binary_available() probes both binary URLs with HEAD; transport errors count
  as "not published"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import requests

from parts.config import Config, get_config
from parts.errors import BinaryNotPresentError, DownloadFailedError, VerificationFailedError
from parts.layout import Layout
from parts.logging import get_logger
from parts.verify import normalize_digest, sha1_file, verify

if TYPE_CHECKING:
    from parts.package import Kind, Package

logger = get_logger("fetcher")

PARTIAL_SUFFIX = ".partsdownload"


class ArchiveFetcher:
    def __init__(self, layout: Layout, cfg: Optional[Config] = None,
                 session: Optional[requests.Session] = None):
        self.layout = layout
        self.cfg = cfg or get_config()
        self.session = session or requests.Session()
        self.timeout = int(self.cfg.get("fetcher.timeout", 300))
        self.probe_timeout = int(self.cfg.get("fetcher.probe_timeout", 15))
        self.chunk_size = int(self.cfg.get("fetcher.chunk_size", 65536))
        host = self.cfg.get("binary.host")
        enabled = bool(self.cfg.get("binary.enabled", True))
        self.binary_host: Optional[str] = host.rstrip("/") if (host and enabled) else None

    # -------------------------
    # urls
    # -------------------------
    def binary_url(self, package: "Package") -> Optional[str]:
        if not self.binary_host:
            return None
        return f"{self.binary_host}/{package.archive_filename('binary')}"

    def binary_sha1_url(self, package: "Package") -> Optional[str]:
        if not self.binary_host:
            return None
        return f"{self.binary_host}/{package.binary_sha1_filename}"

    def url_for(self, kind: "Kind", package: "Package") -> str:
        if _is_binary(kind):
            url = self.binary_url(package)
            if url is None:
                raise BinaryNotPresentError(package.name)
            return url
        if not package.source_url:
            raise DownloadFailedError("<none>", f"{package.name} has no source_url")
        return package.source_url

    # -------------------------
    # probes
    # -------------------------
    def remote_file_exists(self, url: str) -> bool:
        try:
            resp = self.session.head(url, allow_redirects=True, timeout=self.probe_timeout)
        except requests.RequestException as e:
            logger.debug("HEAD %s failed: %s", url, e)
            return False
        return resp.status_code == 200

    def binary_available(self, package: "Package") -> bool:
        if not self.binary_host:
            logger.debug("No binary host configured; %s will build from source", package.name)
            return False
        ok = (self.remote_file_exists(self.binary_url(package))
              and self.remote_file_exists(self.binary_sha1_url(package)))
        logger.debug("Binary for %s present=%s", package.name_with_version, ok)
        return ok

    # -------------------------
    # digests
    # -------------------------
    def expected_digest(self, kind: "Kind", package: "Package") -> str:
        if _is_binary(kind):
            if not package.binary_present():
                raise BinaryNotPresentError(package.name)
            self.layout.ensure("tmp")
            sha1_path = self.layout.tmp / package.binary_sha1_filename
            try:
                self._download(self.binary_sha1_url(package), sha1_path)
                return normalize_digest(sha1_path.read_text(encoding="utf-8"))
            finally:
                if sha1_path.exists():
                    sha1_path.unlink()
        return normalize_digest(package.source_sha1)

    # -------------------------
    # fetch
    # -------------------------
    def partial_path(self, final_path: Path) -> Path:
        return self.layout.tmp / (final_path.name + PARTIAL_SUFFIX)

    def fetch(self, kind: "Kind", package: "Package") -> Path:
        """Download the archive of `kind` for `package`, verify it and move it into the cache."""
        url = self.url_for(kind, package)
        expected = self.expected_digest(kind, package)
        final_path = package.archive_path(kind)
        self.layout.ensure("archives", "tmp")
        tmp_path = self.partial_path(final_path)

        logger.info("Downloading %s", url)
        self._download(url, tmp_path)

        if not verify(tmp_path, expected):
            actual = sha1_file(tmp_path)
            logger.error("Checksum mismatch for %s expected=%s got=%s", final_path.name, expected, actual)
            tmp_path.unlink()
            raise VerificationFailedError(str(final_path), expected, actual)

        os.replace(tmp_path, final_path)
        logger.info("Fetched %s -> %s", package.name_with_version, final_path)
        return final_path

    def _download(self, url: str, dest: Path) -> None:
        try:
            resp = self.session.get(url, stream=True, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise DownloadFailedError(url, str(e)) from e
        try:
            if not 200 <= resp.status_code < 300:
                raise DownloadFailedError(url, f"HTTP {resp.status_code}")
            with open(dest, "wb") as f:
                for chunk in resp.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            if dest.exists():
                dest.unlink()
            raise DownloadFailedError(url, str(e)) from e
        finally:
            resp.close()


def _is_binary(kind) -> bool:
    return getattr(kind, "value", kind) == "binary"
