# parts/archiver.py
"""
Binary archive production and publishing.

archive_installed() packs an installed prefix into archives/ as
<name>-<version>-binary.tar.gz plus a <name>-<version>-binary.sha1 sidecar,
the exact pair the fetcher expects to find on the binary host.
upload_archive() pushes that pair through an Uploader (s3cmd by default).
"""

from __future__ import annotations

import abc
import gzip
import tarfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from parts.config import Config, get_config
from parts.errors import ExecutionFailedError, PublishError
from parts.execute import execute
from parts.logging import get_logger
from parts.verify import sha1_file

logger = get_logger("archiver")


def _tar_gz_dir(src_dir: Path, out_path: Path) -> None:
    # mtime=0 keeps the gzip header stable across rebuilds of the same tree
    with open(out_path, "wb") as raw:
        with gzip.GzipFile(filename="", fileobj=raw, mode="wb", mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w") as tar:
                tar.add(str(src_dir), arcname=".")


def archive_paths(package) -> Tuple[Path, Path]:
    archives = package.layout.archives
    return archives / package.archive_filename("binary"), archives / package.binary_sha1_filename


def archive_installed(package) -> Tuple[Path, str]:
    """Pack the installed prefix of `package`; returns (archive path, sha1)."""
    prefix = package.prefix_path
    if not prefix.is_dir() or not any(prefix.iterdir()):
        raise PublishError(f"{package.name_with_version} is not installed")
    package.layout.ensure("archives")
    archive_path, sha1_path = archive_paths(package)

    logger.info("Archiving %s -> %s", prefix, archive_path)
    try:
        _tar_gz_dir(prefix, archive_path)
    except (OSError, tarfile.TarError) as e:
        if archive_path.exists():
            archive_path.unlink()
        raise PublishError(f"failed to archive {prefix}: {e}") from e
    digest = sha1_file(archive_path)
    sha1_path.write_text(digest, encoding="utf-8")
    return archive_path, digest


class Uploader(abc.ABC):
    @abc.abstractmethod
    def upload(self, path: Path) -> None:
        """Publish the local file `path` under its basename."""


class S3CmdUploader(Uploader):
    def __init__(self, bucket: str, acl_public: bool = True,
                 runner: Callable[..., None] = execute):
        if not bucket:
            raise PublishError("no publish bucket configured")
        self.bucket = bucket
        self.acl_public = acl_public
        self._run = runner

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "S3CmdUploader":
        cfg = cfg or get_config()
        return cls(cfg.get("publish.bucket"), bool(cfg.get("publish.acl_public", True)))

    def command(self, path: Path) -> List[str]:
        argv = ["s3cmd", "put"]
        if self.acl_public:
            argv.append("--acl-public")
        argv += ["--guess-mime-type", str(path), f"s3://{self.bucket}/{path.name}"]
        return argv

    def upload(self, path: Path) -> None:
        try:
            self._run(*self.command(path))
        except ExecutionFailedError as e:
            raise PublishError(f"upload of {path.name} failed: {e}") from e


def upload_archive(package, uploader: Optional[Uploader] = None) -> List[Path]:
    archive_path, sha1_path = archive_paths(package)
    missing = [p.name for p in (archive_path, sha1_path) if not p.is_file()]
    if missing:
        raise PublishError(f"missing local archive files: {', '.join(missing)}")
    uploader = uploader or S3CmdUploader.from_config(package.config)
    for path in (archive_path, sha1_path):
        logger.info("Uploading %s", path.name)
        uploader.upload(path)
    return [archive_path, sha1_path]
