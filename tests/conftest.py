import hashlib
import io
import os
import tarfile
from pathlib import Path

import pytest
import yaml

from parts import config as config_mod
from parts.archiver import _tar_gz_dir
from parts.fetcher import ArchiveFetcher
from parts.layout import Layout
from parts.package import Package, PackageMeta
from parts.registry import Registry

BINARY_HOST = "https://binaries.example.org"


class FakeResponse:
    def __init__(self, status_code=200, body=b""):
        self.status_code = status_code
        self.body = body
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Serves a fixed url -> bytes mapping; everything else is a 404."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.calls = []

    def head(self, url, **kwargs):
        self.calls.append(("HEAD", url))
        return FakeResponse(200 if url in self.files else 404)

    def get(self, url, **kwargs):
        self.calls.append(("GET", url))
        if url not in self.files:
            return FakeResponse(404)
        return FakeResponse(200, self.files[url])

    def urls(self, method):
        return [u for m, u in self.calls if m == method]


@pytest.fixture
def cfg(tmp_path):
    path = tmp_path / "parts.yaml"
    path.write_text(yaml.safe_dump({
        "paths": {"root": str(tmp_path / "root")},
        "binary": {"host": BINARY_HOST},
        "webhook": {"enabled": False},
        "build": {"env": {"MAKEFLAGS": "-j1"}},
    }), encoding="utf-8")
    c = config_mod.load(str(path))
    yield c
    config_mod.set_config(None)


@pytest.fixture
def layout(cfg):
    lay = Layout.from_config(cfg)
    lay.ensure()
    return lay


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def fetcher(layout, cfg, session):
    return ArchiveFetcher(layout, cfg, session=session)


@pytest.fixture
def registry(layout, fetcher, cfg):
    return Registry(layout, fetcher=fetcher, cfg=cfg)


def make_definition(name="foo", version="1.0", attrs=None, bases=(Package,), **meta_kwargs):
    namespace = {"meta": PackageMeta(name=name, version=version, **meta_kwargs), "__module__": __name__}
    namespace.update(attrs or {})
    return type(name.capitalize(), bases, namespace)


def write_tree(root: Path, files: dict) -> Path:
    """files: relative path -> (content, mode)"""
    for rel, (content, mode) in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        os.chmod(p, mode)
    return root


def binary_archive(tmp_path: Path, files: dict):
    """Build a binary archive the way archive_installed does; returns (bytes, sha1)."""
    src = write_tree(tmp_path / "binary-src", files)
    out = tmp_path / "binary.tar.gz"
    _tar_gz_dir(src, out)
    data = out.read_bytes()
    return data, hashlib.sha1(data).hexdigest()


def source_tarball(top: str, files: dict) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for rel, content in files.items():
            raw = content.encode("utf-8")
            info = tarfile.TarInfo(f"{top}/{rel}")
            info.size = len(raw)
            info.mode = 0o644
            tf.addfile(info, io.BytesIO(raw))
    return buf.getvalue()
