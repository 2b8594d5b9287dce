import os
import zipfile

import pytest

from parts.errors import ArchiveError
from parts.extractor import extract
from parts.package import Kind

from conftest import source_tarball


def test_extract_tar_gz(tmp_path):
    archive = tmp_path / "foo-1.0.tar.gz"
    archive.write_bytes(source_tarball("foo-1.0", {"configure": "#!/bin/sh\n"}))
    dest = extract(archive, Kind.SOURCE, "tar.gz", tmp_path / "scratch")
    assert (dest / "foo-1.0" / "configure").read_text() == "#!/bin/sh\n"


def test_destination_is_wiped_first(tmp_path):
    archive = tmp_path / "foo-1.0.tgz"
    archive.write_bytes(source_tarball("foo-1.0", {"a": "a"}))
    dest = tmp_path / "scratch"
    (dest / "stale").mkdir(parents=True)
    extract(archive, Kind.SOURCE, "tgz", dest)
    assert not (dest / "stale").exists()
    assert (dest / "foo-1.0" / "a").exists()


def test_binary_archives_are_always_tar(tmp_path):
    archive = tmp_path / "foo-1.0-binary.tar.gz"
    archive.write_bytes(source_tarball("bin", {"foo": "x"}))
    dest = extract(archive, Kind.BINARY, "zip", tmp_path / "scratch")
    assert (dest / "bin" / "foo").exists()


def test_extract_zip_restores_permissions(tmp_path):
    archive = tmp_path / "foo-1.0.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        info = zipfile.ZipInfo("foo-1.0/run.sh")
        info.external_attr = (0o755 << 16)
        zf.writestr(info, "#!/bin/sh\n")
        zf.writestr("foo-1.0/data.txt", "data")
    dest = extract(archive, "source", "zip", tmp_path / "scratch")
    assert os.access(dest / "foo-1.0" / "run.sh", os.X_OK)
    assert (dest / "foo-1.0" / "data.txt").read_text() == "data"


def test_unknown_filetype_is_copied(tmp_path):
    archive = tmp_path / "tool-2.1.jar"
    archive.write_bytes(b"PK-ish")
    dest = extract(archive, Kind.SOURCE, "jar", tmp_path / "scratch")
    assert (dest / "tool-2.1.jar").read_bytes() == b"PK-ish"


def test_corrupt_archive_raises_archive_error(tmp_path):
    archive = tmp_path / "foo-1.0.tar.gz"
    archive.write_bytes(b"definitely not a tarball")
    with pytest.raises(ArchiveError):
        extract(archive, Kind.SOURCE, "tar.gz", tmp_path / "scratch")
