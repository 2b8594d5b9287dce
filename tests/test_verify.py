import hashlib

from parts.verify import normalize_digest, sha1_file, verify


def test_sha1_of_empty_file(tmp_path):
    p = tmp_path / "empty"
    p.write_bytes(b"")
    assert sha1_file(p) == "da39a3ee5e6b4b0d3255bfef95601890afd80709"


def test_sha1_reads_in_chunks(tmp_path):
    data = b"parts" * 10000
    p = tmp_path / "blob"
    p.write_bytes(data)
    assert sha1_file(p, chunk_size=7) == hashlib.sha1(data).hexdigest()


def test_verify_ignores_case_and_whitespace(tmp_path):
    p = tmp_path / "f"
    p.write_bytes(b"hello\n")
    digest = hashlib.sha1(b"hello\n").hexdigest()
    assert verify(p, digest)
    assert verify(p, "  " + digest.upper() + "\n")


def test_verify_mismatch_and_empty_expectation(tmp_path):
    p = tmp_path / "f"
    p.write_bytes(b"hello\n")
    assert not verify(p, "0" * 40)
    assert not verify(p, "")
    assert not verify(p, None)


def test_normalize_digest():
    assert normalize_digest(" ABC\n") == "abc"
    assert normalize_digest(None) == ""
