import json

import pytest

from parts.logging import PartsLogger, _parse_size


@pytest.fixture
def parts_logger():
    lg = PartsLogger()
    yield lg
    for h in lg._handlers:
        lg._root.removeHandler(h)
        h.close()


@pytest.mark.parametrize("value,expected", [
    ("10M", 10 * 1024 ** 2),
    ("512k", 512 * 1024),
    ("1.5G", int(1.5 * 1024 ** 3)),
    (2048, 2048),
    ("junk", None),
])
def test_parse_size(value, expected):
    assert _parse_size(value) == expected


def test_jsonl_log_carries_module_name(parts_logger, tmp_path):
    path = tmp_path / "log.jsonl"
    parts_logger.apply_config({"console": {"enabled": False}, "jsonl": {"enabled": True, "path": str(path)}})
    parts_logger.get_logger("fetcher").info("Fetched %s", "foo-1.0")
    record = json.loads(path.read_text().splitlines()[-1])
    assert record["module"] == "fetcher"
    assert record["message"] == "Fetched foo-1.0"


def test_module_levels_and_counters(parts_logger, tmp_path):
    path = tmp_path / "log.jsonl"
    parts_logger.apply_config({
        "console": {"enabled": False},
        "module_levels": {"farm": "ERROR"},
        "jsonl": {"enabled": True, "path": str(path), "level": "DEBUG"},
    })
    parts_logger.get_logger("farm").warning("dropped")
    parts_logger.get_logger("lifecycle").warning("kept")
    messages = [json.loads(line)["message"] for line in path.read_text().splitlines()]
    assert "kept" in messages
    assert "dropped" not in messages
    assert parts_logger.get_metrics()["WARNING"] == 1
