import json
import os

import pytest
import yaml

from parts import config as config_mod
from parts.errors import ConfigError


@pytest.fixture(autouse=True)
def _reset_config():
    yield
    config_mod.set_config(None)


def test_file_values_merge_over_defaults(tmp_path):
    path = tmp_path / "parts.yaml"
    path.write_text(yaml.safe_dump({"fetcher": {"timeout": 42}}))
    cfg = config_mod.load(str(path))
    assert cfg.get("fetcher.timeout") == 42
    assert cfg.get("fetcher.probe_timeout") == 15
    assert cfg.get("build.env.MAKEFLAGS") == "-j2"
    assert cfg.path == path
    assert cfg.raw == {"fetcher": {"timeout": 42}}


def test_json_config(tmp_path):
    path = tmp_path / "parts.json"
    path.write_text(json.dumps({"binary": {"host": "https://bin.example.org"}}))
    assert config_mod.load(str(path)).get("binary.host") == "https://bin.example.org"


def test_root_path_is_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("PARTS_TEST_HOME", str(tmp_path))
    path = tmp_path / "parts.yaml"
    path.write_text(yaml.safe_dump({"paths": {"root": "$PARTS_TEST_HOME/parts"}}))
    assert config_mod.load(str(path)).get("paths.root") == os.path.join(str(tmp_path), "parts")


def test_missing_explicit_path_raises(tmp_path):
    with pytest.raises(ConfigError):
        config_mod.load(str(tmp_path / "nope.yaml"))


def test_unknown_key_is_fatal_when_requested(tmp_path):
    path = tmp_path / "parts.yaml"
    path.write_text(yaml.safe_dump({"paths": {"root": "/x", "bogus": 1}}))
    with pytest.raises(ConfigError):
        config_mod.load(str(path), fatal=True)
    ok, issues = config_mod.validate_config(config_mod.load(str(path)))
    assert not ok
    assert any("bogus" in issue for issue in issues)


def test_non_mapping_file_is_rejected(tmp_path):
    path = tmp_path / "parts.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        config_mod.load(str(path))


def test_overrides_and_dotted_default(tmp_path):
    path = tmp_path / "parts.yaml"
    path.write_text("")
    cfg = config_mod.load(str(path), overrides={"webhook": {"url": "https://hooks.example.org"}})
    assert cfg.get("webhook.url") == "https://hooks.example.org"
    assert cfg.get("webhook.missing.key", "fallback") == "fallback"


def test_build_env_is_stringified(cfg):
    env = config_mod.get_build_env(cfg)
    assert env["MAKEFLAGS"] == "-j1"
    assert env["CHOST"] == "x86_64-pc-linux-gnu"


def test_reload_notifies_watchers(tmp_path):
    path = tmp_path / "parts.yaml"
    path.write_text("")
    seen = []
    config_mod.register_watch_callback(seen.append)
    try:
        cfg = config_mod.reload(str(path))
    finally:
        config_mod.unregister_watch_callback(seen.append)
    assert seen == [cfg]
