from unittest import mock

import pytest
import yaml

from parts import config as config_mod
from parts.cli import main
from parts.lifecycle import Lifecycle


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "cli.yaml"
    path.write_text(yaml.safe_dump({
        "paths": {"root": str(tmp_path / "root")},
        "logging": {"console": {"enabled": False}},
    }))
    yield str(path)
    config_mod.set_config(None)


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_list_empty(config_path, capsys):
    assert main(["--config", config_path, "list"]) == 0
    assert "No packages installed" in capsys.readouterr().out


def test_list_shows_installed_versions(config_path, tmp_path, capsys):
    (tmp_path / "root" / "packages" / "foo" / "1.0" / "bin").mkdir(parents=True)
    assert main(["--config", config_path, "list"]) == 0
    out = capsys.readouterr().out
    assert "foo" in out and "1.0" in out


def test_unknown_package_exits_nonzero(config_path, capsys):
    assert main(["--config", config_path, "install", "no-such-package"]) == 1
    assert "package not found: no-such-package" in capsys.readouterr().err


def test_uninstall_requires_installed_package(config_path, capsys):
    assert main(["--config", config_path, "uninstall", "foo"]) == 1
    assert "not installed" in capsys.readouterr().err


def test_missing_config_file_exits_nonzero(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "absent.yaml"), "list"]) == 1


def test_install_reports_package_without_repeating_tips(config_path, capsys, monkeypatch):
    pkg = mock.Mock(name_with_version="hint-1.0")
    pkg.tips.return_value = "run hint --init first"
    monkeypatch.setattr(Lifecycle, "install", lambda self, ref, force_source=False: pkg)
    assert main(["--config", config_path, "install", "hint"]) == 0
    out = capsys.readouterr().out
    assert "installed hint-1.0" in out
    assert "run hint --init first" not in out
