"""Tests for the offline CLI commands."""

import configparser
import hashlib

import pytest
from typer.testing import CliRunner

from qbz import __version__
from qbz.cli import app as cli_app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "qbz" / "config.ini"
    monkeypatch.setattr(cli_app, "CONFIG_FILE", path)
    return path


def test_version():
    result = runner.invoke(cli_app.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_init_saves_hashed_password(config_file):
    result = runner.invoke(
        cli_app.app, ["init", "jane@example.com", "hunter2", "-q", "4"]
    )

    assert result.exit_code == 0
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(config_file)
    section = parser["DEFAULT"]
    assert section["email"] == "jane@example.com"
    assert section["password"] == hashlib.md5(b"hunter2").hexdigest()  # noqa: S324
    assert section["quality"] == "4"


def test_init_refuses_overwrite_without_confirmation(config_file):
    runner.invoke(cli_app.app, ["init", "jane@example.com", "hunter2"])

    result = runner.invoke(
        cli_app.app, ["init", "other@example.com", "secret"], input="n\n"
    )

    assert result.exit_code != 0
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(config_file)
    assert parser["DEFAULT"]["email"] == "jane@example.com"


def test_show_config(config_file):
    runner.invoke(cli_app.app, ["init", "jane@example.com", "hunter2"])

    result = runner.invoke(cli_app.app, ["--show-config"])

    assert result.exit_code == 0
    assert "jane@example.com" in result.stdout
    assert "hunter2" not in result.stdout


def test_search_rejects_unknown_kind(config_file):
    result = runner.invoke(cli_app.app, ["search", "labels", "blue note"])
    assert result.exit_code == 2
