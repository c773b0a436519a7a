"""Tests for configuration loading."""

import pytest

from sqlstudio.config import Settings, load_settings, read_config_file
from sqlstudio.core.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in ("SQLSTUDIO_PORT", "SQLSTUDIO_DATABASE", "SQLSTUDIO_VERBOSE", "SQLSTUDIO_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    settings = Settings()

    assert settings.port == 4000
    assert settings.host == "127.0.0.1"
    assert settings.token is None
    assert not settings.basic_auth_enabled


def test_environment(monkeypatch):
    monkeypatch.setenv("SQLSTUDIO_PORT", "5001")
    monkeypatch.setenv("SQLSTUDIO_VERBOSE", "true")

    settings = Settings()

    assert settings.port == 5001
    assert settings.verbose is True


def test_yaml_file(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("database: app.db\nport: 4100\nusername: admin\nunknown_key: 1\n")

    settings = load_settings(path)

    assert settings.database == "app.db"
    assert settings.port == 4100
    assert settings.basic_auth_enabled


def test_default_file_picked_up(tmp_path):
    (tmp_path / "sqlstudio.yaml").write_text("port: 4200\n")

    assert load_settings().port == 4200


def test_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("port: 4100\n")
    monkeypatch.setenv("SQLSTUDIO_PORT", "4300")

    assert load_settings(path).port == 4300
    assert load_settings(path, port=4400).port == 4400
    assert load_settings(path, port=None).port == 4300


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "absent.yaml")


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigError, match="mapping"):
        read_config_file(path)


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert read_config_file(path) == {}
