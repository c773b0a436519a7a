"""Tests for CLI helpers."""

import socket

import pytest

from sqlstudio.cli.main import (
    app,
    create_parser,
    find_available_port,
    is_port_in_use,
    studio_client_url,
)
from sqlstudio.config import Settings


def test_parser_open():
    args = create_parser().parse_args(["open", "app.db", "--port", "4100", "--no-browser"])

    assert args.command == "open"
    assert args.file == "app.db"
    assert args.port == 4100
    assert args.no_browser


def test_parser_serve():
    args = create_parser().parse_args(["serve", "app.db", "--user", "admin", "--pass", "pw", "-v"])

    assert args.command == "serve"
    assert args.user == "admin"
    assert args.password == "pw"
    assert args.verbose


def test_no_command_prints_help(capsys):
    assert app([]) == 0
    assert "sqlstudio" in capsys.readouterr().out


def test_studio_client_url():
    settings = Settings(studio_url="https://libsqlstudio.com/")

    assert studio_client_url(settings, 4000, "abc") == "https://libsqlstudio.com/client?c=4000:abc"


@pytest.fixture
def busy_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen(1)
        yield sock.getsockname()[1]


def test_is_port_in_use(busy_port):
    assert is_port_in_use(busy_port)


def test_find_available_port_skips_busy(busy_port):
    port = find_available_port(busy_port, attempts=5)

    assert port != busy_port
    assert busy_port < port < busy_port + 5


def test_find_available_port_gives_up(busy_port):
    assert find_available_port(busy_port, attempts=1) == busy_port


def test_missing_config_file(tmp_path, capsys):
    code = app(["serve", str(tmp_path / "app.db"), "--config", str(tmp_path / "missing.yaml")])

    assert code == 1
    assert "Config file not found" in capsys.readouterr().out
