"""Tests for client configuration loading."""

import pytest
import yaml
from pydantic import ValidationError

from notifyhub_client.config import ClientConfig, ServerConfig, load_config


def test_load_config_from_yaml(tmp_path):
    config_data = {
        "server": {"url": "https://notify.example.com"},
        "user": {"username": "alice"},
        "feed": {"toast_ttl_seconds": 5},
    }
    path = tmp_path / "client.yaml"
    path.write_text(yaml.dump(config_data))

    cfg = load_config(path)
    assert cfg.server.url == "https://notify.example.com"
    assert cfg.user.username == "alice"
    assert cfg.feed.toast_ttl_seconds == 5


def test_load_config_defaults():
    cfg = ClientConfig(user={"username": "bob"})
    assert cfg.server.url == "http://localhost:8000"
    assert cfg.feed.toast_ttl_seconds == 10.0
    assert cfg.logging.format == "json"


def test_username_required(tmp_path):
    path = tmp_path / "client.yaml"
    path.write_text(yaml.dump({"server": {"url": "http://x"}}))
    with pytest.raises(ValidationError):
        load_config(path)


def test_load_config_file_not_found():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")


@pytest.mark.parametrize(
    "url,expected",
    [
        ("http://localhost:8000", "ws://localhost:8000/ws"),
        ("https://notify.example.com/", "wss://notify.example.com/ws"),
    ],
)
def test_push_url_derived_from_http_url(url, expected):
    assert ServerConfig(url=url).push_url == expected


def test_push_url_explicit():
    assert ServerConfig(ws_url="ws://push:9000/ws").push_url == "ws://push:9000/ws"
