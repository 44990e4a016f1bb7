"""
Client configuration loading and validation.

Loads client configuration from a YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    url: str = "http://localhost:8000"
    ws_url: str | None = None
    verify_tls: bool = True
    request_timeout_seconds: int = 30

    @property
    def push_url(self) -> str:
        """WebSocket URL of the push channel, derived from ``url`` when unset."""
        if self.ws_url:
            return self.ws_url
        base = self.url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/ws"


class UserConfig(BaseModel):
    username: str


class FeedConfig(BaseModel):
    toast_ttl_seconds: float = 10.0


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "json"


class ClientConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    user: UserConfig
    feed: FeedConfig = Field(default_factory=FeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> ClientConfig:
    """Load and validate client configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return ClientConfig.model_validate(raw)
