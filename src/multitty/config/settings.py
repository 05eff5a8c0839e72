"""Configuration management for multitty.

Loads settings from a YAML configuration file with environment variable
overrides (``MULTITTY_`` prefix, ``__`` between nested keys). Supports
.env files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from multitty.bus.hub import DEFAULT_STREAM_QUEUE_SIZE
from multitty.spawner.liveness import DEFAULT_POLL_INTERVAL
from multitty.spawner.subprocess_launcher import DEFAULT_TERMINAL_COMMAND
from multitty.surface.console import DEFAULT_DETACH_KEY

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/multitty.yaml")


class BusConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8750, ge=1, le=65535)
    url: str | None = Field(default=None, description="Relay URL secondaries connect to")
    timeout: float = Field(default=5.0, gt=0)
    retry_delay: float = Field(default=1.0, gt=0)
    stream_queue_size: int = Field(
        default=DEFAULT_STREAM_QUEUE_SIZE, gt=0,
        description="Messages buffered per relay subscriber before dropping",
    )

    @property
    def relay_url(self) -> str:
        return self.url or f"http://{self.host}:{self.port}"


class SessionsConfig(BaseModel):
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    liveness: Literal["poll", "wait"] = Field(default="poll")
    terminal_command: list[str] = Field(default_factory=lambda: list(DEFAULT_TERMINAL_COMMAND))
    detach_key: str = Field(default=DEFAULT_DETACH_KEY, max_length=1)


class DeviceConfig(BaseModel):
    backend: Literal["pty", "echo"] = Field(default="pty")
    shell_command: str = Field(default="/bin/sh")
    rows: int = Field(default=24, gt=0)
    cols: int = Field(default=80, gt=0)
    term: str = Field(default="xterm-256color")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for multitty.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "MULTITTY_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    bus: BusConfig = Field(default_factory=BusConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs; let the environment win over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)
