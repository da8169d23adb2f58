"""Configuration management for tsterm.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/tsterm.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="localhost:3000", description="host[:port] serving the backend")
    secure: bool = Field(default=False, description="Use wss:// instead of ws://")
    control_path: str = Field(default="/ts")
    open_timeout: float = Field(default=10.0, gt=0)

    @property
    def scheme(self) -> str:
        return "wss" if self.secure else "ws"

    @property
    def origin(self) -> str:
        """Origin sent on both handshakes, as a page served by the backend would."""
        return f"{'https' if self.secure else 'http'}://{self.host}"

    @property
    def control_url(self) -> str:
        path = self.control_path if self.control_path.startswith("/") else f"/{self.control_path}"
        return f"{self.scheme}://{self.host}{path}"


class SessionConfig(BaseModel):
    connect_delay: float = Field(default=1.0, ge=0)
    resize_debounce: float = Field(default=0.5, ge=0)
    host_confirm_timeout: float | None = Field(default=None, gt=0)
    default_port: int = Field(default=22, ge=1, le=65535)
    default_username: str = Field(default="")


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the tsterm client.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TSTERM_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Sections present in the YAML file take precedence over the
    environment; anything the file leaves out comes from TSTERM_*
    variables or the defaults.
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
