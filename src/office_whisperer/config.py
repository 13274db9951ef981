'''
Server configuration: YAML file validated into a pydantic model.
'''

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from . import PROTOCOL_VERSION, SERVER_NAME, __version__

import logging
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "configs", "default.yaml")
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ServerInfo(BaseModel):
    name: str = Field(default=SERVER_NAME)
    version: str = Field(default=__version__)
    protocol_version: str = Field(default=PROTOCOL_VERSION)


class ServerConfig(BaseModel):
    server: ServerInfo = Field(default_factory=ServerInfo)
    data_path: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")
    max_workers: int = Field(default=8, ge=1)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}")
        return value


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from a YAML file.

    Args:
        config_path (str, optional): Path to the configuration file.
            Defaults to configs/default.yaml inside the package.

    Returns:
        dict: Configuration data (empty dict for an empty file)
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    try:
        with open(config_path, 'r') as file:
            config = yaml.safe_load(file)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML configuration: {e}")
        raise
    logger.info(f"Loaded configuration from {config_path}")
    return config or {}


def build_config(config_path: Optional[str] = None, **overrides) -> ServerConfig:
    """Load the YAML file and apply non-None overrides (e.g. from the command line)."""
    data = load_config(config_path)
    data.update({key: value for key, value in overrides.items() if value is not None})
    return ServerConfig(**data)
