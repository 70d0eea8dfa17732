"""
Loads and handles config from config.yml
Any key can be overridden by an environment variable of the same name (.env is loaded first)
"""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class Config(BaseModel):
    # Source
    HN_BASE_URL: str = "https://hacker-news.firebaseio.com/v0"
    HN_INDEX: str = "topstories"
    TOP_N: int = Field(default=50, ge=1)
    MAX_CONCURRENCY: int = Field(default=10, ge=1)
    REQUEST_TIMEOUT: float = Field(default=30.0, gt=0)

    # Cache and storage
    CACHE_TTL_SECONDS: float = Field(default=300.0, gt=0)
    DATABASE_PATH: str = "data/feed.db"

    # Presentation
    SCROLL_SPEED: int = Field(default=50, ge=10, le=100)
    FRAME_RATE: float = Field(default=60.0, gt=0)

    LOG_LEVEL: str = "INFO"


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    # Try relative path first
    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    # Try from project root
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _read_yaml(path: Optional[str]) -> Dict[str, Any]:
    if path is None:
        logger.info("No config.yml found, using defaults")
        return {}

    with open(path, 'r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml, then apply environment overrides."""
    load_dotenv()

    values = _read_yaml(path or _get_config_path())

    for name in Config.model_fields:
        env_value = os.getenv(name)
        if env_value is not None:
            values[name] = env_value

    try:
        return Config(**{k: v for k, v in values.items() if k in Config.model_fields})
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise
