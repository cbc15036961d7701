import logging
import os
from collections.abc import Mapping
from typing import Any

import yaml

from clinicast.core.domain.settings import EngineSettings

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "CLINICAST_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variable -> EngineSettings field. Set variables win over the file.
ENV_OVERRIDES = {
    "REDIS_URL": "redis_url",
    "CLINICAST_STORE_TYPE": "store_type",
    "CLINICAST_LOG_LEVEL": "log_level",
}


def read_config_file(path: str) -> dict[str, Any]:
    """
    Parse a YAML config file. A missing file yields an empty mapping.

    Raises:
        RuntimeError: the file exists but cannot be read or parsed
    """
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise RuntimeError(f"Failed to load configuration from {path}: {e}") from e


def apply_env_overrides(config_data: dict[str, Any], environ: Mapping[str, str] = os.environ) -> dict[str, Any]:
    """Return a copy of config_data with every non-empty override variable applied."""
    merged = dict(config_data)
    for variable, field_name in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            merged[field_name] = value
    return merged


def load_settings(path: str | None = None) -> EngineSettings:
    """
    Load engine settings: defaults, then the YAML file, then environment overrides.

    Args:
        path: Path to the YAML file. Defaults to CLINICAST_CONFIG_FILE or "config.yaml".
    """
    if path is None:
        path = os.getenv(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)

    config_data = apply_env_overrides(read_config_file(path))
    logger.debug(f"Loaded settings from {path} with keys {sorted(config_data)}")
    return EngineSettings(**config_data)
