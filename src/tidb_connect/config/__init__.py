"""Configuration: environment resolution and the raw config model.

Usage:
    >>> from tidb_connect.config import load_raw_config, RawConfig
"""

from tidb_connect.config.loader import ENV_VARS, load_raw_config
from tidb_connect.config.models import RawConfig

__all__ = ["load_raw_config", "RawConfig", "ENV_VARS"]
