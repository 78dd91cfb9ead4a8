"""
Configuration management for litesql.

Typed connection settings and a JSON/YAML loader.
"""

from .models import ConnectionConfig
from .loader import build_connection_config, load_config_from_file, save_config_to_file

__all__ = [
    "ConnectionConfig",
    "build_connection_config",
    "load_config_from_file",
    "save_config_to_file",
]
