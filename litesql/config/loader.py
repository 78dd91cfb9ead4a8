"""
Configuration loader for litesql.

Reads the ``database`` section of a JSON or YAML file into a
:class:`~litesql.config.models.ConnectionConfig`.
"""

from __future__ import annotations

import json
import os
import yaml
from pathlib import Path
from typing import Dict, Any
from dotenv import load_dotenv

from .models import ConnectionConfig

DATABASE_ENV_VAR = "LITESQL_DATABASE"


def load_raw_config(path: Path) -> Dict[str, Any]:
    """
    Load raw configuration from JSON or YAML file.

    Also loads environment variables from .env file if present.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Dictionary with raw configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported
    """
    load_dotenv()

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    return parse_config_text(path.read_text(encoding="utf-8"), path)


def parse_config_text(content: str, path: Path | str) -> Dict[str, Any]:
    """
    Parse raw configuration content from JSON or YAML.

    Args:
        content: Config file content
        path: Path or filename used for extension detection
    """
    if isinstance(path, str):
        path = Path(path)

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(content) or {}
    if suffix == ".json":
        return json.loads(content)
    raise ValueError(
        f"Unsupported config format: {suffix}. "
        f"Use .json, .yaml, or .yml"
    )


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "yes", "on", "1"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no", "off", "0"}:
        return False
    if isinstance(value, int):
        return bool(value)
    raise ValueError(f"database.{field} must be a boolean")


def build_connection_config(raw: Dict[str, Any], base_dir: Path | None = None) -> ConnectionConfig:
    """
    Build ConnectionConfig from raw configuration.

    Relative paths are resolved against ``base_dir`` (normally the config
    file's folder). ``LITESQL_DATABASE`` overrides the configured path.

    Args:
        raw: Raw config dictionary
        base_dir: Folder relative database paths are resolved against

    Returns:
        Validated ConnectionConfig instance
    """
    database_raw = raw.get("database")
    if database_raw is None:
        database_raw = {}
    if not isinstance(database_raw, dict):
        raise ValueError("Config 'database' must be an object")

    path = os.environ.get(DATABASE_ENV_VAR) or database_raw.get("path", ConnectionConfig.path)
    path = str(path)
    if path != ConnectionConfig.path and base_dir is not None:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            path = str((base_dir / candidate).resolve())

    busy_timeout_raw = database_raw.get("busy_timeout", ConnectionConfig.busy_timeout)
    try:
        busy_timeout = int(busy_timeout_raw)
    except (TypeError, ValueError):
        raise ValueError("database.busy_timeout must be an integer") from None

    config = ConnectionConfig(
        path=path,
        readonly=_as_bool(database_raw.get("readonly", False), "readonly"),
        busy_timeout=busy_timeout,
        foreign_keys=_as_bool(database_raw.get("foreign_keys", True), "foreign_keys"),
        journal_mode=database_raw.get("journal_mode"),
        default_transaction_mode=database_raw.get(
            "default_transaction_mode", ConnectionConfig.default_transaction_mode
        ),
        trace_sql=_as_bool(database_raw.get("trace_sql", False), "trace_sql"),
    )
    config.validate()
    return config


def load_config_from_file(path: Path | str) -> ConnectionConfig:
    """
    Load and validate connection configuration from file.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Validated ConnectionConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid

    Example:
        >>> config = load_config_from_file("litesql.yaml")
        >>> config.readonly
        False
    """
    if isinstance(path, str):
        path = Path(path)

    path = path.expanduser().resolve()

    raw = load_raw_config(path)
    return build_connection_config(raw, base_dir=path.parent)


def config_to_raw(config: ConnectionConfig) -> Dict[str, Any]:
    """
    Serialize ConnectionConfig into a JSON/YAML-friendly dict.
    """
    database: Dict[str, Any] = {
        "path": config.path,
        "readonly": config.readonly,
        "busy_timeout": config.busy_timeout,
        "foreign_keys": config.foreign_keys,
        "default_transaction_mode": config.default_transaction_mode,
        "trace_sql": config.trace_sql,
    }
    if config.journal_mode is not None:
        database["journal_mode"] = config.journal_mode
    return {"database": database}


def save_config_to_file(config: ConnectionConfig, path: Path | str) -> None:
    """
    Serialize and save configuration to JSON/YAML file.

    Args:
        config: ConnectionConfig instance to save
        path: Destination config file path
    """
    if isinstance(path, str):
        path = Path(path)

    path = path.expanduser().resolve()
    raw = config_to_raw(config)

    suffix = path.suffix.lower()
    if suffix == ".json":
        path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
    elif suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(raw, sort_keys=False), encoding="utf-8")
    else:
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .json, .yaml, or .yml"
        )
