from pathlib import Path

import pytest

from litesql.config.models import ConnectionConfig


def test_connection_config_defaults() -> None:
    cfg = ConnectionConfig()
    assert cfg.path == ":memory:"
    assert cfg.is_memory
    assert cfg.readonly is False
    assert cfg.busy_timeout == 5000
    assert cfg.foreign_keys is True
    assert cfg.journal_mode is None
    assert cfg.default_transaction_mode == "deferred"
    cfg.validate()


def test_connection_config_normalizes_values() -> None:
    cfg = ConnectionConfig(
        path=Path("data/app.db"),
        journal_mode=" WAL ",
        default_transaction_mode="IMMEDIATE",
    )
    assert cfg.path == str(Path("data/app.db"))
    assert not cfg.is_memory
    assert cfg.journal_mode == "wal"
    assert cfg.default_transaction_mode == "immediate"
    cfg.validate()


def test_empty_path_falls_back_to_memory() -> None:
    assert ConnectionConfig(path="").is_memory


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"busy_timeout": -1}, "busy_timeout must be >= 0"),
        ({"busy_timeout": "soon"}, "busy_timeout must be an integer"),
        ({"busy_timeout": True}, "busy_timeout must be an integer"),
        ({"journal_mode": "sideways"}, "journal_mode must be one of"),
        ({"default_transaction_mode": "eventually"}, "default_transaction_mode must be one of"),
        ({"readonly": True, "journal_mode": "wal"}, "read-only"),
    ],
)
def test_connection_config_validate_rejects(kwargs: dict, message: str) -> None:
    cfg = ConnectionConfig(**kwargs)
    with pytest.raises(ValueError, match=message):
        cfg.validate()
