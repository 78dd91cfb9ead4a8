from __future__ import annotations

import pytest

from litesql.errors import ExecutionError, LiteSQLError
from litesql.result import SUCCESS, Result, chain


def test_success_and_failure_truthiness() -> None:
    assert Result.success() is SUCCESS
    assert SUCCESS.ok and bool(SUCCESS)
    failure = Result.failure("boom")
    assert failure.failed
    assert not failure
    assert failure.reason == "boom"


def test_and_then_short_circuits_on_failure() -> None:
    calls = []

    def step() -> Result:
        calls.append("step")
        return SUCCESS

    assert SUCCESS.and_then(step).ok
    failure = Result.failure("first")
    assert failure.and_then(step) is failure
    assert calls == ["step"]


def test_or_else_runs_only_on_failure() -> None:
    calls = []

    def fallback() -> Result:
        calls.append("fallback")
        return SUCCESS

    assert SUCCESS.or_else(fallback) is SUCCESS
    assert Result.failure("x").or_else(fallback) is SUCCESS
    assert calls == ["fallback"]


def test_chain_stops_at_first_failure() -> None:
    calls = []

    def make(name: str, ok: bool):
        def _step() -> Result:
            calls.append(name)
            return SUCCESS if ok else Result.failure(name)

        return _step

    result = chain(make("a", True), make("b", False), make("c", True))
    assert result.reason == "b"
    assert calls == ["a", "b"]
    assert chain().ok


def test_raise_for_failure_reraises_carried_error() -> None:
    SUCCESS.raise_for_failure()
    error = ExecutionError("UNIQUE constraint failed: users.email")
    with pytest.raises(ExecutionError):
        Result.from_error(error).raise_for_failure()
    with pytest.raises(LiteSQLError, match="plain"):
        Result.failure("plain").raise_for_failure()
