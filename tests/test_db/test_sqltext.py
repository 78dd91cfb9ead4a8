from __future__ import annotations

import pytest

from litesql.errors import CompileError
from litesql.sqltext import expand_sql, quote_literal, scan_parameters, split_statements
from litesql.values import to_bindable


def test_anonymous_placeholders_are_numbered_in_order() -> None:
    params = scan_parameters("INSERT INTO users (email, admin) VALUES (?, ?)")
    assert params.count == 2
    assert [p.index for p in params.placeholders] == [1, 2]
    assert params.anonymous and not params.named


def test_numbered_and_repeated_named_placeholders() -> None:
    params = scan_parameters("SELECT ?3, ?1")
    assert params.count == 3

    named = scan_parameters("SELECT * FROM users WHERE admin = $admin OR id = :id OR age = $admin")
    assert named.count == 2
    assert named.names == {"$admin": 1, ":id": 2}
    assert named.resolve("admin") == "$admin"
    assert named.resolve(":id") == ":id"
    assert named.resolve("missing") is None


def test_literals_identifiers_and_comments_are_skipped() -> None:
    sql = (
        "SELECT '?', \"col?\", [a:b], `x$y` -- what?\n"
        "/* :nope */ FROM t WHERE price$ = ? AND name = 'it''s ?'"
    )
    params = scan_parameters(sql)
    assert params.count == 1
    assert params.names == {}


def test_out_of_range_numbered_placeholder() -> None:
    with pytest.raises(CompileError):
        scan_parameters("SELECT ?0")


def test_split_statements_keeps_trigger_bodies() -> None:
    script = """
    CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT);
    -- a comment;
    CREATE TRIGGER t_ai AFTER INSERT ON t BEGIN
        UPDATE t SET val = 'x;y' WHERE id = new.id;
    END;
    INSERT INTO t (val) VALUES ('a')
    """
    statements = split_statements(script)
    assert len(statements) == 3
    assert statements[1].startswith("-- a comment;")
    assert "CREATE TRIGGER t_ai" in statements[1]
    assert statements[1].rstrip().endswith("END;")
    assert statements[2] == "INSERT INTO t (val) VALUES ('a')"


def test_split_statements_drops_empty_pieces() -> None:
    assert split_statements(" ;; -- only a comment\n") == []


def test_quote_literal_doubles_quotes() -> None:
    assert quote_literal("That's all, Folks!") == "'That''s all, Folks!'"
    assert quote_literal("1") == "'1'"


def test_expand_sql_renders_bound_values() -> None:
    sql = "INSERT INTO users (email, admin) VALUES (?, ?)"
    params = scan_parameters(sql)
    values = [to_bindable("alice@example.com"), to_bindable(True)]
    assert expand_sql(sql, params, values) == (
        "INSERT INTO users (email, admin) VALUES ('alice@example.com', 1)"
    )
    assert expand_sql(sql, params, []) == "INSERT INTO users (email, admin) VALUES (NULL, NULL)"
