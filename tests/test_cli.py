from unittest import mock

import pytest

from tsql_engine.cli import build_engine, main
from tsql_engine.engine import QueryError
from tsql_engine.parser import parse_query


def test_build_engine_has_empty_store():
    engine = build_engine()
    assert len(engine.get_store()) == 0


def test_build_engine_gives_fresh_stores():
    first, second = build_engine(), build_engine()
    first.get_store().append([1], ["cpu"], [1.0], [None])
    assert len(first.get_store()) == 1
    assert len(second.get_store()) == 0


def test_built_engine_runs_queries():
    engine = build_engine()
    engine.get_store().append([0, 10], ["cpu", "cpu"], [2.0, 4.0], [None, None])
    result = engine.execute(parse_query("SELECT max(cpu) FROM metrics WINDOW 1s"))
    assert result[0].column("value") == (4.0,)


def test_built_engine_without_data_raises():
    with pytest.raises(QueryError):
        build_engine().execute(parse_query("SELECT avg(cpu) FROM metrics WINDOW 1m"))


@mock.patch("flask.Flask.run")
def test_main_defaults(run):
    assert main([]) == 0
    run.assert_called_once_with(host="127.0.0.1", port=8080)


@mock.patch("flask.Flask.run")
def test_main_custom_address(run):
    assert main(["--host", "0.0.0.0", "--port", "9000"]) == 0
    run.assert_called_once_with(host="0.0.0.0", port=9000)


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as excinfo:
        main(["--port", "abc"])
    assert excinfo.value.code == 2