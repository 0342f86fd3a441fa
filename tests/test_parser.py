from datetime import timedelta

import pytest

from tsql_engine.parser import (
    Aggregation,
    AggregationKind,
    FilterExpr,
    FilterOp,
    ParseError,
    WindowSpec,
    parse_query,
)


def test_basic_query():
    query = parse_query(
        "SELECT avg(temperature) FROM sensors WHERE location = 'datacenter-1' "
        "WINDOW 5m GROUP BY device_id"
    )
    assert query.select == [Aggregation(AggregationKind.AVG, "temperature")]
    assert query.source == "sensors"
    assert query.filter == FilterExpr("location", FilterOp.EQ, "datacenter-1")
    assert query.window == WindowSpec(300 * 1_000_000_000)
    assert query.group_by == ["device_id"]


def test_minimal_query_has_no_optional_clauses():
    query = parse_query("SELECT sum(x) FROM t WINDOW 10s")
    assert query.select == [Aggregation(AggregationKind.SUM, "x")]
    assert query.filter is None
    assert query.group_by is None
    assert query.window.duration_ns == 10_000_000_000


def test_keywords_are_case_insensitive():
    query = parse_query("select MAX(cpu) from hosts window 1h group by host")
    assert query.select == [Aggregation(AggregationKind.MAX, "cpu")]
    assert query.group_by == ["host"]


def test_multiple_aggregations():
    query = parse_query("SELECT avg(a) , min(b),max(c),count(d) FROM t WINDOW 1s")
    assert query.select == [
        Aggregation(AggregationKind.AVG, "a"),
        Aggregation(AggregationKind.MIN, "b"),
        Aggregation(AggregationKind.MAX, "c"),
        Aggregation(AggregationKind.COUNT, "d"),
    ]


@pytest.mark.parametrize(
    "unit, seconds",
    [("s", 7), ("m", 7 * 60), ("h", 7 * 3600), ("d", 7 * 86400)],
)
def test_window_units(unit, seconds):
    query = parse_query(f"SELECT avg(v) FROM t WINDOW 7{unit}")
    assert query.window.duration_ns == seconds * 1_000_000_000
    assert query.window.duration == timedelta(seconds=seconds)


@pytest.mark.parametrize(
    "symbol, op",
    [("=", FilterOp.EQ), (">", FilterOp.GT), ("<", FilterOp.LT), (">=", FilterOp.GTE), ("<=", FilterOp.LTE)],
)
def test_filter_operators(symbol, op):
    query = parse_query(f"SELECT avg(v) FROM t WHERE level{symbol}'3' WINDOW 1m")
    assert query.filter == FilterExpr("level", op, "3")


def test_group_by_several_fields():
    query = parse_query("SELECT avg(v) FROM t WINDOW 1m GROUP BY a, b ,c")
    assert query.group_by == ["a", "b", "c"]


def test_trailing_text_is_ignored():
    query = parse_query("SELECT avg(v) FROM t WINDOW 1m and more")
    assert query.group_by is None
    assert query.window.duration_ns == 60_000_000_000


def test_group_by_with_extra_space_is_not_recognised():
    query = parse_query("SELECT avg(v) FROM t WINDOW 1m GROUP  BY a")
    assert query.group_by is None


@pytest.mark.parametrize(
    "text",
    [
        "SELECT avg(v) FROM t WINDOW 5x",
        "SELECT avg(v) FROM t WINDOW 10min",
        "SELECT avg(v) FROM t WINDOW 5 m",
        "SELECT avg(v) FROM t",
        "SELECT avg(v) t WINDOW 5m",
        "SELECT FROM t WINDOW 5m",
        "SELECTavg(v) FROM t WINDOW 5m",
        "SELECT median(v) FROM t WINDOW 5m",
        "SELECT avg() FROM t WINDOW 5m",
        "SELECT avg(v) FROM my_table WINDOW 5m",
        "SELECT avg(v) FROM t WHERE a = '' WINDOW 5m",
        "SELECT avg(v) FROM t WHERE a = b WINDOW 5m",
        "",
    ],
)
def test_invalid_queries_raise(text):
    with pytest.raises(ParseError):
        parse_query(text)


def test_parse_error_reports_position():
    with pytest.raises(ParseError) as info:
        parse_query("SELECT avg(v) FROM t WINDOW 5x")
    assert info.value.position == len("SELECT avg(v) FROM t WINDOW 5x")


def test_window_amount_out_of_range():
    with pytest.raises(ParseError):
        parse_query(f"SELECT avg(v) FROM t WINDOW {2**64}s")