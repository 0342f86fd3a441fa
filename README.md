# tsql-engine

An in-memory time series store with a small SQL-like query language and a
JSON HTTP API built on Flask.

## Installation

```
pip install .
```

To run the tests, install the test extra and run pytest:

```
pip install .[test]
pytest
```

## Running the server

```
tsql-engine
```

This starts the HTTP API on `127.0.0.1:8080` over a fresh, empty store.
`--host` and `--port` choose another address and port:

```
tsql-engine --host 0.0.0.0 --port 9000
```

### Endpoints

- `GET /health` returns a health status.
- `POST /ingest` takes a JSON list of data points:

  ```json
  [
    {"timestamp": 1700000000000000000, "metric": "cpu", "value": 0.75, "tags": "host=server1"},
    {"timestamp": 1700000000000001000, "metric": "cpu", "value": 0.85}
  ]
  ```

  Timestamps are integers in nanoseconds, `metric` is a string, `value` is a
  number and `tags` is an optional string. A malformed body is answered with
  status 400. Each request is stored as one batch.

- `POST /query` takes a query, and may also take a time range:

  ```json
  {"query": "SELECT avg(value) FROM metrics WINDOW 1m"}
  ```

  If both `start_time` and `end_time` are given, as integers in nanoseconds,
  the window length is set to `end_time - start_time` in place of the one in
  the query. A query that does not parse is answered with status 400; one that
  cannot be run (for example because the store is empty) with status 500.

Every response is a JSON object with the keys `success`, `message` and `data`.
A query's rows are returned under `data.results`, one list of rows per
aggregation, with every value given as a string: timestamps in the form
`2023-11-14T22:13:20.000001`, numbers as floats, missing tags as an empty
string.

## Query language

```
SELECT <agg>(<field>)[, ...] FROM <table>
  [WHERE <field> <op> '<value>']
  WINDOW <n><unit>
  [GROUP BY <field>[, ...]]
```

- Aggregations: `avg`, `sum`, `count`, `min`, `max`. Keywords are not case-sensitive.
- Operators: `=`, `>`, `<`, `>=`, `<=`.
- Window units: `s`, `m`, `h`, `d`.
- Text after the last recognised clause is ignored.

A query runs over every stored point. Each stored batch is split into
consecutive windows: a new window begins at the first point more than the
window length after the current window's first point. Each aggregation is
then computed over the values of all those windows together and yields a
single row. `avg` returns the columns `timestamp`, `metric`, `value` and
`tags`; the others return `timestamp` and `value`. The timestamp (and metric)
are those of the first point.

## Using it as a library

```python
from tsql_engine.parser import parse_query
from tsql_engine.storage import TimeSeriesStore
from tsql_engine.engine import QueryEngine
from tsql_engine.api import process_batches

store = TimeSeriesStore()
store.append([0, 1_000], ["cpu", "cpu"], [0.75, 0.85], ["host=server1", None])

engine = QueryEngine(store)
query = parse_query("SELECT avg(cpu) FROM metrics WINDOW 60s")
batches = engine.execute(query)
rows = process_batches(batches)
```

- `tsql_engine.parser`: `parse_query` returns a `Query` (`select`, `source`,
  `window`, `filter`, `group_by`) and raises `ParseError` when a query is
  malformed.
- `tsql_engine.storage`: `TimeSeriesStore` with `append` and `query`, and the
  immutable `RecordBatch` with `column`, `take` and `rows`. Bad data raises
  `StorageError`.
- `tsql_engine.engine`: `QueryEngine` with `execute`, `apply_window` and
  `apply_aggregation`; `execute` raises `QueryError` when a query cannot be run.
- `tsql_engine.api`: `create_app` builds the Flask application, `serve` runs it.

## Limitations

- Data lives in memory only and is lost when the process stops; there is no
  persistence.
- The `FROM` table, the field inside an aggregation, the `WHERE` condition and
  `GROUP BY` are parsed but not applied when a query runs: every aggregation
  reads the `value` column of all stored points.