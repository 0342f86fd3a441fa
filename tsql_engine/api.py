"""HTTP interface: health check, data ingestion and query execution."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from flask import Flask, jsonify, request

from .engine import QueryEngine, QueryError
from .parser import ParseError, WindowSpec, parse_query
from .storage import ColumnType, RecordBatch, StorageError

__all__ = ["process_batches", "create_app", "serve"]

_EPOCH = datetime(1970, 1, 1)
_NANOS_PER_SECOND = 1_000_000_000
_U64_MASK = 2**64 - 1


def _format_timestamp(nanos: int) -> str:
    seconds, fraction = divmod(nanos, _NANOS_PER_SECOND)
    text = (_EPOCH + timedelta(seconds=seconds)).strftime("%Y-%m-%dT%H:%M:%S")
    if fraction == 0:
        return text
    if fraction % 1_000_000 == 0:
        return f"{text}.{fraction // 1_000_000:03d}"
    if fraction % 1_000 == 0:
        return f"{text}.{fraction // 1_000:06d}"
    return f"{text}.{fraction:09d}"


def _format_value(column_type: ColumnType, value: Any) -> str:
    if value is None:
        return ""
    if column_type is ColumnType.TIMESTAMP_NS:
        return _format_timestamp(value)
    if column_type is ColumnType.FLOAT64:
        return repr(float(value))
    return str(value)


def process_batches(batches: Iterable[RecordBatch]) -> list[list[dict[str, str]]]:
    """Render each batch as a list of rows mapping field names to display strings."""
    return [
        [
            {
                spec.name: _format_value(spec.type, column[row])
                for spec, column in zip(batch.schema, batch.columns)
            }
            for row in range(batch.num_rows)
        ]
        for batch in batches
    ]


def _response(success: bool, message: Optional[str], data: Any = None, status: int = 200):
    return jsonify({"success": success, "message": message, "data": data}), status


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_points(body: Any) -> tuple[list[int], list[str], list[float], list[Optional[str]]]:
    if not isinstance(body, list):
        raise ValueError("expected a JSON array of data points")
    timestamps: list[int] = []
    metrics: list[str] = []
    values: list[float] = []
    tags: list[Optional[str]] = []
    for position, point in enumerate(body):
        if not isinstance(point, dict):
            raise ValueError(f"data point {position} is not an object")
        timestamp = point.get("timestamp")
        metric = point.get("metric")
        value = point.get("value")
        tag = point.get("tags")
        if not _is_int(timestamp):
            raise ValueError(f"data point {position}: 'timestamp' must be an integer")
        if not isinstance(metric, str):
            raise ValueError(f"data point {position}: 'metric' must be a string")
        if not _is_number(value):
            raise ValueError(f"data point {position}: 'value' must be a number")
        if tag is not None and not isinstance(tag, str):
            raise ValueError(f"data point {position}: 'tags' must be a string or null")
        timestamps.append(timestamp)
        metrics.append(metric)
        values.append(float(value))
        tags.append(tag)
    return timestamps, metrics, values, tags


def create_app(engine: QueryEngine) -> Flask:
    """Build the web application serving *engine*."""
    app = Flask(__name__)

    @app.get("/health")
    def health_check():
        return _response(True, "Service is healthy")

    @app.post("/ingest")
    def ingest_data():
        try:
            timestamps, metrics, values, tags = _parse_points(request.get_json(silent=True))
        except ValueError as exc:
            return _response(False, f"Invalid data points: {exc}", status=400)
        try:
            engine.get_store().append(timestamps, metrics, values, tags)
        except StorageError as exc:
            return _response(False, f"Failed to ingest data: {exc}", status=500)
        return _response(True, f"Successfully ingested {len(timestamps)} data points")

    @app.post("/query")
    def execute_query():
        body = request.get_json(silent=True)
        if not isinstance(body, dict) or not isinstance(body.get("query"), str):
            return _response(False, "Invalid query request: 'query' must be a string", status=400)
        start, end = body.get("start_time"), body.get("end_time")
        for name, bound in (("start_time", start), ("end_time", end)):
            if bound is not None and not _is_int(bound):
                return _response(
                    False, f"Invalid query request: '{name}' must be an integer", status=400
                )
        try:
            query = parse_query(body["query"])
        except ParseError as exc:
            return _response(False, f"Failed to parse query: {exc}", status=400)
        if start is not None and end is not None:
            query.window = WindowSpec((end - start) & _U64_MASK)
        try:
            batches = engine.execute(query)
        except (QueryError, StorageError) as exc:
            return _response(False, f"Query execution failed: {exc}", status=500)
        return _response(
            True, "Query executed successfully", {"results": process_batches(batches)}
        )

    return app


def serve(engine: QueryEngine, host: str = "127.0.0.1", port: int = 8080) -> None:
    """Run the HTTP server for *engine* until interrupted."""
    create_app(engine).run(host=host, port=port)