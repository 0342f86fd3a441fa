"""Query execution over a :class:`~tsql_engine.storage.TimeSeriesStore`."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Iterable, Sequence, Union

from .parser import Aggregation, AggregationKind, Query, WindowSpec
from .storage import SCHEMA, ColumnType, Field, RecordBatch, StorageError, TimeSeriesStore

__all__ = ["QueryError", "QueryEngine", "SCALAR_SCHEMA"]

_I64_MAX = 2**63 - 1
_MAX_CONCURRENT_AGGREGATIONS = 4

SCALAR_SCHEMA: tuple[Field, ...] = (
    Field("timestamp", ColumnType.TIMESTAMP_NS),
    Field("value", ColumnType.FLOAT64),
)

WindowLike = Union[WindowSpec, timedelta, int]


class QueryError(RuntimeError):
    """Raised when a query cannot be executed."""


def _window_nanos(window: WindowLike) -> int:
    if isinstance(window, WindowSpec):
        return window.duration_ns
    if isinstance(window, timedelta):
        return (window.days * 86_400 + window.seconds) * 1_000_000_000 + window.microseconds * 1000
    if isinstance(window, int) and not isinstance(window, bool):
        return window
    raise TypeError(f"unsupported window type: {type(window).__name__}")


class QueryEngine:
    """Runs parsed queries: windows the stored data, then aggregates it."""

    def __init__(self, store: TimeSeriesStore) -> None:
        self._store = store

    def get_store(self) -> TimeSeriesStore:
        """Return the store this engine reads from."""
        return self._store

    def execute(self, query: Query) -> list[RecordBatch]:
        """Run *query* and return one result batch per selected aggregation."""
        raw = self._store.query(0, _I64_MAX)
        windowed = self.apply_window(raw, query.window)
        if not query.select:
            return []
        with ThreadPoolExecutor(
            max_workers=min(_MAX_CONCURRENT_AGGREGATIONS, len(query.select))
        ) as pool:
            return list(
                pool.map(lambda agg: self.apply_aggregation(windowed, agg), query.select)
            )

    def apply_window(
        self, batches: Iterable[RecordBatch], window: WindowLike
    ) -> list[RecordBatch]:
        """Split each batch into runs whose timestamps lie within *window* of the run's start.

        A new run begins at the first point more than the window width after
        the current run's first point.
        """
        width = _window_nanos(window)
        windowed: list[RecordBatch] = []
        for batch in batches:
            timestamps = batch.column(0)
            if not timestamps:
                raise QueryError("cannot window an empty batch")
            current: list[int] = []
            window_start = timestamps[0]
            for index, ts in enumerate(timestamps):
                if ts - window_start > width:
                    if current:
                        windowed.append(batch.take(current))
                    current = [index]
                    window_start = ts
                else:
                    current.append(index)
            if current:
                windowed.append(batch.take(current))
        return windowed

    def apply_aggregation(
        self, batches: Sequence[RecordBatch], aggregation: Aggregation
    ) -> RecordBatch:
        """Aggregate the value column of all *batches* into a single-row batch.

        Averages keep the full schema (timestamp, metric, value, tags); the
        other aggregations yield a ``(timestamp, value)`` batch.  The timestamp
        (and metric) come from the first row of the first batch.
        """
        batches = list(batches)
        if not batches or batches[0].num_rows == 0:
            raise QueryError("no data points to aggregate")
        first = batches[0]
        values = [value for batch in batches for value in batch.column(2)]
        timestamp = first.column(0)[0]
        kind = aggregation.kind

        if kind is AggregationKind.AVG:
            avg = sum(values) / len(values) if values else 0.0
            return self._batch(SCHEMA, [[timestamp], [first.column(1)[0]], [avg], [None]])
        if kind is AggregationKind.SUM:
            result = float(sum(values))
        elif kind is AggregationKind.COUNT:
            result = float(len(values))
        elif kind is AggregationKind.MIN:
            result = min(values, default=float("inf"))
        elif kind is AggregationKind.MAX:
            result = max(values, default=float("-inf"))
        else:
            raise QueryError(f"unsupported aggregation: {kind!r}")
        return self._batch(SCALAR_SCHEMA, [[timestamp], [result]])

    @staticmethod
    def _batch(schema: Sequence[Field], columns: list[list[object]]) -> RecordBatch:
        try:
            return RecordBatch(schema, columns)
        except StorageError as exc:
            raise QueryError(str(exc)) from exc