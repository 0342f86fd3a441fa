"""Columnar in-memory storage for time-series data points."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Sequence

__all__ = [
    "StorageError",
    "ColumnType",
    "Field",
    "RecordBatch",
    "TimeSeriesStore",
    "SCHEMA",
]


class StorageError(ValueError):
    """Raised when data does not fit a batch or store."""


class ColumnType(enum.Enum):
    TIMESTAMP_NS = "timestamp[ns]"
    UTF8 = "utf8"
    FLOAT64 = "float64"

    def coerce(self, value: Any) -> Any:
        """Return *value* as this column type, or raise StorageError."""
        if isinstance(value, bool):
            raise StorageError(f"{value!r} is not a valid {self.value} value")
        if self is ColumnType.TIMESTAMP_NS and isinstance(value, int):
            return value
        if self is ColumnType.FLOAT64 and isinstance(value, (int, float)):
            return float(value)
        if self is ColumnType.UTF8 and isinstance(value, str):
            return value
        raise StorageError(f"{value!r} is not a valid {self.value} value")


@dataclass(frozen=True)
class Field:
    name: str
    type: ColumnType
    nullable: bool = False


SCHEMA: tuple[Field, ...] = (
    Field("timestamp", ColumnType.TIMESTAMP_NS),
    Field("metric", ColumnType.UTF8),
    Field("value", ColumnType.FLOAT64),
    Field("tags", ColumnType.UTF8, nullable=True),
)


class RecordBatch:
    """An immutable set of equally long columns described by a schema."""

    __slots__ = ("_schema", "_columns")

    def __init__(self, schema: Sequence[Field], columns: Sequence[Iterable[Any]]) -> None:
        schema = tuple(schema)
        columns = tuple(tuple(column) for column in columns)
        if len(schema) != len(columns):
            raise StorageError(
                f"schema has {len(schema)} fields but {len(columns)} columns were given"
            )
        lengths = {len(column) for column in columns}
        if len(lengths) > 1:
            raise StorageError("all columns in a record batch must have the same length")
        self._schema = schema
        self._columns = tuple(
            self._check_column(spec, column) for spec, column in zip(schema, columns)
        )

    @staticmethod
    def _check_column(spec: Field, column: tuple[Any, ...]) -> tuple[Any, ...]:
        checked = []
        for value in column:
            if value is None:
                if not spec.nullable:
                    raise StorageError(f"column {spec.name!r} is not nullable")
                checked.append(None)
            else:
                checked.append(spec.type.coerce(value))
        return tuple(checked)

    @property
    def schema(self) -> tuple[Field, ...]:
        return self._schema

    @property
    def columns(self) -> tuple[tuple[Any, ...], ...]:
        return self._columns

    @property
    def num_rows(self) -> int:
        return len(self._columns[0]) if self._columns else 0

    def __len__(self) -> int:
        return self.num_rows

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordBatch):
            return NotImplemented
        return self._schema == other._schema and self._columns == other._columns

    def __hash__(self) -> int:
        return hash((self._schema, self._columns))

    def __repr__(self) -> str:
        names = [spec.name for spec in self._schema]
        return f"RecordBatch(fields={names}, rows={self.num_rows})"

    def column(self, index: int | str) -> tuple[Any, ...]:
        """Return a column by position or by field name."""
        if isinstance(index, str):
            for spec, column in zip(self._schema, self._columns):
                if spec.name == index:
                    return column
            raise StorageError(f"no column named {index!r}")
        try:
            return self._columns[index]
        except IndexError:
            raise StorageError(f"column index {index} out of range") from None

    def take(self, indices: Iterable[int]) -> "RecordBatch":
        """Return a new batch holding the rows at *indices*, in that order."""
        indices = list(indices)
        rows = self.num_rows
        for index in indices:
            if not 0 <= index < rows:
                raise StorageError(f"row index {index} out of range for {rows} rows")
        return RecordBatch(
            self._schema,
            [[column[index] for index in indices] for column in self._columns],
        )

    def rows(self) -> Iterator[dict[str, Any]]:
        """Yield each row as a mapping of field name to value."""
        names = [spec.name for spec in self._schema]
        for values in zip(*self._columns):
            yield dict(zip(names, values))


class TimeSeriesStore:
    """Thread-safe store of appended record batches."""

    def __init__(self) -> None:
        self._batches: list[RecordBatch] = []
        self._lock = threading.RLock()

    @property
    def schema(self) -> tuple[Field, ...]:
        return SCHEMA

    def __len__(self) -> int:
        with self._lock:
            return len(self._batches)

    def append(
        self,
        timestamps: Sequence[int],
        metrics: Sequence[str],
        values: Sequence[float],
        tags: Sequence[Optional[str]],
    ) -> RecordBatch:
        """Store the points as one new batch and return it."""
        batch = RecordBatch(SCHEMA, [timestamps, metrics, values, tags])
        with self._lock:
            self._batches.append(batch)
        return batch

    def query(self, start_time: int, end_time: int) -> list[RecordBatch]:
        """Return the batches holding any timestamp within ``[start_time, end_time]``."""
        with self._lock:
            batches = list(self._batches)
        return [
            batch
            for batch in batches
            if any(start_time <= ts <= end_time for ts in batch.column(0))
        ]