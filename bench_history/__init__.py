"""
Append-only benchmark history store.

Provides the schema for continuous-benchmarking history documents
(``window.BENCHMARK_DATA``), load/append/query/serialize operations, and
file and HTTP helpers for persisted histories.
"""
from bench_history.errors import HistoryError, HistoryFetchError, ParseError, ValidationError
from bench_history.schema import CommitInfo, Entry, HistoryDocument, Measurement, Person
from bench_history.store import (
    BenchmarkHistoryStore,
    MeasurementSeries,
    SeriesPoint,
    append,
    latest_entry,
    load,
    measurement_names,
    new_document,
    query,
    serialize,
    suite_names,
)

__all__ = [
    "BenchmarkHistoryStore",
    "CommitInfo",
    "Entry",
    "HistoryDocument",
    "HistoryError",
    "HistoryFetchError",
    "Measurement",
    "MeasurementSeries",
    "ParseError",
    "Person",
    "SeriesPoint",
    "ValidationError",
    "append",
    "latest_entry",
    "load",
    "measurement_names",
    "new_document",
    "query",
    "serialize",
    "suite_names",
]
