"""Load, append, query and serialize benchmark history documents.

Usage:
    from bench_history.store import load, append, query, serialize

    document = load(Path("data.js").read_text())
    append(document, "Benchmark", entry)
    for point in query(document, "Benchmark", "map_put"):
        print(point.date, point.value, point.unit)
    Path("data.js").write_text(serialize(document, wrapper=True))
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Mapping
from typing import Any, Iterator, NamedTuple, Optional, Union

from pydantic import ValidationError as SchemaError

from .errors import ParseError, ValidationError
from .schema import Entry, HistoryDocument

logger = logging.getLogger(__name__)

WRAPPER_PREFIX = "window.BENCHMARK_DATA = "

_WRAPPER_PATTERN = re.compile(r"^\s*window\.BENCHMARK_DATA\s*=\s*")


class SeriesPoint(NamedTuple):
    date: int
    value: Union[int, float]
    range: str
    unit: str


class MeasurementSeries:
    """Lazy view of one measurement across a suite's entries.

    The suite's entries are captured when the series is created; each
    iteration walks them again, so the series can be consumed repeatedly and
    later appends do not show up in it.
    """

    def __init__(self, entries: tuple[Entry, ...], measurement_name: str):
        self._entries = entries
        self.measurement_name = measurement_name

    def __iter__(self) -> Iterator[SeriesPoint]:
        for entry in self._entries:
            bench = entry.measurement(self.measurement_name)
            if bench is None:
                continue
            yield SeriesPoint(entry.date, bench.value, bench.range, bench.unit)

    def values(self) -> list[Union[int, float]]:
        return [point.value for point in self]

    def __repr__(self) -> str:
        return (
            f"MeasurementSeries(name={self.measurement_name!r}, "
            f"entries={len(self._entries)})"
        )


def _format_schema_error(exc: SchemaError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location or '<root>'}: {error.get('msg')}")
    return "; ".join(problems)


def _strip_wrapper(text: str) -> str:
    match = _WRAPPER_PATTERN.match(text)
    if match is None:
        return text
    body = text[match.end():].rstrip()
    if body.endswith(";"):
        body = body[:-1]
    return body


def new_document(repo_url: str, last_update: int = 0) -> HistoryDocument:
    """Create an empty history for ``repo_url``."""
    return HistoryDocument(lastUpdate=last_update, repoUrl=repo_url, entries={})


def load(source: Union[str, bytes]) -> HistoryDocument:
    """Parse serialized history text into a HistoryDocument.

    Accepts plain JSON or the ``window.BENCHMARK_DATA = {...}`` script form.

    Raises:
        ParseError: If the text is not JSON, does not match the schema, or an
            entry lists the same measurement name twice.
    """
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseError(f"History is not valid UTF-8: {exc}") from exc
    if not isinstance(source, str):
        raise ParseError(f"Cannot load history from {type(source).__name__}")

    body = _strip_wrapper(source.lstrip("\ufeff"))
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ParseError(f"History is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError(f"History must be a JSON object, got {type(data).__name__}")

    try:
        document = HistoryDocument.model_validate(data)
    except SchemaError as exc:
        raise ParseError(f"History does not match schema: {_format_schema_error(exc)}") from exc

    for suite_name, entries in document.entries.items():
        previous_date: Optional[int] = None
        for index, entry in enumerate(entries):
            duplicates = entry.duplicate_names()
            if duplicates:
                raise ParseError(
                    f"entries.{suite_name}.{index}: duplicate measurement names {duplicates}"
                )
            if previous_date is not None and entry.date < previous_date:
                logger.warning(
                    f"Suite '{suite_name}' entry {index} is dated before its predecessor "
                    f"({entry.date} < {previous_date})"
                )
            previous_date = entry.date
            if entry.date > document.last_update:
                logger.warning(
                    f"Suite '{suite_name}' entry {index} is newer than lastUpdate "
                    f"({entry.date} > {document.last_update})"
                )

    logger.debug(
        f"Loaded history for {document.repo_url}: "
        f"{sum(len(entries) for entries in document.entries.values())} entries "
        f"in {len(document.entries)} suites"
    )
    return document


def serialize(document: HistoryDocument, *, wrapper: bool = False) -> str:
    """Canonical text form of ``document``; ``load`` reads it back unchanged."""
    text = json.dumps(document.to_wire(), indent=2, ensure_ascii=False)
    if wrapper:
        return WRAPPER_PREFIX + text
    return text


def _coerce_entry(entry: Union[Entry, Mapping[str, Any]]) -> Entry:
    if isinstance(entry, Entry):
        return entry
    if isinstance(entry, Mapping):
        try:
            return Entry.model_validate(dict(entry))
        except SchemaError as exc:
            raise ValidationError(f"Entry does not match schema: {_format_schema_error(exc)}") from exc
    raise ValidationError(f"Cannot append {type(entry).__name__} as an entry")


def append(
    document: HistoryDocument,
    suite_name: str,
    entry: Union[Entry, Mapping[str, Any]],
) -> Entry:
    """Append ``entry`` to ``document.entries[suite_name]``.

    The document is left untouched when validation fails. The same commit and
    date may be appended twice; callers that care must check first.

    Returns:
        The appended Entry.

    Raises:
        ValidationError: If the suite name is empty, the entry is malformed,
            its date precedes the suite's last entry, or two of its
            measurements share a name.
    """
    if not isinstance(suite_name, str) or not suite_name:
        raise ValidationError("Suite name must be a non-empty string")

    entry = _coerce_entry(entry)

    duplicates = entry.duplicate_names()
    if duplicates:
        raise ValidationError(f"Entry has duplicate measurement names: {duplicates}")

    existing = document.entries.get(suite_name)
    if existing:
        last_date = existing[-1].date
        if entry.date < last_date:
            raise ValidationError(
                f"Entry date {entry.date} precedes last entry date {last_date} "
                f"in suite '{suite_name}'"
            )

    document.entries.setdefault(suite_name, []).append(entry)
    document.last_update = max(document.last_update, entry.date)
    logger.info(
        f"Appended {entry.commit.short_id} to '{suite_name}' "
        f"({len(entry.benches)} measurements)"
    )
    return entry


def query(document: HistoryDocument, suite_name: str, measurement_name: str) -> MeasurementSeries:
    """Series of (date, value, range, unit) for one measurement, oldest first.

    Unknown suites or measurement names give an empty series.
    """
    entries = tuple(document.entries.get(suite_name, ()))
    return MeasurementSeries(entries, measurement_name)


def suite_names(document: HistoryDocument) -> list[str]:
    return list(document.entries)


def measurement_names(document: HistoryDocument, suite_name: str) -> list[str]:
    """Measurement names seen in a suite, in first-seen order."""
    names: list[str] = []
    for entry in document.entries.get(suite_name, ()):
        for bench in entry.benches:
            if bench.name not in names:
                names.append(bench.name)
    return names


def latest_entry(document: HistoryDocument, suite_name: str) -> Optional[Entry]:
    entries = document.entries.get(suite_name)
    return entries[-1] if entries else None


class BenchmarkHistoryStore:
    """Thread-safe holder for one history document.

    Appends are serialized by a lock. Readers work on a copy taken under the
    same lock, so a query never observes a half-applied append.

    Attributes:
        document: The live document. Prefer ``snapshot()`` for reading.
    """

    def __init__(self, document: HistoryDocument):
        self.document = document
        self._lock = threading.Lock()

    @classmethod
    def from_text(cls, source: Union[str, bytes]) -> "BenchmarkHistoryStore":
        return cls(load(source))

    @classmethod
    def empty(cls, repo_url: str) -> "BenchmarkHistoryStore":
        return cls(new_document(repo_url))

    def append(self, suite_name: str, entry: Union[Entry, Mapping[str, Any]]) -> Entry:
        with self._lock:
            return append(self.document, suite_name, entry)

    def snapshot(self) -> HistoryDocument:
        """Copy of the document that later appends do not affect."""
        with self._lock:
            return HistoryDocument(
                lastUpdate=self.document.last_update,
                repoUrl=self.document.repo_url,
                entries={name: list(entries) for name, entries in self.document.entries.items()},
            )

    def query(self, suite_name: str, measurement_name: str) -> MeasurementSeries:
        with self._lock:
            entries = tuple(self.document.entries.get(suite_name, ()))
        return MeasurementSeries(entries, measurement_name)

    def suites(self) -> list[str]:
        with self._lock:
            return suite_names(self.document)

    def latest(self, suite_name: str) -> Optional[Entry]:
        with self._lock:
            return latest_entry(self.document, suite_name)

    def serialize(self, *, wrapper: bool = False) -> str:
        return serialize(self.snapshot(), wrapper=wrapper)
