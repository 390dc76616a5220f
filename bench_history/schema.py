"""Pydantic models for benchmark history documents.

Attribute names are snake_case; the persisted field names (``lastUpdate``,
``repoUrl``) are kept as aliases and only used at the serialization boundary.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Optional, Union

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
)

Number = Union[StrictInt, StrictFloat]

_AWARE_DATETIME = TypeAdapter(AwareDatetime)
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]")

_RANGE_NUMBER = re.compile(r"[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


class Person(BaseModel):
    """Author or committer of a measured commit."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    email: StrictStr
    name: StrictStr
    username: StrictStr


class CommitInfo(BaseModel):
    """Provenance of the code version a run measured."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    author: Person
    committer: Person
    distinct: StrictBool
    id: StrictStr
    message: StrictStr
    timestamp: StrictStr
    tree_id: StrictStr
    url: StrictStr

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        if not _ISO_DATE_PREFIX.match(value):
            raise ValueError(f"timestamp is not ISO-8601: {value!r}")
        try:
            _AWARE_DATETIME.validate_python(value)
        except ValidationError as exc:
            raise ValueError(f"timestamp is not ISO-8601 with a UTC offset: {value!r}") from exc
        return value

    @property
    def short_id(self) -> str:
        return self.id[:7]

    def committed_at(self) -> datetime:
        return _AWARE_DATETIME.validate_python(self.timestamp)


class Measurement(BaseModel):
    """One named metric from a run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: StrictStr
    value: Number
    range: StrictStr
    unit: StrictStr

    @field_validator("value")
    @classmethod
    def _check_value(cls, value: Union[int, float]) -> Union[int, float]:
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("value must be finite")
        if value < 0:
            raise ValueError("value must be non-negative")
        return value

    def error_bound(self) -> Optional[float]:
        """Numeric part of ``range`` ("± 1717" -> 1717.0), or None."""
        match = _RANGE_NUMBER.search(self.range)
        if match is None:
            return None
        return abs(float(match.group(0)))


class Entry(BaseModel):
    """One recorded benchmark run.

    Measurement name uniqueness is checked by the loader and by append rather
    than here, so that a caller-built entry with duplicates reaches append and
    is rejected there with the store's own error.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    commit: CommitInfo
    date: StrictInt = Field(ge=0)
    tool: StrictStr
    benches: tuple[Measurement, ...] = Field(min_length=1)

    def measurement(self, name: str) -> Optional[Measurement]:
        for bench in self.benches:
            if bench.name == name:
                return bench
        return None

    def duplicate_names(self) -> list[str]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for bench in self.benches:
            if bench.name in seen and bench.name not in duplicates:
                duplicates.append(bench.name)
            seen.add(bench.name)
        return duplicates


class HistoryDocument(BaseModel):
    """Top-level history: suite name -> chronological list of entries."""

    model_config = ConfigDict(extra="forbid")

    last_update: StrictInt = Field(alias="lastUpdate", ge=0)
    repo_url: StrictStr = Field(alias="repoUrl")
    entries: dict[str, list[Entry]]

    def to_wire(self) -> dict:
        """Plain dict using the persisted field names and order."""
        return self.model_dump(mode="json", by_alias=True)
