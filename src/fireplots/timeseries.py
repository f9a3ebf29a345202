"""Time-series containers for model runs.

An ``EnsembleList`` pairs each model initialization time with some data.
When that data is a ``TimeSeries`` the list is an ensemble of runs
(``EnsembleSeries``), which can be merged into a single ``MergedSeries``
by keeping, for each valid time, the run with the shortest lead time.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Site:
    station_num: Optional[int] = None
    id: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    notes: Optional[str] = None
    time_zone: Optional[int] = None

    @property
    def label(self) -> str:
        """Human readable name for titles."""
        return self.name or self.id or str(self.station_num)

    @property
    def file_id(self) -> str:
        """Identifier used in output file names."""
        return self.id or self.name or str(self.station_num)


@dataclass(frozen=True)
class MetaData:
    site: Site
    model: str
    start: datetime
    now: datetime
    end: datetime


def valid_time_of(item: Any) -> Optional[datetime]:
    # a list of items shares the valid time of its first entry
    if isinstance(item, (list, tuple)):
        return valid_time_of(item[0]) if item else None
    return getattr(item, "valid_time", None)


def lead_time_of(item: Any) -> Optional[int]:
    return getattr(item, "lead_time", None)


@dataclass
class TimeSeries(Generic[T]):
    """A list of items sorted by valid time."""

    data: List[T] = field(default_factory=list)

    def __iter__(self) -> Iterator[T]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def is_empty(self) -> bool:
        return not self.data


@dataclass
class EnsembleList(Generic[T]):
    meta: MetaData
    data: List[Tuple[datetime, T]] = field(default_factory=list)

    def filter_map(self, func: Callable[[T], Optional[U]]) -> "EnsembleList[U]":
        """Map each member, dropping those mapped to None."""
        out: List[Tuple[datetime, U]] = []
        for init_time, item in self.data:
            mapped = func(item)
            if mapped is not None:
                out.append((init_time, mapped))
        return EnsembleList(meta=self.meta, data=out)

    def is_empty(self) -> bool:
        return not self.data

    def filter_map_inner(self, func: Callable[[Any], Optional[U]]) -> "EnsembleList[TimeSeries[U]]":
        """Map the items inside each member series.

        Members whose mapped series ends up empty are dropped.
        """
        out: List[Tuple[datetime, TimeSeries[U]]] = []
        for init_time, series in self.data:
            inner = [m for m in (func(v) for v in series) if m is not None]
            if inner:
                out.append((init_time, TimeSeries(inner)))
        return EnsembleList(meta=self.meta, data=out)

    def merge(self) -> "MergedSeries[Any]":
        """Collapse an ensemble of series into one series.

        For each valid time the item with the shortest lead time wins; on a
        tie the first one seen is kept. Items without a valid time or lead
        time are dropped.
        """
        pool: Dict[datetime, Any] = {}
        for _init_time, series in self.data:
            for item in series:
                vt = valid_time_of(item)
                lt = lead_time_of(item)
                if vt is None or lt is None:
                    continue
                current = pool.get(vt)
                if current is None or lt < lead_time_of(current):
                    pool[vt] = item
        merged = [pool[vt] for vt in sorted(pool)]
        return MergedSeries(meta=self.meta, data=TimeSeries(merged))


# An ensemble whose members are time series of model output.
EnsembleSeries = EnsembleList


@dataclass
class MergedSeries(Generic[T]):
    """A single series, either one model run or a merged ensemble."""

    meta: MetaData
    data: TimeSeries[T] = field(default_factory=TimeSeries)

    def filter_map(self, func: Callable[[T], Optional[U]]) -> "MergedSeries[U]":
        mapped = [m for m in (func(v) for v in self.data) if m is not None]
        return MergedSeries(meta=self.meta, data=TimeSeries(mapped))

    def is_empty(self) -> bool:
        return self.data.is_empty()
