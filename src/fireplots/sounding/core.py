from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import numpy as np

from ..types import FloatArray


@dataclass
class StationInfo:
    station_num: Optional[int] = None
    station_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None


@dataclass
class Sounding:
    """A single forecast profile, ordered from the surface upward.

    Wind speed is in knots and height in meters above sea level. Missing
    values are NaN.
    """

    station: StationInfo
    valid_time: Optional[datetime]
    lead_time: Optional[int]
    pressure: FloatArray
    temperature: FloatArray
    dew_point: FloatArray
    wind_direction: FloatArray = field(default_factory=lambda: np.empty(0))
    wind_speed: FloatArray = field(default_factory=lambda: np.empty(0))
    height: FloatArray = field(default_factory=lambda: np.empty(0))

    def __post_init__(self) -> None:
        n = len(self.pressure)
        for name in ("temperature", "dew_point", "wind_direction", "wind_speed", "height"):
            arr = np.asarray(getattr(self, name), dtype=np.float64)
            if arr.size == 0:
                arr = np.full(n, np.nan)
            if arr.shape != (n,):
                raise ValueError(f"{name} has {arr.size} levels, pressure has {n}")
            setattr(self, name, arr)
        self.pressure = np.asarray(self.pressure, dtype=np.float64)

    @property
    def surface_elevation(self) -> Optional[float]:
        elev = self.station.elevation
        if elev is not None and np.isfinite(elev):
            return float(elev)
        finite = self.height[np.isfinite(self.height)]
        return float(finite[0]) if finite.size else None

    def valid_levels(self) -> np.ndarray:
        return (
            np.isfinite(self.pressure)
            & np.isfinite(self.temperature)
            & np.isfinite(self.dew_point)
            & np.isfinite(self.height)
        )
