"""Per-sounding analysis producing the values drawn in the templates."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional

import numpy as np

from .sounding import (
    Sounding,
    convective_parcel_initiation_energetics,
    hot_dry_windy,
    lift_parcel,
    mixed_layer_parcel,
    parse_bufkit,
    partition_cape,
)
from .timeseries import TimeSeries
from .types import AnalysisError, BufkitParseError

logger = logging.getLogger(__name__)

NUM_DT = 60
MAX_DT = 15.0


@dataclass
class AnalyzedData:
    valid_time: datetime
    lead_time: int
    hdw: float
    t0: float
    dt0: float
    e0: float
    de: float


@dataclass
class CapePartition:
    """Dry and wet CAPE (J/kg) for the mixed-layer parcel warmed by ``dt``."""

    valid_time: datetime
    dt: float
    dry: float
    wet: float


def parse_sounding(text: str, start: datetime, end: datetime) -> Optional[TimeSeries[Sounding]]:
    """Parse Bufkit text, keeping soundings valid in ``[start, end]``."""
    try:
        soundings = parse_bufkit(text)
    except BufkitParseError as e:
        logger.warning("Skipping unparseable Bufkit data: %s", e)
        return None
    kept = [
        snd for snd in soundings
        if snd.valid_time is not None and start <= snd.valid_time <= end
    ]
    if not kept:
        return None
    kept.sort(key=lambda snd: snd.valid_time)
    return TimeSeries(kept)


def analyze(snd: Sounding) -> Optional[AnalyzedData]:
    if snd.valid_time is None or snd.lead_time is None:
        return None

    try:
        hdw = hot_dry_windy(snd)
    except AnalysisError as e:
        logger.debug("HDW failed at %s: %s", snd.valid_time, e)
        hdw = float("nan")

    try:
        t0, dt0, e0, de = convective_parcel_initiation_energetics(snd)
    except AnalysisError as e:
        logger.debug("Initiation energetics failed at %s: %s", snd.valid_time, e)
        t0 = dt0 = e0 = de = float("nan")

    return AnalyzedData(
        valid_time=snd.valid_time,
        lead_time=int(snd.lead_time),
        hdw=hdw,
        t0=t0,
        dt0=dt0,
        e0=e0,
        de=de,
    )


def analyze_cape_partitions(snd: Sounding) -> Optional[List[CapePartition]]:
    """Dry/wet CAPE for the mixed-layer parcel warmed from 0 to 15 C."""
    if snd.valid_time is None:
        return None
    try:
        start = mixed_layer_parcel(snd)
    except AnalysisError as e:
        logger.debug("No mixed layer parcel at %s: %s", snd.valid_time, e)
        return None

    parts: List[CapePartition] = []
    for i in range(NUM_DT + 1):
        dt = MAX_DT / NUM_DT * i
        parcel = replace(start, temperature=start.temperature + dt)
        try:
            dry, wet = partition_cape(lift_parcel(parcel, snd))
        except AnalysisError:
            dry = wet = np.nan
        parts.append(CapePartition(valid_time=snd.valid_time, dt=dt, dry=float(dry), wet=float(wet)))
    return parts
