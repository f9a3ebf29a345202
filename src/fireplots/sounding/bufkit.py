"""Parser for the upper-air section of Bufkit text files."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from ..types import BufkitParseError
from .core import Sounding, StationInfo

logger = logging.getLogger(__name__)

MISSING = -9999.0
REQUIRED_COLUMNS = ("PRES", "TMPC", "DWPC")

_SNPARM_RE = re.compile(r"^\s*SNPARM\s*=\s*(\S+)", re.MULTILINE)
_SURFACE_RE = re.compile(r"^\s*STN\s+YYMMDD/HHMM", re.MULTILINE)
_BLOCK_RE = re.compile(r"^\s*STID\s*=", re.MULTILINE)
# a key whose value is another key (e.g. "STID = STNM = 1") has no value
_PAIR_RE = re.compile(r"([A-Z0-9]+)\s*=\s*(?![A-Z0-9]+\s*=)(\S+)")
_TIME_RE = re.compile(r"^(\d{2})(\d{2})(\d{2})/(\d{2})(\d{2})$")


def _parse_time(raw: Optional[str]) -> Optional[datetime]:
    """YYMMDD/HHMM, always in the 2000s."""
    m = _TIME_RE.match(raw or "")
    if m is None:
        logger.debug("Unrecognized Bufkit TIME value: %s", raw)
        return None
    yy, mo, dd, hh, mi = (int(g) for g in m.groups())
    try:
        return datetime(2000 + yy, mo, dd, hh, mi)
    except ValueError:
        logger.debug("Unrecognized Bufkit TIME value: %s", raw)
        return None


def _to_float(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        val = float(raw)
    except ValueError:
        return None
    return None if val == MISSING else val


def _parse_block(block: str, columns: List[str]) -> Sounding:
    tokens = block.split()
    n = len(columns)
    start = None
    for i in range(len(tokens) - n + 1):
        if tokens[i:i + n] == columns:
            start = i
            break
    if start is None:
        raise BufkitParseError("sounding block has no column header")

    header: Dict[str, str] = dict(_PAIR_RE.findall(" ".join(tokens[:start])))
    values = tokens[start + n:]
    if len(values) % n != 0:
        raise BufkitParseError(
            f"sounding block has {len(values)} values, not a multiple of {n} columns"
        )
    try:
        table = np.array([float(v) for v in values], dtype=np.float64).reshape(-1, n)
    except ValueError as e:
        raise BufkitParseError(f"non-numeric value in sounding block: {e}") from e
    table[table == MISSING] = np.nan

    stnm = _to_float(header.get("STNM"))
    station = StationInfo(
        station_num=int(stnm) if stnm is not None else None,
        station_id=header.get("STID"),
        latitude=_to_float(header.get("SLAT")),
        longitude=_to_float(header.get("SLON")),
        elevation=_to_float(header.get("SELV")),
    )
    stim = _to_float(header.get("STIM"))

    def col(name: str) -> np.ndarray:
        if name in columns:
            return table[:, columns.index(name)]
        return np.full(table.shape[0], np.nan)

    snd = Sounding(
        station=station,
        valid_time=_parse_time(header.get("TIME")),
        lead_time=int(stim) if stim is not None else None,
        pressure=col("PRES"),
        temperature=col("TMPC"),
        dew_point=col("DWPC"),
        wind_direction=col("DRCT"),
        wind_speed=col("SKNT"),
        height=col("HGHT"),
    )
    # surface first
    order = np.argsort(-np.nan_to_num(snd.pressure, nan=-np.inf), kind="stable")
    if not np.array_equal(order, np.arange(order.size)):
        for name in ("pressure", "temperature", "dew_point", "wind_direction", "wind_speed", "height"):
            setattr(snd, name, getattr(snd, name)[order])
    return snd


def parse_bufkit(text: str) -> List[Sounding]:
    """Parse every sounding in a Bufkit file.

    Raises BufkitParseError if the text is not a usable Bufkit file.
    """
    m = _SNPARM_RE.search(text)
    if m is None:
        raise BufkitParseError("no SNPARM line found")
    columns = [c for c in m.group(1).split(";") if c]
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise BufkitParseError(f"SNPARM lacks required columns: {', '.join(missing)}")

    surface = _SURFACE_RE.search(text)
    upper_air = text[:surface.start()] if surface else text

    starts = [mm.start() for mm in _BLOCK_RE.finditer(upper_air)]
    if not starts:
        raise BufkitParseError("no soundings found")
    bounds = starts[1:] + [len(upper_air)]
    soundings = [_parse_block(upper_air[a:b], columns) for a, b in zip(starts, bounds)]
    logger.debug("Parsed %d soundings", len(soundings))
    return soundings
