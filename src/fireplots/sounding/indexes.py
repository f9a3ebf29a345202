"""Fire weather indexes computed from a single sounding."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Tuple

import numpy as np

from .. import thermo
from ..types import AnalysisError
from .core import Sounding
from .parcel import Parcel, lift_parcel, mixed_layer_parcel, partition_cape

logger = logging.getLogger(__name__)

MAX_WARMING = 20.0
COARSE_STEP = 0.5
FINE_STEP = 0.05


def hot_dry_windy(snd: Sounding, layer_depth: float = 500.0) -> float:
    """Hot-Dry-Windy index (Srock et al. 2018).

    Maximum vapor pressure deficit (hPa) times maximum wind speed (m/s), both
    taken over the lowest ``layer_depth`` meters above ground.
    """
    elevation = snd.surface_elevation
    if elevation is None:
        raise AnalysisError("sounding has no surface elevation")
    mask = snd.valid_levels() & np.isfinite(snd.wind_speed)
    layer = mask & (snd.height <= elevation + layer_depth)
    if not layer.any():
        raise AnalysisError(f"no valid levels within {layer_depth:g} m of the surface")
    vpd = thermo.vapor_pressure(snd.temperature[layer]) - thermo.vapor_pressure(snd.dew_point[layer])
    ws = snd.wind_speed[layer] * thermo.KNOTS_TO_MS
    return float(np.max(vpd) * np.max(ws))


def _initiates(parcel: Parcel, snd: Sounding) -> bool:
    profile = lift_parcel(parcel, snd)
    b = profile.buoyancy
    below = profile.pressure >= profile.lcl_pressure
    above = ~below
    if not above.any() or not below.any():
        return False
    if np.any(b[below] < -1e-9):
        return False
    return bool(b[above][0] > 0.0)


def convective_parcel_initiation_energetics(snd: Sounding) -> Tuple[float, float, float, float]:
    """Warming needed for a surface plume to initiate moist convection.

    Returns ``(t0, dt0, e0, de)``: the parcel temperature at initiation, the
    warming of the mixed-layer parcel that gets it there, and the dry and wet
    energies (J/kg) of that parcel's ascent.
    """
    start = mixed_layer_parcel(snd)

    def warmed(dt: float) -> Parcel:
        return replace(start, temperature=start.temperature + dt)

    found = None
    for dt in np.arange(0.0, MAX_WARMING + COARSE_STEP / 2.0, COARSE_STEP):
        if _initiates(warmed(float(dt)), snd):
            found = float(dt)
            break
    if found is None:
        raise AnalysisError(f"no convective initiation with up to {MAX_WARMING:g} C of warming")

    if found > 0.0:
        for dt in np.arange(found - COARSE_STEP + FINE_STEP, found, FINE_STEP):
            if _initiates(warmed(float(dt)), snd):
                found = float(dt)
                break

    parcel = warmed(found)
    e0, de = partition_cape(lift_parcel(parcel, snd))
    return parcel.temperature, found, e0, de
