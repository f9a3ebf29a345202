from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .. import thermo
from ..types import AnalysisError, FloatArray
from .core import Sounding


@dataclass(frozen=True)
class Parcel:
    temperature: float
    dew_point: float
    pressure: float


@dataclass
class ParcelProfile:
    """Result of lifting a parcel through a sounding.

    ``parcel_tv`` follows the pseudo-adiabat above the LCL, ``dry_parcel_tv``
    keeps rising dry-adiabatically with no condensation. All virtual
    temperatures are in Kelvin.
    """

    pressure: FloatArray
    height: FloatArray
    parcel_tv: FloatArray
    dry_parcel_tv: FloatArray
    env_tv: FloatArray
    lcl_pressure: float
    lcl_height: float

    @property
    def buoyancy(self) -> FloatArray:
        return thermo.G * (self.parcel_tv - self.env_tv) / self.env_tv

    @property
    def dry_buoyancy(self) -> FloatArray:
        return thermo.G * (self.dry_parcel_tv - self.env_tv) / self.env_tv


def _usable(snd: Sounding):
    mask = snd.valid_levels()
    return snd.pressure[mask], snd.temperature[mask], snd.dew_point[mask], snd.height[mask]


def mixed_layer_parcel(snd: Sounding, depth: float = 100.0) -> Parcel:
    """Parcel with the mean potential temperature and mixing ratio of the
    lowest ``depth`` hPa, placed at the surface pressure."""
    p, t, td, _ = _usable(snd)
    if p.size == 0:
        raise AnalysisError("sounding has no usable levels")
    p_sfc = float(p[0])
    layer = p >= p_sfc - depth
    theta = float(np.mean(thermo.potential_temperature(t[layer], p[layer])))
    w = float(np.nanmean(thermo.mixing_ratio(td[layer], p[layer])))
    if not np.isfinite(theta) or not np.isfinite(w):
        raise AnalysisError("mixed layer has no valid moisture or temperature")
    temperature = float(thermo.temperature_from_theta(theta, p_sfc))
    dew_point = float(min(thermo.dew_point_from_mixing_ratio(w, p_sfc), temperature))
    return Parcel(temperature=temperature, dew_point=dew_point, pressure=p_sfc)


def lift_parcel(parcel: Parcel, snd: Sounding) -> ParcelProfile:
    """Lift ``parcel`` through ``snd``, inserting its LCL as a profile level."""
    p, t, td, z = _usable(snd)
    keep = p <= parcel.pressure + 1e-6
    p, t, td, z = p[keep], t[keep], td[keep], z[keep]
    if p.size < 2:
        raise AnalysisError("fewer than two levels above the parcel")

    p_lcl, _ = thermo.lcl(parcel.temperature, parcel.dew_point, parcel.pressure)

    # np.interp needs increasing abscissae; -ln(p) increases with height
    xp = -np.log(p)
    lcl_height = float("nan")
    if p[-1] <= p_lcl <= p[0]:
        x = -np.log(p_lcl)
        lcl_height = float(np.interp(x, xp, z))
        if not np.any(np.isclose(p, p_lcl)):
            idx = int(np.searchsorted(xp, x))
            t = np.insert(t, idx, np.interp(x, xp, t))
            td = np.insert(td, idx, np.interp(x, xp, td))
            z = np.insert(z, idx, lcl_height)
            p = np.insert(p, idx, p_lcl)
    elif p_lcl > p[0]:
        lcl_height = float(z[0])

    theta = float(thermo.potential_temperature(parcel.temperature, parcel.pressure))
    w = float(thermo.mixing_ratio(parcel.dew_point, parcel.pressure))
    theta_e = thermo.equivalent_potential_temperature(
        parcel.temperature, parcel.dew_point, parcel.pressure
    )

    dry_t = thermo.temperature_from_theta(theta, p)
    dry_parcel_tv = thermo.virtual_temperature(dry_t, w)

    parcel_tv = np.empty_like(p)
    for i, pk in enumerate(p):
        if pk >= p_lcl:
            parcel_tv[i] = dry_parcel_tv[i]
        else:
            tk = thermo.moist_adiabat_temperature(theta_e, pk)
            parcel_tv[i] = thermo.virtual_temperature(tk, thermo.mixing_ratio(tk, pk))

    env_tv = thermo.virtual_temperature(t, thermo.mixing_ratio(td, p))

    return ParcelProfile(
        pressure=p,
        height=z,
        parcel_tv=parcel_tv,
        dry_parcel_tv=np.asarray(dry_parcel_tv, dtype=np.float64),
        env_tv=np.asarray(env_tv, dtype=np.float64),
        lcl_pressure=float(p_lcl),
        lcl_height=lcl_height,
    )


def _positive_area(b: FloatArray, z: FloatArray) -> float:
    pos = np.clip(b, 0.0, None)
    return float(np.sum(0.5 * (pos[1:] + pos[:-1]) * np.diff(z)))


def partition_cape(profile: ParcelProfile):
    """Split the parcel's CAPE (J/kg) into ``(dry, wet)`` parts.

    The dry part is the positive energy the parcel would gain without any
    latent heating; the wet part is what condensation adds on top of it.
    """
    b = profile.buoyancy
    b_dry = profile.dry_buoyancy
    if not (np.all(np.isfinite(b)) and np.all(np.isfinite(b_dry))):
        raise AnalysisError("non-finite buoyancy in parcel profile")
    total = _positive_area(b, profile.height)
    dry = _positive_area(b_dry, profile.height)
    return dry, max(total - dry, 0.0)
