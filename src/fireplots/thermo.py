"""Moist thermodynamics used by the sounding analysis.

Temperatures are in Celsius unless a name ends in ``_k``, pressures in hPa,
mixing ratios in kg/kg. Formulas follow Bolton (1980), Mon. Wea. Rev. 108.
All functions accept scalars or numpy arrays.
"""
from __future__ import annotations

import numpy as np
from scipy.optimize import brentq

from .types import AnalysisError

RD = 287.04
CP = 1005.7
KAPPA = RD / CP
EPSILON = 0.622
G = 9.80665
ZERO_C = 273.15
P0 = 1000.0
KNOTS_TO_MS = 0.514444

_MOIST_T_MIN = -130.0


def vapor_pressure(t):
    """Saturation vapor pressure over water (hPa) at temperature ``t``."""
    t = np.asarray(t, dtype=float)
    return 6.112 * np.exp(17.67 * t / (t + 243.5))


def dew_point_from_vapor_pressure(e):
    e = np.asarray(e, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        ln = np.log(e / 6.112)
        return 243.5 * ln / (17.67 - ln)


def mixing_ratio(td, p):
    """Mixing ratio of air with dew point ``td`` at pressure ``p``.

    NaN where the vapor pressure reaches the total pressure.
    """
    e = vapor_pressure(td)
    p = np.asarray(p, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        w = EPSILON * e / (p - e)
    return np.where(e < p, w, np.nan)


def dew_point_from_mixing_ratio(w, p):
    w = np.asarray(w, dtype=float)
    p = np.asarray(p, dtype=float)
    e = w * p / (EPSILON + w)
    return dew_point_from_vapor_pressure(e)


def potential_temperature(t, p):
    """Potential temperature in Kelvin."""
    return (np.asarray(t, dtype=float) + ZERO_C) * (P0 / np.asarray(p, dtype=float)) ** KAPPA


def temperature_from_theta(theta_k, p):
    return np.asarray(theta_k, dtype=float) * (np.asarray(p, dtype=float) / P0) ** KAPPA - ZERO_C


def virtual_temperature(t, w):
    """Virtual temperature in Kelvin of air at ``t`` with mixing ratio ``w``."""
    w = np.asarray(w, dtype=float)
    return (np.asarray(t, dtype=float) + ZERO_C) * (1.0 + w / EPSILON) / (1.0 + w)


def lcl(t, td, p):
    """Lifting condensation level ``(p_lcl, t_lcl)`` for a parcel at ``p``.

    Uses Bolton eq. 15 for the LCL temperature. A saturated parcel has its
    LCL at the starting level.
    """
    t = float(t)
    td = float(td)
    p = float(p)
    if td >= t:
        return p, t
    t_k = t + ZERO_C
    td_k = td + ZERO_C
    t_lcl_k = 1.0 / (1.0 / (td_k - 56.0) + np.log(t_k / td_k) / 800.0) + 56.0
    p_lcl = p * (t_lcl_k / t_k) ** (1.0 / KAPPA)
    return float(p_lcl), float(t_lcl_k - ZERO_C)


def _theta_e_bolton(t_k, t_lcl_k, w, p):
    r = w * 1000.0
    return (
        t_k
        * (P0 / p) ** (KAPPA * (1.0 - 0.00028 * r))
        * np.exp((3.376 / t_lcl_k - 0.00254) * r * (1.0 + 0.00081 * r))
    )


def equivalent_potential_temperature(t, td, p):
    """Equivalent potential temperature (K), Bolton eq. 43."""
    _, t_lcl = lcl(t, td, p)
    w = float(mixing_ratio(td, p))
    return float(_theta_e_bolton(float(t) + ZERO_C, t_lcl + ZERO_C, w, float(p)))


def saturated_equivalent_potential_temperature(t, p):
    t_k = float(t) + ZERO_C
    w = float(mixing_ratio(t, p))
    return float(_theta_e_bolton(t_k, t_k, w, float(p)))


def moist_adiabat_temperature(theta_e, p):
    """Temperature on the pseudo-adiabat labelled by ``theta_e`` at ``p``."""
    p = float(p)
    # keep the vapor pressure well below the total pressure
    t_max = min(60.0, float(dew_point_from_vapor_pressure(0.5 * p)))

    def residual(t):
        return saturated_equivalent_potential_temperature(t, p) - theta_e

    lo = residual(_MOIST_T_MIN)
    hi = residual(t_max)
    if not (np.isfinite(lo) and np.isfinite(hi)) or lo * hi > 0.0:
        raise AnalysisError(f"moist adiabat theta_e={theta_e:.2f} K not bracketed at {p:.1f} hPa")
    return float(brentq(residual, _MOIST_T_MIN, t_max, xtol=1e-4))
