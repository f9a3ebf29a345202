from datetime import datetime, timedelta

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from fireplots import thermo

SNPARM = ["PRES", "TMPC", "TMWC", "DWPC", "THTE", "DRCT", "SKNT", "OMEG", "CFRL", "HGHT"]


def synthetic_profile(t_sfc=30.0, dd_low=15.0, dd_high=10.0, p_sfc=900.0, elevation=1000.0):
    """Dry-adiabatic mixed layer up to 700 hPa, 7 K/km lapse rate above."""
    p = np.arange(p_sfc, 149.0, -25.0)
    theta = thermo.potential_temperature(t_sfc, p_sfc)
    t = np.empty_like(p)
    z = np.empty_like(p)
    t[0] = t_sfc
    z[0] = elevation
    for i in range(1, p.size):
        dz = thermo.RD * (t[i - 1] + thermo.ZERO_C) / thermo.G * np.log(p[i - 1] / p[i])
        z[i] = z[i - 1] + dz
        if p[i] >= 700.0:
            t[i] = thermo.temperature_from_theta(theta, p[i])
        else:
            t[i] = t[i - 1] - 0.007 * dz
    td = np.where(p >= 700.0, t - dd_low, t - dd_high)
    drct = np.full_like(p, 250.0)
    sknt = 10.0 + 0.5 * np.arange(p.size)
    return {"PRES": p, "TMPC": t, "DWPC": td, "DRCT": drct, "SKNT": sknt, "HGHT": z}


def _block(station_id, station_num, valid_time, lead, profile):
    n = len(profile["PRES"])
    header = (
        f"STID = {station_id} STNM = {station_num} TIME = {valid_time:%y%m%d/%H%M}\n"
        f"SLAT = 46.92 SLON = -114.08 SELV = {profile['HGHT'][0]:.1f}\n"
        f"STIM = {lead}\n\n"
        "SHOW = 7.61 LIFT = 6.46 SWET = 82.48 KINX = 7.51\n"
        "LCLP = 721.91 PWAT = 11.64 TOTL = 43.97 CAPE = 0.00\n"
        "LCLT = 267.37 CINS = 0.00 EQLV = -9999.00 LFCT = -9999.00\n"
        "BRCH = 0.00\n\n"
        "PRES TMPC TMWC DWPC THTE DRCT SKNT OMEG\n"
        "CFRL HGHT\n"
    )
    lines = []
    for i in range(n):
        row = [profile.get(name, np.full(n, -9999.0))[i] for name in SNPARM]
        row = [-9999.0 if not np.isfinite(v) else v for v in row]
        lines.append(" ".join(f"{v:.2f}" for v in row[:8]))
        lines.append(" ".join(f"{v:.2f}" for v in row[8:]))
    return header + "\n".join(lines) + "\n\n"


def make_bufkit(init_time, hours=(0, 3, 6), station_id="KMSO", station_num=727730, profile_fn=None):
    profile_fn = profile_fn or (lambda lead: synthetic_profile(t_sfc=25.0 + lead / 3.0))
    text = (
        "SNPARM = " + ";".join(SNPARM) + "\n"
        "STNPRM = SHOW;LIFT;SWET;KINX;LCLP;PWAT;TOTL;CAPE;LCLT;CINS;EQLV;LFCT;BRCH\n\n"
    )
    for lead in hours:
        text += _block(station_id, station_num, init_time + timedelta(hours=lead), lead, profile_fn(lead))
    text += (
        "STN YYMMDD/HHMM PMSL PRES SKTC STC1 SNFL WTNS\n"
        "P01M C01M STC2 LCLD MCLD HCLD\n"
        f"{station_num} {init_time:%y%m%d/%H%M} 1013.00 900.00 20.00 15.00 0.00 0.00\n"
        "0.00 0.00 15.00 0.00 0.00 0.00\n"
    )
    return text


@pytest.fixture
def init_time():
    return datetime(2017, 9, 2, 12)


@pytest.fixture
def bufkit_text(init_time):
    return make_bufkit(init_time)
