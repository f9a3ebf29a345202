"""Tabular data blocks consumed by the templates.

Each block exists in two forms: a pandas DataFrame handed to the
templates, and a whitespace separated text form (comment header, one
header row, blank lines between blocks) that gnuplot can also read.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO, Tuple, Union

import numpy as np
import pandas as pd

from ..timeseries import EnsembleList, MergedSeries, MetaData, Site

DATE_FORMAT = "%Y-%m-%d-%H"

ENSEMBLE_COLUMNS = ["valid_time", "lead_time", "e0", "de", "hdw"]
MERGED_COLUMNS = ["valid_time", "lead_time", "dt0", "e0", "de", "hdw"]
HEAT_MAP_COLUMNS = ["valid_time", "dt", "dry_cape", "wet_cape"]


def _fmt(value) -> str:
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    value = float(value)
    return "NaN" if np.isnan(value) else repr(value)


def ensemble_frame(ens: EnsembleList) -> pd.DataFrame:
    rows = [
        (init_time, d.valid_time, d.lead_time, d.e0, d.de, d.hdw)
        for init_time, series in ens.data
        for d in series
    ]
    frame = pd.DataFrame(rows, columns=["init_time"] + ENSEMBLE_COLUMNS)
    return frame.astype({"init_time": "datetime64[ns]", "valid_time": "datetime64[ns]"})


def merged_frame(mrg: MergedSeries) -> pd.DataFrame:
    rows = [(d.valid_time, d.lead_time, d.dt0, d.e0, d.de, d.hdw) for d in mrg.data]
    frame = pd.DataFrame(rows, columns=MERGED_COLUMNS)
    return frame.astype({"valid_time": "datetime64[ns]"})


def heat_map_frame(parts: MergedSeries) -> pd.DataFrame:
    rows = [(cp.valid_time, cp.dt, cp.dry, cp.wet) for group in parts.data for cp in group]
    frame = pd.DataFrame(rows, columns=HEAT_MAP_COLUMNS)
    return frame.astype({"valid_time": "datetime64[ns]"})


def with_wet_ratio(frame: pd.DataFrame) -> pd.DataFrame:
    """Add ``wet_ratio``, the share of CAPE coming from latent heating."""
    out = frame.copy()
    total = out["dry_cape"] + out["wet_cape"]
    out["wet_ratio"] = (out["wet_cape"] / total).where(total > 0.0)
    return out


def write_meta_data_header(meta: MetaData, dest: TextIO) -> None:
    dest.write(
        f"# Site: {meta.site.file_id}\n"
        f"# Model: {meta.model}\n"
        f"# Start: {meta.start.strftime(DATE_FORMAT)}\n"
        f"# Now: {meta.now.strftime(DATE_FORMAT)}\n"
        f"# End: {meta.end.strftime(DATE_FORMAT)}\n\n"
    )


def _write_rows(frame: pd.DataFrame, columns: List[str], dest: TextIO) -> None:
    for row in frame[columns].itertuples(index=False):
        dest.write(" ".join(_fmt(v) for v in row) + "\n")


def write_ensemble_data(ens: EnsembleList, dest: TextIO) -> None:
    """Write ensemble members in gnuplot block format, one block per run."""
    write_meta_data_header(ens.meta, dest)
    dest.write(" ".join(ENSEMBLE_COLUMNS) + "\n")
    frame = ensemble_frame(ens)
    for init_time, group in frame.groupby("init_time", sort=False):
        dest.write(f"# init_time: {init_time.strftime(DATE_FORMAT)}\n")
        _write_rows(group, ENSEMBLE_COLUMNS, dest)
        dest.write("\n")


def write_merged_data(mrg: MergedSeries, dest: TextIO) -> None:
    write_meta_data_header(mrg.meta, dest)
    dest.write(" ".join(MERGED_COLUMNS) + "\n")
    _write_rows(merged_frame(mrg), MERGED_COLUMNS, dest)


def write_heat_map_data(parts: MergedSeries, dest: TextIO) -> None:
    """Write cape partitions, one block per valid time."""
    write_meta_data_header(parts.meta, dest)
    dest.write(" ".join(HEAT_MAP_COLUMNS) + "\n")
    frame = heat_map_frame(parts)
    for _vt, group in frame.groupby("valid_time", sort=False):
        _write_rows(group, HEAT_MAP_COLUMNS, dest)
        dest.write("\n")


def _lines(source: Union[str, Path, TextIO]) -> Iterable[str]:
    if isinstance(source, Path):
        return source.read_text(encoding="utf-8").splitlines()
    if isinstance(source, str):
        return source.splitlines()
    return source.read().splitlines()


def read_data_block(source: Union[str, Path, TextIO]) -> Tuple[Dict[str, str], pd.DataFrame]:
    """Parse a written data block back into ``(header, frame)``.

    ``source`` is a Path, the block text itself, or an open text file. The
    header holds the comment fields (``site``, ``model``, ``start``,
    ``now``, ``end``). Ensemble blocks get an ``init_time`` column.
    """
    header: Dict[str, str] = {}
    columns: Optional[List[str]] = None
    rows: List[list] = []
    init_time: Optional[str] = None
    saw_init = False

    for lineno, line in enumerate(_lines(source), start=1):
        s = line.strip()
        if not s:
            continue
        if s.startswith("#"):
            key, _, value = s[1:].partition(":")
            key = key.strip().lower()
            if key == "init_time":
                init_time = value.strip()
                saw_init = True
            elif value.strip():
                header[key] = value.strip()
            continue
        if columns is None:
            columns = s.split()
            continue
        values = s.split()
        if len(values) != len(columns):
            raise ValueError(f"line {lineno}: expected {len(columns)} values, found {len(values)}")
        rows.append(values + [init_time])

    if columns is None:
        raise ValueError("data block has no header row")

    frame = pd.DataFrame(rows, columns=columns + ["init_time"])
    if saw_init:
        frame["init_time"] = pd.to_datetime(frame["init_time"], format=DATE_FORMAT)
    else:
        frame = frame.drop(columns="init_time")
    for col in columns:
        if col == "valid_time":
            frame[col] = pd.to_datetime(frame[col], format=DATE_FORMAT)
        else:
            # float() reads the "NaN" the writers emit
            frame[col] = frame[col].astype(object).map(float).astype(np.float64)
    if saw_init:
        frame = frame[["init_time"] + columns]
    return header, frame


def meta_from_header(header: Dict[str, str]) -> MetaData:
    """Rebuild MetaData from the comment header of a data block."""
    missing = [k for k in ("site", "model", "start", "now", "end") if k not in header]
    if missing:
        raise ValueError(f"data block header lacks: {', '.join(missing)}")
    return MetaData(
        site=Site(id=header["site"]),
        model=header["model"],
        start=datetime.strptime(header["start"], DATE_FORMAT),
        now=datetime.strptime(header["now"], DATE_FORMAT),
        end=datetime.strptime(header["end"], DATE_FORMAT),
    )
