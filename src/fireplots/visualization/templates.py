"""Fixed-layout fire weather multiplots.

Every template takes the same inputs: a ``TemplateVariables`` holding the
time bounds, title and output location, plus one or more data blocks as
pandas DataFrames with the column layouts from ``blocks``. Each renders one
image to ``output_prefix/output_name`` and returns its path.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional, Sequence, Tuple, Union

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib import gridspec
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from ..timeseries import MetaData
from .blocks import DATE_FORMAT, ENSEMBLE_COLUMNS, HEAT_MAP_COLUMNS, MERGED_COLUMNS, with_wet_ratio
from .styles import PlotStyle, member_colors, wet_dry_colormap
from .utils import save_figure

logger = logging.getLogger(__name__)

LABELS = {
    "hdw": "HDW",
    "e0": "E0 (J/kg)",
    "de": "dE (J/kg)",
    "dt0": "dT0 (°C)",
}


def _as_time(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        return datetime.strptime(value, DATE_FORMAT)
    return value


@dataclass
class TemplateVariables:
    num_hours: int
    now_time: datetime
    start_time: datetime
    end_time: datetime
    main_title: str
    output_name: str
    output_prefix: Path

    def __post_init__(self) -> None:
        self.now_time = _as_time(self.now_time)
        self.start_time = _as_time(self.start_time)
        self.end_time = _as_time(self.end_time)
        self.output_prefix = Path(self.output_prefix)

    @classmethod
    def from_meta(cls, meta: MetaData, output_prefix: Union[str, Path], suffix: str = ".png") -> "TemplateVariables":
        model = meta.model.upper()
        return cls(
            num_hours=int((meta.end - meta.now).total_seconds() // 3600),
            now_time=meta.now,
            start_time=meta.start,
            end_time=meta.end,
            main_title=f"Fire Weather Parameters - {meta.site.label} - {model}",
            output_name=f"{meta.site.file_id}_{model}{suffix}",
            output_prefix=Path(output_prefix),
        )

    @property
    def output_path(self) -> Path:
        return self.output_prefix / self.output_name

    def to_metadata(self) -> dict:
        return {
            "title": self.main_title,
            "start": self.start_time.strftime(DATE_FORMAT),
            "now": self.now_time.strftime(DATE_FORMAT),
            "end": self.end_time.strftime(DATE_FORMAT),
            "num_hours": self.num_hours,
        }


@contextmanager
def figure_context(tvars: TemplateVariables, style: PlotStyle, figsize: Tuple[float, float]) -> Generator[Figure, None, None]:
    """
    Create a figure, save it to the template's output path, and close it.
    """
    style.apply()
    out = tvars.output_path
    out.parent.mkdir(parents=True, exist_ok=True)
    fig = plt.figure(figsize=figsize)
    try:
        yield fig
        fig.suptitle(tvars.main_title, fontsize=style.title_size)
        metadata = tvars.to_metadata() if style.write_metadata else None
        save_figure(fig, out, dpi=style.dpi, metadata=metadata)
        logger.info("Saved %s", out)
    finally:
        plt.close(fig)


def _require(frame: pd.DataFrame, columns: Sequence[str], name: str) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ValueError(f"{name} data block is missing columns: {', '.join(missing)}")


def _time_axis(ax: Axes, tvars: TemplateVariables) -> None:
    ax.set_xlim(tvars.start_time, tvars.end_time)
    ax.axvline(tvars.now_time, color="0.25", linestyle="--", linewidth=1.0)
    major = 12 if tvars.num_hours <= 48 else 24
    ax.xaxis.set_major_locator(mdates.HourLocator(byhour=range(0, 24, major)))
    ax.xaxis.set_minor_locator(mdates.HourLocator(byhour=range(0, 24, 6)))
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%m/%d %HZ"))
    ax.grid(True, which="major", alpha=0.5)


def _stack(fig: Figure, ratios: Sequence[float]) -> list:
    gs = gridspec.GridSpec(len(ratios), 1, figure=fig, height_ratios=ratios, hspace=0.08)
    axes = [fig.add_subplot(gs[0])]
    for i in range(1, len(ratios)):
        axes.append(fig.add_subplot(gs[i], sharex=axes[0]))
    for ax in axes[:-1]:
        ax.tick_params(labelbottom=False)
    return axes


def _members(data: pd.DataFrame):
    if "init_time" not in data.columns:
        return [(None, data)]
    return [(init, grp.sort_values("valid_time")) for init, grp in data.groupby("init_time", sort=True)]


def _draw_ensemble(axes: Sequence[Axes], data: pd.DataFrame, columns: Sequence[str], style: PlotStyle, **kwargs) -> None:
    members = _members(data)
    colors = member_colors(len(members), style.palette)
    for (init, grp), color in zip(members, colors):
        label = init.strftime("%d/%HZ") if init is not None else None
        for ax, col in zip(axes, columns):
            ax.plot(grp["valid_time"], grp[col], color=color, label=label, **kwargs)


def _draw_heat_map(ax: Axes, wet_dry: pd.DataFrame):
    """Time vs parcel warming, colored by the wet fraction of CAPE."""
    frame = with_wet_ratio(wet_dry)
    frame["dt"] = frame["dt"].round(4)
    grid = frame.groupby(["dt", "valid_time"])["wet_ratio"].mean().unstack("valid_time")
    ax.set_ylabel("Warming (°C)")
    ax.xaxis_date()
    if grid.shape[0] < 2 or grid.shape[1] < 2:
        ax.text(0.5, 0.5, "Not enough data for heat map", ha="center", va="center", transform=ax.transAxes)
        return None
    x = mdates.date2num(pd.DatetimeIndex(grid.columns).to_pydatetime())
    y = grid.index.to_numpy(dtype=float)
    values = np.ma.masked_invalid(grid.to_numpy(dtype=float))
    mesh = ax.pcolormesh(x, y, values, cmap=wet_dry_colormap(), vmin=0.0, vmax=1.0, shading="nearest")
    ax.set_ylim(y.min(), y.max())
    cax = ax.inset_axes([1.01, 0.0, 0.02, 1.0])
    ax.figure.colorbar(mesh, cax=cax, label="Wet fraction")
    return mesh


def render_ensemble(data: pd.DataFrame, tvars: TemplateVariables, style: Optional[PlotStyle] = None) -> Path:
    """HDW, E0 and dE for every model run, stacked on a shared time axis."""
    _require(data, ENSEMBLE_COLUMNS, "ensemble")
    style = style or PlotStyle()
    columns = ("hdw", "e0", "de")
    with figure_context(tvars, style, figsize=(8, 9)) as fig:
        axes = _stack(fig, [1, 1, 1])
        _draw_ensemble(axes, data, columns, style)
        for ax, col in zip(axes, columns):
            ax.set_ylabel(LABELS[col])
            _time_axis(ax, tvars)
        if "init_time" in data.columns and not data.empty:
            axes[0].legend(title="Run", loc="upper left", ncol=2)
    return tvars.output_path


def render_merged(data: pd.DataFrame, wet_dry: pd.DataFrame, tvars: TemplateVariables,
                  style: Optional[PlotStyle] = None) -> Path:
    """HDW, dT0, E0/dE and the wet/dry heat map for the merged series."""
    _require(data, MERGED_COLUMNS, "merged")
    _require(wet_dry, HEAT_MAP_COLUMNS, "wet/dry")
    style = style or PlotStyle()
    data = data.sort_values("valid_time")
    with figure_context(tvars, style, figsize=(8, 11)) as fig:
        ax_hdw, ax_dt, ax_e, ax_hm = _stack(fig, [1, 1, 1, 1.4])
        ax_hdw.plot(data["valid_time"], data["hdw"], color="#b2182b")
        ax_hdw.set_ylabel(LABELS["hdw"])
        ax_dt.plot(data["valid_time"], data["dt0"], color="#ef8a62")
        ax_dt.set_ylabel(LABELS["dt0"])
        ax_e.plot(data["valid_time"], data["e0"], color="#8c510a", label="E0")
        ax_e.plot(data["valid_time"], data["de"], color="#01665e", label="dE")
        ax_e.set_ylabel("Energy (J/kg)")
        ax_e.legend(loc="upper left")
        _draw_heat_map(ax_hm, wet_dry)
        for ax in (ax_hdw, ax_dt, ax_e, ax_hm):
            _time_axis(ax, tvars)
    return tvars.output_path


def render_summary(ens: pd.DataFrame, merged: pd.DataFrame, wet_dry: pd.DataFrame,
                   tvars: TemplateVariables, style: Optional[PlotStyle] = None) -> Path:
    """HDW plume with the merged series on top, dT0, and the heat map."""
    _require(ens, ENSEMBLE_COLUMNS, "ensemble")
    _require(merged, MERGED_COLUMNS, "merged")
    _require(wet_dry, HEAT_MAP_COLUMNS, "wet/dry")
    style = style or PlotStyle()
    merged = merged.sort_values("valid_time")
    with figure_context(tvars, style, figsize=(8, 9)) as fig:
        ax_hdw, ax_dt, ax_hm = _stack(fig, [1, 1, 1.4])
        _draw_ensemble([ax_hdw], ens, ("hdw",), style, alpha=0.5, linewidth=style.line_width * 0.7)
        ax_hdw.plot(merged["valid_time"], merged["hdw"], color="black", label="merged")
        ax_hdw.set_ylabel(LABELS["hdw"])
        ax_dt.plot(merged["valid_time"], merged["dt0"], color="#ef8a62")
        ax_dt.set_ylabel(LABELS["dt0"])
        _draw_heat_map(ax_hm, wet_dry)
        for ax in (ax_hdw, ax_dt, ax_hm):
            _time_axis(ax, tvars)
    return tvars.output_path
