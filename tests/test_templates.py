import json
from datetime import datetime, timedelta

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from fireplots.timeseries import MetaData, Site
from fireplots.visualization import PlotStyle, templates
from fireplots.visualization.templates import (
    _time_axis,
    TemplateVariables,
    render_ensemble,
    render_merged,
    render_summary,
)

T0 = datetime(2017, 9, 2, 0)


def _meta():
    return MetaData(site=Site(id="kmso", name="Missoula"), model="nam", start=T0,
                    now=T0 + timedelta(hours=12), end=T0 + timedelta(days=3))


def _ensemble_frame():
    rows = []
    for run in range(3):
        init = T0 + timedelta(hours=6 * run)
        for h in range(0, 48, 3):
            rows.append((init, init + timedelta(hours=h), h, 100.0 + h, 300.0 - h, 50.0 + run))
    frame = pd.DataFrame(rows, columns=["init_time", "valid_time", "lead_time", "e0", "de", "hdw"])
    return frame


def _merged_frame():
    times = [T0 + timedelta(hours=h) for h in range(0, 60, 3)]
    return pd.DataFrame({
        "valid_time": times,
        "lead_time": [0] * len(times),
        "dt0": np.linspace(0.0, 5.0, len(times)),
        "e0": np.linspace(100.0, 200.0, len(times)),
        "de": [np.nan] + list(np.linspace(0.0, 300.0, len(times) - 1)),
        "hdw": np.linspace(10.0, 300.0, len(times)),
    })


def _heat_map_frame(hours=range(0, 60, 3)):
    rows = []
    for h in hours:
        for i in range(61):
            dt = 0.25 * i
            rows.append((T0 + timedelta(hours=h), dt, 10.0 * dt, 100.0 + h))
    return pd.DataFrame(rows, columns=["valid_time", "dt", "dry_cape", "wet_cape"])


def test_template_variables_from_meta(tmp_path):
    tvars = TemplateVariables.from_meta(_meta(), tmp_path, suffix="_ens.png")
    assert tvars.main_title == "Fire Weather Parameters - Missoula - NAM"
    assert tvars.output_name == "kmso_NAM_ens.png"
    assert tvars.output_path == tmp_path / "kmso_NAM_ens.png"
    assert tvars.num_hours == 60


def test_template_variables_accept_strings(tmp_path):
    tvars = TemplateVariables(
        num_hours=24,
        now_time="2017-09-02-12",
        start_time="2017-09-02-00",
        end_time="2017-09-03-12",
        main_title="title",
        output_name="out.png",
        output_prefix=str(tmp_path),
    )
    assert tvars.now_time == datetime(2017, 9, 2, 12)
    assert tvars.to_metadata()["end"] == "2017-09-03-12"


def test_render_ensemble(tmp_path):
    tvars = TemplateVariables.from_meta(_meta(), tmp_path, suffix="_ens.png")
    out = render_ensemble(_ensemble_frame(), tvars)
    assert out.exists()
    assert out.stat().st_size > 0


def test_render_merged_with_metadata(tmp_path):
    tvars = TemplateVariables.from_meta(_meta(), tmp_path / "images")
    style = PlotStyle(dpi=50, write_metadata=True)
    out = render_merged(_merged_frame(), _heat_map_frame(), tvars, style)
    assert out == tmp_path / "images" / "kmso_NAM.png"
    assert out.exists()
    meta = json.loads(out.with_suffix(".png.metadata.json").read_text())
    assert meta["title"] == tvars.main_title


def test_render_merged_with_sparse_heat_map(tmp_path):
    tvars = TemplateVariables.from_meta(_meta(), tmp_path)
    out = render_merged(_merged_frame(), _heat_map_frame(hours=[0]), tvars)
    assert out.exists()


def test_render_summary(tmp_path):
    tvars = TemplateVariables.from_meta(_meta(), tmp_path, suffix="_summary.png")
    out = render_summary(_ensemble_frame(), _merged_frame(), _heat_map_frame(), tvars)
    assert out.name == "kmso_NAM_summary.png"
    assert out.exists()


def test_missing_columns_raise(tmp_path):
    tvars = TemplateVariables.from_meta(_meta(), tmp_path)
    with pytest.raises(ValueError, match="hdw"):
        render_ensemble(_ensemble_frame().drop(columns="hdw"), tvars)
    with pytest.raises(ValueError, match="wet_cape"):
        render_merged(_merged_frame(), _heat_map_frame().drop(columns="wet_cape"), tvars)
    assert not tvars.output_path.exists()


def _hours(locs):
    return {mdates.num2date(x).hour for x in locs}


@pytest.mark.parametrize("num_hours,major_hours", [(48, {0, 12}), (49, {0})])
def test_time_axis(num_hours, major_hours):
    start = T0
    tvars = TemplateVariables(
        num_hours=num_hours,
        now_time=start + timedelta(hours=6),
        start_time=start,
        end_time=start + timedelta(hours=72),
        main_title="title",
        output_name="out.png",
        output_prefix=".",
    )
    fig, ax = plt.subplots()
    try:
        _time_axis(ax, tvars)
        assert ax.get_xlim() == pytest.approx((mdates.date2num(tvars.start_time), mdates.date2num(tvars.end_time)))

        (now_line,) = ax.lines
        assert now_line.get_linestyle() == "--"
        assert now_line.get_xydata()[:, 0] == pytest.approx([mdates.date2num(tvars.now_time)] * 2)

        major = ax.xaxis.get_majorticklocs()
        minor = ax.xaxis.get_minorticklocs()
        assert _hours(major) == major_hours
        assert _hours(minor) <= {0, 6, 12, 18}
        # majors and minors together mark every 6 h
        ticks = np.sort(np.concatenate([major, minor]))
        assert np.diff(ticks) == pytest.approx(np.full(ticks.size - 1, 0.25))
    finally:
        plt.close(fig)


def _panel_count(fig):
    return sum(1 for ax in fig.axes if ax.get_subplotspec() is not None)


def test_panel_counts(tmp_path, monkeypatch):
    figures = []
    monkeypatch.setattr(templates.plt, "close", figures.append)
    tvars = TemplateVariables.from_meta(_meta(), tmp_path)
    render_ensemble(_ensemble_frame(), tvars)
    render_merged(_merged_frame(), _heat_map_frame(), tvars)
    render_summary(_ensemble_frame(), _merged_frame(), _heat_map_frame(), tvars)
    monkeypatch.undo()
    try:
        assert [_panel_count(fig) for fig in figures] == [3, 4, 3]
        for fig in figures:
            assert fig.get_suptitle() == "Fire Weather Parameters - Missoula - NAM"
    finally:
        for fig in figures:
            plt.close(fig)
