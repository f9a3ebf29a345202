import io
from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from fireplots.analysis import AnalyzedData, CapePartition
from fireplots.timeseries import EnsembleList, MergedSeries, MetaData, Site, TimeSeries
from fireplots.visualization import blocks

T0 = datetime(2017, 9, 2, 0)


def _meta():
    return MetaData(site=Site(id="kmso"), model="gfs", start=T0, now=T0 + timedelta(hours=6),
                    end=T0 + timedelta(days=2))


def _analyzed(init, leads):
    return TimeSeries([
        AnalyzedData(valid_time=init + timedelta(hours=h), lead_time=h, hdw=100.0 + h,
                     t0=30.0, dt0=2.0, e0=150.0, de=float("nan") if h == 6 else 400.0)
        for h in leads
    ])


def _ensemble():
    return EnsembleList(meta=_meta(), data=[
        (T0, _analyzed(T0, (0, 6, 12))),
        (T0 + timedelta(hours=6), _analyzed(T0 + timedelta(hours=6), (0, 6))),
    ])


def _parts():
    groups = []
    for h in (0, 3):
        vt = T0 + timedelta(hours=h)
        groups.append([CapePartition(valid_time=vt, dt=dt, dry=10.0 * dt, wet=5.0) for dt in (0.0, 0.25, 0.5)])
    return MergedSeries(meta=_meta(), data=TimeSeries(groups))


def test_ensemble_text_format():
    buf = io.StringIO()
    blocks.write_ensemble_data(_ensemble(), buf)
    lines = buf.getvalue().splitlines()
    assert lines[:6] == [
        "# Site: kmso",
        "# Model: gfs",
        "# Start: 2017-09-02-00",
        "# Now: 2017-09-02-06",
        "# End: 2017-09-04-00",
        "",
    ]
    assert lines[6] == "valid_time lead_time e0 de hdw"
    assert lines[7] == "# init_time: 2017-09-02-00"
    assert lines[8] == "2017-09-02-00 0 150.0 400.0 100.0"
    assert lines[9] == "2017-09-02-06 6 150.0 NaN 106.0"
    # one blank line closes each run
    assert lines.count("") == 3


def test_ensemble_block_reads_back():
    buf = io.StringIO()
    blocks.write_ensemble_data(_ensemble(), buf)
    header, frame = blocks.read_data_block(buf.getvalue())
    assert header["site"] == "kmso"
    assert list(frame.columns) == ["init_time"] + blocks.ENSEMBLE_COLUMNS
    assert len(frame) == 5
    assert frame["init_time"].nunique() == 2
    assert frame["de"].isna().sum() == 2
    meta = blocks.meta_from_header(header)
    assert meta == _meta()


def test_merged_block(tmp_path):
    merged = _ensemble().merge()
    path = tmp_path / "kmso_GFS_mrg.dat"
    with path.open("w") as fh:
        blocks.write_merged_data(merged, fh)
    header, frame = blocks.read_data_block(path)
    assert list(frame.columns) == blocks.MERGED_COLUMNS
    assert frame["valid_time"].is_monotonic_increasing
    assert frame["lead_time"].tolist() == [0, 0, 6]


def test_heat_map_blocks_per_valid_time():
    buf = io.StringIO()
    blocks.write_heat_map_data(_parts(), buf)
    text = buf.getvalue()
    body = text.split("valid_time dt dry_cape wet_cape\n", 1)[1]
    assert body.count("\n\n") == 2
    _, frame = blocks.read_data_block(text)
    assert len(frame) == 6
    assert frame["dt"].tolist()[:3] == [0.0, 0.25, 0.5]


def test_with_wet_ratio():
    frame = pd.DataFrame({"dry_cape": [0.0, 100.0, 0.0], "wet_cape": [0.0, 300.0, 50.0]})
    out = blocks.with_wet_ratio(frame)
    assert np.isnan(out["wet_ratio"][0])
    assert out["wet_ratio"][1] == pytest.approx(0.75)
    assert out["wet_ratio"][2] == pytest.approx(1.0)
    assert "wet_ratio" not in frame


def test_read_errors():
    with pytest.raises(ValueError):
        blocks.read_data_block("# Site: kmso\n")
    with pytest.raises(ValueError):
        blocks.read_data_block("a b c\n1 2\n")
    with pytest.raises(ValueError):
        blocks.meta_from_header({"site": "kmso"})
