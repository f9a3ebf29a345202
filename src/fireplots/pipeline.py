"""From loaded Bufkit text to images and data files."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .analysis import analyze, analyze_cape_partitions, parse_sounding
from .timeseries import EnsembleList, MergedSeries
from .visualization import blocks
from .visualization.styles import PlotStyle
from .visualization.templates import TemplateVariables, render_ensemble, render_merged, render_summary

logger = logging.getLogger(__name__)


@dataclass
class PreparedData:
    """Everything the templates need for one site and model."""

    analyzed: EnsembleList
    merged: MergedSeries
    cape_parts: MergedSeries

    @property
    def meta(self):
        return self.analyzed.meta


def prepare(string_data: EnsembleList) -> Optional[PreparedData]:
    """Parse and analyze every run, merge them, and partition CAPE.

    Returns None when no sounding falls inside the metadata's time window.
    """
    start, end = string_data.meta.start, string_data.meta.end
    soundings = string_data.filter_map(lambda text: parse_sounding(text, start, end))
    if soundings.is_empty():
        logger.warning(
            "No soundings for %s %s between %s and %s",
            string_data.meta.site.label, string_data.meta.model, start, end,
        )
        return None
    analyzed = soundings.filter_map_inner(analyze)
    merged_soundings = soundings.merge()
    cape_parts = merged_soundings.filter_map(analyze_cape_partitions)
    return PreparedData(analyzed=analyzed, merged=analyzed.merge(), cape_parts=cape_parts)


def plot_prepared(prepared: PreparedData, prefix: Union[str, Path], style: Optional[PlotStyle] = None,
                  summary: bool = False) -> List[Path]:
    meta = prepared.meta
    ens_frame = blocks.ensemble_frame(prepared.analyzed)
    mrg_frame = blocks.merged_frame(prepared.merged)
    hm_frame = blocks.heat_map_frame(prepared.cape_parts)
    ens = render_ensemble(
        ens_frame,
        TemplateVariables.from_meta(meta, prefix, suffix="_ens.png"),
        style,
    )
    mrg = render_merged(
        mrg_frame,
        hm_frame,
        TemplateVariables.from_meta(meta, prefix, suffix=".png"),
        style,
    )
    outputs = [ens, mrg]
    if summary:
        outputs.append(render_summary(
            ens_frame, mrg_frame, hm_frame,
            TemplateVariables.from_meta(meta, prefix, suffix="_summary.png"),
            style,
        ))
    return outputs


def plot_all(items: Iterable[EnsembleList], prefix: Union[str, Path], style: Optional[PlotStyle] = None,
             summary: bool = False) -> List[Path]:
    """Make the ensemble and merged plots for every loaded site and model.

    Items that fail to analyze or render are logged and skipped.
    """
    outputs: List[Path] = []
    for string_data in items:
        label = f"{string_data.meta.site.label} {string_data.meta.model.upper()}"
        try:
            prepared = prepare(string_data)
            if prepared is None:
                continue
            outputs.extend(plot_prepared(prepared, prefix, style, summary=summary))
            logger.info("Finished plot %s", label)
        except (ValueError, OSError) as e:
            logger.exception("Failed to plot %s: %s", label, e)
    return outputs


def save_prepared(prepared: PreparedData, prefix: Union[str, Path]) -> List[Path]:
    prefix = Path(prefix)
    prefix.mkdir(parents=True, exist_ok=True)
    meta = prepared.meta
    stem = f"{meta.site.file_id}_{meta.model.upper()}"
    writers = [
        (prefix / f"{stem}_ens.dat", blocks.write_ensemble_data, prepared.analyzed),
        (prefix / f"{stem}_mrg.dat", blocks.write_merged_data, prepared.merged),
        (prefix / f"{stem}_hm.dat", blocks.write_heat_map_data, prepared.cape_parts),
    ]
    paths: List[Path] = []
    for path, write, data in writers:
        with path.open("w", encoding="utf-8") as fh:
            write(data, fh)
        paths.append(path)
    return paths


def save_all(items: Iterable[EnsembleList], prefix: Union[str, Path]) -> List[Path]:
    """Save the data blocks for every loaded site and model as text files."""
    outputs: List[Path] = []
    for string_data in items:
        label = f"{string_data.meta.site.label} {string_data.meta.model.upper()}"
        try:
            prepared = prepare(string_data)
            if prepared is None:
                continue
            outputs.extend(save_prepared(prepared, prefix))
            logger.info("Saved data %s", label)
        except (ValueError, OSError) as e:
            logger.exception("Failed to save %s: %s", label, e)
    return outputs


def render_saved(ens_path: Union[str, Path], mrg_path: Union[str, Path], hm_path: Union[str, Path],
                 prefix: Union[str, Path], style: Optional[PlotStyle] = None, summary: bool = False) -> List[Path]:
    """Render the templates from data blocks written by ``save_all``."""
    header, ens = blocks.read_data_block(Path(ens_path))
    _, mrg = blocks.read_data_block(Path(mrg_path))
    _, hm = blocks.read_data_block(Path(hm_path))
    meta = blocks.meta_from_header(header)
    outputs = [
        render_ensemble(ens, TemplateVariables.from_meta(meta, prefix, suffix="_ens.png"), style),
        render_merged(mrg, hm, TemplateVariables.from_meta(meta, prefix, suffix=".png"), style),
    ]
    if summary:
        outputs.append(
            render_summary(ens, mrg, hm, TemplateVariables.from_meta(meta, prefix, suffix="_summary.png"), style)
        )
    return outputs
