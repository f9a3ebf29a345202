"""
Visualization package for fireplots
Expose the data block helpers and the multiplot templates
"""
from .blocks import (
    DATE_FORMAT,
    ensemble_frame,
    merged_frame,
    heat_map_frame,
    with_wet_ratio,
    write_meta_data_header,
    write_ensemble_data,
    write_merged_data,
    write_heat_map_data,
    read_data_block,
    meta_from_header,
)
from .templates import TemplateVariables, render_ensemble, render_merged, render_summary
from .styles import PlotStyle, wet_dry_colormap, member_colors
from .utils import save_figure

__all__ = [
    "DATE_FORMAT",
    "ensemble_frame",
    "merged_frame",
    "heat_map_frame",
    "with_wet_ratio",
    "write_meta_data_header",
    "write_ensemble_data",
    "write_merged_data",
    "write_heat_map_data",
    "read_data_block",
    "meta_from_header",
    "TemplateVariables",
    "render_ensemble",
    "render_merged",
    "render_summary",
    "PlotStyle",
    "wet_dry_colormap",
    "member_colors",
    "save_figure",
]
