"""Fire weather plots from Bufkit forecast soundings."""

from .analysis import AnalyzedData, CapePartition, analyze, analyze_cape_partitions, parse_sounding
from .pipeline import PreparedData, prepare, plot_all, save_all, render_saved
from .sources import (
    Archive,
    FileData,
    Model,
    load_all_sites_and_models,
    load_for_site_and_date_and_time,
    load_from_files,
    load_site,
)
from .timeseries import EnsembleList, EnsembleSeries, MergedSeries, MetaData, Site, TimeSeries
from .types import AnalysisError, BufkitParseError

__all__ = [
    "AnalyzedData",
    "CapePartition",
    "analyze",
    "analyze_cape_partitions",
    "parse_sounding",
    "PreparedData",
    "prepare",
    "plot_all",
    "save_all",
    "render_saved",
    "Archive",
    "FileData",
    "Model",
    "load_all_sites_and_models",
    "load_for_site_and_date_and_time",
    "load_from_files",
    "load_site",
    "EnsembleList",
    "EnsembleSeries",
    "MergedSeries",
    "MetaData",
    "Site",
    "TimeSeries",
    "AnalysisError",
    "BufkitParseError",
]
