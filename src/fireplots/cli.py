from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .core.config import AppConfig
from .pipeline import plot_all, render_saved, save_all
from .sources import (
    Archive,
    FileData,
    Model,
    load_all_sites_and_models,
    load_for_site_and_date_and_time,
    load_from_files,
    load_site,
)
from .telemetry.manifest import RunManifest, capture_env, hash_config
from .timeseries import Site
from .utils.config import load_app_config
from .visualization.blocks import DATE_FORMAT
from .visualization.styles import PlotStyle

logger = logging.getLogger("fireplots")


def _time(raw: str) -> datetime:
    try:
        return datetime.strptime(raw, DATE_FORMAT)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD-HH, got '{raw}'") from e


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="fireplots",
        description="Fire weather plots (HDW, initiation energetics, wet/dry CAPE) from Bufkit soundings.",
    )
    p.add_argument("--config", type=Path, default=Path("config.yaml"), help="Path to config.yaml")
    p.add_argument("--output-dir", type=Path, default=None,
                   help="Directory for images, or for data files with --save")
    p.add_argument("--save", action="store_true", help="Write data blocks (.dat) instead of images")
    p.add_argument("--summary", action="store_true", default=None, help="Also render the summary figure")
    p.add_argument("--figure-dpi", type=int, default=None, help="DPI for generated figures")
    p.add_argument("--log-level", default=None, help="Logging level (default: INFO)")

    sub = p.add_subparsers(dest="command", required=True)

    arch = sub.add_parser("archive", help="Plot every site and model in the archive")
    arch.add_argument("--archive", type=Path, default=None, help="Archive root directory")
    arch.add_argument("--days-back", type=int, default=None)

    site = sub.add_parser("site", help="Plot one site and model from the archive")
    site.add_argument("--archive", type=Path, default=None, help="Archive root directory")
    site.add_argument("--site", required=True, help="Site id, e.g. kmso")
    site.add_argument("--model", required=True, help="gfs, nam or nam4km")
    site.add_argument("--now", type=_time, default=None, help="Treat this time (YYYY-MM-DD-HH) as now")
    site.add_argument("--days-back", type=int, default=None)

    files = sub.add_parser("files", help="Plot Bufkit files from disk")
    files.add_argument("--site-name", required=True)
    files.add_argument("--station-num", type=int, default=None)
    files.add_argument("--model", required=True, help="Model label used in titles and file names")
    files.add_argument("--start", type=_time, required=True)
    files.add_argument("--end", type=_time, required=True)
    files.add_argument("files", nargs="+", type=Path)

    render = sub.add_parser("render", help="Render figures from saved data blocks")
    render.add_argument("--ens", type=Path, required=True, help="Ensemble data block (_ens.dat)")
    render.add_argument("--mrg", type=Path, required=True, help="Merged data block (_mrg.dat)")
    render.add_argument("--hm", type=Path, required=True, help="Heat map data block (_hm.dat)")

    sub.add_parser("validate-config", help="Validate the configuration and exit")
    return p.parse_args(argv)


def _style(cfg: AppConfig) -> PlotStyle:
    s = cfg.style
    return PlotStyle(
        dpi=s.dpi,
        font_size=s.font_size,
        line_width=s.line_width,
        figure_size=tuple(s.figure_size),
        palette=s.palette,
        write_metadata=s.write_metadata,
    )


def _sources(args, cfg: AppConfig):
    if args.command == "files":
        site = Site(station_num=args.station_num, id=args.site_name.lower(), name=args.site_name)
        fd = FileData(site=site, model=args.model, start=args.start, end=args.end, files=list(args.files))
        return load_from_files(fd)
    arch = Archive.connect(getattr(args, "archive", None) or cfg.archive_root)
    if args.command == "site":
        model = Model.parse(args.model)
        if args.now is None:
            return load_site(arch, args.site, model, cfg.days_back)
        return load_for_site_and_date_and_time(arch, args.site, model, args.now, cfg.days_back)
    models = [Model.parse(m) for m in cfg.models] if cfg.models else None
    return load_all_sites_and_models(arch, cfg.days_back, models=models)


def run(args, cfg: AppConfig) -> List[Path]:
    style = _style(cfg)
    if args.command == "render":
        return render_saved(args.ens, args.mrg, args.hm, cfg.output_dir, style, summary=cfg.summary)
    items = _sources(args, cfg)
    if args.save:
        return save_all(items, cfg.data_dir)
    return plot_all(items, cfg.output_dir, style, summary=cfg.summary)


def main(argv=None) -> int:
    args = parse_args(argv)
    overrides = {
        "days_back": getattr(args, "days_back", None),
        "log_level": args.log_level,
        "summary": args.summary,
    }
    if args.output_dir is not None:
        overrides["data_dir" if args.save else "output_dir"] = args.output_dir
    try:
        cfg = load_app_config(args.config, overrides=overrides)
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("%s", e)
        return 1
    if args.figure_dpi:
        cfg.style.dpi = args.figure_dpi

    logging.basicConfig(level=getattr(logging, cfg.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "validate-config":
        logger.info("Configuration is valid: %s", cfg.model_dump_json())
        return 0

    try:
        outputs = run(args, cfg)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1
    # loaders log and skip what they cannot read; a targeted run must produce something
    if not outputs and args.command in ("site", "files", "render"):
        logger.error("No output produced by '%s'", args.command)
        return 1

    out_dir = cfg.data_dir if args.save else cfg.output_dir
    manifest = RunManifest(
        config_hash=hash_config(cfg.model_dump(mode="json")),
        command=args.command,
        outputs=[str(p) for p in outputs],
        env=capture_env(),
    )
    manifest.save(Path(out_dir) / "manifest.json")
    logger.info("Wrote %d file(s) to %s", len(outputs), out_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
