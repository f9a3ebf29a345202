"""Loading Bufkit text from files on disk or from a directory archive.

Every loader is a generator of ``StringData`` items, one per site and
model, suitable for ``fireplots.pipeline.plot_all`` and ``save_all``. A
source that cannot be loaded is logged and skipped.
"""
from __future__ import annotations

import gzip
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

from .sounding import parse_bufkit
from .timeseries import EnsembleList, MetaData, Site
from .types import BufkitParseError

logger = logging.getLogger(__name__)

StringData = EnsembleList  # EnsembleList[str]

_FILE_RE = re.compile(r"^(?P<init>\d{10})Z_(?P<model>[A-Za-z0-9]+)_(?P<site>[A-Za-z0-9]+)\.buf(?:\.gz)?$")


class Model(Enum):
    GFS = "gfs"
    NAM = "nam"
    NAM4KM = "nam4km"

    @property
    def name_str(self) -> str:
        return self.value

    @property
    def num_days(self) -> int:
        """Days of forecast data in each model run."""
        return {Model.GFS: 7, Model.NAM: 4, Model.NAM4KM: 3}[self]

    @classmethod
    def parse(cls, raw: Union[str, "Model"]) -> "Model":
        if isinstance(raw, Model):
            return raw
        token = str(raw).strip().lower()
        for m in cls:
            if m.value == token:
                return m
        raise ValueError(f"Unknown model '{raw}' (expected one of {', '.join(m.value for m in cls)})")


@dataclass
class FileData:
    """Information needed to plot from Bufkit files on disk."""

    site: Site
    model: str
    start: datetime
    end: datetime
    files: List[Path] = field(default_factory=list)


def _read_text(path: Path) -> str:
    if path.suffix == ".gz":
        with gzip.open(path, "rt", encoding="utf-8") as fh:
            return fh.read()
    return path.read_text(encoding="utf-8")


def init_time_of(text: str) -> datetime:
    """Model initialization time: the valid time of the first sounding."""
    soundings = parse_bufkit(text)
    vt = soundings[0].valid_time
    if vt is None:
        raise BufkitParseError("first sounding has no valid time")
    return vt


def load_from_files(file_data: FileData) -> Iterator[EnsembleList]:
    meta = MetaData(
        site=file_data.site,
        model=file_data.model,
        start=file_data.start,
        now=file_data.start,
        end=file_data.end,
    )
    data: List[Tuple[datetime, str]] = []
    for path in file_data.files:
        try:
            text = _read_text(Path(path))
            data.append((init_time_of(text), text))
        except (OSError, BufkitParseError) as e:
            logger.error("Failed to load %s for %s: %s", path, file_data.site.label, e)
            return
    data.sort(key=lambda item: item[0])
    yield EnsembleList(meta=meta, data=data)


class Archive:
    """A directory of Bufkit files.

    Files live in ``<root>/data`` and are named
    ``YYYYMMDDHHZ_<model>_<site>.buf`` (optionally gzipped). Site metadata
    (name, state, station number, ...) may be given in ``<root>/sites.yaml``
    keyed by site id.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self._index: Dict[Tuple[str, Model], List[Tuple[datetime, Path]]] = {}
        self._site_meta: Dict[str, dict] = {}

    @classmethod
    def connect(cls, root: Union[str, Path]) -> "Archive":
        arch = cls(root)
        data_dir = arch.root / "data"
        if not data_dir.is_dir():
            raise FileNotFoundError(f"No archive data directory at {data_dir}")
        arch._load_site_meta()
        arch._build_index(data_dir)
        return arch

    def _load_site_meta(self) -> None:
        path = self.root / "sites.yaml"
        if not path.exists():
            return
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring %s: expected a mapping of site id to metadata", path)
            return
        self._site_meta = {}
        for key, value in raw.items():
            if value is None:
                value = {}
            if not isinstance(value, dict):
                logger.warning("Ignoring site %s in %s: expected a mapping, got %r", key, path, value)
                continue
            self._site_meta[str(key).lower()] = value

    def _build_index(self, data_dir: Path) -> None:
        for path in sorted(data_dir.iterdir()):
            m = _FILE_RE.match(path.name)
            if m is None:
                continue
            try:
                model = Model.parse(m.group("model"))
            except ValueError:
                logger.debug("Skipping %s: unknown model", path.name)
                continue
            init = datetime.strptime(m.group("init"), "%Y%m%d%H")
            key = (m.group("site").lower(), model)
            self._index.setdefault(key, []).append((init, path))
        for runs in self._index.values():
            runs.sort(key=lambda item: item[0])

    def models(self) -> List[Model]:
        return [m for m in Model if any(k[1] is m for k in self._index)]

    def site(self, site_id: str) -> Optional[Site]:
        sid = site_id.lower()
        if not any(k[0] == sid for k in self._index):
            return None
        meta = self._site_meta.get(sid, {})
        station_num = meta.get("station_num")
        return Site(
            station_num=int(station_num) if station_num is not None else None,
            id=sid,
            name=meta.get("name"),
            state=meta.get("state"),
            notes=meta.get("notes"),
            time_zone=meta.get("time_zone"),
        )

    def sites(self, model: Model) -> List[Site]:
        ids = sorted({k[0] for k in self._index if k[1] is model})
        return [s for s in (self.site(sid) for sid in ids) if s is not None]

    def retrieve_all_valid_in(
        self, site_id: str, model: Model, start: datetime, end: datetime
    ) -> Iterator[str]:
        """Text of every run with forecasts valid somewhere in ``[start, end]``."""
        span = timedelta(days=model.num_days)
        for init, path in self._index.get((site_id.lower(), model), []):
            if init <= end and init + span >= start:
                try:
                    yield _read_text(path)
                except OSError as e:
                    logger.error("Failed to read %s: %s", path, e)


def _string_data(
    arch: Archive, site: Site, model: Model, start: datetime, now: datetime, end: datetime
) -> EnsembleList:
    data: List[Tuple[datetime, str]] = []
    for text in arch.retrieve_all_valid_in(site.file_id, model, start, end):
        try:
            data.append((init_time_of(text), text))
        except BufkitParseError as e:
            logger.warning("Skipping unparseable %s run for %s: %s", model.name_str, site.label, e)
    meta = MetaData(site=site, model=model.name_str, start=start, now=now, end=end)
    return EnsembleList(meta=meta, data=data)


def load_for_site_and_date_and_time(
    arch: Archive, site: str, model: Union[str, Model], time: datetime, days_back: int
) -> Iterator[EnsembleList]:
    """Load the runs for one site and model as if the current time were ``time``."""
    model = Model.parse(model)
    site_info = arch.site(site)
    if site_info is None:
        logger.error("Site %s is not in the archive at %s", site, arch.root)
        return
    start = time - timedelta(days=days_back)
    end = time + timedelta(days=model.num_days)
    yield _string_data(arch, site_info, model, start, time, end)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def load_site(arch: Archive, site: str, model: Union[str, Model], days_back: int) -> Iterator[EnsembleList]:
    return load_for_site_and_date_and_time(arch, site, model, utc_now(), days_back)


def load_all_sites_and_models(
    arch: Archive, days_back: int, models: Optional[Sequence[Model]] = None
) -> Iterator[EnsembleList]:
    now = utc_now()
    start = now - timedelta(days=days_back)
    for model in models or arch.models():
        end = now + timedelta(days=model.num_days)
        for site in arch.sites(model):
            yield _string_data(arch, site, model, start, now, end)
