"""Centralized helper for loading `config.yaml` into an `AppConfig`.

Values come from three places, later ones winning: the YAML file,
environment variables prefixed with `FIREPLOTS_` (nested keys joined with
underscores, e.g. `FIREPLOTS_STYLE_DPI=150`), and explicit overrides such
as command line flags.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from fireplots.core.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path("config.yaml")
ENV_PREFIX = "FIREPLOTS_"


def load_config(path: str | Path = DEFAULT_PATH) -> Dict[str, Any]:
    """Load YAML config from the provided file path and return a dict.

    A missing file gives an empty dict; a file that is not a mapping raises
    ValueError.
    """
    p = Path(path)
    if not p.exists():
        logger.debug("Config file not found: %s", p)
        return {}
    with p.open("r", encoding="utf-8") as fh:
        cfg = yaml.safe_load(fh) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{p} must contain a mapping at the top level")
    return cfg


def _sanitize_key(k: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in k).upper()


def _parse_env_value(v: str) -> Any:
    s = v.strip()
    if s.lower() in {"true", "yes", "on"}:
        return True
    if s.lower() in {"false", "no", "off"}:
        return False
    if s.startswith("[") or s.startswith("{"):
        try:
            return json.loads(s)
        except json.JSONDecodeError:
            return s
    return s


def override_config_from_env(cfg: Dict[str, Any], environ: Optional[Mapping[str, str]] = None,
                             prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Return a copy of ``cfg`` with `FIREPLOTS_*` variables applied.

    Top-level fields and fields of nested models (``style``) can be set.
    """
    environ = os.environ if environ is None else environ
    out = {k: (dict(v) if isinstance(v, dict) else v) for k, v in cfg.items()}
    for name, field in AppConfig.model_fields.items():
        key = prefix + _sanitize_key(name)
        if key in environ:
            out[name] = _parse_env_value(environ[key])
        sub = field.annotation
        if isinstance(sub, type) and hasattr(sub, "model_fields"):
            for sub_name in sub.model_fields:
                sub_key = f"{key}_{_sanitize_key(sub_name)}"
                if sub_key in environ:
                    nested = out.get(name)
                    nested = dict(nested) if isinstance(nested, dict) else {}
                    nested[sub_name] = _parse_env_value(environ[sub_key])
                    out[name] = nested
    return out


def load_app_config(path: str | Path = DEFAULT_PATH, overrides: Optional[Mapping[str, Any]] = None,
                    environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load, apply environment and explicit overrides, and validate.

    Overrides whose value is None are ignored. Raises ValueError on invalid
    configuration.
    """
    cfg = override_config_from_env(load_config(path), environ=environ)
    for key, value in (overrides or {}).items():
        if value is not None:
            cfg[key] = value
    try:
        return AppConfig.model_validate(cfg)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
