from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pathlib import Path


def hash_config(cfg: Dict[str, Any]) -> str:
    data = json.dumps(cfg, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


@dataclass
class RunManifest:
    config_hash: str
    command: str
    outputs: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds"))

    def save(self, path: str | Path) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(asdict(self), indent=2))


def capture_env(keys: Optional[list[str]] = None) -> Dict[str, str]:
    keys = keys or ["USER", "HOSTNAME", "MPLBACKEND", "PYTHONPATH"]
    out: Dict[str, str] = {}
    for k in keys:
        v = os.environ.get(k)
        if v:
            out[k] = v
    return out
