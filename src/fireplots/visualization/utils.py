from pathlib import Path
from typing import Optional
import json
import logging

logger = logging.getLogger(__name__)


def save_figure(fig, out_file: Path, dpi: int = 100, metadata: Optional[dict] = None) -> Path:
    """Save a figure, with a ``<name>.metadata.json`` sidecar when metadata is given.

    A sidecar that cannot be written is logged; the image is kept.
    """
    out_file = Path(out_file)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    fmt = out_file.suffix.lstrip('.') or 'png'
    fig.savefig(str(out_file), format=fmt, dpi=dpi, bbox_inches='tight')
    if metadata is None:
        return out_file
    meta_file = out_file.with_suffix(out_file.suffix + '.metadata.json')
    try:
        with open(meta_file, 'w', encoding='utf-8') as fh:
            json.dump(metadata, fh, indent=2, default=str)
    except OSError as e:
        logger.exception('Failed to write metadata file %s: %s', meta_file, e)
    return out_file
