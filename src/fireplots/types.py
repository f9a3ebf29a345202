from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

# Preferred float array type for public APIs
FloatArray = NDArray[np.float64]


class BufkitParseError(ValueError):
    """Raised when Bufkit text cannot be parsed into soundings."""


class AnalysisError(ValueError):
    """Raised when a sounding computation cannot be completed."""
