# threadart_app/lines.py

import math
from typing import Sequence

import numpy as np


def trace_pixels(p0: Sequence[float], p1: Sequence[float], resolution: int) -> np.ndarray:
    """
    Flat pixel indices (row * resolution + col) hit by the segment p0 -> p1,
    in order from p0. Samples are rounded half-up to the nearest pixel;
    repeated indices are kept and samples off the canvas are dropped.
    """
    x0, y0 = float(p0[0]), float(p0[1])
    x1, y1 = float(p1[0]), float(p1[1])
    steps = max(2, math.ceil(max(abs(x1 - x0), abs(y1 - y0))))

    k = np.arange(steps + 1, dtype=np.float64)
    xs = np.floor(x0 + k * ((x1 - x0) / steps) + 0.5).astype(np.int64)
    ys = np.floor(y0 + k * ((y1 - y0) / steps) + 0.5).astype(np.int64)

    keep = (xs >= 0) & (xs < resolution) & (ys >= 0) & (ys < resolution)
    return ys[keep] * resolution + xs[keep]
