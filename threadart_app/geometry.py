# threadart_app/geometry.py

import math
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .models import ConfigurationError

# usable interior is slightly inset from the canvas edge
FRAME_RADIUS = 0.98


@dataclass(frozen=True)
class CircleFrame:
    num_pins: int
    start_angle: float = 0.0
    shape = "circle"

    def __post_init__(self):
        _check_num_pins(self.num_pins)


@dataclass(frozen=True)
class EllipseFrame:
    num_pins: int
    start_angle: float = 0.0
    ratio: float = 0.75
    shape = "ellipse"

    def __post_init__(self):
        _check_num_pins(self.num_pins)
        _check_ratio("ellipse_ratio", self.ratio)


@dataclass(frozen=True)
class RectangleFrame:
    num_pins: int
    start_angle: float = 0.0
    # width / height
    ratio: float = 1.33
    shape = "rectangle"

    def __post_init__(self):
        _check_num_pins(self.num_pins)
        _check_ratio("rect_ratio", self.ratio)


Frame = Union[CircleFrame, EllipseFrame, RectangleFrame]

SHAPES = ("circle", "ellipse", "rectangle")


def _check_num_pins(num_pins) -> None:
    if isinstance(num_pins, bool) or not isinstance(num_pins, (int, np.integer)):
        raise ConfigurationError("num_pins", f"expected an integer, got {num_pins!r}")
    if num_pins < 2:
        raise ConfigurationError("num_pins", f"need at least 2 pins, got {num_pins}")


def _check_ratio(name: str, ratio: float) -> None:
    if not ratio > 0:
        raise ConfigurationError(name, f"must be positive, got {ratio}")


def frame_from_params(
    shape: str,
    num_pins: int,
    start_angle: float = 0.0,
    ellipse_ratio: float = 0.75,
    rect_ratio: float = 1.33,
) -> Frame:
    """
    Build the frame variant for `shape` from flat form values; only the
    ratio belonging to that shape is kept.
    """
    if shape == "circle":
        return CircleFrame(num_pins, start_angle)
    if shape == "ellipse":
        return EllipseFrame(num_pins, start_angle, ellipse_ratio)
    if shape == "rectangle":
        return RectangleFrame(num_pins, start_angle, rect_ratio)
    raise ConfigurationError("shape", f"unknown shape '{shape}'. Valid options: {', '.join(SHAPES)}")


def _rect_half_extents(ratio: float) -> Tuple[float, float]:
    if ratio >= 1:
        return 1.0, 1.0 / ratio
    return ratio, 1.0


def frame_half_extents(frame: Frame) -> Tuple[float, float]:
    """Half width and half height of the frame outline at radius 1."""
    if isinstance(frame, RectangleFrame):
        return _rect_half_extents(frame.ratio)
    if isinstance(frame, EllipseFrame):
        return 1.0, frame.ratio
    return 1.0, 1.0


def _math_angles(num_pins: int, start_angle: float) -> np.ndarray:
    # clock angle: 0 = top, clockwise -> standard counter-clockwise from +x
    clock = np.radians(start_angle + 360.0 * np.arange(num_pins) / num_pins)
    return math.pi / 2 - clock


def _circle_pins(frame: CircleFrame) -> np.ndarray:
    angles = _math_angles(frame.num_pins, frame.start_angle)
    return np.column_stack([np.cos(angles), np.sin(angles)])


def _ellipse_pins(frame: EllipseFrame) -> np.ndarray:
    angles = _math_angles(frame.num_pins, frame.start_angle)
    pts = np.column_stack([np.cos(angles), frame.ratio * np.sin(angles)])
    return pts / np.abs(pts).max(axis=1, keepdims=True)


def _rectangle_pins(frame: RectangleFrame) -> np.ndarray:
    n = frame.num_pins
    half_w, half_h = _rect_half_extents(frame.ratio)
    perimeter = 4 * (half_w + half_h)

    pts = np.empty((n, 2), dtype=np.float64)
    for i in range(n):
        t = i / n * perimeter
        if t < 2 * half_w:
            # top edge, left to right
            x, y = -half_w + t, half_h
        elif t < 2 * half_w + 2 * half_h:
            # right edge, downwards
            x, y = half_w, half_h - (t - 2 * half_w)
        elif t < 4 * half_w + 2 * half_h:
            # bottom edge, right to left
            x, y = half_w - (t - (2 * half_w + 2 * half_h)), -half_h
        else:
            # left edge, upwards
            x, y = -half_w, -half_h + (t - (4 * half_w + 2 * half_h))
        pts[i] = (x, y)

    # perimeter walk starts at the top-left corner; shift so pin 1 sits
    # nearest the requested start angle
    desired = math.pi / 2 - math.radians(frame.start_angle)
    angles = np.arctan2(pts[:, 1], pts[:, 0])
    delta = np.abs((angles - desired + math.pi) % (2 * math.pi) - math.pi)
    best_k = int(np.argmin(delta))
    return np.roll(pts, -best_k, axis=0)


_PIN_LAYOUTS = {
    CircleFrame: _circle_pins,
    EllipseFrame: _ellipse_pins,
    RectangleFrame: _rectangle_pins,
}


def compute_pin_positions(frame: Frame, logger: Optional[logging.Logger] = None) -> np.ndarray:
    """
    Pin coordinates in normalized [-1, 1] space, +y up, as an array of
    shape (num_pins, 2). Row k holds pin k+1.
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    layout = _PIN_LAYOUTS.get(type(frame))
    if layout is None:
        raise ConfigurationError("shape", f"unsupported frame {frame!r}")
    pins = layout(frame)
    logger.debug(
        f"compute_pin_positions: shape={frame.shape}, num_pins={frame.num_pins}, "
        f"start_angle={frame.start_angle}"
    )
    return pins


def _check_resolution(resolution: int) -> None:
    if resolution <= 0:
        raise ConfigurationError("resolution", f"must be positive, got {resolution}")


def coords_to_pixels(pins: np.ndarray, resolution: int) -> np.ndarray:
    """Map normalized pins onto a resolution x resolution canvas (rows grow downwards)."""
    _check_resolution(resolution)
    pins = np.asarray(pins, dtype=np.float64)
    scale = resolution - 1
    px = np.empty_like(pins)
    px[:, 0] = (pins[:, 0] + 1) * 0.5 * scale
    px[:, 1] = (1 - (pins[:, 1] + 1) * 0.5) * scale
    return px


def pixels_to_coords(pins_px: np.ndarray, resolution: int) -> np.ndarray:
    """Inverse of coords_to_pixels."""
    _check_resolution(resolution)
    if resolution == 1:
        raise ConfigurationError("resolution", "a 1 pixel canvas cannot be mapped back")
    pins_px = np.asarray(pins_px, dtype=np.float64)
    scale = resolution - 1
    coords = np.empty_like(pins_px)
    coords[:, 0] = pins_px[:, 0] / scale * 2 - 1
    coords[:, 1] = (1 - pins_px[:, 1] / scale) * 2 - 1
    return coords


def _inside_circle(x, y, r, frame):
    return x * x + y * y <= r * r


def _inside_ellipse(x, y, r, frame):
    a = r
    b = r * frame.ratio
    return (x * x) / (a * a) + (y * y) / (b * b) <= 1


def _inside_rectangle(x, y, r, frame):
    half_w, half_h = _rect_half_extents(frame.ratio)
    return (np.abs(x) <= half_w * r) & (np.abs(y) <= half_h * r)


_INSIDE_TESTS = {
    CircleFrame: _inside_circle,
    EllipseFrame: _inside_ellipse,
    RectangleFrame: _inside_rectangle,
}


def is_inside_frame(x, y, frame: Frame, radius: float = FRAME_RADIUS):
    """
    True where the normalized point (x, y) lies within the frame shrunk by
    `radius`. Works on scalars and on numpy arrays alike.
    """
    test = _INSIDE_TESTS.get(type(frame))
    if test is None:
        raise ConfigurationError("shape", f"unsupported frame {frame!r}")
    result = test(x, y, radius, frame)
    if np.ndim(result) == 0:
        return bool(result)
    return result
