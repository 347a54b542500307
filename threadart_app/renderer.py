# threadart_app/renderer.py

import math
import logging
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw

from .geometry import (
    FRAME_RADIUS,
    Frame,
    compute_pin_positions,
    coords_to_pixels,
    frame_half_extents,
)
from .models import ConfigurationError

BACKGROUND = (15, 23, 42)
OUTLINE = (71, 85, 105)
PIN = (100, 116, 139)
LABELLED_PIN = (96, 165, 250)
FIRST_PIN = (248, 113, 113)
LABEL = (241, 245, 249)


def to_display_buffer(field: np.ndarray, resolution: int) -> np.ndarray:
    """
    Grey RGBA buffer of shape (resolution, resolution, 4) for an intensity
    field: each channel is round(value * 255), alpha fully opaque.
    """
    field = np.asarray(field, dtype=np.float64).ravel()
    if field.size != resolution * resolution:
        raise ConfigurationError(
            "resolution", f"field has {field.size} values, expected {resolution}x{resolution}"
        )
    grey = np.floor(field * 255 + 0.5).clip(0, 255).astype(np.uint8)
    rgba = np.empty((resolution * resolution, 4), dtype=np.uint8)
    rgba[:, :3] = grey[:, None]
    rgba[:, 3] = 255
    return rgba.reshape(resolution, resolution, 4)


def to_image(field: np.ndarray, resolution: int) -> Image.Image:
    return Image.fromarray(to_display_buffer(field, resolution), "RGBA")


def pin_labels_to_show(num_pins: int) -> set[int]:
    """Pin numbers worth labelling on a preview: ends, quarters and a regular stride."""
    q = num_pins // 4
    labels = {1, q + 1, 2 * q + 1, 3 * q + 1, num_pins}
    step = max(1, num_pins // 12)
    labels.update(range(1, num_pins + 1, step))
    return labels


def render_frame_preview(
    frame: Frame,
    size: int,
    logger: Optional[logging.Logger] = None
) -> Image.Image:
    """
    Draw the frame outline, every pin and a subset of pin numbers, so the
    pin numbering can be checked against the physical frame before generating.
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    logger.debug(
        f"render_frame_preview called with "
        f"shape={frame.shape}, num_pins={frame.num_pins}, size={size}"
    )

    img = Image.new('RGB', (size, size), color=BACKGROUND)
    draw = ImageDraw.Draw(img)

    cx, cy = size / 2, size / 2
    half_w, half_h = frame_half_extents(frame)
    rx = FRAME_RADIUS * half_w * size / 2
    ry = FRAME_RADIUS * half_h * size / 2
    box = [cx - rx, cy - ry, cx + rx, cy + ry]
    if frame.shape in ("circle", "ellipse"):
        draw.ellipse(box, outline=OUTLINE, width=2)
    else:
        draw.rectangle(box, outline=OUTLINE, width=2)

    pins = coords_to_pixels(compute_pin_positions(frame, logger=logger), size)
    labels = pin_labels_to_show(frame.num_pins)
    for idx, (x, y) in enumerate(pins, start=1):
        labelled = idx in labels
        r = 5 if labelled else 3
        colour = FIRST_PIN if idx == 1 else (LABELLED_PIN if labelled else PIN)
        draw.ellipse([x - r, y - r, x + r, y + r], fill=colour)
        if labelled:
            # push the label outwards from the centre
            angle = math.atan2(y - cy, x - cx)
            lx = x + math.cos(angle) * 22
            ly = y + math.sin(angle) * 22
            draw.text((lx, ly), str(idx), fill=LABEL, anchor="mm")

    logger.debug(f"Drew {len(pins)} pins, {len(labels)} labelled")
    return img
