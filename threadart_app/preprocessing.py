# threadart_app/preprocessing.py

from PIL import Image, ImageOps
import numpy as np
import logging
from typing import Optional, Union, BinaryIO
import os

from .geometry import Frame, is_inside_frame
from .models import ConfigurationError

# ITU-R 601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

ImageSource = Union[Image.Image, np.ndarray]


def _flatten_alpha(img: Image.Image) -> Image.Image:
    # Composite transparency over white
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA")
        bg = Image.new("RGBA", img.size, (255, 255, 255, 255))
        img = Image.alpha_composite(bg, img)
    return img.convert("RGB")


def load_image(
    path: Union[str, bytes, os.PathLike, BinaryIO],
    logger: Optional[logging.Logger] = None,
) -> Image.Image:
    """
    Open an image from a path or file-like object, honour its EXIF
    orientation and flatten any transparency onto white. Returns an RGB image.
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    logger.debug("Loading source image")
    img = Image.open(path)
    img = ImageOps.exif_transpose(img)
    img = _flatten_alpha(img)
    logger.debug(f"Loaded image of size {img.size}")
    return img


def _as_rgb_image(image: ImageSource) -> Image.Image:
    if isinstance(image, Image.Image):
        return _flatten_alpha(image)
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ConfigurationError("image", f"expected an (H, W, 3|4) array, got shape {arr.shape}")
    mode = "RGBA" if arr.shape[2] == 4 else "RGB"
    return _flatten_alpha(Image.fromarray(arr.astype(np.uint8), mode))


def rasterize_target(
    image: ImageSource,
    resolution: int,
    gamma: float,
    frame: Frame,
    logger: Optional[logging.Logger] = None,
) -> np.ndarray:
    """
    Turn a decoded image into the target intensity field: a flat float64
    array of resolution*resolution values in [0, 1] (1 = white), indexed
    row * resolution + col.

    The image is scaled to cover the square canvas and centred, converted to
    luminance, gamma corrected, and everything outside the frame is blanked.

    :param image: PIL image or (H, W, 3|4) uint8 array
    :param resolution: side length of the output field
    :param gamma: exponent applied to luminance (1.0 = unchanged)
    :param frame: frame whose interior is kept
    :param logger: optional logger to receive debug messages
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    if resolution <= 0:
        raise ConfigurationError("resolution", f"must be positive, got {resolution}")

    img = _as_rgb_image(image)
    src_w, src_h = img.size
    if src_w == 0 or src_h == 0:
        raise ConfigurationError("image", "image has no pixels")

    # scale to cover, centre, crop the overflow
    scale = max(resolution / src_w, resolution / src_h)
    w = max(1, round(src_w * scale))
    h = max(1, round(src_h * scale))
    logger.debug(f"Scaling {src_w}x{src_h} by {scale:.4f} to cover {resolution}x{resolution}")
    scaled = img.resize((w, h), Image.Resampling.LANCZOS)
    canvas = Image.new("RGB", (resolution, resolution), (255, 255, 255))
    canvas.paste(scaled, ((resolution - w) // 2, (resolution - h) // 2))

    rgb = np.asarray(canvas, dtype=np.float64)
    gray = rgb @ LUMA_WEIGHTS / 255.0

    if gamma != 1.0:
        logger.debug(f"Applying gamma correction (gamma={gamma})")
        gray = np.clip(gray, 0.0, 1.0) ** gamma

    logger.debug(f"Masking pixels outside the {frame.shape} frame")
    centre = (resolution - 1) / 2
    rows, cols = np.mgrid[0:resolution, 0:resolution]
    nx = (cols - centre) / (resolution / 2)
    ny = (centre - rows) / (resolution / 2)
    inside = is_inside_frame(nx, ny, frame)
    gray = np.where(inside, gray, 1.0)

    logger.debug("Finished rasterizing target")
    return gray.ravel()
