# threadart_app/planner.py

from typing import Optional, Tuple
import numpy as np
import logging

# pull in the registry
from .pattern_algorithms import ALGORITHMS
from .pattern_algorithms.base import ProgressCallback, ConnectionCallback
from .geometry import Frame, compute_pin_positions, coords_to_pixels
from .models import GenerationConfig, GenerationResult
from .preprocessing import ImageSource, rasterize_target


def generate_pattern(
    target: np.ndarray,
    pins: np.ndarray,
    config: GenerationConfig,
    algorithm: str = "greedy",
    logger: Optional[logging.Logger] = None,
    *,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event=None,
    rng: Optional[np.random.Generator] = None,
    connection_callback: Optional[ConnectionCallback] = None,
    progress_interval: int = 100,
) -> GenerationResult:
    """
    Dispatch to whichever PatternAlgorithm is registered under `algorithm`,
    passing along an optional logger for SSE streaming and the
    progress / cancellation / per-connection hooks.

    :param target: flat target intensity field
    :param pins: (num_pins, 2) pin positions in pixel space
    :param config: generation parameters
    :param algorithm: key into ALGORITHMS registry
    :param logger: optional Logger to receive debug/info messages
    :returns: GenerationResult with connections, final field and terminal state
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    algo = ALGORITHMS.get(algorithm)
    if algo is None:
        valid = ", ".join(ALGORITHMS.keys())
        logger.error(f"Unknown algorithm '{algorithm}'. Valid options: {valid}")
        raise ValueError(f"Unknown algorithm '{algorithm}'. Valid options: {valid}")

    # delegate to the selected strategy, providing the logger and hooks
    return algo.generate(
        target,
        pins,
        config,
        logger=logger,
        on_progress=on_progress,
        cancel_event=cancel_event,
        rng=rng,
        connection_callback=connection_callback,
        progress_interval=progress_interval,
    )


def prepare_inputs(
    image: ImageSource,
    frame: Frame,
    resolution: int,
    gamma: float = 1.0,
    logger: Optional[logging.Logger] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run the one-off stages before generation: pin pixel positions for
    `resolution` and the masked target field.
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    pins = coords_to_pixels(compute_pin_positions(frame, logger=logger), resolution)
    target = rasterize_target(image, resolution, gamma, frame, logger=logger)
    logger.debug(f"Prepared {len(pins)} pins and a {resolution}x{resolution} target")
    return pins, target


def plan_from_image(
    image: ImageSource,
    frame: Frame,
    config: GenerationConfig,
    gamma: float = 1.0,
    algorithm: str = "greedy",
    logger: Optional[logging.Logger] = None,
    **hooks,
) -> GenerationResult:
    """Image in, thread path out. `hooks` are forwarded to generate_pattern."""
    if logger is None:
        logger = logging.getLogger(__name__)
    pins, target = prepare_inputs(image, frame, config.resolution, gamma, logger=logger)
    return generate_pattern(target, pins, config, algorithm=algorithm, logger=logger, **hooks)
