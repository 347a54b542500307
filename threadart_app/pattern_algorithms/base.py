# threadart_app/pattern_algorithms/base.py

from typing import Callable, Optional
import logging

import numpy as np

from ..models import Connection, GenerationConfig, GenerationResult


ProgressCallback = Callable[[int, int], None]
ConnectionCallback = Callable[[Connection], None]


class PatternAlgorithm:
    """
    Interface for any target-field -> connection-sequence algorithm.
    """
    def generate(
        self,
        target: np.ndarray,
        pins: np.ndarray,
        config: GenerationConfig,
        logger: Optional[logging.Logger] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event=None,
        rng: Optional[np.random.Generator] = None,
        connection_callback: Optional[ConnectionCallback] = None,
        progress_interval: int = 100,
    ) -> GenerationResult:
        """
        Given a target intensity field and pin pixel positions, return the
        connection path and the final intensity field.

        :param target: flat target field of length config.resolution ** 2
        :param pins: (num_pins, 2) pixel coordinates, row k = pin k+1
        :param config: generation parameters
        :param logger: Optional logger for debug/info messages
        :param on_progress: called as on_progress(step, num_lines) every
                            `progress_interval` steps
        :param cancel_event: anything with is_set(); checked before each step
        :param rng: random source for candidate sampling
        :param connection_callback: called with each Connection as it is made
        """
        raise NotImplementedError("Must implement generate()")
