# threadart_app/pattern_algorithms/greedy.py

import time
import logging
from typing import List, Optional

import numpy as np

from .base import PatternAlgorithm, ProgressCallback, ConnectionCallback
from ..lines import trace_pixels
from ..models import (
    ConfigurationError,
    Connection,
    GenerationConfig,
    GenerationResult,
    GenerationState,
)


def line_improvement(current: np.ndarray, target: np.ndarray, indices: np.ndarray, f: float) -> float:
    """
    Drop in summed squared error against `target` if every pixel in
    `indices` were multiplied by `f`. Repeated indices count once per occurrence.
    """
    c = current[indices]
    t = target[indices]
    old_err = c - t
    new_err = c * f - t
    return float(np.sum(old_err * old_err - new_err * new_err))


def candidate_pins(current_pin: int, num_pins: int, min_pin_gap: int) -> List[int]:
    """1-based pins a line from `current_pin` may end at, in ascending order."""
    candidates = []
    for j in range(1, num_pins + 1):
        if j == current_pin:
            continue
        d = abs(j - current_pin)
        if min(d, num_pins - d) >= min_pin_gap:
            candidates.append(j)
    return candidates


class GreedyAlgorithm(PatternAlgorithm):
    """
    Error-driven greedy thread path.

    From the current pin, pick the reachable pin whose line would most reduce
    the squared error between the current canvas and the target when the
    canvas under that line is multiplied by (1 - alpha). Draw it only if it
    helps, record it either way, walk to that pin and repeat.
    """

    # candidates evaluated per step at most; above this a random subset is used
    SAMPLE_CAP = 180

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
        if logger is None:
            logger = logging.getLogger(__name__)
        if rng is None:
            rng = np.random.default_rng()

        res = config.resolution
        target = np.asarray(target, dtype=np.float64).ravel()
        if target.size != res * res:
            raise ConfigurationError(
                "resolution",
                f"target field has {target.size} values, expected {res}x{res}",
            )
        pins = np.asarray(pins, dtype=np.float64)
        num_pins = len(pins)
        if num_pins < 2:
            raise ConfigurationError("num_pins", f"need at least 2 pins, got {num_pins}")
        if progress_interval <= 0:
            raise ConfigurationError("progress_interval", f"must be positive, got {progress_interval}")

        f = config.darkening_factor
        num_lines = config.num_lines
        logger.debug(
            f"[greedy] Starting: pins={num_pins}, lines={num_lines}, "
            f"min_gap={config.min_pin_gap}, alpha={config.alpha}, resolution={res}"
        )
        start_time = time.time()

        # canvas starts blank white
        current = np.ones(res * res, dtype=np.float64)
        connections: List[Connection] = []
        state = GenerationState.RUNNING
        current_pin = min(num_pins, max(1, config.start_pin))

        for step in range(1, num_lines + 1):
            if cancel_event is not None and cancel_event.is_set():
                logger.debug(f"[greedy] Cancelled before step {step}")
                state = GenerationState.CANCELLED
                break

            if step % progress_interval == 0:
                logger.debug(f"[greedy] Line {step} of {num_lines}")
                if on_progress is not None:
                    on_progress(step, num_lines)

            i = current_pin
            candidates = candidate_pins(i, num_pins, config.min_pin_gap)
            if not candidates:
                logger.debug(f"[greedy] No candidates from pin {i}; stopping at step {step}")
                break

            if len(candidates) > self.SAMPLE_CAP:
                sampled = rng.choice(candidates, size=self.SAMPLE_CAP, replace=False).tolist()
            else:
                sampled = candidates

            p0 = pins[i - 1]
            best_j = sampled[0]
            best_improvement = -np.inf
            best_pixels = None
            for j in sampled:
                pixels = trace_pixels(p0, pins[j - 1], res)
                improvement = line_improvement(current, target, pixels, f)
                if improvement > best_improvement:
                    best_improvement = improvement
                    best_j = j
                    best_pixels = pixels

            if best_pixels is not None and best_improvement > 0:
                # multiply.at darkens a repeated index once per occurrence
                np.multiply.at(current, best_pixels, f)

            connection = Connection(step=step, start_pin=i, end_pin=int(best_j))
            connections.append(connection)
            if connection_callback is not None:
                connection_callback(connection)
            current_pin = connection.end_pin

        if state is GenerationState.RUNNING:
            state = GenerationState.COMPLETED

        elapsed = time.time() - start_time
        logger.debug(
            f"[greedy] Done in {elapsed:.2f}s; state={state.value}, connections={len(connections)}"
        )
        return GenerationResult(connections=tuple(connections), field=current, state=state)
