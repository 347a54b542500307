# threadart_app/models.py
#
# Plain value types shared by the engine and the web layer.
# (No ORM models: nothing here is persisted.)

import enum
from dataclasses import dataclass
from typing import Tuple

import numpy as np


class ConfigurationError(ValueError):
    """
    Raised when a frame or generation parameter makes the geometry or the
    generation run structurally impossible. `parameter` names the offender.
    """
    def __init__(self, parameter: str, message: str):
        super().__init__(f"{parameter}: {message}")
        self.parameter = parameter


class GenerationState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Connection:
    step: int
    start_pin: int
    end_pin: int

    def as_dict(self) -> dict:
        return {"step": self.step, "start_pin": self.start_pin, "end_pin": self.end_pin}


@dataclass(frozen=True)
class GenerationConfig:
    """
    Parameters of one generation run.

    :param num_lines: how many connections to attempt
    :param start_pin: 1-based pin the thread starts at (clamped into range at run time)
    :param min_pin_gap: minimum cyclic index distance between the two ends of a line
    :param alpha: per-line darkening strength, the field is multiplied by 1 - alpha
    :param resolution: side length of the square canvas in pixels
    """
    num_lines: int = 3500
    start_pin: int = 1
    min_pin_gap: int = 20
    alpha: float = 0.05
    resolution: int = 600

    def __post_init__(self):
        for name in ("num_lines", "start_pin", "min_pin_gap", "resolution"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ConfigurationError(name, f"expected an integer, got {value!r}")
        if self.resolution <= 0:
            raise ConfigurationError("resolution", f"must be positive, got {self.resolution}")
        if self.num_lines < 0:
            raise ConfigurationError("num_lines", f"must be >= 0, got {self.num_lines}")
        if self.min_pin_gap < 0:
            raise ConfigurationError("min_pin_gap", f"must be >= 0, got {self.min_pin_gap}")

    @property
    def darkening_factor(self) -> float:
        return min(1.0, max(0.0, 1.0 - self.alpha))


@dataclass(frozen=True)
class GenerationResult:
    connections: Tuple[Connection, ...]
    field: np.ndarray
    state: GenerationState

    @property
    def cancelled(self) -> bool:
        return self.state is GenerationState.CANCELLED
