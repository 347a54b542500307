# threadart_app/config.py

from typing import Any, Dict

# === Configuration ===
# Form defaults for a new pattern. Pin counts of 50-500 and canvas sizes of
# 400-1000 px are the useful range; alpha between 0.02 and 0.15 is typical.
DEFAULTS: Dict[str, Any] = {
    "shape": "circle",
    "num_pins": 200,
    "start_angle": 0.0,
    "ellipse_ratio": 0.75,
    "rect_ratio": 1.33,
    "resolution": 600,
    "gamma": 1.0,
    "num_lines": 3500,
    "start_pin": 1,
    "min_pin_gap": 20,
    "alpha": 0.05,
}

# Quality presets: more lines need lighter threads and allow shorter chords.
PRESETS: Dict[str, Dict[str, Any]] = {
    "draft": {"num_lines": 2000, "alpha": 0.06, "min_pin_gap": 25},
    "normal": {"num_lines": 3500, "alpha": 0.05, "min_pin_gap": 20},
    "high": {"num_lines": 5000, "alpha": 0.04, "min_pin_gap": 15},
    "ultra": {"num_lines": 7000, "alpha": 0.035, "min_pin_gap": 12},
}


def apply_preset(params: Dict[str, Any], preset: str) -> Dict[str, Any]:
    """Return a copy of `params` with the preset's line count, alpha and gap filled in."""
    values = PRESETS.get(preset)
    if values is None:
        valid = ", ".join(PRESETS.keys())
        raise ValueError(f"Unknown preset '{preset}'. Valid options: {valid}")
    merged = dict(params)
    merged.update(values)
    return merged
