# threadart_app/tests/test_planner.py

import threading

import numpy as np
import pytest
from PIL import Image

from threadart_app.geometry import CircleFrame, compute_pin_positions, coords_to_pixels
from threadart_app.lines import trace_pixels
from threadart_app.models import ConfigurationError, GenerationConfig, GenerationState
from threadart_app.pattern_algorithms.greedy import candidate_pins, line_improvement
from threadart_app.planner import generate_pattern, plan_from_image


def circle_pins(num_pins, resolution):
    return coords_to_pixels(compute_pin_positions(CircleFrame(num_pins)), resolution)


def cyclic_gap(a, b, n):
    d = abs(a - b)
    return min(d, n - d)


def test_first_line_matches_hand_computed_oracle():
    """
    8 pins on a 21px circle, black target, white canvas, alpha 0.5.
    From pin 1 the candidates are pins 3-7 (gap >= 2); every traced sample
    improves the error by 1 - 0.25 = 0.75, so the longest trace wins: the
    vertical diameter to pin 5, 21 samples, improvement 15.75.
    """
    res = 21
    pins = circle_pins(8, res)
    target = np.zeros(res * res)
    config = GenerationConfig(num_lines=1, start_pin=1, min_pin_gap=2, alpha=0.5, resolution=res)

    assert candidate_pins(1, 8, 2) == [3, 4, 5, 6, 7]
    diameter = trace_pixels(pins[0], pins[4], res)
    assert len(diameter) == 21
    assert line_improvement(np.ones(res * res), target, diameter, 0.5) == 15.75

    result = generate_pattern(target, pins, config)

    assert result.state is GenerationState.COMPLETED
    assert [c.as_dict() for c in result.connections] == [{"step": 1, "start_pin": 1, "end_pin": 5}]
    field = result.field.reshape(res, res)
    np.testing.assert_allclose(field[:, 10], 0.5)
    assert np.count_nonzero(result.field < 1.0) == 21


def test_white_target_gives_zero_improvement_and_untouched_field():
    res = 30
    pins = circle_pins(12, res)
    white = np.ones(res * res)
    for j in range(2, 13):
        idx = trace_pixels(pins[0], pins[j - 1], res)
        # nothing to gain; any real darkening moves away from the target
        assert line_improvement(white, white, idx, 1.0) == 0.0
        assert line_improvement(white, white, idx, 0.9) < 0.0

    config = GenerationConfig(num_lines=6, start_pin=1, min_pin_gap=0, alpha=0.1, resolution=res)
    result = generate_pattern(white, pins, config)

    # lines are still recorded so the thread path stays continuous
    assert len(result.connections) == 6
    np.testing.assert_array_equal(result.field, 1.0)
    # the shortest chords lose least; pins 2 and 12 tie and the first wins
    assert result.connections[0].end_pin == 2


def test_alpha_zero_never_changes_field():
    res = 30
    config = GenerationConfig(num_lines=8, start_pin=1, min_pin_gap=0, alpha=0.0, resolution=res)
    result = generate_pattern(np.ones(res * res), circle_pins(12, res), config)
    assert len(result.connections) == 8
    np.testing.assert_array_equal(result.field, 1.0)
    # every candidate scores exactly 0, so the first in order wins each step
    assert [c.end_pin for c in result.connections[:2]] == [2, 1]


def test_zero_lines_returns_blank_field():
    res = 20
    config = GenerationConfig(num_lines=0, start_pin=1, min_pin_gap=1, alpha=0.1, resolution=res)
    result = generate_pattern(np.zeros(res * res), circle_pins(10, res), config)
    assert result.connections == ()
    assert result.state is GenerationState.COMPLETED
    np.testing.assert_array_equal(result.field, 1.0)


def test_large_gap_exhausts_candidates_without_error():
    res = 20
    config = GenerationConfig(num_lines=50, start_pin=1, min_pin_gap=5, alpha=0.1, resolution=res)
    result = generate_pattern(np.zeros(res * res), circle_pins(8, res), config)
    assert result.connections == ()
    assert result.state is GenerationState.COMPLETED


def test_chain_continuity_gap_and_field_range():
    res = 60
    n = 24
    rng = np.random.default_rng(5)
    target = rng.uniform(0, 1, res * res)
    config = GenerationConfig(num_lines=120, start_pin=7, min_pin_gap=4, alpha=0.2, resolution=res)
    result = generate_pattern(target, circle_pins(n, res), config, rng=rng)

    conns = result.connections
    assert len(conns) == 120
    assert conns[0].start_pin == 7
    assert [c.step for c in conns] == list(range(1, 121))
    for prev, nxt in zip(conns, conns[1:]):
        assert prev.end_pin == nxt.start_pin
    for c in conns:
        assert c.start_pin != c.end_pin
        assert 1 <= c.end_pin <= n
        assert cyclic_gap(c.start_pin, c.end_pin, n) >= 4
    assert result.field.min() >= 0.0
    assert result.field.max() <= 1.0


def test_darkening_never_brightens():
    res = 40
    target = np.zeros(res * res)
    pins = circle_pins(16, res)
    before = generate_pattern(target, pins, GenerationConfig(5, 1, 2, 0.3, res)).field
    after = generate_pattern(target, pins, GenerationConfig(10, 1, 2, 0.3, res)).field
    assert np.all(after <= before)


def test_repeated_trace_indices_darken_twice():
    # 1px segment: the middle sample repeats the end pixel
    res = 5
    pins = np.array([[0.0, 0.0], [1.0, 0.0]])
    config = GenerationConfig(num_lines=1, start_pin=1, min_pin_gap=0, alpha=0.5, resolution=res)
    result = generate_pattern(np.zeros(res * res), pins, config)
    assert result.field[0] == 0.5
    assert result.field[1] == 0.25


def test_start_pin_is_clamped():
    res = 20
    config = GenerationConfig(num_lines=1, start_pin=99, min_pin_gap=1, alpha=0.1, resolution=res)
    result = generate_pattern(np.zeros(res * res), circle_pins(10, res), config)
    assert result.connections[0].start_pin == 10


def test_alpha_one_blacks_out_first_line():
    res = 21
    config = GenerationConfig(num_lines=1, start_pin=1, min_pin_gap=2, alpha=1.0, resolution=res)
    result = generate_pattern(np.zeros(res * res), circle_pins(8, res), config)
    assert result.field.min() == 0.0


def test_sampling_is_reproducible_with_seed():
    res = 50
    n = 400  # more candidates than the sampling cap
    rng_target = np.random.default_rng(9)
    target = rng_target.uniform(0, 1, res * res)
    pins = circle_pins(n, res)
    config = GenerationConfig(num_lines=15, start_pin=1, min_pin_gap=10, alpha=0.1, resolution=res)

    a = generate_pattern(target, pins, config, rng=np.random.default_rng(42))
    b = generate_pattern(target, pins, config, rng=np.random.default_rng(42))
    assert a.connections == b.connections
    np.testing.assert_array_equal(a.field, b.field)


def test_cancellation_after_step_ten():
    res = 40
    cancel = threading.Event()

    def on_connection(connection):
        if connection.step == 10:
            cancel.set()

    config = GenerationConfig(num_lines=1000, start_pin=1, min_pin_gap=3, alpha=0.05, resolution=res)
    result = generate_pattern(
        np.zeros(res * res),
        circle_pins(20, res),
        config,
        cancel_event=cancel,
        connection_callback=on_connection,
    )
    assert result.state is GenerationState.CANCELLED
    assert result.cancelled
    assert len(result.connections) <= 10


def test_progress_reported_at_interval():
    res = 30
    calls = []
    config = GenerationConfig(num_lines=25, start_pin=1, min_pin_gap=2, alpha=0.1, resolution=res)
    generate_pattern(
        np.zeros(res * res),
        circle_pins(12, res),
        config,
        on_progress=lambda step, total: calls.append((step, total)),
        progress_interval=10,
    )
    assert calls == [(10, 25), (20, 25)]


def test_unknown_algorithm_raises_value_error():
    config = GenerationConfig(num_lines=1, start_pin=1, min_pin_gap=1, alpha=0.1, resolution=10)
    with pytest.raises(ValueError) as excinfo:
        generate_pattern(np.zeros(100), circle_pins(8, 10), config, algorithm="nope")
    assert "Valid options" in str(excinfo.value)


def test_mismatched_target_size_is_rejected():
    config = GenerationConfig(num_lines=1, start_pin=1, min_pin_gap=1, alpha=0.1, resolution=10)
    with pytest.raises(ConfigurationError) as excinfo:
        generate_pattern(np.zeros(99), circle_pins(8, 10), config)
    assert excinfo.value.parameter == "resolution"


@pytest.mark.parametrize("kwargs, parameter", [
    ({"resolution": 0}, "resolution"),
    ({"num_lines": -1}, "num_lines"),
    ({"min_pin_gap": -2}, "min_pin_gap"),
    ({"start_pin": 1.5}, "start_pin"),
])
def test_generation_config_validation(kwargs, parameter):
    with pytest.raises(ConfigurationError) as excinfo:
        GenerationConfig(**kwargs)
    assert excinfo.value.parameter == parameter


def test_darkening_factor_is_clamped():
    assert GenerationConfig(alpha=0.05).darkening_factor == pytest.approx(0.95)
    assert GenerationConfig(alpha=1.5).darkening_factor == 0.0
    assert GenerationConfig(alpha=-0.5).darkening_factor == 1.0


def test_plan_from_image_end_to_end():
    """A dark bar across a white image should pull threads onto it."""
    img = np.full((80, 80, 3), 255, dtype=np.uint8)
    img[35:45, :] = 0
    config = GenerationConfig(num_lines=40, start_pin=1, min_pin_gap=3, alpha=0.2, resolution=80)
    result = plan_from_image(
        Image.fromarray(img), CircleFrame(36), config, rng=np.random.default_rng(0)
    )
    field = result.field.reshape(80, 80)
    assert len(result.connections) == 40
    assert field[35:45, 10:70].mean() < field[:20, 30:50].mean()
