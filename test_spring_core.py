"""
Unit tests for spring_core.py - Functional Core

Closed-form spring progress, settling measurement and the spring helper.
"""

import pytest

from edit_types import SpringParams
from spring_core import (
    SETTLE_CONFIRM_FRAMES,
    measure_spring,
    spring,
    spring_progress,
    spring_response,
)


UNDER = SpringParams(damping=10, stiffness=100, mass=1)
CRITICAL = SpringParams(damping=20, stiffness=100, mass=1)
OVER = SpringParams(damping=100, stiffness=30, mass=2)


# ============================================================================
# Level 1: Smoke Tests
# ============================================================================

def test_zero_at_trigger():
    for params in (UNDER, CRITICAL, OVER):
        assert spring_progress(0, 30, params) == 0.0


def test_zero_before_trigger():
    assert spring_progress(-5, 30, UNDER) == 0.0


def test_converges_to_one():
    for params in (UNDER, CRITICAL, OVER):
        assert spring_progress(3000, 30, params) == pytest.approx(1.0, abs=1e-4)


def test_invalid_fps_rejected():
    with pytest.raises(ValueError):
        spring_progress(10, 0, UNDER)


def test_invalid_params_rejected():
    with pytest.raises(ValueError):
        SpringParams(damping=0)
    with pytest.raises(ValueError):
        SpringParams(mass=-1)


# ============================================================================
# Level 2: Property Tests
# ============================================================================

class TestSpringShape:
    """Damping regimes"""

    def test_underdamped_overshoots(self):
        peak = max(spring_progress(f, 30, UNDER) for f in range(0, 60))
        assert peak > 1.0

    def test_critically_damped_does_not_overshoot(self):
        values = [spring_progress(f, 30, CRITICAL) for f in range(0, 120)]
        assert max(values) <= 1.0
        assert values == sorted(values)

    def test_overdamped_is_monotonic_and_slow(self):
        values = [spring_progress(f, 30, OVER) for f in range(0, 120)]
        assert values == sorted(values)
        assert values[30] < spring_progress(30, 30, CRITICAL)

    def test_continuous_near_critical(self):
        below = SpringParams(damping=19.999, stiffness=100, mass=1)
        above = SpringParams(damping=20.001, stiffness=100, mass=1)
        t = 0.2
        assert spring_response(t, below) == pytest.approx(spring_response(t, CRITICAL), abs=1e-3)
        assert spring_response(t, above) == pytest.approx(spring_response(t, CRITICAL), abs=1e-3)

    def test_pure_in_arguments(self):
        # Evaluating out of order gives the same values
        forward = [spring_progress(f, 30, UNDER) for f in range(50)]
        backward = [spring_progress(f, 30, UNDER) for f in reversed(range(50))]
        assert forward == list(reversed(backward))


class TestMeasureSpring:
    """Settling measurement"""

    def test_finite_and_settled_afterwards(self):
        frames = measure_spring(30, UNDER)
        assert frames >= 1
        for f in range(frames, frames + SETTLE_CONFIRM_FRAMES):
            assert abs(1.0 - spring_progress(f, 30, UNDER)) < 0.005

    def test_stiffer_spring_settles_sooner(self):
        soft = measure_spring(30, SpringParams(damping=15, stiffness=50))
        stiff = measure_spring(30, SpringParams(damping=15, stiffness=400))
        assert stiff < soft

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValueError):
            measure_spring(30, UNDER, threshold=0)


class TestSpringHelper:
    """from/to mapping, delay, stretching and clamping"""

    def test_range_mapping(self):
        assert spring(0, 30, OVER, from_value=1.4, to_value=1.05) == 1.4
        assert spring(3000, 30, OVER, from_value=1.4, to_value=1.05) == pytest.approx(1.05, abs=1e-4)

    def test_delay(self):
        assert spring(10, 30, UNDER, delay=10) == 0.0
        assert spring(11, 30, UNDER, delay=10) == spring_progress(1, 30, UNDER)

    def test_overshoot_clamping(self):
        values = [spring(f, 30, UNDER, overshoot_clamping=True) for f in range(60)]
        assert max(values) <= 1.0

    def test_duration_stretch_settles_in_requested_frames(self):
        value = spring(40, 30, UNDER, duration_in_frames=40)
        assert abs(1.0 - value) < 0.005

    def test_invalid_duration_rejected(self):
        with pytest.raises(ValueError):
            spring(5, 30, UNDER, duration_in_frames=0)
