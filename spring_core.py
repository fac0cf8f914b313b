"""
Spring Core - Functional Core

Closed-form damped harmonic oscillator used for reveal animations.

The spring starts at rest at 0 and is pulled towards 1. Progress is computed
directly from elapsed time, never by stepping a stored velocity, so evaluating
frame N does not require frames 0..N-1 to have been evaluated first.

No side effects, no I/O - only math.
"""

import math
from typing import Optional

from edit_types import SpringParams


DEFAULT_SPRING = SpringParams()

# Frames the spring must stay inside the threshold before it counts as settled
SETTLE_CONFIRM_FRAMES = 20
DEFAULT_REST_THRESHOLD = 0.005
MAX_MEASURE_FRAMES = 100_000


# ============================================================================
# Closed-Form Response
# ============================================================================

def _validate_fps(fps: float) -> None:
    if not fps > 0:
        raise ValueError(f"fps must be positive, got {fps}")


def spring_response(t: float, params: SpringParams) -> float:
    """Step response of a damped spring at time t (seconds)

    Pure function: x'' = -(k/m)(x - 1) - (c/m)x', x(0) = 0, x'(0) = 0.

    Args:
        t: Elapsed time in seconds (>= 0)
        params: Spring parameters

    Returns:
        Position; tends to 1.0, may overshoot when under-damped
    """
    if t <= 0:
        return 0.0

    omega0 = math.sqrt(params.stiffness / params.mass)
    zeta = params.damping / (2.0 * math.sqrt(params.stiffness * params.mass))

    if zeta < 1.0:
        # Under-damped: decaying oscillation around 1
        omega_d = omega0 * math.sqrt(1.0 - zeta * zeta)
        envelope = math.exp(-zeta * omega0 * t)
        return 1.0 - envelope * (
            math.cos(omega_d * t) + (zeta * omega0 / omega_d) * math.sin(omega_d * t)
        )

    if zeta == 1.0:
        # Critically damped
        return 1.0 - math.exp(-omega0 * t) * (1.0 + omega0 * t)

    # Over-damped: sum of two decaying exponentials (avoids cosh/sinh overflow)
    root = math.sqrt(zeta * zeta - 1.0)
    r1 = -omega0 * (zeta - root)
    r2 = -omega0 * (zeta + root)
    remaining = (r2 * math.exp(r1 * t) - r1 * math.exp(r2 * t)) / (r2 - r1)
    return 1.0 - remaining


def spring_progress(
    elapsed_frames: float,
    fps: float,
    params: SpringParams = DEFAULT_SPRING
) -> float:
    """Normalized spring progress after a number of frames

    Args:
        elapsed_frames: Frames since the spring was triggered (negative = not yet)
        fps: Frames per second
        params: Spring parameters

    Returns:
        0.0 before/at trigger, converging to 1.0; overshoot is not clamped

    Examples:
        >>> spring_progress(0, 30)
        0.0
        >>> spring_progress(-10, 30)
        0.0
        >>> abs(spring_progress(600, 30) - 1.0) < 1e-6
        True
    """
    _validate_fps(fps)
    if elapsed_frames <= 0:
        return 0.0
    return spring_response(elapsed_frames / fps, params)


# ============================================================================
# Settling
# ============================================================================

def measure_spring(
    fps: float,
    params: SpringParams = DEFAULT_SPRING,
    threshold: float = DEFAULT_REST_THRESHOLD
) -> int:
    """Number of frames until the spring comes to rest

    The spring counts as settled at the first frame after which it stays
    within `threshold` of 1.0 for SETTLE_CONFIRM_FRAMES consecutive frames.

    Args:
        fps: Frames per second
        params: Spring parameters
        threshold: Maximum distance from rest

    Returns:
        Settling frame count (>= 1)

    Raises:
        ValueError: If threshold is not positive or the spring does not settle
            within MAX_MEASURE_FRAMES
    """
    _validate_fps(fps)
    if not threshold > 0:
        raise ValueError(f"threshold must be positive, got {threshold}")

    def distance(frame: int) -> float:
        return abs(1.0 - spring_progress(frame, fps, params))

    frame = 0
    while distance(frame) >= threshold:
        frame += 1
        if frame > MAX_MEASURE_FRAMES:
            raise ValueError("Spring does not settle within the measurement limit")

    finished = frame
    confirmed = 0
    while confirmed < SETTLE_CONFIRM_FRAMES:
        frame += 1
        if frame > MAX_MEASURE_FRAMES:
            raise ValueError("Spring does not settle within the measurement limit")
        if distance(frame) >= threshold:
            confirmed = 0
            finished = frame + 1
        else:
            confirmed += 1

    return max(1, finished)


# ============================================================================
# Spring Helper (delay, range, stretch, clamping)
# ============================================================================

def spring(
    frame: float,
    fps: float,
    params: SpringParams = DEFAULT_SPRING,
    from_value: float = 0.0,
    to_value: float = 1.0,
    delay: float = 0.0,
    duration_in_frames: Optional[float] = None,
    overshoot_clamping: bool = False
) -> float:
    """Spring animation between two values

    Args:
        frame: Current local frame
        fps: Frames per second
        params: Spring parameters
        from_value: Value before the spring triggers
        to_value: Rest value
        delay: Frames to wait before triggering
        duration_in_frames: Stretch time so the spring settles in this many frames
        overshoot_clamping: Clamp overshoot to the [from, to] range

    Returns:
        Animated value

    Examples:
        >>> spring(0, 30, from_value=1.4, to_value=1.05)
        1.4
    """
    elapsed = frame - delay
    if duration_in_frames is not None:
        if not duration_in_frames > 0:
            raise ValueError(f"duration_in_frames must be positive, got {duration_in_frames}")
        natural = measure_spring(fps, params)
        elapsed = elapsed * natural / duration_in_frames

    progress = spring_progress(elapsed, fps, params)
    if overshoot_clamping:
        progress = min(progress, 1.0)
    return from_value + (to_value - from_value) * progress
