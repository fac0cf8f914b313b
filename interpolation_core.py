"""
Interpolation Core - Functional Core

Pure functions for mapping a scalar (usually a frame number) through ordered
breakpoints to an output range, plus the easing curves used to remap the
in-segment position. Every fade, slide and color ramp in the edit is built on
interpolate().

No side effects, no I/O - only math.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple


Easing = Callable[[float], float]

CLAMP = "clamp"
HOLD = "hold"
EXTEND = "extend"
IDENTITY = "identity"

EXTRAPOLATION_POLICIES = (CLAMP, HOLD, EXTEND, IDENTITY)


# ============================================================================
# Validation
# ============================================================================

def validate_breakpoints(breakpoints: Sequence[float], values: Sequence[float]) -> None:
    """Check a breakpoint curve definition

    Args:
        breakpoints: Input positions, must be strictly increasing
        values: Output values, one per breakpoint

    Raises:
        ValueError: If fewer than two points, lengths differ, or the
            breakpoints are not strictly increasing
    """
    if len(breakpoints) != len(values):
        raise ValueError(
            f"Breakpoints and values must have the same length "
            f"({len(breakpoints)} != {len(values)})"
        )
    if len(breakpoints) < 2:
        raise ValueError("An interpolation curve needs at least two breakpoints")
    for i in range(1, len(breakpoints)):
        if not breakpoints[i] > breakpoints[i - 1]:
            raise ValueError(
                f"Breakpoints must be strictly increasing, got "
                f"{breakpoints[i - 1]} then {breakpoints[i]} at index {i}"
            )


def _validate_policy(policy: str) -> None:
    if policy not in EXTRAPOLATION_POLICIES:
        raise ValueError(
            f"Unknown extrapolation policy {policy!r}, "
            f"expected one of {EXTRAPOLATION_POLICIES}"
        )


# ============================================================================
# Interpolation
# ============================================================================

def _lerp(a: float, b: float, t: float) -> float:
    # Written so t=0 gives exactly a and t=1 gives exactly b
    return a * (1.0 - t) + b * t


def _extrapolate(
    x: float,
    x0: float,
    x1: float,
    y0: float,
    y1: float,
    boundary_value: float,
    policy: str
) -> float:
    if policy in (CLAMP, HOLD):
        return boundary_value
    # extend / identity: continue the boundary segment's slope
    slope = (y1 - y0) / (x1 - x0)
    return y0 + (x - x0) * slope


def interpolate(
    x: float,
    breakpoints: Sequence[float],
    values: Sequence[float],
    easing: Optional[Easing] = None,
    extrapolate_left: str = EXTEND,
    extrapolate_right: str = EXTEND
) -> float:
    """Map x through a piecewise curve

    Args:
        x: Input value (typically a frame number or a spring progress)
        breakpoints: Strictly increasing input positions
        values: Output value at each breakpoint
        easing: Optional remap of the in-segment position t (0-1 -> 0-1)
        extrapolate_left: Policy below the first breakpoint
            ('clamp'/'hold' -> first value, 'extend'/'identity' -> linear continuation)
        extrapolate_right: Policy above the last breakpoint

    Returns:
        Interpolated value. Exactly values[i] when x == breakpoints[i].

    Raises:
        ValueError: On an invalid curve or unknown policy

    Examples:
        >>> interpolate(5, [0, 10], [0, 1])
        0.5
        >>> interpolate(-5, [0, 10], [0, 1], extrapolate_left='clamp')
        0.0
        >>> interpolate(30, [25, 30, 40], [0, 0.9, 0])
        0.9
    """
    validate_breakpoints(breakpoints, values)
    _validate_policy(extrapolate_left)
    _validate_policy(extrapolate_right)

    last = len(breakpoints) - 1

    if x < breakpoints[0]:
        return _extrapolate(
            x, breakpoints[0], breakpoints[1], values[0], values[1],
            values[0], extrapolate_left
        )
    if x > breakpoints[last]:
        return _extrapolate(
            x, breakpoints[last - 1], breakpoints[last], values[last - 1], values[last],
            values[last], extrapolate_right
        )

    # Locate segment i such that breakpoints[i] <= x <= breakpoints[i+1]
    for i in range(last):
        if x == breakpoints[i]:
            return values[i]
        if x <= breakpoints[i + 1]:
            if x == breakpoints[i + 1]:
                return values[i + 1]
            t = (x - breakpoints[i]) / (breakpoints[i + 1] - breakpoints[i])
            if easing is not None:
                t = easing(t)
            return _lerp(values[i], values[i + 1], t)

    return values[last]


@dataclass(frozen=True)
class AnimationCurve:
    """Validated breakpoint curve, reusable across frames

    Validation happens once, at construction, so a malformed curve fails before
    any frame is rendered.

    Examples:
        >>> flash = AnimationCurve((25, 30, 40), (0.0, 0.9, 0.0), left=CLAMP, right=CLAMP)
        >>> flash(30)
        0.9
    """
    breakpoints: Tuple[float, ...]
    values: Tuple[float, ...]
    easing: Optional[Easing] = None
    left: str = EXTEND
    right: str = EXTEND

    def __post_init__(self):
        object.__setattr__(self, 'breakpoints', tuple(self.breakpoints))
        object.__setattr__(self, 'values', tuple(self.values))
        validate_breakpoints(self.breakpoints, self.values)
        _validate_policy(self.left)
        _validate_policy(self.right)

    def __call__(self, x: float) -> float:
        return interpolate(
            x, self.breakpoints, self.values,
            easing=self.easing,
            extrapolate_left=self.left,
            extrapolate_right=self.right
        )


def clamp01(value: float) -> float:
    """Clamp to the 0.0-1.0 range"""
    return max(0.0, min(1.0, value))


# ============================================================================
# Easing Curves
# ============================================================================

def linear(t: float) -> float:
    return t


def quad(t: float) -> float:
    return t * t


def cubic(t: float) -> float:
    return t * t * t


def poly(n: float) -> Easing:
    """Power curve t**n"""
    def _poly(t: float) -> float:
        return t ** n
    return _poly


def sin(t: float) -> float:
    return 1.0 - math.cos((t * math.pi) / 2.0)


def circle(t: float) -> float:
    return 1.0 - math.sqrt(max(0.0, 1.0 - t * t))


def exp(t: float) -> float:
    if t <= 0.0:
        return 0.0
    return 2.0 ** (10.0 * (t - 1.0))


def back(s: float = 1.70158) -> Easing:
    """Slight pull back before moving forward"""
    def _back(t: float) -> float:
        return t * t * ((s + 1.0) * t - s)
    return _back


def bezier(x1: float, y1: float, x2: float, y2: float) -> Easing:
    """Cubic bezier easing with control points (x1, y1), (x2, y2)

    Solves x(u) = t by Newton iterations with a bisection fallback, then
    returns y(u). End points are exact.

    Raises:
        ValueError: If x1 or x2 is outside 0-1 (x must stay monotonic)
    """
    if not (0.0 <= x1 <= 1.0 and 0.0 <= x2 <= 1.0):
        raise ValueError("Bezier x control points must be within 0-1")

    def _coord(u: float, p1: float, p2: float) -> float:
        inv = 1.0 - u
        return 3.0 * inv * inv * u * p1 + 3.0 * inv * u * u * p2 + u * u * u

    def _slope(u: float, p1: float, p2: float) -> float:
        inv = 1.0 - u
        return 3.0 * inv * inv * p1 + 6.0 * inv * u * (p2 - p1) + 3.0 * u * u * (1.0 - p2)

    def _bezier(t: float) -> float:
        if t <= 0.0:
            return 0.0
        if t >= 1.0:
            return 1.0
        u = t
        for _ in range(8):
            error = _coord(u, x1, x2) - t
            if abs(error) < 1e-7:
                return _coord(u, y1, y2)
            slope = _slope(u, x1, x2)
            if abs(slope) < 1e-6:
                break
            u -= error / slope
        lo, hi = 0.0, 1.0
        u = t
        for _ in range(50):
            x = _coord(u, x1, x2)
            if abs(x - t) < 1e-7:
                break
            if x < t:
                lo = u
            else:
                hi = u
            u = (lo + hi) / 2.0
        return _coord(u, y1, y2)

    return _bezier


def ease_in(easing: Easing) -> Easing:
    return easing


def ease_out(easing: Easing) -> Easing:
    """Mirror an ease-in curve into an ease-out curve"""
    def _out(t: float) -> float:
        return 1.0 - easing(1.0 - t)
    return _out


def ease_in_out(easing: Easing) -> Easing:
    """Ease in for the first half, out for the second"""
    def _in_out(t: float) -> float:
        if t < 0.5:
            return easing(t * 2.0) / 2.0
        return 1.0 - easing((1.0 - t) * 2.0) / 2.0
    return _in_out


# Named presets used by the text reveal animations ("power3.out" etc.)
# powerN follows the tweening convention: power1 = quad, power2 = cubic, ...
_POWER_CURVES: Dict[str, Easing] = {
    "power0": linear,
    "power1": quad,
    "power2": cubic,
    "power3": poly(4),
    "power4": poly(5),
}


def ease_by_name(name: str) -> Easing:
    """Resolve a named easing preset

    Args:
        name: 'linear' or '<curve>.<in|out|inOut>' where curve is one of
            power0..power4, sine, circ, expo

    Returns:
        Easing function

    Raises:
        ValueError: For an unknown name

    Examples:
        >>> ease_by_name('power3.out')(1.0)
        1.0
    """
    if name in ("linear", "none"):
        return linear

    curves = dict(_POWER_CURVES)
    curves.update({"sine": sin, "circ": circle, "expo": exp})

    base, _, mode = name.partition(".")
    if base not in curves:
        raise ValueError(f"Unknown easing preset: {name!r}")
    curve = curves[base]
    if mode in ("", "out"):
        return ease_out(curve)
    if mode == "in":
        return ease_in(curve)
    if mode == "inOut":
        return ease_in_out(curve)
    raise ValueError(f"Unknown easing mode in {name!r}")
