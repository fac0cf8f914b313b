"""
Audio Gain - Functional Core

Pure functions for per-frame audio gain envelopes.
No side effects: no sample decoding, no file I/O, no printing.

Gains are breakpoint curves over scene-local frames. When a track has both a
fade-in and a fade-out, the final gain is the minimum of the two independent
curves so overlapping fades never multiply or add up.

Architecture: Functional core (this file) called by scene renderers; the
imperative shell (render_shell.py) applies gains to decoded samples.
"""

from typing import Optional, Sequence

from edit_types import AudioCue
from interpolation_core import CLAMP, EXTEND, interpolate, clamp01


def fade_in_gain(frame: float, fade_frames: int, level: float) -> float:
    """
    Linear fade-in from silence to `level` over the first frames.

    Args:
        frame: Local frame
        fade_frames: Length of the fade in frames
        level: Gain once the fade completes

    Returns:
        Gain (0.0 at frame 0, `level` from `fade_frames` on)

    Examples:
        >>> fade_in_gain(0, 15, 0.8)
        0.0
        >>> fade_in_gain(30, 15, 0.8)
        0.8
    """
    return clamp01(interpolate(
        frame, [0, fade_frames], [0.0, level],
        extrapolate_left=EXTEND, extrapolate_right=CLAMP
    ))


def fade_out_gain(frame: float, start: float, end: float, level: float) -> float:
    """
    Linear fade-out from `level` to silence between `start` and `end`.

    Returns:
        Gain (`level` before start, 0.0 after end)
    """
    return clamp01(interpolate(
        frame, [start, end], [level, 0.0],
        extrapolate_left=CLAMP, extrapolate_right=CLAMP
    ))


def combined_fade_gain(
    frame: float,
    fade_in_frames: int,
    fade_out_start: float,
    fade_out_end: float,
    level: float
) -> float:
    """
    Fade-in and fade-out combined without double counting.

    The result is min(fade_in, fade_out): where the two fades overlap the
    quieter one wins.
    """
    return min(
        fade_in_gain(frame, fade_in_frames, level),
        fade_out_gain(frame, fade_out_start, fade_out_end, level)
    )


def envelope_gain(
    frame: float,
    breakpoints: Sequence[float],
    levels: Sequence[float]
) -> float:
    """
    Arbitrary gain envelope (e.g. a drone rising, holding and falling).

    Extends linearly before the first breakpoint, clamps after the last, and
    the result is always clamped to 0.0-1.0.
    """
    return clamp01(interpolate(
        frame, breakpoints, levels,
        extrapolate_left=EXTEND, extrapolate_right=CLAMP
    ))


def delayed_cue(
    asset_id: str,
    frame: int,
    start_frame: int,
    gain: float,
    fps: float,
    asset_offset: float = 0.0
) -> Optional[AudioCue]:
    """
    Cue for an asset that starts playing at `start_frame`.

    Args:
        asset_id: Audio asset identifier
        frame: Current local frame
        start_frame: Local frame where playback begins
        gain: Constant gain
        fps: Frames per second
        asset_offset: Seconds trimmed from the start of the asset

    Returns:
        AudioCue positioned inside the asset, or None before playback starts
    """
    if frame < start_frame:
        return None
    return AudioCue(
        asset_id=asset_id,
        gain=clamp01(gain),
        asset_time=asset_offset + (frame - start_frame) / fps
    )
