"""
Effects Core - Functional Core

Procedural effect generators shared by the scene renderers: camera drift,
seeded glitch events, floating accent lines, speed ramps, CRT shutdown, text
reveals and cinematic overlays.

Pure functions only. Anything "random" derives from seeded_random_core, keyed
by (effect name, phase index, artifact index), so an artifact keeps its
identity and static properties from one frame to the next.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from edit_types import Artifact, Layer, TextReveal, Transform, RGB
from interpolation_core import (
    CLAMP,
    Easing,
    clamp01,
    cubic,
    ease_by_name,
    ease_in,
    ease_out,
    interpolate,
)
from seeded_random_core import (
    choice,
    float01,
    numpy_seed,
    phase_active,
    phase_index,
    seed_key,
    signed_offset,
)


# ============================================================================
# Camera Drift
# ============================================================================

def camera_drift(
    frame: float,
    base_scale: float,
    scale_amplitude: float,
    scale_frequency: float,
    x_amplitude: float = 0.0,
    x_frequency: float = 0.0,
    y_amplitude: float = 0.0,
    y_frequency: float = 0.0
) -> Transform:
    """Slow oscillating zoom and pan

    scale = base + sin(frame * scale_frequency) * scale_amplitude
    x     = sin(frame * x_frequency) * x_amplitude
    y     = cos(frame * y_frequency) * y_amplitude

    Deterministic, no randomness involved.
    """
    scale = base_scale + math.sin(frame * scale_frequency) * scale_amplitude
    x = math.sin(frame * x_frequency) * x_amplitude
    y = math.cos(frame * y_frequency) * y_amplitude if y_amplitude else 0.0
    return Transform(scale_x=scale, scale_y=scale, translate_x=x, translate_y=y)


# ============================================================================
# Glitch Events
# ============================================================================

@dataclass(frozen=True)
class GlitchState:
    """Glitch decision for one phase

    Attributes:
        phase: Phase index (frame // phase_length)
        active: Whether a glitch event fires in this phase
        intensity: 0.0 when inactive, else seeded up to max_intensity
    """
    phase: int
    active: bool
    intensity: float


def glitch_state(
    frame: int,
    effect: str = "glitch",
    phase_length: int = 4,
    threshold: float = 0.7,
    max_intensity: float = 0.8
) -> GlitchState:
    """Decide the glitch event for the phase containing `frame`

    Activity seed:  '<effect>-<phase>'
    Intensity seed: '<effect>-i-<phase>'
    """
    phase = phase_index(frame, phase_length)
    active = phase_active(effect, phase, threshold)
    intensity = float01(seed_key(effect, "i", phase)) * max_intensity if active else 0.0
    return GlitchState(phase=phase, active=active, intensity=intensity)


def glitch_slices(
    state: GlitchState,
    width: int,
    height: int,
    num_slices: int = 8,
    show_threshold: float = 0.4,
    max_displacement: float = 80.0,
    hue_range: float = 60.0,
    z: int = 0
) -> Tuple[Artifact, ...]:
    """Horizontal bands displaced during a glitch event

    Each band i of the phase is shown when float01('slice-<phase>-<i>') is at
    or below show_threshold. Displacement and hue come from their own seeds.

    Returns:
        Slice artifacts (empty when the phase is not glitching)
    """
    if not state.active:
        return ()

    slice_height = height / num_slices
    slices: List[Artifact] = []
    for i in range(num_slices):
        if float01(seed_key("slice", state.phase, i)) > show_threshold:
            continue
        displacement = signed_offset(
            seed_key("disp-x", state.phase, i), max_displacement
        ) * state.intensity
        hue = float01(seed_key("hue", state.phase, i)) * hue_range - hue_range / 2.0
        slices.append(Artifact(
            effect="glitch_slice",
            index=i,
            x=0.0,
            y=i * slice_height,
            width=float(width),
            height=slice_height,
            intensity=state.intensity,
            z=z,
            offset_x=displacement,
            hue_rotate=hue
        ))
    return tuple(slices)


def rgb_split(
    amount: float,
    width: int,
    height: int,
    z: int,
    min_amount: float = 1.0,
    opacity: float = 0.35,
    vertical_ratio: float = 0.3
) -> Tuple[Artifact, ...]:
    """Red/blue screen-blended tint pair pushed apart by `amount` pixels"""
    if amount <= min_amount:
        return ()
    return (
        Artifact(effect="rgb_split", index=0, x=amount, y=-amount * vertical_ratio,
                 width=float(width), height=float(height), intensity=opacity, z=z,
                 color=(255, 0, 50)),
        Artifact(effect="rgb_split", index=1, x=-amount, y=amount * vertical_ratio,
                 width=float(width), height=float(height), intensity=opacity, z=z,
                 color=(0, 100, 255)),
    )


# ============================================================================
# Decorative Lines
# ============================================================================

def floating_line(
    seed: str,
    frame: float,
    width: int,
    height: int,
    color: RGB,
    thickness: float,
    index: int = 0,
    z: int = 0,
    alpha: float = 1.0
) -> Artifact:
    """Accent line drifting across the frame

    Base height, phase, length and horizontal position are static per seed;
    only the vertical bob and opacity move with the frame. `alpha` is the
    line color's own transparency.
    """
    base_y = float01(seed) * height
    y = base_y + math.sin(frame * 0.05 + float01(seed + "p") * 10.0) * 40.0
    opacity = 0.15 + math.sin(frame * 0.03) * 0.1
    line_width = 200.0 + float01(seed + "w") * 600.0
    x = float01(seed + "x") * 0.6 * width
    return Artifact(
        effect="floating_line",
        index=index,
        x=x,
        y=y,
        width=line_width,
        height=thickness,
        intensity=opacity * alpha,
        z=z,
        color=color
    )


# ============================================================================
# Speed Ramp
# ============================================================================

def speed_ramp(
    frame: int,
    cycle: int = 90,
    start: int = 30,
    peak: int = 37,
    end: int = 45,
    max_blur: float = 4.0
) -> Tuple[bool, float]:
    """Periodic motion-blur burst

    Returns:
        (is_ramping, blur_px); ramping strictly between start and end of
        every cycle, blur rising to max_blur at peak
    """
    ramp_frame = frame % cycle
    is_ramp = start < ramp_frame < end
    if not is_ramp:
        return False, 0.0
    blur = interpolate(
        ramp_frame, [start, peak, end], [0.0, max_blur, 0.0],
        extrapolate_left=CLAMP, extrapolate_right=CLAMP
    )
    return True, blur


_OUT_CUBIC = ease_out(cubic)


def speed_line(
    frame: int,
    delay: int,
    y: float,
    line_width: float,
    frame_width: int,
    color: RGB,
    index: int = 0,
    z: int = 0
) -> Artifact:
    """Streak crossing the frame over 8 frames after `delay`"""
    progress = interpolate(
        frame - delay, [0, 8], [0.0, 1.0],
        easing=_OUT_CUBIC, extrapolate_left=CLAMP, extrapolate_right=CLAMP
    )
    x = interpolate(progress, [0, 1], [-line_width, frame_width + 100.0])
    opacity = interpolate(
        progress, [0, 0.3, 0.7, 1], [0.0, 0.6, 0.6, 0.0],
        extrapolate_left=CLAMP, extrapolate_right=CLAMP
    )
    return Artifact(
        effect="speed_line",
        index=index,
        x=x,
        y=y,
        width=line_width,
        height=2.0,
        intensity=opacity,
        z=z,
        color=color
    )


# ============================================================================
# CRT Shutdown
# ============================================================================

@dataclass(frozen=True)
class CrtState:
    """CRT power-off state

    Attributes:
        active: Frame is at or after the shutdown start
        start: Local frame where the shutdown begins
        progress: Eased shutdown progress (0.0-1.0)
        scale_x, scale_y: Picture squeeze factors
        brightness: Brightness multiplier (flashes up, then to black)
        dot_glow: Glow of the final center dot (0.0-1.0)
        replay_opacity: Opacity of the closing text
    """
    active: bool
    start: int
    progress: float
    scale_x: float
    scale_y: float
    brightness: float
    dot_glow: float
    replay_opacity: float


_IN_CUBIC = ease_in(cubic)


def crt_shutdown(frame: int, duration: int, lead: int = 60) -> CrtState:
    """CRT squeeze to a line, then to a dot, during the last `lead` frames"""
    start = duration - lead
    replay_opacity = interpolate(
        frame, [start + 45, start + 55], [0.0, 1.0],
        extrapolate_left=CLAMP, extrapolate_right=CLAMP
    )
    if frame < start:
        return CrtState(False, start, 0.0, 1.0, 1.0, 1.0, 0.0, replay_opacity)

    progress = interpolate(
        frame,
        [start, start + 20, start + 40, start + 55],
        [0.0, 0.7, 0.95, 1.0],
        easing=_IN_CUBIC, extrapolate_left=CLAMP, extrapolate_right=CLAMP
    )
    scale_y = interpolate(progress, [0, 0.7, 1], [1.0, 0.01, 0.0])
    scale_x = interpolate(progress, [0, 0.5, 0.9, 1], [1.0, 1.0, 0.3, 0.0])
    brightness = interpolate(progress, [0, 0.3, 0.7, 1], [1.0, 2.5, 3.0, 0.0])
    dot_glow = interpolate(
        progress, [0.85, 0.95, 1], [0.0, 1.0, 0.0],
        extrapolate_left=CLAMP, extrapolate_right=CLAMP
    )
    return CrtState(True, start, progress, scale_x, scale_y, brightness, dot_glow, replay_opacity)


# ============================================================================
# Text Reveals
# ============================================================================

def char_reveal_progress(
    frame: float,
    num_chars: int,
    start_frame: float,
    stagger_seconds: float,
    duration_seconds: float,
    fps: float,
    easing: Optional[Easing] = None
) -> Tuple[float, ...]:
    """Staggered per-character reveal progress

    Character i starts at start_frame + i * stagger and takes `duration`
    seconds to complete.
    """
    duration_frames = max(duration_seconds * fps, 1e-9)
    stagger_frames = stagger_seconds * fps
    result = []
    for i in range(num_chars):
        t = clamp01((frame - start_frame - i * stagger_frames) / duration_frames)
        result.append(easing(t) if easing is not None else t)
    return tuple(result)


def text_reveal(
    text: str,
    frame: float,
    fps: float,
    start_frame: float,
    stagger: float,
    duration: float,
    x: float,
    y: float,
    size: int,
    ease: str = "power2.out",
    style: str = "fade",
    color: RGB = (255, 255, 255),
    opacity: float = 1.0,
    align: str = "left",
    z: int = 0,
    offset_x: float = 0.0,
    offset_y: float = 0.0,
    slide_distance: float = 0.0,
    charset: str = "01!@#$%",
    seed_prefix: str = "hacker"
) -> TextReveal:
    """Build a staggered text reveal

    Styles: 'fade' (chars fade in), 'slide' (chars rise by slide_distance),
    'blur' (chars sharpen), 'hacker' (unrevealed chars scramble through
    `charset`, re-seeded every two frames).
    """
    progress = char_reveal_progress(
        frame, len(text), start_frame, stagger, duration, fps, ease_by_name(ease)
    )
    glyphs = text
    if style == "hacker":
        glyphs = hacker_glyphs(text, progress, int(frame), charset, seed_prefix)
    return TextReveal(
        text=text,
        glyphs=glyphs,
        progress=progress,
        x=x,
        y=y,
        size=size,
        color=color,
        opacity=clamp01(opacity),
        style=style,
        align=align,
        z=z,
        offset_x=offset_x,
        offset_y=offset_y,
        slide_distance=slide_distance
    )


def static_text(
    text: str,
    x: float,
    y: float,
    size: int,
    color: RGB = (255, 255, 255),
    opacity: float = 1.0,
    align: str = "left",
    z: int = 0
) -> TextReveal:
    """Fully revealed text (counters, timestamps)"""
    return TextReveal(
        text=text,
        glyphs=text,
        progress=tuple(1.0 for _ in text),
        x=x,
        y=y,
        size=size,
        color=color,
        opacity=clamp01(opacity),
        align=align,
        z=z
    )


def hacker_glyphs(
    text: str,
    progress: Tuple[float, ...],
    frame: int,
    charset: str,
    seed_prefix: str = "hacker"
) -> str:
    """Characters shown by a scrambling reveal

    Settled characters (progress >= 1) and spaces show through; the rest pick
    a seeded glyph from `charset` that changes every two frames.
    """
    shown = []
    for i, char in enumerate(text):
        if char == " " or progress[i] >= 1.0:
            shown.append(char)
        else:
            shown.append(choice(seed_key(seed_prefix, frame // 2, i), charset))
    return "".join(shown)


# ============================================================================
# Cinematic Overlays
# ============================================================================

def grain(
    scene: str,
    frame: int,
    width: int,
    height: int,
    intensity: float,
    speed: float,
    opacity: float,
    z: int
) -> Artifact:
    """Film grain; the noise pattern changes at `speed` patterns per frame"""
    pattern = int(math.floor(frame * speed))
    return Artifact(
        effect="grain",
        index=pattern,
        x=0.0,
        y=0.0,
        width=float(width),
        height=float(height),
        intensity=clamp01(intensity * opacity),
        z=z,
        seed=numpy_seed(seed_key("grain", scene, pattern))
    )


def vignette(intensity: float, size: float, z: int) -> Layer:
    """Darkened frame edges"""
    return Layer(name="vignette", kind="vignette", z=z, intensity=intensity, size=size)


def letterbox(
    frame: float,
    fps: float,
    size: float,
    z: int,
    animate_in_seconds: float = 0.0
) -> Layer:
    """Cinematic bars; optionally sliding in over the first seconds"""
    bar = size
    if animate_in_seconds > 0:
        bar = size * interpolate(
            frame, [0, animate_in_seconds * fps], [0.0, 1.0],
            easing=_OUT_CUBIC, extrapolate_left=CLAMP, extrapolate_right=CLAMP
        )
    return Layer(name="letterbox", kind="letterbox", z=z, size=bar)


_LEAK_COLORS = {
    "warm": (255, 150, 60),
    "cool": (80, 170, 255),
}


def light_leak(frame: float, style: str, intensity: float, speed: float, z: int) -> Layer:
    """Soft colored glow sweeping slowly across the frame"""
    if style not in _LEAK_COLORS:
        raise ValueError(f"Unknown light leak style: {style!r}")
    strength = intensity * (0.6 + 0.4 * math.sin(frame * speed * 0.05))
    position = 0.5 + 0.5 * math.sin(frame * speed * 0.02)
    return Layer(
        name="light_leak",
        kind="light_leak",
        z=z,
        color=_LEAK_COLORS[style],
        intensity=clamp01(strength),
        size=position
    )


def crt_scanlines(frame: float, intensity: float, speed: float, z: int) -> Layer:
    """Rolling CRT scanlines; size carries the row offset (0-3)"""
    return Layer(
        name="scanlines",
        kind="scanlines",
        z=z,
        intensity=intensity,
        size=float(int(frame * speed) % 4)
    )
