"""
Edit Data Types - Shared Contract

Defines the data contract between the timeline compositor, the scene renderers
and the rendering shells. Every record is frozen: nothing is mutated after the
composition is built, so frames can be evaluated in any order.

Type Hierarchy:
    Scene / Transition      → timeline building blocks
    SceneFrame / TransitionFrame → FrameContext (what a global frame resolves to)
    Layer / Artifact / TextReveal → VisualDescriptor (what a frame looks like)
    AudioCue                → per-asset gain for a frame
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Tuple, Union


RGB = Tuple[int, int, int]

# Visible region as fractions of the frame: (left, top, right, bottom)
ClipRect = Tuple[float, float, float, float]


# ============================================================================
# Timeline Building Blocks
# ============================================================================

class PresentationKind(str, Enum):
    """How two adjacent scenes are combined during a transition"""
    GLITCH = "glitch"
    FLASH = "flash"
    DIRECTIONAL_GLITCH = "directional_glitch"


@dataclass(frozen=True)
class SpringParams:
    """Physical parameters of a damped spring

    Attributes:
        damping: Damping coefficient (c)
        stiffness: Spring constant (k)
        mass: Mass (m)
    """
    damping: float = 10.0
    stiffness: float = 100.0
    mass: float = 1.0

    def __post_init__(self):
        for name in ("damping", "stiffness", "mass"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"Spring {name} must be positive, got {value}")


@dataclass(frozen=True)
class TransitionTiming:
    """Maps linear window progress to blend progress

    'linear' is the identity; 'spring' drives the blend with a spring that
    settles inside the transition window.
    """
    kind: str = "linear"
    spring: Optional[SpringParams] = None

    def __post_init__(self):
        if self.kind not in ("linear", "spring"):
            raise ValueError(f"Unknown transition timing: {self.kind!r}")
        if self.kind == "spring" and self.spring is None:
            object.__setattr__(self, 'spring', SpringParams())


@dataclass(frozen=True)
class Scene:
    """A fixed-duration segment with its own pure render function

    Attributes:
        name: Scene identifier (unique within a timeline)
        duration: Length in frames (>= 1)
        render: Pure function local_frame -> SceneOutput
    """
    name: str
    duration: int
    render: Callable[[int], "SceneOutput"] = field(compare=False, repr=False)


@dataclass(frozen=True)
class Transition:
    """Overlap window blending two adjacent scenes

    Attributes:
        name: Transition identifier
        duration: Overlap length in frames (>= 1)
        kind: Presentation used to blend the two scenes
        timing: Progress weight function
        color: Flash color (FLASH only)
        direction: Wipe direction 'left' | 'right' | 'up' | 'down' (DIRECTIONAL_GLITCH only)
        max_displacement: Peak glitch displacement in pixels
    """
    name: str
    duration: int
    kind: PresentationKind = PresentationKind.GLITCH
    timing: TransitionTiming = TransitionTiming()
    color: RGB = (255, 255, 255)
    direction: str = "left"
    max_displacement: float = 80.0


# ============================================================================
# Frame Context (derived per query, never stored)
# ============================================================================

@dataclass(frozen=True)
class SceneFrame:
    """A global frame owned by a single scene"""
    scene_index: int
    local_frame: int


@dataclass(frozen=True)
class TransitionFrame:
    """A global frame inside a transition window

    Both scenes are evaluated at their own local frames.

    Attributes:
        transition_index: Index of the transition (between scene i and i+1)
        outgoing: Context of the scene being left
        incoming: Context of the scene being entered
        progress: Weighted blend progress (0.0-1.0)
        raw_progress: Linear position within the window (0.0-1.0)
    """
    transition_index: int
    outgoing: SceneFrame
    incoming: SceneFrame
    progress: float
    raw_progress: float


FrameContext = Union[SceneFrame, TransitionFrame]


# ============================================================================
# Visual Descriptor
# ============================================================================

@dataclass(frozen=True)
class Transform:
    """2D transform applied around the frame center

    Attributes:
        scale_x: Horizontal scale factor
        scale_y: Vertical scale factor
        translate_x: Horizontal offset in pixels
        translate_y: Vertical offset in pixels
        hue_rotate: Hue rotation in degrees
    """
    scale_x: float = 1.0
    scale_y: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    hue_rotate: float = 0.0


IDENTITY_TRANSFORM = Transform()


@dataclass(frozen=True)
class Layer:
    """One full-frame entry of the layer stack

    Kinds understood by the rasterizer:
        'video'      asset frame (asset_id at asset_time seconds)
        'solid'      flat color fill
        'blur'       horizontal blur of everything below (intensity = radius px)
        'vignette'   darkened edges (intensity, size)
        'letterbox'  black bars top and bottom (size = fraction of height)
        'scanlines'  CRT scanlines (intensity)
        'light_leak' soft colored glow from one side (intensity)
    """
    name: str
    kind: str
    z: int
    opacity: float = 1.0
    color: RGB = (0, 0, 0)
    transform: Transform = IDENTITY_TRANSFORM
    brightness: float = 1.0
    saturation: float = 1.0
    asset_id: Optional[str] = None
    asset_time: float = 0.0
    intensity: float = 0.0
    size: float = 0.0
    clip: Optional[ClipRect] = None


@dataclass(frozen=True)
class Artifact:
    """A procedural artifact instance

    Effects understood by the rasterizer: 'glitch_slice', 'floating_line',
    'speed_line', 'scan_line', 'accent_bar', 'corner_bracket', 'crt_dot',
    'rgb_split', 'grain'.

    Attributes:
        effect: Effect name (also the seed namespace)
        index: Artifact index within the effect
        x, y: Top-left position in pixels
        width, height: Size in pixels
        intensity: Opacity / strength (0.0-1.0 for most effects)
        z: Stack position
        color: RGB color
        offset_x: Horizontal displacement in pixels (slices)
        hue_rotate: Hue rotation in degrees (slices)
        seed: Integer seed for pixel noise (grain)
    """
    effect: str
    index: int
    x: float
    y: float
    width: float
    height: float
    intensity: float = 1.0
    z: int = 0
    color: RGB = (255, 255, 255)
    offset_x: float = 0.0
    hue_rotate: float = 0.0
    seed: int = 0
    clip: Optional[ClipRect] = None


@dataclass(frozen=True)
class TextReveal:
    """Text with per-character reveal progress

    Glyph layout belongs to the font collaborator; only strings, timing and
    anchor are described here.

    Attributes:
        text: Final text
        glyphs: Characters currently shown (differs from text while scrambling)
        progress: Reveal progress per character (0.0-1.0)
        x, y: Anchor position in pixels
        size: Font size in pixels
        color: RGB color
        opacity: Overall opacity multiplier
        style: 'fade' | 'hacker' | 'slide' | 'blur'
        align: 'left' | 'center' | 'right'
        offset_x, offset_y: Whole-block offset in pixels
        slide_distance: Per-character slide distance for 'slide'
    """
    text: str
    glyphs: str
    progress: Tuple[float, ...]
    x: float
    y: float
    size: int
    color: RGB = (255, 255, 255)
    opacity: float = 1.0
    style: str = "fade"
    align: str = "left"
    z: int = 0
    offset_x: float = 0.0
    offset_y: float = 0.0
    slide_distance: float = 0.0
    clip: Optional[ClipRect] = None


@dataclass(frozen=True)
class VisualDescriptor:
    """Layered description of one rendered frame"""
    layers: Tuple[Layer, ...] = ()
    artifacts: Tuple[Artifact, ...] = ()
    texts: Tuple[TextReveal, ...] = ()


# ============================================================================
# Audio and Outputs
# ============================================================================

@dataclass(frozen=True)
class AudioCue:
    """One audio asset playing at a gain for the current frame

    Attributes:
        asset_id: Audio (or video soundtrack) asset identifier
        gain: Linear gain (0.0-1.0)
        asset_time: Position inside the asset in seconds
    """
    asset_id: str
    gain: float
    asset_time: float = 0.0


@dataclass(frozen=True)
class SceneOutput:
    """What a scene renderer returns for one local frame"""
    visual: VisualDescriptor
    audio: Tuple[AudioCue, ...] = ()


@dataclass(frozen=True)
class ComposedFrame:
    """Final composition for one global frame"""
    frame: int
    context: FrameContext
    visual: VisualDescriptor
    audio: Tuple[AudioCue, ...] = ()
