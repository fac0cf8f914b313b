"""
Scene Renderers - Functional Core

One renderer per scene type. A renderer is built once from an immutable
SceneConfig and then acts as a pure function:

    render(local_frame) -> SceneOutput(visual descriptor, audio cues)

Renderers compose the interpolator, the spring solver and the seeded effect
generators; they hold no state between frames. Content (texts, asset ids,
trims) comes from the scene options, defaulting to the shipped edit.

Used by edit_core.py to build the timeline.
"""

import math
from typing import Dict, List, Optional, Tuple, Type

from audio_gain_core import combined_fade_gain, delayed_cue, envelope_gain, fade_in_gain
from edit_config import SceneConfig, VideoSettings, parse_color
from edit_types import (
    Artifact,
    AudioCue,
    Layer,
    SceneOutput,
    SpringParams,
    TextReveal,
    Transform,
    VisualDescriptor,
)
from effects_core import (
    camera_drift,
    crt_scanlines,
    crt_shutdown,
    floating_line,
    glitch_slices,
    glitch_state,
    grain,
    letterbox,
    light_leak,
    rgb_split,
    speed_line,
    speed_ramp,
    static_text,
    text_reveal,
    vignette,
)
from interpolation_core import CLAMP, AnimationCurve, interpolate
from spring_core import spring_progress


# ============================================================================
# Stack Order (all below the transition stride in transition_core)
# ============================================================================

Z_VIDEO = 0
Z_SLICES = 10
Z_BLUR = 15
Z_TINT = 20
Z_FLASH = 30
Z_SCAN = 35
Z_SHADE = 40
Z_DECOR = 50
Z_TEXT = 60
Z_LEAK = 70
Z_RETRO = 75
Z_GRAIN = 80
Z_VIGNETTE = 90
Z_LETTERBOX = 100


# ============================================================================
# Base Renderer
# ============================================================================

class SceneRenderer:
    """Shared plumbing for scene renderers

    Subclasses implement render(); nothing on the instance changes after
    __init__, so one renderer can serve frames in any order.
    """

    scene_type = ""

    def __init__(self, config: SceneConfig, video: VideoSettings):
        self.config = config
        self.video = video
        self.fps = video.fps
        self.width = video.width
        self.height = video.height
        self.duration = config.duration
        self.video_asset: str = config.option("video", "source_video")
        self.trim_seconds: float = float(config.option("trim_seconds", 0.0))

    def __call__(self, local_frame: int) -> SceneOutput:
        return self.render(local_frame)

    def render(self, local_frame: int) -> SceneOutput:
        raise NotImplementedError

    # -- helpers -------------------------------------------------------------

    def reveal(self, frame: int, anchor: int, damping: float, stiffness: float,
               mass: float = 1.0) -> float:
        """Spring triggered at `anchor` (0.0 before it)"""
        return spring_progress(frame - anchor, self.fps, SpringParams(damping, stiffness, mass))

    def asset_time(self, frame: int) -> float:
        return self.trim_seconds + frame / self.fps

    def video_layer(self, frame: int, transform: Transform, brightness: float = 1.0,
                    saturation: float = 1.0) -> Layer:
        return Layer(
            name="video",
            kind="video",
            z=Z_VIDEO,
            transform=transform,
            brightness=brightness,
            saturation=saturation,
            asset_id=self.video_asset,
            asset_time=self.asset_time(frame),
        )

    def shade(self, opacity: float) -> Layer:
        """Darkening pass for text contrast"""
        return Layer(name="shade", kind="solid", z=Z_SHADE, color=(0, 0, 0), opacity=opacity)

    @staticmethod
    def _cues(*cues: Optional[AudioCue]) -> Tuple[AudioCue, ...]:
        return tuple(cue for cue in cues if cue is not None)


# ============================================================================
# Intro: zoom-in, flash on impact, title reveal
# ============================================================================

INTRO_ZOOM = SpringParams(damping=100, stiffness=30, mass=2)
INTRO_FLASH = AnimationCurve((25, 30, 40), (0.0, 0.9, 0.0), left=CLAMP, right=CLAMP)
INTRO_CHROMA = AnimationCurve((25, 32, 50), (0.0, 8.0, 0.0), left=CLAMP, right=CLAMP)


class IntroScene(SceneRenderer):
    scene_type = "intro"

    def render(self, local_frame: int) -> SceneOutput:
        f = local_frame
        w, h = self.width, self.height

        zoom = spring_progress(f, self.fps, INTRO_ZOOM)
        video_scale = interpolate(zoom, [0, 1], [1.4, 1.05])

        title_in = self.reveal(f, 30, damping=15, stiffness=120)
        title_y = interpolate(title_in, [0, 1], [60.0, 0.0])
        title_opacity = interpolate(title_in, [0, 1], [0.0, 1.0])
        subtitle_opacity = interpolate(self.reveal(f, 45, damping=20, stiffness=100), [0, 1], [0.0, 1.0])

        scan_y = interpolate(f, [0, 90], [-20.0, h + 20.0], extrapolate_right=CLAMP)
        chroma = INTRO_CHROMA(f)

        layers = [
            self.video_layer(f, Transform(scale_x=video_scale, scale_y=video_scale), saturation=1.2),
            Layer(name="flash", kind="solid", z=Z_FLASH, color=(255, 255, 255), opacity=INTRO_FLASH(f)),
            self.shade(0.35),
            vignette(0.7, 0.35, Z_VIGNETTE),
            letterbox(f, self.fps, 0.08, Z_LETTERBOX, animate_in_seconds=1.0),
        ]

        artifacts: List[Artifact] = []
        if chroma > 0.5:
            artifacts.extend(
                Artifact(effect="rgb_split", index=i, x=sign * chroma, y=0.0,
                         width=float(w), height=float(h), intensity=0.4, z=Z_TINT, color=color)
                for i, (sign, color) in enumerate(((1.0, (255, 0, 0)), (-1.0, (0, 100, 255))))
            )
        artifacts.append(Artifact(effect="scan_line", index=0, x=0.0, y=scan_y,
                                  width=float(w), height=3.0, intensity=0.25, z=Z_SCAN))
        if title_opacity > 0.5:
            bracket_alpha = 0.3 * title_opacity
            artifacts.append(Artifact(effect="corner_bracket", index=0, x=60.0, y=60.0,
                                      width=40.0, height=40.0, intensity=bracket_alpha, z=Z_DECOR))
            artifacts.append(Artifact(effect="corner_bracket", index=1, x=w - 100.0, y=h - 100.0,
                                      width=40.0, height=40.0, intensity=bracket_alpha, z=Z_DECOR))
        artifacts.append(grain(self.config.name, f, w, h, 0.3, 1.0, 0.15, Z_GRAIN))

        texts = (
            text_reveal(
                self.config.option("title", "DYNAMIC EDIT"), f, self.fps,
                start_frame=30, stagger=0.04, duration=0.6, ease="power3.out",
                x=w / 2.0, y=h - 180.0 - 82.0, size=82, align="center", z=Z_TEXT,
                opacity=title_opacity, offset_y=title_y
            ),
            text_reveal(
                self.config.option("subtitle", "CINEMATIC GLITCH & FLOW"), f, self.fps,
                start_frame=45, stagger=0.02, duration=0.5, ease="power2.out",
                x=w / 2.0, y=h - 140.0 - 20.0, size=20, align="center", z=Z_TEXT,
                opacity=0.6 * subtitle_opacity
            ),
        )

        audio = self._cues(
            delayed_cue(self.config.option("riser", "sfx_riser"), f, 0, 0.25, self.fps),
            delayed_cue(self.config.option("impact", "sfx_impact"), f, 25, 0.35, self.fps),
        )
        return SceneOutput(VisualDescriptor(tuple(layers), tuple(artifacts), texts), audio)


# ============================================================================
# Glitch: seeded block displacement, RGB split, floating lines
# ============================================================================

FLOATING_LINES = (
    ("line1", (0, 200, 255), 0.3, 1.0),
    ("line2", (255, 50, 100), 0.2, 2.0),
    ("line3", (100, 255, 150), 0.15, 1.0),
)


class GlitchScene(SceneRenderer):
    scene_type = "glitch"

    def render(self, local_frame: int) -> SceneOutput:
        f = local_frame
        w, h = self.width, self.height

        state = glitch_state(f, phase_length=4, threshold=0.7, max_intensity=0.8)
        split = state.intensity * 12.0
        hue_shift = state.intensity * 40.0

        drift = camera_drift(f, 1.02, 0.015, 0.008, 8.0, 0.005, 5.0, 0.007)
        transform = Transform(drift.scale_x, drift.scale_y, drift.translate_x,
                              drift.translate_y, hue_rotate=hue_shift)

        label_in = self.reveal(f, 20, damping=15, stiffness=150)
        label_opacity = interpolate(label_in, [0, 1], [0.0, 1.0])
        label_x = interpolate(label_in, [0, 1], [-40.0, 0.0])
        bar_width = interpolate(self.reveal(f, 15, damping=20, stiffness=100), [0, 1], [0.0, 60.0])
        accent = parse_color(self.config.option("accent_color", "#00d4ff"))

        layers = (
            self.video_layer(f, transform, saturation=1.3),
            self.shade(0.35),
            light_leak(f, "cool", 0.2, 0.3, Z_LEAK),
            vignette(0.65, 0.3, Z_VIGNETTE),
            letterbox(f, self.fps, 0.08, Z_LETTERBOX),
        )

        artifacts: List[Artifact] = list(glitch_slices(state, w, h, z=Z_SLICES))
        artifacts.extend(rgb_split(split, w, h, Z_TINT))
        for i, (seed, color, alpha, thickness) in enumerate(FLOATING_LINES):
            artifacts.append(floating_line(seed, f, w, h, color, thickness, index=i,
                                           z=Z_DECOR, alpha=alpha))
        artifacts.append(Artifact(effect="accent_bar", index=0, x=80.0 + label_x, y=80.0,
                                  width=bar_width, height=3.0, intensity=label_opacity,
                                  z=Z_DECOR, color=accent))
        artifacts.append(grain(self.config.name, f, w, h, 0.35, 1.5, 0.12, Z_GRAIN))

        texts = (
            text_reveal(
                self.config.option("label", "GLITCH FREEZE"), f, self.fps,
                start_frame=25, stagger=0.03, duration=0.8, ease="power2.out",
                style="hacker", charset=self.config.option("charset", "01!@#$%"),
                seed_prefix=f"hacker-{self.config.name}",
                x=80.0, y=95.0, size=14, z=Z_TEXT, color=(255, 255, 255),
                opacity=0.5 * label_opacity, offset_x=label_x
            ),
            static_text(
                f"{f:04d} / {self.fps:02d}fps", x=w - 80.0, y=h - 100.0 - 13.0, size=13,
                opacity=0.3 * label_opacity, align="right", z=Z_TEXT
            ),
        )

        audio = self._cues(
            AudioCue(self.video_asset, fade_in_gain(f, 15, 0.8), self.asset_time(f)),
            delayed_cue(self.config.option("sfx", "sfx_glitch"), f, 0, 0.2, self.fps),
        )
        return SceneOutput(VisualDescriptor(layers, tuple(artifacts), texts), audio)


# ============================================================================
# Speed: warm drift, periodic speed ramp with motion blur and streaks
# ============================================================================

SPEED_LINES = (
    (0.20, 32, 400.0, (255, 200, 100), 0.4),
    (0.35, 33, 300.0, (255, 150, 50), 0.3),
    (0.55, 34, 500.0, (255, 200, 100), 0.35),
    (0.70, 35, 350.0, (255, 180, 80), 0.3),
    (0.85, 36, 250.0, (255, 220, 120), 0.25),
)


class SpeedScene(SceneRenderer):
    scene_type = "speed"

    def render(self, local_frame: int) -> SceneOutput:
        f = local_frame
        w, h = self.width, self.height

        drift = camera_drift(f, 1.05, 0.03, 0.004, 15.0, 0.003, 8.0, 0.005)
        warmth = interpolate(math.sin(f * 0.01), [-1, 1], [0.0, 15.0])
        brightness = 1.0 + math.sin(f * 0.02) * 0.05
        transform = Transform(drift.scale_x, drift.scale_y, drift.translate_x,
                              drift.translate_y, hue_rotate=warmth)

        is_ramp, blur = speed_ramp(f)

        label_progress = self.reveal(f, 15, damping=18, stiffness=120)
        label_opacity = interpolate(label_progress, [0, 1], [0.0, 1.0])
        divider = interpolate(self.reveal(f, 10, damping=25, stiffness=80), [0, 1], [0.0, 200.0])

        layers: List[Layer] = [self.video_layer(f, transform, brightness=brightness, saturation=1.4)]
        if blur > 0:
            layers.append(Layer(name="motion_blur", kind="blur", z=Z_BLUR, intensity=blur))
        layers.extend([
            self.shade(0.3),
            light_leak(f, "warm", 0.25, 0.4, Z_LEAK),
            vignette(0.6, 0.35, Z_VIGNETTE),
            letterbox(f, self.fps, 0.08, Z_LETTERBOX),
        ])

        artifacts: List[Artifact] = []
        if is_ramp:
            for i, (y_frac, delay, line_width, color, alpha) in enumerate(SPEED_LINES):
                line = speed_line(f, delay, h * y_frac, line_width, w, color, index=i, z=Z_DECOR)
                artifacts.append(Artifact(
                    effect=line.effect, index=line.index, x=line.x, y=line.y,
                    width=line.width, height=line.height, intensity=line.intensity * alpha,
                    z=line.z, color=line.color
                ))
        text_y = h - 130.0 - 15.0
        artifacts.append(Artifact(effect="accent_bar", index=0, x=80.0, y=text_y - 16.0,
                                  width=divider, height=2.0, intensity=label_opacity,
                                  z=Z_DECOR, color=(255, 138, 0)))
        artifacts.append(grain(self.config.name, f, w, h, 0.25, 1.0, 0.1, Z_GRAIN))

        texts = (
            text_reveal(
                self.config.option("label", "SPEED RAMP"), f, self.fps,
                start_frame=18, stagger=0.04, duration=0.5, ease="power3.out",
                style="slide", slide_distance=30.0,
                x=80.0, y=text_y, size=15, z=Z_TEXT, opacity=0.5 * label_opacity
            ),
            static_text(
                f"{f // self.fps:02d}:{f % self.fps:02d}", x=w - 80.0, y=80.0, size=12,
                opacity=0.25 * label_opacity, align="right", z=Z_TEXT
            ),
        )

        audio = self._cues(
            AudioCue(self.video_asset, fade_in_gain(f, 15, 0.7), self.asset_time(f)),
            delayed_cue(self.config.option("sfx", "sfx_whoosh"), f, 30, 0.2, self.fps),
        )
        return SceneOutput(VisualDescriptor(tuple(layers), tuple(artifacts), texts), audio)


# ============================================================================
# Outro: drift, then CRT shutdown to a dot and closing text
# ============================================================================

class OutroScene(SceneRenderer):
    scene_type = "outro"

    # Drone envelope holds between frame 30 and duration - 60
    MIN_DURATION = 91

    def __init__(self, config: SceneConfig, video: VideoSettings):
        super().__init__(config, video)
        if self.duration < self.MIN_DURATION:
            raise ValueError(
                f"Outro scene '{config.name}' needs at least {self.MIN_DURATION} frames, "
                f"got {self.duration}"
            )

    def render(self, local_frame: int) -> SceneOutput:
        f = local_frame
        w, h = self.width, self.height
        d = self.duration

        crt = crt_shutdown(f, d, lead=60)
        drift = camera_drift(f, 1.03, 0.02, 0.006, 10.0, 0.004)
        transform = Transform(
            scale_x=crt.scale_x * drift.scale_x,
            scale_y=crt.scale_y * drift.scale_y,
            translate_x=drift.translate_x
        )
        label_in = self.reveal(f, 10, damping=20, stiffness=100)
        label_opacity = interpolate(label_in, [0, 1], [0.0, 1.0])

        layers: List[Layer] = [
            self.video_layer(f, transform, brightness=crt.brightness,
                             saturation=0.5 if crt.active else 1.2)
        ]
        artifacts: List[Artifact] = []
        texts: List[TextReveal] = []

        if crt.dot_glow > 0:
            artifacts.append(Artifact(effect="crt_dot", index=0, x=w / 2.0 - 3.0, y=h / 2.0 - 3.0,
                                      width=6.0, height=6.0, intensity=crt.dot_glow, z=Z_DECOR))
        if crt.replay_opacity > 0:
            texts.append(text_reveal(
                self.config.option("closing_text", "FIN"), f, self.fps,
                start_frame=crt.start + 45, stagger=0.06, duration=0.6, ease="power2.out",
                style="blur", x=w / 2.0, y=h / 2.0 - 9.0, size=18, align="center",
                z=Z_TEXT, opacity=0.4 * crt.replay_opacity
            ))

        if not crt.active:
            text_y = h - 130.0 - 14.0
            bar_width = interpolate(label_in, [0, 1], [0.0, 80.0])
            layers.extend([
                self.shade(0.3),
                crt_scanlines(f, 0.3, 0.8, Z_RETRO),
                vignette(0.7, 0.3, Z_VIGNETTE),
                letterbox(f, self.fps, 0.08, Z_LETTERBOX),
            ])
            artifacts.append(Artifact(effect="accent_bar", index=0, x=w - 80.0 - bar_width,
                                      y=text_y - 14.0, width=bar_width, height=2.0,
                                      intensity=label_opacity, z=Z_DECOR, color=(139, 92, 246)))
            artifacts.append(grain(self.config.name, f, w, h, 0.3, 1.0, 0.12, Z_GRAIN))
            texts.append(text_reveal(
                self.config.option("label", "OUTRO"), f, self.fps,
                start_frame=15, stagger=0.03, duration=0.5, ease="power2.out",
                x=w - 80.0, y=text_y, size=14, align="right", z=Z_TEXT,
                opacity=0.45 * label_opacity
            ))

        audio = self._cues(
            AudioCue(self.video_asset, combined_fade_gain(f, 15, d - 90, d - 30, 0.7), self.asset_time(f)),
            AudioCue(self.config.option("drone", "sfx_drone"),
                     envelope_gain(f, [0, 30, d - 60, d], [0.0, 0.15, 0.15, 0.0]), f / self.fps),
            delayed_cue(self.config.option("impact", "sfx_impact"), f, crt.start, 0.3, self.fps),
        )
        return SceneOutput(VisualDescriptor(tuple(layers), tuple(artifacts), tuple(texts)), audio)


# ============================================================================
# Registry
# ============================================================================

SCENE_RENDERERS: Dict[str, Type[SceneRenderer]] = {
    IntroScene.scene_type: IntroScene,
    GlitchScene.scene_type: GlitchScene,
    SpeedScene.scene_type: SpeedScene,
    OutroScene.scene_type: OutroScene,
}


def create_scene_renderer(config: SceneConfig, video: VideoSettings) -> SceneRenderer:
    """Instantiate the renderer registered for config.type

    Raises:
        ValueError: If the scene type is unknown
    """
    renderer_class = SCENE_RENDERERS.get(config.type)
    if renderer_class is None:
        raise ValueError(
            f"Unknown scene type {config.type!r} for scene '{config.name}', "
            f"expected one of {sorted(SCENE_RENDERERS)}"
        )
    return renderer_class(config, video)
