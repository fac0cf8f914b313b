"""
Unit tests for raster_core.py - Functional Core

Uses small canvases so every test runs in milliseconds.
"""

import numpy as np
import pytest

from edit_types import Artifact, Layer, TextReveal, Transform, VisualDescriptor
from raster_core import (
    adjust_color,
    apply_transform,
    clip_bounds,
    composite,
    create_canvas,
    cv2_to_pil,
    rasterize,
    stack_order,
)


W, H = 64, 36


def solid(color, z=0, opacity=1.0, clip=None, name="solid"):
    return Layer(name=name, kind="solid", z=z, color=color, opacity=opacity, clip=clip)


# ============================================================================
# Conversions
# ============================================================================

class TestConversions:

    def test_cv2_to_pil_swaps_channels(self):
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        frame[:] = (255, 0, 0)  # BGR blue
        assert cv2_to_pil(frame).getpixel((0, 0)) == (0, 0, 255)

    def test_text_overlay_composited_by_alpha(self):
        # Half-transparent red text over black lands at half intensity in the red channel
        text = TextReveal(text="II", glyphs="II", progress=(1.0, 1.0), x=0, y=0, size=30,
                          color=(255, 0, 0), opacity=0.5)
        frame = rasterize(VisualDescriptor(texts=(text,)), W, H)
        assert frame[:, :, 2].max() <= 128
        assert frame[:, :, 0].max() == 0

    def test_pil_output_mode(self):
        assert cv2_to_pil(np.zeros((4, 4, 3), dtype=np.uint8)).mode == "RGB"


# ============================================================================
# Canvas Operations
# ============================================================================

class TestCanvas:

    def test_create_canvas(self):
        canvas = create_canvas(W, H, fill_color=(255, 0, 0))
        assert canvas.shape == (H, W, 3)
        assert tuple(canvas[0, 0]) == (0.0, 0.0, 255.0)

    def test_clip_bounds(self):
        assert clip_bounds(None, 100, 50) == (0, 0, 100, 50)
        assert clip_bounds((0.25, 0.0, 0.75, 1.0), 100, 50) == (25, 0, 75, 50)
        assert clip_bounds((0.8, 0.0, 0.2, 1.0), 100, 50) == (80, 0, 80, 50)

    def test_composite_half_alpha(self):
        canvas = create_canvas(W, H)
        overlay = np.full_like(canvas, 200.0)
        composite(canvas, overlay, 0.5)
        assert canvas[0, 0, 0] == pytest.approx(100.0)

    def test_composite_respects_clip(self):
        canvas = create_canvas(W, H)
        overlay = np.full_like(canvas, 255.0)
        composite(canvas, overlay, 1.0, clip=(0.5, 0.0, 1.0, 1.0))
        assert canvas[0, 0, 0] == 0.0
        assert canvas[0, W - 1, 0] == 255.0

    def test_identity_transform(self):
        image = np.random.default_rng(0).integers(0, 255, (H, W, 3)).astype(np.uint8)
        assert np.array_equal(apply_transform(image, Transform(), W, H), image.astype(np.float32))

    def test_scale_keeps_center(self):
        image = np.zeros((H, W, 3), dtype=np.uint8)
        image[H // 2 - 2:H // 2 + 2, W // 2 - 2:W // 2 + 2] = 255
        zoomed = apply_transform(image, Transform(scale_x=2.0, scale_y=2.0), W, H)
        assert zoomed[H // 2, W // 2, 0] == pytest.approx(255.0)
        assert zoomed[0, 0, 0] == 0.0

    def test_zero_saturation_is_grey(self):
        image = np.zeros((4, 4, 3), dtype=np.float32)
        image[:] = (0, 0, 255)
        grey = adjust_color(image, saturation=0.0)
        assert grey[0, 0, 0] == grey[0, 0, 1] == grey[0, 0, 2]

    def test_brightness_multiplies(self):
        image = np.full((2, 2, 3), 100.0, dtype=np.float32)
        assert adjust_color(image, brightness=1.5)[0, 0, 0] == pytest.approx(150.0)


# ============================================================================
# Stack Order
# ============================================================================

def test_stack_order_by_z_then_group():
    descriptor = VisualDescriptor(
        layers=(solid((0, 0, 0), z=50, name="top"), solid((0, 0, 0), z=0, name="bottom")),
        artifacts=(Artifact(effect="accent_bar", index=0, x=0, y=0, width=1, height=1, z=50),),
    )
    order = stack_order(descriptor)
    assert order[0].name == "bottom"
    assert order[1].name == "top"
    assert isinstance(order[2], Artifact)


# ============================================================================
# Whole Frame
# ============================================================================

class TestRasterize:

    def test_opaque_flash_is_uniform(self):
        descriptor = VisualDescriptor(layers=(
            solid((255, 0, 0), z=0, name="scene"),
            solid((255, 255, 255), z=2000, name="flash"),
        ))
        frame = rasterize(descriptor, W, H)
        assert frame.dtype == np.uint8
        assert frame.shape == (H, W, 3)
        assert (frame == 255).all()

    def test_higher_z_wins(self):
        descriptor = VisualDescriptor(layers=(
            solid((0, 0, 255), z=10, name="blue"),
            solid((255, 0, 0), z=0, name="red"),
        ))
        frame = rasterize(descriptor, W, H)
        assert tuple(frame[0, 0]) == (255, 0, 0)  # BGR blue

    def test_clipped_layer(self):
        descriptor = VisualDescriptor(layers=(
            solid((255, 255, 255), clip=(0.0, 0.0, 0.5, 1.0)),
        ))
        frame = rasterize(descriptor, W, H)
        assert frame[0, 0, 0] == 255
        assert frame[0, W - 1, 0] == 0

    def test_video_layer_uses_callback(self):
        calls = []

        def video_frame(asset_id, seconds):
            calls.append((asset_id, seconds))
            return np.full((H, W, 3), 80, dtype=np.uint8)

        layer = Layer(name="video", kind="video", z=0, asset_id="source_video", asset_time=3.5)
        frame = rasterize(VisualDescriptor(layers=(layer,)), W, H, video_frame)
        assert calls == [("source_video", 3.5)]
        assert frame[H // 2, W // 2, 0] == 80

    def test_video_layer_skipped_without_source(self):
        layer = Layer(name="video", kind="video", z=0, asset_id="source_video")
        assert not rasterize(VisualDescriptor(layers=(layer,)), W, H).any()

    def test_letterbox_bars(self):
        descriptor = VisualDescriptor(layers=(
            solid((255, 255, 255)),
            Layer(name="letterbox", kind="letterbox", z=100, size=0.25),
        ))
        frame = rasterize(descriptor, W, H)
        assert frame[0, 0, 0] == 0
        assert frame[H - 1, 0, 0] == 0
        assert frame[H // 2, 0, 0] == 255

    def test_grain_is_deterministic(self):
        descriptor = VisualDescriptor(
            layers=(solid((128, 128, 128)),),
            artifacts=(Artifact(effect="grain", index=3, x=0, y=0, width=W, height=H,
                                intensity=0.05, z=80, seed=1234),),
        )
        assert np.array_equal(rasterize(descriptor, W, H), rasterize(descriptor, W, H))

    def test_all_artifact_effects_draw(self):
        effects = ["glitch_slice", "floating_line", "speed_line", "scan_line", "accent_bar",
                   "corner_bracket", "crt_dot", "rgb_split", "grain"]
        artifacts = tuple(
            Artifact(effect=name, index=i % 2, x=4, y=4, width=20, height=6, intensity=0.5,
                     z=10 + i, offset_x=5, hue_rotate=20, seed=i)
            for i, name in enumerate(effects)
        )
        frame = rasterize(VisualDescriptor(layers=(solid((30, 60, 90)),), artifacts=artifacts), W, H)
        assert frame.shape == (H, W, 3)

    def test_all_layer_kinds_draw(self):
        layers = (
            solid((30, 60, 90)),
            Layer(name="blur", kind="blur", z=1, intensity=3),
            Layer(name="vignette", kind="vignette", z=2, intensity=0.7, size=0.35),
            Layer(name="scanlines", kind="scanlines", z=3, intensity=0.3, size=2),
            Layer(name="leak", kind="light_leak", z=4, color=(255, 150, 60), intensity=0.3, size=0.5),
        )
        frame = rasterize(VisualDescriptor(layers=layers), W, H)
        # Vignette darkens corners relative to the center
        assert frame[0, 0].sum() < frame[H // 2, W // 2].sum()

    def test_unknown_layer_kind_rejected(self):
        with pytest.raises(ValueError):
            rasterize(VisualDescriptor(layers=(Layer(name="x", kind="hologram", z=0),)), W, H)

    def test_text_draws_pixels(self):
        text = TextReveal(text="HI", glyphs="HI", progress=(1.0, 1.0), x=4, y=4, size=20)
        frame = rasterize(VisualDescriptor(texts=(text,)), W, H)
        assert frame.any()

    def test_unrevealed_text_is_invisible(self):
        text = TextReveal(text="HI", glyphs="HI", progress=(0.0, 0.0), x=4, y=4, size=20)
        assert not rasterize(VisualDescriptor(texts=(text,)), W, H).any()
