"""
Unit tests for transition_core.py - Functional Core

Presentation blends, boundary continuity and stacking.
"""

import numpy as np
import pytest

from edit_types import Artifact, Layer, PresentationKind, TextReveal, Transition, VisualDescriptor
from raster_core import rasterize
from transition_core import (
    FLASH_Z,
    OUTGOING_Z,
    PRESENTATIONS,
    Z_STRIDE,
    blend,
    flash_opacity,
    intersect_clips,
    restack,
    wipe_clips,
)


def scene_descriptor(name, color):
    return VisualDescriptor(
        layers=(
            Layer(name=f"{name}-bg", kind="solid", z=0, color=color),
            Layer(name=f"{name}-vignette", kind="vignette", z=90, intensity=0.5, size=0.3),
        ),
        artifacts=(Artifact(effect="accent_bar", index=0, x=10, y=10, width=50, height=2, z=50),),
        texts=(TextReveal(text=name, glyphs=name, progress=(1.0,) * len(name), x=0, y=0, size=12, z=60),),
    )


OUT = scene_descriptor("out", (255, 0, 0))
IN = scene_descriptor("in", (0, 0, 255))

GLITCH = Transition("glitch_in", 15, PresentationKind.GLITCH)
FLASH = Transition("flash_white", 12, PresentationKind.FLASH, color=(255, 255, 255))
WIPE = Transition("wipe", 10, PresentationKind.DIRECTIONAL_GLITCH, direction="left")


# ============================================================================
# Boundary continuity
# ============================================================================

@pytest.mark.parametrize("transition", [GLITCH, FLASH, WIPE])
def test_progress_zero_is_outgoing(transition):
    assert blend(OUT, IN, 0.0, transition) == OUT


@pytest.mark.parametrize("transition", [GLITCH, FLASH, WIPE])
def test_progress_one_is_incoming(transition):
    assert blend(OUT, IN, 1.0, transition) == IN


@pytest.mark.parametrize("transition", [GLITCH, FLASH, WIPE])
def test_progress_is_clamped(transition):
    assert blend(OUT, IN, -0.5, transition) == OUT
    assert blend(OUT, IN, 1.5, transition) == IN


def test_every_kind_has_a_presentation():
    assert set(PRESENTATIONS) == set(PresentationKind)


# ============================================================================
# Flash
# ============================================================================

class TestFlash:

    def test_triangle_curve(self):
        assert flash_opacity(0.0) == 0.0
        assert flash_opacity(0.5) == 1.0
        assert flash_opacity(1.0) == 0.0
        assert flash_opacity(0.25) == pytest.approx(0.5)

    def test_flash_layer_on_top_at_peak(self):
        result = blend(OUT, IN, 0.5, FLASH)
        flash = [l for l in result.layers if l.name.startswith("flash")][0]
        assert flash.opacity == 1.0
        assert flash.color == (255, 255, 255)
        assert flash.z == FLASH_Z
        assert all(flash.z > entry.z for entry in result.layers + result.artifacts + result.texts
                   if entry is not flash)

    def test_outgoing_before_peak_incoming_after(self):
        before = blend(OUT, IN, 0.3, FLASH)
        after = blend(OUT, IN, 0.7, FLASH)
        assert before.layers[0].name == "out-bg"
        assert after.layers[0].name == "in-bg"
        assert not any(l.name.startswith("in-") for l in before.layers)

    def test_flash_color(self):
        black = Transition("flash_black", 12, PresentationKind.FLASH, color=(0, 0, 0))
        flash = [l for l in blend(OUT, IN, 0.4, black).layers if l.kind == "solid" and l.z == FLASH_Z][0]
        assert flash.color == (0, 0, 0)


# ============================================================================
# Glitch
# ============================================================================

class TestGlitch:

    def test_outgoing_stacked_above_incoming(self):
        result = blend(OUT, IN, 0.4, GLITCH)
        out_bg = [l for l in result.layers if l.name == "out-bg"][0]
        in_vignette = [l for l in result.layers if l.name == "in-vignette"][0]
        assert out_bg.z == OUTGOING_Z
        assert out_bg.z > in_vignette.z

    def test_opacities_follow_progress(self):
        result = blend(OUT, IN, 0.4, GLITCH)
        out_bg = [l for l in result.layers if l.name == "out-bg"][0]
        in_bg = [l for l in result.layers if l.name == "in-bg"][0]
        assert out_bg.opacity == pytest.approx(0.6)
        assert in_bg.opacity == 1.0

    def test_equal_scenes_keep_brightness_mid_window(self):
        grey = VisualDescriptor(layers=(Layer(name="bg", kind="solid", z=0, color=(200, 200, 200)),))
        for progress in (0.25, 0.5, 0.75):
            mixed = blend(grey, grey, progress, GLITCH, frame_size=(32, 18))
            frame = rasterize(mixed, 32, 18)
            assert np.abs(frame.astype(int) - 200).max() <= 1

    def test_deterministic(self):
        assert blend(OUT, IN, 0.4, GLITCH) == blend(OUT, IN, 0.4, GLITCH)

    def test_seed_changes_jitter(self):
        a = blend(OUT, IN, 0.4, GLITCH, seed="a")
        b = blend(OUT, IN, 0.4, GLITCH, seed="b")
        assert a != b

    def test_jitter_bounded(self):
        for step in range(1, 15):
            result = blend(OUT, IN, step / 15, GLITCH)
            out_bg = [l for l in result.layers if l.name == "out-bg"][0]
            assert abs(out_bg.transform.translate_x) <= GLITCH.max_displacement / 2


# ============================================================================
# Directional glitch
# ============================================================================

class TestDirectionalGlitch:

    def test_wipe_clips(self):
        assert wipe_clips("left", 0.25) == ((0.0, 0.0, 0.75, 1.0), (0.75, 0.0, 1.0, 1.0))
        assert wipe_clips("down", 0.5) == ((0.0, 0.5, 1.0, 1.0), (0.0, 0.0, 1.0, 0.5))
        with pytest.raises(ValueError):
            wipe_clips("diagonal", 0.5)

    def test_incoming_revealed_by_wipe(self):
        result = blend(OUT, IN, 0.3, WIPE)
        in_bg = [l for l in result.layers if l.name == "in-bg"][0]
        out_bg = [l for l in result.layers if l.name == "out-bg"][0]
        assert in_bg.clip == pytest.approx((0.7, 0.0, 1.0, 1.0))
        assert out_bg.clip == pytest.approx((0.0, 0.0, 0.7, 1.0))

    def test_displacement_follows_direction(self):
        for direction, sign in (("left", -1), ("right", 1)):
            transition = Transition("wipe", 10, PresentationKind.DIRECTIONAL_GLITCH,
                                    direction=direction)
            for step in range(1, 10):
                result = blend(OUT, IN, step / 10, transition)
                out_bg = [l for l in result.layers if l.name == "out-bg"][0]
                assert out_bg.transform.translate_x * sign >= 0
                assert out_bg.transform.translate_y == 0
                for artifact in result.artifacts:
                    if artifact.effect == "glitch_slice":
                        assert artifact.offset_x * sign >= 0

    def test_vertical_wipe_moves_vertically(self):
        transition = Transition("wipe", 10, PresentationKind.DIRECTIONAL_GLITCH, direction="up")
        result = blend(OUT, IN, 0.5, transition)
        out_bg = [l for l in result.layers if l.name == "out-bg"][0]
        assert out_bg.transform.translate_x == 0
        assert out_bg.transform.translate_y <= 0


# ============================================================================
# Helpers
# ============================================================================

def test_intersect_clips():
    assert intersect_clips(None, None) is None
    assert intersect_clips((0.0, 0.0, 0.5, 1.0), (0.6, 0.0, 1.0, 1.0)) == (0.6, 0.0, 0.6, 1.0)


def test_restack_keeps_relative_order():
    moved = restack(OUT, Z_STRIDE, opacity=0.5)
    assert [l.z for l in moved.layers] == [Z_STRIDE, Z_STRIDE + 90]
    assert moved.texts[0].opacity == 0.5
    assert moved.artifacts[0].intensity == 0.5
