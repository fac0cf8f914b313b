"""
Tests for timeline_core.py - TimelineComposer

Level 1: Smoke tests (construction and validation)
Level 2: Property tests (timeline arithmetic, tiling, order independence)
Level 3: Integration with the default edit
"""

import pytest

from edit_config import load_edit_config
from edit_core import build_composer, describe_timeline
from edit_types import (
    AudioCue,
    Layer,
    PresentationKind,
    Scene,
    SceneFrame,
    SceneOutput,
    SpringParams,
    Transition,
    TransitionFrame,
    TransitionTiming,
    VisualDescriptor,
)
from timeline_core import TimelineComposer


def solid_scene(name, duration, color=(0, 0, 0)):
    def render(local_frame):
        layer = Layer(name=f"{name}-{local_frame}", kind="solid", z=0, color=color)
        return SceneOutput(VisualDescriptor(layers=(layer,)),
                           (AudioCue(f"{name}-audio", 0.5, local_frame / 30.0),))
    return Scene(name, duration, render)


def default_shape(kinds=None):
    scenes = [solid_scene(n, d) for n, d in
              (("intro", 120), ("glitch", 150), ("speed", 150), ("outro", 180))]
    kinds = kinds or [PresentationKind.GLITCH, PresentationKind.FLASH, PresentationKind.FLASH]
    transitions = [Transition(f"t{i}", d, kind) for i, (d, kind) in enumerate(zip((15, 12, 12), kinds))]
    return TimelineComposer(scenes, transitions)


# ============================================================================
# Level 1: Smoke Tests
# ============================================================================

class TestValidation:

    def test_single_scene_timeline(self):
        composer = TimelineComposer([solid_scene("only", 10)], [])
        assert composer.total_duration == 10
        assert composer.resolve(4) == SceneFrame(0, 4)

    def test_empty_timeline_rejected(self):
        with pytest.raises(ValueError):
            TimelineComposer([], [])

    def test_wrong_transition_count_rejected(self):
        with pytest.raises(ValueError, match="transitions"):
            TimelineComposer([solid_scene("a", 10), solid_scene("b", 10)], [])

    @pytest.mark.parametrize("duration", [0, -3, 2.5, True])
    def test_invalid_scene_duration_rejected(self, duration):
        with pytest.raises(ValueError):
            TimelineComposer([solid_scene("a", duration)], [])

    def test_invalid_transition_duration_rejected(self):
        with pytest.raises(ValueError):
            TimelineComposer([solid_scene("a", 10), solid_scene("b", 10)], [Transition("t", 0)])

    def test_transition_longer_than_scene_rejected(self):
        with pytest.raises(ValueError, match="longer than an adjacent scene"):
            TimelineComposer([solid_scene("a", 10), solid_scene("b", 30)], [Transition("t", 12)])

    def test_overlapping_windows_rejected(self):
        scenes = [solid_scene("a", 20), solid_scene("b", 20), solid_scene("c", 20)]
        with pytest.raises(ValueError, match="shorter than its transitions"):
            TimelineComposer(scenes, [Transition("t0", 12), Transition("t1", 12)])

    def test_transition_equal_to_scene_allowed(self):
        composer = TimelineComposer([solid_scene("a", 10), solid_scene("b", 30)], [Transition("t", 10)])
        assert composer.total_duration == 30


# ============================================================================
# Level 2: Property Tests
# ============================================================================

class TestArithmetic:
    """offset(i) = sum(scenes before) - sum(transitions before)"""

    def test_total_duration(self):
        assert default_shape().total_duration == 120 + 150 + 150 + 180 - 15 - 12 - 12

    def test_scene_starts(self):
        composer = default_shape()
        assert [composer.scene_start(i) for i in range(4)] == [0, 105, 243, 381]

    def test_transition_windows(self):
        composer = default_shape()
        assert composer.transition_window(0) == (105, 120)
        assert composer.transition_window(1) == (243, 255)
        assert composer.transition_window(2) == (381, 393)

    def test_frame_inside_first_window(self):
        context = default_shape().resolve(112)
        assert isinstance(context, TransitionFrame)
        assert context.transition_index == 0
        assert context.outgoing == SceneFrame(0, 112)
        assert context.incoming == SceneFrame(1, 7)
        assert context.progress == pytest.approx(7 / 15)

    def test_frame_after_first_window(self):
        assert default_shape().resolve(125) == SceneFrame(1, 20)

    def test_last_frame(self):
        assert default_shape().resolve(560) == SceneFrame(3, 179)

    def test_window_start_progress_zero(self):
        context = default_shape().resolve(105)
        assert context.progress == 0.0
        assert context.outgoing.local_frame == 105
        assert context.incoming.local_frame == 0

    def test_window_end_belongs_to_incoming_scene(self):
        # Frame s + D is the incoming scene alone, i.e. full progress
        assert default_shape().resolve(120) == SceneFrame(1, 15)

    def test_outgoing_scene_ends_inside_window(self):
        context = default_shape().resolve(119)
        assert context.outgoing.local_frame == 119
        assert context.raw_progress == pytest.approx(14 / 15)

    def test_progress_monotonic_in_window(self):
        composer = default_shape()
        start, end = composer.transition_window(1)
        progress = [composer.resolve(f).progress for f in range(start, end)]
        assert progress == sorted(progress)
        assert progress[0] == 0.0

    def test_out_of_range_frames_clamp(self):
        composer = default_shape()
        assert composer.resolve(-50) == composer.resolve(0)
        assert composer.resolve(10_000) == composer.resolve(560)
        assert composer.render(10_000).frame == 560

    def test_segments_tile_timeline(self):
        composer = default_shape()
        segments = composer.segments()
        assert segments[0][0] == 0
        assert segments[-1][1] == composer.total_duration
        for (_, end, _), (start, _, _) in zip(segments, segments[1:]):
            assert end == start

    def test_segments_agree_with_resolve(self):
        composer = default_shape()
        for start, end, owner in composer.segments():
            for frame in range(start, end):
                context = composer.resolve(frame)
                if ">" in owner:
                    assert isinstance(context, TransitionFrame)
                else:
                    assert isinstance(context, SceneFrame)
                    assert composer.scenes[context.scene_index].name == owner

    def test_every_frame_resolves_once(self):
        composer = default_shape()
        singles = sum(1 for f in composer.frames() if isinstance(composer.resolve(f), SceneFrame))
        windows = sum(1 for f in composer.frames() if isinstance(composer.resolve(f), TransitionFrame))
        assert singles + windows == composer.total_duration
        assert windows == 15 + 12 + 12


class TestRendering:

    def test_single_scene_frame(self):
        composed = default_shape().render(125)
        assert composed.visual.layers[0].name == "glitch-20"
        assert composed.audio == (AudioCue("glitch-audio", 0.5, 20 / 30.0),)

    def test_transition_audio_keeps_both_scenes(self):
        composed = default_shape().render(112)
        assert [cue.asset_id for cue in composed.audio] == ["intro-audio", "glitch-audio"]
        assert all(cue.gain == 0.5 for cue in composed.audio)

    def test_boundary_frames_match_single_scene(self):
        composer = default_shape()
        # Window start: progress 0 shows the outgoing scene exactly
        start, _ = composer.transition_window(0)
        assert composer.render(start).visual == composer.scenes[0].render(start).visual

    def test_order_independence(self):
        composer = default_shape()
        forward = [composer.render(f) for f in composer.frames()]
        backward = [composer.render(f) for f in reversed(composer.frames())]
        assert forward == list(reversed(backward))

    def test_shards_cover_timeline(self):
        composer = default_shape()
        frames = sorted(f for k in range(3) for f in composer.shard(k, 3))
        assert frames == list(composer.frames())

    def test_invalid_shard_rejected(self):
        with pytest.raises(ValueError):
            default_shape().shard(3, 3)


class TestSpringTiming:

    def test_spring_progress_reaches_one_in_window(self):
        scenes = [solid_scene("a", 60), solid_scene("b", 60)]
        timing = TransitionTiming(kind="spring", spring=SpringParams(damping=200, stiffness=100))
        composer = TimelineComposer(scenes, [Transition("t", 20, timing=timing)])
        start, end = composer.transition_window(0)
        progress = [composer.resolve(f).progress for f in range(start, end)]
        assert progress[0] == 0.0
        assert all(0.0 <= p <= 1.0 for p in progress)
        assert progress[-1] > 0.9


# ============================================================================
# Level 3: Integration with the default edit
# ============================================================================

class TestDefaultEdit:

    @pytest.fixture(scope="class")
    def composer(self):
        return build_composer(load_edit_config())

    def test_total_561_frames(self, composer):
        assert composer.total_duration == 561

    def test_last_frame_is_outro(self, composer):
        context = composer.resolve(560)
        assert context == SceneFrame(3, 179)
        assert composer.scenes[3].name == "outro"

    def test_renders_across_windows(self, composer):
        for frame in (0, 104, 105, 112, 119, 120, 248, 386, 560):
            composed = composer.render(frame)
            assert composed.frame == frame
            assert composed.visual.layers

    def test_flash_peak_covers_frame(self, composer):
        start, end = composer.transition_window(1)
        composed = composer.render(start + 6)
        flash = [l for l in composed.visual.layers if l.name.startswith("flash:")]
        assert flash and flash[0].opacity == pytest.approx(1.0)
        assert flash[0].color == (255, 255, 255)

    def test_describe_timeline(self, composer):
        lines = describe_timeline(composer)
        assert lines[0].startswith("Total: 561 frames")
        assert any("intro>glitch" in line for line in lines)
