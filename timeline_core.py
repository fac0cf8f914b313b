"""
Timeline Composer - Functional Core

Maps a global frame index to the scene (or pair of scenes) that owns it and
renders the composed frame.

Timeline arithmetic (all integer frames):

    offset(0) = 0
    offset(i) = offset(i-1) + duration(scene[i-1]) - duration(transition[i-1])
    total     = offset(n-1) + duration(scene[n-1])

Transition window j covers [offset(j+1), offset(j+1) + D_j): the last D_j
frames of scene j overlap the first D_j frames of scene j+1. Each scene is
evaluated at its own local frame (global - offset). Frames outside [0, total)
freeze on the nearest boundary frame.

Everything is computed at construction; resolve() and render() never mutate
the composer, so frames can be evaluated in any order or in parallel.
"""

from bisect import bisect_right
from typing import List, Optional, Sequence, Tuple

from edit_types import (
    ComposedFrame,
    FrameContext,
    Scene,
    SceneFrame,
    Transition,
    TransitionFrame,
)
from interpolation_core import clamp01
from spring_core import measure_spring, spring_progress
from transition_core import FrameSize, blend


def _check_duration(value, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{where} duration must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"{where} duration must be >= 1, got {value}")
    return value


class TimelineComposer:
    """Frame-indexed composition of scenes joined by transitions

    Args:
        scenes: Ordered scenes (at least one)
        transitions: One transition between each pair of adjacent scenes
        fps: Frames per second (used by spring timing)
        frame_size: (width, height) passed to the transition blender

    Raises:
        ValueError: On a non-positive duration, a wrong number of transitions,
            a transition longer than an adjacent scene, or a scene too short to
            hold both of its transition windows
    """

    def __init__(
        self,
        scenes: Sequence[Scene],
        transitions: Sequence[Transition],
        fps: int = 30,
        frame_size: FrameSize = (1920, 1080)
    ):
        if not scenes:
            raise ValueError("Timeline needs at least one scene")
        if len(transitions) != len(scenes) - 1:
            raise ValueError(
                f"Expected {len(scenes) - 1} transitions for {len(scenes)} scenes, "
                f"got {len(transitions)}"
            )
        if not fps > 0:
            raise ValueError(f"fps must be positive, got {fps}")

        for scene in scenes:
            _check_duration(scene.duration, f"Scene '{scene.name}'")
        for transition in transitions:
            _check_duration(transition.duration, f"Transition '{transition.name}'")

        for j, transition in enumerate(transitions):
            before, after = scenes[j], scenes[j + 1]
            if transition.duration > min(before.duration, after.duration):
                raise ValueError(
                    f"Transition '{transition.name}' ({transition.duration} frames) is longer "
                    f"than an adjacent scene ('{before.name}' {before.duration}, "
                    f"'{after.name}' {after.duration})"
                )

        for i, scene in enumerate(scenes):
            incoming = transitions[i - 1].duration if i > 0 else 0
            outgoing = transitions[i].duration if i < len(transitions) else 0
            if incoming + outgoing > scene.duration:
                raise ValueError(
                    f"Scene '{scene.name}' ({scene.duration} frames) is shorter than its "
                    f"transitions ({incoming} in + {outgoing} out)"
                )

        self.scenes: Tuple[Scene, ...] = tuple(scenes)
        self.transitions: Tuple[Transition, ...] = tuple(transitions)
        self.fps = fps
        self.frame_size = frame_size

        offsets = [0]
        for scene, transition in zip(self.scenes, self.transitions):
            offsets.append(offsets[-1] + scene.duration - transition.duration)
        self._offsets: Tuple[int, ...] = tuple(offsets)
        self._total = offsets[-1] + self.scenes[-1].duration

        # Natural settling time of each spring-timed transition
        self._spring_frames: Tuple[int, ...] = tuple(
            measure_spring(fps, t.timing.spring) if t.timing.kind == "spring" else 0
            for t in self.transitions
        )

    # ------------------------------------------------------------------------
    # Timeline arithmetic
    # ------------------------------------------------------------------------

    @property
    def total_duration(self) -> int:
        return self._total

    def scene_start(self, index: int) -> int:
        """Global frame where scene `index` starts"""
        return self._offsets[index]

    def transition_window(self, index: int) -> Tuple[int, int]:
        """Half-open [start, end) global window of transition `index`"""
        start = self._offsets[index + 1]
        return start, start + self.transitions[index].duration

    def segments(self) -> List[Tuple[int, int, str]]:
        """Ordered (start, end, owner) ranges covering [0, total)

        Owner is a scene name for single-scene ranges and
        'outgoing>incoming' for transition windows. Empty ranges are skipped.
        """
        result = []
        for i, scene in enumerate(self.scenes):
            start = self._offsets[i] + (self.transitions[i - 1].duration if i > 0 else 0)
            end = self._offsets[i + 1] if i < len(self.transitions) else self._total
            if end > start:
                result.append((start, end, scene.name))
            if i < len(self.transitions):
                w_start, w_end = self.transition_window(i)
                result.append((w_start, w_end, f"{scene.name}>{self.scenes[i + 1].name}"))
        return result

    def clamp_frame(self, frame: int) -> int:
        return max(0, min(self._total - 1, int(frame)))

    def timing_weight(self, index: int, frames_in: int) -> float:
        """Blend progress for `frames_in` frames into transition `index`"""
        transition = self.transitions[index]
        if transition.timing.kind == "spring":
            natural = self._spring_frames[index]
            elapsed = frames_in * natural / transition.duration
            return clamp01(spring_progress(elapsed, self.fps, transition.timing.spring))
        return frames_in / transition.duration

    def resolve(self, frame: int) -> FrameContext:
        """Scene context(s) for a global frame (clamped to the timeline)"""
        f = self.clamp_frame(frame)
        i = bisect_right(self._offsets, f) - 1
        local = f - self._offsets[i]

        if i > 0:
            j = i - 1
            w_start, w_end = self.transition_window(j)
            if f < w_end:
                frames_in = f - w_start
                return TransitionFrame(
                    transition_index=j,
                    outgoing=SceneFrame(j, f - self._offsets[j]),
                    incoming=SceneFrame(i, local),
                    progress=self.timing_weight(j, frames_in),
                    raw_progress=frames_in / self.transitions[j].duration,
                )
        return SceneFrame(i, local)

    # ------------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------------

    def render(self, frame: int) -> ComposedFrame:
        """Compose the visual descriptor and audio cues for a global frame"""
        f = self.clamp_frame(frame)
        context = self.resolve(f)

        if isinstance(context, SceneFrame):
            output = self.scenes[context.scene_index].render(context.local_frame)
            return ComposedFrame(f, context, output.visual, output.audio)

        outgoing = self.scenes[context.outgoing.scene_index].render(context.outgoing.local_frame)
        incoming = self.scenes[context.incoming.scene_index].render(context.incoming.local_frame)
        transition = self.transitions[context.transition_index]
        visual = blend(
            outgoing.visual, incoming.visual, context.progress, transition,
            frame_size=self.frame_size
        )
        return ComposedFrame(f, context, visual, outgoing.audio + incoming.audio)

    def frames(self, start: int = 0, stop: Optional[int] = None, step: int = 1) -> range:
        """Global frame indices, clipped to the timeline"""
        stop = self._total if stop is None else min(stop, self._total)
        return range(max(0, start), stop, step)

    def shard(self, index: int, count: int) -> range:
        """Frames index, index + count, ... for one of `count` parallel workers"""
        if count < 1 or not 0 <= index < count:
            raise ValueError(f"Invalid shard {index}/{count}")
        return range(index, self._total, count)
