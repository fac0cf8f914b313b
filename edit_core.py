"""
Edit Core - Functional Core

Builds the TimelineComposer for an EditConfig: one scene renderer per scene
config and one Transition per transition config.

    config = load_edit_config()
    composer = build_composer(config)
    frame = composer.render(112)
"""

from typing import List

from edit_config import EditConfig, TransitionConfig
from edit_types import Scene, Transition
from scenes_core import create_scene_renderer
from timeline_core import TimelineComposer


def build_transition(config: TransitionConfig) -> Transition:
    return Transition(
        name=config.name,
        duration=config.duration,
        kind=config.kind,
        timing=config.timing,
        color=config.color,
        direction=config.direction,
        max_displacement=config.max_displacement,
    )


def build_composer(config: EditConfig) -> TimelineComposer:
    """Create the timeline for an edit config

    Raises:
        ValueError: On unknown scene types or invalid timeline arithmetic
    """
    scenes = [
        Scene(
            name=scene.name,
            duration=scene.duration,
            render=create_scene_renderer(scene, config.video),
        )
        for scene in config.scenes
    ]
    transitions = [build_transition(t) for t in config.transitions]
    return TimelineComposer(
        scenes,
        transitions,
        fps=config.video.fps,
        frame_size=(config.video.width, config.video.height),
    )


def describe_timeline(composer: TimelineComposer) -> List[str]:
    """Human-readable timeline layout, one line per segment"""
    fps = composer.fps
    lines = [
        f"Total: {composer.total_duration} frames "
        f"({composer.total_duration / fps:.2f}s @ {fps}fps)"
    ]
    for start, end, owner in composer.segments():
        lines.append(f"  [{start:5d}, {end:5d})  {end - start:4d} frames  {owner}")
    return lines
